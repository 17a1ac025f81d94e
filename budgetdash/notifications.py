"""Notification feed: merge of remote alerts and local event notifications.

Two duplicate rules apply at different moments:

* merging collapses entries with identical ``created_at`` and ``message``
  (the same notification seen through both sources or fetched twice);
* creating a local notification is debounced: the same message for the same
  category within ``dedup_window`` of an existing one is dropped.
"""
import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Tuple
from uuid import uuid4

from budgetdash.domain import Notification, LOCAL
from budgetdash.errors import DashboardError
from budgetdash.events import EventBus, NOTIFICATIONS_CHANGED

logger = logging.getLogger(__name__)

LOCAL_NOTIFICATIONS_KEY = "localNotifications"
DEFAULT_TTL = timedelta(hours=24)
DEFAULT_DEDUP_WINDOW = timedelta(seconds=5)
DEFAULT_CAP = 20


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_expired(n: Notification, now: datetime, ttl: timedelta = DEFAULT_TTL) -> bool:
    return now - n.created_at > ttl


def drop_expired(
    notifications: Iterable[Notification], now: datetime, ttl: timedelta = DEFAULT_TTL
) -> Tuple[Notification, ...]:
    return tuple(n for n in notifications if not is_expired(n, now, ttl))


def dedupe(notifications: Iterable[Notification]) -> Tuple[Notification, ...]:
    seen = set()
    result = []
    for n in notifications:
        key = (n.created_at, n.message)
        if key in seen:
            continue
        seen.add(key)
        result.append(n)
    return tuple(result)


def merge_feeds(
    remote: Iterable[Notification],
    local: Iterable[Notification],
    now: datetime,
    ttl: timedelta = DEFAULT_TTL,
) -> Tuple[Notification, ...]:
    combined = sorted((*remote, *local), key=lambda n: n.created_at, reverse=True)
    return drop_expired(dedupe(combined), now, ttl)


def unread_count(notifications: Iterable[Notification]) -> int:
    return sum(1 for n in notifications if not n.is_read)


def is_recent_duplicate(
    existing: Iterable[Notification],
    message: str,
    category_name: str,
    now: datetime,
    window: timedelta = DEFAULT_DEDUP_WINDOW,
) -> bool:
    return any(
        n.message == message and n.category_name == category_name
        and abs(now - n.created_at) <= window
        for n in existing
    )


def relative_age(created_at: datetime, now: datetime) -> str:
    seconds = (now - created_at).total_seconds()
    if seconds < 60:
        return "Just now"
    minutes = int(seconds // 60)
    if minutes < 60:
        bucket = min(-(-minutes // 15) * 15, 59)
        return f"{bucket} minutes ago"
    hours = int(seconds // 3600)
    if hours < 24:
        return "1 hour ago" if hours == 1 else f"{hours} hours ago"
    days = int(seconds // 86400)
    return "1 day ago" if days == 1 else f"{days} days ago"


def to_record(n: Notification) -> dict:
    return {
        "id": n.id,
        "title": n.title,
        "message": n.message,
        "categoryName": n.category_name,
        "createdAt": n.created_at.isoformat(),
        "isRead": n.is_read,
        "severity": n.severity,
        "budgetPeriod": n.budget_period,
    }


def from_record(record: dict) -> Notification:
    created = datetime.fromisoformat(record["createdAt"])
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return Notification(
        id=str(record["id"]),
        title=record.get("title", ""),
        message=record["message"],
        category_name=record.get("categoryName", ""),
        created_at=created,
        is_read=bool(record.get("isRead", False)),
        source=LOCAL,
        severity=record.get("severity", "info"),
        budget_period=record.get("budgetPeriod", ""),
    )


class NotificationLifecycleManager:
    def __init__(
        self,
        store,
        alerts_api=None,
        bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = utc_now,
        ttl: timedelta = DEFAULT_TTL,
        dedup_window: timedelta = DEFAULT_DEDUP_WINDOW,
        cap: int = DEFAULT_CAP,
    ):
        self.store = store
        self.alerts_api = alerts_api
        self.bus = bus or EventBus()
        self.clock = clock
        self.ttl = ttl
        self.dedup_window = dedup_window
        self.cap = cap
        self.remote: Tuple[Notification, ...] = ()
        self.local: Tuple[Notification, ...] = self._load_local()

    def _load_local(self) -> Tuple[Notification, ...]:
        records = self.store.get(LOCAL_NOTIFICATIONS_KEY, []) or []
        loaded: List[Notification] = []
        for record in records:
            try:
                loaded.append(from_record(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed stored notification: %s", e)
        return tuple(loaded)

    def _persist_local(self) -> None:
        self.store.set(LOCAL_NOTIFICATIONS_KEY, [to_record(n) for n in self.local])

    def _changed(self, reason: str) -> None:
        self.bus.publish(NOTIFICATIONS_CHANGED, {"reason": reason, "unread": self.badge_count()})

    async def refresh_remote(self) -> bool:
        if self.alerts_api is None:
            return False
        try:
            self.remote = tuple(await self.alerts_api.list_alerts())
        except DashboardError as e:
            logger.warning("Failed to load alerts: %s", e)
            self.remote = ()
            self._changed("refresh_failed")
            return False
        self._changed("refresh")
        return True

    def add_local(
        self,
        title: str,
        message: str,
        category_name: str = "",
        severity: str = "info",
        budget_period: str = "",
    ) -> Optional[Notification]:
        now = self.clock()
        if is_recent_duplicate(self.local, message, category_name, now, self.dedup_window):
            logger.debug("Dropping duplicate notification: %s", message)
            return None

        notification = Notification(
            id=f"local-{uuid4().hex}",
            title=title,
            message=message,
            category_name=category_name,
            created_at=now,
            severity=severity,
            budget_period=budget_period,
        )
        newest_first = sorted((notification, *self.local), key=lambda n: n.created_at, reverse=True)
        self.local = drop_expired(newest_first, now, self.ttl)[: self.cap]
        self._persist_local()
        self._changed("added")
        return notification

    def feed(self, now: Optional[datetime] = None) -> Tuple[Notification, ...]:
        return merge_feeds(self.remote, self.local, now or self.clock(), self.ttl)

    def badge_count(self, now: Optional[datetime] = None) -> int:
        return unread_count(self.feed(now))

    def age_label(self, n: Notification, now: Optional[datetime] = None) -> str:
        return relative_age(n.created_at, now or self.clock())

    async def mark_read(self, notification_id: str) -> bool:
        for n in self.local:
            if n.id == notification_id:
                if not n.is_read:
                    self.local = tuple(replace(x, is_read=True) if x.id == n.id else x for x in self.local)
                    self._persist_local()
                    self._changed("read")
                return True

        for n in self.remote:
            if n.id == notification_id:
                if not n.is_read:
                    if self.alerts_api is not None:
                        await self.alerts_api.mark_alert_read(n.id)
                    self.remote = tuple(replace(x, is_read=True) if x.id == n.id else x for x in self.remote)
                    self._changed("read")
                return True
        return False

    async def mark_all_read(self) -> None:
        if self.alerts_api is not None and any(not n.is_read for n in self.remote):
            await self.alerts_api.mark_all_alerts_read()
        self.remote = tuple(replace(n, is_read=True) for n in self.remote)
        if any(not n.is_read for n in self.local):
            self.local = tuple(replace(n, is_read=True) for n in self.local)
            self._persist_local()
        self._changed("read_all")

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Drop expired entries from memory and storage; run by the decay job."""
        now = now or self.clock()
        local = drop_expired(self.local, now, self.ttl)
        remote = drop_expired(self.remote, now, self.ttl)
        removed = len(self.local) - len(local) + len(self.remote) - len(remote)
        if removed:
            if len(local) != len(self.local):
                self.local = local
                self._persist_local()
            self.remote = remote
            logger.info("Removed %d expired notification(s)", removed)
            self._changed("expired")
        return removed
