from datetime import datetime, timedelta, timezone

import pytest

from budgetdash.domain import Notification, LOCAL, REMOTE
from budgetdash.errors import NetworkError
from budgetdash.events import EventBus, NOTIFICATIONS_CHANGED
from budgetdash.notifications import (
    LOCAL_NOTIFICATIONS_KEY, NotificationLifecycleManager, dedupe, from_record,
    is_recent_duplicate, merge_feeds, relative_age, to_record, unread_count,
)
from budgetdash.storage import MemoryStore

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def make_notification(id, message="Food budget at 91%", age=timedelta(0), source=REMOTE,
                      is_read=False, category_name="Food"):
    return Notification(
        id=id,
        title="Budget Alert",
        message=message,
        category_name=category_name,
        created_at=NOW - age,
        is_read=is_read,
        source=source,
    )


class FakeClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeAlertsApi:
    def __init__(self, alerts=(), fail=False):
        self.alerts = tuple(alerts)
        self.fail = fail
        self.marked = []

    async def list_alerts(self):
        if self.fail:
            raise NetworkError()
        return self.alerts

    async def mark_alert_read(self, alert_id):
        self.marked.append(alert_id)

    async def mark_all_alerts_read(self):
        self.marked.append("*")


def test_merge_collapses_identical_pairs():
    remote = [make_notification("r1", age=timedelta(minutes=5))]
    local = [make_notification("l1", age=timedelta(minutes=5), source=LOCAL)]
    merged = merge_feeds(remote, local, NOW)
    assert len(merged) == 1


def test_merge_keeps_same_message_at_different_times():
    merged = merge_feeds(
        [make_notification("r1", age=timedelta(minutes=5))],
        [make_notification("l1", age=timedelta(minutes=6), source=LOCAL)],
        NOW,
    )
    assert [n.id for n in merged] == ["r1", "l1"]


def test_merge_sorts_newest_first_and_drops_expired():
    remote = [
        make_notification("old", message="a", age=timedelta(hours=25)),
        make_notification("mid", message="b", age=timedelta(hours=3)),
    ]
    local = [make_notification("new", message="c", age=timedelta(seconds=10), source=LOCAL)]
    merged = merge_feeds(remote, local, NOW)
    assert [n.id for n in merged] == ["new", "mid"]
    assert all(NOW - n.created_at <= timedelta(hours=24) for n in merged)


def test_exactly_24_hours_old_is_kept():
    merged = merge_feeds([make_notification("edge", age=timedelta(hours=24))], [], NOW)
    assert len(merged) == 1


def test_dedupe_keeps_first_seen():
    a = make_notification("a")
    b = make_notification("b")
    assert dedupe([a, b]) == (a,)


def test_unread_count():
    items = [make_notification("a", message="x"), make_notification("b", message="y", is_read=True)]
    assert unread_count(items) == 1


def test_recent_duplicate_window():
    existing = [make_notification("a", age=timedelta(seconds=2), source=LOCAL)]
    assert is_recent_duplicate(existing, "Food budget at 91%", "Food", NOW)
    assert not is_recent_duplicate(existing, "Food budget at 91%", "Transport", NOW)
    assert not is_recent_duplicate(existing, "Food budget at 91%", "Food", NOW + timedelta(seconds=10))


@pytest.mark.parametrize("age, label", [
    (timedelta(seconds=30), "Just now"),
    (timedelta(minutes=1), "15 minutes ago"),
    (timedelta(minutes=16), "30 minutes ago"),
    (timedelta(minutes=50), "59 minutes ago"),
    (timedelta(minutes=61), "1 hour ago"),
    (timedelta(hours=5, minutes=59), "5 hours ago"),
    (timedelta(hours=24), "1 day ago"),
    (timedelta(days=3, hours=1), "3 days ago"),
])
def test_relative_age_labels(age, label):
    assert relative_age(NOW - age, NOW) == label


def test_record_round_trip_keeps_timezone():
    n = make_notification("l1", source=LOCAL)
    assert from_record(to_record(n)) == n
    naive = to_record(n) | {"createdAt": "2026-10-18T12:00:00"}
    assert from_record(naive).created_at.tzinfo is not None


def test_local_debounce_drops_second_and_keeps_later():
    clock = FakeClock()
    manager = NotificationLifecycleManager(MemoryStore(), clock=clock)

    first = manager.add_local("New Budget Created", "Category budget of €300 created", "Food")
    clock.advance(seconds=2)
    second = manager.add_local("New Budget Created", "Category budget of €300 created", "Food")
    clock.advance(seconds=8)
    third = manager.add_local("New Budget Created", "Category budget of €300 created", "Food")

    assert first is not None
    assert second is None
    assert third is not None
    assert len(manager.local) == 2


def test_expired_entry_stays_in_storage_but_is_never_shown():
    store = MemoryStore()
    stale = make_notification("local-old", message="old", age=timedelta(hours=25), source=LOCAL)
    store.set(LOCAL_NOTIFICATIONS_KEY, [to_record(stale)])

    manager = NotificationLifecycleManager(store, clock=FakeClock())

    assert len(store.get(LOCAL_NOTIFICATIONS_KEY)) == 1
    assert manager.feed() == ()
    assert manager.badge_count() == 0


def test_local_entries_are_capped_and_persisted():
    clock = FakeClock()
    store = MemoryStore()
    manager = NotificationLifecycleManager(store, clock=clock, cap=3)
    for i in range(5):
        manager.add_local("t", f"message {i}")
        clock.advance(seconds=1)
    assert [n.message for n in manager.local] == ["message 4", "message 3", "message 2"]
    assert len(store.get(LOCAL_NOTIFICATIONS_KEY)) == 3

    reloaded = NotificationLifecycleManager(store, clock=clock)
    assert [n.id for n in reloaded.local] == [n.id for n in manager.local]


def test_malformed_stored_records_are_skipped():
    store = MemoryStore({LOCAL_NOTIFICATIONS_KEY: [{"id": "x"}, to_record(make_notification("ok", source=LOCAL))]})
    manager = NotificationLifecycleManager(store, clock=FakeClock())
    assert [n.id for n in manager.local] == ["ok"]


def test_changes_are_published():
    bus = EventBus()
    seen = []
    bus.subscribe(NOTIFICATIONS_CHANGED, lambda event, payload: seen.append(payload) or {})
    manager = NotificationLifecycleManager(MemoryStore(), bus=bus, clock=FakeClock())
    manager.add_local("t", "hello")
    assert seen == [{"reason": "added", "unread": 1}]


@pytest.mark.asyncio
async def test_refresh_remote_failure_keeps_local_feed():
    manager = NotificationLifecycleManager(MemoryStore(), alerts_api=FakeAlertsApi(fail=True), clock=FakeClock())
    manager.add_local("t", "local one")
    assert await manager.refresh_remote() is False
    assert [n.message for n in manager.feed()] == ["local one"]


@pytest.mark.asyncio
async def test_mark_read_is_idempotent():
    api = FakeAlertsApi([make_notification("r1", message="remote")])
    store = MemoryStore()
    manager = NotificationLifecycleManager(store, alerts_api=api, clock=FakeClock())
    await manager.refresh_remote()
    local = manager.add_local("t", "local")

    assert manager.badge_count() == 2
    assert await manager.mark_read("r1")
    assert await manager.mark_read("r1")
    assert api.marked == ["r1"]

    assert await manager.mark_read(local.id)
    assert store.get(LOCAL_NOTIFICATIONS_KEY)[0]["isRead"] is True
    assert manager.badge_count() == 0
    assert not await manager.mark_read("missing")


@pytest.mark.asyncio
async def test_mark_all_read():
    api = FakeAlertsApi([make_notification("r1", message="a"), make_notification("r2", message="b")])
    manager = NotificationLifecycleManager(MemoryStore(), alerts_api=api, clock=FakeClock())
    await manager.refresh_remote()
    manager.add_local("t", "c")

    await manager.mark_all_read()
    assert manager.badge_count() == 0
    assert api.marked == ["*"]

    await manager.mark_all_read()
    assert api.marked == ["*"]


def test_purge_expired_after_time_passes():
    clock = FakeClock()
    store = MemoryStore()
    manager = NotificationLifecycleManager(store, clock=clock)
    manager.add_local("t", "will expire")
    clock.advance(hours=23)
    assert manager.purge_expired() == 0
    clock.advance(hours=2)
    assert manager.purge_expired() == 1
    assert store.get(LOCAL_NOTIFICATIONS_KEY) == []
