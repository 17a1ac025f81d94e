import asyncio
import logging
from typing import Any, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from budgetdash.config import Settings, get_settings

logger = logging.getLogger(__name__)

DECAY_JOB_ID = "notification-decay"
SYNC_JOB_ID = "cross-tab-poll"


class Debouncer:
    """Runs `callback` once `delay` seconds after the last call.

    Outside a running event loop the callback runs immediately.
    """

    def __init__(self, delay: float, callback: Callable[..., Any]):
        self.delay = delay
        self.callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None

    def __call__(self, *args) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.callback(*args)
            return
        self.cancel()
        self._handle = loop.call_later(self.delay, self._fire, args)

    def _fire(self, args) -> None:
        self._handle = None
        self.callback(*args)

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


def build_scheduler(
    purge_expired: Callable[[], Any],
    poll_changes: Optional[Callable[[], Any]] = None,
    settings: Optional[Settings] = None,
    scheduler: Optional[AsyncIOScheduler] = None,
) -> AsyncIOScheduler:
    """Register the notification decay job and, optionally, the cross-tab poll."""
    settings = settings or get_settings()
    scheduler = scheduler or AsyncIOScheduler()

    scheduler.add_job(
        purge_expired, "interval",
        minutes=settings.DECAY_INTERVAL_MINUTES,
        id=DECAY_JOB_ID, replace_existing=True,
    )
    if poll_changes is not None:
        scheduler.add_job(
            poll_changes, "interval",
            seconds=settings.SYNC_POLL_SECONDS,
            id=SYNC_JOB_ID, replace_existing=True, max_instances=1,
        )
    return scheduler


def start_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Must be called from inside the running event loop."""
    if scheduler.running:
        return
    scheduler.start()
    logger.info("Scheduler started with jobs: %s", [job.id for job in scheduler.get_jobs()])
