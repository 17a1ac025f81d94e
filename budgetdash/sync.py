"""Coordination between dashboard instances sharing one key-value store."""
import itertools
import logging
import time
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

BUDGET_UPDATED_KEY = "budgetUpdated"
TRANSACTION_UPDATED_KEY = "transactionUpdated"
LAST_REFRESH_KEY = "budgetsLastRefresh"
WATCHED_KEYS = (TRANSACTION_UPDATED_KEY, BUDGET_UPDATED_KEY)


def now_ms() -> int:
    return int(time.time() * 1000)


class CrossTabSync:
    """Timestamped signal keys: writers stamp a key, readers reload when it moves."""

    def __init__(self, store, min_refresh_interval: float = 30.0, clock: Callable[[], int] = now_ms):
        self.store = store
        self.min_refresh_ms = int(min_refresh_interval * 1000)
        self.clock = clock
        self._own_writes: Dict[str, int] = {}
        self._seen: Dict[str, Optional[int]] = {key: self.store.get(key) for key in WATCHED_KEYS}

    def signal_mutation(self, key: str = BUDGET_UPDATED_KEY) -> int:
        stamp = self.clock()
        self.store.set(key, stamp)
        self._own_writes[key] = stamp
        self._seen[key] = stamp
        logger.debug("Signalled %s=%s", key, stamp)
        return stamp

    def should_refresh_on_focus(self) -> bool:
        now = self.clock()
        last = self.store.get(LAST_REFRESH_KEY)
        if last is not None and now - int(last) <= self.min_refresh_ms:
            return False
        self.store.set(LAST_REFRESH_KEY, now)
        return True

    def mark_refreshed(self) -> int:
        """Stamp a completed reload so the next focus within the interval is skipped."""
        stamp = self.clock()
        self.store.set(LAST_REFRESH_KEY, stamp)
        return stamp

    def poll(self) -> List[str]:
        """Keys changed by another writer since the last poll."""
        changed = []
        for key in WATCHED_KEYS:
            value = self.store.get(key)
            if value is None or value == self._seen.get(key):
                continue
            self._seen[key] = value
            if value == self._own_writes.get(key):
                continue
            changed.append(key)
        if TRANSACTION_UPDATED_KEY in changed:
            # consumed once handled, so the next transaction write is seen again
            self.store.remove(TRANSACTION_UPDATED_KEY)
            self._seen[TRANSACTION_UPDATED_KEY] = None
        return changed


class LoadSequencer:
    """Tags loads with increasing numbers so a late, older response is dropped."""

    def __init__(self):
        self._counter = itertools.count(1)
        self.latest = 0

    def begin(self) -> int:
        self.latest = next(self._counter)
        return self.latest

    def is_current(self, token: int) -> bool:
        return token == self.latest
