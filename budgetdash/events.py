import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, NamedTuple

__all__ = [
    'Event', 'EventBus', 'BUDGETS_CHANGED', 'CAROUSEL_CHANGED', 'NOTIFICATIONS_CHANGED',
    'BUDGET_MUTATED',
]

logger = logging.getLogger(__name__)


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], dict]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        handlers = list(self._subscribers.get(name, ()))
        if not handlers:
            return []

        event = Event(
            name=name,
            ts=datetime.now(timezone.utc).isoformat(),
            payload=payload,
        )
        logger.debug("Publishing %s to %d handler(s)", name, len(handlers))
        return [handler(event, payload) for handler in handlers]

    def unsubscribe(self, name: str, handler: Handler) -> None:
        if handler in self._subscribers.get(name, []):
            self._subscribers[name].remove(handler)


BUDGETS_CHANGED = "BUDGETS_CHANGED"
CAROUSEL_CHANGED = "CAROUSEL_CHANGED"
NOTIFICATIONS_CHANGED = "NOTIFICATIONS_CHANGED"
BUDGET_MUTATED = "BUDGET_MUTATED"
