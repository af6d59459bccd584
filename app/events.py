"""Best-effort change notifications for external subscribers (dashboards)."""

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Callable
from uuid import UUID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """A committed ledger mutation: which entity, what happened, which row."""

    entity: str
    operation: str
    id: UUID

    def as_dict(self) -> dict[str, str]:
        payload = asdict(self)
        payload["id"] = str(self.id)
        return payload


Subscriber = Callable[[ChangeEvent], None]


class ChangeEventBus:
    """
    In-process publish/subscribe fan-out.

    Delivery is best-effort: a subscriber that raises is logged and skipped;
    the publishing mutation has already committed and is never affected.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return unsubscribe

    def publish(self, entity: str, operation: str, entity_id: UUID) -> ChangeEvent:
        event = ChangeEvent(entity=entity, operation=operation, id=entity_id)
        with self._lock:
            subscribers = list(self._subscribers)

        for subscriber in subscribers:
            try:
                subscriber(event)
            except Exception:
                logger.exception(
                    "Change event subscriber failed",
                    extra={"ledger_event": event.as_dict()},
                )
        return event


event_bus = ChangeEventBus()
