"""In-process subscription interface for editor activity events."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable

from .models import ActivityEvent, EventKind

logger = logging.getLogger(__name__)

Handler = Callable[[ActivityEvent], object]


@dataclass(slots=True)
class Subscription:
    """Token returned by :meth:`EventBus.subscribe`."""

    id: int
    kind: EventKind | None
    handler: Handler
    _bus: "EventBus | None" = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return self._bus is not None

    def unsubscribe(self) -> None:
        if self._bus is not None:
            self._bus._remove(self)
            self._bus = None


class EventBus:
    """Delivers activity events to handlers registered per kind.

    A handler that raises never stops delivery to the remaining handlers; the
    failure is logged and handed back to the publisher.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    def subscribe(self, kind: EventKind | None, handler: Handler) -> Subscription:
        """Register ``handler`` for ``kind``; ``None`` subscribes to every kind."""

        subscription = Subscription(id=next(self._ids), kind=kind, handler=handler, _bus=self)
        self._subscriptions[subscription.id] = subscription
        return subscription

    def subscribe_all(self, handler: Handler) -> list[Subscription]:
        return [self.subscribe(kind, handler) for kind in EventKind]

    def _remove(self, subscription: Subscription) -> None:
        self._subscriptions.pop(subscription.id, None)

    def handlers_for(self, kind: EventKind) -> list[Handler]:
        return [
            sub.handler
            for sub in list(self._subscriptions.values())
            if sub.kind is None or sub.kind is kind
        ]

    def publish(self, event: ActivityEvent) -> list[Exception]:
        """Deliver ``event`` in subscription order and return handler failures."""

        failures: list[Exception] = []
        for handler in self.handlers_for(event.kind):
            try:
                handler(event)
            except Exception as exc:
                logger.error(
                    "Activity handler failed",
                    exc_info=exc,
                    extra={"kind": event.kind.value, "subjects": list(event.subjects)},
                )
                failures.append(exc)
        return failures

    def __len__(self) -> int:
        return len(self._subscriptions)


__all__ = ["EventBus", "Handler", "Subscription"]
