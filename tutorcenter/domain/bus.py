"""Simple synchronous in-process bus for lesson domain events."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=BaseModel)


class EventBus:
    """Publish/subscribe bus for lesson lifecycle events.

    Handlers run synchronously in registration order, inside the caller's
    request; an exception in a handler propagates to the publisher.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[BaseModel], list[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        self._handlers[event_type].append(handler)

    def publish(self, event: BaseModel) -> None:
        handlers = self._handlers.get(type(event), [])
        logger.debug("Publishing %s to %d handler(s)", type(event).__name__, len(handlers))
        for handler in handlers:
            handler(event)
