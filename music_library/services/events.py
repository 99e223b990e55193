"""
In-process publish/subscribe for domain events.

Handlers subscribe to an event class and receive its instances after the
publishing service has committed. A handler that raises is logged and skipped;
the remaining handlers still run.
"""
from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, DefaultDict, List, Type, TypeVar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    user_id: uuid.UUID


@dataclass(frozen=True)
class ShelfItemAdded(Event):
    shelf_id: uuid.UUID
    item_id: uuid.UUID


@dataclass(frozen=True)
class ShelfItemMoved(Event):
    item_id: uuid.UUID
    from_shelf_id: uuid.UUID
    to_shelf_id: uuid.UUID


@dataclass(frozen=True)
class ShelfItemsReordered(Event):
    shelf_id: uuid.UUID
    item_ids: tuple[uuid.UUID, ...]


@dataclass(frozen=True)
class LikeToggled(Event):
    shelf_item_id: uuid.UUID
    liked: bool


@dataclass(frozen=True)
class CommentAdded(Event):
    shelf_item_id: uuid.UUID
    comment_id: uuid.UUID


@dataclass(frozen=True)
class FriendRequestSent(Event):
    friend_id: uuid.UUID


@dataclass(frozen=True)
class FriendRequestAccepted(Event):
    requester_id: uuid.UUID


E = TypeVar("E", bound=Event)
Handler = Callable[[Event], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: DefaultDict[Type[Event], List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> Callable[[], None]:
        """Register ``handler``; returns a callable that unsubscribes it."""
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)

        return unsubscribe

    def publish(self, event: Event) -> None:
        logger.debug("event %s", event)
        # Subscribers to a base class also see its subclasses.
        for event_type in type(event).__mro__:
            for handler in list(self._handlers.get(event_type, ())):
                try:
                    handler(event)
                except Exception:
                    logger.exception("Handler %r failed for %s", handler, type(event).__name__)

    def clear(self) -> None:
        self._handlers.clear()


bus = EventBus()
