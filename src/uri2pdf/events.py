"""Event dispatch with cancelable default actions.

Delivery order for one dispatch:

1. Foreign listeners, in registration order, through their handler tables.
2. The owner's default handler for the event kind.
3. Plain subscribers registered with ``subscribe``.

A handler in step 1 or 2 returning ``CANCEL`` stops the dispatch there.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Union

from .errors import ErrorKind

logger = logging.getLogger(__name__)

# Handlers return this to suppress the rest of the dispatch.
CANCEL = False

Handler = Callable[..., Optional[bool]]


class EventKind(str, Enum):
    READY = "ready"
    RENDER = "render"
    END = "end"


@dataclass
class Event:
    """A dispatched event. Built per dispatch and never retained."""

    kind: EventKind
    target: Any = None
    error: Optional[BaseException] = None
    options: Any = None

    @property
    def type(self) -> str:
        return self.kind.value

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        """Classification of ``error``; unknown exceptions count as conversion errors."""
        if self.error is None:
            return None
        return getattr(self.error, "kind", ErrorKind.CONVERSION)


class Listener(Protocol):
    """Foreign object observing an emitter through an explicit handler table."""

    def handlers(self) -> Mapping[EventKind, Handler]:
        """Return the handlers this listener provides, keyed by event kind."""


@dataclass
class HandlerTable:
    """Ready-made ``Listener`` backed by a plain mapping."""

    table: Dict[EventKind, Handler] = field(default_factory=dict)

    def handlers(self) -> Mapping[EventKind, Handler]:
        return self.table


def _is_cancel(result: Any) -> bool:
    return result is CANCEL


class EventBus:
    """Publish/subscribe hub owned by a single emitter (the ``target``)."""

    def __init__(self, target: Any):
        self.target = target
        self.listeners: List[Listener] = []
        self._defaults: Dict[EventKind, Handler] = {}
        self._subscribers: Dict[EventKind, List[Handler]] = defaultdict(list)

    def add_listener(self, listener: Listener) -> None:
        self.listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self.listeners.remove(listener)

    def set_default(self, kind: Union[EventKind, str], handler: Handler) -> None:
        self._defaults[EventKind(kind)] = handler

    def subscribe(self, kind: Union[EventKind, str], handler: Handler) -> None:
        self._subscribers[EventKind(kind)].append(handler)

    def unsubscribe(self, kind: Union[EventKind, str], handler: Handler) -> None:
        self._subscribers[EventKind(kind)].remove(handler)

    def dispatch(self, event: Union[Event, EventKind, str], *args: Any) -> bool:
        """Deliver ``event`` to listeners, the default handler and subscribers.

        Args:
            event: Event object or bare event kind
            *args: Extra arguments passed to listeners and the default handler

        Returns:
            False if a listener or the default handler canceled the dispatch
        """
        if not isinstance(event, Event):
            event = Event(kind=EventKind(event))
        event.target = self.target

        for listener in list(self.listeners):
            handler = listener.handlers().get(event.kind)
            if handler is not None and _is_cancel(handler(event, *args)):
                logger.debug("%s dispatch canceled by listener %r", event.type, listener)
                return False

        default = self._defaults.get(event.kind)
        if default is not None and _is_cancel(default(event, *args)):
            logger.debug("%s dispatch canceled by default handler", event.type)
            return False

        for subscriber in list(self._subscribers[event.kind]):
            subscriber(event)
        return True
