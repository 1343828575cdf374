"""Event emitter for publishing domain events.

The emitter provides:
- Handler registration with type filtering
- Category-based routing
- Error isolation (handler failures don't break other handlers)
- Per-transaction batching: events are held until commit
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from payroll_ledger.events.types import DomainEvent, EventCategory

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=DomainEvent)

EventHandler = Callable[[DomainEvent], None]


@dataclass
class HandlerRegistration:
    """Registration of an event handler."""

    handler: EventHandler
    event_types: set[str] | None  # None = all events
    categories: set[EventCategory] | None  # None = all categories


class EventEmitter:
    """Synchronous event emitter.

    Usage:
        emitter = EventEmitter()
        emitter.on(PayslipPublished, notify_employee)
        emitter.on_category(EventCategory.ADJUSTMENT, audit_log)

        with emitter.batch() as batch:
            batch.add(event)
        # Dispatched when the context exits without an exception
    """

    def __init__(self) -> None:
        self._handlers: list[HandlerRegistration] = []
        self._lock = threading.Lock()

    def on(self, event_type: type[T] | list[type[T]], handler: EventHandler) -> None:
        """Register handler for specific event type(s)."""
        if isinstance(event_type, list):
            types = {t.__name__ for t in event_type}
        else:
            types = {event_type.__name__}
        self._register(HandlerRegistration(handler=handler, event_types=types, categories=None))

    def on_category(
        self,
        category: EventCategory | list[EventCategory],
        handler: EventHandler,
    ) -> None:
        """Register handler for event category(ies)."""
        cats = set(category) if isinstance(category, list) else {category}
        self._register(HandlerRegistration(handler=handler, event_types=None, categories=cats))

    def on_all(self, handler: EventHandler) -> None:
        """Register handler for all events."""
        self._register(HandlerRegistration(handler=handler, event_types=None, categories=None))

    def off(self, handler: EventHandler) -> None:
        """Unregister a handler."""
        with self._lock:
            self._handlers = [reg for reg in self._handlers if reg.handler is not handler]

    def emit(self, event: DomainEvent) -> list[Exception]:
        """Emit an event to all matching handlers.

        Returns list of any exceptions raised by handlers.
        """
        with self._lock:
            handlers = list(self._handlers)

        errors: list[Exception] = []
        for reg in handlers:
            if reg.event_types and event.event_type not in reg.event_types:
                continue
            if reg.categories and event.category not in reg.categories:
                continue

            try:
                reg.handler(event)
            except Exception as e:
                logger.exception(
                    "Handler %s failed for event %s",
                    reg.handler,
                    event.event_type,
                )
                errors.append(e)

        return errors

    def batch(self) -> EventBatch:
        """Create a batch context for collecting events of one transaction."""
        return EventBatch(self)

    def _register(self, registration: HandlerRegistration) -> None:
        with self._lock:
            self._handlers.append(registration)


class EventBatch:
    """Context manager holding events until the enclosing work succeeds.

    Each batch owns its buffer, so concurrent transactions on one emitter
    never see each other's events.
    """

    def __init__(self, emitter: EventEmitter) -> None:
        self._emitter = emitter
        self._events: list[DomainEvent] = []
        self._errors: list[Exception] = []

    def __enter__(self) -> EventBatch:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        events, self._events = self._events, []
        if exc_type is not None:
            # Discard on failure
            return
        for event in events:
            self._errors.extend(self._emitter.emit(event))

    def add(self, event: DomainEvent) -> None:
        """Add event to batch."""
        self._events.append(event)

    @property
    def pending(self) -> list[DomainEvent]:
        return list(self._events)

    @property
    def errors(self) -> list[Exception]:
        """Errors from handler execution (available after context exits)."""
        return self._errors
