"""
Event Bus - Event-driven communication system.

This module provides a lightweight event bus that carries file notifications
from watchers to the components that react to them.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar
from uuid import uuid4

logger = logging.getLogger(__name__)

T = TypeVar('T', bound='DomainEvent')


@dataclass(kw_only=True)
class DomainEvent:
    """Base class for all events."""
    event_id: str = field(default_factory=lambda: f"evt_{uuid4().hex}")
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {
            "event_type": self.__class__.__name__,
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
            "data": self._get_event_data(),
        }

    def _get_event_data(self) -> Dict[str, Any]:
        """Get event-specific data for serialization."""
        return {}


class EventBus:
    """
    Central event bus for publishing and subscribing to events.

    Handlers may be plain callables or coroutine functions. Handlers are held
    by weak reference, so a subscriber must be kept alive by its owner.
    """

    def __init__(self, max_events_in_memory: int = 1000):
        self._handlers: Dict[Type[DomainEvent], List[weakref.ref]] = {}
        self._event_store: List[DomainEvent] = []
        self._max_events_in_memory = max_events_in_memory

    def subscribe(
        self,
        event_type: Type[T],
        handler: Callable[[T], Any]
    ) -> None:
        """
        Subscribe to events of a specific type.

        Args:
            event_type: The event class to subscribe to
            handler: The handler function/method
        """
        if event_type not in self._handlers:
            self._handlers[event_type] = []

        # Use weak reference to avoid memory leaks
        if hasattr(handler, '__self__'):
            ref = weakref.WeakMethod(handler)
        else:
            ref = weakref.ref(handler)

        self._handlers[event_type].append(ref)

    def unsubscribe(
        self,
        event_type: Type[DomainEvent],
        handler: Callable
    ) -> None:
        """Unsubscribe from events."""
        if event_type in self._handlers:
            self._handlers[event_type] = [
                ref for ref in self._handlers[event_type]
                if ref() is not None and ref() != handler
            ]

    async def publish(self, event: DomainEvent) -> None:
        """
        Publish an event to all subscribers and wait for them to finish.

        Handler errors are logged and never reach the publisher.
        """
        self._event_store.append(event)
        if len(self._event_store) > self._max_events_in_memory:
            self._event_store.pop(0)

        handlers = []
        for event_type in type(event).__mro__:
            if event_type in self._handlers:
                handlers.extend(ref() for ref in self._handlers[event_type] if ref() is not None)

        if handlers:
            await asyncio.gather(*(self._safe_handle(h, event) for h in handlers))

    def get_events(
        self,
        since: Optional[datetime] = None,
        event_type: Optional[Type[DomainEvent]] = None
    ) -> List[DomainEvent]:
        """Get events from the store with optional filtering."""
        filtered_events = self._event_store

        if since:
            filtered_events = [e for e in filtered_events if e.timestamp >= since]

        if event_type:
            filtered_events = [e for e in filtered_events if isinstance(e, event_type)]

        return list(filtered_events)

    async def _safe_handle(self, handler: Callable, event: DomainEvent) -> None:
        """Safely handle an event, catching exceptions."""
        try:
            result = handler(event)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"Error in event handler {handler}: {e}")

    def clear(self) -> None:
        """Clear all handlers and events."""
        self._handlers.clear()
        self._event_store.clear()
