"""
Event Bus Module - Design Events for Connected Clients

The MessageBroker carries requests between agents; the EventBus carries the
resulting state changes out to whoever is listening, mainly the WebSocket
manager, which forwards them to the clients viewing a design.

Subscriptions come in three flavours:
1. By event type
2. By design id (the clients that have a design open)
3. Global (logging/monitoring)

A failing subscriber is logged and skipped; it never affects the publisher
or the other subscribers.
"""

import asyncio
from collections import deque
from typing import Deque, Dict, List, Callable, Any, Optional, Set
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class EventType(Enum):

    # Design lifecycle
    DESIGN_CREATED = "design_created"
    DESIGN_UPDATED = "design_updated"
    DESIGN_DELETED = "design_deleted"
    DESIGN_DUPLICATED = "design_duplicated"
    DESIGN_IMPORTED = "design_imported"
    DESIGN_SHARED = "design_shared"

    # Editing sessions
    EDIT_STARTED = "edit_started"
    EDIT_COMPLETED = "edit_completed"

    # System Events
    SYSTEM_MESSAGE = "system_message"


@dataclass
class Event:
    """Something that happened: what, details, who and to which design."""

    event_type: EventType
    data: Dict[str, Any]
    user_id: Optional[str] = None
    design_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.event_type.value,
            "data": self.data,
            "user_id": self.user_id,
            "design_id": self.design_id,
            "timestamp": self.timestamp.isoformat()
        }


class EventBus:
    """
    In-memory publish/subscribe singleton.

    Every subscribe method returns an unsubscribe callable.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, max_history: int = 1000):
        if self._initialized:
            return

        self._subscribers: Dict[EventType, List[Callable]] = {}
        self._design_subscribers: Dict[str, Set[Callable]] = {}
        self._global_subscribers: List[Callable] = []
        self._event_history: Deque[Event] = deque(maxlen=max_history)

        self._initialized = True
        logger.info("EventBus initialized")

    def subscribe(self, event_type: EventType, callback: Callable[[Event], Any]) -> Callable:
        self._subscribers.setdefault(event_type, []).append(callback)
        logger.debug(f"Subscribed to {event_type.value}: {callback}")

        def unsubscribe():
            if callback in self._subscribers.get(event_type, []):
                self._subscribers[event_type].remove(callback)

        return unsubscribe

    def subscribe_to_design(self, design_id: str, callback: Callable[[Event], Any]) -> Callable:
        self._design_subscribers.setdefault(design_id, set()).add(callback)

        def unsubscribe():
            if design_id in self._design_subscribers:
                self._design_subscribers[design_id].discard(callback)
                if not self._design_subscribers[design_id]:
                    del self._design_subscribers[design_id]

        return unsubscribe

    def subscribe_all(self, callback: Callable[[Event], Any]) -> Callable:
        self._global_subscribers.append(callback)

        def unsubscribe():
            if callback in self._global_subscribers:
                self._global_subscribers.remove(callback)

        return unsubscribe

    async def publish(self, event: Event):
        """Deliver an event to type, design and global subscribers, in that order."""
        self._event_history.append(event)
        logger.debug(f"Publishing event: {event.event_type.value}")

        callbacks = list(self._subscribers.get(event.event_type, []))
        if event.design_id:
            callbacks.extend(self._design_subscribers.get(event.design_id, ()))
        callbacks.extend(self._global_subscribers)

        for callback in callbacks:
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(event)
                else:
                    callback(event)
            except Exception as e:
                logger.exception(f"Event callback error: {e}")

    def get_history(
        self,
        event_type: Optional[EventType] = None,
        design_id: Optional[str] = None,
        limit: int = 50
    ) -> List[Event]:
        events = list(self._event_history)
        if event_type:
            events = [e for e in events if e.event_type == event_type]
        if design_id:
            events = [e for e in events if e.design_id == design_id]
        return events[-limit:]

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_subscribers": sum(len(s) for s in self._subscribers.values()),
            "design_rooms": len(self._design_subscribers),
            "global_subscribers": len(self._global_subscribers),
            "events_in_history": len(self._event_history)
        }
