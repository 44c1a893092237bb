"""
Event system for Tamebot.

Exposes the global runtime ``event_bus`` singleton used by services to
publish domain events.
"""

from .bus import EventBus, event_matches
from .types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

# Global runtime singleton EventBus
event_bus = EventBus()

__all__ = [
    "event_bus",
    "event_matches",
    "EventBus",
    "EventPayload",
    "ListenerPriority",
    "EventListener",
    "CallbackType",
]
