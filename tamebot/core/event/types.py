"""
Listener records for the EventBus.

Tiers, lowest value first:

- CRITICAL, HIGH: run one at a time, awaited, each under a timeout.
- NORMAL: run together with ``asyncio.gather`` and awaited.
- LOW: scheduled as background tasks; ``publish`` returns without them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Awaitable, Callable, Optional, Union

# Published payloads are also written to the audit log, so keep them JSON-friendly.
EventPayload = dict[str, Any]

CallbackType = Union[
    Callable[[EventPayload], Any],
    Callable[[EventPayload], Awaitable[Any]],
]


class ListenerPriority(IntEnum):
    CRITICAL = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100

    @property
    def sequential(self) -> bool:
        return self <= ListenerPriority.HIGH


def default_identifier(event_name: str, callback: CallbackType) -> str:
    """``module.qualname@event`` for functions and bound methods alike."""
    name = getattr(callback, "__qualname__", None) or getattr(callback, "__name__", "callback")
    return f"{getattr(callback, '__module__', 'unknown')}.{name}@{event_name}"


@dataclass(frozen=True, slots=True)
class EventListener:
    callback: CallbackType
    priority: ListenerPriority
    identifier: str
    once: bool = False

    @classmethod
    def from_callback(
        cls,
        event_name: str,
        callback: CallbackType,
        priority: ListenerPriority,
        identifier: Optional[str],
        once: bool,
    ) -> EventListener:
        return cls(callback, priority, identifier or default_identifier(event_name, callback), once)
