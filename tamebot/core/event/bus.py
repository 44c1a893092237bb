"""
EventBus: in-process pub/sub for encounter side effects.

Services publish facts (``mount.maneuver.resolved``, ``currency.debited``,
``mount.registered``) and move on; the audit trail and any future
notifications subscribe by exact name or by a ``*`` pattern. A failing or
slow listener is logged and counted but never reaches the publisher.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import Counter, defaultdict
from fnmatch import fnmatchcase
from typing import Any, Optional

from tamebot.core.config.manager import ConfigManager
from tamebot.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from tamebot.core.logging.logger import get_logger, set_log_context

logger = get_logger(__name__)


def event_matches(event_name: str, pattern: str) -> bool:
    """``*`` matches any run of characters, dots included."""
    return fnmatchcase(event_name, pattern) if "*" in pattern else event_name == pattern


def _timeout(key: str, explicit: Optional[float]) -> float:
    if explicit is not None:
        return float(explicit)
    value = ConfigManager.get(key, 5.0)
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Listener timeout is not a number", extra={"config_key": key, "value": value})
        return 5.0


class EventBus:
    """
    Listeners run in tiers (see ``ListenerPriority``). Within a tier they run
    in subscription order. Meant for a single event loop.
    """

    def __init__(
        self,
        *,
        critical_timeout_seconds: Optional[float] = None,
        high_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._listeners: dict[str, list[EventListener]] = defaultdict(list)
        self._background: set[asyncio.Task[Any]] = set()
        self._published: Counter[str] = Counter()
        self._failures: Counter[str] = Counter()
        self._timeouts = {
            ListenerPriority.CRITICAL: _timeout(
                "core.event.listener_timeout.critical_seconds", critical_timeout_seconds
            ),
            ListenerPriority.HIGH: _timeout(
                "core.event.listener_timeout.high_seconds", high_timeout_seconds
            ),
        }

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
        allow_duplicates: bool = False,
    ) -> str:
        """
        Register ``callback`` for an event name or pattern.

        The callback must take exactly one argument, the payload. Returns the
        listener identifier; subscribing the same identifier twice is a no-op
        unless ``allow_duplicates`` is set.
        """
        try:
            arity = len(inspect.signature(callback).parameters)
        except (TypeError, ValueError):
            arity = 1
        if arity != 1:
            raise ValueError(
                f"Event listener {getattr(callback, '__qualname__', callback)!r} "
                f"must take exactly one payload argument, not {arity}"
            )

        listener = EventListener.from_callback(event_name, callback, priority, identifier, once)
        registered = self._listeners[event_name]
        if not allow_duplicates and any(l.identifier == listener.identifier for l in registered):
            logger.warning(
                "Duplicate listener ignored",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
            return listener.identifier

        registered.append(listener)
        logger.debug(
            "Listener subscribed",
            extra={"event_name": event_name, "listener_id": listener.identifier, "priority": priority.name},
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        before = self._listeners.get(event_name, [])
        after = [l for l in before if l.identifier != identifier]
        if after:
            self._listeners[event_name] = after
        else:
            self._listeners.pop(event_name, None)
        return len(after) != len(before)

    def clear(self) -> None:
        self._listeners.clear()

    def _take_matching(self, event_name: str) -> list[EventListener]:
        matched: list[EventListener] = []
        for pattern in list(self._listeners):
            if not event_matches(event_name, pattern):
                continue
            listeners = self._listeners[pattern]
            matched.extend(listeners)
            if any(l.once for l in listeners):
                kept = [l for l in listeners if not l.once]
                if kept:
                    self._listeners[pattern] = kept
                else:
                    del self._listeners[pattern]
        return sorted(matched, key=lambda l: l.priority)

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Deliver ``data`` to every matching listener.

        Returns the results of the awaited tiers. LOW listeners are scheduled
        and contribute nothing; ``drain()`` waits for them.
        """
        self._published[event_name] += 1
        set_log_context(event_name=event_name, encounter_id=data.get("encounter_id"))

        listeners = self._take_matching(event_name)
        results: list[Any] = []
        for listener in (l for l in listeners if l.priority.sequential):
            results.append(await self._call_with_timeout(listener, event_name, data))

        concurrent = [l for l in listeners if l.priority is ListenerPriority.NORMAL]
        if concurrent:
            results.extend(
                await asyncio.gather(*(self._call(l, event_name, data) for l in concurrent))
            )

        for listener in (l for l in listeners if l.priority is ListenerPriority.LOW):
            task = asyncio.create_task(
                self._call(listener, event_name, data),
                name=f"event:{event_name}:{listener.identifier}",
            )
            self._background.add(task)
            task.add_done_callback(self._background.discard)
        return results

    async def _call_with_timeout(
        self, listener: EventListener, event_name: str, payload: EventPayload
    ) -> Any:
        limit = self._timeouts[listener.priority]
        if limit <= 0:
            return await self._call(listener, event_name, payload)
        try:
            return await asyncio.wait_for(self._call(listener, event_name, payload), timeout=limit)
        except asyncio.TimeoutError:
            self._failures[event_name] += 1
            logger.error(
                "Listener timed out",
                extra={"event_name": event_name, "listener_id": listener.identifier, "timeout_seconds": limit},
            )
            return None

    async def _call(self, listener: EventListener, event_name: str, payload: EventPayload) -> Any:
        try:
            result = listener.callback(payload)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as exc:
            self._failures[event_name] += 1
            logger.error(
                "Listener failed",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            return None

    async def drain(self) -> None:
        """Wait for scheduled LOW listeners."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        return sum(
            len(listeners)
            for pattern, listeners in self._listeners.items()
            if event_name is None or event_matches(event_name, pattern)
        )

    def get_all_events(self) -> list[str]:
        return sorted(self._listeners)

    def get_metrics_summary(self) -> dict[str, Any]:
        return {
            "total_events_published": sum(self._published.values()),
            "events_by_type": dict(self._published),
            "total_errors": sum(self._failures.values()),
            "errors_by_event": dict(self._failures),
            "total_listeners": self.get_listener_count(),
        }
