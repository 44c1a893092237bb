"""
Audit listener for mount and ledger events.

Writes every event matching ``AUDITED_PATTERNS`` to the
``tamebot.audit`` logger at LOW priority, so auditing never delays the
interaction that published the event.
"""

from __future__ import annotations

from typing import List

from tamebot.core.event.bus import EventBus
from tamebot.core.event.types import EventPayload, ListenerPriority
from tamebot.core.logging.logger import get_logger

audit_logger = get_logger("tamebot.audit")

AUDITED_PATTERNS = ("mount.*", "currency.*", "character.*", "inventory.*")


async def record_event(payload: EventPayload) -> None:
    audit_logger.info("Audit event", extra={"audit": dict(payload)})


def register_audit_listeners(bus: EventBus) -> List[str]:
    return [
        bus.subscribe(
            pattern,
            record_event,
            priority=ListenerPriority.LOW,
            identifier=f"audit:{pattern}",
        )
        for pattern in AUDITED_PATTERNS
    ]
