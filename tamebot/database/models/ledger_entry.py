"""
LedgerEntry: immutable record of a token movement.

The unique ``reference`` makes a debit idempotent: a retried debit with the
same reference finds the existing entry and charges nothing.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, BigInteger, DateTime, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from tamebot.core.database.base import Base, IdMixin, utc_now


class LedgerEntry(Base, IdMixin):
    __tablename__ = "ledger_entries"
    __table_args__ = (Index("ix_ledger_entries_user_time", "user_id", "timestamp"),)

    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    reference: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    delta: Mapped[int] = mapped_column(nullable=False)
    balance_after: Mapped[int] = mapped_column(nullable=False)
    reason: Mapped[str] = mapped_column(String(100), nullable=False)
    details: Mapped[Dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
        default=dict,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
