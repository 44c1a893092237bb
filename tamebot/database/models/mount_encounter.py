"""
MountEncounterRecord: persisted document of an in-flight encounter.

The encounter is stored whole in ``data``; ``version`` backs the
optimistic concurrency check of the encounter store.
"""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import JSON, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from tamebot.core.database.base import Base, TimestampMixin


class MountEncounterRecord(Base, TimestampMixin):
    __tablename__ = "mount_encounters"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    state: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    version: Mapped[int] = mapped_column(nullable=False, default=1)
    data: Mapped[Dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
        default=dict,
    )
