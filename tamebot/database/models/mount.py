"""
Mount: a registered, tamed creature owned by a character.

Snapshot of the encounter at registration time. ``source_encounter_id`` is
unique so registration is idempotent per encounter.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import JSON, BigInteger, Boolean, Date, ForeignKey, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from tamebot.core.database.base import Base, IdMixin, TimestampMixin


class Mount(Base, IdMixin, TimestampMixin):
    __tablename__ = "mounts"

    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    character_id: Mapped[int] = mapped_column(
        ForeignKey("characters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    species: Mapped[str] = mapped_column(String(50), nullable=False)
    level: Mapped[str] = mapped_column(String(20), nullable=False)
    stamina: Mapped[int] = mapped_column(nullable=False)
    current_stamina: Mapped[Optional[int]] = mapped_column(nullable=True)
    owner: Mapped[str] = mapped_column(String(100), nullable=False)
    traits: Mapped[List[str]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
        default=list,
    )
    region: Mapped[str] = mapped_column(String(50), nullable=False)
    is_rare: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source_encounter_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    last_mount_travel: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
