"""
Character: a player's in-world persona.

Pure schema; stamina and hearts change only through the ledger service.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, Boolean, CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tamebot.core.database.base import Base, IdMixin, TimestampMixin


class Character(Base, IdMixin, TimestampMixin):
    __tablename__ = "characters"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_character_user_name"),
        CheckConstraint("current_stamina >= 0", name="ck_character_stamina_non_negative"),
        CheckConstraint("current_hearts >= 0", name="ck_character_hearts_non_negative"),
    )

    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    current_stamina: Mapped[int] = mapped_column(nullable=False, default=5)
    max_stamina: Mapped[int] = mapped_column(nullable=False, default=5)
    current_hearts: Mapped[int] = mapped_column(nullable=False, default=3)
    max_hearts: Mapped[int] = mapped_column(nullable=False, default=3)

    job: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    current_village: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    has_mount: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Character id={self.id} name={self.name!r} stamina={self.current_stamina}>"
