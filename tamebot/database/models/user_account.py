"""
UserAccount: per-user token balance.

Pure schema; tokens change only through the ledger service.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tamebot.core.database.base import Base, TimestampMixin


class UserAccount(Base, TimestampMixin):
    __tablename__ = "user_accounts"
    __table_args__ = (CheckConstraint("tokens >= 0", name="ck_user_tokens_non_negative"),)

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    tokens: Mapped[int] = mapped_column(nullable=False, default=0)
