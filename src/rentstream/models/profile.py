"""Wallet-keyed user profiles."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rentstream.db.session import Base
from rentstream.db.time import utcnow


class Profile(Base):
    """Public profile of a wallet that authenticated or rented content."""

    __tablename__ = "profiles"

    # Lower-cased 0x address.
    wallet_address: Mapped[str] = mapped_column(String(42), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @staticmethod
    def default_display_name(wallet_address: str) -> str:
        return f"User {wallet_address[:6]}"
