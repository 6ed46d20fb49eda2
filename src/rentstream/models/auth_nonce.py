"""Pending wallet authentication challenges."""


from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rentstream.db.session import Base


class AuthNonce(Base):
    """Single-use challenge issued to a wallet; one slot per wallet."""

    __tablename__ = "auth_nonces"

    wallet_address: Mapped[str] = mapped_column(String(42), primary_key=True)
    challenge: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
