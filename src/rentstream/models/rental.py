"""SQLAlchemy model for time-boxed rental grants."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentstream.db.session import Base
from rentstream.db.time import as_utc, utcnow
from rentstream.models.catalog import CatalogItem, new_id


class Rental(Base):
    """Access grant from one wallet to one catalog item, funded by one transaction.

    Rows are never deleted. ``is_active`` only ever moves from True to False,
    when an access check observes that ``expires_at`` has passed.
    """

    __tablename__ = "rentals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    wallet_address: Mapped[str] = mapped_column(
        String(42),
        ForeignKey("profiles.wallet_address"),
        nullable=False,
        index=True,
    )
    catalog_item_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("catalog_items.id"),
        nullable=False,
    )
    # One rental per payment transaction.
    tx_hash: Mapped[str] = mapped_column(String(66), unique=True, nullable=False)
    chain_rental_id: Mapped[str | None] = mapped_column(String(66), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    rental_duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    paid_wei: Mapped[str] = mapped_column(String(78), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    cloned_entry_point_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    catalog_item: Mapped[CatalogItem] = relationship("CatalogItem")

    @property
    def paid_amount(self) -> int:
        return int(self.paid_wei)

    def has_expired(self, now: datetime) -> bool:
        return now >= as_utc(self.expires_at)

    def is_live(self, now: datetime) -> bool:
        """Return True iff the rental is active and not yet past its expiry."""
        return self.is_active and not self.has_expired(now)
