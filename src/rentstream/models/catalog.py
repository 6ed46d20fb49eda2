"""SQLAlchemy models for rentable catalog items and their segments."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from web3 import Web3

from rentstream.db.session import Base
from rentstream.db.time import utcnow


def new_id() -> str:
    return str(uuid4())


def catalog_chain_key(catalog_item_id: str) -> str:
    """Return the topic the rental contract emits for an indexed catalog id."""
    return Web3.to_hex(Web3.keccak(text=catalog_item_id))


class CatalogItem(Base):
    """A rentable unit of content.

    ``entry_point_id`` is the metadata entity of sequence 0 in the segment
    graph; it stays NULL until the upload pipeline has written every segment.
    """

    __tablename__ = "catalog_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    media_type: Mapped[str] = mapped_column(String(10), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    artist: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Smallest currency unit (wei) as a decimal string; uint256 does not fit BIGINT.
    price_wei: Mapped[str] = mapped_column(String(78), nullable=False)
    entry_point_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    entry_point_tx_hash: Mapped[str | None] = mapped_column(Text, nullable=True)
    chain_key: Mapped[str] = mapped_column(String(66), unique=True, index=True, nullable=False)
    created_by: Mapped[str] = mapped_column(String(42), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    segments: Mapped[list[Segment]] = relationship(
        "Segment",
        back_populates="catalog_item",
        order_by="Segment.sequence",
        cascade="all, delete-orphan",
    )

    @property
    def price(self) -> int:
        """Return the rental price in wei."""
        return int(self.price_wei)

    @property
    def is_rentable(self) -> bool:
        return self.entry_point_id is not None


class Segment(Base):
    """One fixed-duration slice of an item, linked to the next by its metadata record."""

    __tablename__ = "segments"
    __table_args__ = (
        UniqueConstraint("catalog_item_id", "sequence", name="uq_segments_item_sequence"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    catalog_item_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("catalog_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    data_entity_id: Mapped[str] = mapped_column(Text, nullable=False)
    data_tx_hash: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_entity_id: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    next_metadata_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    catalog_item: Mapped[CatalogItem] = relationship("CatalogItem", back_populates="segments")
