"""Data access helpers for catalog items and their segments."""
from __future__ import annotations

from collections.abc import Iterable
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rentstream.models.catalog import CatalogItem, Segment, catalog_chain_key

__all__ = ["CatalogRepository"]


class CatalogRepository:
    """Thin wrapper around database access for catalog entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_id(self, item_id: str) -> CatalogItem | None:
        return self.session.get(CatalogItem, item_id)

    def get_by_chain_key(self, chain_key: str) -> CatalogItem | None:
        """Return the item whose keccak-256 id hash equals ``chain_key``."""
        result = self.session.execute(
            select(CatalogItem).where(CatalogItem.chain_key == chain_key.lower())
        )
        return result.scalars().first()

    def list_items(
        self,
        *,
        media_type: str | None = None,
        category: str | None = None,
        rentable_only: bool = True,
    ) -> list[CatalogItem]:
        stmt = select(CatalogItem)
        if rentable_only:
            stmt = stmt.where(CatalogItem.entry_point_id.is_not(None))
        if media_type:
            stmt = stmt.where(CatalogItem.media_type == media_type)
        if category:
            stmt = stmt.where(CatalogItem.category == category)
        stmt = stmt.order_by(CatalogItem.created_at.desc())
        return list(self.session.execute(stmt).scalars())

    def create(
        self,
        *,
        media_type: str,
        title: str,
        artist: str,
        price_wei: int,
        created_by: str,
        description: str | None = None,
        category: str | None = None,
        cover_url: str | None = None,
        duration_seconds: int = 0,
    ) -> CatalogItem:
        """Insert a catalog item without content; it is not rentable yet."""
        item_id = str(uuid4())
        item = CatalogItem(
            id=item_id,
            media_type=media_type,
            title=title,
            artist=artist,
            description=description,
            category=category,
            cover_url=cover_url,
            duration_seconds=duration_seconds,
            price_wei=str(price_wei),
            chain_key=catalog_chain_key(item_id),
            created_by=created_by,
        )
        self.session.add(item)
        self.session.flush()
        return item

    def segments_for(self, item_id: str) -> list[Segment]:
        """Return the item's segments ordered by sequence."""
        result = self.session.execute(
            select(Segment).where(Segment.catalog_item_id == item_id).order_by(Segment.sequence)
        )
        return list(result.scalars())

    def count_segments(self, item_id: str) -> int:
        result = self.session.execute(
            select(func.count()).select_from(Segment).where(Segment.catalog_item_id == item_id)
        )
        return int(result.scalar_one())

    def add_segments(self, item_id: str, segments: Iterable[Segment]) -> None:
        for segment in segments:
            segment.catalog_item_id = item_id
            self.session.add(segment)
        self.session.flush()
