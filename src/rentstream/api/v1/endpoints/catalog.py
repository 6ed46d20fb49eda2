# src/rentstream/api/v1/endpoints/catalog.py
"""Catalog browsing endpoints."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, HTTPException, status

from rentstream.api.v1.dependencies import SessionDep
from rentstream.repositories.catalog_repo import CatalogRepository
from rentstream.schemas.catalog import CatalogItemDetail, CatalogItemResponse

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("", response_model=list[CatalogItemResponse])
async def list_catalog(
    db: SessionDep,
    media_type: Literal["audio", "video"] | None = None,
    category: str | None = None,
) -> list[CatalogItemResponse]:
    """List rentable catalog items, newest first."""
    items = CatalogRepository(db).list_items(media_type=media_type, category=category)
    return [CatalogItemResponse.model_validate(item) for item in items]


@router.get("/{item_id}", response_model=CatalogItemDetail)
async def read_catalog_item(item_id: str, db: SessionDep) -> CatalogItemDetail:
    repo = CatalogRepository(db)
    item = repo.get_by_id(item_id)
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "CatalogItemNotFound", "message": "Catalog item not found"},
        )
    summary = CatalogItemResponse.model_validate(item)
    return CatalogItemDetail(**summary.model_dump(), segment_count=repo.count_segments(item.id))
