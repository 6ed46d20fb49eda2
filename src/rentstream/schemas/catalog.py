"""Catalog schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CatalogItemResponse(BaseModel):
    id: str
    media_type: str
    title: str
    artist: str
    description: str | None = None
    category: str | None = None
    cover_url: str | None = None
    duration_seconds: int
    price_wei: str = Field(..., description="Rental price in wei as a decimal string")
    entry_point_id: str | None = None
    chain_key: str = Field(..., description="keccak-256 of the item id as emitted on-chain")
    created_by: str
    created_at: datetime
    rentable: bool = Field(False, validation_alias="is_rentable")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class CatalogItemDetail(CatalogItemResponse):
    segment_count: int = 0
