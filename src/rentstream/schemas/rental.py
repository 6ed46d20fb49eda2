"""Rental schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .catalog import CatalogItemResponse


class RentalVerifyRequest(BaseModel):
    """Claim that ``tx_hash`` paid for a rental on behalf of ``wallet``."""

    tx_hash: str = Field(..., alias="txHash")
    wallet: str
    catalog_item_id: str | None = Field(None, alias="catalogItemId")

    model_config = ConfigDict(populate_by_name=True)


class RentalResponse(BaseModel):
    id: str
    wallet_address: str
    catalog_item_id: str
    tx_hash: str
    chain_rental_id: str | None = None
    expires_at: datetime
    rental_duration_days: int
    paid_wei: str
    is_active: bool
    cloned_entry_point_id: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RentalWithItem(RentalResponse):
    catalog_item: CatalogItemResponse


class RentalStatusResponse(BaseModel):
    """Liveness of a rental as seen by its owner."""

    rental_id: str
    catalog_item_id: str
    is_active: bool
    expires_at: datetime
    remaining_seconds: int
