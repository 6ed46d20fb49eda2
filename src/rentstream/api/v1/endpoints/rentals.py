# src/rentstream/api/v1/endpoints/rentals.py
"""Rental verification and listing endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from rentstream.api.v1.dependencies import (
    AccessGateDep,
    ChainClientDep,
    ClockDep,
    CurrentProfileDep,
    EntityStoreDep,
    SessionDep,
    http_error,
)
from rentstream.core.errors import ServiceError
from rentstream.core.settings import settings
from rentstream.repositories.rental_repo import RentalRepository
from rentstream.schemas.rental import (
    RentalResponse,
    RentalStatusResponse,
    RentalVerifyRequest,
    RentalWithItem,
)
from rentstream.services.rental_verifier import RentalVerifier

router = APIRouter(prefix="/rentals", tags=["rentals"])


@router.post("/verify", response_model=RentalResponse)
async def verify_rental(
    payload: RentalVerifyRequest,
    db: SessionDep,
    chain: ChainClientDep,
    store: EntityStoreDep,
    clock: ClockDep,
) -> RentalResponse:
    """Verify a rental payment transaction and return the rental it funds.

    Repeating the call with the same transaction and wallet returns the same
    rental.
    """
    verifier = RentalVerifier(
        db,
        chain,
        store,
        contract_address=settings.rental_contract_address,
        clock=clock,
    )
    try:
        rental = await verifier.verify_and_create_rental(
            payload.tx_hash,
            payload.wallet,
            payload.catalog_item_id,
        )
    except ServiceError as err:
        raise http_error(err) from err
    return RentalResponse.model_validate(rental)


@router.get("", response_model=list[RentalWithItem])
async def list_my_rentals(
    current: CurrentProfileDep, db: SessionDep, clock: ClockDep
) -> list[RentalWithItem]:
    """List the caller's live rentals together with their catalog items."""
    rentals = RentalRepository(db).list_live_for_wallet(current.wallet_address, clock.now())
    return [RentalWithItem.model_validate(rental) for rental in rentals]


@router.get("/{rental_id}", response_model=RentalStatusResponse)
async def get_rental_status(
    rental_id: str, current: CurrentProfileDep, gate: AccessGateDep
) -> RentalStatusResponse:
    """Return whether one of the caller's rentals is still playable."""
    try:
        status = gate.rental_status(rental_id, current.wallet_address)
    except ServiceError as err:
        raise http_error(err) from err
    return RentalStatusResponse(
        rental_id=status.rental.id,
        catalog_item_id=status.rental.catalog_item_id,
        is_active=status.is_active,
        expires_at=status.rental.expires_at,
        remaining_seconds=status.remaining_seconds,
    )
