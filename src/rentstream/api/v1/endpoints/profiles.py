# src/rentstream/api/v1/endpoints/profiles.py
"""Profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from rentstream.api.v1.dependencies import CurrentProfileDep, SessionDep
from rentstream.core.security import normalize_wallet
from rentstream.repositories.rental_repo import ProfileRepository
from rentstream.schemas.profile import ProfileResponse, ProfileUpdate

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileResponse)
async def read_own_profile(current: CurrentProfileDep) -> ProfileResponse:
    return ProfileResponse.model_validate(current)


@router.patch("/me", response_model=ProfileResponse)
async def update_own_profile(
    payload: ProfileUpdate, current: CurrentProfileDep, db: SessionDep
) -> ProfileResponse:
    """Update the caller's display name or avatar."""
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(current, field, value)
    db.commit()
    db.refresh(current)
    return ProfileResponse.model_validate(current)


@router.get("/{wallet}", response_model=ProfileResponse)
async def read_profile(wallet: str, db: SessionDep) -> ProfileResponse:
    try:
        address = normalize_wallet(wallet)
    except ValueError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err

    profile = ProfileRepository(db).get(address)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return ProfileResponse.model_validate(profile)
