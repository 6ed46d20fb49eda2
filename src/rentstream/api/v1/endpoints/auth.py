# src/rentstream/api/v1/endpoints/auth.py
"""Wallet authentication endpoints."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from fastapi import APIRouter
from jose import jwt

from rentstream.api.v1.dependencies import ClockDep, SessionDep, http_error
from rentstream.core.errors import ServiceError
from rentstream.core.settings import settings
from rentstream.schemas.auth import NonceRequest, NonceResponse, VerifyRequest, VerifyResponse
from rentstream.schemas.profile import ProfileResponse
from rentstream.services.authenticator import NonceAuthenticator

router = APIRouter(prefix="/auth", tags=["authentication"])


def create_access_token(subject: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create JWT access token for wallet authentication."""
    to_encode: dict[str, object] = {"sub": subject}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def _authenticator(db: SessionDep, clock: ClockDep) -> NonceAuthenticator:
    return NonceAuthenticator(
        db,
        app_name=settings.app_name,
        ttl_seconds=settings.auth_nonce_ttl_seconds,
        clock=clock,
    )


@router.post("/nonce", response_model=NonceResponse)
async def issue_nonce(payload: NonceRequest, db: SessionDep, clock: ClockDep) -> NonceResponse:
    """Issue a fresh challenge for the wallet, replacing any pending one."""
    try:
        nonce = _authenticator(db, clock).issue_nonce(payload.wallet)
    except ServiceError as err:
        raise http_error(err) from err
    return NonceResponse(challenge=nonce.challenge, expires_at=nonce.expires_at)


@router.post("/verify", response_model=VerifyResponse)
async def verify_signature(
    payload: VerifyRequest, db: SessionDep, clock: ClockDep
) -> VerifyResponse:
    """Verify the signed challenge and return a bearer token for the wallet."""
    try:
        profile = _authenticator(db, clock).verify(
            payload.wallet, payload.challenge, payload.signature
        )
    except ServiceError as err:
        raise http_error(err) from err

    return VerifyResponse(
        profile=ProfileResponse.model_validate(profile),
        access_token=create_access_token(profile.wallet_address),
        token_type="bearer",
    )
