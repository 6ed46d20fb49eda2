"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from rentstream.core.clock import Clock
from rentstream.core.errors import ServiceError
from rentstream.core.settings import settings
from rentstream.db.session import get_db
from rentstream.models import Profile
from rentstream.services.access_gate import RentalAccessGate
from rentstream.services.chain import ChainClient
from rentstream.services.entity_store import EntityStore
from rentstream.services.segmenter import FixedSizeSegmenter, Segmenter

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def http_error(err: ServiceError) -> HTTPException:
    """Translate a domain error into the HTTP error returned to clients."""
    return HTTPException(status_code=err.status_code, detail=err.to_detail())


def get_entity_store(request: Request) -> EntityStore:
    return request.app.state.entity_store


def get_chain_client(request: Request) -> ChainClient:
    return request.app.state.chain_client


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_segmenter() -> Segmenter:
    return FixedSizeSegmenter(
        max_bytes=settings.segment_max_bytes,
        default_duration_seconds=settings.segment_duration_seconds,
    )


EntityStoreDep = Annotated[EntityStore, Depends(get_entity_store)]
ChainClientDep = Annotated[ChainClient, Depends(get_chain_client)]
ClockDep = Annotated[Clock, Depends(get_clock)]
SegmenterDep = Annotated[Segmenter, Depends(get_segmenter)]


def get_access_gate(db: SessionDep, store: EntityStoreDep, clock: ClockDep) -> RentalAccessGate:
    return RentalAccessGate(db, store, clock=clock)


AccessGateDep = Annotated[RentalAccessGate, Depends(get_access_gate)]


def get_current_profile(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> Profile:
    """Get the profile of the wallet named in the bearer token.

    Raises:
        HTTPException: If the token is invalid or the profile does not exist.
    """
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    subject = payload.get("sub")
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    profile = db.get(Profile, str(subject).lower())
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Profile not found",
        )
    return profile


# Type alias for current profile dependency
CurrentProfileDep = Annotated[Profile, Depends(get_current_profile)]
