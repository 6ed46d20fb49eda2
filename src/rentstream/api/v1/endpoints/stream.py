# src/rentstream/api/v1/endpoints/stream.py
"""Playback endpoints: per-rental manifests and segment delivery.

Media players cannot attach bearer tokens to segment requests, so the
claimed wallet travels as a query parameter and every request is
re-authorized by the access gate.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Request
from fastapi.responses import Response

from rentstream.api.v1.dependencies import AccessGateDep, http_error
from rentstream.core.errors import ServiceError
from rentstream.core.settings import settings
from rentstream.services.access_gate import HLS_CONTENT_TYPE, SEGMENT_CONTENT_TYPE

router = APIRouter(prefix="/stream", tags=["stream"])

WalletQuery = Annotated[str, Query(min_length=1, description="Wallet claiming the rental")]


def _stream_base_url(request: Request) -> str:
    if settings.public_base_url:
        return f"{settings.public_base_url.rstrip('/')}/api/v1/stream"
    return f"{str(request.base_url).rstrip('/')}/api/v1/stream"


@router.get("/{rental_id}/playlist")
async def get_playlist(
    rental_id: str, wallet: WalletQuery, request: Request, gate: AccessGateDep
) -> Response:
    """Return the HLS playlist for a live rental."""
    try:
        manifest = gate.generate_manifest(rental_id, wallet, _stream_base_url(request))
    except ServiceError as err:
        raise http_error(err) from err
    return Response(
        content=manifest,
        media_type=HLS_CONTENT_TYPE,
        headers={"Cache-Control": "no-store"},
    )


async def _segment_response(
    gate: RentalAccessGate, rental_id: str, wallet: str, sequence: int
) -> Response:
    try:
        data = await gate.fetch_segment(rental_id, wallet, sequence)
    except ServiceError as err:
        raise http_error(err) from err
    return Response(
        content=data,
        media_type=SEGMENT_CONTENT_TYPE,
        headers={"Cache-Control": "private, max-age=3600"},
    )


@router.get("/{rental_id}/segment/{sequence}")
async def get_segment(
    rental_id: str, sequence: int, wallet: WalletQuery, gate: AccessGateDep
) -> Response:
    """Return the bytes of one segment after re-authorizing the rental."""
    return await _segment_response(gate, rental_id, wallet, sequence)


@router.get("/segment/{rental_id}/{sequence}")
async def get_segment_from_manifest(
    rental_id: str, sequence: int, wallet: WalletQuery, gate: AccessGateDep
) -> Response:
    return await _segment_response(gate, rental_id, wallet, sequence)
