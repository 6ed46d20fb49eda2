"""System endpoints for RentStream API."""

from __future__ import annotations

from fastapi import APIRouter
from web3 import Web3

from rentstream.core.settings import settings
from rentstream.services.rental_events import RENTAL_PURCHASED_SIGNATURE, RENTAL_PURCHASED_TOPIC

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets and connection strings; clients use it to locate the
    rental contract and price new uploads.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
        },
        "auth": {
            "nonce_ttl_seconds": settings.auth_nonce_ttl_seconds,
            "access_token_expire_minutes": settings.access_token_expire_minutes,
        },
        "contract": {
            "address": settings.rental_contract_address,
            "event": RENTAL_PURCHASED_SIGNATURE,
            "event_topic": RENTAL_PURCHASED_TOPIC,
        },
        "backends": {
            "entity_store": settings.entity_store_backend,
            "chain": settings.chain_backend,
        },
        "catalog": {
            "default_price_eth": str(settings.default_price_eth),
            "default_price_wei": str(Web3.to_wei(settings.default_price_eth, "ether")),
            "segment_max_bytes": settings.segment_max_bytes,
            "segment_duration_seconds": settings.segment_duration_seconds,
        },
    }
