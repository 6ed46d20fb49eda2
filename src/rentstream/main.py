# src/rentstream/main.py
"""Main entry point for the RentStream application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from rentstream.api.v1 import (
    auth_router,
    catalog_router,
    profiles_router,
    rentals_router,
    stream_router,
    system_router,
    uploads_router,
)
from rentstream.core.clock import system_clock
from rentstream.core.settings import settings
from rentstream.services.chain import build_chain_client
from rentstream.services.entity_store import build_entity_store

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="RentStream API",
    description="Time-boxed streaming rentals paid on-chain",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(profiles_router, prefix="/api/v1")
app.include_router(catalog_router, prefix="/api/v1")
app.include_router(rentals_router, prefix="/api/v1")
app.include_router(stream_router, prefix="/api/v1")
app.include_router(uploads_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    app.state.clock = system_clock
    app.state.entity_store = build_entity_store(settings, system_clock)
    app.state.chain_client = build_chain_client(settings)
    logger.info(
        "RentStream started (entity store: %s, chain: %s, contract: %s)",
        settings.entity_store_backend,
        settings.chain_backend,
        settings.rental_contract_address,
    )


@app.on_event("shutdown")
async def on_shutdown() -> None:
    store = getattr(app.state, "entity_store", None)
    if store is not None:
        await store.close()
    chain = getattr(app.state, "chain_client", None)
    if chain is not None:
        await chain.close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "RentStream API",
        "version": settings.app_version,
        "description": "Time-boxed streaming rentals paid on-chain",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("rentstream.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
