# src/rentstream/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    catalog_router,
    profiles_router,
    rentals_router,
    stream_router,
    system_router,
    uploads_router,
)

__all__ = [
    "auth_router",
    "catalog_router",
    "profiles_router",
    "rentals_router",
    "stream_router",
    "system_router",
    "uploads_router",
]
