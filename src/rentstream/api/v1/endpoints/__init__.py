# src/rentstream/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .catalog import router as catalog_router
from .profiles import router as profiles_router
from .rentals import router as rentals_router
from .stream import router as stream_router
from .system import router as system_router
from .uploads import router as uploads_router

__all__ = [
    "auth_router",
    "catalog_router",
    "profiles_router",
    "rentals_router",
    "stream_router",
    "system_router",
    "uploads_router",
]
