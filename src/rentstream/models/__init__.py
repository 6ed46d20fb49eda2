"""SQLAlchemy models for the RentStream application."""

from .auth_nonce import AuthNonce
from .catalog import CatalogItem, Segment
from .profile import Profile
from .rental import Rental
from .upload_job import UploadJob, UploadStatus

__all__ = [
    "AuthNonce",
    "CatalogItem", "Segment",
    "Profile",
    "Rental",
    "UploadJob", "UploadStatus",
]
