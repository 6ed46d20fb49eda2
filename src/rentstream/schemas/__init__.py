"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .auth import NonceRequest, NonceResponse, VerifyRequest, VerifyResponse
from .catalog import CatalogItemDetail, CatalogItemResponse
from .common import ErrorDetail
from .profile import ProfileResponse, ProfileUpdate
from .rental import (
    RentalResponse,
    RentalStatusResponse,
    RentalVerifyRequest,
    RentalWithItem,
)
from .upload import UploadAccepted, UploadJobResponse

__all__ = [
    "NonceRequest", "NonceResponse", "VerifyRequest", "VerifyResponse",
    "CatalogItemDetail", "CatalogItemResponse",
    "ErrorDetail",
    "ProfileResponse", "ProfileUpdate",
    "RentalResponse", "RentalStatusResponse", "RentalVerifyRequest", "RentalWithItem",
    "UploadAccepted", "UploadJobResponse",
]
