"""Domain error taxonomy shared by services and the API layer.

Every error carries a machine-readable ``code`` (returned to clients) and the
HTTP status the API layer should use. Transient infrastructure failures are
5xx and safe to retry; everything else is a 4xx client or integrity error.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base class for errors raised by RentStream services."""

    code = "ServiceError"
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_detail(self) -> dict[str, Any]:
        """Return the payload placed in an HTTP error response."""
        detail: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            detail["details"] = self.details
        return detail


class TransientError(ServiceError):
    """Remote dependency failure; callers may retry."""

    code = "TransientError"
    status_code = 503
    default_message = "Upstream dependency unavailable"


class InvalidRequest(ServiceError):
    code = "InvalidRequest"
    default_message = "Invalid request"


# --- authentication ---------------------------------------------------------


class NonceExpiredOrMissing(ServiceError):
    code = "NonceExpiredOrMissing"
    status_code = 401
    default_message = "No pending challenge for this wallet"


class InvalidSignature(ServiceError):
    code = "InvalidSignature"
    status_code = 401
    default_message = "Signature does not match wallet"


# --- rental verification ----------------------------------------------------


class TxNotFound(ServiceError):
    code = "TxNotFound"
    status_code = 404
    default_message = "Transaction not found"


class TxFailed(ServiceError):
    code = "TxFailed"
    default_message = "Transaction failed on-chain"


class WrongContract(ServiceError):
    code = "WrongContract"
    default_message = "Transaction is not for the rental contract"


class EventMissing(ServiceError):
    code = "EventMissing"
    default_message = "No rental purchase found in transaction"


class RenterMismatch(ServiceError):
    code = "RenterMismatch"
    status_code = 403
    default_message = "Wallet address does not match renter"


class CatalogMismatch(ServiceError):
    code = "CatalogMismatch"
    default_message = "Catalog item does not match the purchased item"


class CatalogItemNotFound(ServiceError):
    code = "CatalogItemNotFound"
    status_code = 404
    default_message = "Catalog item not found"


class PriceTooLow(ServiceError):
    code = "PriceTooLow"
    status_code = 402
    default_message = "Paid amount is less than required price"


class DuplicateTransaction(ServiceError):
    code = "DuplicateTransaction"
    status_code = 409
    default_message = "Transaction already funds another rental"


# --- access gate ------------------------------------------------------------


class NotFound(ServiceError):
    code = "NotFound"
    status_code = 404
    default_message = "Not found"


class Forbidden(ServiceError):
    code = "Forbidden"
    status_code = 403
    default_message = "Access denied"


class Expired(ServiceError):
    code = "Expired"
    status_code = 403
    default_message = "Rental expired"


class Inactive(ServiceError):
    code = "Inactive"
    status_code = 403
    default_message = "Rental is no longer active"


class NoContent(ServiceError):
    code = "NoContent"
    status_code = 404
    default_message = "No content available for this item"


class ChunkNotFound(ServiceError):
    code = "ChunkNotFound"
    status_code = 404
    default_message = "Chunk not found"


# --- remote dependencies ----------------------------------------------------


class StoreUnavailable(TransientError):
    code = "StoreUnavailable"
    default_message = "Entity store unavailable"


class EntityNotFound(ServiceError):
    code = "EntityNotFound"
    status_code = 404
    default_message = "Entity not found in store"


class ChainUnavailable(TransientError):
    code = "ChainUnavailable"
    default_message = "Chain RPC unavailable"
