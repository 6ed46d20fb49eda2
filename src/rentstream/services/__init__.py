"""Business logic services for the RentStream application."""

from .access_gate import RentalAccessGate
from .authenticator import NonceAuthenticator
from .entity_store import EntityStore, HttpEntityStore, InMemoryEntityStore
from .rental_verifier import RentalVerifier
from .segment_graph import SegmentChain, SegmentGraphBuilder
from .upload_pipeline import UploadPipeline

__all__ = [
    "EntityStore",
    "HttpEntityStore",
    "InMemoryEntityStore",
    "NonceAuthenticator",
    "RentalAccessGate",
    "RentalVerifier",
    "SegmentChain",
    "SegmentGraphBuilder",
    "UploadPipeline",
]
