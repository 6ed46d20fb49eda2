"""RentStream: on-chain verified media rentals served from a linked entity store."""

__version__ = "0.1.0"
