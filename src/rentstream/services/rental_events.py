"""Decoding of the rental contract's ``RentalPurchased`` event."""

from __future__ import annotations

from dataclasses import dataclass

from eth_abi import decode, encode
from hexbytes import HexBytes
from web3 import Web3

from rentstream.models.catalog import catalog_chain_key
from rentstream.services.chain import LogEntry, TxReceipt

RENTAL_PURCHASED_SIGNATURE = "RentalPurchased(bytes32,string,address,uint256,uint256)"
RENTAL_PURCHASED_TOPIC = Web3.to_hex(Web3.keccak(text=RENTAL_PURCHASED_SIGNATURE))

# rentalId, catalogItemId and renter are indexed; the amounts live in data.
_TOPIC_COUNT = 4


class EventDecodeError(ValueError):
    """Raised when a log does not carry a well-formed ``RentalPurchased`` event."""


@dataclass(frozen=True)
class RentalPurchasedEvent:
    rental_id: str
    catalog_topic: str
    renter: str
    paid_amount: int
    rental_end_time: int


def catalog_topic(catalog_item_id: str) -> str:
    """Return the topic value emitted for an indexed ``catalogItemId`` string."""
    return catalog_chain_key(catalog_item_id)


def _topic_address(topic: str) -> str:
    return f"0x{topic[-40:]}".lower()


def _pad_address(address: str) -> str:
    return Web3.to_hex(HexBytes(address).rjust(32, b"\x00"))


def is_rental_purchased(log: LogEntry) -> bool:
    return bool(log.topics) and log.topics[0].lower() == RENTAL_PURCHASED_TOPIC


def decode_rental_purchased(log: LogEntry) -> RentalPurchasedEvent:
    """Decode a ``RentalPurchased`` log.

    Raises:
        EventDecodeError: If the topics or data do not match the event ABI.
    """
    if not is_rental_purchased(log):
        raise EventDecodeError("Log is not a RentalPurchased event")
    if len(log.topics) != _TOPIC_COUNT:
        raise EventDecodeError(f"Expected {_TOPIC_COUNT} topics, got {len(log.topics)}")

    try:
        paid_amount, rental_end_time = decode(["uint256", "uint256"], HexBytes(log.data))
    except Exception as exc:
        raise EventDecodeError(f"Malformed event data: {exc}") from exc

    return RentalPurchasedEvent(
        rental_id=log.topics[1].lower(),
        catalog_topic=log.topics[2].lower(),
        renter=_topic_address(log.topics[3]),
        paid_amount=int(paid_amount),
        rental_end_time=int(rental_end_time),
    )


def find_rental_purchased(receipt: TxReceipt, contract_address: str) -> LogEntry | None:
    """Return the first ``RentalPurchased`` log emitted by ``contract_address``."""
    expected = contract_address.lower()
    for log in receipt.logs:
        if log.address.lower() == expected and is_rental_purchased(log):
            return log
    return None


def encode_rental_purchased_log(
    *,
    contract_address: str,
    rental_id: str,
    catalog_item_id: str,
    renter: str,
    paid_amount: int,
    rental_end_time: int,
    log_index: int = 0,
) -> LogEntry:
    """Build the log the rental contract emits for a purchase."""
    return LogEntry(
        address=contract_address.lower(),
        topics=[
            RENTAL_PURCHASED_TOPIC,
            rental_id.lower(),
            catalog_topic(catalog_item_id),
            _pad_address(renter),
        ],
        data=Web3.to_hex(encode(["uint256", "uint256"], [paid_amount, rental_end_time])),
        log_index=log_index,
    )
