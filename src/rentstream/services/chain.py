"""Read-only chain RPC access used to verify rental payments."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound

from rentstream.core.errors import ChainUnavailable
from rentstream.core.security import normalize_tx_hash
from rentstream.core.settings import Settings

logger = logging.getLogger(__name__)

RECEIPT_STATUS_SUCCESS = 1

T = TypeVar("T")


@dataclass(frozen=True)
class LogEntry:
    """A single event log with hex-encoded topics and data."""

    address: str
    topics: list[str]
    data: str
    log_index: int = 0


@dataclass(frozen=True)
class TxReceipt:
    tx_hash: str
    status: int
    to: str | None
    sender: str | None
    block_number: int | None
    logs: list[LogEntry] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == RECEIPT_STATUS_SUCCESS


@dataclass(frozen=True)
class TxInfo:
    tx_hash: str
    sender: str | None
    to: str | None
    value: int
    block_number: int | None


def _hex(value: Any) -> str:
    if isinstance(value, str):
        return value.lower() if value.startswith("0x") else f"0x{value.lower()}"
    return Web3.to_hex(value)


def _address(value: Any) -> str | None:
    if not value:
        return None
    return str(value).lower()


def receipt_from_rpc(payload: Mapping[str, Any]) -> TxReceipt:
    """Convert a web3 receipt mapping into a ``TxReceipt``."""
    logs = [
        LogEntry(
            address=_address(log.get("address")) or "",
            topics=[_hex(topic) for topic in log.get("topics", [])],
            data=_hex(log.get("data") or b""),
            log_index=int(log.get("logIndex") or 0),
        )
        for log in payload.get("logs", [])
    ]
    return TxReceipt(
        tx_hash=_hex(payload.get("transactionHash")),
        status=int(payload.get("status", 0)),
        to=_address(payload.get("to")),
        sender=_address(payload.get("from")),
        block_number=payload.get("blockNumber"),
        logs=logs,
    )


class ChainClient(ABC):
    """Minimal chain RPC surface required by the rental verifier."""

    @abstractmethod
    async def get_transaction_receipt(self, tx_hash: str) -> TxReceipt | None:
        """Return the receipt, or None if the transaction is unknown or pending."""

    @abstractmethod
    async def get_transaction(self, tx_hash: str) -> TxInfo | None:
        """Return the transaction, or None if it is unknown."""

    @abstractmethod
    async def get_block_number(self) -> int:
        """Return the latest block number."""

    async def close(self) -> None:
        """Release any underlying resources."""


class Web3ChainClient(ChainClient):
    """Chain client talking JSON-RPC through web3's async provider."""

    def __init__(self, rpc_url: str, timeout_seconds: float = 20.0) -> None:
        self.rpc_url = rpc_url
        self.timeout_seconds = timeout_seconds
        self._w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))

    async def _call(self, label: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except TransactionNotFound:
            raise
        except TimeoutError as exc:
            raise ChainUnavailable(f"{label} timed out after {self.timeout_seconds}s") from exc
        except Exception as exc:
            raise ChainUnavailable(f"{label} failed: {exc}") from exc

    async def get_transaction_receipt(self, tx_hash: str) -> TxReceipt | None:
        normalized = normalize_tx_hash(tx_hash)
        try:
            payload = await self._call(
                "eth_getTransactionReceipt",
                self._w3.eth.get_transaction_receipt(normalized),
            )
        except TransactionNotFound:
            return None
        if payload is None:
            return None
        return receipt_from_rpc(payload)

    async def get_transaction(self, tx_hash: str) -> TxInfo | None:
        normalized = normalize_tx_hash(tx_hash)
        try:
            payload = await self._call(
                "eth_getTransactionByHash",
                self._w3.eth.get_transaction(normalized),
            )
        except TransactionNotFound:
            return None
        return TxInfo(
            tx_hash=normalized,
            sender=_address(payload.get("from")),
            to=_address(payload.get("to")),
            value=int(payload.get("value") or 0),
            block_number=payload.get("blockNumber"),
        )

    async def get_block_number(self) -> int:
        return int(await self._call("eth_blockNumber", self._w3.eth.get_block_number()))

    async def close(self) -> None:
        provider = self._w3.provider
        disconnect = getattr(provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()


class InMemoryChainClient(ChainClient):
    """Chain fake holding receipts registered by tests or local tooling."""

    def __init__(self) -> None:
        self._receipts: dict[str, TxReceipt] = {}
        self._transactions: dict[str, TxInfo] = {}
        self._block_number = 0

    def add_receipt(self, receipt: TxReceipt, value: int = 0) -> TxReceipt:
        tx_hash = normalize_tx_hash(receipt.tx_hash)
        self._block_number += 1
        self._receipts[tx_hash] = receipt
        self._transactions[tx_hash] = TxInfo(
            tx_hash=tx_hash,
            sender=receipt.sender,
            to=receipt.to,
            value=value,
            block_number=receipt.block_number or self._block_number,
        )
        return receipt

    async def get_transaction_receipt(self, tx_hash: str) -> TxReceipt | None:
        return self._receipts.get(normalize_tx_hash(tx_hash))

    async def get_transaction(self, tx_hash: str) -> TxInfo | None:
        return self._transactions.get(normalize_tx_hash(tx_hash))

    async def get_block_number(self) -> int:
        return self._block_number


def build_chain_client(config: Settings) -> ChainClient:
    """Construct the backend selected by ``CHAIN_BACKEND``."""
    if config.chain_backend == "web3":
        logger.info("Using chain RPC at %s", config.chain_rpc_url)
        return Web3ChainClient(config.chain_rpc_url, config.chain_rpc_timeout_seconds)
    return InMemoryChainClient()
