"""Wallet address and message-signature utilities built on eth-account."""
from __future__ import annotations

import re

from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

_TX_HASH_PATTERN = re.compile(r"^0x[0-9a-f]{64}$")


def normalize_wallet(address: str) -> str:
    """Return the lower-cased form of an EVM address.

    Raises:
        ValueError: If ``address`` is not a 20-byte hex address.
    """
    cleaned = address.strip()
    if not Web3.is_address(cleaned):
        raise ValueError(f"Invalid wallet address: {address!r}")
    return cleaned.lower()


def addresses_match(left: str | None, right: str | None) -> bool:
    """Compare two addresses case-insensitively."""
    if not left or not right:
        return False
    return left.strip().lower() == right.strip().lower()


def normalize_tx_hash(tx_hash: str) -> str:
    """Return a lower-cased, ``0x``-prefixed 32-byte transaction hash."""
    cleaned = tx_hash.strip().lower()
    if not cleaned.startswith("0x"):
        cleaned = f"0x{cleaned}"
    if not _TX_HASH_PATTERN.match(cleaned):
        raise ValueError(f"Invalid transaction hash: {tx_hash!r}")
    return cleaned


def recover_signer(message: str, signature: str) -> str:
    """Recover the address that produced an EIP-191 personal-message signature.

    Args:
        message: Exact text the wallet was asked to sign.
        signature: Hex-encoded 65-byte signature.

    Returns:
        Checksummed address of the signer.

    Raises:
        ValueError: If the signature is malformed or recovery fails.
    """
    try:
        return Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as err:
        raise ValueError(f"Unable to recover signer: {err}") from err


def verify_wallet_signature(wallet: str, message: str, signature: str) -> bool:
    """Return True if ``signature`` over ``message`` was produced by ``wallet``."""
    try:
        recovered = recover_signer(message, signature)
    except ValueError:
        return False
    return addresses_match(recovered, wallet)
