"""Turns an on-chain rental payment into a rental grant.

The client supplies only a transaction hash and the wallet it claims to be.
Everything else (renter, item, amount, end time) is re-derived from the
transaction receipt, so a rental cannot be forged by the caller.
"""

from __future__ import annotations

import asyncio
import logging
import math
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rentstream.core.clock import Clock, system_clock
from rentstream.core.errors import (
    CatalogItemNotFound,
    CatalogMismatch,
    DuplicateTransaction,
    EntityNotFound,
    EventMissing,
    InvalidRequest,
    PriceTooLow,
    RenterMismatch,
    StoreUnavailable,
    TxFailed,
    TxNotFound,
    WrongContract,
)
from rentstream.core.security import addresses_match, normalize_tx_hash, normalize_wallet
from rentstream.models.catalog import CatalogItem
from rentstream.models.rental import Rental
from rentstream.repositories.catalog_repo import CatalogRepository
from rentstream.repositories.rental_repo import ProfileRepository, RentalRepository
from rentstream.services.chain import ChainClient, TxReceipt
from rentstream.services.entity_store import EntityStore
from rentstream.services.rental_events import (
    EventDecodeError,
    RentalPurchasedEvent,
    catalog_topic,
    decode_rental_purchased,
    find_rental_purchased,
)

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


class KeyedLocks:
    """Per-key ``asyncio.Lock`` registry; unused locks are garbage collected."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        async with lock:
            yield


# Shared by every verifier in the process so concurrent requests serialise.
_TX_LOCKS = KeyedLocks()


class RentalVerifier:
    """Verifies rental payments and persists the resulting rentals."""

    def __init__(
        self,
        session: Session,
        chain: ChainClient,
        store: EntityStore,
        *,
        contract_address: str,
        clock: Clock = system_clock,
        locks: KeyedLocks | None = None,
    ) -> None:
        self.session = session
        self.chain = chain
        self.store = store
        self.contract_address = contract_address.lower()
        self.clock = clock
        self.locks = locks or _TX_LOCKS
        self.rentals = RentalRepository(session)
        self.catalog = CatalogRepository(session)

    async def verify_and_create_rental(
        self,
        tx_hash: str,
        claimed_wallet: str,
        claimed_catalog_item_id: str | None = None,
    ) -> Rental:
        """Verify ``tx_hash`` and return the rental it funds.

        Calling again with the same transaction and wallet returns the same
        rental. No row is written unless every check passes.

        Raises:
            TxNotFound, TxFailed, WrongContract, EventMissing, RenterMismatch,
            CatalogMismatch, CatalogItemNotFound, PriceTooLow,
            DuplicateTransaction: Verification failed.
            ChainUnavailable, StoreUnavailable: A remote dependency failed.
        """
        try:
            normalized_tx = normalize_tx_hash(tx_hash)
            wallet = normalize_wallet(claimed_wallet)
        except ValueError as exc:
            raise InvalidRequest(str(exc)) from exc

        async with self.locks.hold(normalized_tx):
            existing = self.rentals.get_by_tx_hash(normalized_tx)
            if existing is not None:
                return self._existing_for(existing, wallet)

            receipt = await self.chain.get_transaction_receipt(normalized_tx)
            if receipt is None:
                raise TxNotFound(tx_hash=normalized_tx)
            if not receipt.succeeded:
                raise TxFailed(tx_hash=normalized_tx)

            event = self._extract_event(receipt)

            if not addresses_match(event.renter, wallet):
                raise RenterMismatch(renter=event.renter, wallet=wallet)

            if (
                claimed_catalog_item_id is not None
                and catalog_topic(claimed_catalog_item_id) != event.catalog_topic
            ):
                raise CatalogMismatch(catalog_item_id=claimed_catalog_item_id)

            item = self._lookup_item(claimed_catalog_item_id, event)
            if event.paid_amount < item.price:
                raise PriceTooLow(paid=str(event.paid_amount), required=item.price_wei)

            try:
                expires_at = datetime.fromtimestamp(event.rental_end_time, tz=UTC)
            except (OverflowError, ValueError, OSError) as exc:
                raise EventMissing(
                    "Rental end time is out of range", rental_end_time=str(event.rental_end_time)
                ) from exc
            duration_seconds = event.rental_end_time - self.clock.timestamp()
            rental_duration_days = max(0, math.ceil(duration_seconds / SECONDS_PER_DAY))

            cloned_entry_point = await self._clone_entry_point(item, duration_seconds)

            rental = Rental(
                wallet_address=wallet,
                catalog_item_id=item.id,
                tx_hash=normalized_tx,
                chain_rental_id=event.rental_id,
                expires_at=expires_at,
                rental_duration_days=rental_duration_days,
                paid_wei=str(event.paid_amount),
                is_active=True,
                cloned_entry_point_id=cloned_entry_point,
            )
            return self._persist(rental, wallet)

    @staticmethod
    def _existing_for(rental: Rental, wallet: str) -> Rental:
        if not addresses_match(rental.wallet_address, wallet):
            raise DuplicateTransaction(tx_hash=rental.tx_hash)
        return rental

    def _extract_event(self, receipt: TxReceipt) -> RentalPurchasedEvent:
        emitted_by_contract = any(
            log.address.lower() == self.contract_address for log in receipt.logs
        )
        if receipt.to != self.contract_address and not emitted_by_contract:
            raise WrongContract(to=receipt.to)

        log = find_rental_purchased(receipt, self.contract_address)
        if log is None:
            raise EventMissing(tx_hash=receipt.tx_hash)
        try:
            return decode_rental_purchased(log)
        except EventDecodeError as exc:
            raise EventMissing(str(exc)) from exc

    def _lookup_item(
        self, claimed_catalog_item_id: str | None, event: RentalPurchasedEvent
    ) -> CatalogItem:
        if claimed_catalog_item_id is not None:
            item = self.catalog.get_by_id(claimed_catalog_item_id)
        else:
            item = self.catalog.get_by_chain_key(event.catalog_topic)
        if item is None:
            raise CatalogItemNotFound(catalog_item_id=claimed_catalog_item_id)
        return item

    async def _clone_entry_point(self, item: CatalogItem, duration_seconds: int) -> str | None:
        # A zero expiry would mean the store's one-year default.
        if item.entry_point_id is None or duration_seconds <= 0:
            return None
        try:
            cloned = await self.store.clone(item.entry_point_id, duration_seconds)
        except (StoreUnavailable, EntityNotFound) as exc:
            logger.warning(
                "Failed to clone entry point %s for item %s: %s",
                item.entry_point_id,
                item.id,
                exc,
            )
            return None
        return cloned.entity_id

    def _persist(self, rental: Rental, wallet: str) -> Rental:
        try:
            ProfileRepository(self.session).get_or_create(wallet)
            self.rentals.add(rental)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            winner = self.rentals.get_by_tx_hash(rental.tx_hash)
            if winner is None:
                raise
            return self._existing_for(winner, wallet)

        self.session.refresh(rental)
        logger.info(
            "Created rental %s for wallet %s on item %s (tx %s, expires %s)",
            rental.id,
            wallet,
            rental.catalog_item_id,
            rental.tx_hash,
            rental.expires_at.isoformat(),
        )
        return rental
