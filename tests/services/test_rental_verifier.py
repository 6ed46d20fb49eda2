"""Tests for turning rental payment transactions into rentals."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from rentstream.core.errors import (
    CatalogItemNotFound,
    CatalogMismatch,
    ChainUnavailable,
    DuplicateTransaction,
    EventMissing,
    InvalidRequest,
    PriceTooLow,
    RenterMismatch,
    StoreUnavailable,
    TxFailed,
    TxNotFound,
    WrongContract,
)
from rentstream.db.time import as_utc
from rentstream.models import Profile, Rental
from rentstream.services.chain import LogEntry, TxReceipt
from rentstream.services.rental_verifier import KeyedLocks, RentalVerifier
from tests.conftest import (
    CONTRACT_ADDRESS,
    PRICE_WEI,
    end_time_after,
    new_tx_hash,
    record_purchase,
    wallet_of,
)


@pytest.fixture()
def verifier(db_session, chain, entity_store, clock) -> RentalVerifier:
    return RentalVerifier(
        db_session,
        chain,
        entity_store,
        contract_address=CONTRACT_ADDRESS,
        clock=clock,
        locks=KeyedLocks(),
    )


def _purchase(chain, clock, renter, item, **overrides) -> str:
    params = {
        "renter": renter.address,
        "catalog_item_id": item.id,
        "paid_amount": PRICE_WEI,
        "rental_end_time": end_time_after(clock, days=7),
    }
    params.update(overrides)
    return record_purchase(chain, **params)


class TestSuccessfulVerification:

    @pytest.mark.asyncio
    async def test_creates_active_rental_from_receipt(
        self, verifier, chain, clock, db_session, renter, catalog_item, entity_store
    ):
        end_time = end_time_after(clock, days=7)
        tx_hash = _purchase(chain, clock, renter, catalog_item, rental_end_time=end_time)

        rental = await verifier.verify_and_create_rental(tx_hash, renter.address, catalog_item.id)

        assert rental.wallet_address == wallet_of(renter)
        assert rental.catalog_item_id == catalog_item.id
        assert rental.tx_hash == tx_hash
        assert rental.is_active is True
        assert rental.rental_duration_days == 7
        assert rental.paid_wei == str(PRICE_WEI)
        assert rental.chain_rental_id.startswith("0x")
        assert as_utc(rental.expires_at) == datetime.fromtimestamp(end_time, tz=UTC)
        assert rental.cloned_entry_point_id is not None
        assert rental.cloned_entry_point_id != catalog_item.entry_point_id
        cloned = await entity_store.get_text(rental.cloned_entry_point_id)
        assert cloned == await entity_store.get_text(catalog_item.entry_point_id)
        assert db_session.get(Profile, wallet_of(renter)) is not None

    @pytest.mark.asyncio
    async def test_partial_day_rounds_up(self, verifier, chain, clock, renter, catalog_item):
        tx_hash = _purchase(
            chain, clock, renter, catalog_item, rental_end_time=end_time_after(clock, hours=25)
        )

        rental = await verifier.verify_and_create_rental(tx_hash, renter.address)

        assert rental.rental_duration_days == 2

    @pytest.mark.asyncio
    async def test_item_resolved_from_event_topic(self, verifier, chain, clock, renter, catalog_item):
        tx_hash = _purchase(chain, clock, renter, catalog_item)

        rental = await verifier.verify_and_create_rental(tx_hash, renter.address)

        assert rental.catalog_item_id == catalog_item.id

    @pytest.mark.asyncio
    async def test_same_tx_and_wallet_is_idempotent(
        self, verifier, chain, clock, db_session, renter, catalog_item
    ):
        tx_hash = _purchase(chain, clock, renter, catalog_item)

        first = await verifier.verify_and_create_rental(tx_hash, renter.address)
        second = await verifier.verify_and_create_rental(
            tx_hash.upper().replace("0X", "0x"), renter.address
        )

        assert first.id == second.id
        assert db_session.query(Rental).count() == 1

    @pytest.mark.asyncio
    async def test_overpayment_is_accepted(self, verifier, chain, clock, renter, catalog_item):
        tx_hash = _purchase(chain, clock, renter, catalog_item, paid_amount=PRICE_WEI * 3)

        rental = await verifier.verify_and_create_rental(tx_hash, renter.address)

        assert rental.paid_amount == PRICE_WEI * 3

    @pytest.mark.asyncio
    async def test_clone_failure_is_tolerated(
        self, verifier, chain, clock, renter, catalog_item, entity_store, mocker
    ):
        mocker.patch.object(entity_store, "clone", side_effect=StoreUnavailable("down"))
        tx_hash = _purchase(chain, clock, renter, catalog_item)

        rental = await verifier.verify_and_create_rental(tx_hash, renter.address)

        assert rental.cloned_entry_point_id is None
        assert rental.is_active

    @pytest.mark.asyncio
    async def test_end_time_in_past_skips_clone(
        self, verifier, chain, clock, renter, catalog_item, entity_store, mocker
    ):
        clone = mocker.spy(entity_store, "clone")
        tx_hash = _purchase(
            chain, clock, renter, catalog_item, rental_end_time=end_time_after(clock, seconds=-10)
        )

        rental = await verifier.verify_and_create_rental(tx_hash, renter.address)

        assert clone.call_count == 0
        assert rental.cloned_entry_point_id is None
        assert rental.rental_duration_days == 0


class TestRejectedTransactions:

    @pytest.mark.asyncio
    async def test_malformed_hash(self, verifier, renter):
        with pytest.raises(InvalidRequest):
            await verifier.verify_and_create_rental("0x1234", renter.address)

    @pytest.mark.asyncio
    async def test_unknown_transaction(self, verifier, renter):
        with pytest.raises(TxNotFound):
            await verifier.verify_and_create_rental(new_tx_hash(), renter.address)

    @pytest.mark.asyncio
    async def test_reverted_transaction(self, verifier, chain, clock, renter, catalog_item):
        tx_hash = _purchase(chain, clock, renter, catalog_item, status=0)

        with pytest.raises(TxFailed):
            await verifier.verify_and_create_rental(tx_hash, renter.address)

    @pytest.mark.asyncio
    async def test_event_from_other_contract(self, verifier, chain, clock, renter, catalog_item):
        impostor = "0x" + "11" * 20
        tx_hash = _purchase(chain, clock, renter, catalog_item, contract_address=impostor)

        with pytest.raises(WrongContract):
            await verifier.verify_and_create_rental(tx_hash, renter.address)

    @pytest.mark.asyncio
    async def test_contract_call_without_event(self, verifier, chain, renter):
        tx_hash = new_tx_hash()
        chain.add_receipt(
            TxReceipt(
                tx_hash=tx_hash,
                status=1,
                to=CONTRACT_ADDRESS,
                sender=wallet_of(renter),
                block_number=1,
                logs=[LogEntry(address=CONTRACT_ADDRESS, topics=["0x" + "00" * 32], data="0x")],
            )
        )

        with pytest.raises(EventMissing):
            await verifier.verify_and_create_rental(tx_hash, renter.address)

    @pytest.mark.asyncio
    async def test_forged_event_from_other_emitter_is_ignored(
        self, verifier, chain, clock, renter, catalog_item
    ):
        # Sent to the contract, but the RentalPurchased log comes from elsewhere.
        tx_hash = _purchase(
            chain,
            clock,
            renter,
            catalog_item,
            contract_address="0x" + "22" * 20,
            to=CONTRACT_ADDRESS,
        )

        with pytest.raises(EventMissing):
            await verifier.verify_and_create_rental(tx_hash, renter.address)

    @pytest.mark.asyncio
    async def test_renter_mismatch(self, verifier, chain, clock, db_session, renter, stranger, catalog_item):
        tx_hash = _purchase(chain, clock, renter, catalog_item)

        with pytest.raises(RenterMismatch):
            await verifier.verify_and_create_rental(tx_hash, stranger.address)
        assert db_session.query(Rental).count() == 0

    @pytest.mark.asyncio
    async def test_catalog_mismatch(self, verifier, chain, clock, renter, catalog_item):
        tx_hash = _purchase(chain, clock, renter, catalog_item)

        with pytest.raises(CatalogMismatch):
            await verifier.verify_and_create_rental(tx_hash, renter.address, "some-other-item")

    @pytest.mark.asyncio
    async def test_unknown_catalog_item(self, verifier, chain, clock, renter):
        class Ghost:
            id = "00000000-0000-0000-0000-000000000000"

        tx_hash = _purchase(chain, clock, renter, Ghost)

        with pytest.raises(CatalogItemNotFound):
            await verifier.verify_and_create_rental(tx_hash, renter.address)

    @pytest.mark.asyncio
    async def test_price_floor(self, verifier, chain, clock, db_session, renter, catalog_item):
        tx_hash = _purchase(chain, clock, renter, catalog_item, paid_amount=PRICE_WEI - 1)

        with pytest.raises(PriceTooLow):
            await verifier.verify_and_create_rental(tx_hash, renter.address, catalog_item.id)
        assert db_session.query(Rental).count() == 0

    @pytest.mark.asyncio
    async def test_end_time_beyond_datetime_range(
        self, verifier, chain, clock, db_session, renter, catalog_item
    ):
        tx_hash = _purchase(chain, clock, renter, catalog_item, rental_end_time=2**64)

        with pytest.raises(EventMissing):
            await verifier.verify_and_create_rental(tx_hash, renter.address)
        assert db_session.query(Rental).count() == 0

    @pytest.mark.asyncio
    async def test_same_tx_claimed_by_other_wallet(
        self, verifier, chain, clock, renter, stranger, catalog_item
    ):
        tx_hash = _purchase(chain, clock, renter, catalog_item)
        await verifier.verify_and_create_rental(tx_hash, renter.address)

        with pytest.raises(DuplicateTransaction):
            await verifier.verify_and_create_rental(tx_hash, stranger.address)

    @pytest.mark.asyncio
    async def test_chain_outage_writes_nothing(
        self, verifier, chain, db_session, renter, mocker
    ):
        mocker.patch.object(
            chain, "get_transaction_receipt", side_effect=ChainUnavailable("timeout")
        )

        with pytest.raises(ChainUnavailable):
            await verifier.verify_and_create_rental(new_tx_hash(), renter.address)
        assert db_session.query(Rental).count() == 0


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_calls_create_one_rental(
        self, verifier, chain, clock, db_session, renter, catalog_item, entity_store, mocker
    ):
        original_clone = entity_store.clone

        async def slow_clone(entity_id: str, seconds: int):
            await asyncio.sleep(0.01)
            return await original_clone(entity_id, seconds)

        mocker.patch.object(entity_store, "clone", side_effect=slow_clone)
        tx_hash = _purchase(chain, clock, renter, catalog_item)

        results = await asyncio.gather(
            *(verifier.verify_and_create_rental(tx_hash, renter.address) for _ in range(5))
        )

        assert len({rental.id for rental in results}) == 1
        assert db_session.query(Rental).count() == 1

    @pytest.mark.asyncio
    async def test_losing_insert_returns_winning_rental(
        self, session_factory, chain, clock, db_session, renter, catalog_item, entity_store, mocker
    ):
        # Separate sessions and lock registries stand in for two worker processes,
        # so only the tx_hash unique constraint can settle the race.
        original_clone = entity_store.clone

        async def slow_clone(entity_id: str, seconds: int):
            await asyncio.sleep(0.01)
            return await original_clone(entity_id, seconds)

        mocker.patch.object(entity_store, "clone", side_effect=slow_clone)
        tx_hash = _purchase(chain, clock, renter, catalog_item)
        sessions = [session_factory(), session_factory()]
        rollbacks = [mocker.spy(session, "rollback") for session in sessions]
        verifiers = [
            RentalVerifier(
                session,
                chain,
                entity_store,
                contract_address=CONTRACT_ADDRESS,
                clock=clock,
                locks=KeyedLocks(),
            )
            for session in sessions
        ]

        try:
            results = await asyncio.gather(
                *(
                    verifier.verify_and_create_rental(tx_hash, renter.address)
                    for verifier in verifiers
                )
            )
            rental_ids = [rental.id for rental in results]
        finally:
            for session in sessions:
                session.close()

        assert rental_ids[0] == rental_ids[1]
        assert sum(spy.call_count for spy in rollbacks) == 1
        assert db_session.query(Rental).count() == 1
