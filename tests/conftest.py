# tests/conftest.py
from __future__ import annotations

import asyncio
import secrets
from collections.abc import Generator, Iterator
from datetime import UTC, datetime, timedelta

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from web3 import Web3

from rentstream.api.v1 import dependencies as api_dependencies
from rentstream.api.v1.endpoints import uploads as upload_endpoints
from rentstream.api.v1.endpoints.auth import create_access_token
from rentstream.core.clock import Clock
from rentstream.core.settings import settings
from rentstream.db.session import Base
from rentstream.db.session import get_db as app_get_session
from rentstream.main import app as fastapi_app
from rentstream.models import CatalogItem, Profile, Segment
from rentstream.repositories.catalog_repo import CatalogRepository
from rentstream.repositories.rental_repo import ProfileRepository
from rentstream.services.chain import InMemoryChainClient, TxReceipt
from rentstream.services.entity_store import InMemoryEntityStore
from rentstream.services.rental_events import encode_rental_purchased_log
from rentstream.services.segment_graph import SegmentGraphBuilder, SegmentPayload
from rentstream.services.segmenter import FixedSizeSegmenter
from rentstream.services.upload_pipeline import UploadPipeline

TEST_DB_URL = "sqlite://"
START_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
PRICE_WEI = Web3.to_wei(1, "milliether")
CONTRACT_ADDRESS = settings.rental_contract_address.lower()


class FixedClock(Clock):
    """Clock that only moves when a test advances it."""

    def __init__(self, start: datetime = START_TIME) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> datetime:
        self.current += timedelta(**delta)
        return self.current


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(engine: Engine, session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def entity_store(clock: FixedClock) -> InMemoryEntityStore:
    return InMemoryEntityStore(clock=clock)


@pytest.fixture()
def chain() -> InMemoryChainClient:
    return InMemoryChainClient()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    clock: FixedClock,
    entity_store: InMemoryEntityStore,
    chain: InMemoryChainClient,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    def _get_pipeline_override() -> UploadPipeline:
        return UploadPipeline(
            entity_store,
            FixedSizeSegmenter(max_bytes=4, default_duration_seconds=2.0),
            concurrency=2,
            clock=clock,
            db_session=db_session,
        )

    overrides = {
        app_get_session: _get_session_override,
        api_dependencies.get_clock: lambda: clock,
        api_dependencies.get_entity_store: lambda: entity_store,
        api_dependencies.get_chain_client: lambda: chain,
        upload_endpoints.get_upload_pipeline: _get_pipeline_override,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def renter() -> LocalAccount:
    return Account.create()


@pytest.fixture()
def stranger() -> LocalAccount:
    return Account.create()


def sign_text(account: LocalAccount, message: str) -> str:
    """Return a hex EIP-191 signature of ``message`` by ``account``."""
    signed = Account.sign_message(encode_defunct(text=message), private_key=account.key)
    return Web3.to_hex(signed.signature)


def wallet_of(account: LocalAccount) -> str:
    return account.address.lower()


def new_tx_hash() -> str:
    return f"0x{secrets.token_hex(32)}"


def auth_headers_for(db_session: Session, account: LocalAccount) -> dict[str, str]:
    profile = ProfileRepository(db_session).get_or_create(wallet_of(account))
    db_session.commit()
    return {"Authorization": f"Bearer {create_access_token(profile.wallet_address)}"}


@pytest.fixture()
def renter_headers(db_session: Session, renter: LocalAccount) -> dict[str, str]:
    return auth_headers_for(db_session, renter)


@pytest.fixture()
def stranger_headers(db_session: Session, stranger: LocalAccount) -> dict[str, str]:
    return auth_headers_for(db_session, stranger)


def publish_item(
    db_session: Session,
    store: InMemoryEntityStore,
    chunks: list[bytes],
    *,
    price_wei: int = PRICE_WEI,
    title: str = "Night Drive",
) -> CatalogItem:
    """Write ``chunks`` as a segment graph and insert a rentable catalog item."""
    segments = [
        SegmentPayload(sequence=index, data=chunk, duration_seconds=4.0)
        for index, chunk in enumerate(chunks)
    ]
    # Private loop; the current event loop is left untouched.
    loop = asyncio.new_event_loop()
    try:
        graph = loop.run_until_complete(
            SegmentGraphBuilder(store, concurrency=2).build_graph(segments)
        )
    finally:
        loop.close()

    repo = CatalogRepository(db_session)
    item = repo.create(
        media_type="audio",
        title=title,
        artist="Test Artist",
        price_wei=price_wei,
        created_by="0x" + "ab" * 20,
        category="electronic",
    )
    repo.add_segments(
        item.id,
        [
            Segment(
                sequence=record.sequence,
                data_entity_id=record.data_entity_id,
                data_tx_hash=record.data_tx_hash,
                metadata_entity_id=record.metadata_entity_id,
                next_metadata_id=record.next_metadata_id,
                size_bytes=record.size_bytes,
                duration_seconds=record.duration_seconds,
            )
            for record in graph.records
        ],
    )
    item.entry_point_id = graph.entry_metadata_id
    item.entry_point_tx_hash = graph.records[0].metadata_tx_hash
    db_session.commit()
    return item


@pytest.fixture()
def chunks() -> list[bytes]:
    return [f"chunk-{index}".encode() for index in range(5)]


@pytest.fixture()
def catalog_item(
    db_session: Session, entity_store: InMemoryEntityStore, chunks: list[bytes]
) -> CatalogItem:
    return publish_item(db_session, entity_store, chunks)


def record_purchase(
    chain: InMemoryChainClient,
    *,
    renter: str,
    catalog_item_id: str,
    paid_amount: int,
    rental_end_time: int,
    tx_hash: str | None = None,
    status: int = 1,
    contract_address: str = CONTRACT_ADDRESS,
    to: str | None = None,
) -> str:
    """Register a receipt carrying one ``RentalPurchased`` event and return its hash."""
    tx_hash = tx_hash or new_tx_hash()
    log = encode_rental_purchased_log(
        contract_address=contract_address,
        rental_id=f"0x{secrets.token_hex(32)}",
        catalog_item_id=catalog_item_id,
        renter=renter,
        paid_amount=paid_amount,
        rental_end_time=rental_end_time,
    )
    chain.add_receipt(
        TxReceipt(
            tx_hash=tx_hash,
            status=status,
            to=(to or contract_address).lower(),
            sender=renter.lower(),
            block_number=None,
            logs=[log],
        ),
        value=paid_amount,
    )
    return tx_hash


def end_time_after(clock: FixedClock, **delta: float) -> int:
    return int((clock.now() + timedelta(**delta)).timestamp())


@pytest.fixture()
def renter_profile(db_session: Session, renter: LocalAccount) -> Profile:
    profile = ProfileRepository(db_session).get_or_create(wallet_of(renter))
    db_session.commit()
    return profile
