"""Client for the blockchain-backed, expiring entity store.

The store is append-only: every write produces a new opaque entity id and a
transaction id. Entities expire after a configurable number of seconds.

This module provides:

- ``EntityStore``: the interface every backend implements
- ``HttpEntityStore``: httpx client for the entity gateway
- ``InMemoryEntityStore``: process-local fake honouring expiry
"""

from __future__ import annotations

import asyncio
import base64
import logging
import secrets
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, NamedTuple

import httpx

from rentstream.core.clock import Clock, system_clock
from rentstream.core.errors import EntityNotFound, InvalidRequest, StoreUnavailable
from rentstream.core.settings import Settings

logger = logging.getLogger(__name__)

ONE_YEAR_SECONDS = 31_536_000

HTTP_OK = 200
HTTP_CREATED = 201
HTTP_NOT_FOUND = 404
HTTP_INTERNAL_SERVER_ERROR = 500


class StoredEntity(NamedTuple):
    """Identifiers returned for a successful write."""

    entity_id: str
    tx_id: str | None


@dataclass(frozen=True)
class EntityRecord:
    """Payload and annotations of a stored entity."""

    payload: bytes
    content_type: str
    attributes: dict[str, str] = field(default_factory=dict)


class EntityStore(ABC):
    """Interface to the remote entity store.

    An ``expiry_seconds`` of zero selects the store default (one year); it
    never means "expire immediately". Negative values are rejected.
    """

    def __init__(self, default_expiry_seconds: int = ONE_YEAR_SECONDS) -> None:
        self.default_expiry_seconds = default_expiry_seconds

    def resolve_expiry(self, expiry_seconds: int) -> int:
        if expiry_seconds < 0:
            raise InvalidRequest(
                "Entity expiry must not be negative", expiry_seconds=expiry_seconds
            )
        if expiry_seconds == 0:
            return self.default_expiry_seconds
        return expiry_seconds

    @abstractmethod
    async def put(
        self,
        data: bytes,
        content_kind: str,
        expiry_seconds: int = 0,
        attributes: Mapping[str, Any] | None = None,
    ) -> StoredEntity:
        """Write ``data`` as a new entity and return its identifiers."""

    @abstractmethod
    async def fetch(self, entity_id: str) -> EntityRecord:
        """Return the stored record, raising ``EntityNotFound`` if absent or expired."""

    async def put_text(
        self,
        text: str,
        content_kind: str,
        expiry_seconds: int = 0,
        attributes: Mapping[str, Any] | None = None,
    ) -> StoredEntity:
        return await self.put(text.encode("utf-8"), content_kind, expiry_seconds, attributes)

    async def get(self, entity_id: str) -> bytes:
        record = await self.fetch(entity_id)
        return record.payload

    async def get_text(self, entity_id: str) -> str:
        return (await self.get(entity_id)).decode("utf-8")

    async def clone(self, entity_id: str, new_expiry_seconds: int) -> StoredEntity:
        """Copy an entity under a new id with its own expiry.

        The copy carries the same payload, content type and attributes.
        """
        record = await self.fetch(entity_id)
        stored = await self.put(
            record.payload,
            record.content_type,
            new_expiry_seconds,
            record.attributes,
        )
        logger.info("Cloned entity %s to %s", entity_id, stored.entity_id)
        return stored

    async def close(self) -> None:
        """Release any underlying resources."""


def _stringify(attributes: Mapping[str, Any] | None) -> dict[str, str]:
    if not attributes:
        return {}
    return {str(key): "" if value is None else str(value) for key, value in attributes.items()}


@dataclass(frozen=True)
class EntityStoreConfig:
    """Connection settings for the entity gateway."""

    base_url: str
    api_key: str | None = None
    timeout_seconds: float = 15.0
    default_expiry_seconds: int = ONE_YEAR_SECONDS


class HttpEntityStore(EntityStore):
    """Entity store backed by the HTTP entity gateway."""

    def __init__(
        self,
        config: EntityStoreConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config.default_expiry_seconds)
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                headers = {}
                if self.config.api_key:
                    headers["Authorization"] = f"Bearer {self.config.api_key}"
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    headers=headers,
                    transport=self._transport,
                )
        return self._client

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = await self._ensure_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise StoreUnavailable(f"Entity store request failed: {exc}") from exc

        if response.status_code >= HTTP_INTERNAL_SERVER_ERROR:
            raise StoreUnavailable(f"Entity store responded with {response.status_code}")
        return response

    async def put(
        self,
        data: bytes,
        content_kind: str,
        expiry_seconds: int = 0,
        attributes: Mapping[str, Any] | None = None,
    ) -> StoredEntity:
        expires_in = self.resolve_expiry(expiry_seconds)
        body = {
            "payload": base64.b64encode(data).decode("ascii"),
            "contentType": content_kind,
            "attributes": [
                {"key": key, "value": value} for key, value in _stringify(attributes).items()
            ],
            "expiresIn": expires_in,
        }
        response = await self._request("POST", "/entities", json=body)
        if response.status_code not in (HTTP_OK, HTTP_CREATED):
            raise StoreUnavailable(
                f"Unexpected entity store response ({response.status_code}) for write",
            )

        payload = response.json()
        entity_key = payload.get("entityKey")
        if not entity_key:
            raise StoreUnavailable("Entity store response missing entityKey")

        logger.info(
            "Stored entity %s (%s, %d bytes, expires in %ds)",
            entity_key,
            content_kind,
            len(data),
            expires_in,
        )
        return StoredEntity(entity_id=entity_key, tx_id=payload.get("txHash"))

    async def fetch(self, entity_id: str) -> EntityRecord:
        response = await self._request("GET", f"/entities/{entity_id}")
        if response.status_code == HTTP_NOT_FOUND:
            raise EntityNotFound(entity_id=entity_id)
        if response.status_code != HTTP_OK:
            raise StoreUnavailable(
                f"Unexpected entity store response ({response.status_code}) for read",
            )

        payload = response.json()
        try:
            data = base64.b64decode(payload.get("payload") or "", validate=True)
        except ValueError as exc:
            raise StoreUnavailable(f"Entity {entity_id} has an undecodable payload") from exc

        attributes: dict[str, str] = {}
        for item in payload.get("attributes") or []:
            attributes[str(item.get("key"))] = str(item.get("value"))

        return EntityRecord(
            payload=data,
            content_type=payload.get("contentType") or "application/octet-stream",
            attributes=attributes,
        )

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class InMemoryEntityStore(EntityStore):
    """Process-local entity store used in development and tests."""

    def __init__(
        self,
        clock: Clock = system_clock,
        default_expiry_seconds: int = ONE_YEAR_SECONDS,
    ) -> None:
        super().__init__(default_expiry_seconds)
        self.clock = clock
        self._entities: dict[str, tuple[EntityRecord, datetime]] = {}

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def expires_at(self, entity_id: str) -> datetime:
        try:
            return self._entities[entity_id][1]
        except KeyError:
            raise EntityNotFound(entity_id=entity_id) from None

    async def put(
        self,
        data: bytes,
        content_kind: str,
        expiry_seconds: int = 0,
        attributes: Mapping[str, Any] | None = None,
    ) -> StoredEntity:
        expires_in = self.resolve_expiry(expiry_seconds)
        entity_id = f"0x{secrets.token_hex(32)}"
        record = EntityRecord(
            payload=bytes(data),
            content_type=content_kind,
            attributes=_stringify(attributes),
        )
        self._entities[entity_id] = (record, self.clock.now() + timedelta(seconds=expires_in))
        return StoredEntity(entity_id=entity_id, tx_id=f"0x{secrets.token_hex(32)}")

    async def fetch(self, entity_id: str) -> EntityRecord:
        entry = self._entities.get(entity_id)
        if entry is None:
            raise EntityNotFound(entity_id=entity_id)
        record, expires_at = entry
        if self.clock.now() >= expires_at:
            raise EntityNotFound("Entity has expired", entity_id=entity_id)
        return record


def build_entity_store(config: Settings, clock: Clock = system_clock) -> EntityStore:
    """Construct the backend selected by ``ENTITY_STORE_BACKEND``."""
    if config.entity_store_backend == "http":
        if not config.entity_store_url:
            raise ValueError("ENTITY_STORE_URL is required when ENTITY_STORE_BACKEND=http")
        return HttpEntityStore(
            EntityStoreConfig(
                base_url=config.entity_store_url,
                api_key=config.entity_store_api_key,
                timeout_seconds=config.entity_store_timeout_seconds,
                default_expiry_seconds=config.entity_store_default_expiry_seconds,
            )
        )
    return InMemoryEntityStore(
        clock=clock,
        default_expiry_seconds=config.entity_store_default_expiry_seconds,
    )
