"""Ownership and liveness checks in front of every playback request."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from urllib.parse import quote

from sqlalchemy.orm import Session

from rentstream.core.clock import Clock, system_clock
from rentstream.core.errors import (
    ChunkNotFound,
    EntityNotFound,
    Expired,
    Forbidden,
    Inactive,
    NoContent,
    NotFound,
)
from rentstream.core.security import addresses_match
from rentstream.db.time import as_utc
from rentstream.models.catalog import CatalogItem, Segment
from rentstream.models.rental import Rental
from rentstream.repositories.catalog_repo import CatalogRepository
from rentstream.repositories.rental_repo import RentalRepository
from rentstream.services.entity_store import EntityStore
from rentstream.services.segment_graph import SegmentChain

logger = logging.getLogger(__name__)

HLS_CONTENT_TYPE = "application/vnd.apple.mpegurl"
SEGMENT_CONTENT_TYPE = "video/MP2T"
DEFAULT_TARGET_DURATION = 10


@dataclass(frozen=True)
class RentalStatus:
    rental: Rental
    is_active: bool
    remaining_seconds: int


class RentalAccessGate:
    """Authorizes rental holders and serves manifests and segment bytes."""

    def __init__(
        self,
        session: Session,
        store: EntityStore,
        *,
        clock: Clock = system_clock,
    ) -> None:
        self.session = session
        self.store = store
        self.clock = clock
        self.rentals = RentalRepository(session)
        self.catalog = CatalogRepository(session)

    def authorize_access(self, rental_id: str, claimed_wallet: str) -> Rental:
        """Return the rental if ``claimed_wallet`` owns it and it is live.

        Ownership is checked before liveness. A rental observed past its
        expiry is flipped to inactive and the change is committed.

        Raises:
            NotFound, Forbidden, Expired, Inactive
        """
        rental = self.rentals.get_by_id(rental_id)
        if rental is None:
            raise NotFound("Rental not found", rental_id=rental_id)
        if not addresses_match(rental.wallet_address, claimed_wallet):
            raise Forbidden()

        if rental.has_expired(self.clock.now()):
            if rental.is_active:
                rental.is_active = False
                self.session.commit()
                logger.info("Rental %s expired; marked inactive", rental_id)
            raise Expired(rental_id=rental_id)
        if not rental.is_active:
            raise Inactive(rental_id=rental_id)
        return rental

    def rental_status(self, rental_id: str, claimed_wallet: str) -> RentalStatus:
        """Report whether the owner's rental is still playable.

        Ownership is enforced as for playback. Expired and inactive rentals
        are reported instead of raised.

        Raises:
            NotFound, Forbidden
        """
        try:
            rental = self.authorize_access(rental_id, claimed_wallet)
        except (Expired, Inactive):
            rental = self.rentals.get_by_id(rental_id)
            return RentalStatus(rental=rental, is_active=False, remaining_seconds=0)

        remaining = as_utc(rental.expires_at) - self.clock.now()
        return RentalStatus(
            rental=rental,
            is_active=True,
            remaining_seconds=max(0, int(remaining.total_seconds())),
        )

    def _playable(self, rental: Rental) -> tuple[CatalogItem, list[Segment]]:
        item = self.catalog.get_by_id(rental.catalog_item_id)
        if item is None or item.entry_point_id is None:
            raise NoContent(catalog_item_id=rental.catalog_item_id)
        segments = self.catalog.segments_for(item.id)
        if not segments:
            raise NoContent(catalog_item_id=item.id)
        return item, segments

    def generate_manifest(self, rental_id: str, claimed_wallet: str, base_url: str) -> str:
        """Build an HLS playlist whose segment URLs route back through this gate."""
        rental = self.authorize_access(rental_id, claimed_wallet)
        _, segments = self._playable(rental)

        base = base_url.rstrip("/")
        wallet = quote(claimed_wallet, safe="")
        longest = max(segment.duration_seconds for segment in segments)
        target_duration = max(1, math.ceil(longest)) if longest > 0 else DEFAULT_TARGET_DURATION

        lines = [
            "#EXTM3U",
            "#EXT-X-VERSION:3",
            f"#EXT-X-TARGETDURATION:{target_duration}",
            "#EXT-X-MEDIA-SEQUENCE:0",
            "#EXT-X-PLAYLIST-TYPE:VOD",
        ]
        for index, segment in enumerate(segments):
            duration = segment.duration_seconds or DEFAULT_TARGET_DURATION
            lines.append(f"#EXTINF:{duration:.3f},")
            lines.append(f"{base}/segment/{rental.id}/{index}?wallet={wallet}")
        lines.append("#EXT-X-ENDLIST")
        return "\n".join(lines) + "\n"

    async def fetch_segment(self, rental_id: str, claimed_wallet: str, sequence: int) -> bytes:
        """Resolve ``sequence`` by walking the item's chain and return its bytes.

        Raises:
            ChunkNotFound: The chain does not lead to ``sequence`` or the data
                entity is gone.
        """
        rental = self.authorize_access(rental_id, claimed_wallet)
        item, segments = self._playable(rental)

        chain = SegmentChain.from_segments(segments)
        link = chain.resolve(item.entry_point_id, sequence)
        try:
            return await self.store.get(link.data_entity_id)
        except EntityNotFound as exc:
            raise ChunkNotFound(sequence=sequence) from exc
