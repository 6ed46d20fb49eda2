"""Linked-list segment graph on top of the entity store.

Each segment is stored twice: once as raw bytes (the data entity) and once as
a small JSON metadata record pointing at its data entity and at the metadata
record of the following segment. A record's id is only known after it has
been written, so metadata is written last to first and the head (sequence 0)
becomes the entry point of the item.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from rentstream.core.errors import ChunkNotFound, InvalidRequest
from rentstream.services.entity_store import EntityStore, StoredEntity

logger = logging.getLogger(__name__)

CHUNK_CONTENT_TYPE = "application/octet-stream"
METADATA_CONTENT_TYPE = "application/json"

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class SegmentPayload:
    """A segment ready for upload."""

    sequence: int
    data: bytes
    duration_seconds: float = 0.0


@dataclass(frozen=True)
class SegmentRecord:
    """Identifiers produced for one uploaded segment."""

    sequence: int
    data_entity_id: str
    data_tx_hash: str | None
    metadata_entity_id: str
    metadata_tx_hash: str | None
    next_metadata_id: str | None
    size_bytes: int
    duration_seconds: float


@dataclass(frozen=True)
class GraphResult:
    entry_metadata_id: str
    records: list[SegmentRecord]


def metadata_record(data_entity_id: str, next_metadata_id: str | None) -> str:
    """Serialise the metadata record linking a segment to its successor."""
    return json.dumps(
        {
            "entityId": data_entity_id,
            "dataEntityId": data_entity_id,
            "nextBlockId": next_metadata_id,
        }
    )


class SegmentGraphBuilder:
    """Uploads segments and links them into a traversable chain."""

    def __init__(self, store: EntityStore, concurrency: int = 4, expiry_seconds: int = 0) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.store = store
        self.concurrency = concurrency
        self.expiry_seconds = expiry_seconds

    @staticmethod
    def _validate(segments: Sequence[SegmentPayload]) -> list[SegmentPayload]:
        if not segments:
            raise InvalidRequest("At least one segment is required")
        ordered = sorted(segments, key=lambda segment: segment.sequence)
        sequences = [segment.sequence for segment in ordered]
        if sequences != list(range(len(ordered))):
            raise InvalidRequest("Segment sequences must be contiguous from 0")
        return ordered

    async def build_graph(
        self,
        segments: Sequence[SegmentPayload],
        progress: ProgressCallback | None = None,
    ) -> GraphResult:
        """Upload every segment and link the metadata records.

        Any write failure propagates and aborts the build; entities already
        written are left to expire.

        Args:
            segments: Segments with sequences exactly ``0..N-1``.
            progress: Optional ``progress(done, total)`` called after each write.

        Returns:
            The metadata id of sequence 0 and a record per segment.
        """
        ordered = self._validate(segments)
        total = len(ordered) * 2
        done = 0

        def report() -> None:
            nonlocal done
            done += 1
            if progress is not None:
                progress(done, total)

        semaphore = asyncio.Semaphore(self.concurrency)

        async def upload(segment: SegmentPayload) -> tuple[int, StoredEntity]:
            async with semaphore:
                stored = await self.store.put(
                    segment.data,
                    CHUNK_CONTENT_TYPE,
                    self.expiry_seconds,
                    {"type": "hls-chunk", "size": len(segment.data)},
                )
            report()
            return segment.sequence, stored

        # The first failed write cancels the uploads still in flight.
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(upload(segment)) for segment in ordered]
        except ExceptionGroup as failed:
            raise failed.exceptions[0]
        uploaded = [task.result() for task in tasks]
        data_entities = [stored for _, stored in sorted(uploaded, key=lambda item: item[0])]

        records: list[SegmentRecord] = []
        next_metadata_id: str | None = None
        for segment, data in zip(reversed(ordered), reversed(data_entities), strict=True):
            metadata = await self.store.put_text(
                metadata_record(data.entity_id, next_metadata_id),
                METADATA_CONTENT_TYPE,
                self.expiry_seconds,
                {
                    "type": "chunk-metadata",
                    "dataEntityId": data.entity_id,
                    "nextBlockId": next_metadata_id or "",
                },
            )
            report()
            records.append(
                SegmentRecord(
                    sequence=segment.sequence,
                    data_entity_id=data.entity_id,
                    data_tx_hash=data.tx_id,
                    metadata_entity_id=metadata.entity_id,
                    metadata_tx_hash=metadata.tx_id,
                    next_metadata_id=next_metadata_id,
                    size_bytes=len(segment.data),
                    duration_seconds=segment.duration_seconds,
                )
            )
            next_metadata_id = metadata.entity_id

        records.reverse()
        entry_point = records[0].metadata_entity_id
        logger.info("Built segment graph of %d segments, entry point %s", len(records), entry_point)
        return GraphResult(entry_metadata_id=entry_point, records=records)


@dataclass(frozen=True)
class ChainLink:
    metadata_id: str
    sequence: int
    data_entity_id: str
    next_metadata_id: str | None


class SegmentChain:
    """Traversal over segment metadata records indexed by metadata id."""

    def __init__(self, links: Iterable[ChainLink]) -> None:
        self._links = {link.metadata_id: link for link in links}

    @classmethod
    def from_segments(cls, segments: Iterable[object]) -> SegmentChain:
        """Build a chain from rows exposing the ``Segment`` column names."""
        return cls(
            ChainLink(
                metadata_id=segment.metadata_entity_id,
                sequence=segment.sequence,
                data_entity_id=segment.data_entity_id,
                next_metadata_id=segment.next_metadata_id,
            )
            for segment in segments
        )

    def __len__(self) -> int:
        return len(self._links)

    def resolve(self, head_id: str, target_sequence: int) -> ChainLink:
        """Follow ``target_sequence`` next-pointers from ``head_id``.

        Raises:
            ChunkNotFound: If the head is unknown, the chain breaks or loops,
                or the record reached does not carry ``target_sequence``.
        """
        if target_sequence < 0:
            raise ChunkNotFound(sequence=target_sequence)

        link = self._links.get(head_id)
        if link is None:
            raise ChunkNotFound("Chain head not found", head_id=head_id)

        visited = {link.metadata_id}
        for _ in range(target_sequence):
            if link.next_metadata_id is None:
                raise ChunkNotFound(sequence=target_sequence)
            next_link = self._links.get(link.next_metadata_id)
            if next_link is None:
                raise ChunkNotFound("Segment chain is broken", sequence=target_sequence)
            if next_link.metadata_id in visited:
                raise ChunkNotFound("Segment chain contains a cycle", sequence=target_sequence)
            visited.add(next_link.metadata_id)
            link = next_link

        if link.sequence != target_sequence:
            raise ChunkNotFound("Segment chain is out of order", sequence=target_sequence)
        return link

    def walk(self, head_id: str) -> list[ChainLink]:
        """Return every link reachable from ``head_id`` in chain order."""
        if head_id not in self._links:
            raise ChunkNotFound("Chain head not found", head_id=head_id)

        links: list[ChainLink] = []
        seen: set[str] = set()
        current: str | None = head_id
        while current is not None:
            link = self._links.get(current)
            if link is None:
                raise ChunkNotFound("Segment chain is broken", sequence=len(links))
            if current in seen:
                raise ChunkNotFound("Segment chain contains a cycle", sequence=len(links))
            if link.sequence != len(links):
                raise ChunkNotFound("Segment chain is out of order", sequence=len(links))
            seen.add(current)
            links.append(link)
            current = link.next_metadata_id
        return links
