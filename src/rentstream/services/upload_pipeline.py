"""Background pipeline turning an uploaded file into a rentable catalog item.

The pipeline segments the media, builds the segment graph in the entity
store, and only then inserts the catalog item together with its segments, so
an item is never visible with a partial graph. Progress is reported on the
``UploadJob`` row that clients poll.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from rentstream.core.clock import Clock, system_clock
from rentstream.db.session import SessionLocal
from rentstream.models.catalog import Segment
from rentstream.models.upload_job import UploadJob, UploadStatus
from rentstream.repositories.catalog_repo import CatalogRepository
from rentstream.services.entity_store import EntityStore
from rentstream.services.segment_graph import GraphResult, SegmentGraphBuilder
from rentstream.services.segmenter import Segmenter

logger = logging.getLogger(__name__)

PROGRESS_CHUNKING = 10
PROGRESS_UPLOAD_START = 40
PROGRESS_UPLOAD_END = 90
PROGRESS_DONE = 100


@dataclass(frozen=True)
class CatalogDraft:
    """Catalog fields collected from the upload form."""

    media_type: str
    title: str
    artist: str
    price_wei: int
    created_by: str
    description: str | None = None
    category: str | None = None
    cover_url: str | None = None
    duration_seconds: int = 0


class UploadPipeline:
    """Runs segmenting and graph construction for one upload job."""

    def __init__(
        self,
        store: EntityStore,
        segmenter: Segmenter,
        *,
        concurrency: int = 4,
        clock: Clock = system_clock,
        db_session: Session | None = None,
    ) -> None:
        self.store = store
        self.segmenter = segmenter
        self.concurrency = concurrency
        self.clock = clock
        self._db_session = db_session

    async def run(self, job_id: str, data: bytes, draft: CatalogDraft) -> None:
        """Process the job; failures are recorded on the job rather than raised."""
        if self._db_session is not None:
            await self._run_with_session(self._db_session, job_id, data, draft)
        else:
            with SessionLocal() as db:
                await self._run_with_session(db, job_id, data, draft)

    async def _run_with_session(
        self, db: Session, job_id: str, data: bytes, draft: CatalogDraft
    ) -> None:
        job = db.get(UploadJob, job_id)
        if job is None:
            logger.error("Upload job %s disappeared before processing", job_id)
            return

        try:
            await self._process(db, job, data, draft)
        except Exception as exc:
            logger.exception("Upload job %s failed", job_id)
            db.rollback()
            job = db.get(UploadJob, job_id)
            if job is not None:
                job.status = UploadStatus.FAILED.value
                job.error_message = str(exc) or exc.__class__.__name__
                job.completed_at = self.clock.now()
                db.commit()

    @staticmethod
    def _update(db: Session, job: UploadJob, status: UploadStatus, progress: int) -> None:
        job.status = status.value
        job.progress = progress
        db.commit()

    async def _process(self, db: Session, job: UploadJob, data: bytes, draft: CatalogDraft) -> None:
        self._update(db, job, UploadStatus.CHUNKING, PROGRESS_CHUNKING)
        segments = self.segmenter.split(data, draft.duration_seconds or None)
        logger.info("Upload job %s split into %d segments", job.id, len(segments))

        self._update(db, job, UploadStatus.UPLOADING, PROGRESS_UPLOAD_START)
        span = PROGRESS_UPLOAD_END - PROGRESS_UPLOAD_START

        def on_progress(done: int, total: int) -> None:
            progress = PROGRESS_UPLOAD_START + (span * done) // total
            if progress != job.progress:
                job.progress = progress
                db.commit()

        builder = SegmentGraphBuilder(self.store, concurrency=self.concurrency)
        graph = await builder.build_graph(segments, progress=on_progress)

        item_id = self._publish(db, draft, graph)
        job.catalog_item_id = item_id
        job.status = UploadStatus.COMPLETED.value
        job.progress = PROGRESS_DONE
        job.completed_at = self.clock.now()
        db.commit()
        logger.info("Upload job %s completed as catalog item %s", job.id, item_id)

    @staticmethod
    def _publish(db: Session, draft: CatalogDraft, graph: GraphResult) -> str:
        repo = CatalogRepository(db)
        item = repo.create(
            media_type=draft.media_type,
            title=draft.title,
            artist=draft.artist,
            price_wei=draft.price_wei,
            created_by=draft.created_by,
            description=draft.description,
            category=draft.category,
            cover_url=draft.cover_url,
            duration_seconds=draft.duration_seconds
            or round(sum(record.duration_seconds for record in graph.records)),
        )
        repo.add_segments(
            item.id,
            (
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
            ),
        )
        item.entry_point_id = graph.entry_metadata_id
        item.entry_point_tx_hash = graph.records[0].metadata_tx_hash
        return item.id
