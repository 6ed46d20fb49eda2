"""Upload job records polled by clients while the pipeline runs."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rentstream.db.session import Base
from rentstream.db.time import utcnow
from rentstream.models.catalog import new_id


class UploadStatus(str, Enum):
    PROCESSING = "processing"
    CHUNKING = "chunking"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


class UploadJob(Base):
    """Progress of one media upload through segmenting and graph construction."""

    __tablename__ = "upload_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    wallet_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UploadStatus.PROCESSING.value
    )
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    catalog_item_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("catalog_items.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
