# src/rentstream/api/v1/endpoints/uploads.py
"""Media upload endpoints.

The upload request only records a job; segmenting and writing the segment
graph run as a background task after the response is sent.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Literal

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    HTTPException,
    UploadFile,
    status,
)
from web3 import Web3

from rentstream.api.v1.dependencies import (
    ClockDep,
    CurrentProfileDep,
    EntityStoreDep,
    SegmenterDep,
    SessionDep,
)
from rentstream.core.settings import settings
from rentstream.models import UploadJob, UploadStatus
from rentstream.schemas.upload import UploadAccepted, UploadJobResponse
from rentstream.services.upload_pipeline import CatalogDraft, UploadPipeline

router = APIRouter(prefix="/uploads", tags=["uploads"])


def get_upload_pipeline(
    store: EntityStoreDep, segmenter: SegmenterDep, clock: ClockDep
) -> UploadPipeline:
    return UploadPipeline(
        store,
        segmenter,
        concurrency=settings.segment_upload_concurrency,
        clock=clock,
    )


UploadPipelineDep = Annotated[UploadPipeline, Depends(get_upload_pipeline)]


@router.post("", response_model=UploadAccepted, status_code=status.HTTP_202_ACCEPTED)
async def create_upload(
    background_tasks: BackgroundTasks,
    current: CurrentProfileDep,
    db: SessionDep,
    pipeline: UploadPipelineDep,
    file: Annotated[UploadFile, File()],
    title: Annotated[str, Form(min_length=1)],
    artist: Annotated[str, Form(min_length=1)],
    media_type: Annotated[Literal["audio", "video"], Form()],
    description: Annotated[str | None, Form()] = None,
    category: Annotated[str | None, Form()] = None,
    price_eth: Annotated[Decimal | None, Form(gt=0)] = None,
    duration_seconds: Annotated[int, Form(ge=0)] = 0,
) -> UploadAccepted:
    """Accept a media file and start building its catalog item."""
    data = await file.read()
    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty",
        )

    price = price_eth if price_eth is not None else settings.default_price_eth
    job = UploadJob(
        wallet_address=current.wallet_address,
        file_name=file.filename or "upload",
        file_size=len(data),
        status=UploadStatus.PROCESSING.value,
        progress=0,
    )
    db.add(job)
    db.commit()
    db.refresh(job)

    draft = CatalogDraft(
        media_type=media_type,
        title=title,
        artist=artist,
        price_wei=int(Web3.to_wei(price, "ether")),
        created_by=current.wallet_address,
        description=description,
        category=category,
        duration_seconds=duration_seconds,
    )
    background_tasks.add_task(pipeline.run, job.id, data, draft)
    return UploadAccepted(job_id=job.id, status=job.status)


@router.get("/{job_id}", response_model=UploadJobResponse)
async def read_upload(job_id: str, current: CurrentProfileDep, db: SessionDep) -> UploadJobResponse:
    """Return the progress of one of the caller's upload jobs."""
    job = db.get(UploadJob, job_id)
    if job is None or job.wallet_address != current.wallet_address:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Upload job not found")
    return UploadJobResponse.model_validate(job)
