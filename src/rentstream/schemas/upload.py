"""Upload job schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UploadAccepted(BaseModel):
    job_id: str
    status: str


class UploadJobResponse(BaseModel):
    id: str
    wallet_address: str
    file_name: str
    file_size: int
    status: str
    progress: int
    error_message: str | None = None
    catalog_item_id: str | None = None
    created_at: datetime
    completed_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
