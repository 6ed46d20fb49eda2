"""Profile schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ProfileResponse(BaseModel):
    wallet_address: str
    display_name: str | None = None
    avatar_url: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    """Editable profile fields; omitted fields are left unchanged."""

    display_name: str | None = Field(None, max_length=64)
    avatar_url: str | None = Field(None, max_length=2048)
