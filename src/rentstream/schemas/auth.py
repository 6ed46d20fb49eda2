"""Wallet authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from .profile import ProfileResponse


class NonceRequest(BaseModel):
    wallet: str = Field(..., description="0x-prefixed wallet address")


class NonceResponse(BaseModel):
    """Challenge the wallet must sign before it expires."""

    challenge: str
    expires_at: datetime


class VerifyRequest(BaseModel):
    wallet: str = Field(..., description="0x-prefixed wallet address")
    challenge: str = Field(..., description="Challenge text exactly as issued")
    signature: str = Field(..., description="EIP-191 personal-message signature, hex encoded")


class VerifyResponse(BaseModel):
    profile: ProfileResponse
    access_token: str
    token_type: str = "bearer"
