"""Schemas related to the OAuth flow and identity linking."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class IdentitySyncRequest(BaseModel):
    """Payload asking to link the session's Discord identity to a wallet."""

    user_id: str = Field(..., min_length=1, description="Discord user identifier.")
    wallet_address: str = Field(
        ..., min_length=1, description="Wallet that should carry the Discord profile."
    )


class IdentitySyncResponse(BaseModel):
    success: bool = True
    tx_hash: Optional[str] = Field(
        None, description="Transaction hash, absent when the profile was unchanged."
    )
    message: str = "Operation completed successfully."


class ImageUploadResponse(BaseModel):
    post_data: Dict[str, Any]
    image_url: str


class LogoutResponse(BaseModel):
    success: bool = True
    message: str = "Successfully logged out"


__all__ = [
    "IdentitySyncRequest",
    "IdentitySyncResponse",
    "ImageUploadResponse",
    "LogoutResponse",
]
