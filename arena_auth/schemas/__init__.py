"""Public schema exports."""

from .auth import (
    IdentitySyncRequest,
    IdentitySyncResponse,
    ImageUploadResponse,
    LogoutResponse,
)

__all__ = [
    "IdentitySyncRequest",
    "IdentitySyncResponse",
    "ImageUploadResponse",
    "LogoutResponse",
]
