"""
Presigned S3 uploads for user-supplied profile images.
"""

from __future__ import annotations

import secrets
import time
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from arena_auth.core.config import AWSSettings

_MAX_IMAGE_BYTES = 5 * 1024 * 1024
_EXPIRES_SECONDS = 300


class ImageUploadError(Exception):
    """Raised when a presigned upload cannot be generated."""


class ImageUploadPresigner:
    """Generate browser-usable presigned POST forms for image uploads."""

    def __init__(self, settings: AWSSettings, *, client: Optional[Any] = None) -> None:
        self._bucket = settings.upload_bucket_name
        self._region = settings.upload_region_name
        self._client = client or boto3.client("s3", region_name=self._region)

    def create_presigned_post(self) -> Dict[str, Any]:
        """Return the POST form fields and the public URL the image will have."""
        if not self._bucket:
            raise ImageUploadError("Server configuration error: Missing bucket name")

        key = f"uploads/{int(time.time() * 1000)}-{secrets.token_hex(6)}"
        try:
            post = self._client.generate_presigned_post(
                Bucket=self._bucket,
                Key=key,
                Fields={"acl": "public-read"},
                Conditions=[
                    {"acl": "public-read"},
                    ["content-length-range", 0, _MAX_IMAGE_BYTES],
                    ["starts-with", "$Content-Type", "image/"],
                ],
                ExpiresIn=_EXPIRES_SECONDS,
            )
        except (BotoCoreError, ClientError) as exc:
            raise ImageUploadError("Failed to generate presigned upload.") from exc

        return {
            "post_data": post,
            "image_url": f"https://s3.{self._region}.amazonaws.com/{self._bucket}/{key}",
        }


__all__ = ["ImageUploadError", "ImageUploadPresigner"]
