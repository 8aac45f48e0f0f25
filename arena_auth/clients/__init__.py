"""Expose constructed client wrappers."""

from .discord import DiscordApiError, DiscordOAuthClient, OAuthTokenExchangeError
from .dynamodb import DynamoDBCredentialStore
from .s3_uploads import ImageUploadError, ImageUploadPresigner
from .sqlite_store import SQLiteCredentialStore

__all__ = [
    "DiscordApiError",
    "DiscordOAuthClient",
    "DynamoDBCredentialStore",
    "ImageUploadError",
    "ImageUploadPresigner",
    "OAuthTokenExchangeError",
    "SQLiteCredentialStore",
]
