"""
Exception taxonomy shared by the credential, token and session services.

Every failure is raised to the calling handler, which decides the user-visible
response; nothing in the service layer retries on these errors.
"""

from __future__ import annotations


class ArenaAuthError(Exception):
    """Base class for errors raised by the auth core."""


class NoSuchUserError(ArenaAuthError):
    """Raised when no credential record exists for a user."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No credential record stored for user {user_id}.")
        self.user_id = user_id


class RefreshFailedError(ArenaAuthError):
    """Raised when the provider rejects a refresh-token exchange."""


class InvalidSessionError(ArenaAuthError):
    """Raised when a session token is missing, mismatched or expired."""


class InvalidStateError(ArenaAuthError, ValueError):
    """Raised when an inbound OAuth ``state`` value cannot be decoded."""


class MalformedCiphertextError(ArenaAuthError, ValueError):
    """Raised when stored ciphertext does not match the ``iv:ciphertext`` format."""


class DecryptionError(ArenaAuthError, ValueError):
    """Raised when ciphertext cannot be decrypted with the configured key."""


class StoreUnavailableError(ArenaAuthError):
    """Raised when the credential store cannot be reached or rejects a call.

    Store operations are idempotent upserts, so callers may retry with backoff.
    """


class IdentitySyncError(ArenaAuthError):
    """Raised when the identity contract read or write fails."""


__all__ = [
    "ArenaAuthError",
    "DecryptionError",
    "IdentitySyncError",
    "InvalidSessionError",
    "InvalidStateError",
    "MalformedCiphertextError",
    "NoSuchUserError",
    "RefreshFailedError",
    "StoreUnavailableError",
]
