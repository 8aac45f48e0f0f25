"""
Persistence contract for per-user credential records.

Backends live in :mod:`arena_auth.clients` (DynamoDB for deployed
environments, SQLite for local runs). Every backend failure surfaces as
:class:`~arena_auth.core.errors.StoreUnavailableError`; nothing beneath this
interface retries.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from arena_auth.models.credentials import CredentialRecord


@runtime_checkable
class CredentialStore(Protocol):
    """Keyed storage for :class:`CredentialRecord` values."""

    def get(self, user_id: str) -> Optional[CredentialRecord]: ...

    def put(self, user_id: str, record: CredentialRecord) -> None:
        """Upsert the full record for ``user_id``."""
        ...

    def delete(self, user_id: str) -> None:
        """Remove the record; deleting a missing record is not an error."""
        ...

    def update_session_expiry(self, user_id: str, session_expires_at: int) -> bool:
        """Write only ``session_expires_at``.

        Returns ``False`` when the record no longer exists, in which case
        nothing is written.
        """
        ...

    def update_tokens(
        self,
        user_id: str,
        *,
        access_token_encrypted: str,
        refresh_token_encrypted: str,
        access_expires_at: int,
        expected_access_token_encrypted: Optional[str] = None,
    ) -> bool:
        """Write the access token, refresh token and access expiry only.

        When ``expected_access_token_encrypted`` is given the write is a
        compare-and-swap against the stored access-token ciphertext. Every
        encryption uses a fresh IV, so that ciphertext changes on each refresh
        and doubles as a version marker.

        Returns ``False`` without writing when the record is gone or the
        expected ciphertext no longer matches.
        """
        ...


__all__ = ["CredentialStore"]
