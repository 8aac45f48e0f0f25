"""
Session issuance, validation and sliding-expiration renewal.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import time
from typing import Callable, Optional

from arena_auth.core.errors import InvalidSessionError
from arena_auth.models.credentials import CredentialRecord
from arena_auth.services.credential_store import CredentialStore
from arena_auth.services.token_cipher import TokenCipherService
from arena_auth.services.token_lifecycle import TokenLifecycleManager

logger = logging.getLogger(__name__)

_SESSION_TOKEN_BYTES = 32


class SessionManager:
    """Owns the session token stored alongside a user's OAuth credentials."""

    def __init__(
        self,
        store: CredentialStore,
        token_cipher: TokenCipherService,
        token_manager: TokenLifecycleManager,
        *,
        session_ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if session_ttl_seconds <= 0:
            raise ValueError("Session TTL must be positive.")
        self._store = store
        self._cipher = token_cipher
        self._tokens = token_manager
        self._ttl = session_ttl_seconds
        self._clock = clock

    def now(self) -> float:
        """Current time from the manager's clock, in Unix seconds."""
        return self._clock()

    def create_session(
        self,
        user_id: str,
        access_token: str,
        refresh_token: str,
        access_expires_at: int,
    ) -> str:
        """Persist a fresh credential record and return the plaintext session token."""
        session_token = secrets.token_hex(_SESSION_TOKEN_BYTES)
        record = CredentialRecord(
            user_id=user_id,
            access_token_encrypted=self._cipher.encrypt(access_token),
            refresh_token_encrypted=self._cipher.encrypt(refresh_token),
            access_expires_at=access_expires_at,
            session_token_encrypted=self._cipher.encrypt(session_token),
            session_expires_at=int(self._clock()) + self._ttl,
        )
        self._store.put(user_id, record)
        logger.info("Created session", extra={"user_id": user_id})
        return session_token

    def _matching_record(
        self, user_id: str, presented_token: str
    ) -> Optional[CredentialRecord]:
        record = self._store.get(user_id)
        if record is None or not presented_token:
            return None
        stored_token = self._cipher.decrypt(record.session_token_encrypted)
        if not hmac.compare_digest(
            stored_token.encode("utf-8"), presented_token.encode("utf-8")
        ):
            return None
        return record

    def session_matches(self, user_id: str, presented_token: str) -> bool:
        """Compare ``presented_token`` with the stored session, ignoring expiry.

        Never writes to the store.
        """
        return self._matching_record(user_id, presented_token) is not None

    def validate_and_refresh_session(self, user_id: str, presented_token: str) -> bool:
        """
        Check ``presented_token`` against the stored session and slide its expiry.

        Rejections never write to the store and do not reveal which check
        failed.
        """
        record = self._matching_record(user_id, presented_token)
        if record is None:
            return False

        now = self._clock()
        if now >= record.session_expires_at:
            logger.info("Rejected expired session", extra={"user_id": user_id})
            return False

        return self._store.update_session_expiry(user_id, int(now) + self._ttl)

    async def get_valid_access_token_with_session(
        self, user_id: str, session_token: str
    ) -> str:
        """Validate the session, then return a usable access token."""
        if not self.validate_and_refresh_session(user_id, session_token):
            raise InvalidSessionError("Session is missing, invalid or expired.")
        return await self._tokens.get_valid_access_token(user_id)

    def logout(self, user_id: str) -> None:
        """Delete every stored credential for ``user_id``; safe to repeat."""
        self._store.delete(user_id)
        logger.info("Deleted credentials", extra={"user_id": user_id})


__all__ = ["SessionManager"]
