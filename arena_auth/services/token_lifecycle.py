"""
Helpers for retrieving and refreshing Discord OAuth access tokens.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol

from arena_auth.clients.discord import OAuthTokenExchangeError
from arena_auth.core.errors import NoSuchUserError, RefreshFailedError
from arena_auth.models.credentials import CredentialRecord, TokenGrant
from arena_auth.services.credential_store import CredentialStore
from arena_auth.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


class TokenRefresher(Protocol):
    async def refresh_token(self, refresh_token: str) -> TokenGrant: ...


class TokenLifecycleManager:
    """Hands out usable access tokens, refreshing them once they expire.

    Refresh failures are surfaced as :class:`RefreshFailedError` and never
    retried here; a rejected refresh token fails the same way every time.

    With ``single_flight`` enabled the refreshed token set is written as a
    compare-and-swap. A request that loses the race adopts the token the
    winner stored instead of overwriting it, including when its own refresh
    call was rejected because the winner already used the refresh token.
    """

    def __init__(
        self,
        store: CredentialStore,
        oauth_client: TokenRefresher,
        token_cipher: TokenCipherService,
        *,
        clock: Callable[[], float] = time.time,
        single_flight: bool = False,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._cipher = token_cipher
        self._clock = clock
        self._single_flight = single_flight

    async def get_valid_access_token(self, user_id: str) -> str:
        """Return an access token for ``user_id`` that has not yet expired."""
        record = self._store.get(user_id)
        if record is None:
            raise NoSuchUserError(user_id)

        # A token expiring exactly now is already treated as expired.
        if self._clock() < record.access_expires_at:
            return self._cipher.decrypt(record.access_token_encrypted)

        return await self._refresh(user_id, record)

    async def _refresh(self, user_id: str, record: CredentialRecord) -> str:
        refresh_token = self._cipher.decrypt(record.refresh_token_encrypted)
        try:
            grant = await self._oauth.refresh_token(refresh_token)
        except OAuthTokenExchangeError as exc:
            if self._single_flight:
                # Discord revokes a refresh token once it is used, so the loser
                # of a race is rejected after the winner has stored new tokens.
                latest = self._store.get(user_id)
                if latest is None:
                    raise NoSuchUserError(user_id) from exc
                if latest.access_token_encrypted != record.access_token_encrypted:
                    return self._adopt_concurrent_refresh(user_id, latest, self._clock())
            logger.warning("Access token refresh rejected", extra={"user_id": user_id})
            raise RefreshFailedError(
                f"Failed to refresh access token for user {user_id}."
            ) from exc
        received_at = self._clock()

        # The provider decides whether to rotate; keep the old token if it did not.
        new_refresh_token = grant.refresh_token or refresh_token
        access_expires_at = grant.expires_at(received_at)
        expected = record.access_token_encrypted if self._single_flight else None
        written = self._store.update_tokens(
            user_id,
            access_token_encrypted=self._cipher.encrypt(grant.access_token),
            refresh_token_encrypted=self._cipher.encrypt(new_refresh_token),
            access_expires_at=access_expires_at,
            expected_access_token_encrypted=expected,
        )
        if written:
            logger.info(
                "Refreshed access token",
                extra={"user_id": user_id, "access_expires_at": access_expires_at},
            )
            return grant.access_token

        latest = self._store.get(user_id)
        if latest is None:
            raise NoSuchUserError(user_id)
        return self._adopt_concurrent_refresh(user_id, latest, received_at)

    def _adopt_concurrent_refresh(
        self, user_id: str, latest: CredentialRecord, now: float
    ) -> str:
        if now < latest.access_expires_at:
            logger.info(
                "Using access token stored by a concurrent refresh",
                extra={"user_id": user_id},
            )
            return self._cipher.decrypt(latest.access_token_encrypted)
        raise RefreshFailedError(
            f"Concurrent refresh for user {user_id} left no usable access token."
        )


__all__ = ["TokenLifecycleManager", "TokenRefresher"]
