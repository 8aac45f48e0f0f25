"""
Discord OAuth2 and REST helpers.

These helpers manage the user authentication flow, token refresh and the few
Discord API calls the identity flow needs.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from fastapi import status

from arena_auth.core.config import DiscordSettings
from arena_auth.models.credentials import DiscordProfile, TokenGrant

logger = logging.getLogger(__name__)

# Discord error code returned when the user already joined 100 guilds.
_MAX_GUILDS_ERROR_CODE = 30001


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error or cannot be reached."""


class DiscordApiError(Exception):
    """Raised when a Discord REST call fails."""


class DiscordOAuthClient:
    """Build Discord authorization URLs, exchange codes and call the REST API."""

    def __init__(
        self,
        settings: DiscordSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._settings.timeout_seconds, transport=self._transport
        )

    def build_authorization_url(self, state: str) -> str:
        """Construct the Discord OAuth consent URL."""
        params = {
            "client_id": self._settings.client_id,
            "redirect_uri": str(self._settings.redirect_uri),
            "response_type": "code",
            "scope": " ".join(self._settings.scopes),
            "state": state,
        }
        return f"{self._settings.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code for an access/refresh token pair."""
        grant = await self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": str(self._settings.redirect_uri),
            }
        )
        if not grant.refresh_token:
            raise OAuthTokenExchangeError(
                "Incomplete token payload returned from Discord."
            )
        return grant

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Refresh the access token using a stored refresh token."""
        return await self._request_token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )

    async def _request_token(self, grant_fields: Dict[str, str]) -> TokenGrant:
        payload = {
            **grant_fields,
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
        }
        try:
            async with self._client() as client:
                response = await client.post(self._settings.token_url, data=payload)
        except httpx.HTTPError as exc:
            raise OAuthTokenExchangeError(
                f"Token request to Discord failed: {exc.__class__.__name__}"
            ) from exc

        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(
                f"Token endpoint returned {response.status_code}: {response.text[:200]}"
            )

        try:
            token_payload = response.json()
            access_token = token_payload.get("access_token")
            expires_in = int(token_payload.get("expires_in") or 0)
        except (ValueError, AttributeError) as exc:
            raise OAuthTokenExchangeError(
                "Malformed token payload returned from Discord."
            ) from exc
        if not access_token or expires_in <= 0:
            raise OAuthTokenExchangeError(
                "Incomplete token payload returned from Discord."
            )

        return TokenGrant(
            access_token=access_token,
            refresh_token=token_payload.get("refresh_token"),
            expires_in=expires_in,
        )

    async def get_current_user(self, access_token: str) -> DiscordProfile:
        """Fetch the profile of the user who owns ``access_token``."""
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self._settings.api_url}/users/@me",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            raise DiscordApiError("Failed to fetch Discord profile.") from exc

        if response.status_code != status.HTTP_200_OK:
            logger.warning(
                "Discord profile lookup failed",
                extra={"status_code": response.status_code},
            )
            raise DiscordApiError("Failed to fetch Discord profile.")

        data = response.json()
        if not data or not data.get("id"):
            raise DiscordApiError("Discord profile response is missing the user id.")
        return DiscordProfile.model_validate(data)

    async def add_guild_member(self, user_id: str, access_token: str) -> bool:
        """
        Add a user to the DAO guild with the default role.

        Returns ``True`` when the user was added and ``False`` when they were
        already a member or cannot join more guilds.
        """
        if not self._settings.bot_token:
            raise DiscordApiError("DISCORD_BOT_TOKEN is required to add guild members.")

        body: Dict[str, Any] = {
            "access_token": access_token,
            "roles": [self._settings.default_role],
        }
        try:
            async with self._client() as client:
                response = await client.put(
                    f"{self._settings.api_url}/guilds/{self._settings.guild_id}"
                    f"/members/{user_id}",
                    json=body,
                    headers={"Authorization": f"Bot {self._settings.bot_token}"},
                )
        except httpx.HTTPError as exc:
            raise DiscordApiError("Failed to add user to guild.") from exc

        if response.status_code == status.HTTP_204_NO_CONTENT:
            return False
        if response.status_code in (status.HTTP_200_OK, status.HTTP_201_CREATED):
            return True

        error_code = _error_code(response)
        if error_code == _MAX_GUILDS_ERROR_CODE:
            logger.info("User is at the maximum guild count", extra={"user_id": user_id})
            return False
        raise DiscordApiError(
            f"Failed to add user to guild: {response.status_code} (code {error_code})."
        )


def _error_code(response: httpx.Response) -> Optional[int]:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        return payload.get("code")
    return None


__all__ = [
    "DiscordApiError",
    "DiscordOAuthClient",
    "OAuthTokenExchangeError",
]
