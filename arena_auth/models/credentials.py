"""
Domain models for credential persistence and the OAuth2 handshake.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CredentialRecord(BaseModel):
    """Represents the per-user record kept in the credential store.

    Secret fields only ever hold ciphertext produced by the token cipher.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., description="Discord user identifier.")
    access_token_encrypted: str
    refresh_token_encrypted: str
    access_expires_at: int = Field(
        ..., description="Unix seconds; the access token is invalid from this instant."
    )
    session_token_encrypted: str
    session_expires_at: int = Field(
        ..., description="Unix seconds; extended on every successful validation."
    )


class OAuthState(BaseModel):
    """Application data carried through the provider redirect in ``state``."""

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    redirect_uri: str = Field(..., min_length=1)
    wallet_address: str = Field(..., min_length=1)


class TokenGrant(BaseModel):
    """Token endpoint response for an authorization-code or refresh grant."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = Field(..., description="Lifetime in seconds from receipt.")

    def expires_at(self, received_at: float) -> int:
        """Convert the relative lifetime into an absolute Unix deadline."""
        return int(received_at) + self.expires_in


class DiscordProfile(BaseModel):
    """Subset of the Discord user object propagated to the identity contract."""

    model_config = ConfigDict(extra="ignore")

    id: str
    username: str
    avatar: Optional[str] = None


__all__ = ["CredentialRecord", "DiscordProfile", "OAuthState", "TokenGrant"]
