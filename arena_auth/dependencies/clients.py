"""
Factory functions to provide shared clients and services as FastAPI dependencies.

Each factory builds its object once per process; ``reset_dependencies`` drops
the cached instances on shutdown.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Request

from arena_auth.clients import (
    DiscordOAuthClient,
    DynamoDBCredentialStore,
    ImageUploadPresigner,
    SQLiteCredentialStore,
)
from arena_auth.core.config import AppSettings, get_settings
from arena_auth.services import (
    CredentialStore,
    IdentitySyncService,
    OAuthStateCodec,
    SessionManager,
    TokenCipherService,
    TokenLifecycleManager,
)


@lru_cache()
def _settings() -> AppSettings:
    """Internal helper to cache settings for client factories."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings()


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for credential storage."""
    return TokenCipherService(secret=_settings().security.encryption_key)


@lru_cache()
def get_oauth_state_codec() -> OAuthStateCodec:
    """Provide the OAuth ``state`` parameter codec."""
    return OAuthStateCodec()


@lru_cache()
def get_discord_client() -> DiscordOAuthClient:
    """Create a singleton Discord OAuth client."""
    return DiscordOAuthClient(_settings().discord)


@lru_cache()
def get_credential_store() -> CredentialStore:
    """Provide the configured credential store backend."""
    aws = _settings().aws
    if aws.credential_backend == "sqlite":
        return SQLiteCredentialStore(
            aws.credential_db_path, timeout=aws.store_timeout_seconds
        )
    return DynamoDBCredentialStore(aws)


@lru_cache()
def get_token_manager() -> TokenLifecycleManager:
    """Provide the access-token refresh manager."""
    return TokenLifecycleManager(
        store=get_credential_store(),
        oauth_client=get_discord_client(),
        token_cipher=get_token_cipher_service(),
        single_flight=_settings().security.refresh_single_flight,
    )


@lru_cache()
def get_session_manager() -> SessionManager:
    """Provide the session manager built on the token manager."""
    return SessionManager(
        store=get_credential_store(),
        token_cipher=get_token_cipher_service(),
        token_manager=get_token_manager(),
        session_ttl_seconds=_settings().security.session_ttl_seconds,
    )


@lru_cache()
def get_image_presigner() -> ImageUploadPresigner:
    """Provide the presigned image upload helper."""
    return ImageUploadPresigner(_settings().aws)


def get_identity_sync_service(request: Request) -> Optional[IdentitySyncService]:
    """Provide identity sync when an identity contract client was registered."""
    contract = getattr(request.app.state, "identity_contract", None)
    if contract is None:
        return None
    return IdentitySyncService(contract)


def reset_dependencies() -> None:
    """Drop every cached client so the next request builds fresh ones."""
    for factory in (
        _settings,
        get_token_cipher_service,
        get_oauth_state_codec,
        get_discord_client,
        get_credential_store,
        get_token_manager,
        get_session_manager,
        get_image_presigner,
    ):
        factory.cache_clear()


__all__ = [
    "get_app_settings",
    "get_credential_store",
    "get_discord_client",
    "get_identity_sync_service",
    "get_image_presigner",
    "get_oauth_state_codec",
    "get_session_manager",
    "get_token_cipher_service",
    "get_token_manager",
    "reset_dependencies",
]
