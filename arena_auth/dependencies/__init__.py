"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_app_settings,
    get_credential_store,
    get_discord_client,
    get_identity_sync_service,
    get_image_presigner,
    get_oauth_state_codec,
    get_session_manager,
    get_token_cipher_service,
    get_token_manager,
    reset_dependencies,
)

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
