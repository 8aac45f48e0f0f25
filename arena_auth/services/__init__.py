"""Service layer exports."""

from .credential_store import CredentialStore
from .identity_sync import IdentityContract, IdentitySyncService
from .oauth_state import OAuthStateCodec
from .sessions import SessionManager
from .token_cipher import TokenCipherService
from .token_lifecycle import TokenLifecycleManager

__all__ = [
    "CredentialStore",
    "IdentityContract",
    "IdentitySyncService",
    "OAuthStateCodec",
    "SessionManager",
    "TokenCipherService",
    "TokenLifecycleManager",
]
