"""
Encoding of the OAuth2 ``state`` parameter.

The state carries the front-end redirect target and the wallet address across
the Discord redirect hop as compact JSON, base64url encoded without padding so
it never needs escaping in a query string.

The value is *not* signed. Anything decoded here is untrusted application data
and must not be treated as proof of who started the flow.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging

from pydantic import ValidationError

from arena_auth.core.errors import InvalidStateError
from arena_auth.models.credentials import OAuthState

logger = logging.getLogger(__name__)


def _b64e(data: bytes) -> str:
    """Base64-URL encode *without* padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64d(data: str) -> bytes:
    """Strictly decode base64-URL data that may lack padding."""
    pad_len = (-len(data)) % 4
    return base64.b64decode(data + "=" * pad_len, altchars=b"-_", validate=True)


class OAuthStateCodec:
    """Encode and decode the OAuth2 ``state`` query parameter."""

    def encode(self, state: OAuthState) -> str:
        serialized = json.dumps(
            state.model_dump(), separators=(",", ":"), sort_keys=True
        )
        return _b64e(serialized.encode("utf-8"))

    def decode(self, token: str) -> OAuthState:
        """Return the state encoded in ``token`` or raise ``InvalidStateError``."""
        if not token:
            raise InvalidStateError("OAuth state is empty.")
        try:
            payload = json.loads(_b64d(token).decode("utf-8"))
        except (ValueError, binascii.Error) as exc:
            logger.info("Rejected undecodable OAuth state")
            raise InvalidStateError("OAuth state cannot be decoded.") from exc

        if not isinstance(payload, dict):
            raise InvalidStateError("OAuth state must encode a JSON object.")
        try:
            return OAuthState.model_validate(payload)
        except ValidationError as exc:
            missing = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
            raise InvalidStateError(
                f"OAuth state has missing or invalid fields: {', '.join(missing)}."
            ) from exc


__all__ = ["OAuthStateCodec"]
