from __future__ import annotations

import re

import pytest

from arena_auth.core.errors import InvalidSessionError
from arena_auth.models.credentials import TokenGrant
from arena_auth.services.sessions import SessionManager
from arena_auth.services.token_lifecycle import TokenLifecycleManager

SESSION_TTL = 3600


class DummyOAuthClient:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        self.calls.append(refresh_token)
        return TokenGrant(access_token="refreshed", refresh_token="r2", expires_in=600)


@pytest.fixture
def oauth_client() -> DummyOAuthClient:
    return DummyOAuthClient()


@pytest.fixture
def manager(store, cipher, clock, oauth_client) -> SessionManager:
    tokens = TokenLifecycleManager(store, oauth_client, cipher, clock=clock)
    return SessionManager(
        store, cipher, tokens, session_ttl_seconds=SESSION_TTL, clock=clock
    )


def _create(manager: SessionManager, clock, *, access_ttl: int = 600) -> str:
    return manager.create_session(
        "4242", "access-token", "refresh-token", int(clock.now) + access_ttl
    )


def test_create_session_stores_only_ciphertext(manager, store, cipher, clock) -> None:
    session_token = _create(manager, clock)

    assert re.fullmatch(r"[0-9a-f]{64}", session_token)
    stored = store.get("4242")
    assert stored.session_expires_at == int(clock.now) + SESSION_TTL
    assert stored.access_expires_at == int(clock.now) + 600
    for field, plaintext in (
        ("access_token_encrypted", "access-token"),
        ("refresh_token_encrypted", "refresh-token"),
        ("session_token_encrypted", session_token),
    ):
        ciphertext = getattr(stored, field)
        assert plaintext not in ciphertext
        assert cipher.decrypt(ciphertext) == plaintext
    assert store.writes == [("put", "4242")]


def test_session_tokens_are_unique(manager, clock) -> None:
    assert _create(manager, clock) != _create(manager, clock)


def test_validation_slides_expiry_forward(manager, store, clock) -> None:
    session_token = _create(manager, clock)
    before = store.get("4242").session_expires_at
    clock.advance(5)

    assert manager.validate_and_refresh_session("4242", session_token) is True

    after = store.get("4242").session_expires_at
    assert after > before
    assert after == int(clock.now) + SESSION_TTL


def test_wrong_token_is_rejected_without_write(manager, store, clock) -> None:
    _create(manager, clock)
    store.writes.clear()

    assert manager.validate_and_refresh_session("4242", "f" * 64) is False
    assert manager.validate_and_refresh_session("4242", "") is False
    assert store.writes == []


def test_unknown_user_is_rejected_without_write(manager, store) -> None:
    assert manager.validate_and_refresh_session("nobody", "token") is False
    assert store.writes == []


def test_expired_session_is_not_extended(manager, store, clock) -> None:
    session_token = _create(manager, clock)
    expires_at = store.get("4242").session_expires_at
    store.writes.clear()
    clock.advance(SESSION_TTL + 1)

    assert manager.validate_and_refresh_session("4242", session_token) is False
    assert store.writes == []
    assert store.get("4242").session_expires_at == expires_at


def test_session_expiring_exactly_now_is_rejected(manager, store, clock) -> None:
    session_token = _create(manager, clock)
    clock.advance(SESSION_TTL)

    assert manager.validate_and_refresh_session("4242", session_token) is False


def test_session_matches_ignores_expiry_and_never_writes(manager, store, clock) -> None:
    session_token = _create(manager, clock)
    store.writes.clear()
    clock.advance(SESSION_TTL + 10)

    assert manager.session_matches("4242", session_token) is True
    assert manager.session_matches("4242", "0" * 64) is False
    assert manager.session_matches("4242", "") is False
    assert manager.session_matches("nobody", session_token) is False
    assert store.writes == []


def test_logout_is_idempotent(manager, clock) -> None:
    session_token = _create(manager, clock)

    manager.logout("4242")
    manager.logout("4242")

    assert manager.validate_and_refresh_session("4242", session_token) is False


@pytest.mark.asyncio
async def test_access_token_with_session_returns_stored_token(manager, clock, oauth_client) -> None:
    session_token = _create(manager, clock)

    token = await manager.get_valid_access_token_with_session("4242", session_token)

    assert token == "access-token"
    assert oauth_client.calls == []


@pytest.mark.asyncio
async def test_access_token_with_session_refreshes_inside_active_session(
    manager, clock, oauth_client
) -> None:
    session_token = _create(manager, clock, access_ttl=60)
    clock.advance(120)

    token = await manager.get_valid_access_token_with_session("4242", session_token)

    assert token == "refreshed"
    assert oauth_client.calls == ["refresh-token"]


@pytest.mark.asyncio
async def test_access_token_with_bad_session_raises(manager, clock, oauth_client) -> None:
    _create(manager, clock)

    with pytest.raises(InvalidSessionError):
        await manager.get_valid_access_token_with_session("4242", "wrong")
    assert oauth_client.calls == []


def test_session_ttl_must_be_positive(store, cipher, clock) -> None:
    tokens = TokenLifecycleManager(store, DummyOAuthClient(), cipher, clock=clock)

    with pytest.raises(ValueError):
        SessionManager(store, cipher, tokens, session_ttl_seconds=0)
