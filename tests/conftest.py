"""Pytest configuration shared across the suite."""

from __future__ import annotations

import _bootstrap  # noqa: F401

import pytest

from arena_auth.clients.sqlite_store import SQLiteCredentialStore
from arena_auth.services.token_cipher import TokenCipherService


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingStore(SQLiteCredentialStore):
    """SQLite store that remembers every write it receives."""

    def __init__(self, db_path: str) -> None:
        super().__init__(db_path)
        self.writes: list[tuple[str, str]] = []

    def put(self, user_id, record):
        self.writes.append(("put", user_id))
        super().put(user_id, record)

    def delete(self, user_id):
        self.writes.append(("delete", user_id))
        super().delete(user_id)

    def update_session_expiry(self, user_id, session_expires_at):
        self.writes.append(("update_session_expiry", user_id))
        return super().update_session_expiry(user_id, session_expires_at)

    def update_tokens(self, user_id, **kwargs):
        self.writes.append(("update_tokens", user_id))
        return super().update_tokens(user_id, **kwargs)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path) -> RecordingStore:
    return RecordingStore(str(tmp_path / "credentials.sqlite3"))


@pytest.fixture
def cipher() -> TokenCipherService:
    return TokenCipherService(secret="unit-test-secret")
