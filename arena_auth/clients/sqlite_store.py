"""SQLite-backed substitute for the DynamoDB credential table."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

from arena_auth.core.errors import StoreUnavailableError
from arena_auth.models.credentials import CredentialRecord


class SQLiteCredentialStore:
    """Credential records in a single table keyed by ``user_id``."""

    def __init__(self, db_path: str, *, timeout: float = 5.0) -> None:
        self._db_path = Path(db_path)
        self._timeout = timeout
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self._db_path, timeout=self._timeout, check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        return conn

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            with self._connect() as conn:
                return conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"SQLite credential store failed: {exc}") from exc

    def _ensure_schema(self) -> None:
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS credentials (
                user_id TEXT PRIMARY KEY,
                access_token TEXT NOT NULL,
                refresh_token TEXT NOT NULL,
                access_expires_at INTEGER NOT NULL,
                session_token TEXT NOT NULL,
                session_expires_at INTEGER NOT NULL
            )
            """
        )

    def get(self, user_id: str) -> Optional[CredentialRecord]:
        row = self._execute(
            "SELECT * FROM credentials WHERE user_id = ?", (user_id,)
        ).fetchone()
        if not row:
            return None
        return CredentialRecord(
            user_id=row["user_id"],
            access_token_encrypted=row["access_token"],
            refresh_token_encrypted=row["refresh_token"],
            access_expires_at=row["access_expires_at"],
            session_token_encrypted=row["session_token"],
            session_expires_at=row["session_expires_at"],
        )

    def put(self, user_id: str, record: CredentialRecord) -> None:
        self._execute(
            """
            INSERT INTO credentials (
                user_id, access_token, refresh_token, access_expires_at,
                session_token, session_expires_at
            )
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                access_token = excluded.access_token,
                refresh_token = excluded.refresh_token,
                access_expires_at = excluded.access_expires_at,
                session_token = excluded.session_token,
                session_expires_at = excluded.session_expires_at
            """,
            (
                user_id,
                record.access_token_encrypted,
                record.refresh_token_encrypted,
                record.access_expires_at,
                record.session_token_encrypted,
                record.session_expires_at,
            ),
        )

    def delete(self, user_id: str) -> None:
        self._execute("DELETE FROM credentials WHERE user_id = ?", (user_id,))

    def update_session_expiry(self, user_id: str, session_expires_at: int) -> bool:
        cursor = self._execute(
            "UPDATE credentials SET session_expires_at = ? WHERE user_id = ?",
            (session_expires_at, user_id),
        )
        return cursor.rowcount == 1

    def update_tokens(
        self,
        user_id: str,
        *,
        access_token_encrypted: str,
        refresh_token_encrypted: str,
        access_expires_at: int,
        expected_access_token_encrypted: Optional[str] = None,
    ) -> bool:
        sql = (
            "UPDATE credentials SET access_token = ?, refresh_token = ?, "
            "access_expires_at = ? WHERE user_id = ?"
        )
        params: tuple = (
            access_token_encrypted,
            refresh_token_encrypted,
            access_expires_at,
            user_id,
        )
        if expected_access_token_encrypted is not None:
            sql += " AND access_token = ?"
            params += (expected_access_token_encrypted,)
        return self._execute(sql, params).rowcount == 1


__all__ = ["SQLiteCredentialStore"]
