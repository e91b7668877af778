"""SQLite implementation of CredentialRepository."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from taskbridge.adapters.sqlite.connection import get_connection
from taskbridge.adapters.utils import now_utc, parse_datetime, to_iso
from taskbridge.models import Credential
from taskbridge.repositories import CredentialRepository


class SqliteCredentialRepository(CredentialRepository):
    """Stores one credential row per (user_id, provider)."""

    def __init__(
        self,
        db_path: str | Path | None = None,
        connection: sqlite3.Connection | None = None,
    ):
        self.db_path = db_path
        self._connection = connection

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            self._connection = get_connection(self.db_path)
        return self._connection

    async def get_credential(self, user_id: str, provider: str) -> Credential | None:
        row = self.connection.execute(
            "SELECT * FROM credentials WHERE user_id = ? AND provider = ?",
            (user_id, provider),
        ).fetchone()
        if row is None:
            return None
        return Credential(
            user_id=row["user_id"],
            provider=row["provider"],
            access_token=row["access_token"],
            refresh_token=row["refresh_token"],
            expires_at=parse_datetime(row["expires_at"]),
            scopes=[s for s in row["scopes"].split(" ") if s],
        )

    async def put_credential(
        self, user_id: str, provider: str, credential: Credential
    ) -> None:
        # Single statement: the row is replaced whole or not at all
        with self.connection:
            self.connection.execute(
                """
                INSERT INTO credentials (
                    user_id, provider, access_token, refresh_token,
                    expires_at, scopes, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (user_id, provider) DO UPDATE SET
                    access_token = excluded.access_token,
                    refresh_token = excluded.refresh_token,
                    expires_at = excluded.expires_at,
                    scopes = excluded.scopes,
                    updated_at = excluded.updated_at
                """,
                (
                    user_id,
                    provider,
                    credential.access_token,
                    credential.refresh_token,
                    to_iso(credential.expires_at),
                    " ".join(credential.scopes),
                    to_iso(now_utc()),
                ),
            )

    async def delete_credential(self, user_id: str, provider: str) -> bool:
        with self.connection:
            cursor = self.connection.execute(
                "DELETE FROM credentials WHERE user_id = ? AND provider = ?",
                (user_id, provider),
            )
        return cursor.rowcount > 0

    async def list_user_ids(self, provider: str) -> list[str]:
        rows = self.connection.execute(
            "SELECT user_id FROM credentials WHERE provider = ? ORDER BY user_id",
            (provider,),
        ).fetchall()
        return [row["user_id"] for row in rows]
