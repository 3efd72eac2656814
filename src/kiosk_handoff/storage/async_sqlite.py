"""Async SQLite record backend — requires aiosqlite (guarded import).

Each namespace gets its own table in a shared database file, so sessions
and products can live side by side.

Classes
-------
- AsyncSQLiteBackend  — aiosqlite-backed record storage
"""
from __future__ import annotations

import re
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Sequence

from kiosk_handoff.storage.async_base import AsyncRecordBackend

_AIOSQLITE_IMPORT_ERROR = (
    "AsyncSQLiteBackend requires the 'aiosqlite' package. "
    "Install it with: pip install aiosqlite  or  pip install 'kiosk-handoff[sqlite]'"
)

_DEFAULT_DB_PATH: Path = Path.home() / ".kiosk-handoff" / "handoff.db"
_TABLE_NAME_RE = re.compile(r"^[a-z_][a-z0-9_]*$")


class AsyncSQLiteBackend(AsyncRecordBackend):
    """Persists records in a local SQLite database using aiosqlite.

    Parameters
    ----------
    db_path:
        Path to the SQLite file.  Defaults to ``~/.kiosk-handoff/handoff.db``.
        The parent directory and table are created on first use.
    namespace:
        Table name for this record kind.  Must be a lowercase identifier.
    """

    def __init__(self, db_path: str | Path | None = None, namespace: str = "records") -> None:
        try:
            import aiosqlite as _aiosqlite  # noqa: F401
        except ImportError as exc:
            raise ImportError(_AIOSQLITE_IMPORT_ERROR) from exc

        if not _TABLE_NAME_RE.match(namespace):
            raise ValueError(f"Invalid namespace {namespace!r}; use a lowercase identifier.")

        self._db_path: Path = Path(db_path) if db_path is not None else _DEFAULT_DB_PATH
        self.namespace = namespace
        self._table_ready = False

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Any]:
        """Open a connection, creating the namespace table on first use."""
        import aiosqlite

        if not self._table_ready:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as conn:
            if not self._table_ready:
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.execute(
                    f"CREATE TABLE IF NOT EXISTS {self.namespace} ("
                    " record_key TEXT PRIMARY KEY,"
                    " payload    TEXT NOT NULL,"
                    " saved_at   TEXT NOT NULL DEFAULT (datetime('now'))"
                    ")"
                )
                await conn.commit()
                self._table_ready = True
            yield conn

    async def _fetch_one(self, sql: str, key: str) -> Any:
        async with self._connection() as conn:
            async with conn.execute(sql, (key,)) as cursor:
                return await cursor.fetchone()

    async def save(self, key: str, payload: str) -> None:
        """Upsert ``payload`` for ``key``."""
        async with self._connection() as conn:
            await conn.execute(
                f"INSERT INTO {self.namespace} (record_key, payload, saved_at) "
                "VALUES (?, ?, datetime('now')) "
                "ON CONFLICT(record_key) DO UPDATE SET "
                "payload = excluded.payload, saved_at = excluded.saved_at",
                (key, payload),
            )
            await conn.commit()

    async def load(self, key: str) -> str:
        row = await self._fetch_one(
            f"SELECT payload FROM {self.namespace} WHERE record_key = ?", key
        )
        if row is None:
            raise KeyError(f"{key!r} not found in {self.namespace!r}.")
        return str(row[0])

    async def list_keys(self) -> Sequence[str]:
        """Return all keys, most recently saved first."""
        async with self._connection() as conn:
            async with conn.execute(
                f"SELECT record_key FROM {self.namespace} ORDER BY saved_at DESC, rowid DESC"
            ) as cursor:
                rows = await cursor.fetchall()
        return [str(key) for (key,) in rows]

    async def delete(self, key: str) -> bool:
        async with self._connection() as conn:
            cursor = await conn.execute(
                f"DELETE FROM {self.namespace} WHERE record_key = ?", (key,)
            )
            await conn.commit()
            return cursor.rowcount > 0

    async def exists(self, key: str) -> bool:
        row = await self._fetch_one(
            f"SELECT 1 FROM {self.namespace} WHERE record_key = ?", key
        )
        return row is not None

    def __repr__(self) -> str:
        return f"AsyncSQLiteBackend(db_path={str(self._db_path)!r}, namespace={self.namespace!r})"


__all__ = ["AsyncSQLiteBackend"]
