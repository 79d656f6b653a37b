"""Async access to the Concierge database through libsql.

The ``libsql`` driver is synchronous, so every call is pushed onto a worker
thread with ``asyncio.to_thread()``.  Where the connection points is decided
by settings:

- ``CONCIERGE_TURSO_DATABASE_URL`` set → hosted Turso database
- otherwise → local SQLite file at ``database_path``
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import libsql

if TYPE_CHECKING:
    from pathlib import Path

from concierge.config import settings


class AsyncCursor:
    """Awaitable view over a libsql cursor."""

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor

    async def fetchone(self) -> tuple | None:
        return await asyncio.to_thread(self._cursor.fetchone)

    async def fetchall(self) -> list[tuple]:
        return await asyncio.to_thread(self._cursor.fetchall)

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount


class AsyncConnection:
    """Awaitable view over a libsql connection."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    async def execute(self, sql: str, params: tuple = ()) -> AsyncCursor:
        cursor = await asyncio.to_thread(self._conn.execute, sql, params)
        return AsyncCursor(cursor)

    async def execute_many(self, sql: str, rows: list[tuple]) -> None:
        """Run *sql* once per row in a single worker-thread hop."""

        def _run() -> None:
            for row in rows:
                self._conn.execute(sql, row)

        await asyncio.to_thread(_run)

    async def commit(self) -> None:
        await asyncio.to_thread(self._conn.commit)

    async def rollback(self) -> None:
        await asyncio.to_thread(self._conn.rollback)

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)


def _open_file(path: str) -> Any:
    conn = libsql.connect(path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


async def open_connection(local_path: Path | None = None) -> AsyncConnection:
    """Open a connection to the configured database.

    *local_path* wins when given (tests pass ``tmp_path / "x.db"``).
    Otherwise a Turso URL in settings selects the hosted database, and
    ``settings.database_path`` is the fallback.
    """
    if local_path is None and settings.turso_database_url:
        conn = await asyncio.to_thread(
            libsql.connect,
            database=settings.turso_database_url,
            auth_token=settings.turso_auth_token,
        )
        return AsyncConnection(conn)

    path = local_path or settings.database_path
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = await asyncio.to_thread(_open_file, str(path))
    return AsyncConnection(conn)
