"""RecordStore — knowledge records and chat history over libsql."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from concierge.db import AsyncConnection, open_connection
from concierge.errors import StorageUnavailableError
from concierge.models import KnowledgeRecord, Message, Session

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS knowledge_records (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        content TEXT NOT NULL,
        category TEXT,
        keywords TEXT,
        search_text TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chat_sessions (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        id TEXT PRIMARY KEY,
        session_id TEXT NOT NULL,
        text TEXT NOT NULL,
        is_user INTEGER NOT NULL,
        audio_path TEXT,
        timestamp TEXT NOT NULL,
        seq INTEGER NOT NULL,
        FOREIGN KEY (session_id) REFERENCES chat_sessions (id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_messages_session ON messages (session_id, seq)",
    """
    CREATE TABLE IF NOT EXISTS meta (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,
)

_INSERT_RECORD = """
INSERT INTO knowledge_records
    (title, content, category, keywords, created_at, updated_at, search_text)
VALUES (?, ?, ?, ?, ?, ?, ?)
"""

_UPSERT_SESSION = """
INSERT INTO chat_sessions (id, title, created_at, updated_at)
VALUES (?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET title = excluded.title, updated_at = excluded.updated_at
"""

_INSERT_MESSAGE = """
INSERT OR IGNORE INTO messages (id, session_id, text, is_user, audio_path, timestamp, seq)
VALUES (?, ?, ?, ?, ?, ?,
        (SELECT COALESCE(MAX(seq), 0) + 1 FROM messages WHERE session_id = ?))
"""


def _search_text(record: KnowledgeRecord) -> str:
    """Casefolded title, content and keywords, one per line."""
    keywords = " ".join(str(k) for k in record.keywords)
    return f"{record.title}\n{record.content}\n{keywords}".casefold()


class RecordStore:
    """Persists knowledge records, sessions and messages.

    Holds one connection between ``initialize()`` and ``close()``.  Pass an
    explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._db: AsyncConnection | None = None
        # One statement batch at a time on the shared connection
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._db is not None

    # -- Lifecycle -------------------------------------------------------------

    async def initialize(self) -> None:
        """Open the database and create tables. Idempotent."""
        if self._db is not None:
            return
        try:
            db = await open_connection(self._db_path)
            for statement in _SCHEMA:
                await db.execute(statement)
            await db.commit()
        except Exception as exc:
            msg = f"Could not open record store: {exc}"
            raise StorageUnavailableError(msg) from exc
        self._db = db
        logger.info("Record store initialized")

    async def close(self) -> None:
        if self._db is None:
            return
        async with self._lock:
            db, self._db = self._db, None
        try:
            await db.close()
        except Exception as exc:
            msg = f"Could not close record store: {exc}"
            raise StorageUnavailableError(msg) from exc
        logger.info("Record store closed")

    @contextlib.asynccontextmanager
    async def _locked(self) -> AsyncIterator[AsyncConnection]:
        async with self._lock:
            if self._db is None:
                msg = "Record store is not initialized"
                raise StorageUnavailableError(msg)
            yield self._db

    # -- Knowledge records -----------------------------------------------------

    async def insert_records(self, records: list[KnowledgeRecord]) -> int:
        """Bulk-insert knowledge records. Returns the number inserted."""
        """Bulk-insert knowledge records. Returns the number inserted.

        All or nothing: a failing row rolls back the whole batch and raises
        StorageUnavailableError.
        """
        if not records:
            return 0
        async with self._locked() as db:
            try:
                await db.execute_many(
                    _INSERT_RECORD, [(*r.to_row(), _search_text(r)) for r in records]
                )
                await db.commit()
            except Exception as exc:
                await db.rollback()
                msg = f"Could not insert knowledge records: {exc}"
                raise StorageUnavailableError(msg) from exc
        logger.info("Inserted %d knowledge records", len(records))
        return len(records)

    async def search_records(self, query: str, limit: int = 10) -> list[KnowledgeRecord]:
        """Case-insensitive substring search over title, content and keywords.

        The query is matched literally (``%`` and ``_`` are plain characters)
        against a casefolded copy of the searchable fields.  Newest
        ``updated_at`` first, then highest id.
        """
        needle = query.casefold()
        async with self._locked() as db:
            cursor = await db.execute(
                """
                SELECT id, title, content, category, keywords, created_at, updated_at
                FROM knowledge_records
                WHERE instr(search_text, ?) > 0
                ORDER BY updated_at DESC, id DESC
                LIMIT ?
                """,
                (needle, limit),
            )
            rows = await cursor.fetchall()
        return [KnowledgeRecord.from_row(row) for row in rows]

    async def count_records(self) -> int:
        async with self._locked() as db:
            cursor = await db.execute("SELECT COUNT(*) FROM knowledge_records")
            row = await cursor.fetchone()
        return row[0] if row else 0

    # -- Sessions & messages ---------------------------------------------------

    async def save_message(self, session_id: str, message: Message) -> None:
        """Persist one message. Re-saving an existing message is a no-op."""
        async with self._locked() as db:
            await db.execute(_INSERT_MESSAGE, (*message.to_row(session_id), session_id))
            await db.commit()

    async def save_session(self, session: Session) -> None:
        """Write the session row and any of its messages not yet stored."""
        async with self._locked() as db:
            await db.execute(_UPSERT_SESSION, session.to_row())
            if session.messages:
                await db.execute_many(
                    _INSERT_MESSAGE,
                    [(*m.to_row(session.id), session.id) for m in session.messages],
                )
            await db.commit()

    async def get_session(self, session_id: str) -> Session | None:
        """Fetch a session with its messages, or None if not found."""
        async with self._locked() as db:
            cursor = await db.execute(
                "SELECT id, title, created_at, updated_at FROM chat_sessions WHERE id = ?",
                (session_id,),
            )
            row = await cursor.fetchone()
            if not row:
                return None
            return Session.from_row(row, await self._messages_for(db, session_id))

    async def list_sessions(self) -> list[Session]:
        """Return all sessions, most recently updated first."""
        async with self._locked() as db:
            cursor = await db.execute(
                "SELECT id, title, created_at, updated_at FROM chat_sessions "
                "ORDER BY updated_at DESC"
            )
            rows = await cursor.fetchall()
            return [Session.from_row(row, await self._messages_for(db, row[0])) for row in rows]

    async def delete_session(self, session_id: str) -> bool:
        """Remove a session and its messages. Returns True if the session existed."""
        async with self._locked() as db:
            await db.execute("DELETE FROM messages WHERE session_id = ?", (session_id,))
            cursor = await db.execute("DELETE FROM chat_sessions WHERE id = ?", (session_id,))
            await db.commit()
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted session: %s", session_id)
        return deleted

    @staticmethod
    async def _messages_for(db: AsyncConnection, session_id: str) -> list[Message]:
        cursor = await db.execute(
            "SELECT id, session_id, text, is_user, audio_path, timestamp "
            "FROM messages WHERE session_id = ? ORDER BY seq ASC",
            (session_id,),
        )
        rows = await cursor.fetchall()
        return [Message.from_row(row) for row in rows]

    # -- Metadata --------------------------------------------------------------

    async def get_meta(self, key: str) -> str | None:
        async with self._locked() as db:
            cursor = await db.execute("SELECT value FROM meta WHERE key = ?", (key,))
            row = await cursor.fetchone()
        return row[0] if row else None

    async def set_meta(self, key: str, value: str) -> None:
        async with self._locked() as db:
            await db.execute(
                "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)", (key, value)
            )
            await db.commit()
