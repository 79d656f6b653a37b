"""Tests for the async libsql connection wrapper."""

from pathlib import Path

from concierge.db import AsyncConnection, open_connection


class TestOpenConnection:
    async def test_returns_async_connection(self, tmp_path: Path):
        conn = await open_connection(tmp_path / "test.db")
        assert isinstance(conn, AsyncConnection)
        await conn.close()

    async def test_creates_parent_dirs(self, tmp_path: Path):
        db_path = tmp_path / "nested" / "dir" / "test.db"
        conn = await open_connection(db_path)
        assert db_path.parent.exists()
        await conn.close()


class TestAsyncConnection:
    async def test_execute_and_fetchall(self, tmp_path: Path):
        conn = await open_connection(tmp_path / "test.db")
        await conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
        await conn.execute("INSERT INTO t (name) VALUES (?)", ("alice",))
        await conn.commit()

        cursor = await conn.execute("SELECT name FROM t")
        rows = await cursor.fetchall()
        assert rows == [("alice",)]
        await conn.close()

    async def test_execute_many(self, tmp_path: Path):
        conn = await open_connection(tmp_path / "test.db")
        await conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
        await conn.execute_many("INSERT INTO t (name) VALUES (?)", [("a",), ("b",), ("c",)])
        await conn.commit()

        cursor = await conn.execute("SELECT COUNT(*) FROM t")
        row = await cursor.fetchone()
        assert row == (3,)
        await conn.close()

    async def test_fetchone_returns_none_when_empty(self, tmp_path: Path):
        conn = await open_connection(tmp_path / "test.db")
        await conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY)")

        cursor = await conn.execute("SELECT * FROM t WHERE id = 999")
        row = await cursor.fetchone()
        assert row is None
        await conn.close()

    async def test_rollback_discards_uncommitted_rows(self, tmp_path: Path):
        conn = await open_connection(tmp_path / "test.db")
        await conn.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
        await conn.commit()
        await conn.execute("INSERT INTO t (name) VALUES (?)", ("draft",))
        await conn.rollback()

        cursor = await conn.execute("SELECT COUNT(*) FROM t")
        assert await cursor.fetchone() == (0,)
        await conn.close()
