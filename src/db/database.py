# owns the store connection, provides helper methods internal to db package
import asyncio
import os.path
from contextlib import asynccontextmanager
from sqlite3 import Row
from typing import AsyncIterator, List, Optional, Sequence

import aiosqlite

from utils.logger import get_logger

_logger = get_logger(__name__)

DB_PATH = os.getenv("POS_DB_PATH", ":memory:")
SEED_DATA = os.getenv("POS_SEED", "1") != "0"

_SQL_DIR = os.path.dirname(os.path.abspath(__file__))
DB_SCHEMA_SCRIPT = os.path.join(_SQL_DIR, "schema.sql")
DB_SEED_SCRIPT = os.path.join(_SQL_DIR, "seed.sql")


class Database:
    """Single-connection store shared by every crud and cart operation.

    All access goes through ``connect()`` (reads) or ``transaction()``
    (writes). Both hold the same lock, so one task at a time talks to the
    connection. They are re-entrant for the task that already holds the lock,
    which lets a cart operation call several crud helpers inside one
    transaction. ``transaction()`` commits when the outermost block exits
    cleanly and rolls back on any exception.
    """

    def __init__(self, path: str = DB_PATH, seed: bool = SEED_DATA) -> None:
        self.path = path
        self.seed = seed
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()
        self._owner: Optional[asyncio.Task] = None

    @classmethod
    async def open(cls, path: str = DB_PATH, seed: bool = SEED_DATA) -> "Database":
        db = cls(path, seed)
        await db.start()
        return db

    async def start(self) -> None:
        if self._conn is not None:
            return
        conn = await aiosqlite.connect(self.path)
        conn.row_factory = Row
        await conn.execute("PRAGMA foreign_keys = ON;")
        self._conn = conn

        if not await _table_exists(conn, "products"):
            _logger.info(f"Initializing database at {self.path}...")
            await _run_script(conn, DB_SCHEMA_SCRIPT)
            if self.seed:
                await _run_script(conn, DB_SEED_SCRIPT)
            await conn.commit()

    async def close(self) -> None:
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None
        _logger.debug(f"Closed database at {self.path}.")

    async def __aenter__(self) -> "Database":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    @property
    def started(self) -> bool:
        return self._conn is not None

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database is not started; call start() first.")
        return self._conn

    def _held_by_current_task(self) -> bool:
        return self._owner is not None and self._owner is asyncio.current_task()

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the connection for reading."""
        if self._held_by_current_task():
            yield self._require_conn()
            return
        async with self._lock:
            self._owner = asyncio.current_task()
            try:
                yield self._require_conn()
            finally:
                self._owner = None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the connection inside a unit of work."""
        if self._held_by_current_task():
            yield self._require_conn()
            return
        async with self._lock:
            self._owner = asyncio.current_task()
            conn = self._require_conn()
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            else:
                await conn.commit()
            finally:
                self._owner = None


async def _run_script(conn: aiosqlite.Connection, script: str) -> None:
    if not os.path.exists(script) or os.path.getsize(script) == 0:
        return
    _logger.debug(f"Running script {script}...")
    with open(script, "r", encoding="utf-8") as f:
        await conn.executescript(f.read())


async def _table_exists(conn: aiosqlite.Connection, table_name: str) -> bool:
    row = await fetch_one(
        conn,
        """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name = ?;
        """,
        (table_name,),
    )
    return row is not None


async def fetch_one(
    conn: aiosqlite.Connection, sql: str, params: Sequence = ()
) -> Optional[Row]:
    cur = await conn.execute(sql, tuple(params))
    row = await cur.fetchone()
    await cur.close()
    return row


async def fetch_all(
    conn: aiosqlite.Connection, sql: str, params: Sequence = ()
) -> List[Row]:
    cur = await conn.execute(sql, tuple(params))
    rows = await cur.fetchall()
    await cur.close()
    return list(rows)


async def execute(conn: aiosqlite.Connection, sql: str, params: Sequence = ()) -> int:
    """Run a write statement; return lastrowid for inserts, rowcount otherwise."""
    cur = await conn.execute(sql, tuple(params))
    result = cur.lastrowid if sql.lstrip().upper().startswith("INSERT") else cur.rowcount
    await cur.close()
    return result
