"""
SQLite adapter

Manages the SQLite connection in WAL mode.
The web process and the operator scripts may open the same file concurrently.

Note: do not use time or count as SQL aliases (reserved words)
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

import aiosqlite

from core.constants import Defaults

logger = logging.getLogger(__name__)

T = TypeVar("T")

# sqlite3.OperationalError messages that are safe to retry
_RETRYABLE_MESSAGES = ("database is locked", "database is busy", "database table is locked")


def is_lock_error(error: BaseException) -> bool:
    """Whether an error is lock contention (safe to retry)"""
    if not isinstance(error, sqlite3.OperationalError):
        return False
    message = str(error).lower()
    return any(text in message for text in _RETRYABLE_MESSAGES)


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
) -> aiosqlite.Connection:
    """Open a SQLite connection (WAL mode)

    The connection runs in autocommit mode; write transactions are opened
    explicitly with BEGIN IMMEDIATE by SQLiteAdapter.transaction().

    Args:
        db_path: DB file path
        readonly: open read-only

    Returns:
        aiosqlite connection
    """
    db_path_str = str(db_path)

    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    if readonly:
        conn = await aiosqlite.connect(
            f"file:{db_path_str}?mode=ro", uri=True, isolation_level=None,
        )
    else:
        conn = await aiosqlite.connect(db_path_str, isolation_level=None)

    await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute("PRAGMA busy_timeout=30000")  # 30s
    await conn.execute("PRAGMA foreign_keys=ON")

    logger.info(
        "SQLite connection opened",
        extra={"db_path": db_path_str, "readonly": readonly},
    )

    return conn


class SQLiteAdapter:
    """SQLite adapter

    Owns a write connection and serialises write transactions on it.
    A second, read-only connection serves reads from tasks outside the
    open transaction, so they only ever see committed state.
    transaction() is reentrant inside the task that opened it, so engine
    operations can compose (e.g. a billing void calling the ledger void)
    and still commit exactly once.

    Args:
        db_path: DB file path
        readonly: read-only connection
        max_retries: attempts for run_transaction on lock contention
        retry_backoff: seconds, multiplied by the attempt number

    Example:
    ```python
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()

    async with adapter.transaction():
        await adapter.execute("INSERT INTO ...")

    await adapter.close()
    ```
    """

    def __init__(
        self,
        db_path: Path | str,
        readonly: bool = False,
        max_retries: int = Defaults.MAX_COMMIT_RETRIES,
        retry_backoff: float = 0.05,
    ):
        self.db_path = Path(db_path)
        self.readonly = readonly
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self._conn: aiosqlite.Connection | None = None
        self._read_conn: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()
        self._tx_owner: asyncio.Task[Any] | None = None

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        """Whether the current task holds the write transaction"""
        return self._tx_owner is not None and self._tx_owner is asyncio.current_task()

    async def connect(self) -> None:
        if self._conn is not None:
            return

        self._conn = await create_connection(self.db_path, self.readonly)
        if not self.readonly:
            self._read_conn = await create_connection(self.db_path, readonly=True)

    async def close(self) -> None:
        if self._read_conn is not None:
            await self._read_conn.close()
            self._read_conn = None
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite connection closed")

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        if parameters:
            return await self._conn.execute(sql, parameters)
        return await self._conn.execute(sql)

    async def executemany(
        self,
        sql: str,
        parameters: list[tuple[Any, ...]],
    ) -> aiosqlite.Cursor:
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        return await self._conn.executemany(sql, parameters)

    def _reader(self) -> aiosqlite.Connection:
        """Write connection for the transaction owner, read connection otherwise"""
        if self._conn is None:
            raise RuntimeError("Not connected to database")
        if self._read_conn is None or self.in_transaction:
            return self._conn
        return self._read_conn

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        async with self._reader().execute(sql, parameters or ()) as cursor:
            return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        async with self._reader().execute(sql, parameters or ()) as cursor:
            return list(await cursor.fetchall())

    async def fetch_dicts(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[dict[str, Any]]:
        """Rows as {column: value} dicts"""
        async with self._reader().execute(sql, parameters or ()) as cursor:
            rows = await cursor.fetchall()
            columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row)) for row in rows]

    async def fetch_dict(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> dict[str, Any] | None:
        rows = await self.fetch_dicts(sql, parameters)
        return rows[0] if rows else None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Write transaction context manager

        BEGIN IMMEDIATE takes SQLite's write lock up front so the reads made
        to validate a write cannot go stale before the commit. Commits on
        success, rolls back on any exception. A nested call from the same
        task joins the outer transaction.

        Example:
        ```python
        async with adapter.transaction():
            await adapter.execute("INSERT INTO ...")
            # committed on exit
        ```
        """
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        if self.in_transaction:
            yield self._conn
            return

        async with self._write_lock:
            self._tx_owner = asyncio.current_task()
            try:
                if self._conn.in_transaction:
                    # left open by a cancelled task
                    await self._conn.rollback()
                await self._conn.execute("BEGIN IMMEDIATE")
                yield self._conn
                await self._conn.commit()
            except BaseException:
                await self._conn.rollback()
                raise
            finally:
                self._tx_owner = None

    async def run_transaction(
        self,
        fn: Callable[[], Awaitable[T]],
        max_retries: int | None = None,
    ) -> T:
        """Run fn inside one transaction, retrying lock contention

        Only sqlite3.OperationalError lock/busy failures are retried;
        every other exception propagates after the rollback. When called
        inside an open transaction, fn simply joins it.

        Args:
            fn: coroutine function doing the reads and writes
            max_retries: attempts (None uses the adapter default)

        Returns:
            fn's result
        """
        if self.in_transaction:
            return await fn()

        attempts = max_retries or self.max_retries
        attempt = 1
        while True:
            try:
                async with self.transaction():
                    return await fn()
            except sqlite3.OperationalError as e:
                if not is_lock_error(e) or attempt >= attempts:
                    raise
                logger.warning(
                    f"Transaction lock contention, retrying ({attempt}/{attempts}): {e}"
                )
                await asyncio.sleep(self.retry_backoff * attempt)
                attempt += 1

    async def table_exists(self, table_name: str) -> bool:
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type IN ('table', 'view') AND name=?",
            (table_name,),
        )
        return result is not None

    async def get_table_info(self, table_name: str) -> list[dict[str, Any]]:
        rows = await self.fetchall(f"PRAGMA table_info({table_name})")

        columns = []
        for row in rows:
            columns.append({
                "cid": row[0],
                "name": row[1],
                "type": row[2],
                "notnull": bool(row[3]),
                "default_value": row[4],
                "pk": bool(row[5]),
            })

        return columns

    # -------------------------------------------------------------------------
    # Context manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


async def init_schema(adapter: SQLiteAdapter) -> None:
    """Create every table, index and view (idempotent)

    Args:
        adapter: connected SQLiteAdapter
    """
    from core.ledger.schema import init_ledger_schema

    await init_ledger_schema(adapter)
