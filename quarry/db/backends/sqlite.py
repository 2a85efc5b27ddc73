"""
Quarry DB Backend — SQLite adapter via aiosqlite.

This is the default backend. It wraps a single aiosqlite connection, so a
transaction handle is that same connection. While a transaction is open,
statements from other tasks wait for it to finish rather than run inside it.

RETURNING is available from SQLite 3.35.0; the version gate itself lives
in the dialect profile, this adapter only reports ``sqlite_version()``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from .base import (
    DatabaseAdapter,
    AdapterCapabilities,
    ColumnInfo,
    ExecResult,
)

try:
    import aiosqlite
except ImportError:
    aiosqlite = None  # type: ignore[assignment]

logger = logging.getLogger("quarry.db.backends.sqlite")

__all__ = ["SQLiteAdapter"]


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite adapter using aiosqlite.

    Features:
    - WAL journal mode for concurrent reads
    - Foreign key enforcement
    - Row-producing writes committed after the rows are read
    - Column and primary-key introspection via PRAGMA table_info
    """

    capabilities = AdapterCapabilities(
        supports_upsert=True,
        supports_savepoints=True,
        param_style="qmark",
        name="sqlite",
    )

    def __init__(self):
        self._connection: Any = None
        self._connected = False
        self._lock = asyncio.Lock()
        self._gate = asyncio.Lock()
        self._tx_owner: Optional[asyncio.Task] = None

    async def connect(self, url: str, **options) -> None:
        if aiosqlite is None:
            raise ImportError("SQLite support needs aiosqlite (pip install aiosqlite)")
        async with self._lock:
            if self._connected:
                return
            path = self._parse_url(url)
            connection = await aiosqlite.connect(path, timeout=options.get("busy_timeout", 5.0))
            connection.row_factory = aiosqlite.Row
            if path != ":memory:":
                await connection.execute("PRAGMA journal_mode=WAL")
            await connection.execute("PRAGMA foreign_keys=ON")
            self._connection = connection
            self._connected = True
            logger.info(f"SQLite connected: {path}")

    async def disconnect(self) -> None:
        async with self._lock:
            connection, self._connection = self._connection, None
            was_connected, self._connected = self._connected, False
            self._end_transaction()
            if connection is not None:
                await connection.close()
            if was_connected:
                logger.info("SQLite disconnected")

    def _require_connection(self) -> Any:
        if not self._connected:
            raise RuntimeError("Not connected")
        return self._connection

    async def _run(self, sql: str, params: Optional[Sequence[Any]], conn: Any, *, rows: bool) -> Any:
        connection = self._require_connection()
        if conn is not None:
            return await self._cursor(connection, sql, params, rows=rows, commit=False)
        if self._tx_owner is not None and self._tx_owner is asyncio.current_task():
            raise RuntimeError(
                "SQLite has one connection; statements inside a transaction "
                "must go through its link"
            )
        # Outside a transaction: wait until any open one has finished.
        async with self._gate:
            return await self._cursor(connection, sql, params, rows=rows, commit=True)

    @staticmethod
    async def _cursor(connection: Any, sql: str, params: Optional[Sequence[Any]], *, rows: bool, commit: bool) -> Any:
        cursor = await connection.execute(sql, list(params or []))
        try:
            if rows:
                outcome: Any = [dict(row) for row in await cursor.fetchall()]
            else:
                outcome = ExecResult(rowcount=max(cursor.rowcount, 0), lastrowid=cursor.lastrowid)
        finally:
            await cursor.close()
        if commit:
            await connection.commit()
        return outcome

    async def execute(
        self, sql: str, params: Optional[Sequence[Any]] = None, *, conn: Any = None
    ) -> ExecResult:
        return await self._run(sql, params, conn, rows=False)

    async def execute_returning(
        self, sql: str, params: Optional[Sequence[Any]] = None, *, conn: Any = None
    ) -> List[Dict[str, Any]]:
        return await self._run(sql, params, conn, rows=True)

    async def fetch_all(
        self, sql: str, params: Optional[Sequence[Any]] = None, *, conn: Any = None
    ) -> List[Dict[str, Any]]:
        return await self._run(sql, params, conn, rows=True)

    # ── Transactions ─────────────────────────────────────────────────
    #
    # One connection means one transaction at a time. ``begin`` holds the
    # gate until ``commit``/``rollback``; other tasks' statements queue
    # behind it instead of landing inside it.

    async def begin(self) -> Any:
        connection = self._require_connection()
        await self._gate.acquire()
        self._tx_owner = asyncio.current_task()
        try:
            await connection.execute("BEGIN")
        except BaseException:
            self._end_transaction()
            raise
        return connection

    async def commit(self, handle: Any) -> None:
        try:
            await handle.commit()
        finally:
            self._end_transaction()

    async def rollback(self, handle: Any) -> None:
        try:
            await handle.rollback()
        finally:
            self._end_transaction()

    def _end_transaction(self) -> None:
        if self._tx_owner is None:
            return
        self._tx_owner = None
        self._gate.release()

    # ── Introspection ────────────────────────────────────────────────
    # Metadata reads bypass the gate so they work inside a transaction.

    async def _read_metadata(self, sql: str) -> List[Dict[str, Any]]:
        return await self._cursor(self._require_connection(), sql, None, rows=True, commit=False)

    async def server_version(self) -> str:
        rows = await self._read_metadata("SELECT sqlite_version() AS version")
        return str(rows[0]["version"]) if rows else ""

    async def get_columns(self, table_name: str) -> List[ColumnInfo]:
        quoted = table_name.replace('"', '""')
        rows = await self._read_metadata(f'PRAGMA table_info("{quoted}")')
        columns = []
        for row in rows:
            columns.append(ColumnInfo(
                name=row["name"],
                data_type=row["type"] or "",
                nullable=not row["notnull"],
                default=row["dflt_value"],
                primary_key=bool(row["pk"]),
            ))
        return columns

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def dialect(self) -> str:
        return "sqlite"

    @staticmethod
    def _parse_url(url: str) -> str:
        """``sqlite:///app.db`` -> ``app.db``; an empty path means in-memory."""
        _, sep, rest = url.partition(":")
        path = rest.lstrip("/") if sep else url
        if rest.startswith("////"):
            path = "/" + path
        return path or ":memory:"
