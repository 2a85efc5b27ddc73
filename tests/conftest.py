"""
Shared test fixtures and helpers for the Quarry test suite.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import pytest
import pytest_asyncio

from quarry.db.backends.base import ColumnInfo, ExecResult
from quarry.db.engine import QuarryDatabase
from quarry.db.link import Link
from quarry.db.probe import ServerInfo


# ============================================================================
# Fake link
# ============================================================================


class FakeLink(Link):
    """
    In-memory link that records SQL instead of running it.

    ``rows`` is what row-producing statements return (a list, or a
    callable taking ``(sql, params)``); ``rowcount`` / ``lastrowid`` feed
    the native exec path.
    """

    def __init__(
        self,
        dialect: str = "postgresql",
        version: Optional[str] = "16.2",
        *,
        rows: Union[List[Dict[str, Any]], Callable, None] = None,
        rowcount: int = 1,
        lastrowid: Optional[int] = None,
        primary_keys: Optional[List[ColumnInfo]] = None,
        pk_error: Optional[Exception] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        transaction: bool = False,
    ):
        self._dialect = dialect
        self.version = version
        self.rows = rows if rows is not None else []
        self.rowcount = rowcount
        self.lastrowid = lastrowid
        self.pk_columns = primary_keys if primary_keys is not None else []
        self.pk_error = pk_error
        self.error = error
        self.delay = delay
        self.transaction = transaction
        self.calls: List[tuple] = []
        self.pk_lookups = 0

    def is_transaction(self) -> bool:
        return self.transaction

    @property
    def dialect(self) -> str:
        return self._dialect

    async def _round_trip(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def exec(self, sql: str, params: Optional[Sequence[Any]] = None) -> ExecResult:
        self.calls.append(("exec", sql, list(params or [])))
        await self._round_trip()
        return ExecResult(rowcount=self.rowcount, lastrowid=self.lastrowid)

    async def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        self.calls.append(("query", sql, list(params or [])))
        await self._round_trip()
        if callable(self.rows):
            return self.rows(sql, params)
        return [dict(r) for r in self.rows]

    async def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        return await self.query(sql, params)

    async def server_info(self) -> ServerInfo:
        return ServerInfo(self._dialect, self.version)

    async def primary_keys(self, table: str) -> List[ColumnInfo]:
        self.pk_lookups += 1
        if self.pk_error is not None:
            raise self.pk_error
        return list(self.pk_columns)

    @property
    def last_sql(self) -> str:
        return self.calls[-1][1]

    @property
    def last_kind(self) -> str:
        return self.calls[-1][0]


def int_pk(name: str = "id", data_type: str = "integer") -> ColumnInfo:
    return ColumnInfo(name=name, data_type=data_type, nullable=False, primary_key=True)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def fake_link():
    """Factory for ``FakeLink`` instances."""
    return FakeLink


@pytest.fixture
def pk_column():
    """Factory for primary-key ``ColumnInfo`` entries."""
    return int_pk


@pytest_asyncio.fixture
async def db():
    database = QuarryDatabase("sqlite:///:memory:", alias="test")
    await database.connect()
    yield database
    await database.disconnect()


@pytest_asyncio.fixture
async def users_db(db):
    """In-memory database with a ``users`` table."""
    await db.execute(
        "CREATE TABLE users ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "name TEXT NOT NULL, "
        "email TEXT UNIQUE, "
        "score INTEGER DEFAULT 0)"
    )
    return db
