"""
Quarry DB Backend — Base Adapter Interface.

All database backends must implement this interface. ``QuarryDatabase``
delegates to the appropriate adapter based on the connection URL, and the
``Link`` objects handed to the mutation executor call back into it.

This interface abstracts differences between SQLite, PostgreSQL, and MySQL:
- Parameter placeholder style (?, %s, $1)
- Transaction semantics (a transaction is an opaque handle)
- Native affected-count / last-insert-id reporting
- Row-producing writes (statements carrying a returning clause)
- Server version and primary-key introspection
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

logger = logging.getLogger("quarry.db.backends")

__all__ = [
    "DatabaseAdapter",
    "AdapterCapabilities",
    "ColumnInfo",
    "ExecResult",
    "rewrite_placeholders",
]


# single-quoted SQL literal, with '' as an escaped quote
_LITERAL_RE = re.compile(r"('(?:[^']|'')*')")


def rewrite_placeholders(
    sql: str,
    code: Callable[[str], str],
    literal: Optional[Callable[[str], str]] = None,
) -> str:
    """
    Apply ``code`` to the SQL outside quoted literals and ``literal``
    (identity by default) to the literals themselves.
    """
    pieces = _LITERAL_RE.split(sql)
    # split() with one capture group alternates code, literal, code, ...
    for idx, piece in enumerate(pieces):
        if idx % 2 == 0:
            pieces[idx] = code(piece)
        elif literal is not None:
            pieces[idx] = literal(piece)
    return "".join(pieces)


@dataclass(frozen=True)
class AdapterCapabilities:
    """Describes what a specific backend driver supports."""

    supports_upsert: bool = True
    supports_savepoints: bool = True
    param_style: str = "qmark"  # qmark (?) | format (%s) | numeric ($1)
    name: str = "base"


@dataclass(frozen=True)
class ExecResult:
    """Native outcome of a fire-and-forget statement."""

    rowcount: int = 0
    lastrowid: Optional[int] = None


@dataclass(frozen=True)
class ColumnInfo:
    """Introspection result for a single column."""

    name: str
    data_type: str
    nullable: bool = True
    default: Optional[str] = None
    primary_key: bool = False
    max_length: Optional[int] = None

    @property
    def is_integer(self) -> bool:
        return "int" in self.data_type.lower()


class DatabaseAdapter(ABC):
    """
    Abstract database adapter interface.

    Every query method accepts ``conn``: the handle returned by ``begin()``
    when the statement belongs to a transaction, or ``None`` to run on a
    pooled/autocommit connection.
    """

    capabilities: AdapterCapabilities = AdapterCapabilities()

    @abstractmethod
    async def connect(self, url: str, **options) -> None:
        """Open a connection to the database."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the database connection."""
        ...

    @abstractmethod
    async def execute(
        self, sql: str, params: Optional[Sequence[Any]] = None, *, conn: Any = None
    ) -> ExecResult:
        """Execute a statement through the native exec path."""
        ...

    @abstractmethod
    async def execute_returning(
        self, sql: str, params: Optional[Sequence[Any]] = None, *, conn: Any = None
    ) -> List[Dict[str, Any]]:
        """Execute a writing statement that produces rows, and commit it."""
        ...

    @abstractmethod
    async def fetch_all(
        self, sql: str, params: Optional[Sequence[Any]] = None, *, conn: Any = None
    ) -> List[Dict[str, Any]]:
        """Execute a read and return all rows as dicts."""
        ...

    # ── Transaction management ───────────────────────────────────────

    @abstractmethod
    async def begin(self) -> Any:
        """Start a transaction and return its handle."""
        ...

    @abstractmethod
    async def commit(self, handle: Any) -> None:
        """Commit the transaction behind ``handle``."""
        ...

    @abstractmethod
    async def rollback(self, handle: Any) -> None:
        """Roll back the transaction behind ``handle``."""
        ...

    # ── Introspection ────────────────────────────────────────────────

    @abstractmethod
    async def server_version(self) -> str:
        """Return the raw server version banner."""
        ...

    @abstractmethod
    async def get_columns(self, table_name: str) -> List[ColumnInfo]:
        """Get column info for a table, primary-key flags included."""
        ...

    def dialect_for_version(self, version: str) -> str:
        """Refine the dialect name once the server banner is known."""
        return self.dialect

    # ── SQL adaptation ───────────────────────────────────────────────

    def adapt_sql(self, sql: str) -> str:
        """
        Adapt SQL placeholders from qmark (?) to the backend's param style.

        Override this in backends that use a different param style.
        """
        return sql

    @property
    def is_connected(self) -> bool:
        return False

    @property
    def dialect(self) -> str:
        return self.capabilities.name
