"""
Quarry DB — links.

A ``Link`` is the connection handle one mutation runs on: either the
database's master link (pooled / autocommit) or a ``TransactionLink``
wrapping an open transaction.

The transaction opened by ``QuarryDatabase.transaction()`` is bound to the
current task context through a ``ContextVar``. The executor resolves the
link once per call: an explicit link wins, then the context-bound
transaction for that database, then the master link.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextvars import ContextVar, Token
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence

from .backends.base import ColumnInfo, ExecResult
from .probe import ServerInfo

if TYPE_CHECKING:
    from .engine import QuarryDatabase

logger = logging.getLogger("quarry.db")

__all__ = [
    "Link",
    "MasterLink",
    "TransactionLink",
    "bound_transaction",
    "bind_transaction",
    "unbind_transaction",
]


class Link(ABC):
    """Connection handle a single mutation executes on."""

    @abstractmethod
    def is_transaction(self) -> bool:
        ...

    @property
    @abstractmethod
    def dialect(self) -> str:
        """Dialect implied by the connection URL (before probing)."""

    @abstractmethod
    async def exec(self, sql: str, params: Optional[Sequence[Any]] = None) -> ExecResult:
        """Run a statement on the native exec path."""

    @abstractmethod
    async def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Run a row-producing write and return its rows."""

    @abstractmethod
    async def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Run a read and return its rows."""

    @abstractmethod
    async def server_info(self) -> ServerInfo:
        """Probed dialect and version of the server behind this link."""

    @abstractmethod
    async def primary_keys(self, table: str) -> List[ColumnInfo]:
        """Primary-key columns of ``table``."""


class _DatabaseLink(Link):
    """Link backed by a ``QuarryDatabase`` adapter and an optional handle."""

    __slots__ = ("_database", "_handle")

    def __init__(self, database: "QuarryDatabase", handle: Any = None):
        self._database = database
        self._handle = handle

    @property
    def database(self) -> "QuarryDatabase":
        return self._database

    @property
    def dialect(self) -> str:
        return self._database.dialect

    async def exec(self, sql: str, params: Optional[Sequence[Any]] = None) -> ExecResult:
        adapter = await self._adapter()
        logger.debug(f"exec [{self}]: {sql} {list(params or [])}")
        return await adapter.execute(sql, params, conn=self._handle)

    async def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        adapter = await self._adapter()
        logger.debug(f"query [{self}]: {sql} {list(params or [])}")
        return await adapter.execute_returning(sql, params, conn=self._handle)

    async def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        adapter = await self._adapter()
        return await adapter.fetch_all(sql, params, conn=self._handle)

    async def server_info(self) -> ServerInfo:
        return await self._database.server_info()

    async def primary_keys(self, table: str) -> List[ColumnInfo]:
        return await self._database.primary_keys(table)

    async def _adapter(self):
        await self._database.ensure_connected()
        return self._database.adapter


class MasterLink(_DatabaseLink):
    """The database's default, non-transactional link."""

    def is_transaction(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"MasterLink({self._database.alias})"


class TransactionLink(_DatabaseLink):
    """Link bound to one open transaction."""

    __slots__ = ("_closed",)

    def __init__(self, database: "QuarryDatabase", handle: Any):
        super().__init__(database, handle)
        self._closed = False

    def is_transaction(self) -> bool:
        return True

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    async def _adapter(self):
        if self._closed:
            raise RuntimeError("Transaction already finished")
        return self._database.adapter

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"TransactionLink({self._database.alias}, {state})"


# ── Task-scoped transaction binding ─────────────────────────────────

_EMPTY: Mapping[Any, TransactionLink] = MappingProxyType({})

_bound: ContextVar[Mapping[Any, TransactionLink]] = ContextVar(
    "quarry_bound_transactions", default=_EMPTY
)


def bound_transaction(database: Any) -> Optional[TransactionLink]:
    """Transaction bound to ``database`` in the current context, if any."""
    return _bound.get().get(database)


def bind_transaction(database: Any, link: TransactionLink) -> Token:
    current = dict(_bound.get())
    current[database] = link
    return _bound.set(MappingProxyType(current))


def unbind_transaction(token: Token) -> None:
    _bound.reset(token)
