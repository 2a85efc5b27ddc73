"""
Quarry Mutation — executor.

``MutationExecutor.execute()`` runs one INSERT / UPDATE / DELETE on one
resolved link and produces a ``Result``. It picks exactly one of three
paths, in this order:

1. Explicit returning: the caller listed fields. The clause is negotiated
   for the server's dialect; if the dialect cannot produce rows the call
   fails with ``NotSupportedFault`` before any SQL is sent. Otherwise the
   statement runs as a row-producing query and the rows become the
   result's records.
2. Automatic primary key: an INSERT with no explicit request on a table
   whose single primary key is integer-typed. The key is requested through
   the returning clause and the last row's value becomes
   ``last_insert_id``. Any obstacle (dialect, introspection failure,
   composite key) silently falls through to path 3.
3. Plain: the native exec path. Affected count and last insert id come
   from the driver.

Driver exceptions are not wrapped; they reach the caller as raised.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional

from ..dialects import (
    Clause,
    ClauseNegotiator,
    DialectProfile,
    Operation,
    Unsupported,
    default_negotiator,
)
from ..db.link import Link
from ..db.probe import ServerInfo
from ..faults import NotSupportedFault, QueryTimeoutFault
from ..records import Record, RecordSet
from ..result import PlainResult, Result, ReturningResult
from .options import MutationOptions
from .statements import MutationStatement

if TYPE_CHECKING:
    from ..db.engine import QuarryDatabase

logger = logging.getLogger("quarry.mutation")

__all__ = ["MutationExecutor"]


class MutationExecutor:
    """
    Runs mutation statements and builds their results.

    ``database`` may be ``None`` when every call passes an explicit link;
    it supplies the context-bound transaction, the master link, the default
    timeout and the automatic primary-key switch.
    """

    def __init__(
        self,
        database: Optional["QuarryDatabase"] = None,
        negotiator: ClauseNegotiator = default_negotiator,
    ):
        self._database = database
        self._negotiator = negotiator

    @property
    def negotiator(self) -> ClauseNegotiator:
        return self._negotiator

    def resolve_link(self, link: Optional[Link] = None) -> Link:
        """Explicit link, else the task-bound transaction, else the master link."""
        if link is not None:
            return link
        if self._database is None:
            raise ValueError("MutationExecutor without a database needs an explicit link")
        bound = self._database.bound_transaction()
        if bound is not None:
            return bound
        return self._database.master_link()

    async def execute(
        self,
        statement: MutationStatement,
        options: Optional[MutationOptions] = None,
        link: Optional[Link] = None,
    ) -> Result:
        options = options or MutationOptions()
        link = self.resolve_link(link)
        timeout = options.timeout
        if timeout is None and self._database is not None:
            timeout = self._database.default_timeout

        if timeout is None:
            return await self._run(statement, options, link)
        try:
            return await asyncio.wait_for(self._run(statement, options, link), timeout)
        except asyncio.TimeoutError:
            logger.debug(f"{statement.operation.value} on {statement.table} timed out after {timeout}s")
            raise QueryTimeoutFault(statement.table, statement.operation.value, timeout) from None

    # ── Paths ────────────────────────────────────────────────────────

    async def _run(self, statement: MutationStatement, options: MutationOptions, link: Link) -> Result:
        info = await link.server_info()
        profile = self._negotiator.profile(info.dialect)

        if options.wants_returning:
            return await self._run_returning(statement, options, link, info, profile)

        if self._auto_enabled(options):
            pk = await self._auto_primary_key(statement, options, link, info)
            if pk is not None:
                clause = self._negotiator.negotiate(info.dialect, statement.operation, [pk], info.version)
                if isinstance(clause, Clause):
                    return await self._run_auto(statement, link, info, profile, clause, pk)

        return await self._run_plain(statement, link, info, profile)

    async def _run_returning(
        self,
        statement: MutationStatement,
        options: MutationOptions,
        link: Link,
        info: ServerInfo,
        profile: DialectProfile,
    ) -> Result:
        op = statement.operation
        clause = self._negotiator.negotiate(info.dialect, op, options.returning, info.version)
        if isinstance(clause, Unsupported):
            raise clause.to_fault()
        if clause is None:
            return await self._run_plain(statement, link, info, profile)
        if statement.row_count > 1 and not self._negotiator.supports_multi_row(info.dialect, op, info.version):
            raise NotSupportedFault(
                "Multi-row RETURNING",
                f"cannot return {statement.row_count} rows from one statement",
                dialect=info.dialect,
                operation=op.value,
            )

        sql, params = statement.render(profile, clause)
        rows = await link.query(sql, params)
        records = RecordSet(rows)
        logger.debug(f"{op.value} on {statement.table} returned {len(records)} record(s)")
        return ReturningResult(
            records,
            last_insert_id_error=NotSupportedFault(
                "LastInsertId",
                "not available when a returning clause is used; read it from the records",
                dialect=info.dialect,
                operation=op.value,
            ),
        )

    async def _run_auto(
        self,
        statement: MutationStatement,
        link: Link,
        info: ServerInfo,
        profile: DialectProfile,
        clause: Clause,
        pk: str,
    ) -> Result:
        sql, params = statement.render(profile, clause)
        rows = await link.query(sql, params)
        if not rows:
            return PlainResult(0)

        value = Record(rows[-1]).lookup(pk)
        last_id = _as_int(value)
        if last_id is None:
            return PlainResult(
                len(rows),
                last_insert_id_error=NotSupportedFault(
                    "LastInsertId",
                    f"primary key {pk!r} returned non-integer value {value!r}",
                    dialect=info.dialect,
                    operation=statement.operation.value,
                ),
            )
        return PlainResult(len(rows), last_id)

    async def _run_plain(
        self,
        statement: MutationStatement,
        link: Link,
        info: ServerInfo,
        profile: DialectProfile,
    ) -> Result:
        sql, params = statement.render(profile)
        outcome = await link.exec(sql, params)
        if not profile.native_last_insert_id:
            return PlainResult(
                outcome.rowcount,
                last_insert_id_error=NotSupportedFault(
                    "LastInsertId",
                    "the driver does not report generated keys",
                    dialect=info.dialect,
                    operation=statement.operation.value,
                ),
            )
        last_id = outcome.lastrowid if statement.operation is Operation.INSERT else None
        return PlainResult(outcome.rowcount, last_id)

    # ── Automatic primary key ────────────────────────────────────────

    def _auto_enabled(self, options: MutationOptions) -> bool:
        if options.auto_primary_key is not None:
            return options.auto_primary_key
        if self._database is not None:
            return self._database.auto_primary_key
        return True

    async def _auto_primary_key(
        self,
        statement: MutationStatement,
        options: MutationOptions,
        link: Link,
        info: ServerInfo,
    ) -> Optional[str]:
        """Name of the column to request, or ``None`` to take the plain path."""
        op = statement.operation
        if op is not Operation.INSERT:
            return None

        # Dialect first, so unsupported backends never pay for introspection.
        if self._negotiator.availability(info.dialect, op, info.version) is not None:
            return None
        if statement.row_count > 1 and not self._negotiator.supports_multi_row(info.dialect, op, info.version):
            return None

        hint = options.primary_key
        if hint is not None:
            return hint.name if hint.is_integer else None

        try:
            keys = await link.primary_keys(statement.table)
        except Exception as exc:
            logger.debug(f"Primary key lookup for {statement.table} failed, using plain insert: {exc}")
            return None

        if len(keys) != 1 or not keys[0].is_integer:
            return None
        return keys[0].name


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None
