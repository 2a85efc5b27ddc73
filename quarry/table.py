"""
Quarry Table — fluent, immutable mutation builder.

Every chaining method returns a new ``Table``; terminals build a statement
and hand it to the database's ``MutationExecutor``.

Usage:
    users = db.table("users")

    result = await users.data([{"name": "john"}, {"name": "jane"}]).returning("id", "name").insert()
    [r["id"] for r in result.get_records()]

    await users.where(id=1).data({"name": "john2"}).update()
    await users.where("created_at < ?", cutoff).returning_all().delete()

    # Scan helpers force RETURNING * and fill a destination:
    created = await users.data({"name": "kate"}).insert_and_scan(User)      # -> [User]
    await users.where(id=1).data({"name": "x"}).update_and_scan(existing)   # merges into existing
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple, Type, Union

from .dialects import Operation
from .faults import MaterializeFault, NotSupportedFault, RecordNotFoundFault
from .materialize.scan import element_type, field_names, is_struct_like, merge_record
from .mutation.options import MutationOptions
from .mutation.statements import (
    Condition,
    DeleteStatement,
    InsertMode,
    InsertStatement,
    MutationStatement,
    UpdateStatement,
)
from .result import Result

if TYPE_CHECKING:
    from .db.engine import QuarryDatabase
    from .db.link import Link

__all__ = ["Table"]


class Table:
    """Immutable mutation builder bound to one table of one database."""

    def __init__(self, database: "QuarryDatabase", name: str):
        if not name:
            raise ValueError("Table name is required")
        self._db = database
        self._name = name
        self._rows: Tuple[Dict[str, Any], ...] = ()
        self._conditions: Tuple[Condition, ...] = ()
        self._options = MutationOptions()
        self._link: Optional["Link"] = None
        self._on_conflict: Tuple[str, ...] = ()

    def _clone(self) -> Table:
        c = Table(self._db, self._name)
        c._rows = self._rows
        c._conditions = self._conditions
        c._options = self._options
        c._link = self._link
        c._on_conflict = self._on_conflict
        return c

    @property
    def name(self) -> str:
        return self._name

    @property
    def options(self) -> MutationOptions:
        return self._options

    # ── Chaining ─────────────────────────────────────────────────────

    def data(self, rows: Union[Mapping, Any, Sequence[Any]]) -> Table:
        """
        Set the row(s) to write.

        Accepts a mapping, an object (its declared attributes are used), or
        a list of either.
        """
        if isinstance(rows, (list, tuple)):
            items = [_as_row(r) for r in rows]
        else:
            items = [_as_row(rows)]
        new = self._clone()
        new._rows = tuple(items)
        return new

    def where(self, clause: Optional[str] = None, *args: Any, **kwargs: Any) -> Table:
        """
        Add a WHERE term; terms are joined with AND.

        Usage:
            .where("age > ?", 18)
            .where("status = :status", status="active")
            .where("a = ? AND b = :b", 5, b=2)    # values bound in textual order
            .where(id=1, deleted_at=None)     # "id" = ? AND "deleted_at" IS NULL
            .where(id=[1, 2, 3])              # "id" IN (?, ?, ?)
        """
        new = self._clone()
        conditions = list(self._conditions)
        if clause is not None:
            if kwargs:
                conditions.append(Condition.raw(*_bind_placeholders(clause, args, kwargs)))
            else:
                conditions.append(Condition.raw(clause, *args))
        else:
            if args:
                raise TypeError("positional arguments need a clause")
            for column, value in kwargs.items():
                conditions.append(Condition.equals(column, value))
        new._conditions = tuple(conditions)
        return new

    def returning(self, *fields: str) -> Table:
        new = self._clone()
        new._options = self._options.with_returning(*fields)
        return new

    def returning_all(self) -> Table:
        new = self._clone()
        new._options = self._options.with_returning_all()
        return new

    def primary_key(self, name: str, data_type: str = "integer") -> Table:
        new = self._clone()
        new._options = self._options.with_primary_key(name, data_type)
        return new

    def auto_primary_key(self, enabled: bool = True) -> Table:
        new = self._clone()
        new._options = self._options.with_auto_primary_key(enabled)
        return new

    def timeout(self, seconds: Optional[float]) -> Table:
        new = self._clone()
        new._options = self._options.with_timeout(seconds)
        return new

    def link(self, link: Optional["Link"]) -> Table:
        """Run on ``link`` instead of the context transaction / master link."""
        new = self._clone()
        new._link = link
        return new

    def on_conflict(self, *columns: str) -> Table:
        new = self._clone()
        new._on_conflict = tuple(columns)
        return new

    # ── Terminals ────────────────────────────────────────────────────

    async def insert(self) -> Result:
        return await self._execute(self._insert_statement(InsertMode.INSERT))

    async def insert_ignore(self) -> Result:
        return await self._execute(self._insert_statement(InsertMode.IGNORE))

    async def replace(self) -> Result:
        return await self._execute(self._insert_statement(InsertMode.REPLACE))

    async def save(self, on_conflict: Optional[Sequence[str]] = None) -> Result:
        """Upsert: insert, or update the conflicting row."""
        conflict = await self._conflict_columns(on_conflict)
        return await self._execute(self._insert_statement(InsertMode.SAVE, conflict))

    async def update(self) -> Result:
        return await self._execute(self._update_statement())

    async def delete(self) -> Result:
        return await self._execute(self._delete_statement())

    # ── Scan helpers ─────────────────────────────────────────────────

    async def insert_and_scan(self, into: Any, model: Optional[Type] = None) -> Any:
        return await self._scan(self._insert_statement(InsertMode.INSERT), into, model)

    async def insert_ignore_and_scan(self, into: Any, model: Optional[Type] = None) -> Any:
        return await self._scan(self._insert_statement(InsertMode.IGNORE), into, model)

    async def replace_and_scan(self, into: Any, model: Optional[Type] = None) -> Any:
        return await self._scan(self._insert_statement(InsertMode.REPLACE), into, model)

    async def save_and_scan(
        self,
        into: Any,
        model: Optional[Type] = None,
        on_conflict: Optional[Sequence[str]] = None,
    ) -> Any:
        conflict = await self._conflict_columns(on_conflict)
        return await self._scan(self._insert_statement(InsertMode.SAVE, conflict), into, model)

    async def update_and_scan(self, into: Any, model: Optional[Type] = None) -> Any:
        return await self._scan(self._update_statement(), into, model)

    async def delete_and_scan(self, into: Any, model: Optional[Type] = None) -> Any:
        return await self._scan(self._delete_statement(), into, model)

    async def supports_multi_row_returning(self, operation: Union[Operation, str] = Operation.INSERT) -> bool:
        """Whether one statement on this table's server can return several rows."""
        executor = self._db.executor
        info = await executor.resolve_link(self._link).server_info()
        return executor.negotiator.supports_multi_row(info.dialect, Operation(operation), info.version)

    # ── Internals ────────────────────────────────────────────────────

    def _insert_statement(self, mode: InsertMode, conflict: Sequence[str] = ()) -> InsertStatement:
        if not self._rows:
            raise ValueError(f"No data given for {mode.value} on '{self._name}'")
        return InsertStatement(self._name, self._rows, mode=mode, conflict=conflict)

    def _update_statement(self) -> UpdateStatement:
        if len(self._rows) != 1:
            raise ValueError("update() needs exactly one mapping of new values")
        if not self._conditions:
            raise ValueError(f"update() on '{self._name}' needs a where() condition")
        return UpdateStatement(self._name, self._rows[0], self._conditions)

    def _delete_statement(self) -> DeleteStatement:
        if not self._conditions:
            raise ValueError(f"delete() on '{self._name}' needs a where() condition")
        return DeleteStatement(self._name, self._conditions)

    async def _conflict_columns(self, on_conflict: Optional[Sequence[str]]) -> Tuple[str, ...]:
        if on_conflict:
            return tuple(on_conflict)
        if self._on_conflict:
            return self._on_conflict
        if self._options.primary_key is not None:
            return (self._options.primary_key.name,)
        link = self._db.executor.resolve_link(self._link)
        keys = await link.primary_keys(self._name)
        return tuple(k.name for k in keys)

    async def _execute(self, statement: MutationStatement) -> Result:
        return await self._db.executor.execute(statement, self._options, self._link)

    async def _scan(self, statement: MutationStatement, into: Any, model: Optional[Type]) -> Any:
        executor = self._db.executor
        result = await executor.execute(statement, self._options.with_returning_all(), self._link)
        records = result.get_records()
        if records.is_absent:
            raise NotSupportedFault(
                "Scan after write",
                "the statement produced no records",
                operation=statement.operation.value,
            )
        if not records:
            raise RecordNotFoundFault(self._name, statement.operation.value)

        if isinstance(into, type):
            return records.structs(into)
        if isinstance(into, list):
            cls = model or element_type(into)
            if cls is None:
                raise MaterializeFault(self._name, "empty destination list needs a model type")
            into.extend(records.structs(cls))
            return into
        if is_struct_like(into):
            return merge_record(into, records[0])
        raise MaterializeFault(
            self._name,
            f"scan destination must be a class, an object or a list, got {type(into).__name__}",
        )

    def __repr__(self) -> str:
        return f"Table({self._name!r})"


def _as_row(item: Any) -> Dict[str, Any]:
    if isinstance(item, Mapping):
        return dict(item)
    if is_struct_like(item):
        return {name: getattr(item, name, None) for name in field_names(item)}
    raise TypeError(f"Cannot use {type(item).__name__} as row data")


# A quoted literal (skipped), a positional ``?`` or a ``:name`` placeholder.
# ``::`` casts and ``a:b`` inside identifiers are not placeholders.
_PLACEHOLDER_RE = re.compile(r"'(?:[^']|'')*'|\?|(?<![:\w]):([A-Za-z_]\w*)")
_UNSET = object()


def _bind_placeholders(
    clause: str, args: Sequence[Any], kwargs: Mapping[str, Any]
) -> Tuple[Any, ...]:
    """
    Rewrite ``:name`` placeholders to ``?`` and collect the values in the
    order the placeholders appear, mixing in positional ``?`` values.

    Returns ``(sql, *values)``.
    """
    positional = iter(args)
    values: List[Any] = []
    used = set()

    def substitute(match: "re.Match[str]") -> str:
        token = match.group(0)
        if token.startswith("'"):
            return token
        name = match.group(1)
        if name is None:
            try:
                values.append(next(positional))
            except StopIteration:
                raise TypeError(f"Not enough positional values for {clause!r}") from None
        else:
            if name not in kwargs:
                raise TypeError(f"No value given for :{name} in {clause!r}")
            values.append(kwargs[name])
            used.add(name)
        return "?"

    sql = _PLACEHOLDER_RE.sub(substitute, clause)
    if next(positional, _UNSET) is not _UNSET:
        raise TypeError(f"Too many positional values for {clause!r}")
    unused = sorted(set(kwargs) - used)
    if unused:
        raise TypeError(f"Unused named values {unused} for {clause!r}")
    return (sql, *values)
