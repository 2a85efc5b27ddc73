"""
Quarry Mutation — statement builders.

Parameterized INSERT / UPDATE / DELETE statements rendered per dialect.
All values are bound as ``?`` parameters; adapters translate to the
driver's placeholder style. Identifiers are quoted with the dialect's
quote pair.

A negotiated ``Clause`` is spliced in at render time: ``RETURNING`` is
appended after the statement (after any conflict clause), ``OUTPUT`` sits
before ``VALUES`` / ``WHERE``.

Usage:
    stmt = InsertStatement("users", [{"name": "john"}, {"name": "jane"}])
    sql, params = stmt.render(PROFILES["postgresql"])
    # INSERT INTO "users" ("name") VALUES (?), (?)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..dialects import Clause, ClausePlacement, DialectProfile, Operation
from ..faults import NotSupportedFault

__all__ = [
    "InsertMode",
    "Condition",
    "MutationStatement",
    "InsertStatement",
    "UpdateStatement",
    "DeleteStatement",
]


class InsertMode(str, Enum):
    INSERT = "insert"
    IGNORE = "insert_ignore"
    REPLACE = "replace"
    SAVE = "save"


@dataclass(frozen=True)
class Condition:
    """
    One WHERE term.

    Either raw SQL text with ``?`` placeholders, or a column compared to a
    value (``=``, ``IS NULL`` or ``IN`` depending on the value).
    """

    text: Optional[str] = None
    column: Optional[str] = None
    args: Tuple[Any, ...] = ()

    @classmethod
    def raw(cls, text: str, *args: Any) -> Condition:
        return cls(text=text, args=tuple(args))

    @classmethod
    def equals(cls, column: str, value: Any) -> Condition:
        return cls(column=column, args=(value,))

    def render(self, profile: DialectProfile) -> Tuple[str, List[Any]]:
        if self.column is None:
            return self.text or "", list(self.args)
        name = profile.quote(self.column)
        value = self.args[0]
        if value is None:
            return f"{name} IS NULL", []
        if isinstance(value, (list, tuple, set, frozenset)):
            values = list(value)
            if not values:
                return "1 = 0", []
            return f"{name} IN ({', '.join('?' for _ in values)})", values
        return f"{name} = ?", [value]


def _render_where(conditions: Sequence[Condition], profile: DialectProfile) -> Tuple[str, List[Any]]:
    if not conditions:
        return "", []
    parts: List[str] = []
    params: List[Any] = []
    for cond in conditions:
        text, args = cond.render(profile)
        parts.append(f"({text})")
        params.extend(args)
    return " WHERE " + " AND ".join(parts), params


class MutationStatement(ABC):
    """A statement the executor can render with or without a clause."""

    operation: Operation

    def __init__(self, table: str):
        if not table:
            raise ValueError("Table name is required")
        self.table = table

    @property
    def row_count(self) -> int:
        """Rows the statement writes in one go (relevant for INSERT)."""
        return 1

    @abstractmethod
    def render(self, profile: DialectProfile, clause: Optional[Clause] = None) -> Tuple[str, List[Any]]:
        ...


class InsertStatement(MutationStatement):
    """
    Single- or multi-row INSERT, with IGNORE / REPLACE / SAVE variants.

    Multi-row inserts use the union of all row keys (first-seen order);
    a row missing a column binds ``NULL`` for it.
    """

    operation = Operation.INSERT

    def __init__(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        mode: InsertMode = InsertMode.INSERT,
        conflict: Sequence[str] = (),
    ):
        super().__init__(table)
        self.rows: Tuple[Dict[str, Any], ...] = tuple(dict(r) for r in rows)
        if not self.rows:
            raise ValueError("No rows to insert")
        self.columns: Tuple[str, ...] = _column_union(self.rows)
        if not self.columns:
            raise ValueError("Insert rows have no columns")
        self.mode = InsertMode(mode)
        self.conflict: Tuple[str, ...] = tuple(conflict)
        if self.mode is InsertMode.SAVE and not self.conflict:
            raise ValueError("save() needs conflict columns (on_conflict or a primary key)")

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def render(self, profile: DialectProfile, clause: Optional[Clause] = None) -> Tuple[str, List[Any]]:
        q = profile.quote
        verb, conflict_sql = self._variant(profile)
        col_names = ", ".join(q(c) for c in self.columns)
        row_sql = "(" + ", ".join("?" for _ in self.columns) + ")"
        params: List[Any] = []
        for row in self.rows:
            params.extend(row.get(c) for c in self.columns)

        sql = f"{verb} {q(self.table)} ({col_names})"
        if clause is not None and clause.placement is ClausePlacement.OUTPUT:
            sql += f" {clause.text}"
        sql += " VALUES " + ", ".join(row_sql for _ in self.rows)
        if conflict_sql:
            sql += f" {conflict_sql}"
        if clause is not None and clause.placement is ClausePlacement.SUFFIX:
            sql += f" {clause.text}"
        return sql, params

    def _variant(self, profile: DialectProfile) -> Tuple[str, str]:
        dialect = profile.name
        q = profile.quote
        mysql_like = dialect in ("mysql", "mariadb")

        if self.mode is InsertMode.INSERT:
            return "INSERT INTO", ""

        if self.mode is InsertMode.IGNORE:
            if mysql_like:
                return "INSERT IGNORE INTO", ""
            if dialect == "sqlite":
                return "INSERT OR IGNORE INTO", ""
            if dialect == "postgresql":
                return "INSERT INTO", "ON CONFLICT DO NOTHING"
            raise self._unsupported("INSERT IGNORE", dialect)

        if self.mode is InsertMode.REPLACE:
            if mysql_like:
                return "REPLACE INTO", ""
            if dialect == "sqlite":
                return "INSERT OR REPLACE INTO", ""
            raise self._unsupported("REPLACE", dialect)

        # SAVE
        updates = [c for c in self.columns if c not in self.conflict]
        if mysql_like:
            if not updates:
                updates = [self.conflict[0]]
            assignments = ", ".join(f"{q(c)} = VALUES({q(c)})" for c in updates)
            return "INSERT INTO", f"ON DUPLICATE KEY UPDATE {assignments}"
        if dialect in ("sqlite", "postgresql"):
            target = ", ".join(q(c) for c in self.conflict)
            if not updates:
                return "INSERT INTO", f"ON CONFLICT ({target}) DO NOTHING"
            assignments = ", ".join(f"{q(c)} = EXCLUDED.{q(c)}" for c in updates)
            return "INSERT INTO", f"ON CONFLICT ({target}) DO UPDATE SET {assignments}"
        raise self._unsupported("Upsert (save)", dialect)

    def _unsupported(self, capability: str, dialect: str) -> NotSupportedFault:
        return NotSupportedFault(
            capability,
            "no statement form for this dialect",
            dialect=dialect,
            operation=self.mode.value,
        )


class UpdateStatement(MutationStatement):
    """UPDATE ... SET ... WHERE ..."""

    operation = Operation.UPDATE

    def __init__(self, table: str, values: Mapping[str, Any], conditions: Sequence[Condition] = ()):
        super().__init__(table)
        self.values: Dict[str, Any] = dict(values)
        if not self.values:
            raise ValueError("Nothing to update")
        self.conditions: Tuple[Condition, ...] = tuple(conditions)

    def render(self, profile: DialectProfile, clause: Optional[Clause] = None) -> Tuple[str, List[Any]]:
        q = profile.quote
        set_parts = ", ".join(f"{q(k)} = ?" for k in self.values)
        params: List[Any] = list(self.values.values())
        sql = f"UPDATE {q(self.table)} SET {set_parts}"
        if clause is not None and clause.placement is ClausePlacement.OUTPUT:
            sql += f" {clause.text}"
        where_sql, where_params = _render_where(self.conditions, profile)
        sql += where_sql
        params.extend(where_params)
        if clause is not None and clause.placement is ClausePlacement.SUFFIX:
            sql += f" {clause.text}"
        return sql, params


class DeleteStatement(MutationStatement):
    """DELETE FROM ... WHERE ..."""

    operation = Operation.DELETE

    def __init__(self, table: str, conditions: Sequence[Condition] = ()):
        super().__init__(table)
        self.conditions: Tuple[Condition, ...] = tuple(conditions)

    def render(self, profile: DialectProfile, clause: Optional[Clause] = None) -> Tuple[str, List[Any]]:
        sql = f"DELETE FROM {profile.quote(self.table)}"
        if clause is not None and clause.placement is ClausePlacement.OUTPUT:
            sql += f" {clause.text}"
        where_sql, params = _render_where(self.conditions, profile)
        sql += where_sql
        if clause is not None and clause.placement is ClausePlacement.SUFFIX:
            sql += f" {clause.text}"
        return sql, params


def _column_union(rows: Sequence[Mapping[str, Any]]) -> Tuple[str, ...]:
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return tuple(seen)
