"""
Quarry Dialects — per-engine returning capability table.

Each ``DialectProfile`` describes how (and whether) one engine hands
modified rows back from INSERT/UPDATE/DELETE:

    postgresql  RETURNING on all ops; OLD./NEW. prefixes from 18
    sqlite      RETURNING on all ops from 3.35.0
    mariadb     RETURNING on INSERT/DELETE from 10.5.0, not UPDATE
    mysql       no returning at all
    mssql       OUTPUT INSERTED.* / DELETED.* infix clause
    dm          RETURNING on all ops
    oracle      RETURNING INTO only (PL/SQL out-binds, not row-producing)
    clickhouse  no returning, no affected counts worth trusting

The table is built once at import and exposed read-only.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple

__all__ = [
    "Operation",
    "ClauseStyle",
    "DialectProfile",
    "PROFILES",
    "DIALECT_ALIASES",
    "canonical_dialect",
    "parse_version",
    "version_at_least",
]


class Operation(str, Enum):
    """Mutation kinds the negotiator understands."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ClauseStyle(str, Enum):
    RETURNING = "returning"   # ... RETURNING a, b   (suffix)
    OUTPUT = "output"         # ... OUTPUT INSERTED.a ... (infix)
    EXEC_ONLY = "exec_only"   # RETURNING INTO :out  (not row-producing)
    NONE = "none"


_ALL_OPS = frozenset(Operation)


@dataclass(frozen=True)
class DialectProfile:
    """Read-only capability entry for one dialect."""

    name: str
    clause_style: ClauseStyle
    returning_ops: FrozenSet[Operation] = frozenset()
    quote_open: str = '"'
    quote_close: str = '"'
    wildcard: str = "*"
    # Minimum server version for the returning clause, if gated.
    min_version: Optional[str] = None
    supports_old_new: bool = False
    old_new_min_version: Optional[str] = None
    multi_row_returning: bool = True
    # Whether the native driver reports a last-inserted id.
    native_last_insert_id: bool = True

    def quote(self, identifier: str) -> str:
        escaped = identifier.replace(self.quote_close, self.quote_close * 2)
        return f"{self.quote_open}{escaped}{self.quote_close}"

    def declares_returning(self, operation: Operation) -> bool:
        return operation in self.returning_ops


PROFILES: Mapping[str, DialectProfile] = MappingProxyType({
    "postgresql": DialectProfile(
        name="postgresql",
        clause_style=ClauseStyle.RETURNING,
        returning_ops=_ALL_OPS,
        supports_old_new=True,
        old_new_min_version="18",
        native_last_insert_id=False,
    ),
    "sqlite": DialectProfile(
        name="sqlite",
        clause_style=ClauseStyle.RETURNING,
        returning_ops=_ALL_OPS,
        min_version="3.35.0",
    ),
    "mariadb": DialectProfile(
        name="mariadb",
        clause_style=ClauseStyle.RETURNING,
        returning_ops=frozenset({Operation.INSERT, Operation.DELETE}),
        quote_open="`",
        quote_close="`",
        min_version="10.5.0",
    ),
    "mysql": DialectProfile(
        name="mysql",
        clause_style=ClauseStyle.NONE,
        quote_open="`",
        quote_close="`",
    ),
    "mssql": DialectProfile(
        name="mssql",
        clause_style=ClauseStyle.OUTPUT,
        returning_ops=_ALL_OPS,
        quote_open="[",
        quote_close="]",
        supports_old_new=True,
        native_last_insert_id=False,
    ),
    "dm": DialectProfile(
        name="dm",
        clause_style=ClauseStyle.RETURNING,
        returning_ops=_ALL_OPS,
    ),
    "oracle": DialectProfile(
        name="oracle",
        clause_style=ClauseStyle.EXEC_ONLY,
        returning_ops=_ALL_OPS,
        multi_row_returning=False,
        native_last_insert_id=False,
    ),
    "clickhouse": DialectProfile(
        name="clickhouse",
        clause_style=ClauseStyle.NONE,
        quote_open="`",
        quote_close="`",
        native_last_insert_id=False,
    ),
})

DIALECT_ALIASES: Mapping[str, str] = MappingProxyType({
    "postgres": "postgresql",
    "pgsql": "postgresql",
    "sqlserver": "mssql",
    "sqlite3": "sqlite",
})


def canonical_dialect(name: str) -> str:
    key = name.strip().lower()
    return DIALECT_ALIASES.get(key, key)


_VERSION_RE = re.compile(r"(\d+(?:\.\d+)*)")


def parse_version(version: Optional[str]) -> Tuple[int, ...]:
    """
    Extract the leading numeric version from a server banner.

    "PostgreSQL 16.2 on x86_64..." -> (16, 2)
    "10.11.6-MariaDB-0+deb12u1"   -> (10, 11, 6)
    """
    if not version:
        return ()
    match = _VERSION_RE.search(version)
    if match is None:
        return ()
    return tuple(int(part) for part in match.group(1).split("."))


def version_at_least(version: Optional[str], minimum: str) -> bool:
    current = parse_version(version)
    required = parse_version(minimum)
    width = max(len(current), len(required))
    return current + (0,) * (width - len(current)) >= required + (0,) * (width - len(required))
