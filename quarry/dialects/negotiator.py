"""
Quarry Dialects — returning-clause negotiation.

``ClauseNegotiator.negotiate()`` answers one question: given a dialect,
an operation and the fields the caller wants back, what clause text must
be spliced into the statement? The answer is a ``Clause``, an
``Unsupported`` verdict, or ``None`` when nothing was requested.

The negotiator never decides whether "unsupported" is an error; the
executor does (explicit requests fail, automatic fallbacks do not).

Usage:
    negotiator = ClauseNegotiator()
    clause = negotiator.negotiate("postgresql", Operation.INSERT, ["id", "name"])
    # Clause(text='RETURNING "id", "name"', placement=ClausePlacement.SUFFIX, ...)

    clause = negotiator.negotiate("mssql", Operation.DELETE, ["*"])
    # Clause(text='OUTPUT DELETED.*', placement=ClausePlacement.OUTPUT, ...)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Sequence, Tuple, Union

from ..faults import NotSupportedFault
from .profiles import (
    PROFILES,
    ClauseStyle,
    DialectProfile,
    Operation,
    canonical_dialect,
    version_at_least,
)

logger = logging.getLogger("quarry.dialects")

__all__ = [
    "RETURNING_ALL",
    "ClausePlacement",
    "Clause",
    "Unsupported",
    "ClauseNegotiator",
    "default_negotiator",
]

# Wildcard marker for "every column".
RETURNING_ALL = "*"


class ClausePlacement(str, Enum):
    SUFFIX = "suffix"   # appended after the statement
    OUTPUT = "output"   # before VALUES / WHERE (SQL Server)


@dataclass(frozen=True)
class Clause:
    """Clause text ready to splice into a statement."""

    text: str
    placement: ClausePlacement
    fields: Tuple[str, ...]


@dataclass(frozen=True)
class Unsupported:
    """Definitive "this dialect cannot do that" answer."""

    dialect: str
    operation: Operation
    reason: str

    def __bool__(self) -> bool:
        return False

    def to_fault(self, capability: str = "RETURNING clause") -> NotSupportedFault:
        return NotSupportedFault(
            capability,
            self.reason,
            dialect=self.dialect,
            operation=self.operation.value,
        )


Negotiation = Union[Clause, Unsupported, None]


class _FieldRejected(Exception):
    """Internal: one requested field cannot be expressed on this dialect."""


class ClauseNegotiator:
    """
    Builds returning clauses from the read-only dialect table.

    Stateless apart from the profile mapping it was given, so one instance
    is shared process-wide.
    """

    def __init__(self, profiles: Mapping[str, DialectProfile] = PROFILES):
        self._profiles = profiles

    def profile(self, dialect: str) -> DialectProfile:
        name = canonical_dialect(dialect)
        profile = self._profiles.get(name)
        if profile is None:
            raise NotSupportedFault(
                "Dialect",
                f"no capability profile registered for '{dialect}'",
                dialect=dialect,
            )
        return profile

    def availability(
        self,
        dialect: str,
        operation: Operation,
        server_version: Optional[str] = None,
    ) -> Optional[Unsupported]:
        """Return ``None`` if row-producing returning works, else why not."""
        profile = self.profile(dialect)
        operation = Operation(operation)

        if profile.clause_style is ClauseStyle.NONE:
            return Unsupported(profile.name, operation, "the dialect has no returning clause")
        if profile.clause_style is ClauseStyle.EXEC_ONLY:
            return Unsupported(
                profile.name,
                operation,
                "RETURNING INTO is exec-only and cannot produce a row set",
            )
        if not profile.declares_returning(operation):
            return Unsupported(
                profile.name,
                operation,
                f"returning is not available for {operation.value.upper()} statements",
            )
        if profile.min_version and server_version and not version_at_least(server_version, profile.min_version):
            return Unsupported(
                profile.name,
                operation,
                f"server version {server_version} is older than {profile.min_version}",
            )
        return None

    def supports_multi_row(
        self,
        dialect: str,
        operation: Operation,
        server_version: Optional[str] = None,
    ) -> bool:
        """Whether one statement may return more than one row."""
        if self.availability(dialect, operation, server_version) is not None:
            return False
        return self.profile(dialect).multi_row_returning

    def negotiate(
        self,
        dialect: str,
        operation: Operation,
        fields: Sequence[str],
        server_version: Optional[str] = None,
    ) -> Negotiation:
        """
        Build the clause for ``fields`` or explain why it cannot exist.

        An empty ``fields`` means nothing was requested and yields ``None``.
        """
        requested = tuple(f.strip() for f in fields if f and f.strip())
        if not requested:
            return None

        operation = Operation(operation)
        unavailable = self.availability(dialect, operation, server_version)
        if unavailable is not None:
            logger.debug(
                f"Returning unavailable for {unavailable.dialect}/{operation.value}: {unavailable.reason}"
            )
            return unavailable

        profile = self.profile(dialect)
        try:
            if profile.clause_style is ClauseStyle.OUTPUT:
                parts = [self._render_output(profile, operation, f) for f in requested]
                return Clause(
                    text="OUTPUT " + ", ".join(parts),
                    placement=ClausePlacement.OUTPUT,
                    fields=requested,
                )
            parts = [self._render_returning(profile, f, server_version) for f in requested]
        except _FieldRejected as exc:
            return Unsupported(profile.name, operation, str(exc))

        return Clause(
            text="RETURNING " + ", ".join(parts),
            placement=ClausePlacement.SUFFIX,
            fields=requested,
        )

    # ── Field rendering ──────────────────────────────────────────────

    def _render_returning(
        self,
        profile: DialectProfile,
        field: str,
        server_version: Optional[str],
    ) -> str:
        if field == RETURNING_ALL:
            return profile.wildcard

        prefix, column = _split_qualifier(field)
        if prefix is None:
            return profile.quote(field)

        if not profile.supports_old_new:
            raise _FieldRejected(f"{prefix}. qualified fields are not supported")
        if profile.old_new_min_version and not (
            server_version and version_at_least(server_version, profile.old_new_min_version)
        ):
            raise _FieldRejected(
                f"{prefix}. qualified fields need server version "
                f"{profile.old_new_min_version} or newer (found {server_version or 'unknown'})"
            )
        if column == RETURNING_ALL:
            return f"{prefix}.*"
        return f"{prefix}.{profile.quote(column)}"

    def _render_output(self, profile: DialectProfile, operation: Operation, field: str) -> str:
        prefix, column = _split_qualifier(field)
        if prefix is None:
            pseudo = "DELETED" if operation is Operation.DELETE else "INSERTED"
            column = field
        elif prefix == "OLD":
            if operation is Operation.INSERT:
                raise _FieldRejected("OLD. values do not exist for INSERT")
            pseudo = "DELETED"
        else:
            if operation is Operation.DELETE:
                raise _FieldRejected("NEW. values do not exist for DELETE")
            pseudo = "INSERTED"

        if column == RETURNING_ALL:
            return f"{pseudo}.*"
        return f"{pseudo}.{profile.quote(column)}"


def _split_qualifier(field: str) -> Tuple[Optional[str], str]:
    head, sep, tail = field.partition(".")
    if sep and head.upper() in ("OLD", "NEW") and tail:
        return head.upper(), tail
    return None, field


default_negotiator = ClauseNegotiator()
