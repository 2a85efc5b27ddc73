"""
Quarry Mutation — per-call options.

Options travel explicitly with each call as an immutable value; there is
no ambient or thread-local state. The ``with_*`` helpers return modified
copies.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from ..dialects import RETURNING_ALL

__all__ = ["PrimaryKeyHint", "MutationOptions"]


@dataclass(frozen=True)
class PrimaryKeyHint:
    """Caller-supplied primary key, used instead of introspection."""

    name: str
    data_type: str = "integer"

    @property
    def is_integer(self) -> bool:
        return "int" in self.data_type.lower()


@dataclass(frozen=True)
class MutationOptions:
    """
    Immutable per-call mutation options.

    Attributes:
        returning: Fields to hand back. ``("*",)`` means every column;
            ``OLD.x`` / ``NEW.x`` qualify pre/post values where supported.
        primary_key: Skip introspection and use this key for the automatic
            primary-key fallback.
        auto_primary_key: ``None`` defers to the database setting.
        timeout: Deadline in seconds; ``None`` defers to the database default.
    """

    returning: Tuple[str, ...] = ()
    primary_key: Optional[PrimaryKeyHint] = None
    auto_primary_key: Optional[bool] = None
    timeout: Optional[float] = None

    def __post_init__(self):
        if isinstance(self.returning, str):
            object.__setattr__(self, "returning", (self.returning,))
        else:
            object.__setattr__(self, "returning", tuple(self.returning))
        for field in self.returning:
            if not isinstance(field, str):
                raise TypeError(f"returning fields must be strings, got {field!r}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    @property
    def wants_returning(self) -> bool:
        return any(f.strip() for f in self.returning)

    def with_returning(self, *fields: str) -> MutationOptions:
        return replace(self, returning=tuple(fields))

    def with_returning_all(self) -> MutationOptions:
        return replace(self, returning=(RETURNING_ALL,))

    def with_primary_key(self, name: str, data_type: str = "integer") -> MutationOptions:
        return replace(self, primary_key=PrimaryKeyHint(name, data_type))

    def with_auto_primary_key(self, enabled: bool) -> MutationOptions:
        return replace(self, auto_primary_key=enabled)

    def with_timeout(self, seconds: Optional[float]) -> MutationOptions:
        return replace(self, timeout=seconds)
