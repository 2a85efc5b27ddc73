"""
Quarry Records — immutable row and result-set containers.

A ``Record`` is one row: an ordered, read-only mapping of column name
(case preserved) to value. A ``RecordSet`` is an ordered, read-only
sequence of records in the order the database returned them.

``RecordSet.absent()`` is the explicit "no records" marker carried by
results whose statement did not return rows. It is empty and iterable, so
callers can read it uniformly and branch on ``is_absent`` only when they
care.

Usage:
    rows = RecordSet.from_dicts([{"id": 1, "name": "john"}])
    rows[0]["name"]             # "john"
    rows.column("id")           # [1]
    rows.structs(User)          # [User(id=1, name="john")]
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Dict, Iterable, Iterator, List, Optional, Type, TypeVar, Union, overload

__all__ = ["Record", "RecordSet"]

T = TypeVar("T")

_MISSING = object()


class Record(Mapping):
    """Immutable ordered mapping of column name to value."""

    __slots__ = ("_data",)

    def __init__(self, data: Optional[Mapping[str, Any]] = None, **columns: Any):
        merged: Dict[str, Any] = dict(data) if data is not None else {}
        merged.update(columns)
        object.__setattr__(self, "_data", merged)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Record is immutable")

    def __repr__(self) -> str:
        return f"Record({self._data!r})"

    __hash__ = None  # type: ignore[assignment]

    def lookup(self, column: str, default: Any = None) -> Any:
        """
        Get a column value, falling back to a case-insensitive match.

        Drivers disagree on identifier case (PostgreSQL folds to lower,
        DaMeng/Oracle to upper), so correlation code looks columns up
        through here.
        """
        value = self._data.get(column, _MISSING)
        if value is not _MISSING:
            return value
        lowered = column.lower()
        for key, val in self._data.items():
            if key.lower() == lowered:
                return val
        return default

    def has_column(self, column: str) -> bool:
        return self.lookup(column, _MISSING) is not _MISSING

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)


class RecordSet(Sequence):
    """Immutable ordered sequence of ``Record`` objects."""

    __slots__ = ("_rows", "_absent")

    def __init__(self, rows: Iterable[Union[Record, Mapping[str, Any]]] = (), *, _absent: bool = False):
        self._rows = tuple(r if isinstance(r, Record) else Record(r) for r in rows)
        self._absent = _absent

    @classmethod
    def from_dicts(cls, rows: Iterable[Mapping[str, Any]]) -> RecordSet:
        return cls(rows)

    @classmethod
    def absent(cls) -> RecordSet:
        """Return the shared "no records" marker."""
        return _ABSENT

    @property
    def is_absent(self) -> bool:
        """True when no row-returning clause produced this set."""
        return self._absent

    @overload
    def __getitem__(self, index: int) -> Record: ...

    @overload
    def __getitem__(self, index: slice) -> RecordSet: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return RecordSet(self._rows[index])
        return self._rows[index]

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._rows)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RecordSet):
            return self._absent == other._absent and self._rows == other._rows
        if isinstance(other, (list, tuple)):
            return list(self._rows) == list(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self._absent:
            return "RecordSet(<absent>)"
        return f"RecordSet({len(self._rows)} rows)"

    def first(self) -> Optional[Record]:
        return self._rows[0] if self._rows else None

    def last(self) -> Optional[Record]:
        return self._rows[-1] if self._rows else None

    def column(self, name: str) -> List[Any]:
        """Values of one column across all rows, in row order."""
        return [row.lookup(name) for row in self._rows]

    def index_by(self, name: str) -> Dict[Any, Record]:
        """Map column value -> first row carrying it."""
        index: Dict[Any, Record] = {}
        for row in self._rows:
            index.setdefault(row.lookup(name), row)
        return index

    def group_by(self, name: str) -> Dict[Any, List[Record]]:
        """Map column value -> all rows carrying it, in row order."""
        groups: Dict[Any, List[Record]] = {}
        for row in self._rows:
            groups.setdefault(row.lookup(name), []).append(row)
        return groups

    def to_list(self) -> List[Dict[str, Any]]:
        return [row.to_dict() for row in self._rows]

    def structs(self, cls: Type[T]) -> List[T]:
        """Build one ``cls`` instance per row."""
        from .materialize.scan import to_struct

        return [to_struct(cls, row) for row in self._rows]


_ABSENT = RecordSet(_absent=True)
