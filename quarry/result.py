"""
Quarry Result — the outcome of one Insert/Update/Delete call.

Two variants share a single interface:

- ``PlainResult``: produced by the native exec path. ``affected`` and
  ``last_insert_id`` come straight from the driver; records are absent.
- ``ReturningResult``: produced when a returning clause was used. Carries
  the returned rows; ``rows_affected()`` is their count.

Callers never need ``isinstance`` checks: ``get_records()`` always returns
a ``RecordSet`` (the absent marker for plain results) and ``has_records``
says which one they got.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from .faults import Fault
from .records import RecordSet

__all__ = ["Result", "PlainResult", "ReturningResult"]


class Result(ABC):
    """Common interface of mutation outcomes."""

    __slots__ = ("_last_insert_id", "_last_insert_id_error")

    def __init__(
        self,
        last_insert_id: Optional[int] = None,
        last_insert_id_error: Optional[Fault] = None,
    ):
        self._last_insert_id = last_insert_id
        self._last_insert_id_error = last_insert_id_error

    @abstractmethod
    def rows_affected(self) -> int:
        """Number of rows the statement touched."""

    @abstractmethod
    def get_records(self) -> RecordSet:
        """Returned rows, or ``RecordSet.absent()``."""

    @property
    def has_records(self) -> bool:
        return not self.get_records().is_absent

    def last_insert_id(self) -> Optional[int]:
        """
        Return the last generated identifier.

        Raises the stored fault when retrieval was attempted and could not
        succeed; a missing id is never reported as zero.
        """
        if self._last_insert_id_error is not None:
            raise self._last_insert_id_error
        return self._last_insert_id

    @property
    def last_insert_id_error(self) -> Optional[Fault]:
        return self._last_insert_id_error


class PlainResult(Result):
    """Outcome of the native exec path; no returned rows."""

    __slots__ = ("_affected",)

    def __init__(
        self,
        affected: int = 0,
        last_insert_id: Optional[int] = None,
        last_insert_id_error: Optional[Fault] = None,
    ):
        super().__init__(last_insert_id, last_insert_id_error)
        self._affected = affected

    def rows_affected(self) -> int:
        return self._affected

    def get_records(self) -> RecordSet:
        return RecordSet.absent()

    def __repr__(self) -> str:
        return f"PlainResult(affected={self._affected}, last_insert_id={self._last_insert_id!r})"


class ReturningResult(Result):
    """Outcome of a statement executed with a returning clause."""

    __slots__ = ("_records",)

    def __init__(
        self,
        records: RecordSet,
        last_insert_id: Optional[int] = None,
        last_insert_id_error: Optional[Fault] = None,
    ):
        super().__init__(last_insert_id, last_insert_id_error)
        self._records = records

    def rows_affected(self) -> int:
        return len(self._records)

    def get_records(self) -> RecordSet:
        return self._records

    def __repr__(self) -> str:
        return f"ReturningResult(affected={len(self._records)}, last_insert_id={self._last_insert_id!r})"
