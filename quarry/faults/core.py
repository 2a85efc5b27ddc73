"""
Quarry Faults - Core types.

A fault is an exception that is also a structured value: a stable code,
a message, the domain it came from, a severity, retry semantics and free
metadata. Results may carry a fault without raising it
(``Result.last_insert_id_error``); ``last_insert_id()`` raises it on demand.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class Severity(str, Enum):
    """How bad a fault is; mirrors the logging level it is reported at."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"     # configuration is unusable, do not retry


class FaultDomain:
    """
    Functional area a fault belongs to.

    Each domain carries the default severity and retry policy for its
    faults. Domains compare equal by name, also against plain strings.
    """

    __slots__ = ("name", "description", "severity", "retryable")

    def __init__(
        self,
        name: str,
        description: str = "",
        *,
        severity: Severity = Severity.ERROR,
        retryable: bool = False,
    ):
        self.name = name
        self.description = description
        self.severity = severity
        self.retryable = retryable

    @property
    def value(self) -> str:
        return self.name

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain({self.name!r})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        if isinstance(other, str):
            return self.name == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.name)


FaultDomain.CONFIG = FaultDomain("config", "Configuration errors", severity=Severity.FATAL)
FaultDomain.MODEL = FaultDomain("model", "Database and mutation errors")
FaultDomain.QUERY = FaultDomain("query", "Statement execution errors", retryable=True)
FaultDomain.MAPPING = FaultDomain("mapping", "Result materialization errors")


class Fault(Exception):
    """
    Base class of every Quarry error.

    ``severity`` and ``retryable`` default to the domain's policy. Subclasses
    may declare ``code`` / ``message`` / ``domain`` as class attributes
    instead of passing them.

    Example:
        raise Fault(
            code="RETURNING_UNSUPPORTED",
            message="RETURNING is not available on mysql",
            domain=FaultDomain.MODEL,
        )
    """

    def __init__(
        self,
        code: Optional[str] = None,
        message: Optional[str] = None,
        *,
        domain: Optional[FaultDomain] = None,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        code = code if code is not None else getattr(self, "code", None)
        message = message if message is not None else getattr(self, "message", None)
        domain = domain if domain is not None else getattr(self, "domain", None)
        if code is None or message is None or domain is None:
            raise TypeError(f"{type(self).__name__} needs a code, a message and a domain")

        super().__init__(message)
        self.code = code
        self.message = message
        self.domain = domain
        self.severity = severity or domain.severity
        self.retryable = domain.retryable if retryable is None else retryable
        # Safe to show to an end user (no SQL, no credentials).
        self.public = public
        self.metadata = dict(metadata or {})

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, domain={self.domain.name})"

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form for structured logs."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.name,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "public": self.public,
            "metadata": self.metadata,
        }
