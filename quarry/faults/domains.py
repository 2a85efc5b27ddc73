"""
Quarry Faults - Domain-specific fault types.

Failures raised by the mutation layer itself. Driver errors raised while
executing a mutation propagate unchanged; only the raw ``execute`` and
``fetch_all`` helpers on the database wrap them in ``QueryFault``.
Capability gaps are ``NotSupportedFault``.
"""

from __future__ import annotations

from typing import Any, Optional

from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            retryable=False,
            public=False,
            metadata=metadata,
        )


class ConfigMissingFault(ConfigFault):
    """Required configuration key is missing."""

    def __init__(self, key: str, **kwargs):
        super().__init__(
            code="CONFIG_MISSING",
            message=f"Required config key '{key}' not found",
            metadata={"key": key, **kwargs.get("metadata", {})},
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Invalid config for '{key}': {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# MODEL Faults (mutation layer / database)
# ============================================================================

class ModelFault(Fault):
    """Base class for mutation and database faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        domain: FaultDomain = FaultDomain.MODEL,
        severity: Severity = Severity.ERROR,
        retryable: bool = False,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=domain,
            severity=severity,
            retryable=retryable,
            public=public,
            metadata=metadata,
        )


class NotSupportedFault(ModelFault):
    """A capability was requested that the backend cannot provide."""

    def __init__(
        self,
        capability: str,
        reason: str,
        *,
        dialect: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        where = ""
        if dialect and operation:
            where = f" ({dialect}, {operation})"
        elif dialect:
            where = f" ({dialect})"
        super().__init__(
            code="NOT_SUPPORTED",
            message=f"{capability} is not supported{where}: {reason}",
            metadata={
                "capability": capability,
                "dialect": dialect,
                "operation": operation,
                "reason": reason,
                **kwargs.get("metadata", {}),
            },
        )
        self.capability = capability
        self.dialect = dialect
        self.operation = operation


class RecordNotFoundFault(ModelFault):
    """A mutation expected to return rows returned none."""

    def __init__(self, table: str, operation: str, reason: str = "no records returned", **kwargs):
        super().__init__(
            code="RECORD_NOT_FOUND",
            message=f"{operation} on '{table}' returned no records: {reason}",
            public=True,
            metadata={"table": table, "operation": operation, **kwargs.get("metadata", {})},
        )


class QueryFault(ModelFault):
    """Statement execution failed in the driver."""

    def __init__(self, table: str, operation: str, reason: str, **kwargs):
        super().__init__(
            code="QUERY_FAILED",
            message=f"Query on '{table}' ({operation}) failed: {reason}",
            domain=FaultDomain.QUERY,
            retryable=True,
            metadata={"table": table, "operation": operation, "reason": reason, **kwargs.get("metadata", {})},
        )


class QueryTimeoutFault(QueryFault):
    """Statement did not complete before its deadline."""

    def __init__(self, table: str, operation: str, timeout: float, **kwargs):
        super().__init__(
            table=table,
            operation=operation,
            reason=f"timed out after {timeout}s",
            metadata={"timeout": timeout, **kwargs.get("metadata", {})},
        )
        self.code = "QUERY_TIMEOUT"


class DatabaseConnectionFault(ModelFault):
    """Database connection failed."""

    def __init__(self, url: str, reason: str, **kwargs):
        super().__init__(
            code="DB_CONNECTION_FAILED",
            message=f"Database connection failed ({url}): {reason}",
            severity=Severity.FATAL,
            retryable=True,
            metadata={"url": url, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# MAPPING Faults (materializer)
# ============================================================================

class MaterializeFault(Fault):
    """Destination container has the wrong shape for binding."""

    def __init__(self, target: str, reason: str, **kwargs):
        super().__init__(
            code="MATERIALIZE_FAILED",
            message=f"Cannot bind records into {target}: {reason}",
            domain=FaultDomain.MAPPING,
            severity=Severity.ERROR,
            retryable=False,
            metadata={"target": target, "reason": reason, **kwargs.get("metadata", {})},
        )
