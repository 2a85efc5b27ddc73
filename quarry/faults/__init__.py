"""
Quarry Faults - structured fault handling for the mutation layer.

Errors are typed fault values with a stable code, a domain and retry
semantics. Capability gaps raise ``NotSupportedFault``; deadlines raise
``QueryTimeoutFault``.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ConfigFault,
    ConfigMissingFault,
    ConfigInvalidFault,
    ModelFault,
    NotSupportedFault,
    RecordNotFoundFault,
    QueryFault,
    QueryTimeoutFault,
    DatabaseConnectionFault,
    MaterializeFault,
)

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",

    # Domain faults
    "ConfigFault",
    "ConfigMissingFault",
    "ConfigInvalidFault",
    "ModelFault",
    "NotSupportedFault",
    "RecordNotFoundFault",
    "QueryFault",
    "QueryTimeoutFault",
    "DatabaseConnectionFault",
    "MaterializeFault",
]
