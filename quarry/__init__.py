"""
Quarry - async mutation layer for relational databases

Complete integration of:
- Dialects: per-engine RETURNING / OUTPUT capability table and negotiation
- Mutation: INSERT / UPDATE / DELETE execution with explicit returning,
  automatic primary-key retrieval and native exec fallback
- Results: one interface over plain and record-carrying outcomes
- Records: immutable rows and row sets
- Materialize: binding records into caller-owned object graphs
- DB: SQLite, PostgreSQL and MySQL/MariaDB adapters, task-scoped transactions
- Faults: structured error handling with fault domains
"""

__version__ = "0.1.0"

from .faults import (
    Fault,
    FaultDomain,
    Severity,
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
from .records import Record, RecordSet
from .result import Result, PlainResult, ReturningResult
from .dialects import (
    Operation,
    RETURNING_ALL,
    Clause,
    ClausePlacement,
    Unsupported,
    ClauseNegotiator,
    default_negotiator,
)
from .db import (
    QuarryDatabase,
    Link,
    MasterLink,
    TransactionLink,
    ServerInfo,
    get_database,
    configure_database,
    configure_from,
    set_database,
    get_all_databases,
)
from .mutation import (
    MutationOptions,
    PrimaryKeyHint,
    InsertMode,
    InsertStatement,
    UpdateStatement,
    DeleteStatement,
    MutationExecutor,
)
from .materialize import Cardinality, RelationBinding, Materializer
from .table import Table
from .config import ConfigLoader, DatabaseConfig

__all__ = [
    "__version__",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
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
    # Records / results
    "Record",
    "RecordSet",
    "Result",
    "PlainResult",
    "ReturningResult",
    # Dialects
    "Operation",
    "RETURNING_ALL",
    "Clause",
    "ClausePlacement",
    "Unsupported",
    "ClauseNegotiator",
    "default_negotiator",
    # Database
    "QuarryDatabase",
    "Link",
    "MasterLink",
    "TransactionLink",
    "ServerInfo",
    "get_database",
    "configure_database",
    "configure_from",
    "set_database",
    "get_all_databases",
    # Mutation
    "MutationOptions",
    "PrimaryKeyHint",
    "InsertMode",
    "InsertStatement",
    "UpdateStatement",
    "DeleteStatement",
    "MutationExecutor",
    "Table",
    # Materialize
    "Cardinality",
    "RelationBinding",
    "Materializer",
    # Config
    "ConfigLoader",
    "DatabaseConfig",
]
