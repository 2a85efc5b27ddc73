"""
Quarry DB — engine, adapters, links and the server-version probe.
"""

from .engine import (
    QuarryDatabase,
    get_database,
    configure_database,
    configure_from,
    set_database,
    get_all_databases,
)
from .backends.base import DatabaseAdapter, AdapterCapabilities, ColumnInfo, ExecResult
from .link import Link, MasterLink, TransactionLink
from .probe import ServerInfo, ServerProbe

__all__ = [
    "QuarryDatabase",
    "get_database",
    "configure_database",
    "configure_from",
    "set_database",
    "get_all_databases",
    "DatabaseAdapter",
    "AdapterCapabilities",
    "ColumnInfo",
    "ExecResult",
    "Link",
    "MasterLink",
    "TransactionLink",
    "ServerInfo",
    "ServerProbe",
]
