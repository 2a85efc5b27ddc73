"""
Quarry Mutation — statements, per-call options and the executor.
"""

from .options import PrimaryKeyHint, MutationOptions
from .statements import (
    InsertMode,
    Condition,
    MutationStatement,
    InsertStatement,
    UpdateStatement,
    DeleteStatement,
)
from .executor import MutationExecutor

__all__ = [
    "PrimaryKeyHint",
    "MutationOptions",
    "InsertMode",
    "Condition",
    "MutationStatement",
    "InsertStatement",
    "UpdateStatement",
    "DeleteStatement",
    "MutationExecutor",
]
