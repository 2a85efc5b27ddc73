"""
Quarry Dialects — returning-clause capability table and negotiation.
"""

from .profiles import (
    Operation,
    ClauseStyle,
    DialectProfile,
    PROFILES,
    canonical_dialect,
    parse_version,
    version_at_least,
)
from .negotiator import (
    RETURNING_ALL,
    ClausePlacement,
    Clause,
    Unsupported,
    ClauseNegotiator,
    default_negotiator,
)

__all__ = [
    "Operation",
    "ClauseStyle",
    "DialectProfile",
    "PROFILES",
    "canonical_dialect",
    "parse_version",
    "version_at_least",
    "RETURNING_ALL",
    "ClausePlacement",
    "Clause",
    "Unsupported",
    "ClauseNegotiator",
    "default_negotiator",
]
