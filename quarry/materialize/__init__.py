"""
Quarry Materialize — scanning records into objects and binding relations.
"""

from .binding import Cardinality, RelationBinding
from .materializer import Materializer
from .scan import (
    is_struct_like,
    field_names,
    new_instance,
    merge_record,
    to_struct,
    get_field,
)

__all__ = [
    "Cardinality",
    "RelationBinding",
    "Materializer",
    "is_struct_like",
    "field_names",
    "new_instance",
    "merge_record",
    "to_struct",
    "get_field",
]
