"""
Quarry Materialize — record-to-object scanning.

Maps columns onto attributes of plain Python objects. Target types are
dataclasses, classes with annotated attributes, or plain attribute
objects. Column names match attribute names case-insensitively and
ignoring underscores, so ``user_name``, ``USERNAME`` and ``userName`` all
land on ``user_name``.

Merging only touches attributes the record has a column for; everything
else on the object is left as it was.
"""

from __future__ import annotations

import copy
import dataclasses
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Type, TypeVar

from ..faults import MaterializeFault

__all__ = [
    "is_struct_like",
    "field_names",
    "new_instance",
    "merge_record",
    "to_struct",
    "get_field",
    "element_type",
]

T = TypeVar("T")

_NOT_STRUCT = (str, bytes, bytearray, int, float, complex, bool, list, tuple, set, frozenset, dict)


def _key(name: str) -> str:
    return name.replace("_", "").lower()


def is_struct_like(obj: Any) -> bool:
    """True for object instances whose attributes can be assigned."""
    if obj is None or isinstance(obj, type):
        return False
    if isinstance(obj, _NOT_STRUCT) or isinstance(obj, Mapping):
        return False
    return hasattr(obj, "__dict__") or hasattr(type(obj), "__slots__")


def field_names(target: Any) -> List[str]:
    """Declared attribute names of a class or instance, in declaration order."""
    cls = target if isinstance(target, type) else type(target)
    if dataclasses.is_dataclass(cls):
        return [f.name for f in dataclasses.fields(cls)]

    names: Dict[str, None] = {}
    for klass in reversed(cls.__mro__):
        for name in getattr(klass, "__annotations__", {}):
            if not name.startswith("_"):
                names.setdefault(name, None)
    if not isinstance(target, type):
        for name in getattr(target, "__dict__", {}):
            if not name.startswith("_"):
                names.setdefault(name, None)
    return list(names)


def _is_frozen(obj: Any) -> bool:
    params = getattr(type(obj), "__dataclass_params__", None)
    return bool(params is not None and params.frozen)


def new_instance(cls: Type[T]) -> T:
    """
    Create an empty ``cls`` without calling ``__init__``.

    Declared attributes start at their default (default factories are
    called, mutable class-level defaults are copied) or ``None``.
    """
    instance = cls.__new__(cls)
    if dataclasses.is_dataclass(cls):
        if cls.__dataclass_params__.frozen:
            raise MaterializeFault(cls.__name__, "frozen dataclasses cannot be populated")
        for f in dataclasses.fields(cls):
            if f.default is not dataclasses.MISSING:
                value = f.default
            elif f.default_factory is not dataclasses.MISSING:
                value = f.default_factory()
            else:
                value = None
            setattr(instance, f.name, value)
        return instance

    for name in field_names(cls):
        setattr(instance, name, copy.copy(getattr(cls, name, None)))
    return instance


def merge_record(obj: T, record: Mapping) -> T:
    """Assign every column of ``record`` that matches an attribute of ``obj``."""
    if _is_frozen(obj):
        raise MaterializeFault(type(obj).__name__, "frozen dataclasses cannot be populated")

    names = field_names(obj)
    if not names:
        for column, value in record.items():
            setattr(obj, column, value)
        return obj

    by_key = {_key(n): n for n in names}
    for column, value in record.items():
        name = by_key.get(_key(column))
        if name is not None:
            setattr(obj, name, value)
    return obj


def to_struct(cls: Type[T], record: Mapping) -> T:
    return merge_record(new_instance(cls), record)


def get_field(obj: Any, name: str, default: Any = None) -> Any:
    """Read an attribute by exact name, then by the relaxed column match."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    try:
        return getattr(obj, name)
    except AttributeError:
        pass
    wanted = _key(name)
    for candidate in field_names(obj):
        if _key(candidate) == wanted:
            return getattr(obj, candidate, default)
    return default


def element_type(items: List[Any]) -> Optional[type]:
    return type(items[0]) if items else None
