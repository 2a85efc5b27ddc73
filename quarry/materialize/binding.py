"""
Quarry Materialize — relation binding descriptors.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Type


__all__ = ["Cardinality", "RelationBinding"]


class Cardinality(str, Enum):
    ONE = "one"
    MANY = "many"


@dataclass(frozen=True)
class RelationBinding:
    """
    Describes which attribute of each destination element to populate.

    Attributes:
        attribute: Attribute on the destination element receiving the data.
        model: Type instantiated for rows that match no existing object.
        cardinality: ONE (single object) or MANY (list of objects).
        via: Attribute of the element holding the parent entity whose
            ``parent_key`` correlates rows. ``None`` reads ``parent_key``
            from the element itself.
        parent_key: Attribute on the parent carrying the correlation value.
        child_key: Column in the records carrying the correlation value.
        identity: Column/attribute that recognises already-bound objects.

    Omitted keys follow the primary-key convention:

        via="user"                    -> parent_key="id", child_key="user_id"
        via="user", parent_key="uid"  -> child_key="uid"
        via="user", child_key="uid"   -> parent_key="id"

    With no ``via`` and no keys the binding is in single form: row ``i``
    belongs to destination element ``i`` (or to the element whose bound
    object has the same identity).
    """

    attribute: str
    model: Type
    cardinality: Cardinality = Cardinality.ONE
    via: Optional[str] = None
    parent_key: Optional[str] = None
    child_key: Optional[str] = None
    identity: str = "id"

    def __post_init__(self):
        if not self.attribute:
            raise ValueError("RelationBinding.attribute is required")
        object.__setattr__(self, "cardinality", Cardinality(self.cardinality))
        if self.via is None and self.parent_key is None and self.child_key is None:
            return
        # Fill in the missing side of the key pair from the key convention.
        parent_key = self.parent_key or self.identity
        child_key = self.child_key
        if child_key is None:
            child_key = f"{self.via}_{parent_key}" if self.via and self.parent_key is None else parent_key
        object.__setattr__(self, "parent_key", parent_key)
        object.__setattr__(self, "child_key", child_key)

    @property
    def is_related(self) -> bool:
        return self.child_key is not None

    @classmethod
    def one(cls, attribute: str, model: Type, **kwargs) -> RelationBinding:
        return cls(attribute, model, Cardinality.ONE, **kwargs)

    @classmethod
    def many(cls, attribute: str, model: Type, **kwargs) -> RelationBinding:
        return cls(attribute, model, Cardinality.MANY, **kwargs)
