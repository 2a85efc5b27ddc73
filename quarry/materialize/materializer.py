"""
Quarry Materialize — hierarchical binding of records into object graphs.

``Materializer.bind()`` fills one attribute of every element of a
caller-owned destination (an object or a list of objects) from a
RecordSet. It is meant to be called repeatedly on the same destination,
once per relation:

    users: list[UserView] = []
    m = Materializer()
    m.bind(user_rows, users, RelationBinding.one("user", User), factory=UserView)
    m.bind(detail_rows, users, RelationBinding.one(
        "detail", UserDetail, via="user", parent_key="id", child_key="uid"))
    m.bind(score_rows, users, RelationBinding.many(
        "scores", UserScore, via="user", parent_key="id", child_key="uid"))

Existing elements and existing attribute objects are reused, never
replaced: a later bind merges its columns into them and leaves every
other field alone. Rows that correlate with nothing are skipped.
The destination shape is validated before anything is mutated.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from ..faults import MaterializeFault
from ..records import Record, RecordSet
from .binding import Cardinality, RelationBinding
from .scan import get_field, is_struct_like, merge_record, new_instance, to_struct

logger = logging.getLogger("quarry.materialize")

__all__ = ["Materializer"]


class Materializer:
    """Binds records into destination objects. Holds no state between calls."""

    def bind(
        self,
        records: Union[RecordSet, Iterable[Mapping[str, Any]]],
        destination: Any,
        binding: RelationBinding,
        factory: Optional[Callable[[], Any]] = None,
    ) -> Any:
        """
        Populate ``binding.attribute`` on each destination element.

        Args:
            records: Rows to bind.
            destination: A struct-like object or a list of them.
            binding: What to populate and how rows correlate.
            factory: Builds a new destination element for single-form rows
                that match no existing element. Defaults to the type of the
                list's first element.

        Returns:
            ``destination``, mutated in place.

        Raises:
            MaterializeFault: The destination has the wrong shape.
        """
        rows = records if isinstance(records, RecordSet) else RecordSet(records)
        elements, single = self._elements(destination, binding)

        if binding.is_related:
            self._bind_related(rows, elements, binding)
        else:
            self._bind_single(rows, destination, elements, single, binding, factory)
        return destination

    # ── Validation ───────────────────────────────────────────────────

    def _elements(self, destination: Any, binding: RelationBinding):
        target = binding.attribute
        if isinstance(destination, list):
            for index, element in enumerate(destination):
                if not is_struct_like(element):
                    raise MaterializeFault(
                        f"{target}[{index}]",
                        f"list element of type {type(element).__name__} is not an object",
                    )
                self._check_via(element, binding)
            return destination, False
        if is_struct_like(destination):
            self._check_via(destination, binding)
            return [destination], True
        raise MaterializeFault(
            target,
            f"destination must be an object or a list of objects, got {type(destination).__name__}",
        )

    @staticmethod
    def _check_via(element: Any, binding: RelationBinding) -> None:
        if binding.via is not None and not hasattr(element, binding.via):
            raise MaterializeFault(
                binding.attribute,
                f"{type(element).__name__} has no attribute '{binding.via}'",
            )

    # ── Single form ──────────────────────────────────────────────────

    def _bind_single(
        self,
        rows: RecordSet,
        destination: Any,
        elements: List[Any],
        single: bool,
        binding: RelationBinding,
        factory: Optional[Callable[[], Any]],
    ) -> None:
        attribute = binding.attribute
        if single:
            if rows:
                self._merge_one(elements[0], rows[0], binding)
            return

        by_identity: Dict[Any, Any] = {}
        for element in elements:
            ident = get_field(getattr(element, attribute, None), binding.identity)
            if ident is not None:
                by_identity.setdefault(ident, element)

        claimed = set()
        make = factory
        if make is None and elements:
            element_cls = type(elements[0])
            make = lambda: new_instance(element_cls)  # noqa: E731

        created = 0
        for position, row in enumerate(rows):
            ident = row.lookup(binding.identity)
            element = by_identity.get(ident) if ident is not None else None
            if element is None and position < len(elements) and id(elements[position]) not in claimed:
                candidate = elements[position]
                if get_field(getattr(candidate, attribute, None), binding.identity) is None:
                    element = candidate
            if element is None:
                if make is None:
                    raise MaterializeFault(attribute, "empty destination list needs a factory")
                element = make()
                destination.append(element)
                created += 1
            claimed.add(id(element))
            self._merge_one(element, row, binding)

        logger.debug(f"Bound {len(rows)} row(s) into '{attribute}', {created} new element(s)")

    # ── Related form ─────────────────────────────────────────────────

    def _bind_related(self, rows: RecordSet, elements: List[Any], binding: RelationBinding) -> None:
        groups = rows.group_by(binding.child_key)
        matched = 0
        for element in elements:
            parent = getattr(element, binding.via) if binding.via is not None else element
            key = get_field(parent, binding.parent_key) if parent is not None else None
            matches = groups.get(key, []) if key is not None else []
            if matches:
                matched += 1

            if binding.cardinality is Cardinality.ONE:
                if matches:
                    self._merge_one(element, matches[0], binding)
                continue

            self._merge_many(element, matches, binding)

        logger.debug(
            f"Bound {len(rows)} row(s) into '{binding.attribute}' "
            f"({binding.cardinality.value}), {matched}/{len(elements)} element(s) matched"
        )

    # ── Merging ──────────────────────────────────────────────────────

    @staticmethod
    def _merge_one(element: Any, row: Record, binding: RelationBinding) -> None:
        current = getattr(element, binding.attribute, None)
        if binding.cardinality is Cardinality.MANY:
            items = current if isinstance(current, list) else []
            ident = row.lookup(binding.identity)
            for item in items:
                if ident is not None and get_field(item, binding.identity) == ident:
                    merge_record(item, row)
                    break
            else:
                items.append(to_struct(binding.model, row))
            setattr(element, binding.attribute, items)
            return
        if current is None:
            setattr(element, binding.attribute, to_struct(binding.model, row))
        else:
            merge_record(current, row)

    @staticmethod
    def _merge_many(element: Any, matches: List[Record], binding: RelationBinding) -> None:
        current = getattr(element, binding.attribute, None)
        existing = current if isinstance(current, list) else []

        by_identity: Dict[Any, Any] = {}
        for item in existing:
            ident = get_field(item, binding.identity)
            if ident is not None:
                by_identity.setdefault(ident, item)

        items: List[Any] = []
        for position, row in enumerate(matches):
            ident = row.lookup(binding.identity)
            item = by_identity.get(ident) if ident is not None else None
            if item is None and ident is None and position < len(existing):
                item = existing[position]
            if item is None:
                items.append(to_struct(binding.model, row))
            else:
                items.append(merge_record(item, row))

        if isinstance(current, list):
            current[:] = items
        else:
            setattr(element, binding.attribute, items)
