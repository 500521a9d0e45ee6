"""Resolve the static field map against a concrete template at startup.

Resolution applies ``FIELD_NAME_OVERRIDES``, bounds repeated groups (witness
and vehicle slots) to what the template actually carries, and checks every
remaining target exists.  With ``strict=True`` any unresolved target or
duplicate target raises ``MappingError`` so drift never reaches a job.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from incident_pdf.exceptions import MappingError
from incident_pdf.mapping.field_map import (
    EXCLUSIVE_GROUPS,
    FIELD_MAPPINGS,
    FieldMapping,
)
from incident_pdf.mapping.overrides import FIELD_NAME_OVERRIDES, OVERRIDES_VERSION

if TYPE_CHECKING:
    from incident_pdf.pdf.template import FormTemplate

log = logging.getLogger(__name__)

_SLOTTED_COLLECTIONS = ("witnesses", "other_vehicles")


@dataclass(frozen=True)
class PageMismatch:
    """A field found on a different page than the table expects."""

    field_name: str
    expected_page: int
    actual_page: int


@dataclass(frozen=True)
class ResolvedFieldMap:
    """The field map bound to one template; safe to share across jobs."""

    mappings: tuple[FieldMapping, ...]
    exclusive_groups: dict[str, tuple[str, ...]]
    slot_counts: dict[str, int]
    overrides_version: int = OVERRIDES_VERSION
    unresolved: tuple[str, ...] = ()
    page_mismatches: tuple[PageMismatch, ...] = ()
    applied_overrides: dict[str, str] = field(default_factory=dict)

    def slot_count(self, collection: str) -> int:
        return self.slot_counts.get(collection, 0)

    def document_capacity(self, document_type: str) -> int:
        source = f"documents.{document_type}"
        return sum(1 for m in self.mappings if m.source_path == source)

    @property
    def target_fields(self) -> frozenset[str]:
        return frozenset(m.target_field for m in self.mappings)

    def by_source(self, source_path: str) -> list[FieldMapping]:
        return [m for m in self.mappings if m.source_path == source_path]


def resolve_field_map(
    template: FormTemplate,
    *,
    mappings: Iterable[FieldMapping] = FIELD_MAPPINGS,
    overrides: Mapping[str, str] = FIELD_NAME_OVERRIDES,
    exclusive_groups: Mapping[str, tuple[str, ...]] = EXCLUSIVE_GROUPS,
    strict: bool = True,
) -> ResolvedFieldMap:
    """Bind ``mappings`` to ``template``.

    Raises:
        MappingError: In strict mode, when targets are duplicated or missing
            from the template.
    """
    mappings = tuple(mappings)
    _check_duplicates(mappings)

    unknown_overrides = sorted(set(overrides) - {m.target_field for m in mappings})
    for name in unknown_overrides:
        log.warning("override_unused | intended=%s real=%s", name, overrides[name])

    renamed = [_apply_override(m, overrides) for m in mappings]
    _check_duplicates(renamed)
    applied = {m.intended_name: m.target_field for m in renamed if m.intended_name}

    available = template.field_names
    slot_counts = {c: _count_slots(renamed, c, available) for c in _SLOTTED_COLLECTIONS}
    # The first slot of every repeated group is mandatory; extra slots are
    # bounded by the template.
    bounded = [
        m
        for m in renamed
        if m.position is None
        or m.collection == "documents"
        or m.position < max(slot_counts[m.root], 1)
    ]

    unresolved = [m for m in bounded if m.target_field not in available]
    if unresolved and strict:
        names = sorted(m.target_field for m in unresolved)
        preview = ", ".join(names[:10])
        raise MappingError(
            f"{len(names)} mapped field(s) not found in template '{template.name}': {preview}"
            + (" ..." if len(names) > 10 else ""),
            field_name=names[0],
        )
    for m in unresolved:
        log.warning("mapping_unresolved | field=%s source=%s", m.target_field, m.source_path)

    resolved = tuple(m for m in bounded if m.target_field in available)
    mismatches = _page_mismatches(resolved, template)

    groups = {
        name: tuple(overrides.get(member, member) for member in members)
        for name, members in exclusive_groups.items()
    }
    groups = {
        name: tuple(member for member in members if member in available)
        for name, members in groups.items()
    }

    log.info(
        "field_map_resolved | template=%s mapped=%d unresolved=%d witnesses=%d vehicles=%d overrides_v=%d",
        template.name,
        len(resolved),
        len(unresolved),
        slot_counts["witnesses"],
        slot_counts["other_vehicles"],
        OVERRIDES_VERSION,
    )
    return ResolvedFieldMap(
        mappings=resolved,
        exclusive_groups={k: v for k, v in groups.items() if v},
        slot_counts=slot_counts,
        unresolved=tuple(m.target_field for m in unresolved),
        page_mismatches=tuple(mismatches),
        applied_overrides=applied,
    )


def _apply_override(mapping: FieldMapping, overrides: Mapping[str, str]) -> FieldMapping:
    real = overrides.get(mapping.target_field)
    if real is None or real == mapping.target_field:
        return mapping
    return replace(mapping, target_field=real, intended_name=mapping.target_field)


def _check_duplicates(mappings: Iterable[FieldMapping]) -> None:
    counts = Counter(m.target_field for m in mappings)
    duplicates = sorted(name for name, n in counts.items() if n > 1)
    if duplicates:
        raise MappingError(
            f"field map targets the same field more than once: {', '.join(duplicates)}",
            field_name=duplicates[0],
        )


def _count_slots(mappings: list[FieldMapping], collection: str, available: frozenset[str]) -> int:
    """Count leading slots whose first field exists in the template."""
    members = [m for m in mappings if m.root == collection and m.position is not None]
    if not members:
        return 0
    first_attr = members[0].source_path
    primary = {m.position: m.target_field for m in members if m.source_path == first_attr}
    count = 0
    while count in primary and primary[count] in available:
        count += 1
    return count


def _page_mismatches(mappings: Iterable[FieldMapping], template: FormTemplate) -> list[PageMismatch]:
    found: list[PageMismatch] = []
    for m in mappings:
        if m.page_hint is None:
            continue
        tf = template.field(m.target_field)
        if tf is None or tf.page_index is None:
            continue
        actual = tf.page_index + 1
        if actual != m.page_hint:
            log.warning(
                "field_page_mismatch | field=%s expected_page=%d actual_page=%d",
                m.target_field,
                m.page_hint,
                actual,
            )
            found.append(PageMismatch(m.target_field, m.page_hint, actual))
    return found
