"""Turn an ``AggregatedIncidentRecord`` into final form-field values.

The output maps real template field names to ``str`` (text fields) or
``bool`` (checkboxes).  Every mapped field gets a value, including empty
strings and explicit ``False``, so filling is independent of whatever state
the template ships with.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from incident_pdf.diagnostics import DiagnosticCategory
from incident_pdf.mapping.field_map import REQUIRED_SOURCES, FieldMapping, ValueKind

if TYPE_CHECKING:
    from incident_pdf.mapping.registry import ResolvedFieldMap
    from incident_pdf.models import AggregatedIncidentRecord
    from incident_pdf.pipeline.context import JobContext

log = logging.getLogger(__name__)

FieldValue = str | bool

TRUTHY_STRINGS = frozenset({"yes", "y", "true", "t", "on", "1", "checked", "x"})
FALSY_STRINGS = frozenset({"no", "n", "false", "f", "off", "0", "unchecked", "", "none", "null"})

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ISO_DATETIME = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?$")

DATE_FORMAT = "%d/%m/%Y"
DATETIME_FORMAT = "%d/%m/%Y %H:%M"


# ── Derived sources ──────────────────────────────────────────────────


def _full_name(record: AggregatedIncidentRecord) -> str:
    parts = [record.profile.get("name"), record.profile.get("surname")]
    return " ".join(str(p).strip() for p in parts if p and str(p).strip())


def _has_witness(record: AggregatedIncidentRecord) -> bool:
    return any(w.name or w.statement for w in record.witnesses)


DERIVED_SOURCES: dict[str, Callable[[AggregatedIncidentRecord], Any]] = {
    "full_name": _full_name,
    "witnesses_present": _has_witness,
    "no_witnesses": lambda record: not _has_witness(record),
    "other_vehicles_present": lambda record: bool(record.other_vehicles),
}


# ── Scalar coercion ──────────────────────────────────────────────────


def sanitize_text(text: str, max_length: int | None = None) -> str:
    """Strip control characters and surrounding whitespace, then truncate."""
    cleaned = _CONTROL_CHARS.sub("", text).strip()
    if max_length is not None and len(cleaned) > max_length:
        cleaned = cleaned[:max_length].rstrip()
    return cleaned


def coerce_text(value: Any, max_length: int | None = None) -> str:
    """Render any source value as form text.

    ``None`` becomes ``""``, booleans ``Yes``/``No``, dates ``dd/mm/YYYY``
    and lists a comma-separated string.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        text = "Yes" if value else "No"
    elif isinstance(value, datetime):
        text = value.strftime(DATETIME_FORMAT)
    elif isinstance(value, date):
        text = value.strftime(DATE_FORMAT)
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value, key=str) if isinstance(value, (set, frozenset)) else value
        text = ", ".join(t for t in (coerce_text(v) for v in items) if t)
    elif isinstance(value, float) and value.is_integer():
        text = str(int(value))
    elif isinstance(value, str):
        text = _format_iso(value.strip())
    else:
        text = str(value)
    return sanitize_text(text, max_length)


def _format_iso(text: str) -> str:
    if _ISO_DATE.match(text):
        parsed_date = _parse_iso_date(text)
        return parsed_date.strftime(DATE_FORMAT) if parsed_date is not None else text
    if _ISO_DATETIME.match(text):
        parsed = _parse_iso_datetime(text)
        return parsed.strftime(DATETIME_FORMAT) if parsed is not None else text
    return text


def _parse_iso_date(text: str) -> date | None:
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def _parse_iso_datetime(text: str) -> datetime | None:
    normalized = text.replace("Z", "+00:00").replace(" ", "T", 1)
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def is_impossible_date(value: Any) -> bool:
    """True for an ISO date or datetime string whose date names no calendar day."""
    if not isinstance(value, str):
        return False
    text = value.strip()
    if _ISO_DATE.match(text) or _ISO_DATETIME.match(text):
        return _parse_iso_date(text[:10]) is None
    return False


def coerce_bool(value: Any) -> bool:
    """Interpret a source value as a checkbox state; unknown strings are False."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) > 0
    return bool(value)


def normalize_tag(value: Any) -> str:
    return re.sub(r"[\s\-]+", "_", str(value).strip().lower())


def as_tag_set(value: Any) -> set[str]:
    """Normalize a multi-select value (list or comma string) to tags."""
    if value is None:
        return set()
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = value
    else:
        items = [value]
    return {normalize_tag(item) for item in items if str(item).strip()}


# ── Source resolution ────────────────────────────────────────────────


def resolve_source(record: AggregatedIncidentRecord, mapping: FieldMapping) -> Any:
    """Fetch the raw value a mapping points at; missing data is ``None``."""
    root, key = mapping.root, mapping.key
    if root == "profile":
        return record.profile.get(key)
    if root == "incident":
        return record.incident.get(key)
    if root == "derived":
        return DERIVED_SOURCES[key](record)
    if root in ("witnesses", "other_vehicles"):
        items = getattr(record, root)
        if mapping.position is None or mapping.position >= len(items):
            return None
        return getattr(items[mapping.position], key, None)
    if root == "documents":
        matching = [d for d in record.documents if d.document_type == key]
        if mapping.position is None or mapping.position >= len(matching):
            return None
        doc = matching[mapping.position]
        return doc.signed_url or doc.storage_path or None
    raise KeyError(f"unknown source root '{root}' in {mapping.source_path}")


# ── Record coercion ──────────────────────────────────────────────────


def coerce_record(
    record: AggregatedIncidentRecord,
    field_map: ResolvedFieldMap,
    ctx: JobContext,
    *,
    max_text_length: int = 5000,
) -> dict[str, FieldValue]:
    """Coerce every resolved mapping into a final field value."""
    _report_missing_required(record, ctx)

    values: dict[str, FieldValue] = {}
    tag_cache: dict[str, set[str]] = {}
    known_tags: dict[str, set[str]] = {}

    for mapping in field_map.mappings:
        raw = resolve_source(record, mapping)
        if mapping.kind is ValueKind.TEXT:
            if is_impossible_date(raw):
                ctx.warn(
                    DiagnosticCategory.DATA_QUALITY,
                    f"'{raw}' is not a valid date; written as given",
                    field_name=mapping.source_path,
                )
            values[mapping.target_field] = coerce_text(raw, max_text_length)
        elif mapping.kind is ValueKind.BOOLEAN_CHECKBOX:
            values[mapping.target_field] = coerce_bool(raw)
        elif mapping.kind is ValueKind.ARRAY_TO_BOOLEAN_SET:
            tags = tag_cache.setdefault(mapping.source_path, as_tag_set(raw))
            known_tags.setdefault(mapping.source_path, set()).add(mapping.tag or "")
            values[mapping.target_field] = (mapping.tag or "") in tags
        elif mapping.kind is ValueKind.EXCLUSIVE_GROUP_MEMBER:
            if mapping.match is not None:
                values[mapping.target_field] = raw is not None and normalize_tag(raw) == mapping.match
            else:
                values[mapping.target_field] = coerce_bool(raw)

    for source_path, tags in tag_cache.items():
        unknown = sorted(tags - known_tags[source_path])
        if unknown:
            ctx.warn(
                DiagnosticCategory.DATA_QUALITY,
                f"unrecognized value(s) {', '.join(unknown)} ignored",
                field_name=source_path,
            )

    _enforce_exclusive_groups(values, field_map.exclusive_groups, ctx)
    _report_unmatched_choices(record, field_map, values, ctx)
    _report_overflow(record, field_map, ctx)

    log.debug(
        "record_coerced | fields=%d text_populated=%d checked=%d",
        len(values),
        sum(1 for v in values.values() if isinstance(v, str) and v),
        sum(1 for v in values.values() if v is True),
    )
    return values


def tags_from_values(
    values: Mapping[str, FieldValue],
    field_map: ResolvedFieldMap,
    source_path: str,
) -> set[str]:
    """Recover the tag set a multi-select source produced."""
    return {
        m.tag
        for m in field_map.by_source(source_path)
        if m.kind is ValueKind.ARRAY_TO_BOOLEAN_SET and m.tag and values.get(m.target_field) is True
    }


def _enforce_exclusive_groups(
    values: dict[str, FieldValue],
    groups: Mapping[str, tuple[str, ...]],
    ctx: JobContext,
) -> None:
    for group, members in groups.items():
        checked = [m for m in members if values.get(m) is True]
        if len(checked) <= 1:
            continue
        winner = checked[0]
        for loser in checked[1:]:
            values[loser] = False
        ctx.warn(
            DiagnosticCategory.DATA_QUALITY,
            f"conflicting selections in '{group}' ({', '.join(checked)}); kept {winner}",
            field_name=group,
        )


def _report_unmatched_choices(
    record: AggregatedIncidentRecord,
    field_map: ResolvedFieldMap,
    values: Mapping[str, FieldValue],
    ctx: JobContext,
) -> None:
    """Warn when a single-choice column holds a value no member matches."""
    by_source: dict[str, list[FieldMapping]] = {}
    for m in field_map.mappings:
        if m.kind is ValueKind.EXCLUSIVE_GROUP_MEMBER and m.match is not None:
            by_source.setdefault(m.source_path, []).append(m)
    for source_path, members in by_source.items():
        raw = resolve_source(record, members[0])
        if raw is None or not str(raw).strip():
            continue
        if not any(values.get(m.target_field) is True for m in members):
            ctx.warn(
                DiagnosticCategory.DATA_QUALITY,
                f"unrecognized value '{raw}' left every option unchecked",
                field_name=source_path,
            )


def _report_overflow(
    record: AggregatedIncidentRecord,
    field_map: ResolvedFieldMap,
    ctx: JobContext,
) -> None:
    for collection in ("witnesses", "other_vehicles"):
        items = getattr(record, collection)
        slots = field_map.slot_count(collection)
        if len(items) > slots:
            ctx.warn(
                DiagnosticCategory.DATA_QUALITY,
                f"{len(items) - slots} of {len(items)} {collection.replace('_', ' ')} "
                f"dropped; template has {slots} slot(s)",
                field_name=collection,
            )

    counts: dict[str, int] = {}
    for doc in record.documents:
        counts[doc.document_type] = counts.get(doc.document_type, 0) + 1
    for document_type, count in sorted(counts.items()):
        capacity = field_map.document_capacity(document_type)
        if count > capacity:
            ctx.warn(
                DiagnosticCategory.DATA_QUALITY,
                f"{count - capacity} '{document_type}' document link(s) have no field",
                field_name=f"documents.{document_type}",
            )


def _report_missing_required(record: AggregatedIncidentRecord, ctx: JobContext) -> None:
    for source in REQUIRED_SOURCES:
        root, _, key = source.partition(".")
        value = getattr(record, root).get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            ctx.warn(
                DiagnosticCategory.DATA_QUALITY,
                "required value missing; field left blank",
                field_name=source,
            )
