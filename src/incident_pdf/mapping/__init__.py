"""Record-to-form field mapping: static table, overrides, coercion."""

from incident_pdf.mapping.coercion import coerce_record, tags_from_values
from incident_pdf.mapping.field_map import FIELD_MAPPINGS, FieldMapping, ValueKind
from incident_pdf.mapping.registry import ResolvedFieldMap, resolve_field_map

__all__ = [
    "FIELD_MAPPINGS",
    "FieldMapping",
    "ResolvedFieldMap",
    "ValueKind",
    "coerce_record",
    "resolve_field_map",
    "tags_from_values",
]
