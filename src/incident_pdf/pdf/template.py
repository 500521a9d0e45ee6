"""Load the fillable base template and catalogue its form fields."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from io import BytesIO
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pypdf import PdfReader
from pypdf.errors import PyPdfError
from pypdf.generic import StreamObject

from incident_pdf.exceptions import TemplateError

log = logging.getLogger(__name__)

_MAX_PARENT_DEPTH = 32

# /Ff bits for button fields
_FF_RADIO = 1 << 15
_FF_PUSHBUTTON = 1 << 16


class FieldKind(str, Enum):
    TEXT = "text"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    CHOICE = "choice"
    SIGNATURE = "signature"
    OTHER = "other"


@dataclass(frozen=True)
class TemplateField:
    """One named form field and where its widgets live."""

    name: str
    kind: FieldKind
    page_index: int | None
    widget_pages: tuple[int, ...] = ()
    on_state: str = "/Yes"

    @property
    def is_checkbox(self) -> bool:
        return self.kind is FieldKind.CHECKBOX


@dataclass(frozen=True)
class FormTemplate:
    """Immutable, shareable view of the base template.

    Holds the raw bytes rather than a parsed document: every job parses its
    own copy, so no pypdf object is ever shared between jobs.
    """

    name: str
    data: bytes = field(repr=False)
    page_count: int
    fields: Mapping[str, TemplateField]

    @classmethod
    def load(cls, path: str | Path) -> FormTemplate:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise TemplateError(f"cannot read template '{path}': {exc}") from exc
        return cls.from_bytes(data, name=path.name)

    @classmethod
    def from_bytes(cls, data: bytes, *, name: str = "<memory>") -> FormTemplate:
        try:
            reader = PdfReader(BytesIO(data))
            page_count = len(reader.pages)
            fields = _catalogue_fields(reader)
        except (PyPdfError, KeyError, ValueError, TypeError) as exc:
            raise TemplateError(f"template '{name}' could not be parsed: {exc}") from exc
        if page_count == 0:
            raise TemplateError(f"template '{name}' has no pages")
        if not fields:
            raise TemplateError(f"template '{name}' has no fillable form fields")
        log.info("template_loaded | name=%s pages=%d fields=%d", name, page_count, len(fields))
        return cls(
            name=name,
            data=data,
            page_count=page_count,
            fields=MappingProxyType(fields),
        )

    @property
    def field_names(self) -> frozenset[str]:
        return frozenset(self.fields)

    def field(self, name: str) -> TemplateField | None:
        return self.fields.get(name)

    def fields_on_page(self, page_index: int) -> list[TemplateField]:
        return [f for f in self.fields.values() if page_index in f.widget_pages]


def _catalogue_fields(reader: PdfReader) -> dict[str, TemplateField]:
    widgets: dict[str, list[tuple[int, Any]]] = {}
    for page_index, page in enumerate(reader.pages):
        annots = page.get("/Annots")
        if annots is None:
            continue
        for ref in annots.get_object():
            annot = ref.get_object()
            if annot is None or annot.get("/Subtype") != "/Widget":
                continue
            name = _qualified_name(annot)
            if not name:
                continue
            widgets.setdefault(name, []).append((page_index, annot))

    fields: dict[str, TemplateField] = {}
    for name, placed in widgets.items():
        first = placed[0][1]
        kind = _field_kind(first)
        pages = tuple(sorted({p for p, _ in placed}))
        on_state = "/Yes"
        if kind is FieldKind.CHECKBOX:
            on_state = next(
                (s for _, annot in placed if (s := _on_state(annot)) is not None),
                "/Yes",
            )
        fields[name] = TemplateField(
            name=name,
            kind=kind,
            page_index=pages[0] if pages else None,
            widget_pages=pages,
            on_state=on_state,
        )
    return fields


def _parents(annot: Any):
    node, depth = annot, 0
    while node is not None and depth < _MAX_PARENT_DEPTH:
        yield node
        parent = node.get("/Parent")
        node = parent.get_object() if parent is not None else None
        depth += 1


def _qualified_name(annot: Any) -> str:
    parts = [str(node["/T"]) for node in _parents(annot) if "/T" in node]
    return ".".join(reversed(parts))


def _inherited(annot: Any, key: str) -> Any:
    for node in _parents(annot):
        if key in node:
            return node[key]
    return None


def _field_kind(annot: Any) -> FieldKind:
    ft = _inherited(annot, "/FT")
    if ft == "/Tx":
        return FieldKind.TEXT
    if ft == "/Ch":
        return FieldKind.CHOICE
    if ft == "/Sig":
        return FieldKind.SIGNATURE
    if ft == "/Btn":
        flags = int(_inherited(annot, "/Ff") or 0)
        if flags & _FF_PUSHBUTTON:
            return FieldKind.OTHER
        if flags & _FF_RADIO:
            return FieldKind.RADIO
        return FieldKind.CHECKBOX
    return FieldKind.OTHER


def _on_state(annot: Any) -> str | None:
    """The checkbox's "on" appearance name; templates use /Yes or /On."""
    ap = annot.get("/AP")
    if ap is None:
        return None
    normal = ap.get_object().get("/N")
    if normal is None:
        return None
    normal = normal.get_object()
    if isinstance(normal, StreamObject) or not hasattr(normal, "keys"):
        return None
    for key in normal.keys():
        if key != "/Off":
            return str(key)
    return None
