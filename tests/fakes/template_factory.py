"""Build fillable test templates with reportlab's AcroForm support.

The default template mirrors the production layout: 13 pages, every mapped
field on its expected page, two witness slots and one other-vehicle slot,
with the real (override) spellings of the misnamed fields.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from io import BytesIO

from pypdf import PdfReader, PdfWriter
from pypdf.generic import NameObject
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from incident_pdf.mapping.field_map import FIELD_MAPPINGS, ValueKind
from incident_pdf.mapping.overrides import FIELD_NAME_OVERRIDES

DEFAULT_PAGE_COUNT = 13

FieldSpec = tuple[str, str, int]  # (name, "text" | "checkbox", 1-based page)


def template_fields(
    *,
    witness_slots: int = 2,
    vehicle_slots: int = 1,
    omit: Iterable[str] = (),
    rename: dict[str, str] | None = None,
    extra: Iterable[FieldSpec] = (),
    apply_overrides: bool = True,
) -> list[FieldSpec]:
    omit = set(omit)
    rename = rename or {}
    specs: list[FieldSpec] = []
    for m in FIELD_MAPPINGS:
        if m.root == "witnesses" and m.position >= witness_slots:
            continue
        if m.root == "other_vehicles" and m.position >= vehicle_slots:
            continue
        name = FIELD_NAME_OVERRIDES.get(m.target_field, m.target_field) if apply_overrides else m.target_field
        name = rename.get(name, name)
        if name in omit:
            continue
        kind = "text" if m.kind is ValueKind.TEXT else "checkbox"
        specs.append((name, kind, m.page_hint or 1))
    specs.extend(extra)
    return specs


def build_template(fields: Iterable[FieldSpec], page_count: int = DEFAULT_PAGE_COUNT) -> bytes:
    by_page: dict[int, list[tuple[str, str]]] = defaultdict(list)
    for name, kind, page in fields:
        by_page[page].append((name, kind))

    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4, invariant=1)
    form = c.acroForm
    for page in range(1, page_count + 1):
        c.setFont("Helvetica-Bold", 10)
        c.drawString(40, 815, f"Incident report template - page {page}")
        for i, (name, kind) in enumerate(by_page.get(page, [])):
            col, row = divmod(i, 40)
            x = 40 + col * 270
            y = 790 - row * 19
            if kind == "checkbox":
                form.checkbox(name=name, x=x, y=y, size=12, buttonStyle="check", checked=False)
            else:
                form.textfield(
                    name=name, x=x, y=y, width=240, height=16, fontSize=8, borderWidth=1, maxlen=100000
                )
        c.showPage()
    c.save()
    return buffer.getvalue()


def build_default_template(page_count: int = DEFAULT_PAGE_COUNT, **kwargs) -> bytes:
    return build_template(template_fields(**kwargs), page_count=page_count)


def with_checkbox_on_state(data: bytes, field_name: str, state: str = "/On") -> bytes:
    """Rename a checkbox's /Yes appearance to ``state`` (templates differ)."""
    writer = PdfWriter(clone_from=PdfReader(BytesIO(data)))
    for page in writer.pages:
        for ref in page.get("/Annots", []):
            annot = ref.get_object()
            if annot.get("/T") != field_name:
                continue
            ap = annot["/AP"]
            for key in ("/N", "/D"):
                if key not in ap:
                    continue
                states = ap[key]
                if "/Yes" in states:
                    states[NameObject(state)] = states.raw_get("/Yes")
                    del states["/Yes"]
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def two_page_pdf() -> bytes:
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4, invariant=1)
    for n in (1, 2):
        c.drawString(72, 720, f"overflow page {n}")
        c.showPage()
    c.save()
    return buffer.getvalue()
