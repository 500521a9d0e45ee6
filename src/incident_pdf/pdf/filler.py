"""Write coerced values into a per-job copy of the base template.

Fields are never flattened.  Instead the document's ``NeedAppearances`` flag
is set so viewers regenerate widget appearances; flattening before a
page-level merge was what produced unreadable output in the past.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
from io import BytesIO

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

from incident_pdf.diagnostics import DiagnosticCategory
from incident_pdf.exceptions import AssemblyError, TemplateError
from incident_pdf.mapping.coercion import sanitize_text
from incident_pdf.pdf.template import FieldKind, FormTemplate, TemplateField
from incident_pdf.pipeline.context import JobContext

log = logging.getLogger(__name__)

_OFF = "/Off"


@dataclass
class FilledDocument:
    """An in-memory filled form, consumable exactly once by the assembler."""

    writer: PdfWriter = field(repr=False)
    template_name: str
    values: dict[str, str | bool]
    _consumed: bool = field(default=False, repr=False)

    @property
    def page_count(self) -> int:
        return len(self.writer.pages)

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def populated_text_fields(self) -> int:
        return sum(1 for v in self.values.values() if isinstance(v, str) and v)

    def consume(self) -> bytes:
        """Serialize the document; a second call raises ``AssemblyError``."""
        if self._consumed:
            raise AssemblyError("filled document has already been consumed")
        self._consumed = True
        buffer = BytesIO()
        self.writer.write(buffer)
        return buffer.getvalue()


class FormFiller:
    """Fills template fields by name; unknown names become drift diagnostics."""

    def fill(
        self,
        template: FormTemplate,
        values: Mapping[str, str | bool],
        ctx: JobContext,
    ) -> FilledDocument:
        try:
            writer = PdfWriter(clone_from=PdfReader(BytesIO(template.data)))
        except (PyPdfError, ValueError, KeyError) as exc:
            raise TemplateError(f"template '{template.name}' could not be copied: {exc}") from exc

        per_page: dict[int, dict[str, str]] = defaultdict(dict)
        applied: dict[str, str | bool] = {}
        for name, value in values.items():
            tf = template.field(name)
            if tf is None:
                ctx.warn(
                    DiagnosticCategory.TEMPLATE_DRIFT,
                    "field not found in template; value skipped",
                    field_name=name,
                )
                continue
            pdf_value = _pdf_value(tf, value, ctx)
            if pdf_value is None:
                continue
            for page_index in tf.widget_pages:
                per_page[page_index][name] = pdf_value
            applied[name] = pdf_value if isinstance(value, str) else value

        try:
            for page_index in sorted(per_page):
                writer.update_page_form_field_values(
                    writer.pages[page_index], per_page[page_index], auto_regenerate=False
                )
        except (PyPdfError, KeyError, ValueError, TypeError) as exc:
            raise TemplateError(f"form fill failed on template '{template.name}': {exc}") from exc

        # must follow the updates: auto_regenerate=False clears the flag
        writer.set_need_appearances_writer(True)

        log.info(
            "form_filled | template=%s fields=%d skipped=%d",
            template.name,
            len(applied),
            len(values) - len(applied),
        )
        return FilledDocument(writer=writer, template_name=template.name, values=applied)


def _pdf_value(tf: TemplateField, value: str | bool, ctx: JobContext) -> str | None:
    if tf.kind is FieldKind.CHECKBOX:
        if isinstance(value, bool):
            return tf.on_state if value else _OFF
        ctx.warn(
            DiagnosticCategory.TEMPLATE_DRIFT,
            "text value mapped onto a checkbox; skipped",
            field_name=tf.name,
        )
        return None
    if tf.kind is FieldKind.TEXT:
        if isinstance(value, str):
            return sanitize_text(value)
        ctx.warn(
            DiagnosticCategory.TEMPLATE_DRIFT,
            "boolean value mapped onto a text field; skipped",
            field_name=tf.name,
        )
        return None
    ctx.warn(
        DiagnosticCategory.TEMPLATE_DRIFT,
        f"unsupported field type '{tf.kind.value}'; skipped",
        field_name=tf.name,
    )
    return None


