"""Tests for filling the base template."""

from __future__ import annotations

from io import BytesIO

import pytest
from pypdf import PdfReader

from incident_pdf.diagnostics import DiagnosticCategory
from incident_pdf.exceptions import AssemblyError
from incident_pdf.pdf.filler import FormFiller
from incident_pdf.pdf.guard import pdf_bool
from incident_pdf.pdf.template import FormTemplate
from tests.fakes.template_factory import with_checkbox_on_state


def _fields(data: bytes) -> dict:
    return PdfReader(BytesIO(data)).get_fields()


class TestFormFiller:
    def test_text_and_checkbox_values_written(self, form_template, ctx):
        filled = FormFiller().fill(
            form_template,
            {"driver_name": "Jane", "airbags_deployed": True, "wearing_seatbelts": False},
            ctx,
        )
        fields = _fields(filled.consume())
        assert fields["driver_name"]["/V"] == "Jane"
        assert fields["airbags_deployed"]["/V"] == "/Yes"
        assert fields["wearing_seatbelts"]["/V"] == "/Off"

    def test_checkbox_uses_template_on_state(self, template_bytes, ctx):
        template = FormTemplate.from_bytes(with_checkbox_on_state(template_bytes, "airbags_deployed", "/On"))
        filled = FormFiller().fill(template, {"airbags_deployed": True}, ctx)
        assert _fields(filled.consume())["airbags_deployed"]["/V"] == "/On"

    def test_page_count_preserved(self, form_template, ctx):
        filled = FormFiller().fill(form_template, {"driver_name": "Jane"}, ctx)
        assert filled.page_count == form_template.page_count
        assert len(PdfReader(BytesIO(filled.consume())).pages) == 13

    def test_need_appearances_set_and_not_flattened(self, form_template, ctx):
        filled = FormFiller().fill(form_template, {"driver_name": "Jane"}, ctx)
        reader = PdfReader(BytesIO(filled.consume()))
        acroform = reader.trailer["/Root"]["/AcroForm"]
        assert pdf_bool(acroform.get("/NeedAppearances"))
        assert len(acroform["/Fields"]) == len(form_template.fields)

    def test_unknown_field_is_drift_diagnostic(self, form_template, ctx):
        filled = FormFiller().fill(form_template, {"driver_name": "Jane", "ghost_field": "x"}, ctx)
        assert "ghost_field" not in filled.values
        [diag] = ctx.diagnostics
        assert diag.category is DiagnosticCategory.TEMPLATE_DRIFT
        assert diag.field_name == "ghost_field"

    def test_text_value_on_checkbox_skipped(self, form_template, ctx):
        filled = FormFiller().fill(form_template, {"airbags_deployed": "yes please"}, ctx)
        assert filled.values == {}
        assert ctx.diagnostics[0].category is DiagnosticCategory.TEMPLATE_DRIFT

    def test_text_values_are_sanitized(self, form_template, ctx):
        filled = FormFiller().fill(form_template, {"driver_name": "  Ja\x00ne\x07 \n"}, ctx)
        assert filled.values == {"driver_name": "Jane"}
        assert _fields(filled.consume())["driver_name"]["/V"] == "Jane"

    def test_template_is_not_mutated(self, form_template, ctx):
        before = form_template.data
        FormFiller().fill(form_template, {"driver_name": "Jane"}, ctx).consume()
        assert form_template.data == before

    def test_consume_once(self, form_template, ctx):
        filled = FormFiller().fill(form_template, {"driver_name": "Jane"}, ctx)
        filled.consume()
        assert filled.consumed
        with pytest.raises(AssemblyError, match="already been consumed"):
            filled.consume()

    def test_populated_text_fields(self, form_template, ctx):
        filled = FormFiller().fill(
            form_template, {"driver_name": "Jane", "driver_surname": "", "no_damage": True}, ctx
        )
        assert filled.populated_text_fields == 1

    def test_boolean_on_text_field_skipped(self, form_template, ctx):
        filled = FormFiller().fill(form_template, {"driver_name": True}, ctx)
        assert filled.values == {}
        assert ctx.diagnostics[0].field_name == "driver_name"
