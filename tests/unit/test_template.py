"""Tests for template loading and field cataloguing."""

from __future__ import annotations

from pathlib import Path

import pytest

from incident_pdf.exceptions import TemplateError
from incident_pdf.pdf.template import FieldKind, FormTemplate
from tests.fakes.template_factory import build_template, two_page_pdf, with_checkbox_on_state


class TestFormTemplate:
    def test_page_count(self, form_template):
        assert form_template.page_count == 13

    def test_text_field_catalogued(self, form_template):
        tf = form_template.field("driver_name")
        assert tf is not None
        assert tf.kind is FieldKind.TEXT
        assert tf.page_index == 0
        assert tf.widget_pages == (0,)

    def test_checkbox_catalogued_with_on_state(self, form_template):
        tf = form_template.field("airbags_deployed")
        assert tf.kind is FieldKind.CHECKBOX
        assert tf.is_checkbox
        assert tf.on_state == "/Yes"
        assert tf.page_index == 4

    def test_on_state_read_from_appearance(self, template_bytes):
        data = with_checkbox_on_state(template_bytes, "airbags_deployed", "/On")
        template = FormTemplate.from_bytes(data)
        assert template.field("airbags_deployed").on_state == "/On"
        assert template.field("wearing_seatbelts").on_state == "/Yes"

    def test_fields_on_page(self, form_template):
        names = {f.name for f in form_template.fields_on_page(8)}
        assert {"witness_name", "witness_name_2", "police_attended"} <= names
        assert "driver_name" not in names

    def test_unknown_field(self, form_template):
        assert form_template.field("nope") is None
        assert "nope" not in form_template.field_names

    def test_load_from_path(self, template_path):
        template = FormTemplate.load(template_path)
        assert template.name == "incident-report.pdf"
        assert template.page_count == 13

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(TemplateError, match="cannot read"):
            FormTemplate.load(tmp_path / "absent.pdf")

    def test_garbage_bytes(self):
        with pytest.raises(TemplateError):
            FormTemplate.from_bytes(b"this is not a pdf at all")

    def test_pdf_without_form(self):
        with pytest.raises(TemplateError, match="no fillable form fields"):
            FormTemplate.from_bytes(two_page_pdf())

    def test_small_custom_template(self):
        data = build_template([("a", "text", 1), ("b", "checkbox", 2)], page_count=2)
        template = FormTemplate.from_bytes(data)
        assert template.field_names == frozenset({"a", "b"})
        assert template.field("b").page_index == 1
