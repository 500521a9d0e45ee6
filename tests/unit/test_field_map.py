"""Tests for the static field map and its startup resolution."""

from __future__ import annotations

import logging

import pytest

from incident_pdf.exceptions import MappingError
from incident_pdf.mapping.field_map import (
    EXCLUSIVE_GROUPS,
    FIELD_MAPPINGS,
    FieldMapping,
    ValueKind,
    slot_field_name,
)
from incident_pdf.mapping.overrides import FIELD_NAME_OVERRIDES, OVERRIDES_VERSION
from incident_pdf.mapping.registry import resolve_field_map
from incident_pdf.pdf.template import FormTemplate
from tests.fakes.template_factory import build_template, template_fields


def _template(**kwargs) -> FormTemplate:
    return FormTemplate.from_bytes(build_template(template_fields(**kwargs)), name="t.pdf")


class TestStaticTable:
    def test_targets_are_unique(self):
        targets = [m.target_field for m in FIELD_MAPPINGS]
        assert len(targets) == len(set(targets))

    def test_group_members_exist_in_table(self):
        targets = {m.target_field for m in FIELD_MAPPINGS}
        for members in EXCLUSIVE_GROUPS.values():
            assert set(members) <= targets

    def test_group_members_are_exclusive_kind(self):
        by_target = {m.target_field: m for m in FIELD_MAPPINGS}
        for group, members in EXCLUSIVE_GROUPS.items():
            for member in members:
                assert by_target[member].kind is ValueKind.EXCLUSIVE_GROUP_MEMBER
                assert by_target[member].group == group

    def test_multi_select_mappings_carry_tags(self):
        for m in FIELD_MAPPINGS:
            if m.kind is ValueKind.ARRAY_TO_BOOLEAN_SET:
                assert m.tag and m.target_field.endswith(m.tag)

    def test_every_mapping_has_page_hint(self):
        assert all(m.page_hint for m in FIELD_MAPPINGS)

    def test_overrides_point_at_mapped_names(self):
        targets = {m.target_field for m in FIELD_MAPPINGS}
        assert set(FIELD_NAME_OVERRIDES) <= targets

    def test_slot_field_name(self):
        assert slot_field_name("witness_name", 0) == "witness_name"
        assert slot_field_name("witness_name", 1) == "witness_name_2"


class TestResolve:
    def test_default_template_resolves(self, form_template):
        resolved = resolve_field_map(form_template)
        assert resolved.unresolved == ()
        assert resolved.page_mismatches == ()
        assert resolved.slot_count("witnesses") == 2
        assert resolved.slot_count("other_vehicles") == 1
        assert resolved.overrides_version == OVERRIDES_VERSION

    def test_overrides_applied(self, field_map):
        assert field_map.applied_overrides["medical_treatment_received"] == "medical_treatment_recieved"
        [m] = [m for m in field_map.mappings if m.target_field == "medical_treatment_recieved"]
        assert m.logical_name == "medical_treatment_received"

    def test_exclusive_groups_use_real_names(self, field_map):
        assert field_map.exclusive_groups["visibility"] == (
            "visibility_very_poor",
            "visibility_poor",
            "visibility_good",
        )

    def test_missing_field_strict_raises(self):
        template = _template(omit=["accident_location"])
        with pytest.raises(MappingError) as exc_info:
            resolve_field_map(template)
        assert exc_info.value.field_name == "accident_location"

    def test_missing_field_lenient_records_drift(self):
        template = _template(omit=["accident_location", "driver_town"])
        resolved = resolve_field_map(template, strict=False)
        assert set(resolved.unresolved) == {"accident_location", "driver_town"}
        assert "accident_location" not in resolved.target_fields

    def test_unapplied_override_is_drift(self):
        template = _template(apply_overrides=False)
        with pytest.raises(MappingError, match="not found in template"):
            resolve_field_map(template)

    def test_duplicate_targets_raise(self, form_template):
        mappings = (
            FieldMapping("profile.name", "driver_name", ValueKind.TEXT, 1),
            FieldMapping("profile.surname", "driver_name", ValueKind.TEXT, 1),
        )
        with pytest.raises(MappingError, match="more than once"):
            resolve_field_map(form_template, mappings=mappings, overrides={})

    def test_override_collision_raises(self, form_template):
        with pytest.raises(MappingError, match="more than once"):
            resolve_field_map(form_template, overrides={"driver_surname": "driver_name"})

    def test_unused_override_is_logged(self, form_template, caplog):
        with caplog.at_level(logging.WARNING, logger="incident_pdf.mapping.registry"):
            resolve_field_map(form_template, overrides={**FIELD_NAME_OVERRIDES, "no_such_field": "x"})
        assert "override_unused" in caplog.text

    def test_slots_bounded_by_template(self):
        resolved = resolve_field_map(_template(witness_slots=3, vehicle_slots=2))
        assert resolved.slot_count("witnesses") == 3
        assert resolved.slot_count("other_vehicles") == 2
        assert "witness_name_3" in resolved.target_fields
        assert "witness_name_4" not in resolved.target_fields

    def test_template_without_witness_fields_is_drift(self):
        template = _template(witness_slots=0)
        with pytest.raises(MappingError):
            resolve_field_map(template)

    def test_partial_slot_is_drift(self):
        template = _template(extra=[("witness_name_3", "text", 9)])
        with pytest.raises(MappingError) as exc_info:
            resolve_field_map(template)
        assert exc_info.value.field_name.endswith("_3")

    def test_page_mismatch_is_warning_only(self):
        template = _template(omit=["driver_name"], extra=[("driver_name", "text", 2)])
        resolved = resolve_field_map(template)
        [mismatch] = resolved.page_mismatches
        assert mismatch.field_name == "driver_name"
        assert (mismatch.expected_page, mismatch.actual_page) == (1, 2)
