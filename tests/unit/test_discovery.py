"""Tests for offline override suggestions."""

from __future__ import annotations

from incident_pdf.mapping.discovery import render_override_snippet, suggest_overrides


class TestSuggestOverrides:
    def test_misspelling_ranked_first(self):
        [suggestion] = suggest_overrides(
            ["medical_treatment_received"],
            ["medical_treatment_recieved", "medical_notes", "driver_name"],
        )
        assert suggestion.best == "medical_treatment_recieved"
        assert suggestion.candidates[0][1] > 0.9

    def test_hyphenated_names_normalized(self):
        [suggestion] = suggest_overrides(["other_vehicle_registration"], ["other-vehicle-registration"])
        assert suggestion.best == "other-vehicle-registration"
        assert suggestion.candidates[0][1] == 1.0

    def test_no_candidate_above_cutoff(self):
        [suggestion] = suggest_overrides(["airbags_deployed"], ["postcode"], cutoff=0.75)
        assert suggestion.best is None
        assert suggestion.candidates == ()

    def test_limit_and_sorted_output(self):
        suggestions = suggest_overrides(
            ["witness_name_2", "accident_date"],
            ["witness_name_02", "witness_name2", "witness_names_2", "accident_dates"],
            limit=2,
        )
        assert [s.intended_name for s in suggestions] == ["accident_date", "witness_name_2"]
        assert len(suggestions[1].candidates) == 2


class TestRenderSnippet:
    def test_entries_and_unmatched_comment(self):
        suggestions = suggest_overrides(
            ["weather_thunder_lightning", "zzz"], ["weather_thunder_lightening"]
        )
        snippet = render_override_snippet(suggestions)
        assert "'weather_thunder_lightning': 'weather_thunder_lightening'," in snippet
        assert "# 'zzz': no close match" in snippet
