"""Tests for the per-job context."""

from __future__ import annotations

import pytest
import structlog

from incident_pdf.diagnostics import DiagnosticCategory
from incident_pdf.pipeline.context import JobContext


class TestJobContext:
    def test_ids_are_unique(self):
        assert JobContext().job_id != JobContext().job_id

    def test_warn_records_diagnostic(self):
        ctx = JobContext()
        diag = ctx.warn(DiagnosticCategory.TEMPLATE_DRIFT, "missing", field_name="driver_name")
        assert ctx.diagnostics == [diag]
        assert ctx.diagnostics_for(DiagnosticCategory.TEMPLATE_DRIFT) == [diag]
        assert ctx.diagnostics_for(DiagnosticCategory.RENDER_FAILURE) == []

    def test_contexts_do_not_share_diagnostics(self):
        a, b = JobContext(), JobContext()
        a.warn(DiagnosticCategory.DATA_QUALITY, "only a")
        assert b.diagnostics == []

    def test_track_stage_ok(self):
        ctx = JobContext()
        with ctx.track_stage("fill"):
            pass
        [timing] = ctx.stages
        assert timing.stage == "fill"
        assert timing.status == "ok"
        assert timing.duration_ms >= 0

    def test_track_stage_error(self):
        ctx = JobContext()
        with pytest.raises(RuntimeError):
            with ctx.track_stage("render"):
                raise RuntimeError("boom")
        assert ctx.stages[0].status == "error"

    def test_bound_sets_and_clears_log_context(self):
        ctx = JobContext(record_id="rec-1")
        with ctx.bound():
            bound = structlog.contextvars.get_contextvars()
            assert bound["job_id"] == ctx.job_id
            assert bound["record_id"] == "rec-1"
        assert "job_id" not in structlog.contextvars.get_contextvars()
