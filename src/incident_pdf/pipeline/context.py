"""Per-job context: identity, diagnostics and stage timings.

A ``JobContext`` is created for every ``generate`` call and passed
explicitly to each stage.  Nothing about a job lives in module state, so
concurrent jobs never share diagnostics.

Usage::

    ctx = JobContext(record_id="abc")
    with ctx.bound(), ctx.track_stage("fill"):
        ctx.warn(DiagnosticCategory.TEMPLATE_DRIFT, "field not found", field_name="x")
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Generator

import structlog

from incident_pdf.diagnostics import Diagnostic, DiagnosticCategory
from incident_pdf.models import StageTiming

log = logging.getLogger(__name__)


@dataclass
class JobContext:
    """Mutable accumulator owned by exactly one generation job."""

    job_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    record_id: str = ""
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    diagnostics: list[Diagnostic] = field(default_factory=list)
    stages: list[StageTiming] = field(default_factory=list)

    def warn(
        self,
        category: DiagnosticCategory,
        message: str,
        *,
        field_name: str = "",
        section_key: str = "",
        page_index: int | None = None,
    ) -> Diagnostic:
        """Record a non-fatal diagnostic and log it."""
        diag = Diagnostic(
            category=category,
            message=message,
            field_name=field_name,
            section_key=section_key,
            page_index=page_index,
        )
        self.diagnostics.append(diag)
        log.warning(
            "diagnostic | category=%s field=%s section=%s msg=%s",
            category.value,
            field_name or "-",
            section_key or "-",
            message,
        )
        return diag

    def diagnostics_for(self, category: DiagnosticCategory) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.category is category]

    @contextmanager
    def bound(self) -> Generator[JobContext, None, None]:
        """Bind job identity into structlog's context for the duration."""
        structlog.contextvars.bind_contextvars(job_id=self.job_id, record_id=self.record_id)
        try:
            yield self
        finally:
            structlog.contextvars.unbind_contextvars("job_id", "record_id")

    @contextmanager
    def track_stage(self, name: str) -> Generator[StageTiming, None, None]:
        """Time a pipeline stage; a raised exception marks it ``error``."""
        timing = StageTiming(stage=name)
        structlog.contextvars.bind_contextvars(stage=name)
        start = time.perf_counter()
        try:
            yield timing
        except BaseException:
            timing.status = "error"
            raise
        finally:
            timing.duration_ms = round((time.perf_counter() - start) * 1000, 2)
            self.stages.append(timing)
            log.debug("stage_done | stage=%s status=%s ms=%.1f", name, timing.status, timing.duration_ms)
            structlog.contextvars.unbind_contextvars("stage")
