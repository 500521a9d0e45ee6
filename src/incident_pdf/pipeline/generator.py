"""End-to-end report generation: map, fill, render, assemble, validate.

``IncidentReportGenerator`` is built once per process (template loaded and
field map validated at startup) and then serves any number of concurrent
``generate`` calls.  Each call owns its own ``JobContext`` and its own
parsed copies of every PDF, so jobs share nothing mutable.

Usage::

    async with IncidentReportGenerator.from_settings() as generator:
        result = await generator.generate(record)
        Path("report.pdf").write_bytes(result.pdf)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import ValidationError

from incident_pdf.core.config import AppSettings
from incident_pdf.exceptions import JobTimeoutError, MappingError, TemplateError
from incident_pdf.mapping.coercion import coerce_record
from incident_pdf.mapping.registry import ResolvedFieldMap, resolve_field_map
from incident_pdf.models import AggregatedIncidentRecord, GenerationResult
from incident_pdf.pdf.appendix import AppendixRenderer, create_engine
from incident_pdf.pdf.assembler import DocumentAssembler
from incident_pdf.pdf.filler import FormFiller
from incident_pdf.pdf.guard import CorruptionGuard
from incident_pdf.pdf.protocols import IRenderEngine
from incident_pdf.pdf.template import FormTemplate
from incident_pdf.pipeline.context import JobContext

log = logging.getLogger(__name__)


class IncidentReportGenerator:
    """Produces validated incident-report PDFs from aggregated records."""

    def __init__(
        self,
        settings: AppSettings,
        template: FormTemplate,
        field_map: ResolvedFieldMap,
        engine: IRenderEngine,
    ) -> None:
        self._settings = settings
        self._template = template
        self._field_map = field_map
        self._engine = engine
        self._filler = FormFiller()
        self._renderer = AppendixRenderer(engine, settings.render)
        self._assembler = DocumentAssembler(settings.assembly.insertion_point)
        self._guard = CorruptionGuard(
            require_need_appearances=settings.assembly.require_need_appearances
        )

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings | None = None,
        *,
        template: FormTemplate | None = None,
        engine: IRenderEngine | None = None,
    ) -> IncidentReportGenerator:
        """Load the template, validate the field map and pick the engine.

        Raises:
            TemplateError: Template missing, unparsable or of the wrong size.
            MappingError: Field map drift in strict mode.
        """
        settings = settings or AppSettings()
        template = template or FormTemplate.load(settings.template.path)

        expected = settings.template.expected_page_count
        if expected is not None and template.page_count != expected:
            raise TemplateError(
                f"template '{template.name}' has {template.page_count} pages, expected {expected}"
            )
        insertion_point = settings.assembly.insertion_point
        if insertion_point > template.page_count:
            raise TemplateError(
                f"insertion point {insertion_point} is beyond the template's "
                f"{template.page_count} pages"
            )

        field_map = resolve_field_map(template, strict=settings.template.strict_mapping)
        engine = engine or create_engine(settings.render)
        log.info(
            "generator_ready | template=%s pages=%d fields=%d engine=%s insertion_point=%d",
            template.name,
            template.page_count,
            len(field_map.mappings),
            engine.name,
            insertion_point,
        )
        return cls(settings, template, field_map, engine)

    @property
    def template(self) -> FormTemplate:
        return self._template

    @property
    def field_map(self) -> ResolvedFieldMap:
        return self._field_map

    async def generate(
        self,
        record: AggregatedIncidentRecord | dict[str, Any],
        *,
        job_id: str | None = None,
    ) -> GenerationResult:
        """Generate one report.

        Raises:
            MappingError: ``record`` is malformed.
            JobTimeoutError: The job exceeded ``pipeline.job_timeout_seconds``.
            AssemblyError, CorruptionDetected, TemplateError: Fatal PDF failures.
        """
        record = _coerce_input(record)
        ctx = JobContext(record_id=record.record_id)
        if job_id:
            ctx.job_id = job_id

        timeout = self._settings.pipeline.job_timeout_seconds
        with ctx.bound():
            log.info("job_started | sections=%d witnesses=%d", len(record.narrative), len(record.witnesses))
            try:
                result = await asyncio.wait_for(self._run(record, ctx), timeout=timeout)
            except asyncio.TimeoutError as exc:
                log.error("job_timeout | timeout_s=%s stages=%s", timeout, [s.stage for s in ctx.stages])
                raise JobTimeoutError(f"report generation exceeded {timeout:g}s") from exc
            except Exception:
                log.exception("job_failed")
                raise
            log.info(
                "job_done | pages=%d appendix=%d diagnostics=%d size_kb=%.1f",
                result.page_count,
                result.appendix_page_count,
                len(result.diagnostics),
                result.size_kb,
            )
            return result

    async def _run(self, record: AggregatedIncidentRecord, ctx: JobContext) -> GenerationResult:
        with ctx.track_stage("map"):
            values = coerce_record(
                record,
                self._field_map,
                ctx,
                max_text_length=self._settings.pipeline.max_text_length,
            )

        with ctx.track_stage("fill"):
            filled = await asyncio.to_thread(self._filler.fill, self._template, values, ctx)

        with ctx.track_stage("render"):
            pages = await self._renderer.render(record.narrative, ctx, record_id=record.record_id)

        with ctx.track_stage("assemble"):
            assembled = await asyncio.to_thread(self._assembler.assemble, filled, pages)

        fingerprints = assembled.fingerprints if self._settings.assembly.verify_fingerprints else None
        with ctx.track_stage("validate"):
            await asyncio.to_thread(
                self._guard.validate,
                assembled.data,
                expected_page_count=assembled.page_count,
                expected_fingerprints=fingerprints,
            )

        return GenerationResult(
            job_id=ctx.job_id,
            record_id=record.record_id,
            pdf=assembled.data,
            page_count=assembled.page_count,
            base_page_count=assembled.base_page_count,
            appendix_page_count=assembled.appendix_page_count,
            diagnostics=list(ctx.diagnostics),
            stages=list(ctx.stages),
        )

    async def aclose(self) -> None:
        await self._engine.close()

    async def __aenter__(self) -> IncidentReportGenerator:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def _coerce_input(record: AggregatedIncidentRecord | dict[str, Any]) -> AggregatedIncidentRecord:
    if isinstance(record, AggregatedIncidentRecord):
        return record
    try:
        return AggregatedIncidentRecord.model_validate(record)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise MappingError(
            f"invalid incident record at '{location}': {first.get('msg', 'invalid value')}",
            field_name=location,
        ) from exc
