"""Render narrative sections into single-page appendix PDFs.

Pages render concurrently (bounded by ``RenderConfig.max_parallel``) but
are always returned in section order.  A page that times out, crashes or
does not come back as exactly one page is replaced by a "content
unavailable" page and recorded as a render-failure diagnostic; it never
fails the job.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from io import BytesIO

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from incident_pdf.core.config import RenderConfig
from incident_pdf.diagnostics import DiagnosticCategory
from incident_pdf.exceptions import RenderError, RenderTimeoutError
from incident_pdf.models import NarrativeSection
from incident_pdf.pdf.html_templates import SectionDocument, build_section_document
from incident_pdf.pdf.protocols import IRenderEngine
from incident_pdf.pdf.reportlab_engine import ReportlabEngine, render_fallback_page
from incident_pdf.pipeline.context import JobContext

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppendixPage:
    """One rendered appendix page, in final order."""

    section_key: str
    title: str
    data: bytes = field(repr=False)
    fallback: bool = False


def create_engine(config: RenderConfig) -> IRenderEngine:
    """Build the engine named by ``config.engine``."""
    if config.engine == "reportlab":
        return ReportlabEngine(config)
    from incident_pdf.pdf.chromium_engine import ChromiumEngine

    return ChromiumEngine(config)


def renderable_sections(
    sections: Sequence[NarrativeSection],
    ctx: JobContext,
) -> list[NarrativeSection]:
    """Drop blank sections, recording each as a data-quality diagnostic."""
    kept: list[NarrativeSection] = []
    for section in sections:
        if section.is_blank():
            ctx.warn(
                DiagnosticCategory.DATA_QUALITY,
                "narrative section is blank; omitted from appendix",
                section_key=section.key,
            )
            continue
        kept.append(section)
    return kept


def count_pages(data: bytes) -> int:
    return len(PdfReader(BytesIO(data)).pages)


class AppendixRenderer:
    """Turns narrative sections into ``AppendixPage`` objects."""

    def __init__(self, engine: IRenderEngine, config: RenderConfig | None = None) -> None:
        self._engine = engine
        self._config = config or RenderConfig()

    @property
    def engine(self) -> IRenderEngine:
        return self._engine

    async def render(
        self,
        sections: Sequence[NarrativeSection],
        ctx: JobContext,
        *,
        record_id: str = "",
    ) -> list[AppendixPage]:
        kept = renderable_sections(sections, ctx)
        if not kept:
            return []
        documents = [
            build_section_document(s, self._config, position=i, total=len(kept), record_id=record_id)
            for i, s in enumerate(kept, start=1)
        ]
        semaphore = asyncio.Semaphore(self._config.max_parallel)

        async def _bounded(document: SectionDocument) -> AppendixPage:
            async with semaphore:
                return await self._render_one(document, ctx)

        pages = await asyncio.gather(*(_bounded(d) for d in documents))
        log.info(
            "appendix_rendered | engine=%s pages=%d fallbacks=%d",
            self._engine.name,
            len(pages),
            sum(1 for p in pages if p.fallback),
        )
        return list(pages)

    async def _render_one(self, document: SectionDocument, ctx: JobContext) -> AppendixPage:
        timeout = self._config.page_timeout_seconds
        try:
            try:
                data = await asyncio.wait_for(self._engine.render(document), timeout=timeout)
            except asyncio.TimeoutError as exc:
                raise RenderTimeoutError(
                    f"render exceeded {timeout:g}s", section_key=document.key
                ) from exc
            pages = _page_count_or_error(data, document.key)
            if pages != 1:
                raise RenderError(f"render produced {pages} pages, expected 1", section_key=document.key)
        except Exception as exc:  # any engine failure degrades to the placeholder page
            reason = str(exc) or type(exc).__name__
            log.warning(
                "appendix_page_failed | section=%s engine=%s error=%s",
                document.key,
                self._engine.name,
                reason,
            )
            ctx.warn(
                DiagnosticCategory.RENDER_FAILURE,
                f"{self._engine.name} render failed ({reason}); placeholder page used",
                section_key=document.key,
            )
            data = await asyncio.to_thread(render_fallback_page, document, self._config)
            return AppendixPage(document.key, document.title, data, fallback=True)
        return AppendixPage(document.key, document.title, data)


def _page_count_or_error(data: bytes, section_key: str) -> int:
    if not data:
        raise RenderError("render returned no bytes", section_key=section_key)
    try:
        return count_pages(data)
    except (PyPdfError, ValueError, KeyError) as exc:
        raise RenderError(f"render returned an unreadable PDF: {exc}", section_key=section_key) from exc
