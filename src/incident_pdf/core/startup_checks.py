"""Startup validation: fail-fast on critical misconfigurations."""

from __future__ import annotations

import importlib.util
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from incident_pdf.core.config import AppSettings

log = logging.getLogger(__name__)


def validate_settings(settings: AppSettings) -> None:
    """Validate application settings at startup. Raises ValueError on fatal misconfig."""
    _check_template(settings)
    _check_timeouts(settings)
    _check_insertion_point(settings)
    _check_render_engine(settings)


def _check_template(settings: AppSettings) -> None:
    """Reject a template path that does not point at a file."""
    path = settings.template.path
    if not path.is_file():
        raise ValueError(
            f"INCIDENT_PDF_TEMPLATE_PATH '{path}' does not exist or is not a file. "
            f"The fillable base template must be available at startup."
        )


def _check_timeouts(settings: AppSettings) -> None:
    """A single page render must fit inside the whole-job budget."""
    page_timeout = settings.render.page_timeout_seconds
    job_timeout = settings.pipeline.job_timeout_seconds
    if page_timeout >= job_timeout:
        raise ValueError(
            f"INCIDENT_PDF_RENDER_PAGE_TIMEOUT_SECONDS ({page_timeout}) must be smaller than "
            f"INCIDENT_PDF_PIPELINE_JOB_TIMEOUT_SECONDS ({job_timeout})."
        )


def _check_insertion_point(settings: AppSettings) -> None:
    """Reject a negative insertion point (CLI overrides bypass field validation)."""
    if settings.assembly.insertion_point < 0:
        raise ValueError(
            f"INCIDENT_PDF_ASSEMBLY_INSERTION_POINT ({settings.assembly.insertion_point}) must be >= 0."
        )


def _check_render_engine(settings: AppSettings) -> None:
    """Warn when the Chromium engine is selected without Playwright installed."""
    if settings.render.engine != "chromium":
        return
    if importlib.util.find_spec("playwright") is None:
        log.warning(
            "INCIDENT_PDF_RENDER_ENGINE=chromium but playwright is not installed. "
            "Every appendix page will fall back to the 'content unavailable' page. "
            "Install with: pip install incident-pdf[browser], or set INCIDENT_PDF_RENDER_ENGINE=reportlab."
        )
