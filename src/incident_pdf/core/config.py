"""Nested pydantic-settings configuration for the application.

Each concern reads its own ``INCIDENT_PDF_<GROUP>_*`` env vars, e.g.::

    export INCIDENT_PDF_TEMPLATE_PATH=/srv/templates/incident-report.pdf
    export INCIDENT_PDF_RENDER_ENGINE=reportlab
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class TemplateConfig(BaseSettings):
    """Base fillable template configuration.

    Env vars use ``INCIDENT_PDF_TEMPLATE_`` prefix.
    """

    model_config = {"env_prefix": "INCIDENT_PDF_TEMPLATE_"}

    path: Path = Path("pdf-templates/incident-report.pdf")
    expected_page_count: int | None = Field(default=None, ge=1)
    strict_mapping: bool = True


class RenderConfig(BaseSettings):
    """Appendix page rendering configuration.

    Env vars use ``INCIDENT_PDF_RENDER_`` prefix::

        export INCIDENT_PDF_RENDER_ENGINE=chromium
        export INCIDENT_PDF_RENDER_PAGE_TIMEOUT_SECONDS=15
    """

    model_config = {"env_prefix": "INCIDENT_PDF_RENDER_"}

    engine: Literal["chromium", "reportlab"] = "chromium"
    page_size: Literal["a4", "letter"] = "a4"
    page_timeout_seconds: float = Field(default=20.0, gt=0.0)
    max_parallel: int = Field(default=4, ge=1, le=32)
    margin_mm: float = Field(default=18.0, ge=0.0, le=60.0)
    font_family: str = "Helvetica"
    body_font_size: int = Field(default=10, ge=6, le=72)
    heading_font_size: int = Field(default=16, ge=6, le=72)
    chromium_executable: str = ""
    chromium_args: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
        ]
    )
    header_text: str = "Incident Report"


class AssemblyConfig(BaseSettings):
    """Document assembly configuration.

    Env vars use ``INCIDENT_PDF_ASSEMBLY_`` prefix.
    """

    model_config = {"env_prefix": "INCIDENT_PDF_ASSEMBLY_"}

    insertion_point: int = Field(default=12, ge=0)
    verify_fingerprints: bool = True
    require_need_appearances: bool = True


class PipelineConfig(BaseSettings):
    """Per-job pipeline configuration.

    Env vars use ``INCIDENT_PDF_PIPELINE_`` prefix.
    """

    model_config = {"env_prefix": "INCIDENT_PDF_PIPELINE_"}

    job_timeout_seconds: float = Field(default=120.0, gt=0.0)
    max_text_length: int = Field(default=5000, ge=1)


class ObservabilityConfig(BaseSettings):
    """Observability configuration.

    Env vars use ``INCIDENT_PDF_OBSERVABILITY_`` prefix.
    """

    model_config = {"env_prefix": "INCIDENT_PDF_OBSERVABILITY_"}

    service_name: str = "incident-pdf"
    log_level: str = "INFO"
    log_format: Literal["auto", "json", "console"] = "auto"


class AppSettings(BaseSettings):
    """Top-level application settings aggregating all sub-configs."""

    template: TemplateConfig = TemplateConfig()
    render: RenderConfig = RenderConfig()
    assembly: AssemblyConfig = AssemblyConfig()
    pipeline: PipelineConfig = PipelineConfig()
    observability: ObservabilityConfig = ObservabilityConfig()
