"""Tests for settings defaults and env overrides."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from incident_pdf.core.config import (
    AppSettings,
    AssemblyConfig,
    PipelineConfig,
    RenderConfig,
    TemplateConfig,
)


class TestDefaults:
    def test_template_defaults(self) -> None:
        cfg = TemplateConfig()
        assert cfg.path == Path("pdf-templates/incident-report.pdf")
        assert cfg.strict_mapping is True
        assert cfg.expected_page_count is None

    def test_render_defaults(self) -> None:
        cfg = RenderConfig()
        assert cfg.engine == "chromium"
        assert cfg.page_size == "a4"
        assert cfg.max_parallel == 4
        assert "--no-sandbox" in cfg.chromium_args

    def test_assembly_defaults(self) -> None:
        cfg = AssemblyConfig()
        assert cfg.insertion_point == 12
        assert cfg.verify_fingerprints is True

    def test_app_settings_groups(self) -> None:
        settings = AppSettings()
        assert isinstance(settings.render, RenderConfig)
        assert isinstance(settings.pipeline, PipelineConfig)
        assert settings.observability.service_name == "incident-pdf"


class TestEnvOverrides:
    def test_engine_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("INCIDENT_PDF_RENDER_ENGINE", "reportlab")
        assert RenderConfig().engine == "reportlab"

    def test_template_path_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("INCIDENT_PDF_TEMPLATE_PATH", "/srv/t.pdf")
        assert TemplateConfig().path == Path("/srv/t.pdf")

    def test_insertion_point_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("INCIDENT_PDF_ASSEMBLY_INSERTION_POINT", "5")
        assert AssemblyConfig().insertion_point == 5

    def test_job_timeout_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("INCIDENT_PDF_PIPELINE_JOB_TIMEOUT_SECONDS", "45")
        assert PipelineConfig().job_timeout_seconds == 45.0


class TestValidation:
    def test_unknown_engine_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RenderConfig(engine="wkhtmltopdf")

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RenderConfig(page_timeout_seconds=0)

    def test_negative_insertion_point_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AssemblyConfig(insertion_point=-1)
