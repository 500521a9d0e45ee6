"""Tests for structured logging setup."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from incident_pdf.core.config import ObservabilityConfig
from incident_pdf.core.logging_config import setup_logging, split_event_fields


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    package_levels = {name: logging.getLogger(name).level for name in ("incident_pdf", "pypdf")}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, package_level in package_levels.items():
        logging.getLogger(name).setLevel(package_level)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestSplitEventFields:
    def test_splits_name_and_fields(self):
        out = split_event_fields(None, "info", {"event": "form_filled | fields=12 checked=3"})
        assert out == {"event": "form_filled", "fields": "12", "checked": "3"}

    def test_values_may_contain_spaces(self):
        out = split_event_fields(None, "info", {"event": "template_loaded | name=incident report.pdf pages=13"})
        assert out["name"] == "incident report.pdf"
        assert out["pages"] == "13"

    def test_bound_fields_win(self):
        out = split_event_fields(None, "info", {"event": "stage_done | stage=fill", "stage": "render"})
        assert out["stage"] == "render"

    def test_plain_messages_untouched(self):
        assert split_event_fields(None, "info", {"event": "hello"}) == {"event": "hello"}


class TestSetupLogging:
    def test_json_lines_carry_job_context(self, capsys, restore_logging):
        setup_logging(ObservabilityConfig(log_format="json", service_name="incident-pdf-test"))
        structlog.contextvars.bind_contextvars(job_id="job-1", stage="fill")
        logging.getLogger("incident_pdf.pdf.filler").info("form_filled | fields=%d checked=%d", 12, 3)

        line = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert line["event"] == "form_filled"
        assert line["fields"] == "12"
        assert line["job_id"] == "job-1"
        assert line["stage"] == "fill"
        assert line["service"] == "incident-pdf-test"
        assert line["level"] == "info"
        assert line["logger"] == "incident_pdf.pdf.filler"

    def test_level_applies_to_package_loggers(self, restore_logging):
        setup_logging(ObservabilityConfig(log_level="warning", log_format="json"))
        assert logging.getLogger("incident_pdf").level == logging.WARNING
        assert logging.getLogger("pypdf").level == logging.ERROR
