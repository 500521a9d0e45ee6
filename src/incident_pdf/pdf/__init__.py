"""PDF stages: template catalogue, form filling, appendix rendering, assembly, validation.

Usage::

    from incident_pdf.pdf import FormTemplate, FormFiller, DocumentAssembler

    template = FormTemplate.load("pdf-templates/incident-report.pdf")
    filled = FormFiller().fill(template, values, ctx)
"""

from __future__ import annotations

from typing import Any

from incident_pdf.pdf.appendix import AppendixPage, AppendixRenderer, create_engine
from incident_pdf.pdf.assembler import AssembledDocument, DocumentAssembler
from incident_pdf.pdf.filler import FilledDocument, FormFiller
from incident_pdf.pdf.guard import CorruptionGuard, GuardReport
from incident_pdf.pdf.protocols import IRenderEngine
from incident_pdf.pdf.reportlab_engine import ReportlabEngine
from incident_pdf.pdf.template import FieldKind, FormTemplate, TemplateField

__all__ = [
    "AppendixPage",
    "AppendixRenderer",
    "AssembledDocument",
    "ChromiumEngine",
    "CorruptionGuard",
    "DocumentAssembler",
    "FieldKind",
    "FilledDocument",
    "FormFiller",
    "FormTemplate",
    "GuardReport",
    "IRenderEngine",
    "ReportlabEngine",
    "TemplateField",
    "create_engine",
]


def __getattr__(name: str) -> Any:
    """Lazy-load ChromiumEngine so playwright is only imported when needed."""
    if name == "ChromiumEngine":
        from incident_pdf.pdf.chromium_engine import ChromiumEngine

        return ChromiumEngine
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
