"""incident-pdf: assemble incident-report PDFs from a fillable template and narrative pages.

Usage::

    from incident_pdf import AppSettings, IncidentReportGenerator

    async with IncidentReportGenerator.from_settings(AppSettings()) as generator:
        result = await generator.generate(record)
"""

from __future__ import annotations

from incident_pdf.core.config import AppSettings
from incident_pdf.diagnostics import Diagnostic, DiagnosticCategory
from incident_pdf.exceptions import (
    AssemblyError,
    CorruptionDetected,
    IncidentPdfError,
    JobTimeoutError,
    MappingError,
    RenderError,
    RenderTimeoutError,
    TemplateError,
)
from incident_pdf.models import (
    AggregatedIncidentRecord,
    GenerationResult,
    NarrativeSection,
    OtherVehicle,
    UploadedDocument,
    Witness,
)
from incident_pdf.pipeline.generator import IncidentReportGenerator

__version__ = "0.1.0"

__all__ = [
    "AggregatedIncidentRecord",
    "AppSettings",
    "AssemblyError",
    "CorruptionDetected",
    "Diagnostic",
    "DiagnosticCategory",
    "GenerationResult",
    "IncidentPdfError",
    "IncidentReportGenerator",
    "JobTimeoutError",
    "MappingError",
    "NarrativeSection",
    "OtherVehicle",
    "RenderError",
    "RenderTimeoutError",
    "TemplateError",
    "UploadedDocument",
    "Witness",
]
