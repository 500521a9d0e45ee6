"""Exception hierarchy for incident-pdf."""

from __future__ import annotations


class IncidentPdfError(Exception):
    """Base exception for all incident-pdf errors.

    ``retryable`` tells the caller whether re-invoking generation with the
    same input is likely to succeed.
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        field_name: str = "",
        section_key: str = "",
        page_index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.field_name = field_name
        self.section_key = section_key
        self.page_index = page_index


class TemplateError(IncidentPdfError):
    """Raised when the base fillable template cannot be loaded or parsed."""


class MappingError(IncidentPdfError):
    """Raised on field-map / template drift at startup, or on malformed input records."""


class RenderTimeoutError(IncidentPdfError):
    """An appendix page did not render within its time budget."""

    retryable = True


class RenderError(IncidentPdfError):
    """An appendix render session crashed or produced an invalid page."""


class AssemblyError(IncidentPdfError):
    """Raised when merging base and appendix pages fails or the page count is wrong."""


class CorruptionDetected(IncidentPdfError):
    """Raised when the assembled bytes fail the cold re-parse check."""

    def __init__(
        self,
        message: str,
        *,
        reason: str = "",
        page_index: int | None = None,
    ) -> None:
        super().__init__(message, page_index=page_index)
        self.reason = reason


class JobTimeoutError(IncidentPdfError):
    """The whole generation job exceeded its wall-clock budget."""

    retryable = True


__all__ = [
    "IncidentPdfError",
    "TemplateError",
    "MappingError",
    "RenderTimeoutError",
    "RenderError",
    "AssemblyError",
    "CorruptionDetected",
    "JobTimeoutError",
]
