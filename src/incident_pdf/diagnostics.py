"""Non-fatal diagnostics accumulated while a report is generated."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class DiagnosticCategory(str, Enum):
    """What kind of non-fatal problem a diagnostic describes."""

    DATA_QUALITY = "data_quality"
    TEMPLATE_DRIFT = "template_drift"
    RENDER_FAILURE = "render_failure"


@dataclass(frozen=True)
class Diagnostic:
    """A single non-fatal issue found during generation."""

    category: DiagnosticCategory
    message: str
    field_name: str = ""
    section_key: str = ""
    page_index: int | None = None
    recorded_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "category": self.category.value,
            "message": self.message,
            "field_name": self.field_name,
            "section_key": self.section_key,
            "page_index": self.page_index,
            "recorded_at": self.recorded_at,
        }


def group_by_category(
    diagnostics: list[Diagnostic],
) -> dict[DiagnosticCategory, list[Diagnostic]]:
    """Group diagnostics by their category."""
    grouped: dict[DiagnosticCategory, list[Diagnostic]] = {}
    for diag in diagnostics:
        grouped.setdefault(diag.category, []).append(diag)
    return grouped
