"""Pydantic data models for incident-pdf.

``AggregatedIncidentRecord`` is the single input handed over by the data
access layer; ``GenerationResult`` is what a successful job returns.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from incident_pdf.diagnostics import Diagnostic

# ── Input records ────────────────────────────────────────────────────


class Witness(BaseModel):
    """A witness; ``index`` decides which numbered field group it fills."""

    model_config = ConfigDict(frozen=True, extra="allow")

    index: int = Field(default=0, ge=0)
    name: str | None = None
    mobile_number: str | None = None
    email_address: str | None = None
    address: str | None = None
    statement: str | None = None


class OtherVehicle(BaseModel):
    """A third-party vehicle and its driver."""

    model_config = ConfigDict(frozen=True, extra="allow")

    driver_name: str | None = None
    contact_number: str | None = None
    email_address: str | None = None
    address: str | None = None
    driving_license_number: str | None = None
    registration: str | None = None
    make: str | None = None
    model: str | None = None
    colour: str | None = None
    year: str | None = None
    fuel_type: str | None = None
    mot_status: str | None = None
    mot_expiry: str | None = None
    tax_status: str | None = None
    tax_due_date: str | None = None
    insurance_status: str | None = None
    insurance_company: str | None = None
    policy_number: str | None = None
    policy_holder: str | None = None
    policy_cover_type: str | None = None
    damage_description: str | None = None
    no_visible_damage: bool | None = None


class UploadedDocument(BaseModel):
    """An uploaded file; only its retrieval URL ends up in the PDF."""

    model_config = ConfigDict(frozen=True)

    document_type: str
    storage_path: str = ""
    signed_url: str = ""
    expires_at: datetime | None = None


class NarrativeSection(BaseModel):
    """Free-text analysis destined for its own appendix page."""

    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    content: str = ""
    subtitle: str = ""

    @property
    def paragraphs(self) -> list[str]:
        """Content split on blank lines, whitespace-trimmed."""
        blocks = [b.strip() for b in self.content.replace("\r\n", "\n").split("\n\n")]
        return [b for b in blocks if b]

    def is_blank(self) -> bool:
        return not self.content.strip()


class AggregatedIncidentRecord(BaseModel):
    """Read-only composite of everything one report needs."""

    model_config = ConfigDict(frozen=True)

    record_id: str = ""
    profile: dict[str, Any] = Field(default_factory=dict)
    incident: dict[str, Any] = Field(default_factory=dict)
    other_vehicles: list[OtherVehicle] = Field(default_factory=list)
    witnesses: list[Witness] = Field(default_factory=list)
    documents: list[UploadedDocument] = Field(default_factory=list)
    narrative: list[NarrativeSection] = Field(default_factory=list)

    @field_validator("witnesses")
    @classmethod
    def _order_witnesses(cls, value: list[Witness]) -> list[Witness]:
        return sorted(value, key=lambda w: w.index)


# ── Output ───────────────────────────────────────────────────────────


class StageTiming(BaseModel):
    """Wall-clock duration of one pipeline stage."""

    stage: str
    duration_ms: float = 0.0
    status: str = "ok"


class GenerationResult(BaseModel):
    """A validated PDF plus metadata and accumulated diagnostics."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    job_id: str
    record_id: str = ""
    pdf: bytes = Field(repr=False)
    page_count: int
    base_page_count: int
    appendix_page_count: int
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    stages: list[StageTiming] = Field(default_factory=list)

    @property
    def size_kb(self) -> float:
        return len(self.pdf) / 1024
