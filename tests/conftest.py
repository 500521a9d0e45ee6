"""Shared fixtures for incident-pdf tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from incident_pdf.core.config import (
    AppSettings,
    AssemblyConfig,
    PipelineConfig,
    RenderConfig,
    TemplateConfig,
)
from incident_pdf.mapping.registry import ResolvedFieldMap, resolve_field_map
from incident_pdf.models import (
    AggregatedIncidentRecord,
    NarrativeSection,
    OtherVehicle,
    UploadedDocument,
    Witness,
)
from incident_pdf.pdf.template import FormTemplate
from incident_pdf.pipeline.context import JobContext
from tests.fakes.template_factory import build_default_template


@pytest.fixture(scope="session")
def template_bytes() -> bytes:
    """13-page fillable template with every mapped field on its page."""
    return build_default_template()


@pytest.fixture(scope="session")
def form_template(template_bytes: bytes) -> FormTemplate:
    return FormTemplate.from_bytes(template_bytes, name="incident-report.pdf")


@pytest.fixture(scope="session")
def field_map(form_template: FormTemplate) -> ResolvedFieldMap:
    return resolve_field_map(form_template)


@pytest.fixture
def template_path(tmp_path: Path, template_bytes: bytes) -> Path:
    path = tmp_path / "incident-report.pdf"
    path.write_bytes(template_bytes)
    return path


@pytest.fixture
def ctx() -> JobContext:
    return JobContext(record_id="rec-test")


@pytest.fixture
def render_config() -> RenderConfig:
    return RenderConfig(engine="reportlab", page_timeout_seconds=5.0, max_parallel=2)


@pytest.fixture
def settings(template_path: Path, render_config: RenderConfig) -> AppSettings:
    return AppSettings(
        template=TemplateConfig(path=template_path, expected_page_count=13),
        render=render_config,
        assembly=AssemblyConfig(insertion_point=12),
        pipeline=PipelineConfig(job_timeout_seconds=30.0),
    )


@pytest.fixture
def minimal_record() -> AggregatedIncidentRecord:
    """Only the required profile values; no narrative, no witnesses."""
    return AggregatedIncidentRecord(
        record_id="rec-minimal",
        profile={
            "name": "Jane",
            "surname": "Driver",
            "email": "jane@example.com",
            "mobile": "07700 900123",
        },
    )


@pytest.fixture
def narrative_sections() -> list[NarrativeSection]:
    return [
        NarrativeSection(
            key="transcription",
            title="Account of What Happened",
            content="I was driving north on the A40 when the car ahead braked suddenly.\n\n"
            "I could not stop in time and hit its rear bumper at about 20 mph.",
        ),
        NarrativeSection(
            key="ai_summary",
            title="Summary of Accident Data",
            subtitle="Generated from the submitted form",
            content="Rear-end collision in heavy rain on an A-road. Two witnesses present.",
        ),
        NarrativeSection(
            key="liability_assessment",
            title="Liability Assessment",
            content="The following driver is ordinarily presumed liable in a rear-end collision.",
        ),
        NarrativeSection(
            key="closing_statement",
            title="Closing Statement",
            content="This report was compiled from the driver's submission on the day of the incident.",
        ),
    ]


@pytest.fixture
def full_record(narrative_sections: list[NarrativeSection]) -> AggregatedIncidentRecord:
    return AggregatedIncidentRecord(
        record_id="rec-full",
        profile={
            "user_id": "user-42",
            "name": "Jane",
            "surname": "Driver",
            "email": "jane@example.com",
            "mobile": "07700 900123",
            "date_of_birth": "1985-04-12",
            "street_address": "1 High Street",
            "town": "Oxford",
            "postcode": "OX1 1AA",
            "car_registration_number": "AB12 CDE",
            "vehicle_make": "Ford",
            "emergency_contact_number": "07700 900999",
            "insurance_company": "Acme Insurance",
        },
        incident={
            "id": "inc-7",
            "accident_date": "2025-03-15",
            "accident_time": "08:45",
            "accident_location": "A40, Oxford",
            "medical_treatment_received": "Paramedic check at scene",
            "wearing_seatbelts": "yes",
            "airbags_deployed": False,
            "weather_conditions": ["heavy_rain", "overcast", "thunder_lightning"],
            "road_type": "A Road",
            "traffic_conditions_heavy": True,
            "visibility_poor": True,
            "special_conditions": "parked vehicles, pedestrians",
            "impact_points": ["front", "front_driver"],
            "vehicle_driveable": "no",
            "usual_vehicle": "yes",
            "police_attended": "true",
        },
        other_vehicles=[
            OtherVehicle(driver_name="Sam Other", registration="XY34 ZZZ", make="Vauxhall"),
        ],
        witnesses=[
            Witness(index=1, name="Bob Second", email_address="bob@example.com", statement="Saw it all."),
            Witness(index=0, name="Alice First", mobile_number="07700 900555"),
        ],
        documents=[
            UploadedDocument(document_type="vehicle_damage", signed_url="https://files.example/d1"),
            UploadedDocument(document_type="vehicle_damage", signed_url="https://files.example/d2"),
            UploadedDocument(document_type="driving_license", signed_url="https://files.example/lic"),
        ],
        narrative=narrative_sections,
    )
