"""Static registry mapping record fields to template form fields.

Target names here are the *intended* logical names.  Where the template
spells a field differently, ``overrides.FIELD_NAME_OVERRIDES`` supplies the
real name; ``registry.resolve_field_map`` applies it at startup.

Source paths:

- ``profile.<key>`` / ``incident.<key>``: flat record columns
- ``derived.<name>``: values computed from the whole record
- ``witnesses.<attr>`` / ``other_vehicles.<attr>``: positional, see ``position``
- ``documents.<document_type>``: n-th upload of that type, see ``position``
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ValueKind(str, Enum):
    """How a raw source value is coerced for its form field."""

    TEXT = "text"
    BOOLEAN_CHECKBOX = "boolean_checkbox"
    EXCLUSIVE_GROUP_MEMBER = "exclusive_group_member"
    ARRAY_TO_BOOLEAN_SET = "array_to_boolean_set"

    @property
    def is_boolean(self) -> bool:
        return self is not ValueKind.TEXT


@dataclass(frozen=True)
class FieldMapping:
    """One source value -> one named template field."""

    source_path: str
    target_field: str
    kind: ValueKind = ValueKind.TEXT
    page_hint: int | None = None
    group: str | None = None
    match: str | None = None
    tag: str | None = None
    position: int | None = None
    intended_name: str = ""

    @property
    def root(self) -> str:
        return self.source_path.split(".", 1)[0]

    @property
    def key(self) -> str:
        return self.source_path.split(".", 1)[1] if "." in self.source_path else ""

    @property
    def collection(self) -> str | None:
        """Collection name for positional mappings, else None."""
        if self.root in COLLECTION_ROOTS:
            return self.root
        return None

    @property
    def logical_name(self) -> str:
        return self.intended_name or self.target_field


COLLECTION_ROOTS = frozenset({"witnesses", "other_vehicles", "documents"})


def slot_field_name(base: str, position: int) -> str:
    """Field name for the ``position``-th (0-based) repeated group."""
    return base if position == 0 else f"{base}_{position + 1}"


# ── Builders ─────────────────────────────────────────────────────────


def _text(source: str, target: str, page: int) -> FieldMapping:
    return FieldMapping(source, target, ValueKind.TEXT, page)


def _check(source: str, target: str, page: int) -> FieldMapping:
    return FieldMapping(source, target, ValueKind.BOOLEAN_CHECKBOX, page)


def _exclusive(
    source: str,
    target: str,
    group: str,
    page: int,
    match: str | None = None,
) -> FieldMapping:
    return FieldMapping(
        source, target, ValueKind.EXCLUSIVE_GROUP_MEMBER, page, group=group, match=match
    )


def _choice_group(source: str, prefix: str, values: tuple[str, ...], page: int) -> list[FieldMapping]:
    """One text column whose value selects exactly one checkbox."""
    group = prefix.rstrip("_")
    return [_exclusive(source, f"{prefix}{value}", group, page, match=value) for value in values]


def _tags(source: str, prefix: str, tags: tuple[str, ...], page: int) -> list[FieldMapping]:
    return [
        FieldMapping(source, f"{prefix}{tag}", ValueKind.ARRAY_TO_BOOLEAN_SET, page, tag=tag)
        for tag in tags
    ]


def _slots(collection: str, attrs: tuple[tuple[str, str], ...], page: int) -> list[FieldMapping]:
    mappings: list[FieldMapping] = []
    for position in range(MAX_COLLECTION_SLOTS):
        for attr, base in attrs:
            mappings.append(
                FieldMapping(
                    f"{collection}.{attr}",
                    slot_field_name(base, position),
                    ValueKind.TEXT,
                    page,
                    position=position,
                )
            )
    return mappings


def _documents(document_type: str, targets: tuple[str, ...], page: int) -> list[FieldMapping]:
    return [
        FieldMapping(f"documents.{document_type}", target, ValueKind.TEXT, page, position=position)
        for position, target in enumerate(targets)
    ]


# Upper bound on repeated groups considered; the template decides how many exist.
MAX_COLLECTION_SLOTS = 6

# ── Multi-select tag vocabularies ────────────────────────────────────

IMPACT_POINT_TAGS = (
    "front",
    "front_driver",
    "front_passenger",
    "driver_side",
    "passenger_side",
    "rear_driver",
    "rear_passenger",
    "rear",
    "roof",
    "undercarriage",
)

WEATHER_TAGS = (
    "bright_daylight",
    "clear_and_dry",
    "overcast",
    "light_rain",
    "heavy_rain",
    "fog",
    "snow_ice",
    "wet_road",
    "dusk",
    "street_lights",
    "thunder_lightning",
)

SPECIAL_CONDITION_TAGS = (
    "roadworks",
    "workmen",
    "cyclists",
    "pedestrians",
    "traffic_calming",
    "parked_vehicles",
    "crossing",
    "school_zone",
    "narrow_road",
    "potholes",
    "oil_spills",
    "animals",
)

ROAD_TYPES = (
    "motorway",
    "a_road",
    "b_road",
    "urban_street",
    "rural_road",
    "car_park",
    "private_road",
)

WITNESS_ATTRS = (
    ("name", "witness_name"),
    ("mobile_number", "witness_mobile_number"),
    ("email_address", "witness_email_address"),
    ("statement", "witness_statement"),
)

OTHER_VEHICLE_ATTRS = (
    ("driver_name", "other_full_name"),
    ("contact_number", "other_contact_number"),
    ("email_address", "other_email_address"),
    ("driving_license_number", "other_driving_license_number"),
    ("registration", "other_vehicle_registration"),
    ("make", "other_vehicle_make"),
    ("model", "other_vehicle_model"),
    ("colour", "other_vehicle_colour"),
    ("year", "other_vehicle_year"),
    ("fuel_type", "other_vehicle_fuel_type"),
    ("mot_status", "other_vehicle_mot_status"),
    ("tax_status", "other_vehicle_tax_status"),
    ("insurance_company", "other_drivers_insurance_company"),
    ("policy_number", "other_drivers_policy_number"),
    ("policy_holder", "other_drivers_policy_holder_name"),
    ("policy_cover_type", "other_drivers_policy_cover_type"),
    ("damage_description", "other_damage_description"),
)

# ── The table, by template page ──────────────────────────────────────

FIELD_MAPPINGS: tuple[FieldMapping, ...] = (
    # Page 1: personal and vehicle details
    _text("profile.name", "driver_name", 1),
    _text("profile.surname", "driver_surname", 1),
    _text("profile.email", "driver_email", 1),
    _text("profile.mobile", "driver_mobile", 1),
    _text("profile.date_of_birth", "date_of_birth", 1),
    _text("profile.street_address", "driver_street", 1),
    _text("profile.town", "driver_town", 1),
    _text("profile.postcode", "driver_postcode", 1),
    _text("profile.country", "driver_country", 1),
    _text("profile.driving_license_number", "driving_license_number", 1),
    _text("profile.car_registration_number", "license_plate", 1),
    _text("profile.vehicle_make", "vehicle_make", 1),
    _text("profile.vehicle_model", "vehicle_model", 1),
    _text("profile.vehicle_colour", "vehicle_colour", 1),
    _text("profile.vehicle_condition", "vehicle_condition", 1),
    # Page 2: emergency contact, insurance, recovery
    _text("profile.emergency_contact_name", "emergency_contact_name", 2),
    _text("profile.emergency_contact_number", "emergency_contact_number", 2),
    _text("profile.insurance_company", "insurance_company", 2),
    _text("profile.policy_number", "policy_number", 2),
    _text("profile.policy_holder", "policy_holder", 2),
    _text("profile.cover_type", "cover_type", 2),
    _text("profile.recovery_company", "recovery_company", 2),
    _text("profile.recovery_breakdown_number", "recovery_breakdown_number", 2),
    _text("profile.recovery_breakdown_email", "recovery_breakdown_email", 2),
    _text("profile.subscription_start_date", "sign_up_date", 2),
    # Page 3: personal documentation (links)
    *_documents("driving_license", ("driving_license_url",), 3),
    *_documents("vehicle_front", ("vehicle_front_url",), 3),
    *_documents("vehicle_driver_side", ("vehicle_driver_side_url",), 3),
    *_documents("vehicle_passenger_side", ("vehicle_passenger_side_url",), 3),
    *_documents("vehicle_back", ("vehicle_back_url",), 3),
    # Page 4: form metadata, immediate safety, medical
    _text("profile.user_id", "user_id", 4),
    _text("incident.id", "form_id", 4),
    _text("incident.created_at", "submit_date", 4),
    _check("incident.safe_and_ready", "safe_ready", 4),
    _check("incident.medical_attention_required", "medical_attention_required", 4),
    _text("incident.how_are_you_feeling", "how_feeling", 4),
    _text("incident.medical_attention_from_who", "medical_attention_who", 4),
    _text("incident.medical_further_attention", "medical_further", 4),
    _text("incident.medical_treatment_received", "medical_treatment_received", 4),
    _check("incident.six_point_safety_check", "six_point_check", 4),
    _check("incident.emergency_contact_made", "emergency_contact_made", 4),
    _check("incident.chest_pain", "medical_symptom_chest_pain", 4),
    _check("incident.uncontrolled_bleeding", "medical_symptom_uncontrolled_bleeding", 4),
    _check("incident.breathlessness", "medical_symptom_breathlessness", 4),
    _check("incident.limb_weakness", "medical_symptom_limb_weakness", 4),
    _check("incident.loss_of_consciousness", "medical_symptom_loss_of_consciousness", 4),
    _check("incident.severe_headache", "medical_symptom_severe_headache", 4),
    _check("incident.abdominal_bruising", "medical_symptom_abdominal_bruising", 4),
    _check("incident.change_in_vision", "medical_symptom_change_in_vision", 4),
    _check("incident.abdominal_pain", "medical_symptom_abdominal_pain", 4),
    _check("incident.limb_pain_impeding_mobility", "medical_symptom_limb_pain_mobility", 4),
    _check("incident.none_of_these_i_feel_fine", "medical_none_feel_fine", 4),
    _text("incident.medical_conditions_summary", "medical_conditions_summary", 4),
    # Page 5: when and where, safety equipment, weather
    _text("incident.accident_date", "accident_date", 5),
    _text("incident.accident_time", "accident_time", 5),
    _text("incident.accident_location", "accident_location", 5),
    _text("incident.what3words", "what3words", 5),
    _text("incident.nearest_landmark", "nearest_landmark", 5),
    _check("incident.wearing_seatbelts", "wearing_seatbelts", 5),
    _text("incident.why_no_seatbelts", "why_no_seatbelts", 5),
    _check("incident.airbags_deployed", "airbags_deployed", 5),
    _check("incident.vehicle_damaged", "vehicle_damaged", 5),
    *_tags("incident.weather_conditions", "weather_", WEATHER_TAGS, 5),
    _text("incident.weather_conditions_summary", "weather_summary", 5),
    # Page 6: road, traffic, visibility, junction, hazards
    *_choice_group("incident.road_type", "road_type_", ROAD_TYPES, 6),
    _text("incident.speed_limit", "speed_limit", 6),
    _text("incident.your_speed", "your_speed", 6),
    _exclusive("incident.traffic_conditions_heavy", "traffic_conditions_heavy", "traffic_conditions", 6),
    _exclusive("incident.traffic_conditions_moderate", "traffic_conditions_moderate", "traffic_conditions", 6),
    _exclusive("incident.traffic_conditions_light", "traffic_conditions_light", "traffic_conditions", 6),
    _exclusive("incident.traffic_conditions_no_traffic", "traffic_conditions_no_traffic", "traffic_conditions", 6),
    _exclusive("incident.visibility_very_poor", "visibility_very_poor", "visibility", 6),
    _exclusive("incident.visibility_poor", "visibility_poor", "visibility", 6),
    _exclusive("incident.visibility_good", "visibility_good", "visibility", 6),
    _check("incident.visibility_street_lights", "visibility_street_lights", 6),
    _check("incident.road_condition_dry", "road_condition_dry", 6),
    _check("incident.road_condition_wet", "road_condition_wet", 6),
    _check("incident.road_condition_icy", "road_condition_icy", 6),
    _check("incident.road_condition_snow_covered", "road_condition_snow_covered", 6),
    *_choice_group("incident.road_markings_visible", "road_markings_visible_", ("yes", "no", "partially"), 6),
    _text("incident.junction_type", "junction_type", 6),
    _text("incident.junction_control", "junction_control", 6),
    _text("incident.traffic_light_status", "traffic_light_status", 6),
    _text("incident.user_manoeuvre", "user_manoeuvre", 6),
    *_tags("incident.special_conditions", "special_condition_", SPECIAL_CONDITION_TAGS, 6),
    _text("incident.additional_hazards", "additional_hazards", 6),
    _text("incident.describe_what_happened", "accident_description", 6),
    # Page 7: your vehicle
    *_choice_group("incident.usual_vehicle", "usual_vehicle_", ("yes", "no"), 7),
    _text("incident.vehicle_license_plate", "vehicle_license_plate", 7),
    _text("incident.dvla_make", "dvla_make", 7),
    _text("incident.dvla_model", "dvla_model", 7),
    _text("incident.dvla_colour", "dvla_colour", 7),
    _text("incident.dvla_year", "dvla_year", 7),
    _text("incident.dvla_fuel_type", "dvla_fuel_type", 7),
    _text("incident.dvla_mot_status", "dvla_mot_status", 7),
    _text("incident.dvla_mot_expiry", "dvla_mot_expiry", 7),
    _text("incident.dvla_tax_status", "dvla_tax_status", 7),
    _text("incident.dvla_tax_due_date", "dvla_tax_due_date", 7),
    *_tags("incident.impact_points", "impact_point_", IMPACT_POINT_TAGS, 7),
    _check("incident.no_damage", "no_damage", 7),
    _text("incident.damage_to_your_vehicle", "damage_to_your_vehicle", 7),
    *_choice_group("incident.vehicle_driveable", "vehicle_driveable_", ("yes", "no", "unsure"), 7),
    # Page 8: other vehicles
    _check("derived.other_vehicles_present", "other_vehicles_involved", 8),
    *_slots("other_vehicles", OTHER_VEHICLE_ATTRS, 8),
    # Page 9: police and witnesses
    _check("incident.police_attended", "police_attended", 9),
    _text("incident.accident_reference_number", "accident_reference", 9),
    _text("incident.police_officer_name", "officer_name", 9),
    _text("incident.police_officer_badge_number", "officer_badge", 9),
    _text("incident.police_force_details", "police_force", 9),
    _check("incident.user_breath_test", "user_breath_test", 9),
    _check("incident.other_breath_test", "other_breath_test", 9),
    _check("derived.witnesses_present", "witnesses_present", 9),
    _check("derived.no_witnesses", "no_witnesses", 9),
    *_slots("witnesses", WITNESS_ATTRS, 9),
    # Page 10: anything else
    _text("incident.anything_else_important", "anything_else", 10),
    _check("incident.call_recovery", "call_recovery", 10),
    _check("incident.upgrade_to_premium", "upgrade_premium", 10),
    # Pages 11-12: evidence links
    *_documents("document", ("documents_url", "documents_url_1"), 11),
    *_documents("audio_account", ("record_account_url",), 11),
    *_documents("what3words", ("what3words_url",), 11),
    *_documents("scene_overview", ("scene_overview_url", "scene_overview_url_1"), 11),
    *_documents("other_vehicle", ("other_vehicle_url", "other_vehicle_url_1"), 12),
    *_documents("vehicle_damage", ("vehicle_damage_url", "vehicle_damage_url_1", "vehicle_damage_url_2"), 12),
    *_documents("spare", ("spare_url",), 12),
    # Page 13: declaration
    _text("derived.full_name", "declaration_name", 13),
    _text("incident.declaration_date", "declaration_date", 13),
    _check("incident.declaration_agreed", "declaration_agreed", 13),
)

# Exclusive groups; members listed highest precedence first.  When the data
# has more than one member set, the first listed one wins.
EXCLUSIVE_GROUPS: dict[str, tuple[str, ...]] = {
    "visibility": ("visibility_very_poor", "visibility_poor", "visibility_good"),
    "traffic_conditions": (
        "traffic_conditions_heavy",
        "traffic_conditions_moderate",
        "traffic_conditions_light",
        "traffic_conditions_no_traffic",
    ),
    "road_type": tuple(f"road_type_{value}" for value in ROAD_TYPES),
    "road_markings_visible": (
        "road_markings_visible_no",
        "road_markings_visible_partially",
        "road_markings_visible_yes",
    ),
    "usual_vehicle": ("usual_vehicle_no", "usual_vehicle_yes"),
    "vehicle_driveable": ("vehicle_driveable_no", "vehicle_driveable_unsure", "vehicle_driveable_yes"),
}

# Missing values here are reported as data-quality warnings.
REQUIRED_SOURCES: tuple[str, ...] = (
    "profile.name",
    "profile.surname",
    "profile.email",
    "profile.mobile",
)
