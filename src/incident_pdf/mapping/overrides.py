"""Versioned corrections from intended field names to the template's real ones.

The supplied template was authored by hand and carries typos, singular /
plural slips and hyphenated variants.  Rather than hunting for those at fill
time, every divergence is declared here and applied once at startup.  Bump
``OVERRIDES_VERSION`` whenever the table changes so generated reports can be
traced back to the table that produced them.

Use ``incident-pdf suggest-overrides <template>`` to draft new entries.
"""

from __future__ import annotations

OVERRIDES_VERSION = 3

FIELD_NAME_OVERRIDES: dict[str, str] = {
    # typos
    "medical_treatment_received": "medical_treatment_recieved",
    "weather_thunder_lightning": "weather_thunder_lightening",
    # singular / plural
    "special_condition_parked_vehicles": "special_condition_parked_vehicle",
    "emergency_contact_number": "emergency_contact_numbers",
    # alternate spellings
    "witness_email_address_2": "witness_email_2",
    "other_vehicle_registration": "other-vehicle-registration",
}
