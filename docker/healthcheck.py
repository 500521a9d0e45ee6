"""Container healthcheck script: exit 0 if the template loads and the field map resolves."""

from __future__ import annotations

import sys

from incident_pdf.core.config import AppSettings
from incident_pdf.exceptions import IncidentPdfError
from incident_pdf.mapping.registry import resolve_field_map
from incident_pdf.pdf.template import FormTemplate


def main() -> int:
    settings = AppSettings()
    try:
        template = FormTemplate.load(settings.template.path)
        resolve_field_map(template, strict=settings.template.strict_mapping)
    except IncidentPdfError as exc:
        print(f"unhealthy: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
