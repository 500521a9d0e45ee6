"""Structured logging for incident-report generation.

Library code logs through stdlib ``logging`` with ``"event | key=value"``
messages.  ``setup_logging`` routes those records through structlog, which
splits the message into an event name plus fields and merges the job
context (``job_id``, ``record_id``, ``stage``) bound by ``JobContext``.
Output is JSON lines unless the console renderer is selected or stderr is
a terminal.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from incident_pdf.core.config import ObservabilityConfig

_FIELD = re.compile(r"(\w+)=(.*?)(?=\s+\w+=|$)")


def split_event_fields(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Turn ``"name | a=1 b=2"`` into ``event="name", a="1", b="2"``.

    Fields already present (bound job context, explicit kwargs) win.
    """
    event = event_dict.get("event")
    if not isinstance(event, str) or " | " not in event:
        return event_dict
    name, _, rest = event.partition(" | ")
    event_dict["event"] = name.strip()
    for key, value in _FIELD.findall(rest.strip()):
        event_dict.setdefault(key, value)
    return event_dict


def _service_stamp(service_name: str):
    def add_service(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return add_service


def _renderer(log_format: str):
    if log_format == "console" or (log_format == "auto" and sys.stderr.isatty()):
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def setup_logging(config: ObservabilityConfig) -> None:
    """Configure structured logging for the ``incident_pdf`` loggers."""
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        split_event_fields,
        _service_stamp(config.service_name),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(config.log_format),
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    logging.getLogger("incident_pdf").setLevel(level)
    # pypdf is chatty about benign template quirks
    logging.getLogger("pypdf").setLevel(max(level, logging.ERROR))
