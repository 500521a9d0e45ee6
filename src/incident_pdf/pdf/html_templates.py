"""Self-contained HTML for appendix pages.

Each section becomes one HTML document with inline CSS and no external
resources, so rendering never touches the network.  The same
``SectionDocument`` also carries the plain pieces for non-HTML engines.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from jinja2 import Environment, PackageLoader, select_autoescape

from incident_pdf.core.config import RenderConfig
from incident_pdf.models import NarrativeSection

# Display titles for well-known narrative sections.
SECTION_TITLES: dict[str, str] = {
    "transcription": "Account of What Happened",
    "ai_summary": "Summary of Accident Data",
    "liability_assessment": "Liability Assessment",
    "closing_statement": "Closing Statement",
    "emergency_recording": "Emergency Audio Recording",
}

SECTION_TEMPLATE = "section.html"

_CSS_PAGE_SIZES = {"a4": "A4", "letter": "Letter"}

_ENV = Environment(
    loader=PackageLoader("incident_pdf.pdf", "templates"),
    autoescape=select_autoescape(enabled_extensions=("html",), default=True),
    trim_blocks=True,
    lstrip_blocks=True,
)


@dataclass(frozen=True)
class SectionDocument:
    """Everything an engine needs to lay out one appendix page."""

    key: str
    title: str
    subtitle: str
    paragraphs: tuple[str, ...]
    header: str
    footer: str
    html: str = field(repr=False)


def section_title(section: NarrativeSection) -> str:
    return section.title.strip() or SECTION_TITLES.get(section.key, section.key.replace("_", " ").title())


def build_section_document(
    section: NarrativeSection,
    config: RenderConfig,
    *,
    position: int,
    total: int,
    record_id: str = "",
) -> SectionDocument:
    """Build the page for ``section``, the ``position``-th of ``total`` (1-based)."""
    title = section_title(section)
    paragraphs = tuple(section.paragraphs)
    footer = f"Appendix page {position} of {total}"
    if record_id:
        footer = f"{footer} | Record {record_id}"

    markup = _ENV.get_template(SECTION_TEMPLATE).render(
        title=title,
        header=config.header_text,
        footer=footer,
        subtitle=section.subtitle.strip(),
        paragraphs=paragraphs,
        page_size=_CSS_PAGE_SIZES[config.page_size],
        margin=config.margin_mm,
        font=config.font_family,
        body_size=config.body_font_size,
        heading_size=config.heading_font_size,
        subheading_size=max(config.body_font_size + 1, config.heading_font_size - 4),
    )
    return SectionDocument(
        key=section.key,
        title=title,
        subtitle=section.subtitle.strip(),
        paragraphs=paragraphs,
        header=config.header_text,
        footer=footer,
        html=markup,
    )
