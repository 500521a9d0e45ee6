"""Appendix page engine using reportlab platypus.

Lays a section out on exactly one page: content that would overflow is
scaled down with ``KeepInFrame(mode="shrink")`` rather than paginated.
Also renders the "content unavailable" placeholder used when any engine
fails.
"""

from __future__ import annotations

import asyncio
from io import BytesIO
from typing import Any
from xml.sax.saxutils import escape

from incident_pdf.core.config import RenderConfig
from incident_pdf.pdf.html_templates import SectionDocument

try:
    from reportlab.lib import colors as rl_colors
    from reportlab.lib.colors import HexColor
    from reportlab.lib.enums import TA_JUSTIFY
    from reportlab.lib.pagesizes import A4, LETTER
    from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
    from reportlab.lib.units import mm
    from reportlab.pdfbase.pdfmetrics import stringWidth
    from reportlab.pdfgen import canvas as rl_canvas
    from reportlab.platypus import KeepInFrame, SimpleDocTemplate, Spacer
    from reportlab.platypus import Paragraph as _RawParagraph
except ImportError as _exc:
    raise ImportError(
        "reportlab is required for appendix rendering. Install with: pip install incident-pdf"
    ) from _exc


# ── Unicode sanitization ────────────────────────────────────────────
# The base-14 fonts lack glyphs for many characters that transcripts and
# generated summaries contain; replace them at the Paragraph boundary.

_UNICODE_REPLACEMENTS: dict[str, str] = {
    "\u2011": "-",  # non-breaking hyphen
    "\u2010": "-",  # hyphen
    "\u2013": "-",  # en-dash
    "\u2014": "-",  # em-dash
    "\u202f": " ",  # narrow no-break space
    "\u00a0": " ",  # non-breaking space
    "\u2009": " ",  # thin space
    "\u2018": "'",
    "\u2019": "'",
    "\u201c": '"',
    "\u201d": '"',
    "\u2026": "...",
    "\u2022": "-",  # bullet
    "\u2192": "->",
    "\u00d7": "x",
    "\u200b": "",  # zero-width space
}

HEADER_COLOR = "#1E3A5F"

_PAGE_SIZES = {"a4": A4, "letter": LETTER}

FALLBACK_MESSAGE = (
    "This section could not be rendered when the report was generated. "
    "The underlying record is unaffected; regenerate the report to retry."
)


def sanitize_text(text: str) -> str:
    for char, replacement in _UNICODE_REPLACEMENTS.items():
        text = text.replace(char, replacement)
    return text


def Paragraph(text: str, *args: Any, **kwargs: Any) -> _RawParagraph:  # noqa: N802
    """Paragraph wrapper that escapes markup and replaces unsupported glyphs."""
    safe = escape(sanitize_text(str(text))).replace("\n", "<br/>")
    return _RawParagraph(safe, *args, **kwargs)


class ReportlabEngine:
    """Renders ``SectionDocument`` pages with reportlab; no browser needed."""

    name = "reportlab"

    def __init__(self, config: RenderConfig | None = None) -> None:
        self._config = config or RenderConfig()
        self._page_size: tuple[float, float] = _PAGE_SIZES.get(self._config.page_size, A4)
        self._margin: float = self._config.margin_mm * mm
        self._styles = _build_styles(self._config)

    async def render(self, document: SectionDocument) -> bytes:
        return await asyncio.to_thread(self.render_sync, document)

    def render_sync(self, document: SectionDocument) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=self._page_size,
            leftMargin=self._margin,
            rightMargin=self._margin,
            topMargin=self._margin + 6 * mm,
            bottomMargin=self._margin + 6 * mm,
            title=sanitize_text(document.title),
            invariant=True,
        )
        content: list[Any] = [Paragraph(document.title, self._styles["title"])]
        if document.subtitle:
            content.append(Paragraph(document.subtitle, self._styles["subtitle"]))
        content.append(Spacer(1, 4 * mm))
        content.extend(Paragraph(p, self._styles["body"]) for p in document.paragraphs)

        # frame padding is 6pt on every side
        frame = KeepInFrame(doc.width - 12, doc.height - 12, content, mode="shrink")

        def _decorate(canvas: Any, _doc: Any) -> None:
            _header_footer(canvas, self._config, self._page_size, document.header, document.footer)

        doc.build([frame], onFirstPage=_decorate, onLaterPages=_decorate)
        return buffer.getvalue()

    async def close(self) -> None:
        return None


def render_fallback_page(document: SectionDocument, config: RenderConfig) -> bytes:
    """Single placeholder page naming the section that failed to render."""
    page_size = _PAGE_SIZES.get(config.page_size, A4)
    width, height = page_size
    margin = config.margin_mm * mm
    buffer = BytesIO()
    canvas = rl_canvas.Canvas(buffer, pagesize=page_size, invariant=1)
    canvas.setTitle(sanitize_text(document.title))
    _header_footer(canvas, config, page_size, document.header, document.footer)

    canvas.setFont(f"{config.font_family}-Bold", config.heading_font_size)
    canvas.setFillColor(HexColor(HEADER_COLOR))
    canvas.drawString(margin, height - margin - 20 * mm, sanitize_text(document.title))

    canvas.setFont(f"{config.font_family}-Bold", config.body_font_size + 2)
    canvas.setFillColor(rl_colors.black)
    canvas.drawString(margin, height - margin - 32 * mm, "Content unavailable")

    text = canvas.beginText(margin, height - margin - 42 * mm)
    text.setFont(config.font_family, config.body_font_size)
    for line in _wrap(FALLBACK_MESSAGE, config, width - 2 * margin):
        text.textLine(line)
    canvas.drawText(text)

    canvas.showPage()
    canvas.save()
    return buffer.getvalue()


def _wrap(text: str, config: RenderConfig, max_width: float) -> list[str]:
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}".strip()
        if stringWidth(candidate, config.font_family, config.body_font_size) <= max_width:
            current = candidate
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


def _header_footer(
    canvas: Any,
    config: RenderConfig,
    page_size: tuple[float, float],
    header: str,
    footer: str,
) -> None:
    canvas.saveState()
    width, height = page_size
    margin = config.margin_mm * mm

    canvas.setFont(f"{config.font_family}-Bold", 8)
    canvas.setFillColor(HexColor(HEADER_COLOR))
    canvas.drawString(margin, height - margin + 2, sanitize_text(header).upper())
    canvas.setStrokeColor(HexColor(HEADER_COLOR))
    canvas.line(margin, height - margin - 2, width - margin, height - margin - 2)

    canvas.setFont(config.font_family, 8)
    canvas.setFillColor(rl_colors.grey)
    canvas.drawString(margin, margin - 14, sanitize_text(footer))
    canvas.restoreState()


def _build_styles(config: RenderConfig) -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    font = config.font_family
    body_sz = config.body_font_size
    heading_sz = config.heading_font_size
    return {
        "title": ParagraphStyle(
            "title",
            parent=base["Heading1"],
            fontName=f"{font}-Bold",
            fontSize=heading_sz,
            leading=heading_sz * 1.25,
            spaceAfter=4,
            textColor=HexColor(HEADER_COLOR),
        ),
        "subtitle": ParagraphStyle(
            "subtitle",
            parent=base["BodyText"],
            fontName=font,
            fontSize=body_sz + 1,
            leading=(body_sz + 1) * 1.3,
            textColor=rl_colors.grey,
            spaceAfter=4,
        ),
        "body": ParagraphStyle(
            "body",
            parent=base["BodyText"],
            fontName=font,
            fontSize=body_sz,
            leading=body_sz * 1.4,
            alignment=TA_JUSTIFY,
            spaceAfter=6,
        ),
    }
