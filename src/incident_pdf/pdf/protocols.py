"""Render engine protocol: the contract every appendix page engine implements."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from incident_pdf.pdf.html_templates import SectionDocument


@runtime_checkable
class IRenderEngine(Protocol):
    """Turns one ``SectionDocument`` into single-page PDF bytes.

    Engines may be shared by concurrent jobs; ``render`` must not keep
    per-call state on the instance.
    """

    name: str

    async def render(self, document: SectionDocument) -> bytes:
        """Render ``document`` and return the PDF bytes."""
        ...

    async def close(self) -> None:
        """Release any long-lived resources (browser processes etc.)."""
        ...


__all__ = ["IRenderEngine"]
