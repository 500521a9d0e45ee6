"""Merge the filled base document with appendix pages at a fixed insertion point.

Output order is base pages ``[0, k)``, then every appendix page in order,
then base pages ``[k, n)``.  Every source segment is copied from its own
freshly parsed reader into a brand-new writer; no pypdf object is ever
imported into a document twice.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

from incident_pdf.exceptions import AssemblyError
from incident_pdf.pdf.appendix import AppendixPage
from incident_pdf.pdf.filler import FilledDocument

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedPage:
    """Where output page ``position`` comes from."""

    position: int
    source: str  # "base" or "appendix"
    source_index: int
    label: str = ""


@dataclass(frozen=True)
class AssembledDocument:
    """Final document bytes plus the plan and per-page content fingerprints."""

    data: bytes = field(repr=False)
    base_page_count: int
    appendix_page_count: int
    insertion_point: int
    plan: tuple[PlannedPage, ...]
    fingerprints: tuple[str, ...]

    @property
    def page_count(self) -> int:
        return self.base_page_count + self.appendix_page_count


def page_fingerprint(page: Any) -> str:
    """SHA-256 over a page's decoded content stream."""
    contents = page.get_contents()
    data = contents.get_data() if contents is not None else b""
    return hashlib.sha256(data).hexdigest()


def build_plan(
    base_page_count: int,
    appendix_pages: Sequence[AppendixPage],
    insertion_point: int,
) -> tuple[PlannedPage, ...]:
    if not 0 <= insertion_point <= base_page_count:
        raise AssemblyError(
            f"insertion point {insertion_point} outside base document of {base_page_count} pages"
        )
    plan: list[PlannedPage] = []
    for i in range(insertion_point):
        plan.append(PlannedPage(len(plan), "base", i, f"base page {i + 1}"))
    for i, page in enumerate(appendix_pages):
        plan.append(PlannedPage(len(plan), "appendix", i, page.section_key))
    for i in range(insertion_point, base_page_count):
        plan.append(PlannedPage(len(plan), "base", i, f"base page {i + 1}"))
    return tuple(plan)


class DocumentAssembler:
    """Builds the final document from a ``FilledDocument`` and appendix pages."""

    def __init__(self, insertion_point: int = 12) -> None:
        self._insertion_point = insertion_point

    def assemble(
        self,
        filled: FilledDocument,
        appendix_pages: Sequence[AppendixPage],
        *,
        insertion_point: int | None = None,
    ) -> AssembledDocument:
        k = self._insertion_point if insertion_point is None else insertion_point
        base_count = filled.page_count
        plan = build_plan(base_count, appendix_pages, k)
        base_bytes = filled.consume()

        try:
            writer = PdfWriter()
            fingerprints: list[str] = []

            # fresh reader per segment: the tail must not reuse objects the
            # head already imported
            head = PdfReader(BytesIO(base_bytes))
            fingerprints.extend(page_fingerprint(head.pages[i]) for i in range(k))
            if k:
                writer.append(head, pages=list(range(k)), import_outline=False)

            for page in appendix_pages:
                reader = PdfReader(BytesIO(page.data))
                if len(reader.pages) != 1:
                    raise AssemblyError(
                        f"appendix page has {len(reader.pages)} pages, expected 1",
                        section_key=page.section_key,
                    )
                fingerprints.append(page_fingerprint(reader.pages[0]))
                writer.append(reader, pages=[0], import_outline=False)

            if k < base_count:
                tail = PdfReader(BytesIO(base_bytes))
                fingerprints.extend(page_fingerprint(tail.pages[i]) for i in range(k, base_count))
                writer.append(tail, pages=list(range(k, base_count)), import_outline=False)

            writer.set_need_appearances_writer(True)

            buffer = BytesIO()
            writer.write(buffer)
            data = buffer.getvalue()
        except AssemblyError:
            raise
        except (PyPdfError, KeyError, ValueError, TypeError, AttributeError) as exc:
            raise AssemblyError(f"page merge failed: {exc}") from exc

        expected = base_count + len(appendix_pages)
        if len(writer.pages) != expected:
            raise AssemblyError(
                f"assembled {len(writer.pages)} pages, expected {expected} "
                f"({base_count} base + {len(appendix_pages)} appendix)"
            )

        log.info(
            "document_assembled | base=%d appendix=%d insertion_point=%d bytes=%d",
            base_count,
            len(appendix_pages),
            k,
            len(data),
        )
        return AssembledDocument(
            data=data,
            base_page_count=base_count,
            appendix_page_count=len(appendix_pages),
            insertion_point=k,
            plan=plan,
            fingerprints=tuple(fingerprints),
        )
