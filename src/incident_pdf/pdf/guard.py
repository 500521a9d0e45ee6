"""Cold re-parse validation of assembled documents.

``CorruptionGuard.validate`` treats the bytes as if they came from an
unknown producer: it parses them strictly, walks the page tree, resolves
every object reachable from the catalog and optionally compares each page's
content fingerprint with what the assembler planned.  Any failure raises
``CorruptionDetected``; nothing is returned to the caller that has not
passed.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from io import BytesIO
from typing import Any

from pypdf import PdfReader
from pypdf.errors import PyPdfError
from pypdf.generic import ArrayObject, DictionaryObject, IndirectObject, NullObject

from incident_pdf.exceptions import CorruptionDetected
from incident_pdf.pdf.assembler import page_fingerprint

log = logging.getLogger(__name__)

_MAX_TREE_DEPTH = 64
_PARSE_ERRORS = (PyPdfError, KeyError, ValueError, TypeError, AttributeError, IndexError)


@dataclass(frozen=True)
class GuardReport:
    """Facts established by a successful validation."""

    page_count: int
    object_count: int
    byte_size: int
    has_form: bool
    need_appearances: bool


class CorruptionGuard:
    def __init__(self, *, require_need_appearances: bool = False) -> None:
        self._require_need_appearances = require_need_appearances

    def validate(
        self,
        data: bytes,
        *,
        expected_page_count: int | None = None,
        expected_fingerprints: Sequence[str] | None = None,
    ) -> GuardReport:
        if not data.startswith(b"%PDF-"):
            raise CorruptionDetected("missing %PDF- header", reason="header")

        try:
            reader = PdfReader(BytesIO(data), strict=True)
            root = reader.trailer["/Root"].get_object()
            pages_root = root["/Pages"].get_object()
        except _PARSE_ERRORS as exc:
            raise CorruptionDetected(f"document does not parse: {exc}", reason="parse") from exc
        if not isinstance(pages_root, DictionaryObject):
            raise CorruptionDetected("catalog /Pages is not a dictionary", reason="page_tree")

        leaves = _walk_page_tree(pages_root)

        declared = pages_root.get("/Count")
        declared = declared.get_object() if declared is not None else None
        if not isinstance(declared, int) or int(declared) != len(leaves):
            raise CorruptionDetected(
                f"page tree declares {declared} pages but contains {len(leaves)}",
                reason="count_mismatch",
            )
        if expected_page_count is not None and len(leaves) != expected_page_count:
            raise CorruptionDetected(
                f"document has {len(leaves)} pages, expected {expected_page_count}",
                reason="page_count",
            )

        object_count = _resolve_reachable(reader.trailer["/Root"])

        try:
            pages = list(reader.pages)
        except _PARSE_ERRORS as exc:
            raise CorruptionDetected(f"page list unreadable: {exc}", reason="parse") from exc
        if len(pages) != len(leaves):
            raise CorruptionDetected(
                f"reader sees {len(pages)} pages, tree has {len(leaves)}",
                reason="count_mismatch",
            )

        if expected_fingerprints is not None:
            _check_fingerprints(pages, expected_fingerprints)

        has_form, need_appearances = _form_state(root)
        if self._require_need_appearances and has_form and not need_appearances:
            raise CorruptionDetected(
                "form fields present without NeedAppearances", reason="appearance_policy"
            )

        report = GuardReport(
            page_count=len(leaves),
            object_count=object_count,
            byte_size=len(data),
            has_form=has_form,
            need_appearances=need_appearances,
        )
        log.info(
            "document_validated | pages=%d objects=%d bytes=%d form=%s",
            report.page_count,
            report.object_count,
            report.byte_size,
            report.has_form,
        )
        return report


def _walk_page_tree(pages_root: DictionaryObject) -> list[DictionaryObject]:
    """Leaf pages in document order; each page object may appear only once."""
    leaves: list[DictionaryObject] = []
    seen: set[tuple[int, int]] = set()

    def _visit(node: DictionaryObject, depth: int) -> None:
        if depth > _MAX_TREE_DEPTH:
            raise CorruptionDetected("page tree too deep or cyclic", reason="page_tree")
        kids = node.get("/Kids")
        if kids is None:
            raise CorruptionDetected("page tree node without /Kids", reason="page_tree")
        kids = kids.get_object()
        if not isinstance(kids, ArrayObject):
            raise CorruptionDetected("page tree /Kids is not an array", reason="page_tree")
        for kid in kids:
            if not isinstance(kid, IndirectObject):
                raise CorruptionDetected("page tree entry is not a reference", reason="page_tree")
            key = (kid.idnum, kid.generation)
            if key in seen:
                raise CorruptionDetected(
                    f"page object {kid.idnum} referenced more than once",
                    reason="duplicate_page",
                    page_index=len(leaves),
                )
            seen.add(key)
            try:
                obj = kid.get_object()
            except _PARSE_ERRORS as exc:
                raise CorruptionDetected(
                    f"page object {kid.idnum} unreadable: {exc}",
                    reason="dangling_reference",
                    page_index=len(leaves),
                ) from exc
            if obj is None or isinstance(obj, NullObject):
                raise CorruptionDetected(
                    f"page object {kid.idnum} does not exist",
                    reason="dangling_reference",
                    page_index=len(leaves),
                )
            if not isinstance(obj, DictionaryObject):
                raise CorruptionDetected(
                    f"page tree entry {kid.idnum} is not a dictionary",
                    reason="page_tree",
                    page_index=len(leaves),
                )
            node_type = obj.get("/Type")
            if node_type == "/Pages":
                _visit(obj, depth + 1)
            elif node_type == "/Page":
                leaves.append(obj)
            else:
                raise CorruptionDetected(
                    f"page tree entry {kid.idnum} has type {node_type}",
                    reason="page_tree",
                    page_index=len(leaves),
                )

    _visit(pages_root, 0)
    return leaves


def _resolve_reachable(start: Any) -> int:
    """Resolve every indirect object reachable from ``start``; returns the count."""
    seen: set[tuple[int, int]] = set()
    stack: list[Any] = [start]
    while stack:
        item = stack.pop()
        if isinstance(item, IndirectObject):
            key = (item.idnum, item.generation)
            if key in seen:
                continue
            seen.add(key)
            try:
                obj = item.get_object()
            except _PARSE_ERRORS as exc:
                raise CorruptionDetected(
                    f"object {item.idnum} {item.generation} R unreadable: {exc}",
                    reason="dangling_reference",
                ) from exc
            if obj is None or isinstance(obj, NullObject):
                raise CorruptionDetected(
                    f"object {item.idnum} {item.generation} R does not exist",
                    reason="dangling_reference",
                )
            stack.append(obj)
        elif isinstance(item, DictionaryObject):
            stack.extend(item.values())
        elif isinstance(item, ArrayObject):
            stack.extend(item)
    return len(seen)


def _check_fingerprints(pages: Sequence[Any], expected: Sequence[str]) -> None:
    if len(expected) != len(pages):
        raise CorruptionDetected(
            f"{len(expected)} fingerprints planned for {len(pages)} pages",
            reason="page_order",
        )
    for index, (page, want) in enumerate(zip(pages, expected)):
        try:
            got = page_fingerprint(page)
        except _PARSE_ERRORS as exc:
            raise CorruptionDetected(
                f"page {index + 1} content unreadable: {exc}",
                reason="content",
                page_index=index,
            ) from exc
        if got != want:
            raise CorruptionDetected(
                f"page {index + 1} content differs from the assembly plan",
                reason="page_order",
                page_index=index,
            )


def _form_state(root: DictionaryObject) -> tuple[bool, bool]:
    acroform = root.get("/AcroForm")
    if acroform is None:
        return False, False
    acroform = acroform.get_object()
    fields = acroform.get("/Fields")
    has_form = bool(fields is not None and len(fields.get_object()) > 0)
    return has_form, pdf_bool(acroform.get("/NeedAppearances"))


def pdf_bool(value: Any) -> bool:
    """Truth value of a PDF boolean entry; absent means False."""
    if value is None:
        return False
    value = value.get_object() if isinstance(value, IndirectObject) else value
    return getattr(value, "value", value) is True
