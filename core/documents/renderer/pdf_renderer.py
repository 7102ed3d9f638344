"""
Documents - PDF Renderer
==========================
Generates a minimal, deterministic PDF from a report plan dict.

Implementation: pure Python stdlib, no external dependencies.
Valid PDF 1.4 with the built-in Helvetica fonts.

Report plan shape:
    {
        "title": str,
        "subtitle": str,                       # optional
        "sections": [
            {"heading": str, "fields": [(label, value), ...]},
            {"heading": str, "columns": [...], "rows": [[...], ...]},
            {"heading": str, "lines": [str, ...]},
        ],
        "footer": str,                         # optional
    }

Same plan -> same bytes. Non-ASCII text is replaced by '?'.
"""

from __future__ import annotations

import io
from typing import Any, Sequence


# ---------------------------------------------------------------------------
# PDF string encoding
# ---------------------------------------------------------------------------

def _pdf_str(value: Any) -> str:
    """Encode a value as a PDF literal string (parentheses form)."""
    text = str(value) if value is not None else ""
    text = text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
    safe = "".join(c if 32 <= ord(c) < 127 else "?" for c in text)
    return f"({safe})"


def _fmt(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(_fmt(item) for item in value)
    if isinstance(value, dict):
        return " | ".join(f"{k}: {_fmt(v)}" for k, v in sorted(value.items()))
    return str(value)


# ---------------------------------------------------------------------------
# Minimal PDF writer
# ---------------------------------------------------------------------------

class _PdfWriter:
    """
    Page size: A4 (595 x 842 pts).
    Objects 1 and 2 are reserved for the catalog and page tree so that
    content objects can reference the tree without renumbering.
    """

    PAGE_W = 595
    PAGE_H = 842
    MARGIN_LEFT = 50
    MARGIN_RIGHT = 50
    MARGIN_TOP = 790
    MARGIN_BOTTOM = 50
    LINE_HEIGHT_NORMAL = 16
    LINE_HEIGHT_HEADING = 20
    LINE_HEIGHT_TITLE = 28
    FONT_SIZE_NORMAL = 10
    FONT_SIZE_HEADING = 13
    FONT_SIZE_TITLE = 16

    _CATALOG_ID = 1
    _PAGES_ID = 2

    def __init__(self):
        self._objects: dict[int, str] = {}
        self._next_id = 3
        self._page_ids: list[int] = []
        self._ops: list[str] = []
        self._y: float = self.MARGIN_TOP

    @property
    def content_width(self) -> float:
        return self.PAGE_W - self.MARGIN_LEFT - self.MARGIN_RIGHT

    def _add_object(self, content: str) -> int:
        obj_id = self._next_id
        self._next_id += 1
        self._objects[obj_id] = content
        return obj_id

    # -- drawing primitives --------------------------------------------------

    def _text(self, x: float, text: str, *, bold: bool = False, size: int | None = None) -> None:
        font = "/F2" if bold else "/F1"
        self._ops.append(
            f"BT {font} {size or self.FONT_SIZE_NORMAL} Tf "
            f"{x:.2f} {self._y:.2f} Td {_pdf_str(text)} Tj ET"
        )

    def _rule(self) -> None:
        x2 = self.PAGE_W - self.MARGIN_RIGHT
        self._ops.append(f"{self.MARGIN_LEFT} {self._y:.2f} m {x2} {self._y:.2f} l S")

    # -- pagination ----------------------------------------------------------

    def _finish_page(self) -> None:
        stream = "\n".join(self._ops)
        stream_id = self._add_object(
            f"<< /Length {len(stream.encode('latin-1'))} >>\nstream\n{stream}\nendstream"
        )
        page_id = self._add_object(
            f"<< /Type /Page /Parent {self._PAGES_ID} 0 R "
            f"/MediaBox [0 0 {self.PAGE_W} {self.PAGE_H}] "
            f"/Contents {stream_id} 0 R "
            f"/Resources << /Font << "
            f"/F1 << /Type /Font /Subtype /Type1 /BaseFont /Helvetica >> "
            f"/F2 << /Type /Font /Subtype /Type1 /BaseFont /Helvetica-Bold >> "
            f">> >> >>"
        )
        self._page_ids.append(page_id)
        self._ops = []
        self._y = self.MARGIN_TOP

    def _ensure_space(self, needed: float) -> None:
        if self._y - needed < self.MARGIN_BOTTOM:
            self._finish_page()

    # -- content helpers -----------------------------------------------------

    def add_title(self, text: str) -> None:
        self._ensure_space(self.LINE_HEIGHT_TITLE)
        self._text(self.MARGIN_LEFT, text, bold=True, size=self.FONT_SIZE_TITLE)
        self._y -= self.LINE_HEIGHT_HEADING
        self._rule()
        self._y -= 4

    def add_heading(self, text: str) -> None:
        self._ensure_space(self.LINE_HEIGHT_HEADING + 8)
        self._y -= 6
        self._text(self.MARGIN_LEFT, text, bold=True, size=self.FONT_SIZE_HEADING)
        self._y -= self.LINE_HEIGHT_HEADING

    def add_kv(self, label: str, value: Any) -> None:
        self._ensure_space(self.LINE_HEIGHT_NORMAL)
        self._text(self.MARGIN_LEFT, f"{label}:", bold=True)
        self._text(self.MARGIN_LEFT + 160, _fmt(value))
        self._y -= self.LINE_HEIGHT_NORMAL

    def add_text(self, text: str) -> None:
        self._ensure_space(self.LINE_HEIGHT_NORMAL)
        self._text(self.MARGIN_LEFT, text)
        self._y -= self.LINE_HEIGHT_NORMAL

    def add_table(self, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        if not columns:
            return
        width = self.content_width / len(columns)
        max_chars = max(4, int(width / 6))

        self._ensure_space(self.LINE_HEIGHT_NORMAL + 4)
        for index, column in enumerate(columns):
            self._text(self.MARGIN_LEFT + index * width, str(column), bold=True)
        self._y -= self.LINE_HEIGHT_NORMAL
        self._rule()
        self._y -= 12

        for row in rows:
            self._ensure_space(self.LINE_HEIGHT_NORMAL)
            for index, cell in enumerate(row[: len(columns)]):
                text = _fmt(cell)
                if len(text) > max_chars:
                    text = text[: max_chars - 1] + "~"
                self._text(self.MARGIN_LEFT + index * width, text)
            self._y -= self.LINE_HEIGHT_NORMAL

    def add_vspace(self, pts: float = 8) -> None:
        self._y -= pts

    # -- finalise ------------------------------------------------------------

    def build(self) -> bytes:
        if self._ops or not self._page_ids:
            self._finish_page()

        kids = " ".join(f"{pid} 0 R" for pid in self._page_ids)
        self._objects[self._CATALOG_ID] = f"<< /Type /Catalog /Pages {self._PAGES_ID} 0 R >>"
        self._objects[self._PAGES_ID] = (
            f"<< /Type /Pages /Kids [{kids}] /Count {len(self._page_ids)} >>"
        )

        out = io.BytesIO()
        out.write(b"%PDF-1.4\n")
        out.write(b"%\xe2\xe3\xcf\xd3\n")

        offsets: list[int] = []
        for obj_id in sorted(self._objects):
            offsets.append(out.tell())
            out.write(f"{obj_id} 0 obj\n".encode("latin-1"))
            out.write(self._objects[obj_id].encode("latin-1"))
            out.write(b"\nendobj\n")

        xref_offset = out.tell()
        size = len(offsets) + 1
        out.write(f"xref\n0 {size}\n".encode("latin-1"))
        out.write(b"0000000000 65535 f \n")
        for offset in offsets:
            out.write(f"{offset:010d} 00000 n \n".encode("latin-1"))
        out.write(
            f"trailer\n<< /Size {size} /Root {self._CATALOG_ID} 0 R >>\n"
            f"startxref\n{xref_offset}\n%%EOF\n".encode("latin-1")
        )
        return out.getvalue()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def render_pdf(report_plan: dict) -> bytes:
    """
    Render a report plan dict to PDF bytes.

    Raises:
        ValueError: if report_plan is not a dict or has no title.
    """
    if not isinstance(report_plan, dict):
        raise ValueError("report_plan must be a dict.")
    title = report_plan.get("title")
    if not title:
        raise ValueError("report_plan requires a title.")

    writer = _PdfWriter()
    writer.add_title(str(title))
    subtitle = report_plan.get("subtitle")
    if subtitle:
        writer.add_text(str(subtitle))
    writer.add_vspace(4)

    for section in report_plan.get("sections", ()):
        if not isinstance(section, dict):
            continue
        heading = section.get("heading")
        if heading:
            writer.add_heading(str(heading))
        for label, value in section.get("fields", ()):
            writer.add_kv(str(label), value)
        if section.get("columns"):
            writer.add_table(section["columns"], section.get("rows", ()))
        for line in section.get("lines", ()):
            writer.add_text(str(line))
        writer.add_vspace()

    footer = report_plan.get("footer")
    if footer:
        writer.add_vspace(8)
        writer.add_text(str(footer))

    return writer.build()
