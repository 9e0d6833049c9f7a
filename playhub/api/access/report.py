"""
Audit Log PDF Report

Renders audit entries into a fixed-layout A4 table with ReportLab.
Entries are drawn in the order given (the caller passes them newest
first, as returned by ``AuditQuery.recent``); the header row is redrawn
on every page and a footer carries the total row count.
"""

import io
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from playhub.api.access.audit import AuditLogView


PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 40
ROW_HEIGHT = 18
TITLE_BLOCK = 60  # title + generation line on the first page
FOOTER_BLOCK = 30

# Column x positions and max characters
COLUMNS = (
    ("ID", MARGIN, None),
    ("Action", 100, 25),
    ("User", 250, 15),
    ("Target", 340, None),
    ("Timestamp", 400, None),
)


def rows_per_page(first_page: bool) -> int:
    """How many body rows fit on a page below its header row."""
    top = PAGE_HEIGHT - MARGIN - (TITLE_BLOCK if first_page else 0)
    usable = top - ROW_HEIGHT - MARGIN  # minus header row and bottom margin
    return int(usable // ROW_HEIGHT)


def layout_pages(row_count: int) -> List[int]:
    """
    Split ``row_count`` rows into pages.

    Returns:
        Rows drawn on each page; always at least one page
    """
    pages: List[int] = []
    remaining = row_count
    first = True
    while True:
        capacity = rows_per_page(first)
        take = min(capacity, remaining)
        pages.append(take)
        remaining -= take
        first = False
        if remaining <= 0:
            break
    return pages


def _format_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S")


class AuditReportRenderer:
    """Draws the audit log table into a PDF document."""

    def __init__(self, title: str = "Audit Log Report"):
        self.title = title
        self.page_count = 0

    def render(
        self,
        entries: Sequence[AuditLogView],
        generated_at: Optional[datetime] = None,
    ) -> bytes:
        """
        Render entries to PDF bytes.

        Args:
            entries: Rows in display order
            generated_at: Generation time printed under the title (defaults to now)
        """
        generated_at = generated_at or datetime.now(timezone.utc)
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        pdf.setTitle(self.title)

        self.page_count = 1
        y = self._draw_title(pdf, generated_at)
        y = self._draw_header(pdf, y)

        pages = layout_pages(len(entries))
        index = 0
        for page_number, rows in enumerate(pages):
            if page_number > 0:
                pdf.showPage()
                self.page_count += 1
                y = self._draw_header(pdf, PAGE_HEIGHT - MARGIN)
            for entry in entries[index:index + rows]:
                self._draw_row(pdf, y, entry)
                y -= ROW_HEIGHT
            index += rows

        if y - FOOTER_BLOCK < MARGIN:
            pdf.showPage()
            self.page_count += 1
            y = PAGE_HEIGHT - MARGIN

        pdf.setFont("Helvetica", 9)
        pdf.drawCentredString(PAGE_WIDTH / 2, y - FOOTER_BLOCK, f"Total entries: {len(entries)}")

        pdf.save()
        return buffer.getvalue()

    def _draw_title(self, pdf: canvas.Canvas, generated_at: datetime) -> float:
        top = PAGE_HEIGHT - MARGIN
        pdf.setFont("Helvetica-Bold", 18)
        pdf.drawCentredString(PAGE_WIDTH / 2, top - 18, self.title)
        pdf.setFont("Helvetica", 10)
        pdf.drawCentredString(
            PAGE_WIDTH / 2, top - 38, f"Generated: {_format_timestamp(generated_at)} UTC"
        )
        return top - TITLE_BLOCK

    def _draw_header(self, pdf: canvas.Canvas, y: float) -> float:
        pdf.setFont("Helvetica-Bold", 9)
        for label, x, _ in COLUMNS:
            pdf.drawString(x, y - 9, label)
        pdf.line(MARGIN, y - 12, PAGE_WIDTH - MARGIN, y - 12)
        pdf.setFont("Helvetica", 8)
        return y - ROW_HEIGHT

    def _draw_row(self, pdf: canvas.Canvas, y: float, entry: AuditLogView) -> None:
        values = (
            str(entry.id),
            entry.action,
            entry.display_user,
            str(entry.target_id) if entry.target_id is not None else "-",
            _format_timestamp(entry.timestamp),
        )
        for (_, x, width), value in zip(COLUMNS, values):
            pdf.drawString(x, y - 9, value[:width] if width else value)


def render_audit_report(
    entries: Sequence[AuditLogView],
    generated_at: Optional[datetime] = None,
) -> bytes:
    """Convenience wrapper returning the PDF bytes."""
    return AuditReportRenderer().render(entries, generated_at)
