"""
Invoice PDF rendering.

WHAT: Lays out one invoice as a letter-size PDF: firm letterhead, the
bill-to block, one line per billed time entry and the money summary.

WHY: The client checks the bill line by line. Every line carries date,
narrative, timekeeper, rate, hours and amount exactly as stored on the
entry, so the document adds up to the invoice total by construction.

HOW: ReportLab platypus flowables rendered into memory. Money arrives as
integer cents and goes through ``format_cents``; no floats touch amounts.
Nothing is cached or written to disk.
"""

import io
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, List, Optional, Sequence, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from timebill.core.config import settings
from timebill.services.billing import format_cents, minutes_to_hours

logger = logging.getLogger(__name__)

MARGIN = 0.75 * inch

INK = colors.HexColor("#1f2933")
MUTED = colors.HexColor("#616e7c")
RULE = colors.HexColor("#cbd2d9")
SHADE = colors.HexColor("#f5f7fa")
ACCENT = colors.HexColor("#243b53")

# Draft invoices carry no banner
STATUS_BANNERS = {
    "sent": "#2680c2",
    "partial": "#de911d",
    "paid": "#27ab83",
    "overdue": "#cf1124",
}

LINE_COLUMNS: Tuple[Tuple[str, float], ...] = (
    ("Date", 0.85),
    ("Description", 2.6),
    ("Timekeeper", 1.15),
    ("Rate", 0.85),
    ("Hours", 0.6),
    ("Amount", 0.95),
)


@dataclass
class FirmInfo:
    """Letterhead printed at the top of every invoice."""

    name: str
    address: str
    city_state_zip: str
    phone: str
    email: str

    @classmethod
    def from_settings(cls) -> "FirmInfo":
        return cls(
            name=settings.FIRM_NAME,
            address=settings.FIRM_ADDRESS,
            city_state_zip=settings.FIRM_CITY_STATE_ZIP,
            phone=settings.FIRM_PHONE,
            email=settings.FIRM_EMAIL,
        )


def _invoice_styles():
    sheet = getSampleStyleSheet()
    additions = (
        ("Letterhead", "Heading1", {"fontSize": 20, "spaceAfter": 6, "textColor": ACCENT}),
        ("Contact", "Normal", {"fontSize": 8, "leading": 10, "textColor": MUTED}),
        ("Section", "Heading2", {"fontSize": 12, "spaceBefore": 10, "spaceAfter": 6, "textColor": INK}),
        ("Block", "Normal", {"fontSize": 10, "leading": 13}),
        ("BlockRight", "Normal", {"fontSize": 10, "leading": 13, "alignment": TA_RIGHT}),
        ("Cell", "Normal", {"fontSize": 9, "leading": 11}),
    )
    for name, parent, attrs in additions:
        sheet.add(ParagraphStyle(name=name, parent=sheet[parent], **attrs))
    return sheet


# ============================================================================
# Formatting
# ============================================================================


def format_date(value: Any) -> str:
    """
    Long-form date such as "January 15, 2026".

    Datetimes print their date part; None prints as an empty string.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.strftime("%B %d, %Y")
    return str(value)


def build_line_items(entries: Iterable[Any]) -> List[dict]:
    """
    Project billed time entries onto printable invoice lines.

    The line date is when work started, or when the entry was recorded
    for manual entries without a start time.

    Args:
        entries: TimeEntry rows with ``user`` loaded

    Returns:
        One dict per entry with date, description, user, rate, hours and
        amount, all as display strings
    """
    items = []
    for entry in entries:
        worked = entry.started_at or entry.created_at
        items.append({
            "date": worked.strftime("%m/%d/%Y") if worked else "",
            "description": entry.description or "",
            "user": entry.user.name if entry.user else "",
            "rate": format_cents(entry.rate_cents_applied),
            "hours": f"{minutes_to_hours(entry.billed_minutes):.2f}",
            "amount": format_cents(entry.amount_cents),
        })
    return items


def summary_rows(invoice: Any) -> List[Tuple[str, str]]:
    """Label/amount pairs under the line table; tax and payments only when present."""
    rows = [("Subtotal", format_cents(invoice.subtotal_cents))]
    if invoice.tax_cents:
        rows.append(("Tax", format_cents(invoice.tax_cents)))
    rows.append(("Total", format_cents(invoice.total_cents)))
    if invoice.amount_paid_cents:
        rows.append(("Amount Paid", f"-{format_cents(invoice.amount_paid_cents)}"))
        rows.append(("Balance Due", format_cents(invoice.balance_cents)))
    return rows


# ============================================================================
# PDF Service
# ============================================================================


class PDFService:
    """Builds invoice documents for download."""

    def __init__(self, firm_info: Optional[FirmInfo] = None):
        self.firm = firm_info or FirmInfo.from_settings()
        self.styles = _invoice_styles()

    def _letterhead(self, invoice_number: str) -> List:
        contact = "<br/>".join(
            escape(part)
            for part in (
                self.firm.address,
                self.firm.city_state_zip,
                f"{self.firm.phone}  |  {self.firm.email}",
            )
        )
        title = Table(
            [["INVOICE", f"No. {escape(invoice_number)}"]],
            colWidths=[3.5 * inch, 3.5 * inch],
        )
        title.setStyle(TableStyle([
            ("FONT", (0, 0), (0, 0), "Helvetica-Bold", 16),
            ("FONT", (1, 0), (1, 0), "Helvetica", 11),
            ("TEXTCOLOR", (0, 0), (-1, -1), ACCENT),
            ("ALIGN", (1, 0), (1, 0), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "BOTTOM"),
            ("LINEBELOW", (0, 0), (-1, 0), 1, ACCENT),
        ]))
        return [
            Paragraph(escape(self.firm.name), self.styles["Letterhead"]),
            Paragraph(contact, self.styles["Contact"]),
            Spacer(1, 14),
            title,
            Spacer(1, 10),
        ]

    def _parties(self, matter: Any, dates: Sequence[Tuple[str, str]]) -> Table:
        """Bill-to and matter on the left, invoice dates on the right."""
        block = self.styles["Block"]
        bill_to = [Paragraph("<b>Bill To</b>", block), Paragraph(escape(matter.client_name), block)]
        if matter.client_address:
            address = "<br/>".join(escape(line) for line in matter.client_address.splitlines())
            bill_to.append(Paragraph(address, block))
        bill_to.append(Paragraph(f"<b>Matter:</b> {escape(matter.name)}", block))

        when = [
            Paragraph(f"<b>{label}:</b> {value}", self.styles["BlockRight"])
            for label, value in dates
        ]

        table = Table([[bill_to, when]], colWidths=[3.5 * inch, 3.5 * inch])
        table.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
        return table

    def _line_table(self, items: List[dict]) -> Table:
        cell = self.styles["Cell"]
        rows = [[heading for heading, _ in LINE_COLUMNS]]
        for item in items:
            # Paragraphs so long narratives wrap inside the column
            rows.append([
                item["date"],
                Paragraph(escape(item["description"]), cell),
                Paragraph(escape(item["user"]), cell),
                item["rate"],
                item["hours"],
                item["amount"],
            ])

        table = Table(
            rows,
            colWidths=[width * inch for _, width in LINE_COLUMNS],
            repeatRows=1,
        )
        table.setStyle(TableStyle([
            ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 9),
            ("FONT", (0, 1), (-1, -1), "Helvetica", 9),
            ("TEXTCOLOR", (0, 0), (-1, -1), INK),
            ("BACKGROUND", (0, 0), (-1, 0), SHADE),
            ("LINEBELOW", (0, 0), (-1, 0), 0.75, ACCENT),
            ("LINEBELOW", (0, 1), (-1, -1), 0.25, RULE),
            ("ALIGN", (3, 0), (-1, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("TOPPADDING", (0, 0), (-1, -1), 5),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
        ]))
        return table

    def _summary_table(self, invoice: Any) -> Table:
        rows = summary_rows(invoice)
        commands = [
            ("FONT", (0, 0), (-1, -1), "Helvetica", 10),
            ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ]
        for index, (label, _) in enumerate(rows):
            if label in ("Total", "Balance Due"):
                commands += [
                    ("FONT", (0, index), (-1, index), "Helvetica-Bold", 11),
                    ("TEXTCOLOR", (0, index), (-1, index), ACCENT),
                    ("LINEABOVE", (0, index), (-1, index), 0.75, ACCENT),
                ]
        table = Table(rows, colWidths=[1.5 * inch, 1.5 * inch])
        table.setStyle(TableStyle(commands))

        # Push the summary to the right margin
        holder = Table([["", table]], colWidths=[4 * inch, 3 * inch])
        holder.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
        return holder

    def _footer(self, canvas, doc) -> None:
        canvas.saveState()
        canvas.setFont("Helvetica", 8)
        canvas.setFillColor(MUTED)
        canvas.drawString(MARGIN, 0.5 * inch, f"{self.firm.name}  |  {doc.title}")
        canvas.drawRightString(letter[0] - MARGIN, 0.5 * inch, f"Page {doc.page}")
        canvas.restoreState()

    def generate_invoice_pdf(self, invoice: Any, matter: Any, entries: Iterable[Any]) -> bytes:
        """
        Render an invoice to PDF bytes.

        Args:
            invoice: Invoice row (or any object with the same attributes)
            matter: Matter the invoice bills
            entries: Billed time entries, in line order

        Returns:
            The PDF document
        """
        dates = [
            ("Invoice Date", format_date(invoice.issue_date)),
            ("Due Date", format_date(invoice.due_date) if invoice.due_date else "Upon Receipt"),
        ]
        if invoice.paid_at:
            dates.append(("Paid", format_date(invoice.paid_at)))

        story = self._letterhead(invoice.invoice_number)
        banner = STATUS_BANNERS.get(invoice.status)
        if banner:
            story += [
                Paragraph(
                    f"<font color='{banner}'><b>{invoice.status.upper()}</b></font>",
                    self.styles["Block"],
                ),
                Spacer(1, 6),
            ]
        story += [self._parties(matter, dates), Spacer(1, 14)]
        if invoice.description:
            story += [Paragraph(escape(invoice.description), self.styles["Block"]), Spacer(1, 6)]
        story += [
            Paragraph("Professional Services", self.styles["Section"]),
            self._line_table(build_line_items(entries)),
            Spacer(1, 14),
            self._summary_table(invoice),
        ]

        buffer = io.BytesIO()
        document = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            leftMargin=MARGIN,
            rightMargin=MARGIN,
            topMargin=MARGIN,
            bottomMargin=MARGIN,
            title=f"Invoice {invoice.invoice_number}",
        )
        document.build(story, onFirstPage=self._footer, onLaterPages=self._footer)

        logger.info("Rendered invoice PDF %s", invoice.invoice_number)
        return buffer.getvalue()
