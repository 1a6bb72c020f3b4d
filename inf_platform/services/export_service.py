"""
Export Service - CSV and PDF renderings of booking lists.

Pure formatting over rows already loaded by the booking service.
Columns are (key, header) pairs; missing keys render as empty cells.
"""

import csv
from datetime import date, datetime
from io import BytesIO, StringIO
from typing import Any, List, Optional, Sequence, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

Columns = Sequence[Tuple[str, str]]


# ============================================================
# COLUMN SETS
# ============================================================

STUDENT_BOOKING_COLUMNS: Columns = [
    ("slot_time", "Date & Time"),
    ("company_name", "Company"),
    ("offer_title", "Offer"),
    ("event_name", "Event"),
    ("status", "Status"),
]

COMPANY_SCHEDULE_COLUMNS: Columns = [
    ("start_time", "Start"),
    ("end_time", "End"),
    ("student_name", "Student"),
    ("student_email", "Email"),
    ("student_phone", "Phone"),
    ("offer_title", "Offer"),
]

EVENT_REGISTRATION_COLUMNS: Columns = [
    ("student_name", "Student"),
    ("student_email", "Email"),
    ("student_phone", "Phone"),
    ("company_name", "Company"),
    ("offer_title", "Offer"),
    ("start_time", "Start"),
    ("end_time", "End"),
    ("booking_phase", "Phase"),
    ("booked_at", "Booked At"),
]


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M")
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "value"):  # Enum
        return str(value.value)
    return str(value)


def export_filename(prefix: str, extension: str, on: Optional[date] = None) -> str:
    """e.g. my-interviews-2025-03-14.csv"""
    on = on or date.today()
    return f"{prefix}-{on.isoformat()}.{extension}"


# ============================================================
# CSV
# ============================================================

def bookings_to_csv(rows: List[dict], columns: Columns = STUDENT_BOOKING_COLUMNS) -> str:
    """Every field is quoted so commas, quotes and newlines survive a csv.reader pass."""
    output = StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL)
    writer.writerow([header for _, header in columns])
    for row in rows:
        writer.writerow([format_cell(row.get(key)) for key, _ in columns])
    return output.getvalue()


# ============================================================
# PDF
# ============================================================

def bookings_to_pdf(rows: List[dict], columns: Columns = STUDENT_BOOKING_COLUMNS,
                    title: str = "Interview Bookings") -> bytes:
    """Render rows as a titled table; returns the PDF bytes."""
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=landscape(A4),
        leftMargin=0.5 * inch,
        rightMargin=0.5 * inch,
        topMargin=0.6 * inch,
        bottomMargin=0.6 * inch,
        title=title,
    )
    styles = getSampleStyleSheet()
    cell_style = styles["BodyText"]

    data = [[header for _, header in columns]]
    for row in rows:
        # Paragraph cells wrap long offer titles instead of overflowing
        data.append([Paragraph(escape(format_cell(row.get(key))), cell_style) for key, _ in columns])

    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1f3a5f")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f2f4f7")]),
    ]))

    story = [
        Paragraph(escape(title), styles["Title"]),
        Paragraph(f"Generated on {datetime.now().strftime('%Y-%m-%d %H:%M')}", styles["Normal"]),
        Spacer(1, 0.25 * inch),
    ]
    if rows:
        story.append(table)
    else:
        story.append(Paragraph("No bookings to display.", styles["Normal"]))

    doc.build(story)
    return buf.getvalue()
