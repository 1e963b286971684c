from io import BytesIO
from typing import Iterable, List

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from portal.models import StudentRecord

SPREADSHEET_FILENAME = "student_results.xlsx"
PDF_FILENAME = "student_results.pdf"

SPREADSHEET_COLUMNS = ["Hall Ticket No", "Name", "Father's Name", "Gender", "Course", "SGPA", "CGPA"]
PDF_COLUMNS = ["Hall Ticket No", "Name", "SGPA", "CGPA"]


def _found(records: Iterable[StudentRecord]) -> List[StudentRecord]:
    return [r for r in records if r.found]


def spreadsheet_rows(records: Iterable[StudentRecord], missing: str = "") -> List[List[str]]:
    rows = []
    for record in _found(records):
        details = record.personal_details
        result = record.result
        rows.append([
            details.hall_ticket_no if details else missing,
            details.name if details else missing,
            details.father_name if details else missing,
            details.gender if details else missing,
            details.course if details else missing,
            result.sgpa if result else missing,
            result.cgpa if result else missing,
        ])
    return rows


def pdf_rows(records: Iterable[StudentRecord], missing: str = "N/A") -> List[List[str]]:
    rows = []
    for record in _found(records):
        details = record.personal_details
        result = record.result
        rows.append([
            (details.hall_ticket_no if details else "") or missing,
            (details.name if details else "") or missing,
            (result.sgpa if result else "") or missing,
            (result.cgpa if result else "") or missing,
        ])
    return rows


def build_spreadsheet(records: Iterable[StudentRecord]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Results"

    ws.append(SPREADSHEET_COLUMNS)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    rows = spreadsheet_rows(records)
    for row in rows:
        ws.append(row)

    # Rough auto-width so the sheet is readable without resizing
    for idx, header in enumerate(SPREADSHEET_COLUMNS):
        width = max([len(header)] + [len(row[idx]) for row in rows])
        ws.column_dimensions[get_column_letter(idx + 1)].width = width + 2

    output = BytesIO()
    wb.save(output)
    return output.getvalue()


def build_pdf(records: Iterable[StudentRecord], title: str = "Student Results") -> bytes:
    output = BytesIO()
    doc = SimpleDocTemplate(
        output,
        pagesize=A4,
        rightMargin=36,
        leftMargin=36,
        topMargin=36,
        bottomMargin=36,
        title=title,
    )

    styles = getSampleStyleSheet()
    story = [Paragraph(title, styles["Heading1"]), Spacer(1, 10)]

    table = Table([PDF_COLUMNS] + pdf_rows(records), repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("BACKGROUND", (0, 0), (-1, 0), colors.whitesmoke),
                ("FONT", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONT", (0, 1), (-1, -1), "Helvetica"),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ]
        )
    )
    story.append(table)

    doc.build(story)
    return output.getvalue()
