"""Flatten students and their mark entries into the marks workbook."""

from collections import defaultdict
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from gradebook.models.mark_entry import MarkEntry, format_percentage
from gradebook.models.student import Student

SHEET_TITLE = 'Student Marks'
REPORT_FILENAME = 'student_marks.xlsx'
XLSX_MEDIA_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

REPORT_COLUMNS = [
    ('Name', 20),
    ('Roll Number', 15),
    ('Class', 10),
    ('Section', 10),
    ('Subject', 15),
    ('Marks', 10),
    ('Total Marks', 12),
    ('Percentage', 12),
]

NO_SUBJECTS = 'No subjects'
NO_MARKS = 'No marks'


def format_score(value: float) -> int | float:
    if float(value).is_integer():
        return int(value)
    return value


def fetch_roster(db: Session) -> list[Student]:
    return db.query(Student).order_by(
        Student.class_name.asc(),
        Student.section.asc(),
        Student.roll_number.asc(),
    ).all()


def fetch_resolved_marks(db: Session) -> list[MarkEntry]:
    # Inner join drops entries whose student has been deleted.
    return db.query(MarkEntry).join(
        Student, Student.id == MarkEntry.student_id,
    ).order_by(MarkEntry.student_id.asc(), MarkEntry.subject.asc()).all()


def build_report_rows(students: list[Student], entries: list[MarkEntry]) -> list[list]:
    entries_by_student: dict[int, list[MarkEntry]] = defaultdict(list)
    for entry in entries:
        entries_by_student[entry.student_id].append(entry)

    rows: list[list] = []
    for student in students:
        identity = [student.full_name, student.roll_number, student.class_name, student.section]
        student_entries = entries_by_student.get(student.id, [])

        if not student_entries:
            rows.append(identity + [NO_SUBJECTS, NO_MARKS, NO_MARKS, None])
            continue

        for entry in student_entries:
            rows.append(identity + [
                entry.subject,
                format_score(entry.marks),
                format_score(entry.total_marks),
                format_percentage(entry.marks, entry.total_marks),
            ])

    return rows


def write_workbook(rows: list[list]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    ws.append([header for header, _ in REPORT_COLUMNS])
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for row in rows:
        ws.append(row)

    for index, (_, width) in enumerate(REPORT_COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(index)].width = width

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def compile_marks_report(db: Session) -> bytes:
    """Build the complete workbook in memory; any failure propagates and nothing is returned."""
    students = fetch_roster(db)
    entries = fetch_resolved_marks(db)
    return write_workbook(build_report_rows(students, entries))
