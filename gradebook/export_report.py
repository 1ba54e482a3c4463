"""Write the student marks workbook to a file or stdout.

Usage:
    python -m gradebook.export_report [PATH]
"""
import sys

from sqlalchemy.exc import SQLAlchemyError

from gradebook.database import SessionLocal
from gradebook.reports.marks_report import REPORT_FILENAME, compile_marks_report


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    target = args[0] if args else REPORT_FILENAME

    db = SessionLocal()
    try:
        content = compile_marks_report(db)
    except SQLAlchemyError as exc:
        print(f"Error generating Excel file: {exc}", file=sys.stderr)
        return 1
    finally:
        db.close()

    if target == "-":
        sys.stdout.buffer.write(content)
    else:
        with open(target, "wb") as handle:
            handle.write(content)
        print(f"Wrote {target}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
