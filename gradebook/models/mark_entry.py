"""Mark entry model definitions."""

from sqlalchemy import Column, DateTime, Float, Index, Integer, String, func
from gradebook.database import Base, MARK_ENTRY_KEY_INDEX


class MarkEntry(Base):
    """Marks scored by one student in one subject.

    ``student_id`` refers to ``students.id`` without a database foreign key.
    Entries outlive their student, so joins on it must skip unresolved rows.
    """
    __tablename__ = "mark_entries"
    __table_args__ = (
        Index(MARK_ENTRY_KEY_INDEX, "student_id", "subject", unique=True),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, nullable=False, index=True)
    subject = Column(String, nullable=False)
    marks = Column(Float, nullable=False)
    total_marks = Column(Float, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def percentage(self) -> float:
        return calculate_percentage(self.marks, self.total_marks)


def calculate_percentage(marks: float, total_marks: float) -> float:
    return round(marks / total_marks * 100, 2)


def format_percentage(marks: float, total_marks: float) -> str:
    return f"{calculate_percentage(marks, total_marks):.2f}%"
