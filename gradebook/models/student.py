"""Student model definitions."""

from sqlalchemy import Column, DateTime, Index, Integer, String, func
from gradebook.database import Base, STUDENT_ROLL_NUMBER_INDEX


class Student(Base):
    """Represents a registered student."""
    __tablename__ = "students"
    __table_args__ = (
        Index(STUDENT_ROLL_NUMBER_INDEX, "roll_number", unique=True),
    )

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    roll_number = Column(String, nullable=False)
    class_name = Column("class", String, nullable=False)
    section = Column(String, nullable=False)
    address = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
