import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gradebook.auth.dependencies import CurrentUser, require_role
from gradebook.core.errors import ConflictError, InternalError, NotFoundError
from gradebook.database import ensure_database_ready, get_db
from gradebook.models.mark_entry import MarkEntry
from gradebook.models.student import Student
from gradebook.models.user import ROLE_TEACHER
from gradebook.routes.student_routes import MessageResponse, parse_record_id

router = APIRouter(tags=['marks'])
logger = logging.getLogger(__name__)

INVALID_STUDENT_ID = 'Invalid student ID'
MARKS_NOT_FOUND = 'Marks not found'
DUPLICATE_SUBJECT = 'Marks already exist for this subject'


class MarkUpsertRequest(BaseModel):
    student_id: int = Field(alias='studentId', gt=0)
    subject: str
    marks: float = Field(ge=0, allow_inf_nan=False)
    total_marks: float = Field(alias='totalMarks', ge=1, allow_inf_nan=False)

    class Config:
        populate_by_name = True

    @field_validator('subject')
    @classmethod
    def validate_subject(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Subject is required')
        return normalized

    @model_validator(mode='after')
    def validate_marks_within_total(self) -> 'MarkUpsertRequest':
        if self.marks > self.total_marks:
            raise ValueError('Marks cannot exceed total marks')
        return self


class StudentSummary(BaseModel):
    id: int
    full_name: str = Field(alias='fullName')
    roll_number: str = Field(alias='rollNumber')
    class_name: str = Field(alias='class')
    section: str

    class Config:
        from_attributes = True
        populate_by_name = True


class MarkEntryResponse(BaseModel):
    id: int
    student_id: int = Field(alias='studentId')
    subject: str
    marks: float
    total_marks: float = Field(alias='totalMarks')
    percentage: float
    student: StudentSummary | None = None
    created_at: datetime | None = Field(default=None, alias='createdAt')
    updated_at: datetime | None = Field(default=None, alias='updatedAt')

    class Config:
        populate_by_name = True


class MarkUpdateResponse(BaseModel):
    message: str
    marks: MarkEntryResponse


def build_mark_response(entry: MarkEntry, student: Student | None) -> MarkEntryResponse:
    return MarkEntryResponse(
        id=entry.id,
        student_id=entry.student_id,
        subject=entry.subject,
        marks=entry.marks,
        total_marks=entry.total_marks,
        percentage=entry.percentage,
        student=StudentSummary.model_validate(student) if student is not None else None,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


def upsert_mark_entry(
    db: Session,
    student_id: int,
    subject: str,
    marks: float,
    total_marks: float,
) -> tuple[MarkEntry, bool]:
    """Store marks for ``(student_id, subject)``; returns the entry and whether it was created.

    The insert is attempted first and the unique index on the key decides
    between create and update, so two concurrent first submissions cannot
    both create an entry.
    """
    entry = MarkEntry(student_id=student_id, subject=subject, marks=marks, total_marks=total_marks)
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
    else:
        db.refresh(entry)
        return entry, True

    existing = db.query(MarkEntry).filter(
        MarkEntry.student_id == student_id,
        MarkEntry.subject == subject,
    ).first()
    if existing is None:
        raise ConflictError(DUPLICATE_SUBJECT)

    existing.marks = marks
    existing.total_marks = total_marks
    db.commit()
    db.refresh(existing)
    return existing, False


def find_mark_entry(db: Session, mark_id: str) -> MarkEntry:
    entry = db.get(MarkEntry, parse_record_id(mark_id, MARKS_NOT_FOUND))
    if entry is None:
        raise NotFoundError(MARKS_NOT_FOUND)
    return entry


@router.get('/student/{student_id}', response_model=list[MarkEntryResponse])
def list_student_marks(
    student_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(ROLE_TEACHER)),
):
    normalized_student_id = parse_record_id(student_id, INVALID_STUDENT_ID)

    ensure_database_ready()

    try:
        student = db.get(Student, normalized_student_id)
        entries = db.query(MarkEntry).filter(
            MarkEntry.student_id == normalized_student_id,
        ).order_by(MarkEntry.subject.asc()).all()

        return [build_mark_response(entry, student) for entry in entries]
    except SQLAlchemyError as exc:
        logger.exception('Error fetching marks for student %s.', student_id)
        raise InternalError('Error fetching marks') from exc


@router.get('/{mark_id}', response_model=MarkEntryResponse)
def get_mark(
    mark_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(ROLE_TEACHER)),
):
    ensure_database_ready()

    try:
        entry = find_mark_entry(db, mark_id)
        return build_mark_response(entry, db.get(Student, entry.student_id))
    except SQLAlchemyError as exc:
        logger.exception('Error fetching marks %s.', mark_id)
        raise InternalError('Error fetching marks') from exc


@router.post(
    '',
    response_model=MarkEntryResponse | MarkUpdateResponse,
    status_code=status.HTTP_201_CREATED,
)
def save_marks(
    data: MarkUpsertRequest,
    response: Response,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(ROLE_TEACHER)),
):
    ensure_database_ready()

    try:
        entry, created = upsert_mark_entry(
            db,
            student_id=data.student_id,
            subject=data.subject,
            marks=data.marks,
            total_marks=data.total_marks,
        )
        payload = build_mark_response(entry, db.get(Student, entry.student_id))
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error saving marks.')
        raise InternalError('Error saving marks') from exc

    if created:
        logger.info('Marks for student %s in %s recorded by %s.', entry.student_id, entry.subject, current_user.username)
        return payload

    response.status_code = status.HTTP_200_OK
    return MarkUpdateResponse(message='Marks updated successfully', marks=payload)


@router.delete('/{mark_id}', response_model=MessageResponse)
def delete_mark(
    mark_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(ROLE_TEACHER)),
):
    ensure_database_ready()

    try:
        entry = find_mark_entry(db, mark_id)
        db.delete(entry)
        db.commit()

        return MessageResponse(message='Marks deleted successfully')
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error deleting marks %s.', mark_id)
        raise InternalError('Error deleting marks') from exc
