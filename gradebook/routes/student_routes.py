import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, ValidationInfo, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gradebook.auth.dependencies import CurrentUser, get_current_user, require_role
from gradebook.core.errors import ConflictError, InternalError, NotFoundError
from gradebook.database import ensure_database_ready, get_db
from gradebook.models.student import Student
from gradebook.models.user import ROLE_ADMIN

router = APIRouter(tags=['students'])
logger = logging.getLogger(__name__)

SORT_RECENT = 'recent'
SORT_ROSTER = 'roster'
DUPLICATE_ROLL_NUMBER = 'Roll number already exists'
STUDENT_NOT_FOUND = 'Student not found'
REQUIRED_FIELD_LABELS = {
    'full_name': 'Full name',
    'roll_number': 'Roll number',
    'class_name': 'Class',
    'section': 'Section',
    'address': 'Address',
}


class StudentRequest(BaseModel):
    full_name: str = Field(alias='fullName')
    roll_number: str = Field(alias='rollNumber')
    class_name: str = Field(alias='class')
    section: str
    address: str

    class Config:
        populate_by_name = True

    @field_validator('full_name', 'roll_number', 'class_name', 'section', 'address')
    @classmethod
    def validate_required_text(cls, value: str, info: ValidationInfo) -> str:
        normalized = value.strip()
        if not normalized:
            label = REQUIRED_FIELD_LABELS.get(info.field_name, info.field_name)
            raise ValueError(f'{label} is required')
        return normalized


class StudentResponse(BaseModel):
    id: int
    full_name: str = Field(alias='fullName')
    roll_number: str = Field(alias='rollNumber')
    class_name: str = Field(alias='class')
    section: str
    address: str
    created_at: datetime | None = Field(default=None, alias='createdAt')
    updated_at: datetime | None = Field(default=None, alias='updatedAt')

    class Config:
        from_attributes = True
        populate_by_name = True


class StudentUpdateResponse(BaseModel):
    message: str
    student: StudentResponse


class MessageResponse(BaseModel):
    message: str


def parse_record_id(value: str, not_found_detail: str) -> int:
    """Turn a path identifier into a primary key; malformed ids read as missing."""
    try:
        record_id = int(value)
    except (TypeError, ValueError) as exc:
        raise NotFoundError(not_found_detail) from exc

    if record_id < 1:
        raise NotFoundError(not_found_detail)

    return record_id


def query_students(db: Session, order: str = SORT_RECENT) -> list[Student]:
    query = db.query(Student)
    if order == SORT_ROSTER:
        query = query.order_by(Student.class_name.asc(), Student.section.asc(), Student.roll_number.asc())
    else:
        query = query.order_by(Student.created_at.desc(), Student.id.desc())
    return query.all()


def find_student(db: Session, student_id: str) -> Student:
    student = db.get(Student, parse_record_id(student_id, STUDENT_NOT_FOUND))
    if student is None:
        raise NotFoundError(STUDENT_NOT_FOUND)
    return student


def ensure_roll_number_available(db: Session, roll_number: str, exclude_id: int | None = None) -> None:
    query = db.query(Student.id).filter(Student.roll_number == roll_number)
    if exclude_id is not None:
        query = query.filter(Student.id != exclude_id)

    if query.first():
        raise ConflictError(DUPLICATE_ROLL_NUMBER)


def _handle_write_failure(db: Session, exc: SQLAlchemyError, action: str) -> None:
    db.rollback()
    if isinstance(exc, IntegrityError):
        raise ConflictError(DUPLICATE_ROLL_NUMBER) from exc
    logger.exception('Error %s student.', action)
    raise InternalError(f'Error {action} student') from exc


@router.get('', response_model=list[StudentResponse])
def list_students(
    sort: str = Query(default=SORT_RECENT, pattern=f'^({SORT_RECENT}|{SORT_ROSTER})$'),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        return query_students(db, sort)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching students.')
        raise InternalError('Error fetching students') from exc


@router.get('/{student_id}', response_model=StudentResponse)
def get_student(
    student_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        return find_student(db, student_id)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching student %s.', student_id)
        raise InternalError('Error fetching student') from exc


@router.post('', response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
def create_student(
    data: StudentRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(ROLE_ADMIN)),
):
    ensure_database_ready()

    try:
        ensure_roll_number_available(db, data.roll_number)

        student = Student(
            full_name=data.full_name,
            roll_number=data.roll_number,
            class_name=data.class_name,
            section=data.section,
            address=data.address,
        )
        db.add(student)
        db.commit()
        db.refresh(student)

        logger.info('Student %s created by %s.', student.roll_number, current_user.username)
        return student
    except SQLAlchemyError as exc:
        _handle_write_failure(db, exc, 'creating')


@router.put('/{student_id}', response_model=StudentUpdateResponse)
def update_student(
    student_id: str,
    data: StudentRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(ROLE_ADMIN)),
):
    ensure_database_ready()

    try:
        student = find_student(db, student_id)
        ensure_roll_number_available(db, data.roll_number, exclude_id=student.id)

        student.full_name = data.full_name
        student.roll_number = data.roll_number
        student.class_name = data.class_name
        student.section = data.section
        student.address = data.address
        db.commit()
        db.refresh(student)

        return StudentUpdateResponse(
            message='Student updated successfully',
            student=StudentResponse.model_validate(student),
        )
    except SQLAlchemyError as exc:
        _handle_write_failure(db, exc, 'updating')


@router.delete('/{student_id}', response_model=MessageResponse)
def delete_student(
    student_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(ROLE_ADMIN)),
):
    ensure_database_ready()

    try:
        student = find_student(db, student_id)
        roll_number = student.roll_number
        db.delete(student)
        db.commit()

        logger.info('Student %s deleted by %s.', roll_number, current_user.username)
        return MessageResponse(message='Student deleted successfully')
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error deleting student %s.', student_id)
        raise InternalError('Error deleting student') from exc
