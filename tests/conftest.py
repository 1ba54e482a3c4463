import os

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from gradebook.auth.dependencies import CurrentUser  # noqa: E402
from gradebook.database import Base  # noqa: E402
from gradebook.models.mark_entry import MarkEntry  # noqa: E402
from gradebook.models.student import Student  # noqa: E402
from gradebook.models.user import User  # noqa: E402

GRADEBOOK_TABLES = [User.__table__, Student.__table__, MarkEntry.__table__]


@pytest.fixture
def session_factory():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=GRADEBOOK_TABLES)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine, tables=GRADEBOOK_TABLES)
        engine.dispose()


@pytest.fixture
def gradebook_db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def skip_schema_check(monkeypatch: pytest.MonkeyPatch) -> None:
    for module in ('student_routes', 'marks_routes', 'download_routes'):
        monkeypatch.setattr(f'gradebook.routes.{module}.ensure_database_ready', lambda: None)


@pytest.fixture
def admin_user() -> CurrentUser:
    return CurrentUser(user_id=1, username='admin', role='admin')


@pytest.fixture
def teacher_user() -> CurrentUser:
    return CurrentUser(user_id=2, username='teacher', role='teacher')


@pytest.fixture
def make_student(gradebook_db):
    def _make_student(roll_number: str, **overrides) -> Student:
        student = Student(
            full_name=overrides.get('full_name', f'Student {roll_number}'),
            roll_number=roll_number,
            class_name=overrides.get('class_name', '10'),
            section=overrides.get('section', 'A'),
            address=overrides.get('address', '12 Lake Road'),
        )
        gradebook_db.add(student)
        gradebook_db.commit()
        gradebook_db.refresh(student)
        return student

    return _make_student
