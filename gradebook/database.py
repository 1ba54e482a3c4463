import logging
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from gradebook.core import config
from gradebook.core.errors import InternalError


logger = logging.getLogger(__name__)

connect_args = {'check_same_thread': False} if config.DATABASE_URL.startswith('sqlite') else {}

engine = create_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

STUDENT_ROLL_NUMBER_INDEX = 'uq_students_roll_number'
MARK_ENTRY_KEY_INDEX = 'uq_mark_entries_student_subject'

_schema_lock = Lock()
_gradebook_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_gradebook_schema(bind=None) -> None:
    """Add the unique indexes the ledger and registry rely on to pre-existing tables."""
    global _gradebook_schema_checked

    if _gradebook_schema_checked:
        return

    bind = bind or engine

    with _schema_lock:
        if _gradebook_schema_checked:
            return

        inspector = inspect(bind)
        table_names = set(inspector.get_table_names())
        index_steps = [
            (
                'students',
                STUDENT_ROLL_NUMBER_INDEX,
                f'CREATE UNIQUE INDEX IF NOT EXISTS {STUDENT_ROLL_NUMBER_INDEX} ON students(roll_number)',
            ),
            (
                'mark_entries',
                MARK_ENTRY_KEY_INDEX,
                f'CREATE UNIQUE INDEX IF NOT EXISTS {MARK_ENTRY_KEY_INDEX} ON mark_entries(student_id, subject)',
            ),
        ]

        with bind.begin() as connection:
            for table_name, index_name, statement in index_steps:
                if table_name not in table_names:
                    continue
                existing_indexes = {index['name'] for index in inspector.get_indexes(table_name)}
                if index_name not in existing_indexes:
                    logger.info('Creating index %s on %s', index_name, table_name)
                    connection.execute(text(statement))

        _gradebook_schema_checked = True


def ensure_database_ready() -> None:
    try:
        ensure_gradebook_schema()
    except SQLAlchemyError as exc:
        logger.exception('Database schema check failed.')
        raise InternalError('Database unavailable. Verify DATABASE_URL.') from exc
