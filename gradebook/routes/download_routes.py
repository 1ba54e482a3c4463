import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gradebook.auth.dependencies import CurrentUser, require_role
from gradebook.core.errors import InternalError
from gradebook.database import ensure_database_ready, get_db
from gradebook.models.user import ROLE_TEACHER
from gradebook.reports.marks_report import REPORT_FILENAME, XLSX_MEDIA_TYPE, compile_marks_report

router = APIRouter(tags=['download'])
logger = logging.getLogger(__name__)


@router.get('/excel')
def download_excel(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(ROLE_TEACHER)),
):
    ensure_database_ready()

    try:
        content = compile_marks_report(db)
    except (SQLAlchemyError, OSError, ValueError) as exc:
        logger.exception('Error generating Excel file.')
        raise InternalError('Error generating Excel file') from exc

    logger.info('Marks report exported by %s.', current_user.username)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={'Content-Disposition': f'attachment; filename="{REPORT_FILENAME}"'},
    )
