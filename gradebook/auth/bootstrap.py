import logging

from sqlalchemy.orm import Session

from gradebook.auth.passwords import hash_password
from gradebook.core import config
from gradebook.models.user import ROLE_ADMIN, ROLE_TEACHER, User

logger = logging.getLogger(__name__)


def default_accounts() -> list[tuple[str, str, str]]:
    return [
        (config.DEFAULT_ADMIN_USERNAME, config.DEFAULT_ADMIN_PASSWORD, ROLE_ADMIN),
        (config.DEFAULT_TEACHER_USERNAME, config.DEFAULT_TEACHER_PASSWORD, ROLE_TEACHER),
    ]


def provision_default_users(db: Session) -> list[str]:
    """Create the seed admin and teacher accounts if they are missing.

    Safe to run on every start; returns the usernames that were created.
    """
    created: list[str] = []
    for username, password, role in default_accounts():
        existing = db.query(User).filter(User.username == username).first()
        if existing:
            continue

        db.add(User(username=username, hashed_password=hash_password(password), role=role))
        created.append(username)

    if created:
        db.commit()
        for username in created:
            logger.info('Created default %s account.', username)

    return created
