"""User model definitions."""

from sqlalchemy import Column, DateTime, Integer, String, func
from gradebook.database import Base


ROLE_ADMIN = "admin"
ROLE_TEACHER = "teacher"
ROLES = (ROLE_ADMIN, ROLE_TEACHER)


class User(Base):
    """Represents an account that can sign in to the portal."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False)  # admin/teacher
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
