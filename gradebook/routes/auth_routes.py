import logging

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gradebook.auth import jwt_handler
from gradebook.auth.dependencies import CurrentUser, get_current_user
from gradebook.auth.passwords import verify_password
from gradebook.core import config
from gradebook.core.errors import InternalError, ValidationError
from gradebook.database import get_db
from gradebook.models.user import User

router = APIRouter(tags=['auth'])
logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    username: str
    password: str = Field(min_length=6)

    @field_validator('username')
    @classmethod
    def validate_username(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Username is required')
        return normalized


class UserInfo(BaseModel):
    username: str
    role: str


class LoginResponse(BaseModel):
    message: str
    user: UserInfo
    access_token: str
    token_type: str = 'bearer'


class MeResponse(BaseModel):
    user: UserInfo


def authenticate_user(db: Session, username: str, password: str) -> User | None:
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        return None

    if not verify_password(password, user.hashed_password):
        return None

    return user


@router.post('/login', response_model=LoginResponse)
def login(data: LoginRequest, response: Response, db: Session = Depends(get_db)):
    try:
        user = authenticate_user(db, data.username, data.password)
    except SQLAlchemyError as exc:
        logger.exception('Login lookup failed.')
        raise InternalError() from exc

    if user is None:
        raise ValidationError('Invalid credentials')

    token = jwt_handler.create_access_token(subject=user.username, user_id=user.id, role=user.role)
    response.set_cookie(
        key=config.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=config.AUTH_COOKIE_SECURE,
        samesite='lax',
        max_age=config.JWT_EXPIRES_MINUTES * 60,
    )

    return LoginResponse(
        message='Login successful',
        user=UserInfo(username=user.username, role=user.role),
        access_token=token,
    )


@router.post('/logout')
def logout(response: Response):
    response.delete_cookie(config.AUTH_COOKIE_NAME)
    return {'message': 'Logout successful'}


@router.get('/me', response_model=MeResponse)
def me(current_user: CurrentUser = Depends(get_current_user)):
    return MeResponse(user=UserInfo(username=current_user.username, role=current_user.role))
