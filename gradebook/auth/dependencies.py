from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gradebook.auth import jwt_handler
from gradebook.auth.policy import allows
from gradebook.core import config
from gradebook.core.errors import ForbiddenError, InvalidTokenError, UnauthorizedError
from gradebook.models.user import ROLES

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    user_id: int
    username: str
    role: str


def verify_credential(token: str) -> CurrentUser:
    try:
        payload = jwt_handler.decode_access_token(token)
    except Exception as exc:
        raise InvalidTokenError() from exc

    username = payload.get("sub")
    user_id = payload.get("user_id")
    role = payload.get("role")
    if not username or not isinstance(user_id, int) or isinstance(user_id, bool) or role not in ROLES:
        raise InvalidTokenError()

    return CurrentUser(user_id=user_id, username=username, role=role)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CurrentUser:
    token = credentials.credentials if credentials else request.cookies.get(config.AUTH_COOKIE_NAME)
    if not token:
        raise UnauthorizedError()
    return verify_credential(token)


def require_role(required_role: str):
    def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not allows(required_role, current_user.role):
            raise ForbiddenError()
        return current_user

    return dependency
