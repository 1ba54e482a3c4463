"""HTTP error kinds raised by the registry, ledger, gate and report routes."""

from fastapi import HTTPException, status


class ValidationError(HTTPException):
    def __init__(self, detail: str = 'Validation error') -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ConflictError(HTTPException):
    """A unique key (roll number, student/subject pair) is already taken."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = 'Access denied. No token provided.') -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={'WWW-Authenticate': 'Bearer'},
        )


class InvalidTokenError(HTTPException):
    def __init__(self, detail: str = 'Invalid token.') -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={'WWW-Authenticate': 'Bearer error="invalid_token"'},
        )


class ForbiddenError(HTTPException):
    def __init__(self, detail: str = 'Access denied. Insufficient permissions.') -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InternalError(HTTPException):
    def __init__(self, detail: str = 'Internal server error') -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
