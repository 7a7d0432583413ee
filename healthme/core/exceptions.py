from typing import Optional

from fastapi import HTTPException, status


class ServiceError(HTTPException):
    """Base for errors the API reports to callers with a stable ``kind``."""

    kind = "InternalError"
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail_default = "An unexpected error occurred"

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code_default,
            detail=detail or self.detail_default,
            headers=headers,
        )


class BadRequestError(ServiceError):
    kind = "BadRequest"
    status_code_default = status.HTTP_400_BAD_REQUEST
    detail_default = "Invalid data provided."


class AuthenticationError(ServiceError):
    kind = "Unauthorized"
    status_code_default = status.HTTP_401_UNAUTHORIZED
    detail_default = "Could not validate credentials"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(ServiceError):
    kind = "Forbidden"
    status_code_default = status.HTTP_403_FORBIDDEN
    detail_default = "Not enough permissions"


class NotFoundError(ServiceError):
    kind = "NotFound"
    status_code_default = status.HTTP_404_NOT_FOUND
    detail_default = "Resource not found."


class ConflictError(ServiceError):
    kind = "Conflict"
    status_code_default = status.HTTP_409_CONFLICT
    detail_default = "The request conflicts with the current state of the resource."


class RateLimitError(ServiceError):
    kind = "TooManyRequests"
    status_code_default = status.HTTP_429_TOO_MANY_REQUESTS
    detail_default = "Too many requests. Please try again later."


# Fallback names for plain HTTPExceptions raised by FastAPI itself
ERROR_KINDS = {
    400: "BadRequest",
    401: "Unauthorized",
    403: "Forbidden",
    404: "NotFound",
    405: "MethodNotAllowed",
    409: "Conflict",
    429: "TooManyRequests",
}


def error_kind(exc: HTTPException) -> str:
    if isinstance(exc, ServiceError):
        return exc.kind
    return ERROR_KINDS.get(exc.status_code, "InternalError" if exc.status_code >= 500 else "BadRequest")
