"""Domain error taxonomy and the JSON failure envelope.

Services raise ``TaskverseError`` subclasses. Mutations convert them into a
``Failure`` result at the service boundary; read endpoints let them reach
the exception handler registered in ``taskverse.main``. Both paths render
the same envelope through ``error_body``.
"""
import enum
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ErrorKind(str, enum.Enum):
    not_authenticated = "NOT_AUTHENTICATED"
    not_authorized = "NOT_AUTHORIZED"
    forbidden = "FORBIDDEN"
    not_found = "NOT_FOUND"
    validation_error = "VALIDATION_ERROR"
    conflict = "CONFLICT"
    unknown = "UNKNOWN"


HTTP_STATUS = {
    ErrorKind.not_authenticated: 401,
    ErrorKind.not_authorized: 403,
    ErrorKind.forbidden: 403,
    ErrorKind.not_found: 404,
    ErrorKind.validation_error: 422,
    ErrorKind.conflict: 409,
    ErrorKind.unknown: 500,
}


class TaskverseError(Exception):
    kind = ErrorKind.unknown
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotAuthenticatedError(TaskverseError):
    kind = ErrorKind.not_authenticated
    default_message = "Not authenticated"


class NotAuthorizedError(TaskverseError):
    kind = ErrorKind.not_authorized
    default_message = "Not authorized"


class ForbiddenError(TaskverseError):
    kind = ErrorKind.forbidden
    default_message = "You do not have permission to perform this action"


class NotFoundError(TaskverseError):
    kind = ErrorKind.not_found
    default_message = "Not found"


class ValidationError(TaskverseError):
    kind = ErrorKind.validation_error
    default_message = "Invalid input"


class ConflictError(TaskverseError):
    kind = ErrorKind.conflict
    default_message = "Conflict"


def error_body(kind: ErrorKind, message: str, path: str, details: Optional[Any] = None) -> dict:
    return {
        "success": False,
        "message": message,
        "error_code": kind.value,
        "path": path,
        "details": details,
    }


def error_response(request: Request, kind: ErrorKind, message: str, details: Optional[Any] = None) -> JSONResponse:
    return JSONResponse(
        status_code=HTTP_STATUS[kind],
        content=error_body(kind, message, request.url.path, details),
    )


# --------------------------------------------------
# GLOBAL EXCEPTION HANDLERS
# --------------------------------------------------

async def taskverse_error_handler(request: Request, exc: TaskverseError):
    return error_response(request, exc.kind, exc.message, exc.details)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return error_response(request, ErrorKind.validation_error, "Request validation failed", details)
