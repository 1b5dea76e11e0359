"""Error taxonomy and the FastAPI handlers that render it.

Every error leaves the API as ``{"detail": <message>, "error": <kind>}`` with
the status code of its kind. Services raise these; endpoints never build error
responses by hand.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "internal"
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(AppError):
    status_code = 422
    error = "validation_error"
    default_detail = "Invalid input"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"
    default_detail = "Not found"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "forbidden"
    default_detail = "Forbidden"


class InvalidOperation(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "invalid_operation"
    default_detail = "Invalid operation"


class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "auth_error"
    default_detail = "Not authenticated"


class Internal(AppError):
    pass


_HTTP_STATUS_KINDS = {
    400: "invalid_operation",
    401: "auth_error",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    422: "validation_error",
}


def _error_response(status_code: int, detail, error: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, "error": error}, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return _error_response(exc.status_code, exc.detail, exc.error, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kind = _HTTP_STATUS_KINDS.get(exc.status_code, "internal" if exc.status_code >= 500 else "error")
    return _error_response(exc.status_code, exc.detail, kind, getattr(exc, "headers", None))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid input")
    detail = f"{location}: {message}" if location else message
    return _error_response(422, detail, ValidationError.error)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, Internal.default_detail, Internal.error)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
