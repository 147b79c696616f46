"""
Typed errors raised by the service layer.

Every error carries the HTTP status it maps to, so routers never translate
domain failures by hand. The handlers registered in ``register_exception_handlers``
turn them into ``{"success": false, "error": "..."}`` responses.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from garage_api.config import get_settings

logger = logging.getLogger(__name__)


class GarageError(Exception):
    """Base error with an HTTP status code."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(GarageError):
    """Invalid input, invalid state transition or insufficient stock."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(GarageError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(GarageError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(GarageError):
    status_code = status.HTTP_404_NOT_FOUND


class AccountLockedError(GarageError):
    status_code = status.HTTP_423_LOCKED


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
    )


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error handlers on the application."""

    @app.exception_handler(GarageError)
    async def garage_error_handler(request: Request, exc: GarageError):
        return error_response(exc.message, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(_format_validation_errors(exc), status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        response = error_response(str(exc.detail), exc.status_code)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        message = str(exc) if get_settings().debug else "Internal server error"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=jsonable_encoder({"success": False, "error": message}),
        )
