# tours_api/core/errors.py
"""
Operational error taxonomy and the FastAPI handlers that render it.

Every AppError is an expected condition: it is reported to the client
verbatim with its status code, machine-readable code and message.
Anything else reaching the top of the stack is an unexpected fault and is
treated as fatal for the process (see `unexpected_error_handler`).
"""
from __future__ import annotations

import logging
import os
import signal

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors surfaced to the client as-is."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "InternalError"
    default_message: str = "Something went wrong"

    def __init__(self, code: str | None = None, message: str | None = None):
        self.code = code or self.default_code
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def status(self) -> str:
        return "fail" if 400 <= self.status_code < 500 else "error"

    def to_dict(self) -> dict:
        return {"status": self.status, "code": self.code, "message": self.message}


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "ValidationError"
    default_message = "Invalid input data"


class AuthenticationError(AppError):
    """
    401 family.

    Codes: MissingCredentials, InvalidCredentials,
    InvalidToken, ExpiredToken, StaleToken, UserNotFound.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "InvalidCredentials"
    default_message = "Incorrect email or password"


class AuthorizationError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "RoleNotPermitted"
    default_message = "You do not have permission to perform this action"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NotFound"
    default_message = "Resource not found"


class ResetError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "InvalidOrExpiredResetToken"
    default_message = "Token is invalid or has expired"


class DeliveryError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "NotificationFailed"
    default_message = "There was an error sending the email. Try again later!"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies in the same envelope as ValidationError."""
    messages = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{field}: {err.get('msg')}" if field else err.get("msg"))
    error = ValidationError(message=f"Invalid input data. {'. '.join(messages)}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def _terminate_process() -> None:
    os.kill(os.getpid(), signal.SIGTERM)


def build_unexpected_error_handler(exit_on_error: bool):
    """
    Handler for non-operational exceptions.

    The process state can no longer be trusted, so after answering with a
    generic 500 we ask the server to shut down and rely on the supervisor
    to start a fresh instance.
    """

    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.critical(
            "Unexpected error on %s %s, shutting down",
            request.method,
            request.url.path,
            exc_info=exc,
        )
        if exit_on_error:
            _terminate_process()
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "status": "error",
                "code": "InternalError",
                "message": "Something went very wrong!",
            },
        )

    return unexpected_error_handler


def register_exception_handlers(app: FastAPI, exit_on_error: bool) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, build_unexpected_error_handler(exit_on_error))
