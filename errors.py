"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed, operational errors: expected failures
whose message is safe to show the client. The global exception handler
converts AppError subclasses to the standard response envelope.

Anything that is not an AppError is a programming or infrastructure failure.
It is logged with its traceback and surfaced as a generic 500 (with Sentry
reporting in production) without leaking details to the client.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong!"


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"
    is_operational: bool = True

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    @property
    def status(self) -> str:
        """``"fail"`` for client errors (4xx), ``"error"`` for server errors."""
        return "fail" if 400 <= self.status_code < 500 else "error"

    def to_dict(self) -> dict:
        payload: dict = {
            "success": False,
            "error": True,
            "status": self.status,
            "message": self.message,
            "code": self.error_code,
        }
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


# ── 400 ──────────────────────────────────────────────────────────────────────


class BadRequestError(AppError):
    status_code = 400
    error_code = "bad_request"


class ValidationError(BadRequestError):
    error_code = "validation_error"


class PasswordMismatchError(BadRequestError):
    error_code = "password_mismatch"


class InvalidCodeError(AppError):
    status_code = 400
    error_code = "invalid_code"


class InvalidOtpError(AppError):
    status_code = 400
    error_code = "invalid_otp"


class ExpiredError(AppError):
    status_code = 400
    error_code = "expired"


# ── 401 ──────────────────────────────────────────────────────────────────────


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class InvalidCredentialsError(AuthenticationError):
    error_code = "invalid_credentials"


class InvalidTokenError(AuthenticationError):
    error_code = "invalid_token"


# ── 403 ──────────────────────────────────────────────────────────────────────


class ForbiddenError(AppError):
    status_code = 403
    error_code = "forbidden"


class AccountInactiveError(ForbiddenError):
    error_code = "account_inactive"


class ResetNotAuthorizedError(ForbiddenError):
    error_code = "reset_not_authorized"


# ── 404 / 409 ────────────────────────────────────────────────────────────────


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class NotRegisteredError(NotFoundError):
    error_code = "not_registered"


class ConflictError(AppError):
    status_code = 409
    error_code = "conflict"


def register_error_handlers(app: FastAPI, *, debug: bool = False) -> None:
    """Register global exception handlers on the FastAPI app.

    With *debug* set (development), the 500 envelope also carries the
    exception type and text.
    """

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            log.error(
                "app_error",
                path=request.url.path,
                error_code=exc.error_code,
                error=exc.message,
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=ValidationError("Invalid request body", details=errors).to_dict(),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        log.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        content = {
            "success": False,
            "error": True,
            "status": "error",
            "message": GENERIC_ERROR_MESSAGE,
            "code": "internal_error",
        }
        if debug:
            content["details"] = {"type": type(exc).__name__, "error": str(exc)}
        return JSONResponse(status_code=500, content=content)
