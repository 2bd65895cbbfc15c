"""Unit tests for AppError hierarchy and the global exception handlers."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from errors import (
    GENERIC_ERROR_MESSAGE,
    AccountInactiveError,
    AppError,
    AuthenticationError,
    BadRequestError,
    ConflictError,
    ExpiredError,
    ForbiddenError,
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidOtpError,
    InvalidTokenError,
    NotFoundError,
    NotRegisteredError,
    PasswordMismatchError,
    ResetNotAuthorizedError,
    ValidationError,
    register_error_handlers,
)


class TestAppErrorSubclasses:
    @pytest.mark.parametrize(
        "cls, status_code, error_code",
        [
            (BadRequestError, 400, "bad_request"),
            (ValidationError, 400, "validation_error"),
            (PasswordMismatchError, 400, "password_mismatch"),
            (InvalidCodeError, 400, "invalid_code"),
            (InvalidOtpError, 400, "invalid_otp"),
            (ExpiredError, 400, "expired"),
            (AuthenticationError, 401, "authentication_error"),
            (InvalidCredentialsError, 401, "invalid_credentials"),
            (InvalidTokenError, 401, "invalid_token"),
            (ForbiddenError, 403, "forbidden"),
            (AccountInactiveError, 403, "account_inactive"),
            (ResetNotAuthorizedError, 403, "reset_not_authorized"),
            (NotFoundError, 404, "not_found"),
            (NotRegisteredError, 404, "not_registered"),
            (ConflictError, 409, "conflict"),
        ],
    )
    def test_status_and_code(self, cls, status_code, error_code):
        e = cls("boom")
        assert e.status_code == status_code
        assert e.error_code == error_code
        assert e.message == "boom"
        assert e.is_operational is True
        assert isinstance(e, AppError)

    def test_specialisations_are_catchable_as_parent(self):
        with pytest.raises(AuthenticationError):
            raise InvalidCredentialsError("Invalid password")
        with pytest.raises(NotFoundError):
            raise NotRegisteredError("User not registered")


class TestAppErrorToDict:
    def test_basic(self):
        e = NotFoundError("Email not found")
        assert e.to_dict() == {
            "success": False,
            "error": True,
            "status": "fail",
            "message": "Email not found",
            "code": "not_found",
        }

    @pytest.mark.parametrize(
        "kwargs, key, value",
        [
            ({"field": "email"}, "field", "email"),
            ({"details": {"missing": ["name"]}}, "details", {"missing": ["name"]}),
        ],
        ids=["with_field", "with_details"],
    )
    def test_optional_keys(self, kwargs, key, value):
        e = BadRequestError("bad", **kwargs)
        assert e.to_dict()[key] == value

    def test_server_error_status(self):
        assert AppError("kaboom").status == "error"


# ── handlers ──────────────────────────────────────────────────────────────────


class _Body(BaseModel):
    count: int


def _build_app(debug: bool = False) -> TestClient:
    app = FastAPI()
    register_error_handlers(app, debug=debug)

    @app.get("/typed")
    async def typed():
        raise ConflictError("Email already registered", field="email")

    @app.get("/server")
    async def server():
        raise AppError("internal")

    @app.get("/crash")
    async def crash():
        raise RuntimeError("database exploded")

    @app.post("/body")
    async def body(payload: _Body):
        return {"count": payload.count}

    return TestClient(app, raise_server_exceptions=False)


class TestErrorHandlers:
    def test_app_error_uses_envelope(self):
        resp = _build_app().get("/typed")
        assert resp.status_code == 409
        body = resp.json()
        assert body["success"] is False
        assert body["error"] is True
        assert body["message"] == "Email already registered"
        assert body["field"] == "email"

    def test_server_app_error(self):
        resp = _build_app().get("/server")
        assert resp.status_code == 500
        assert resp.json()["status"] == "error"

    def test_unhandled_exception_is_generic(self):
        resp = _build_app().get("/crash")
        assert resp.status_code == 500
        body = resp.json()
        assert body["message"] == GENERIC_ERROR_MESSAGE
        assert body["code"] == "internal_error"
        assert "details" not in body
        assert "database exploded" not in resp.text

    def test_unhandled_exception_details_in_debug(self):
        resp = _build_app(debug=True).get("/crash")
        assert resp.json()["details"] == {
            "type": "RuntimeError",
            "error": "database exploded",
        }

    def test_request_validation_is_400(self):
        resp = _build_app().post("/body", json={"count": "many"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "validation_error"
        assert body["details"][0]["loc"] == ["body", "count"]
