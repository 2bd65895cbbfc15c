"""
Shared test configuration.

- Patches dotenv so pydantic-settings never reads the project's real .env
  file. Tests control config through explicit settings objects or
  monkeypatch.setenv().
- Provides in-memory stand-ins for the user repository and email provider,
  a controllable clock, and ready-wired TokenService / AuthService fixtures.
"""

from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest
from bson import ObjectId

from config import (
    AppSettings,
    DatabaseSettings,
    EmailSettings,
    JWTSettings,
    LoggingSettings,
    OtpSettings,
    SentrySettings,
)
from errors import ConflictError, NotFoundError
from schemas.models.base import to_object_id
from schemas.models.user import UserDoc
from services.auth_service import AuthService
from services.token_service import TokenService
from shared.validators import normalize_email

ACCESS_SECRET = "test-access-secret-0123456789abcdef0123456789"
REFRESH_SECRET = "test-refresh-secret-0123456789abcdef012345678"


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


# ── Fakes ─────────────────────────────────────────────────────────────────────


class FakeUserRepository:
    """In-memory UserRepository with the same failure contract."""

    def __init__(self) -> None:
        self.docs: dict[ObjectId, dict] = {}

    def _load(self, doc: Optional[dict]) -> Optional[UserDoc]:
        return UserDoc.from_mongo(copy.deepcopy(doc)) if doc else None

    async def ensure_indexes(self) -> None:
        return None

    async def find_by_email(self, email: Optional[str]) -> Optional[UserDoc]:
        normalized = normalize_email(email)
        for doc in self.docs.values():
            if doc["email"] == normalized:
                return self._load(doc)
        return None

    async def find_by_id(self, user_id: Any) -> Optional[UserDoc]:
        oid = to_object_id(user_id)
        return self._load(self.docs.get(oid)) if oid else None

    async def get_by_id(self, user_id: Any) -> UserDoc:
        user = await self.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def list_users(self, skip: int = 0, limit: int = 20) -> list[UserDoc]:
        ordered = sorted(
            self.docs.values(), key=lambda d: d["created_at"], reverse=True
        )
        return [self._load(d) for d in ordered[skip : skip + limit]]

    async def count_users(self) -> int:
        return len(self.docs)

    async def create(self, user: UserDoc) -> UserDoc:
        data = user.to_mongo()
        data["email"] = normalize_email(data["email"])
        if any(d["email"] == data["email"] for d in self.docs.values()):
            raise ConflictError("Email already registered", field="email")
        now = datetime.now(timezone.utc)
        data["_id"] = ObjectId()
        data["created_at"] = data.get("created_at") or now
        data["updated_at"] = now
        self.docs[data["_id"]] = data
        return self._load(data)

    async def update(self, user_id: Any, fields: dict[str, Any]) -> None:
        oid = to_object_id(user_id)
        if oid is None or oid not in self.docs:
            raise NotFoundError("User not found")
        update = dict(fields)
        if "email" in update:
            update["email"] = normalize_email(update["email"])
            if any(
                d["email"] == update["email"] and key != oid
                for key, d in self.docs.items()
            ):
                raise ConflictError("Email already registered", field="email")
        update["updated_at"] = datetime.now(timezone.utc)
        self.docs[oid].update(update)

    # test helpers
    def raw(self, user_id: Any) -> dict:
        return self.docs[to_object_id(user_id)]


class FakeEmailProvider:
    """Records every message instead of sending it."""

    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.sent: list[dict] = []

    async def send_email(self, to_email: str, subject: str, html_body: str) -> bool:
        self.sent.append({"kind": "raw", "to": to_email, "subject": subject})
        return self.succeed

    async def send_verification_email(
        self, email: str, user_name: Optional[str], verify_url: str
    ) -> bool:
        self.sent.append(
            {"kind": "verify", "to": email, "name": user_name, "url": verify_url}
        )
        return self.succeed

    async def send_password_reset_email(
        self, email: str, user_name: Optional[str], otp_code: str
    ) -> bool:
        self.sent.append(
            {"kind": "reset", "to": email, "name": user_name, "otp": otp_code}
        )
        return self.succeed


class MutableClock:
    """Callable clock that tests can move forward."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture
def jwt_settings() -> JWTSettings:
    return JWTSettings(
        access_token_secret=ACCESS_SECRET,
        refresh_token_secret=REFRESH_SECRET,
        cookie_secure=False,
        cookie_samesite="lax",
    )


@pytest.fixture
def settings(jwt_settings) -> AppSettings:
    return AppSettings(
        env="test",
        frontend_url="http://frontend.test/",
        db=DatabaseSettings(mongodb_uri="mongodb://localhost:27017/"),
        jwt=jwt_settings,
        otp=OtpSettings(),
        email=EmailSettings(),
        logging=LoggingSettings(),
        sentry=SentrySettings(),
    )


@pytest.fixture
def users() -> FakeUserRepository:
    return FakeUserRepository()


@pytest.fixture
def email_provider() -> FakeEmailProvider:
    return FakeEmailProvider()


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def tokens(jwt_settings, users) -> TokenService:
    return TokenService(jwt_settings, users)


@pytest.fixture
def auth_service(users, tokens, email_provider, settings, clock) -> AuthService:
    return AuthService(users, tokens, email_provider, settings, clock)
