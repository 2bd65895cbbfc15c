"""
User document model.

Maps to the `users` MongoDB collection.

Password-reset state lives on the user document itself:
- forgot_password_otp / forgot_password_expiry are set together by
  forgot-password and cleared together by a successful OTP check.
- password_reset_authorized_until is opened by that OTP check and closed by
  reset-password.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import ConfigDict, field_validator

from schemas.models.base import MongoBaseModel
from shared.datetime_utils import parse_datetime


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class UserStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    SUSPENDED = "Suspended"


class UserDoc(MongoBaseModel):
    """Document model for the `users` collection."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        validate_default=True,
    )

    name: str
    email: str
    password_hash: Optional[str] = None
    mobile: Optional[str] = None
    avatar: Optional[str] = None
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    email_verified: bool = False
    refresh_token: Optional[str] = None
    forgot_password_otp: Optional[str] = None
    forgot_password_expiry: Optional[datetime] = None
    password_reset_authorized_until: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator(
        "forgot_password_expiry",
        "password_reset_authorized_until",
        "last_login_at",
        "created_at",
        "updated_at",
        mode="before",
    )
    @classmethod
    def _coerce_datetime(cls, v: Any) -> Optional[datetime]:
        # Older records carry "" for cleared OTP fields and ISO strings for
        # expiry; both normalise to aware UTC datetimes or None.
        return parse_datetime(v)

    @field_validator("forgot_password_otp", "refresh_token", mode="before")
    @classmethod
    def _empty_string_is_none(cls, v: Any) -> Optional[str]:
        return v or None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE
