"""
Request DTOs for the user/auth endpoints.

RegisterRequest                — POST /api/user/register
LoginRequest                   — POST /api/user/login
VerifyEmailRequest             — POST /api/user/verify-email
ForgotPasswordRequest          — PUT  /api/user/forgot-password
VerifyForgotPasswordOtpRequest — PUT  /api/user/verify-forgot-password-otp
ResetPasswordRequest           — PUT  /api/user/reset-password
RefreshTokenRequest            — POST /api/user/refresh-token
UpdateUserDetailsRequest       — PUT  /api/user/update-user

Fields are optional at the schema level on purpose: missing inputs are
reported by the auth service as BadRequestError with the same envelope as
every other business error, not as a framework-level 422.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    """Request body for POST /register."""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    """Request body for POST /login."""

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    password: Optional[str] = None


class VerifyEmailRequest(BaseModel):
    """Request body for POST /verify-email.

    ``code`` is the user id embedded in the verification link.
    """

    model_config = ConfigDict(populate_by_name=True)

    code: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    """Request body for PUT /forgot-password."""

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None


class VerifyForgotPasswordOtpRequest(BaseModel):
    """Request body for PUT /verify-forgot-password-otp."""

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    otp: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    """Request body for PUT /reset-password.

    Accepts the React client's camelCase keys as aliases.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    new_password: Optional[str] = Field(default=None, alias="newPassword")
    confirm_password: Optional[str] = Field(default=None, alias="confirmPassword")


class RefreshTokenRequest(BaseModel):
    """Optional body for POST /refresh-token (cookie and header are also read)."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


class UpdateUserDetailsRequest(BaseModel):
    """Sparse profile update: every field is independently optional.

    Only fields that carry a non-empty value are written.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    name: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None
    password: Optional[str] = None

    def provided_fields(self) -> dict[str, str]:
        """Return only the fields that were supplied with a non-empty value."""
        return {
            key: value
            for key, value in self.model_dump().items()
            if value is not None and str(value).strip()
        }
