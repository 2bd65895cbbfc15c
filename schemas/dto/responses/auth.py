"""
Response DTOs for the user/auth endpoints.

UserProfileResponse — redacted user projection (register, user-details, update)
LoginUser           — minimal projection embedded in LoginResponse
LoginResponse       — POST /login  (200)
RefreshResponse     — POST /refresh-token  (200)

None of these models declare password_hash, refresh_token or the
forgot-password fields, so those values cannot reach a response body.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserProfileResponse(BaseModel):
    """Caller-facing user shape; built from UserDoc by the auth service."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    mobile: Optional[str] = None
    avatar: Optional[str] = None
    role: str
    status: str
    email_verified: bool
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class LoginUser(BaseModel):
    """User projection returned alongside the tokens on login."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    role: str


class LoginResponse(BaseModel):
    """Result of a successful login."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str
    refresh_token: str
    user: LoginUser


class RefreshResponse(BaseModel):
    """Response body for POST /refresh-token (200)."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str
