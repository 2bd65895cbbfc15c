"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Long-lived objects (settings, database, email
provider) are created once in the app lifespan and stored on app.state;
repositories and services are cheap wrappers built per request from them.

Authentication:
- get_current_user_id: resolves the bearer access token (``access_token``
  cookie first, then ``Authorization: Bearer``) and records the user id on
  ``request.state.user_id``. Any failure raises InvalidTokenError (401)
  before the route body runs.
- require_admin: additionally loads the user and raises ForbiddenError
  unless the role is ADMIN.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from config import AppSettings
from errors import ForbiddenError
from infrastructure.email.protocol import EmailProvider
from repositories.user_repository import UserRepository
from schemas.models.user import UserDoc
from services.auth_service import AuthService
from services.token_service import TokenService

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


async def get_db(request: Request):
    """Return the async MongoDB database from app.state."""
    return request.app.state.db


def get_email_provider(request: Request) -> EmailProvider:
    return request.app.state.email_provider


def get_user_repo(db=Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_token_service(
    settings: AppSettings = Depends(get_settings),
    users: UserRepository = Depends(get_user_repo),
) -> TokenService:
    return TokenService(settings.jwt, users)


def get_auth_service(
    settings: AppSettings = Depends(get_settings),
    users: UserRepository = Depends(get_user_repo),
    tokens: TokenService = Depends(get_token_service),
    email: EmailProvider = Depends(get_email_provider),
) -> AuthService:
    return AuthService(users, tokens, email, settings)


def extract_bearer_token(request: Request, cookie_name: str) -> Optional[str]:
    """Return the token from *cookie_name*, else from the Authorization header."""
    token = request.cookies.get(cookie_name)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def get_current_user_id(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> str:
    user_id = tokens.verify_access_token(
        extract_bearer_token(request, ACCESS_TOKEN_COOKIE)
    )
    request.state.user_id = user_id
    return user_id


async def require_admin(
    user_id: str = Depends(get_current_user_id),
    users: UserRepository = Depends(get_user_repo),
) -> UserDoc:
    user = await users.find_by_id(user_id)
    if user is None or not user.is_admin:
        raise ForbiddenError("Permission denied")
    return user
