"""
User/auth endpoints under /api/user.

Handlers are thin: parse the body into a request DTO, call AuthService, wrap
the result in the standard success envelope. Errors raised by the service
are AppErrors and are rendered by the global exception handler.

POST /register                   — create account, email verification link (201)
POST /verify-email               — mark email verified
POST /login                      — issue tokens, set auth cookies
GET  /logout                     — revoke refresh token, clear cookies (auth)
POST /refresh-token              — new access token from refresh token
PUT  /forgot-password            — email a one-time reset code
PUT  /verify-forgot-password-otp — check the code, open the reset window
PUT  /reset-password             — set a new password
PUT  /update-user                — sparse profile update (auth)
GET  /user-details               — current user's profile (auth)
GET  /admin/users                — paginated user listing (admin)
GET  /admin/users/{user_id}      — any user's profile (admin)
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from config import AppSettings
from dependencies import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    extract_bearer_token,
    get_auth_service,
    get_current_user_id,
    get_settings,
    require_admin,
)
from schemas.dto.requests.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateUserDetailsRequest,
    VerifyEmailRequest,
    VerifyForgotPasswordOtpRequest,
)
from schemas.dto.responses.auth import RefreshResponse
from schemas.dto.responses.common import (
    created_response,
    paginated_response,
    success_response,
)
from services.auth_service import AuthService

router = APIRouter(prefix="/api/user", tags=["user"])


def _set_cookie(
    response: JSONResponse, settings: AppSettings, name: str, value: str, max_age: int
) -> None:
    response.set_cookie(
        name,
        value=value,
        httponly=True,
        secure=settings.jwt.cookie_secure,
        samesite=settings.jwt.cookie_samesite,
        path="/",
        max_age=max_age,
    )


def _clear_cookie(response: JSONResponse, settings: AppSettings, name: str) -> None:
    response.delete_cookie(
        name,
        path="/",
        httponly=True,
        secure=settings.jwt.cookie_secure,
        samesite=settings.jwt.cookie_samesite,
    )


@router.post("/register")
async def register(
    body: RegisterRequest, service: AuthService = Depends(get_auth_service)
) -> JSONResponse:
    profile = await service.register(body)
    return created_response(profile, "User registered successfully")


@router.post("/verify-email")
async def verify_email(
    body: VerifyEmailRequest, service: AuthService = Depends(get_auth_service)
) -> JSONResponse:
    await service.verify_email(body.code)
    return success_response(message="Email verified successfully")


@router.post("/login")
async def login(
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> JSONResponse:
    result = await service.login(body)
    response = success_response(result, "Login successfully")
    _set_cookie(
        response,
        settings,
        ACCESS_TOKEN_COOKIE,
        result.access_token,
        settings.jwt.access_token_ttl_seconds,
    )
    _set_cookie(
        response,
        settings,
        REFRESH_TOKEN_COOKIE,
        result.refresh_token,
        settings.jwt.refresh_token_ttl_seconds,
    )
    return response


@router.get("/logout")
async def logout(
    user_id: str = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> JSONResponse:
    await service.logout(user_id)
    response = success_response(message="Logout successfully")
    _clear_cookie(response, settings, ACCESS_TOKEN_COOKIE)
    _clear_cookie(response, settings, REFRESH_TOKEN_COOKIE)
    return response


@router.post("/refresh-token")
async def refresh_token(
    request: Request,
    body: Optional[RefreshTokenRequest] = None,
    service: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> JSONResponse:
    # Lookup order: cookie, body, then Authorization header
    token = request.cookies.get(REFRESH_TOKEN_COOKIE)
    if not token and body is not None:
        token = body.refresh_token
    if not token:
        token = extract_bearer_token(request, REFRESH_TOKEN_COOKIE)
    access_token = await service.refresh_access_token(token)
    response = success_response(
        RefreshResponse(access_token=access_token), "New access token generated"
    )
    _set_cookie(
        response,
        settings,
        ACCESS_TOKEN_COOKIE,
        access_token,
        settings.jwt.access_token_ttl_seconds,
    )
    return response


@router.put("/forgot-password")
async def forgot_password(
    body: ForgotPasswordRequest, service: AuthService = Depends(get_auth_service)
) -> JSONResponse:
    await service.forgot_password(body.email)
    return success_response(message="Check your email")


@router.put("/verify-forgot-password-otp")
async def verify_forgot_password_otp(
    body: VerifyForgotPasswordOtpRequest,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    await service.verify_forgot_password_otp(body.email, body.otp)
    return success_response(message="Verify OTP successfully")


@router.put("/reset-password")
async def reset_password(
    body: ResetPasswordRequest, service: AuthService = Depends(get_auth_service)
) -> JSONResponse:
    await service.reset_password(body)
    return success_response(message="Password updated successfully")


@router.put("/update-user")
async def update_user(
    body: UpdateUserDetailsRequest,
    user_id: str = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    profile = await service.update_user_details(user_id, body)
    return success_response(profile, "Updated successfully")


@router.get("/user-details")
async def user_details(
    user_id: str = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    profile = await service.get_user_by_id(user_id)
    return success_response(profile, "User details")


@router.get("/admin/users", dependencies=[Depends(require_admin)])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    profiles, total = await service.list_users(page, limit)
    return paginated_response(profiles, page, limit, total, "Users retrieved")


@router.get("/admin/users/{user_id}", dependencies=[Depends(require_admin)])
async def admin_user_details(
    user_id: str, service: AuthService = Depends(get_auth_service)
) -> JSONResponse:
    profile = await service.get_user_by_id(user_id)
    return success_response(profile, "User details")
