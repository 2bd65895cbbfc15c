"""
Auth service — registration, login and password-recovery business logic.

Pure business logic with no HTTP dependencies: every operation takes a plain
payload and returns a plain result or raises a typed AppError that the route
layer turns into a response. Each operation validates all of its inputs
before the first write, so a failed call leaves the store untouched.

Per-user password recovery runs:

    forgot_password  -> OTP + expiry stored, OTP emailed
    verify_forgot_password_otp -> OTP cleared, reset window opened
    reset_password   -> password replaced, reset window closed

A newer forgot-password request overwrites any OTP still outstanding.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from config import AppSettings
from errors import (
    AccountInactiveError,
    BadRequestError,
    ConflictError,
    ExpiredError,
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidOtpError,
    NotFoundError,
    NotRegisteredError,
    PasswordMismatchError,
    ResetNotAuthorizedError,
    ValidationError,
)
from infrastructure.email.protocol import EmailProvider
from repositories.user_repository import UserRepository
from schemas.dto.requests.auth import (
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateUserDetailsRequest,
)
from schemas.dto.responses.auth import LoginResponse, LoginUser, UserProfileResponse
from schemas.models.user import UserDoc
from services.token_service import TokenService
from shared.crypto import constant_time_equals, hash_password, verify_password
from shared.datetime_utils import Clock, ensure_utc, utc_now
from shared.generators import generate_otp_code
from shared.logging import get_logger
from shared.validators import (
    is_valid_email,
    missing_fields,
    normalize_email,
    validate_password,
)

log = get_logger(__name__)


def to_profile(user: UserDoc) -> UserProfileResponse:
    """Redacted caller-facing projection of *user*."""
    return UserProfileResponse(
        id=str(user.id),
        name=user.name,
        email=user.email,
        mobile=user.mobile,
        avatar=user.avatar,
        role=user.role,
        status=user.status,
        email_verified=user.email_verified,
        last_login_at=user.last_login_at,
        created_at=user.created_at,
    )


def _check_password_policy(password: str, field: str = "password") -> None:
    problems = validate_password(password)
    if problems:
        raise ValidationError(
            "Password does not meet requirements",
            field=field,
            details={"missing_requirements": problems},
        )


def _require(message: str, **values: Optional[str]) -> None:
    missing = missing_fields(values)
    if missing:
        raise BadRequestError(message, details={"missing": missing})


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        tokens: TokenService,
        email: EmailProvider,
        settings: AppSettings,
        clock: Clock = utc_now,
    ) -> None:
        self._users = users
        self._tokens = tokens
        self._email = email
        self._settings = settings
        self._clock = clock

    # ── registration & login ─────────────────────────────────────────────────

    async def register(self, request: RegisterRequest) -> UserProfileResponse:
        """Create an unverified user and email the verification link.

        Raises:
            BadRequestError: name, email or password missing
            ValidationError: malformed email or password outside policy
            ConflictError: email already registered
        """
        _require(
            "Please provide email, name, and password",
            name=request.name,
            email=request.email,
            password=request.password,
        )
        email = normalize_email(request.email)
        if not is_valid_email(email):
            raise ValidationError("Invalid email address", field="email")
        _check_password_policy(request.password)

        if await self._users.find_by_email(email):
            log.warning("registration_failed", reason="email_exists")
            raise ConflictError("Email already registered", field="email")

        user = await self._users.create(
            UserDoc(
                name=request.name.strip(),
                email=email,
                password_hash=hash_password(request.password),
            )
        )

        verify_url = f"{self._settings.frontend_url}/verify-email?code={user.id}"
        sent = await self._email.send_verification_email(email, user.name, verify_url)
        log.info("user_registered", user_id=str(user.id), verification_sent=sent)
        return to_profile(user)

    async def login(self, request: LoginRequest) -> LoginResponse:
        """Check credentials and issue an access/refresh token pair.

        Raises:
            BadRequestError: email or password missing
            NotRegisteredError: no user with this email
            AccountInactiveError: user status is not Active
            InvalidCredentialsError: password does not match
        """
        _require(
            "Please provide email and password",
            email=request.email,
            password=request.password,
        )
        user = await self._users.find_by_email(request.email)
        if user is None:
            log.warning("login_failed", reason="not_registered")
            raise NotRegisteredError("User not registered")
        if not user.is_active:
            log.warning("login_failed", reason="inactive", user_id=str(user.id))
            raise AccountInactiveError("Account is not active. Please contact admin")
        if not verify_password(request.password, user.password_hash):
            log.warning("login_failed", reason="invalid_password", user_id=str(user.id))
            raise InvalidCredentialsError("Invalid password")

        user_id = str(user.id)
        access_token = self._tokens.issue_access_token(user_id)
        refresh_token = await self._tokens.issue_refresh_token(user_id)
        await self._users.update(user_id, {"last_login_at": self._clock()})

        log.info("login_success", user_id=user_id)
        return LoginResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            user=LoginUser(id=user_id, name=user.name, email=user.email, role=user.role),
        )

    async def logout(self, user_id: str) -> None:
        await self._tokens.revoke_refresh_token(user_id)
        log.info("logout", user_id=user_id)

    async def refresh_access_token(self, refresh_token: Optional[str]) -> str:
        """Exchange a current refresh token for a new access token."""
        user_id = await self._tokens.verify_refresh_token(refresh_token)
        user = await self._users.get_by_id(user_id)
        if not user.is_active:
            raise AccountInactiveError("Account is not active. Please contact admin")
        log.info("token_refreshed", user_id=user_id)
        return self._tokens.issue_access_token(user_id)

    # ── email verification ───────────────────────────────────────────────────

    async def verify_email(self, code: Optional[str]) -> None:
        """Mark the user whose id is *code* as verified. Re-verifying is a no-op."""
        _require("Verification code is required", code=code)
        user = await self._users.find_by_id(code.strip())
        if user is None:
            raise InvalidCodeError("Invalid verification code", field="code")
        if user.email_verified:
            return
        await self._users.update(user.id, {"email_verified": True})
        log.info("email_verified", user_id=str(user.id))

    # ── password recovery ────────────────────────────────────────────────────

    async def forgot_password(self, email: Optional[str]) -> None:
        _require("Email is required", email=email)
        user = await self._users.find_by_email(email)
        if user is None:
            raise NotFoundError("Email not found", field="email")

        otp = generate_otp_code()
        expiry = self._clock() + timedelta(
            seconds=self._settings.otp.forgot_password_otp_ttl_seconds
        )
        await self._users.update(
            user.id,
            {
                "forgot_password_otp": otp,
                "forgot_password_expiry": expiry,
                "password_reset_authorized_until": None,
            },
        )
        sent = await self._email.send_password_reset_email(user.email, user.name, otp)
        log.info("forgot_password_otp_issued", user_id=str(user.id), email_sent=sent)

    async def verify_forgot_password_otp(
        self, email: Optional[str], otp: Optional[str]
    ) -> None:
        """Consume the outstanding OTP and open the password-reset window.

        Raises:
            BadRequestError: email or otp missing
            NotFoundError: unknown email
            InvalidOtpError: no OTP outstanding, or the code does not match
            ExpiredError: the stored OTP is past its expiry
        """
        _require("Email and OTP are required", email=email, otp=otp)
        user = await self._users.find_by_email(email)
        if user is None:
            raise NotFoundError("Email not found", field="email")

        expiry = ensure_utc(user.forgot_password_expiry)
        if not user.forgot_password_otp or expiry is None:
            raise InvalidOtpError("Invalid OTP", field="otp")

        now = self._clock()
        if now > expiry:
            raise ExpiredError("OTP has expired", field="otp")
        if not constant_time_equals(otp.strip(), user.forgot_password_otp):
            log.warning("forgot_password_otp_mismatch", user_id=str(user.id))
            raise InvalidOtpError("Invalid OTP", field="otp")

        window = timedelta(seconds=self._settings.otp.password_reset_window_seconds)
        await self._users.update(
            user.id,
            {
                "forgot_password_otp": None,
                "forgot_password_expiry": None,
                "password_reset_authorized_until": now + window,
            },
        )
        log.info("forgot_password_otp_verified", user_id=str(user.id))

    async def reset_password(self, request: ResetPasswordRequest) -> None:
        """Replace the password after a successful OTP check.

        Also revokes the stored refresh token so other sessions must log in
        again with the new password.

        Raises:
            BadRequestError: any input missing
            PasswordMismatchError: new and confirmation passwords differ
            ValidationError: new password outside policy
            NotFoundError: unknown email
            ResetNotAuthorizedError: OTP not verified, or the window lapsed
        """
        _require(
            "Email, new password, and confirmation are required",
            email=request.email,
            new_password=request.new_password,
            confirm_password=request.confirm_password,
        )
        if request.new_password != request.confirm_password:
            raise PasswordMismatchError(
                "Passwords do not match", field="confirm_password"
            )
        _check_password_policy(request.new_password, field="new_password")

        user = await self._users.find_by_email(request.email)
        if user is None:
            raise NotFoundError("Email not found", field="email")

        if self._settings.otp.require_otp_for_reset:
            authorized_until = ensure_utc(user.password_reset_authorized_until)
            if authorized_until is None or self._clock() > authorized_until:
                raise ResetNotAuthorizedError(
                    "Verify the OTP sent to your email before resetting your password"
                )

        await self._users.update(
            user.id,
            {
                "password_hash": hash_password(request.new_password),
                "password_reset_authorized_until": None,
                "refresh_token": None,
            },
        )
        log.info("password_reset", user_id=str(user.id))

    # ── profile ──────────────────────────────────────────────────────────────

    async def update_user_details(
        self, user_id: str, request: UpdateUserDetailsRequest
    ) -> UserProfileResponse:
        """Write only the fields present in *request*; password is re-hashed."""
        provided = request.provided_fields()
        user = await self._users.get_by_id(user_id)
        if not provided:
            return to_profile(user)

        updates: dict = {}
        if "name" in provided:
            updates["name"] = provided["name"].strip()
        if "mobile" in provided:
            updates["mobile"] = provided["mobile"].strip()
        if "email" in provided:
            email = normalize_email(provided["email"])
            if not is_valid_email(email):
                raise ValidationError("Invalid email address", field="email")
            if email != user.email:
                other = await self._users.find_by_email(email)
                if other is not None and other.id != user.id:
                    raise ConflictError("Email already registered", field="email")
            updates["email"] = email
        if "password" in provided:
            _check_password_policy(provided["password"])
            updates["password_hash"] = hash_password(provided["password"])

        await self._users.update(user.id, updates)
        log.info("user_details_updated", user_id=user_id, fields=sorted(provided))
        return to_profile(await self._users.get_by_id(user.id))

    async def get_user_by_id(self, user_id: str) -> UserProfileResponse:
        return to_profile(await self._users.get_by_id(user_id))

    async def list_users(
        self, page: int = 1, limit: int = 20
    ) -> tuple[list[UserProfileResponse], int]:
        """Return one page of user profiles, newest first, and the total count."""
        page = max(page, 1)
        limit = min(max(limit, 1), 100)
        users = await self._users.list_users(skip=(page - 1) * limit, limit=limit)
        total = await self._users.count_users()
        return [to_profile(u) for u in users], total
