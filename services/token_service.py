"""
Token issuer — access and refresh JWTs.

Access tokens are stateless: signature, issuer, type and expiry are the only
checks. Refresh tokens are signed with a separate secret and the latest one
is persisted on the user record, so logout (or a newer login) invalidates the
previous refresh token server-side.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

import jwt

from config import JWTSettings
from errors import InvalidTokenError
from repositories.user_repository import UserRepository
from shared.crypto import constant_time_equals
from shared.datetime_utils import Clock, utc_now
from shared.logging import get_logger

log = get_logger(__name__)

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


class TokenService:
    def __init__(
        self,
        settings: JWTSettings,
        users: UserRepository,
        clock: Clock = utc_now,
    ) -> None:
        if not settings.access_token_secret or not settings.refresh_token_secret:
            raise RuntimeError(
                "ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must both be set"
            )
        self._settings = settings
        self._users = users
        self._clock = clock

    # ── issuing ──────────────────────────────────────────────────────────────

    def _encode(self, user_id: str, token_type: str, secret: str, ttl: int) -> str:
        now = self._clock()
        claims = {
            "iss": self._settings.jwt_issuer,
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl)).timestamp()),
            "type": token_type,
        }
        return jwt.encode(claims, secret, algorithm=self._settings.jwt_algorithm)

    def issue_access_token(self, user_id: str) -> str:
        return self._encode(
            user_id,
            TOKEN_TYPE_ACCESS,
            self._settings.access_token_secret,
            self._settings.access_token_ttl_seconds,
        )

    async def issue_refresh_token(self, user_id: str) -> str:
        """Sign a refresh token and store it on the user, replacing any prior one."""
        token = self._encode(
            user_id,
            TOKEN_TYPE_REFRESH,
            self._settings.refresh_token_secret,
            self._settings.refresh_token_ttl_seconds,
        )
        await self._users.update(user_id, {"refresh_token": token})
        return token

    async def revoke_refresh_token(self, user_id: str) -> None:
        await self._users.update(user_id, {"refresh_token": None})

    # ── verification ─────────────────────────────────────────────────────────

    def _decode(self, token: Optional[str], secret: str, token_type: str) -> str:
        if not token:
            raise InvalidTokenError("Provide token", details={"reason": "missing"})
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self._settings.jwt_algorithm],
                issuer=self._settings.jwt_issuer,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token has expired", details={"reason": "expired"})
        except jwt.InvalidTokenError as e:
            log.debug("jwt_verification_failed", token_type=token_type, error=str(e))
            raise InvalidTokenError("Invalid token", details={"reason": "invalid"})

        if claims.get("type") != token_type:
            raise InvalidTokenError("Invalid token", details={"reason": "wrong_type"})
        return claims["sub"]

    def verify_access_token(self, token: Optional[str]) -> str:
        """Return the user id carried by a valid access token."""
        return self._decode(
            token, self._settings.access_token_secret, TOKEN_TYPE_ACCESS
        )

    async def verify_refresh_token(self, token: Optional[str]) -> str:
        """Return the user id for a refresh token that is valid *and* current.

        A correctly signed token that no longer matches the stored value
        (rotated by a later login, or cleared by logout) is rejected.
        """
        user_id = self._decode(
            token, self._settings.refresh_token_secret, TOKEN_TYPE_REFRESH
        )
        user = await self._users.find_by_id(user_id)
        if user is None or not constant_time_equals(user.refresh_token, token):
            log.warning("refresh_token_rejected", user_id=user_id, reason="not_current")
            raise InvalidTokenError("Invalid token", details={"reason": "revoked"})
        return user_id
