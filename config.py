"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

AppSettings is built once at process start (create_app) and handed to the
token service, auth service and email provider by reference. Nothing below
the app factory reads os.environ directly.
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "quickpick"


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Access and refresh tokens are signed with different secrets so a leaked
    # refresh secret cannot mint access tokens and vice versa.
    access_token_secret: str = ""
    refresh_token_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "quickpick"

    access_token_ttl_seconds: int = 18000  # 5 hours
    refresh_token_ttl_seconds: int = 604800  # 7 days

    cookie_secure: bool = True
    cookie_samesite: str = "none"

    @model_validator(mode="after")
    def _secrets_must_differ(self) -> "JWTSettings":
        if (
            self.access_token_secret
            and self.access_token_secret == self.refresh_token_secret
        ):
            raise ValueError(
                "ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be different"
            )
        return self


class OtpSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    forgot_password_otp_ttl_seconds: int = 3600  # 1 hour
    # Window after a successful OTP check during which reset-password is allowed
    password_reset_window_seconds: int = 900
    require_otp_for_reset: bool = True


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    resend_api_key: str = ""
    email_from: str = "QuickPick <noreply@quickpick.app>"
    email_timeout_seconds: float = 5.0


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_name: str = "QuickPick"
    frontend_url: str = "http://localhost:5173"

    # The React client sends cookies cross-origin, so origins must be explicit
    cors_origins: list[str] = ["http://localhost:5173"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    jwt: Optional[JWTSettings] = None
    otp: Optional[OtpSettings] = None
    email: Optional[EmailSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.db is None:
            self.db = DatabaseSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.otp is None:
            self.otp = OtpSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        self.frontend_url = self.frontend_url.rstrip("/")
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
