"""Resend implementation of EmailProvider.

Sends through the Resend HTTP API using the shared async HttpClient.
HTML bodies are rendered from the Jinja2 templates shipped next to this
module in templates/. Rendering and delivery failures are logged and
reported as False; nothing is retried and nothing is raised to the calling
service.
"""

import os
from typing import Any, Optional

import httpx
from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from config import EmailSettings
from infrastructure.http_client import HttpClient
from shared.logging import get_logger

log = get_logger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_DEFAULT_TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")


class ResendEmailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: HttpClient,
        app_name: str = "QuickPick",
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_name = app_name
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    async def send_email(self, to_email: str, subject: str, html_body: str) -> bool:
        if not self._settings.resend_api_key:
            log.error("email_send_failed", reason="api_key_not_configured")
            return False

        payload = {
            "from": self._settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_body,
        }
        headers = {"Authorization": f"Bearer {self._settings.resend_api_key}"}

        try:
            response = await self._http.post(
                _RESEND_API_URL, json=payload, headers=headers
            )
        except httpx.HTTPError as e:
            log.error(
                "email_send_error",
                to_email=to_email,
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if response.status_code in (200, 201, 202):
            log.info("email_sent_success", to_email=to_email, subject=subject)
            return True
        log.error(
            "email_send_failed",
            to_email=to_email,
            subject=subject,
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False

    def _render(self, template_name: str, **context: Any) -> Optional[str]:
        try:
            return self._jinja.get_template(template_name).render(
                app_name=self._app_name, **context
            )
        except TemplateError as e:
            log.error(
                "email_render_failed",
                template=template_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def send_verification_email(
        self, email: str, user_name: Optional[str], verify_url: str
    ) -> bool:
        html_body = self._render("verify_email.html", name=user_name, url=verify_url)
        if html_body is None:
            return False
        subject = f"Verify email from {self._app_name}"
        return await self.send_email(email, subject, html_body)

    async def send_password_reset_email(
        self, email: str, user_name: Optional[str], otp_code: str
    ) -> bool:
        html_body = self._render("forgot_password.html", name=user_name, otp=otp_code)
        if html_body is None:
            return False
        subject = f"Forgot password from {self._app_name}"
        return await self.send_email(email, subject, html_body)
