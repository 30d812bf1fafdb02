"""Email service: placeholder rendering and delivery through the Gmail API."""

import base64
import logging
import re
from email.header import Header
from email.mime.text import MIMEText
from typing import Dict, Optional

import httpx

from mailer.core.config import settings
from mailer.core.exceptions import SendError, ValidationError
from mailer.schemas.template import SendEmailResponse, Template
from mailer.utils.logging import mask_email
from mailer.utils.validators import is_blank, parse_placeholders

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def render_placeholders(text: str, values: Dict[str, str]) -> str:
    """Replace ``{{name}}`` markers; names without a value become empty."""
    def replace_func(match):
        return values.get(match.group(1)) or ""

    return PLACEHOLDER_PATTERN.sub(replace_func, text)


def render_template(template: Template, values: Dict[str, str]) -> Dict[str, str]:
    """
    Render subject and body of a template.

    Templates that declare no placeholders are sent verbatim, so literal
    ``{{...}}`` text in them is left alone.
    """
    if not parse_placeholders(template.placeholders):
        return {"subject": template.subject, "body": template.body}
    return {
        "subject": render_placeholders(template.subject, values),
        "body": render_placeholders(template.body, values),
    }


def build_raw_message(to: str, subject: str, html_body: str, sender_name: Optional[str] = None) -> str:
    """Build a base64url encoded RFC 2822 HTML message as the Gmail API expects."""
    message = MIMEText(html_body, "html", "utf-8")
    message["From"] = f"{sender_name or settings.EMAIL_SENDER_NAME} <me>"
    message["To"] = to
    message["Subject"] = Header(subject, "utf-8").encode()
    raw = base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")
    return raw.rstrip("=")


class GmailService:
    """Sends mail as the signed-in user with their OAuth access token."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.base_url = settings.GMAIL_API_BASE_URL.rstrip("/")
        self.timeout = settings.GMAIL_TIMEOUT_SECONDS
        self._client = client

    async def send(self, access_token: Optional[str], to: str, subject: str, html_body: str) -> str:
        """Submit a message and return its Gmail id."""
        if not access_token:
            raise ValidationError("No mail access token in session", error="no_token")
        if is_blank(to) or is_blank(subject) or is_blank(html_body):
            raise ValidationError("Recipient, subject and body are required")

        raw = build_raw_message(to, subject, html_body)
        url = f"{self.base_url}/users/me/messages/send"
        headers = {"Authorization": f"Bearer {access_token}"}

        logger.info(f"Sending email to {mask_email(to)}")
        try:
            if self._client is not None:
                response = await self._client.post(url, json={"raw": raw}, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json={"raw": raw}, headers=headers)
        except httpx.TimeoutException:
            logger.error(f"Gmail send to {mask_email(to)} timed out")
            raise SendError("send_timeout")
        except httpx.HTTPError as e:
            logger.error(f"Gmail send HTTP error: {e}")
            raise SendError(str(e) or "send_failed")

        if response.is_error:
            message = self._error_message(response)
            logger.error(f"Gmail send to {mask_email(to)} failed ({response.status_code}): {message}")
            raise SendError(message)

        message_id = response.json().get("id")
        logger.info(f"Email sent to {mask_email(to)}, id {message_id}")
        return message_id

    async def render_and_send(self, access_token: Optional[str], template: Template,
                              values: Dict[str, str]) -> SendEmailResponse:
        """Render a template with placeholder values and send it to its recipient."""
        rendered = render_template(template, values)
        message_id = await self.send(access_token, template.to_email, rendered["subject"], rendered["body"])
        return SendEmailResponse(ok=True, id=message_id)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            error = response.json().get("error")
        except ValueError:
            return response.text or "send_failed"
        if isinstance(error, dict):
            return error.get("message") or "send_failed"
        return str(error or "send_failed")
