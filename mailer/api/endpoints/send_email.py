"""Email sending endpoint."""

from typing import Dict
from fastapi import APIRouter, Depends

from mailer.api.endpoints.templates import get_template_service
from mailer.auth.permissions import get_current_user, get_user_identity
from mailer.schemas.template import SendEmailRequest, SendEmailResponse
from mailer.services.email import GmailService
from mailer.services.template import TemplateService

router = APIRouter()


def get_gmail_service() -> GmailService:
    """Get Gmail service dependency."""
    return GmailService()


@router.post("", response_model=SendEmailResponse, summary="Send email")
async def send_email(
    send_data: SendEmailRequest,
    current_user: Dict = Depends(get_current_user),
    template_service: TemplateService = Depends(get_template_service),
    gmail: GmailService = Depends(get_gmail_service)
):
    """
    Send an email as the signed-in user.

    With ``templateId`` the template is rendered with ``values`` and sent to
    its recipient; otherwise ``to``, ``subject`` and ``body`` are sent as-is.
    """
    access_token = current_user.get("access_token")

    if send_data.template_id is not None:
        found = await template_service.get_template(get_user_identity(current_user), send_data.template_id)
        return await gmail.render_and_send(access_token, found.template, send_data.values)

    message_id = await gmail.send(access_token, send_data.to, send_data.subject, send_data.body)
    return SendEmailResponse(ok=True, id=message_id)
