"""Tests for placeholder rendering and the Gmail client."""

import base64
import json
from email import message_from_bytes
from email.header import decode_header, make_header

import httpx
import pytest

from conftest import make_template
from mailer.core.exceptions import SendError, ValidationError
from mailer.services.email import (
    GmailService,
    build_raw_message,
    render_placeholders,
    render_template,
)


def _decode_raw(raw: str):
    padded = raw + "=" * (-len(raw) % 4)
    return message_from_bytes(base64.urlsafe_b64decode(padded))


def _gmail(handler) -> GmailService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GmailService(client=client)


def test_render_placeholders_fills_and_blanks_missing():
    text = "Dear {{name}}, invoice {{number}} is due {{ date }}"

    rendered = render_placeholders(text, {"name": "Ann"})

    assert rendered == "Dear Ann, invoice  is due {{ date }}"


def test_render_template_without_placeholders_is_verbatim():
    template = make_template(1, subject="Hi {{name}}", body="{{name}}")

    assert render_template(template, {"name": "Ann"}) == {"subject": "Hi {{name}}", "body": "{{name}}"}


def test_render_template_with_placeholders():
    template = make_template(1, subject="Hi {{name}}", body="<b>{{name}}</b>", placeholders='["name"]')

    assert render_template(template, {"name": "Ann"}) == {"subject": "Hi Ann", "body": "<b>Ann</b>"}


def test_build_raw_message_is_unpadded_base64url_html():
    raw = build_raw_message("bob@example.com", "Fattura è pronta", "<p>Ciao</p>")

    assert "=" not in raw and "+" not in raw and "/" not in raw
    message = _decode_raw(raw)
    assert message["To"] == "bob@example.com"
    assert str(make_header(decode_header(message["Subject"]))) == "Fattura è pronta"
    assert message.get_content_type() == "text/html"
    assert message.get_payload(decode=True).decode("utf-8") == "<p>Ciao</p>"


async def test_send_posts_raw_message_with_bearer_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "msg-1", "threadId": "t-1"})

    message_id = await _gmail(handler).send("token-123", "bob@example.com", "Hi", "<p>Hi</p>")

    assert message_id == "msg-1"
    assert seen["url"].endswith("/users/me/messages/send")
    assert seen["auth"] == "Bearer token-123"
    assert _decode_raw(seen["body"]["raw"])["To"] == "bob@example.com"


async def test_send_surfaces_api_error_message():
    def handler(request):
        return httpx.Response(401, json={"error": {"code": 401, "message": "Invalid Credentials"}})

    with pytest.raises(SendError) as exc_info:
        await _gmail(handler).send("expired", "bob@example.com", "Hi", "<p>Hi</p>")

    assert exc_info.value.error == "Invalid Credentials"


async def test_send_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    with pytest.raises(SendError):
        await _gmail(handler).send("token", "bob@example.com", "Hi", "<p>Hi</p>")


async def test_send_requires_token_and_fields():
    gmail = _gmail(lambda request: httpx.Response(200, json={"id": "x"}))

    with pytest.raises(ValidationError) as exc_info:
        await gmail.send(None, "bob@example.com", "Hi", "Body")
    assert exc_info.value.error == "no_token"

    with pytest.raises(ValidationError):
        await gmail.send("token", "", "Hi", "Body")


async def test_render_and_send_uses_template_recipient():
    seen = {}

    def handler(request):
        seen["message"] = _decode_raw(json.loads(request.content)["raw"])
        return httpx.Response(200, json={"id": "msg-2"})

    template = make_template(
        1, subject="Order {{order}}", body="<p>{{order}}</p>",
        placeholders='["order"]', toEmail="shop@example.com",
    )

    response = await _gmail(handler).render_and_send("token", template, {"order": "A7"})

    assert response.id == "msg-2"
    assert seen["message"]["To"] == "shop@example.com"
    assert seen["message"].get_payload(decode=True).decode("utf-8") == "<p>A7</p>"
