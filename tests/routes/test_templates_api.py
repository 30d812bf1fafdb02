"""
Endpoint tests for /api/templates and /api/send-email.
"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import USER
from main import app
from mailer.api.endpoints.send_email import get_gmail_service
from mailer.api.endpoints.templates import get_template_service
from mailer.auth.jwt import create_access_token
from mailer.core.config import settings
from mailer.services.email import GmailService


@pytest.fixture
def sent():
    return []


@pytest.fixture
def client(template_service, sent):
    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return httpx.Response(200, json={"id": f"msg-{len(sent)}"})

    gmail = GmailService(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    app.dependency_overrides[get_template_service] = lambda: template_service
    app.dependency_overrides[get_gmail_service] = lambda: gmail
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _auth(email=USER, access_token="gmail-token"):
    token = create_access_token({"email": email, "access_token": access_token})
    return {"Authorization": f"Bearer {token}"}


def _new_template(client, **overrides):
    data = {"name": "Weekly", "subject": "Hi", "body": "<p>Hi</p>", "toEmail": "bob@example.com"}
    data.update(overrides)
    return client.post("/api/templates", json=data, headers=_auth())


class TestAuthentication:
    def test_missing_token_is_unauthorized(self, client):
        response = client.get("/api/templates")

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    def test_garbage_token_is_unauthorized(self, client):
        response = client.get("/api/templates", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_session_cookie_accepted(self, client):
        token = create_access_token({"email": USER})
        client.cookies.set(settings.SESSION_COOKIE_NAME, token)

        response = client.get("/api/templates")

        assert response.status_code == 200


class TestTemplates:
    def test_list_returns_base_rows(self, client):
        response = client.get("/api/templates", headers=_auth())

        assert response.status_code == 200
        templates = response.json()["templates"]
        assert [t["name"] for t in templates] == ["Invoice", "Reminder"]
        assert templates[0]["toEmail"] == "recipient@example.com"

    def test_create_returns_201_and_lists(self, client):
        response = _new_template(client, placeholders="customer, date")

        assert response.status_code == 201
        created = response.json()["template"]
        assert created["owner"] == USER
        assert json.loads(created["placeholders"]) == ["customer", "date"]

        names = [t["name"] for t in client.get("/api/templates", headers=_auth()).json()["templates"]]
        assert names[-1] == "Weekly"

    def test_create_missing_field(self, client):
        response = _new_template(client, subject="")

        assert response.status_code == 400
        assert response.json()["error"] == "missing_fields"

    def test_create_wrong_type_is_missing_fields(self, client):
        response = client.post("/api/templates", json={"name": ["x"]}, headers=_auth())

        assert response.status_code == 400
        assert response.json()["error"] == "missing_fields"

    def test_get_single_template(self, client):
        response = client.get("/api/templates/2", headers=_auth())

        assert response.status_code == 200
        assert response.json()["template"]["name"] == "Reminder"
        assert client.get("/api/templates/99", headers=_auth()).status_code == 404

    def test_patch_colour(self, client):
        created = _new_template(client).json()["template"]

        response = client.patch(
            "/api/templates", json={"id": str(created["id"]), "color": "teal"}, headers=_auth()
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        colors = {t["id"]: t["color"] for t in client.get("/api/templates", headers=_auth()).json()["templates"]}
        assert colors[created["id"]] == "teal"

    def test_patch_invalid_id(self, client):
        response = client.patch("/api/templates", json={"id": "abc", "color": "teal"}, headers=_auth())

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_id"

    def test_patch_unknown_id(self, client):
        response = client.patch("/api/templates", json={"id": 12345, "color": "teal"}, headers=_auth())

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_delete_with_confirmation(self, client):
        created = _new_template(client).json()["template"]

        mismatch = client.request(
            "DELETE", "/api/templates", json={"id": created["id"], "confirmName": "weekly"}, headers=_auth()
        )
        assert mismatch.status_code == 400
        assert mismatch.json()["error"] == "confirm_mismatch"

        response = client.request(
            "DELETE", "/api/templates", json={"id": created["id"], "confirmName": "Weekly"}, headers=_auth()
        )
        assert response.status_code == 200
        names = [t["name"] for t in client.get("/api/templates", headers=_auth()).json()["templates"]]
        assert "Weekly" not in names

    def test_delete_ignores_non_string_confirmation(self, client):
        created = _new_template(client).json()["template"]

        response = client.request(
            "DELETE", "/api/templates", json={"id": created["id"], "confirmName": 42}, headers=_auth()
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_delete_base_row_not_found(self, client):
        response = client.request("DELETE", "/api/templates", json={"id": 1}, headers=_auth())

        assert response.status_code == 404


class TestSendEmail:
    def test_requires_gmail_token(self, client, sent):
        response = client.post(
            "/api/send-email",
            json={"to": "bob@example.com", "subject": "Hi", "body": "<p>Hi</p>"},
            headers=_auth(access_token=None),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "no_token"
        assert sent == []

    def test_template_send_requires_gmail_token(self, client, sent):
        response = client.post("/api/send-email", json={"templateId": 2}, headers=_auth(access_token=None))

        assert response.status_code == 400
        assert response.json()["error"] == "no_token"
        assert sent == []

    def test_raw_message(self, client, sent):
        response = client.post(
            "/api/send-email",
            json={"to": "bob@example.com", "subject": "Hi", "body": "<p>Hi</p>"},
            headers=_auth(),
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True, "id": "msg-1"}
        assert len(sent) == 1

    def test_by_template_id(self, client, sent):
        response = client.post(
            "/api/send-email", json={"templateId": 2, "values": {"customer": "Ann"}}, headers=_auth()
        )

        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert "raw" in sent[0]

    def test_unknown_template(self, client, sent):
        response = client.post("/api/send-email", json={"templateId": 77}, headers=_auth())

        assert response.status_code == 404
        assert sent == []
