"""Tests for notifications.mailer using respx to mock Mailgun."""

import pytest
import respx
from httpx import Response

from config import settings
from notifications import mailer

MESSAGES_URL = "https://api.mailgun.net/v3/mg.example.com/messages"


@pytest.fixture
def mailgun(monkeypatch):
    monkeypatch.setattr(settings, "mailgun_domain", "mg.example.com")
    monkeypatch.setenv("MAILGUN_API_KEY", "key-test")


async def _send():
    return await mailer.send_document("buyer@example.com", "nnn_agreement", "nnn_ab12cd34.pdf", b"%PDF-1.4")


class TestSendDocument:
    async def test_skipped_when_not_configured(self):
        with respx.mock:
            route = respx.post(MESSAGES_URL)
            assert await _send() is False
        assert not route.called

    async def test_sends_with_attachment(self, mailgun):
        with respx.mock:
            route = respx.post(MESSAGES_URL).mock(return_value=Response(200, json={"id": "<1@mg>"}))
            assert await _send() is True
        request = route.calls[0].request
        body = request.content
        assert b"buyer@example.com" in body
        assert b"Your NNN Agreement is Ready" in body
        assert b'filename="nnn_ab12cd34.pdf"' in body
        assert request.headers["authorization"].startswith("Basic ")

    async def test_internal_copy(self, mailgun, monkeypatch):
        monkeypatch.setattr(settings, "internal_email", "ops@example.com")
        with respx.mock:
            route = respx.post(MESSAGES_URL).mock(return_value=Response(200, json={}))
            assert await _send() is True
        assert route.call_count == 2
        assert b"New NNN Agreement Generated" in route.calls[1].request.content

    async def test_failure_returns_false(self, mailgun):
        with respx.mock:
            respx.post(MESSAGES_URL).mock(return_value=Response(401, text="Forbidden"))
            assert await _send() is False
