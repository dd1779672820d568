import json

import httpx
import pytest
import respx
from httpx import Response

from app.exceptions.custom import RateLimitError, SendGridError
from app.services.sendgrid import MAIL_SEND_URL, SendGridService


@respx.mock
async def test_send_email_success():
    route = respx.post(MAIL_SEND_URL).mock(
        return_value=Response(202, headers={"X-Message-Id": "sg-123"})
    )

    async with httpx.AsyncClient() as client:
        service = SendGridService(client, "sg-key", "frontdesk@example.com", "AI Front Desk")
        message_id = await service.send_email("staff@example.com", "Subject", "body", "<p>body</p>")

    assert message_id == "sg-123"
    body = json.loads(route.calls[0].request.content)
    assert body["personalizations"] == [{"to": [{"email": "staff@example.com"}]}]
    assert body["from"] == {"email": "frontdesk@example.com", "name": "AI Front Desk"}
    assert body["content"] == [
        {"type": "text/plain", "value": "body"},
        {"type": "text/html", "value": "<p>body</p>"},
    ]
    assert route.calls[0].request.headers["Authorization"] == "Bearer sg-key"


@respx.mock
async def test_send_email_text_only():
    route = respx.post(MAIL_SEND_URL).mock(return_value=Response(202))

    async with httpx.AsyncClient() as client:
        service = SendGridService(client, "sg-key", "frontdesk@example.com")
        message_id = await service.send_email("staff@example.com", "Subject", "body")

    assert message_id is None
    body = json.loads(route.calls[0].request.content)
    assert body["from"] == {"email": "frontdesk@example.com"}
    assert len(body["content"]) == 1


@respx.mock
async def test_send_email_rate_limit():
    respx.post(MAIL_SEND_URL).mock(return_value=Response(429))

    async with httpx.AsyncClient() as client:
        service = SendGridService(client, "sg-key", "frontdesk@example.com")
        with pytest.raises(RateLimitError):
            await service.send_email("staff@example.com", "Subject", "body")


@respx.mock
async def test_send_email_error():
    respx.post(MAIL_SEND_URL).mock(return_value=Response(401, text="unauthorized"))

    async with httpx.AsyncClient() as client:
        service = SendGridService(client, "bad", "frontdesk@example.com")
        with pytest.raises(SendGridError) as exc_info:
            await service.send_email("staff@example.com", "Subject", "body")

    assert exc_info.value.status_code == 401
