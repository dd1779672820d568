import json

import httpx
import pytest
import respx
from httpx import Response

from app.exceptions.custom import RateLimitError, TelnyxError
from app.mappers.call_control import build_instructions
from app.mappers.response_builder import CallAction
from app.services.telnyx import CALLS_URL, CONFERENCES_URL, MESSAGES_URL, TelnyxService

CALL_ID = "v3:call-1"


def _service(client, **kwargs) -> TelnyxService:
    return TelnyxService(client, "key", "+15550009999", connection_id="conn-1", **kwargs)


@respx.mock
async def test_send_sms_success():
    route = respx.post(MESSAGES_URL).mock(
        return_value=Response(200, json={"data": {"id": "msg-1", "to": [{"phone_number": "+13135550199"}]}})
    )

    async with httpx.AsyncClient() as client:
        message = await _service(client, messaging_profile_id="prof-1").send_sms("+13135550199", "hello")

    assert message.id == "msg-1"
    sent = json.loads(route.calls[0].request.content)
    assert sent == {
        "from": "+15550009999",
        "to": "+13135550199",
        "text": "hello",
        "messaging_profile_id": "prof-1",
    }
    assert route.calls[0].request.headers["Authorization"] == "Bearer key"


@respx.mock
async def test_send_sms_rate_limit():
    respx.post(MESSAGES_URL).mock(return_value=Response(429))

    async with httpx.AsyncClient() as client:
        with pytest.raises(RateLimitError):
            await _service(client).send_sms("+13135550199", "hello")


@respx.mock
async def test_send_sms_error():
    respx.post(MESSAGES_URL).mock(return_value=Response(422, text="invalid number"))

    async with httpx.AsyncClient() as client:
        with pytest.raises(TelnyxError) as exc_info:
            await _service(client).send_sms("bad", "hello")

    assert exc_info.value.status_code == 422
    assert "invalid number" in exc_info.value.message


@respx.mock
async def test_answer_and_hangup():
    answer = respx.post(f"{CALLS_URL}/{CALL_ID}/actions/answer").mock(return_value=Response(200, json={"data": {}}))
    hangup = respx.post(f"{CALLS_URL}/{CALL_ID}/actions/hangup").mock(return_value=Response(200, json={"data": {}}))

    async with httpx.AsyncClient() as client:
        service = _service(client)
        await service.answer_call(CALL_ID)
        await service.hangup(CALL_ID)

    assert answer.called
    assert hangup.called


@respx.mock
async def test_gather_sends_utterance_schema():
    route = respx.post(f"{CALLS_URL}/{CALL_ID}/actions/gather_using_ai").mock(
        return_value=Response(200, json={"data": {"result": "ok"}})
    )

    async with httpx.AsyncClient() as client:
        await _service(client).gather(CALL_ID, "How can I help?", 10000)

    body = json.loads(route.calls[0].request.content)
    assert body["greeting"] == "How can I help?"
    assert body["parameters"]["required"] == ["utterance"]
    assert body["user_response_timeout_ms"] == 10000


@respx.mock
async def test_start_ai_assistant_uses_configured_id():
    route = respx.post(f"{CALLS_URL}/{CALL_ID}/actions/ai_assistant_start").mock(
        return_value=Response(200, json={"data": {}})
    )

    async with httpx.AsyncClient() as client:
        service = _service(client, ai_assistant_id="assistant-42")
        assert service.has_ai_assistant
        await service.start_ai_assistant(CALL_ID)

    assert json.loads(route.calls[0].request.content) == {"assistant": {"id": "assistant-42"}}


async def test_start_ai_assistant_requires_id():
    async with httpx.AsyncClient() as client:
        service = _service(client)
        with pytest.raises(TelnyxError):
            await service.start_ai_assistant(CALL_ID)


@respx.mock
async def test_execute_transfer_instructions():
    speak = respx.post(f"{CALLS_URL}/{CALL_ID}/actions/speak").mock(return_value=Response(200, json={"data": {}}))
    transfer = respx.post(f"{CALLS_URL}/{CALL_ID}/actions/transfer").mock(
        return_value=Response(200, json={"data": {}})
    )
    instructions = build_instructions(
        CallAction.connect_emergency_doctor,
        "Connecting you.",
        call_id=CALL_ID,
        doctor_phone="+15550001111",
        transfers_enabled=True,
    )

    async with httpx.AsyncClient() as client:
        await _service(client).execute(CALL_ID, instructions)

    assert json.loads(speak.calls[0].request.content)["payload"] == "Connecting you."
    assert json.loads(transfer.calls[0].request.content) == {"to": "+15550001111", "from": "+15550009999"}


@respx.mock
async def test_execute_conference_instructions():
    respx.post(f"{CALLS_URL}/{CALL_ID}/actions/speak").mock(return_value=Response(200, json={"data": {}}))
    conference = respx.post(CONFERENCES_URL).mock(
        return_value=Response(200, json={"data": {"id": "conf-1", "name": "emergency-x"}})
    )
    dial = respx.post(CALLS_URL).mock(
        return_value=Response(200, json={"data": {"call_control_id": "v3:doctor-leg"}})
    )
    instructions = build_instructions(
        CallAction.connect_emergency_doctor,
        "Connecting you.",
        call_id=CALL_ID,
        doctor_phone="+15550001111",
        conference_enabled=True,
    )

    async with httpx.AsyncClient() as client:
        await _service(client).execute(CALL_ID, instructions)

    conf_body = json.loads(conference.calls[0].request.content)
    assert conf_body["call_control_id"] == CALL_ID
    assert conf_body["name"] == f"emergency-{CALL_ID}"
    dial_body = json.loads(dial.calls[0].request.content)
    assert dial_body["to"] == "+15550001111"
    assert dial_body["connection_id"] == "conn-1"
    assert dial_body["conference_config"] == {"id": "conf-1"}


@respx.mock
async def test_join_conference():
    route = respx.post(f"{CONFERENCES_URL}/conf-1/actions/join").mock(return_value=Response(200, json={"data": {}}))

    async with httpx.AsyncClient() as client:
        await _service(client).join_conference("conf-1", "v3:other")

    assert json.loads(route.calls[0].request.content) == {"call_control_id": "v3:other"}


@respx.mock
async def test_call_action_error_raises():
    respx.post(f"{CALLS_URL}/{CALL_ID}/actions/speak").mock(return_value=Response(422, text="call ended"))

    async with httpx.AsyncClient() as client:
        with pytest.raises(TelnyxError):
            await _service(client).speak(CALL_ID, "hi")
