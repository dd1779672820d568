import asyncio

import respx
from httpx import AsyncClient, Response

from app.main import app
from app.services.sendgrid import MAIL_SEND_URL
from app.services.telnyx import MESSAGES_URL

CALLER = "+13135550199"


def _mock_providers():
    sms = respx.post(MESSAGES_URL).mock(return_value=Response(200, json={"data": {"id": "msg-1"}}))
    email = respx.post(MAIL_SEND_URL).mock(return_value=Response(202, headers={"X-Message-Id": "sg-1"}))
    return sms, email


async def wait_for_job(client: AsyncClient, job_id: str, timeout: float = 5.0) -> dict:
    """Poll GET /jobs/{id} until the job finishes."""
    deadline = asyncio.get_event_loop().time() + timeout
    while asyncio.get_event_loop().time() < deadline:
        resp = await client.get(f"/jobs/{job_id}")
        assert resp.status_code == 200
        job = resp.json()
        if job["status"] in ("completed", "failed"):
            return job
        await asyncio.sleep(0.05)

    raise TimeoutError(f"Job {job_id} did not complete within {timeout}s")


@respx.mock
async def test_turn_without_state_starts_conversation(client):
    _mock_providers()

    resp = await client.post(
        "/receptionist/turn",
        json={"call_id": "c1", "caller_phone": CALLER, "utterance": "What are your hours?"},
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["classification"]["type"] == "non_emergency"
    assert data["state"]["mode"] == "none"
    assert data["state"]["transcript"] == ["What are your hours?"]
    assert data["fallback"] is False


@respx.mock
async def test_emergency_intake_with_echoed_state(client):
    sms, email = _mock_providers()

    first = await client.post(
        "/receptionist/turn",
        json={"call_id": "c2", "caller_phone": CALLER, "utterance": "My tooth was knocked out and it is bleeding"},
    )
    state = first.json()["state"]
    assert state["mode"] == "emergency_intake"

    for utterance in ["Maria Garcia", "313 555 0199", "fell off my bike"]:
        resp = await client.post(
            "/receptionist/turn",
            json={"call_id": "c2", "caller_phone": CALLER, "utterance": utterance, "state": state},
        )
        state = resp.json()["state"]

    await app.state.dispatcher.drain()

    data = resp.json()
    assert data["intake_completed"] is True
    assert email.call_count == 1
    assert data["instructions"]["action"] == "connect_emergency_doctor"
    assert state["collected_info"]["name"] == "Maria Garcia"
    assert state["collected_info"]["phone"] == "3135550199"


@respx.mock
async def test_hangup_dispatches_case(client):
    _, email = _mock_providers()
    turn = await client.post(
        "/receptionist/turn",
        json={"call_id": "c3", "caller_phone": CALLER, "utterance": "I need to cancel my appointment"},
    )

    resp = await client.post(
        "/receptionist/hangup",
        json={"call_id": "c3", "caller_phone": CALLER, "state": turn.json()["state"]},
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["outcome"] == "dispatched"
    job = await wait_for_job(client, data["job_id"])
    assert job["status"] == "completed"
    assert job["task_type"] == "case_dispatch"
    assert job["result"]["classification"] == "non_emergency"
    assert email.call_count == 1

    again = await client.post(
        "/receptionist/hangup",
        json={"call_id": "c3", "caller_phone": CALLER, "state": turn.json()["state"]},
    )
    assert again.json()["outcome"] == "already_dispatched"


async def test_hangup_without_state(client):
    resp = await client.post("/receptionist/hangup", json={"call_id": "c4"})

    assert resp.status_code == 200
    assert resp.json()["outcome"] == "no_action"


async def test_turn_requires_call_id(client):
    resp = await client.post("/receptionist/turn", json={"utterance": "hello"})

    assert resp.status_code == 422
