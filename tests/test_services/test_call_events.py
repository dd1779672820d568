import json

import pytest
import respx
from httpx import Response

from app.mappers.response_builder import CallAction
from app.schemas.telnyx import TelnyxCallEvent
from app.services.call_events import CallEventService
from app.services.sendgrid import MAIL_SEND_URL
from app.services.telnyx import CALLS_URL, MESSAGES_URL, TelnyxService

CALL_ID = "v3:call-1"
CALLER = "+13135550199"


def _event(event_type: str, **payload) -> TelnyxCallEvent:
    return TelnyxCallEvent.model_validate(
        {
            "id": "evt-1",
            "event_type": event_type,
            "payload": {"call_control_id": CALL_ID, "from": CALLER, "to": "+15550009999", **payload},
        }
    )


@pytest.fixture
def telnyx(http_client):
    return TelnyxService(http_client, "key", "+15550009999", connection_id="conn-1")


@pytest.fixture
def events(telnyx, receptionist):
    return CallEventService(telnyx, receptionist)


@pytest.fixture
def actions():
    with respx.mock(assert_all_called=False) as mock:
        mock.post(MESSAGES_URL).mock(return_value=Response(200, json={"data": {"id": "msg-1"}}))
        mock.post(MAIL_SEND_URL).mock(return_value=Response(202))
        route = mock.post(url__startswith=f"{CALLS_URL}/{CALL_ID}/actions/").mock(
            return_value=Response(200, json={"data": {"result": "ok"}})
        )
        yield route


def _action_names(route) -> list[str]:
    return [call.request.url.path.rsplit("/", 1)[-1] for call in route.calls]


async def test_incoming_call_is_answered(events, actions):
    outcome = await events.handle(_event("call.initiated", direction="incoming"))

    assert outcome == "answered"
    assert _action_names(actions) == ["answer"]


async def test_outgoing_call_is_ignored(events, actions):
    outcome = await events.handle(_event("call.initiated", direction="outgoing"))

    assert outcome == "ignored"
    assert not actions.called


async def test_answered_call_is_greeted(events, actions):
    outcome = await events.handle(_event("call.answered"))

    assert outcome == "greeted"
    assert _action_names(actions) == ["gather_using_ai"]
    sent = json.loads(actions.calls[0].request.content)
    assert "Smile Dental" in sent["greeting"]


async def test_answered_call_starts_assistant_when_configured(http_client, receptionist, actions):
    telnyx = TelnyxService(http_client, "key", "+15550009999", ai_assistant_id="assistant-1")
    events = CallEventService(telnyx, receptionist)

    outcome = await events.handle(_event("call.answered"))

    assert outcome == "assistant_started"
    assert _action_names(actions) == ["ai_assistant_start"]
    assert json.loads(actions.calls[0].request.content) == {"assistant": {"id": "assistant-1"}}


async def test_gather_result_runs_turn(events, actions, state_store, dispatcher):
    outcome = await events.handle(
        _event("call.ai_gather.ended", result={"utterance": "I have severe pain and bleeding"})
    )
    await dispatcher.drain()

    assert outcome == CallAction.start_emergency_intake
    assert _action_names(actions) == ["gather_using_ai"]
    assert (await state_store.load_state(CALL_ID)).collected_info.name is None


async def test_hangup_finishes_call(events, actions, dispatcher):
    await events.handle(
        _event("call.ai_gather.ended", result={"utterance": "I want to book a cleaning"})
    )

    outcome = await events.handle(_event("call.hangup", hangup_cause="normal_clearing"))
    await dispatcher.drain()

    assert outcome == "dispatched"


async def test_unknown_event_is_ignored(events, actions):
    assert await events.handle(_event("call.bridged")) == "ignored"
    assert not actions.called


async def test_event_without_call_id_is_ignored(events):
    event = TelnyxCallEvent.model_validate({"event_type": "call.answered", "payload": {}})

    assert await events.handle(event) == "ignored"
