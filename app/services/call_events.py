import logging

from app.schemas.telnyx import TelnyxCallEvent
from app.services.receptionist import ReceptionistService
from app.services.telnyx import TelnyxService

logger = logging.getLogger(__name__)


class CallEventService:
    """Drives a live Telnyx call from its Call Control webhooks."""

    def __init__(self, telnyx: TelnyxService, receptionist: ReceptionistService):
        self._telnyx = telnyx
        self._receptionist = receptionist

    async def handle(self, event: TelnyxCallEvent) -> str:
        payload = event.payload
        call_id = payload.call_control_id
        if not call_id:
            logger.warning("Call event %s without call_control_id", event.event_type)
            return "ignored"

        event_type = event.event_type
        if event_type == "call.initiated":
            if payload.direction != "incoming":
                return "ignored"
            await self._telnyx.answer_call(call_id)
            return "answered"

        if event_type == "call.answered":
            if self._telnyx.has_ai_assistant:
                await self._telnyx.start_ai_assistant(call_id)
                return "assistant_started"
            await self._telnyx.execute(call_id, self._receptionist.greet())
            return "greeted"

        if event_type == "call.ai_gather.ended":
            utterance = (payload.result or {}).get("utterance")
            turn = await self._receptionist.process_utterance(call_id, payload.from_, utterance)
            await self._telnyx.execute(call_id, turn.instructions)
            return turn.instructions.action

        if event_type == "call.hangup":
            result = await self._receptionist.finish_call(call_id, payload.from_)
            return result.outcome

        logger.debug("Ignoring call event %s", event_type)
        return "ignored"
