import logging

import httpx

from app.exceptions.custom import RateLimitError, TelnyxError
from app.schemas.call_control import CallCommand, CallInstructions
from app.schemas.telnyx import SentMessage

logger = logging.getLogger(__name__)

API_URL = "https://api.telnyx.com/v2"
MESSAGES_URL = f"{API_URL}/messages"
CALLS_URL = f"{API_URL}/calls"
CONFERENCES_URL = f"{API_URL}/conferences"

UTTERANCE_SCHEMA = {
    "type": "object",
    "properties": {
        "utterance": {
            "type": "string",
            "description": "Everything the caller said in reply, verbatim",
        },
    },
    "required": ["utterance"],
}


class TelnyxService:
    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        phone_number: str,
        connection_id: str = "",
        messaging_profile_id: str = "",
        ai_assistant_id: str = "",
        voice: str = "female",
    ):
        self._client = client
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._phone_number = phone_number
        self._connection_id = connection_id
        self._messaging_profile_id = messaging_profile_id
        self._ai_assistant_id = ai_assistant_id
        self._voice = voice

    @property
    def has_ai_assistant(self) -> bool:
        return bool(self._ai_assistant_id)

    async def _post(self, url: str, payload: dict) -> dict:
        resp = await self._client.post(url, json=payload, headers=self._headers)

        if resp.status_code == 429:
            raise RateLimitError("Telnyx")
        if resp.status_code >= 400:
            raise TelnyxError(resp.text, status_code=resp.status_code)

        if not resp.content:
            return {}
        return resp.json().get("data") or {}

    async def _call_action(self, call_control_id: str, action: str, payload: dict | None = None) -> dict:
        return await self._post(f"{CALLS_URL}/{call_control_id}/actions/{action}", payload or {})

    async def send_sms(self, to: str, text: str) -> SentMessage:
        payload: dict = {"from": self._phone_number, "to": to, "text": text}
        if self._messaging_profile_id:
            payload["messaging_profile_id"] = self._messaging_profile_id

        logger.info("Sending SMS to %s", to)
        data = await self._post(MESSAGES_URL, payload)
        logger.info("SMS queued: id=%s", data.get("id"))
        return SentMessage(**data)

    async def answer_call(self, call_control_id: str) -> None:
        await self._call_action(call_control_id, "answer")

    async def speak(self, call_control_id: str, text: str) -> None:
        await self._call_action(
            call_control_id,
            "speak",
            {"payload": text, "voice": self._voice, "language": "en-US"},
        )

    async def gather(self, call_control_id: str, prompt: str, timeout_ms: int | None = None) -> None:
        payload: dict = {
            "greeting": prompt,
            "voice": self._voice,
            "parameters": UTTERANCE_SCHEMA,
        }
        if timeout_ms:
            payload["user_response_timeout_ms"] = timeout_ms
        await self._call_action(call_control_id, "gather_using_ai", payload)

    async def transfer(self, call_control_id: str, to: str) -> None:
        logger.info("Transferring call %s to %s", call_control_id, to)
        await self._call_action(call_control_id, "transfer", {"to": to, "from": self._phone_number})

    async def hangup(self, call_control_id: str) -> None:
        await self._call_action(call_control_id, "hangup")

    async def start_ai_assistant(self, call_control_id: str) -> None:
        if not self._ai_assistant_id:
            raise TelnyxError("AI assistant id is not configured")
        await self._call_action(
            call_control_id,
            "ai_assistant_start",
            {"assistant": {"id": self._ai_assistant_id}},
        )

    async def create_conference(self, call_control_id: str, name: str) -> str:
        data = await self._post(
            CONFERENCES_URL,
            {"call_control_id": call_control_id, "name": name, "beep_enabled": "never"},
        )
        logger.info("Conference %s created: id=%s", name, data.get("id"))
        return data.get("id", "")

    async def join_conference(self, conference_id: str, call_control_id: str) -> None:
        await self._post(
            f"{CONFERENCES_URL}/{conference_id}/actions/join",
            {"call_control_id": call_control_id},
        )

    async def dial(self, to: str, conference_id: str | None = None) -> str:
        payload: dict = {
            "connection_id": self._connection_id,
            "to": to,
            "from": self._phone_number,
        }
        if conference_id:
            payload["conference_config"] = {"id": conference_id}

        logger.info("Dialing %s", to)
        data = await self._post(CALLS_URL, payload)
        return data.get("call_control_id", "")

    async def execute(self, call_control_id: str, instructions: CallInstructions) -> None:
        """Run each instruction against the live call, in order."""
        for step in instructions.actions:
            if step.command == CallCommand.speak:
                await self.speak(call_control_id, step.text or "")
            elif step.command == CallCommand.gather:
                await self.gather(call_control_id, step.text or "", step.timeout_ms)
            elif step.command == CallCommand.transfer and step.target:
                await self.transfer(call_control_id, step.target)
            elif step.command == CallCommand.conference and step.target:
                conference_id = await self.create_conference(
                    call_control_id, step.conference_name or f"emergency-{call_control_id}"
                )
                await self.dial(step.target, conference_id=conference_id)
            elif step.command == CallCommand.hangup:
                await self.hangup(call_control_id)
