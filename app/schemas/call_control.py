from enum import StrEnum

from pydantic import BaseModel

from app.lexicon import VoiceProfile


class CallCommand(StrEnum):
    speak = "speak"
    gather = "gather"
    transfer = "transfer"
    conference = "conference"
    hangup = "hangup"


class CallInstruction(BaseModel):
    command: CallCommand
    text: str | None = None
    timeout_ms: int | None = None
    target: str | None = None
    conference_name: str | None = None


class CallInstructions(BaseModel):
    action: str
    message: str
    actions: list[CallInstruction]
    tts: VoiceProfile | None = None
