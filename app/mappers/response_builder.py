import random
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel

from app.lexicon import DEFAULT_LEXICON, Lexicon, VoiceProfile
from app.schemas.call import ExtractedInfo, UrgencyTier, UtteranceClassification


class ResponseType(StrEnum):
    emergency_intake = "emergency_intake"
    clarification = "clarification"
    non_emergency = "non_emergency"


class CallAction(StrEnum):
    start_emergency_intake = "start_emergency_intake"
    continue_intake = "continue_intake"
    connect_emergency_doctor = "connect_emergency_doctor"
    schedule_appointment = "schedule_appointment"
    request_clarification = "request_clarification"


class Priority(StrEnum):
    immediate = "immediate"
    medium = "medium"
    normal = "normal"


class ReceptionistResponse(BaseModel):
    type: ResponseType
    message: str
    action: CallAction
    priority: Priority
    tts: VoiceProfile


def build_response(
    classification: UtteranceClassification,
    extracted: ExtractedInfo,
    practice_name: str,
    lexicon: Lexicon = DEFAULT_LEXICON,
) -> ReceptionistResponse:
    name_prefix = f"{extracted.name}, " if extracted.name else ""

    if classification.type == UrgencyTier.emergency:
        return ReceptionistResponse(
            type=ResponseType.emergency_intake,
            message=(
                "I understand this is an emergency. I need to collect some quick "
                "information before connecting you to our on-call doctor. First, "
                "can you please tell me your full name?"
            ),
            action=CallAction.start_emergency_intake,
            priority=Priority.immediate,
            tts=lexicon.voices.emergency,
        )

    if classification.type == UrgencyTier.uncertain:
        return ReceptionistResponse(
            type=ResponseType.clarification,
            message=(
                f"{name_prefix}thanks for explaining. Just to be sure, would you say "
                "this needs urgent attention right now, or is this something we can "
                "address with a regular appointment?"
            ),
            action=CallAction.request_clarification,
            priority=Priority.medium,
            tts=lexicon.voices.uncertain,
        )

    return ReceptionistResponse(
        type=ResponseType.non_emergency,
        message=(
            f"{name_prefix}thanks for calling {practice_name}. I can help you schedule "
            "an appointment or provide information. What would you like to do?"
        ),
        action=CallAction.schedule_appointment,
        priority=Priority.normal,
        tts=lexicon.voices.non_emergency,
    )


def time_of_day(now: datetime) -> str:
    hour = now.hour
    if 5 <= hour < 12:
        return "this morning"
    if 12 <= hour < 17:
        return "this afternoon"
    if 17 <= hour < 21:
        return "this evening"
    return "tonight"


def build_greeting(
    practice_name: str, now: datetime, rng: random.Random | None = None
) -> str:
    """Pick one of a few greetings, phrased for the practice-local time."""
    tod = time_of_day(now)
    greetings = [
        f"Hi, this is the AI receptionist for {practice_name}. How can I help you {tod}?",
        f"Thanks for calling {practice_name}. What can I help you with {tod}?",
        f"Hello, you've reached {practice_name}. I'm here to assist you. "
        f"What brings you to call {tod}?",
        f"Hi there, you've reached {practice_name}. What can I do for you {tod}?",
    ]
    return (rng or random).choice(greetings)
