"""Emergency intake dialogue: name → phone → description → complete.

One step per caller turn. Functions never mutate the state they are given.
"""

from pydantic import BaseModel

from app.lexicon import DEFAULT_LEXICON, Lexicon
from app.mappers.info_extractor import extract_bare_name, extract_name, extract_phone
from app.mappers.urgency_classifier import detect_emotional_tone
from app.schemas.call import CallConversationState, ConversationMode, IntakeStep

STAY_ON_LINE_MESSAGE = (
    "Please stay on the line while I connect you to the on-call doctor."
)


class IntakeTurn(BaseModel):
    next_state: CallConversationState
    message: str
    completed: bool = False


def _thanks(name: str | None) -> str:
    return f"Thank you {name}." if name else "Thank you."


def start_intake(state: CallConversationState) -> CallConversationState:
    """Enter the intake at the name step. A running intake is left as is."""
    if state.mode != ConversationMode.none:
        return state.model_copy(deep=True)
    return state.model_copy(
        update={"mode": ConversationMode.emergency_intake, "step": IntakeStep.name},
        deep=True,
    )


def advance(
    state: CallConversationState,
    utterance: str | None,
    caller_phone: str | None,
    lexicon: Lexicon = DEFAULT_LEXICON,
) -> IntakeTurn:
    text = utterance if isinstance(utterance, str) else ""
    nxt = state.model_copy(deep=True)
    info = nxt.collected_info

    if nxt.step == IntakeStep.complete:
        return IntakeTurn(next_state=nxt, message=STAY_ON_LINE_MESSAGE)

    nxt.mode = ConversationMode.emergency_intake

    if nxt.step == IntakeStep.name:
        name = extract_name(text, lexicon) or extract_bare_name(text, lexicon) or text.strip()
        if name:
            info.name = name
        nxt.step = IntakeStep.phone
        return IntakeTurn(
            next_state=nxt,
            message=f"{_thanks(info.name)} Can you please confirm your callback number?",
        )

    if nxt.step == IntakeStep.phone:
        phone = extract_phone(text, lexicon) or (caller_phone or "").strip()
        if phone:
            info.phone = phone
        nxt.step = IntakeStep.description
        return IntakeTurn(
            next_state=nxt,
            message="Got it. Now please briefly describe your emergency - what's happening?",
        )

    info.description = text
    info.emotional_tone = detect_emotional_tone(text, lexicon)
    nxt.step = IntakeStep.complete
    nxt.mode = ConversationMode.completed
    return IntakeTurn(
        next_state=nxt,
        message=(
            f"{_thanks(info.name)} I have all the information I need. "
            "I'll get the on-call doctor on the line now. Please stay on the line."
        ),
        completed=True,
    )
