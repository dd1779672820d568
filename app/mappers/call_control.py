"""Turn receptionist actions into provider-neutral call-control instructions."""

from app.lexicon import VoiceProfile
from app.mappers.response_builder import CallAction
from app.schemas.call_control import CallCommand, CallInstruction, CallInstructions

GATHER_TIMEOUT_MS = 10000

FALLBACK_TRANSFER_MESSAGE = "Please hold while I connect you to staff."
FALLBACK_NO_TRANSFER_MESSAGE = (
    "I apologize, but I'm experiencing technical difficulties. Please call back "
    "in a few minutes or if this is an emergency, please hang up and dial 911."
)
DOCTOR_ALERTED_MESSAGE = (
    "Our on-call doctor has been alerted and will call you back shortly. "
    "If this is life threatening, please hang up and dial 911."
)

_GATHER_ACTIONS = {
    CallAction.start_emergency_intake,
    CallAction.continue_intake,
    CallAction.request_clarification,
    CallAction.schedule_appointment,
}


def conference_name_for(call_id: str) -> str:
    return f"emergency-{call_id}"


def build_instructions(
    action: CallAction,
    message: str,
    *,
    call_id: str,
    tts: VoiceProfile | None = None,
    doctor_phone: str | None = None,
    transfers_enabled: bool = False,
    conference_enabled: bool = False,
) -> CallInstructions:
    if action in _GATHER_ACTIONS:
        actions = [
            CallInstruction(command=CallCommand.gather, text=message, timeout_ms=GATHER_TIMEOUT_MS)
        ]
    elif doctor_phone and conference_enabled:
        actions = [
            CallInstruction(command=CallCommand.speak, text=message),
            CallInstruction(
                command=CallCommand.conference,
                target=doctor_phone,
                conference_name=conference_name_for(call_id),
            ),
        ]
    elif doctor_phone and transfers_enabled:
        actions = [
            CallInstruction(command=CallCommand.speak, text=message),
            CallInstruction(command=CallCommand.transfer, target=doctor_phone),
        ]
    else:
        actions = [
            CallInstruction(command=CallCommand.speak, text=message),
            CallInstruction(command=CallCommand.speak, text=DOCTOR_ALERTED_MESSAGE),
            CallInstruction(command=CallCommand.hangup),
        ]
    return CallInstructions(action=action, message=message, actions=actions, tts=tts)


def greeting_instructions(greeting: str) -> CallInstructions:
    return CallInstructions(
        action="greeting",
        message=greeting,
        actions=[
            CallInstruction(command=CallCommand.gather, text=greeting, timeout_ms=GATHER_TIMEOUT_MS)
        ],
    )


def fallback_instructions(
    doctor_phone: str | None, transfers_enabled: bool = False
) -> CallInstructions:
    """Non-stateful instructions used when a turn cannot be processed."""
    if doctor_phone and transfers_enabled:
        return CallInstructions(
            action="fallback_transfer",
            message=FALLBACK_TRANSFER_MESSAGE,
            actions=[
                CallInstruction(command=CallCommand.speak, text=FALLBACK_TRANSFER_MESSAGE),
                CallInstruction(command=CallCommand.transfer, target=doctor_phone),
            ],
        )
    return CallInstructions(
        action="fallback_hangup",
        message=FALLBACK_NO_TRANSFER_MESSAGE,
        actions=[
            CallInstruction(command=CallCommand.speak, text=FALLBACK_NO_TRANSFER_MESSAGE),
            CallInstruction(command=CallCommand.hangup),
        ],
    )


def speak_instructions(action: str, message: str, tts: VoiceProfile | None = None) -> CallInstructions:
    return CallInstructions(
        action=action,
        message=message,
        actions=[CallInstruction(command=CallCommand.speak, text=message)],
        tts=tts,
    )
