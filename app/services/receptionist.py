import logging
from datetime import datetime, timezone
from typing import Callable

from app.config import Settings
from app.exceptions.custom import StateStoreError
from app.lexicon import DEFAULT_LEXICON, Lexicon
from app.mappers.call_control import (
    build_instructions,
    fallback_instructions,
    greeting_instructions,
    speak_instructions,
)
from app.mappers.info_extractor import extract
from app.mappers.intake import advance, start_intake
from app.mappers.notification_builder import local_time, select_on_call_doctor
from app.mappers.response_builder import CallAction, build_greeting, build_response
from app.mappers.urgency_classifier import classify, detect_emotional_tone, summarize_classification
from app.schemas.call import (
    CallConversationState,
    CaseSummary,
    ConversationMode,
    UrgencyTier,
)
from app.schemas.call_control import CallInstructions
from app.schemas.practice import PracticeSettings
from app.schemas.responses import HangupResponse, TurnResponse
from app.services.case_log import CaseLog
from app.services.notifications import NotificationDispatcher
from app.services.storage import FileStateStore

logger = logging.getLogger(__name__)

_DEFERRED_TIERS = (UrgencyTier.uncertain, UrgencyTier.non_emergency)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReceptionistService:
    """Runs one caller turn at a time through classifier, intake and dispatch.

    When no state is passed in, the conversation is loaded from and saved to
    the file store under a per-call lock. A passed-in state is treated as
    echoed by the client and is returned, never persisted.
    """

    def __init__(
        self,
        settings: Settings,
        practice: PracticeSettings,
        store: FileStateStore,
        dispatcher: NotificationDispatcher,
        case_log: CaseLog,
        lexicon: Lexicon = DEFAULT_LEXICON,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._settings = settings
        self._practice = practice
        self._store = store
        self._dispatcher = dispatcher
        self._case_log = case_log
        self._lexicon = lexicon
        self._clock = clock

    @property
    def lexicon(self) -> Lexicon:
        return self._lexicon

    def on_call_doctor(self) -> str | None:
        return select_on_call_doctor(self._practice, self._clock())

    def greet(self) -> CallInstructions:
        now = local_time(self._clock(), self._practice)
        return greeting_instructions(build_greeting(self._practice.name, now))

    def fallback(self, call_id: str, state: CallConversationState | None = None) -> TurnResponse:
        """Transfer instructions for a failed turn; an echoed state is handed back unchanged."""
        return TurnResponse(
            call_id=call_id,
            instructions=fallback_instructions(
                self.on_call_doctor(), self._settings.enable_real_transfers
            ),
            state=state,
            fallback=True,
        )

    async def process_utterance(
        self,
        call_id: str,
        caller_phone: str | None,
        utterance: str | None,
        state: CallConversationState | None = None,
    ) -> TurnResponse:
        try:
            if state is not None:
                return self._turn(call_id, caller_phone, utterance, state)
            async with self._store.lock(call_id):
                current = await self._store.load_state(call_id) or CallConversationState()
                response = self._turn(call_id, caller_phone, utterance, current)
                await self._store.save_state(call_id, response.state)
            return response
        except StateStoreError:
            logger.exception("State store failed for call %s, using fallback", call_id)
            return self.fallback(call_id, state)
        except Exception:
            logger.exception("Turn failed for call %s, using fallback", call_id)
            return self.fallback(call_id, state)

    def _turn(
        self,
        call_id: str,
        caller_phone: str | None,
        utterance: str | None,
        state: CallConversationState,
    ) -> TurnResponse:
        text = utterance if isinstance(utterance, str) else ""

        if state.mode == ConversationMode.completed:
            turn = advance(state, text, caller_phone, self._lexicon)
            return TurnResponse(
                call_id=call_id,
                instructions=speak_instructions("hold", turn.message, self._lexicon.voices.emergency),
                state=turn.next_state,
            )

        if state.intake_in_progress:
            return self._intake_turn(call_id, caller_phone, text, state)

        classification = classify(text, self._lexicon)
        extracted = extract(text, self._lexicon)

        nxt = state.model_copy(deep=True)
        nxt.last_classification = classification.type
        if text.strip():
            nxt.transcript.append(text.strip())
        info = nxt.collected_info
        if extracted.name and not info.name:
            info.name = extracted.name
        if extracted.phone and not info.phone:
            info.phone = extracted.phone

        response = build_response(classification, extracted, self._practice.name, self._lexicon)
        logger.info(
            "Call %s classified %s (confidence=%d): %s",
            call_id,
            classification.type,
            classification.confidence,
            ", ".join(classification.reasons) or "no keywords",
        )

        if classification.type == UrgencyTier.emergency:
            nxt = start_intake(nxt)
            self._dispatcher.schedule_alert(
                CaseSummary(
                    call_id=call_id,
                    timestamp=self._clock(),
                    caller_phone=caller_phone,
                    patient_name=info.name,
                    description=text,
                    classification=UrgencyTier.emergency,
                    confidence=classification.confidence,
                    emotional_tone=classification.emotional_tone,
                    action_taken="Emergency intake started",
                    summary=summarize_classification(text, classification),
                    preferred_callback_time=extracted.preferred_callback_time,
                )
            )

        return TurnResponse(
            call_id=call_id,
            instructions=build_instructions(
                response.action, response.message, call_id=call_id, tts=response.tts
            ),
            state=nxt,
            classification=classification,
        )

    def _intake_turn(
        self,
        call_id: str,
        caller_phone: str | None,
        text: str,
        state: CallConversationState,
    ) -> TurnResponse:
        turn = advance(state, text, caller_phone, self._lexicon)
        action = CallAction.continue_intake
        if turn.completed:
            action = CallAction.connect_emergency_doctor
            self._dispatcher.schedule_dispatch(self._intake_case(call_id, caller_phone, turn.next_state))

        return TurnResponse(
            call_id=call_id,
            instructions=build_instructions(
                action,
                turn.message,
                call_id=call_id,
                tts=self._lexicon.voices.emergency,
                doctor_phone=self.on_call_doctor(),
                transfers_enabled=self._settings.enable_real_transfers,
                conference_enabled=self._settings.enable_conference_calls,
            ),
            state=turn.next_state,
            intake_completed=turn.completed,
        )

    def _emergency_action(self) -> str:
        if self.on_call_doctor():
            if self._settings.enable_conference_calls:
                return "Conference with on-call doctor started"
            if self._settings.enable_real_transfers:
                return "Transferred to on-call doctor"
        return "On-call doctor alerted for callback"

    def _intake_case(
        self, call_id: str, caller_phone: str | None, state: CallConversationState
    ) -> CaseSummary:
        info = state.collected_info
        description = info.description or ""
        # Score the whole call so the trigger utterance counts toward confidence.
        scored = classify(" ".join(state.transcript + [description]), self._lexicon)
        return CaseSummary(
            call_id=call_id,
            timestamp=self._clock(),
            caller_phone=caller_phone,
            patient_name=info.name,
            callback_number=info.phone,
            description=description,
            classification=UrgencyTier.emergency,
            confidence=scored.confidence,
            emotional_tone=info.emotional_tone or detect_emotional_tone(description, self._lexicon),
            action_taken=self._emergency_action(),
            summary=summarize_classification(
                description, scored.model_copy(update={"type": UrgencyTier.emergency})
            ),
        )

    def _deferred_case(
        self, call_id: str, caller_phone: str | None, state: CallConversationState
    ) -> CaseSummary:
        tier = state.last_classification or UrgencyTier.uncertain
        description = " ".join(state.transcript)
        scored = classify(description, self._lexicon)
        extracted = extract(description, self._lexicon)
        return CaseSummary(
            call_id=call_id,
            timestamp=self._clock(),
            caller_phone=caller_phone,
            patient_name=state.collected_info.name,
            callback_number=state.collected_info.phone,
            description=description,
            classification=tier,
            confidence=scored.confidence,
            emotional_tone=scored.emotional_tone,
            action_taken=(
                "Flagged for staff review"
                if tier == UrgencyTier.uncertain
                else "Message taken for callback"
            ),
            summary=summarize_classification(description, scored.model_copy(update={"type": tier})),
            preferred_callback_time=extracted.preferred_callback_time,
        )

    async def finish_call(
        self,
        call_id: str,
        caller_phone: str | None,
        state: CallConversationState | None = None,
    ) -> HangupResponse:
        """Close out a call when the caller hangs up.

        An intake that never reached the description step is only written to
        the case log; the doctor is not notified about it.
        """
        if state is None:
            try:
                async with self._store.lock(call_id):
                    state = await self._store.load_state(call_id)
                    await self._store.delete_state(call_id)
            except StateStoreError:
                logger.exception("Could not load state for ended call %s", call_id)
                return HangupResponse(call_id=call_id, outcome="no_action")

        if state is None:
            return HangupResponse(call_id=call_id, outcome="no_action")

        if state.intake_in_progress:
            logger.warning("Call %s hung up during intake at step %s", call_id, state.step)
            await self._case_log.write(
                "abandoned_intake",
                call_id,
                step=state.step,
                caller_phone=caller_phone,
                collected_info=state.collected_info.model_dump(exclude_none=True),
            )
            return HangupResponse(call_id=call_id, outcome="abandoned_intake")

        if state.mode == ConversationMode.none and state.last_classification in _DEFERRED_TIERS:
            job = self._dispatcher.schedule_dispatch(self._deferred_case(call_id, caller_phone, state))
            if job is None:
                return HangupResponse(call_id=call_id, outcome="already_dispatched")
            return HangupResponse(call_id=call_id, outcome="dispatched", job_id=job.job_id)

        return HangupResponse(call_id=call_id, outcome="no_action")

