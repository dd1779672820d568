import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

from app.jobs import Job
from app.lexicon import DEFAULT_LEXICON, Lexicon
from app.mappers.assistant_report import assess_report, parse_reason_caller
from app.mappers.info_extractor import normalize_phone
from app.mappers.urgency_classifier import classify, detect_emotional_tone
from app.schemas.call import CaseSummary, UrgencyTier
from app.schemas.telnyx import AssistantCallRecord, AssistantGatherReport, InsightWebhook
from app.services.notifications import NotificationDispatcher
from app.services.storage import FileStateStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssistantService:
    """Handles what the Telnyx AI assistant reports about a call.

    The gather result is stored under the call control id until the
    conversation insight arrives; the insight then produces the case that
    goes to staff.
    """

    def __init__(
        self,
        store: FileStateStore,
        dispatcher: NotificationDispatcher,
        lexicon: Lexicon = DEFAULT_LEXICON,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._store = store
        self._dispatcher = dispatcher
        self._lexicon = lexicon
        self._clock = clock

    async def record_report(self, report: AssistantGatherReport) -> AssistantCallRecord | None:
        key = report.storage_key
        if not key:
            logger.warning("Assistant report without call_control_id or conversational_id")
            return None

        tier, classification = assess_report(report, self._lexicon)
        record = AssistantCallRecord(
            key=key,
            name=report.name,
            phone=report.phone,
            reasons=report.reasons,
            pain_level=None if report.pain_level is None else str(report.pain_level),
            tier=tier,
            confidence=classification.confidence,
            emotional_tone=classification.emotional_tone,
            time_called=self._clock(),
        )
        async with self._store.lock(key):
            await self._store.save_record(record)
        logger.info("Assistant report for %s: %s (pain=%s)", key, tier, record.pain_level)

        if tier == UrgencyTier.emergency:
            self._dispatcher.schedule_alert(
                self._case(record, record.reasons or "", "Emergency reported by AI assistant")
            )
        return record

    async def handle_insight(self, webhook: InsightWebhook) -> Job | None:
        payload = webhook.payload
        key = payload.metadata.call_control_id or payload.conversation_id
        summary = next((r.result.strip() for r in payload.results if r.result and r.result.strip()), "")
        if not key or not summary:
            logger.info("Insight without call id or summary, skipping")
            return None

        async with self._store.lock(key):
            record = await self._store.load_record(key)
            if record is None:
                classification = classify(summary, self._lexicon)
                record = AssistantCallRecord(
                    key=key,
                    tier=classification.type,
                    confidence=classification.confidence,
                    emotional_tone=classification.emotional_tone,
                    time_called=self._clock(),
                )
            job = self._dispatcher.schedule_dispatch(
                self._case(record, summary, "AI assistant conversation completed", summary=summary)
            )
            await self._store.delete_record(key)
        return job

    async def handle_emergency_status(
        self, emergency: bool, reason: str | None, call_id: str | None = None
    ) -> Job | None:
        if not emergency:
            logger.info("Emergency status false for %s", call_id or "unknown call")
            return None

        name, phone = parse_reason_caller(reason)
        key = call_id or (f"status-{phone}" if phone else f"status-{uuid.uuid4().hex[:12]}")
        case = CaseSummary(
            call_id=key,
            timestamp=self._clock(),
            caller_phone=phone,
            patient_name=name,
            callback_number=phone,
            description=reason or "",
            classification=UrgencyTier.emergency,
            confidence=100,
            emotional_tone=detect_emotional_tone(reason, self._lexicon),
            action_taken="Emergency status reported by AI assistant",
            summary=reason or "",
        )
        return self._dispatcher.schedule_alert(case)

    def _case(
        self,
        record: AssistantCallRecord,
        description: str,
        action_taken: str,
        summary: str = "",
    ) -> CaseSummary:
        return CaseSummary(
            call_id=record.key,
            timestamp=record.time_called,
            caller_phone=record.phone,
            patient_name=record.name,
            callback_number=normalize_phone(record.phone, self._lexicon) if record.phone else None,
            description=record.reasons or description,
            classification=record.tier,
            confidence=record.confidence,
            emotional_tone=record.emotional_tone,
            action_taken=action_taken,
            summary=summary or description,
        )
