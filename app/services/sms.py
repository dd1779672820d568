import logging
from datetime import datetime, timezone

from app.config import Settings
from app.lexicon import DEFAULT_LEXICON, Lexicon
from app.mappers.info_extractor import extract
from app.mappers.notification_builder import Channel
from app.mappers.urgency_classifier import classify, summarize_classification
from app.schemas.call import CaseSummary, UrgencyTier, UtteranceClassification
from app.schemas.practice import PracticeSettings
from app.schemas.responses import NotificationResult
from app.schemas.telnyx import TelnyxMessagePayload
from app.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

EMERGENCY_SMS_REPLY = (
    "We received your message and the on-call doctor has been alerted. "
    "If this is life threatening, please dial 911."
)


class SmsService:
    def __init__(
        self,
        settings: Settings,
        practice: PracticeSettings,
        dispatcher: NotificationDispatcher,
        lexicon: Lexicon = DEFAULT_LEXICON,
    ):
        self._settings = settings
        self._practice = practice
        self._dispatcher = dispatcher
        self._lexicon = lexicon

    async def handle_inbound(
        self, message: TelnyxMessagePayload
    ) -> tuple[UtteranceClassification, NotificationResult | None]:
        """Classify an inbound text, page the doctor on emergencies, and auto-reply."""
        sender = message.from_.phone_number or None
        classification = classify(message.text, self._lexicon)
        logger.info("Inbound SMS from %s classified %s", sender, classification.type)

        if classification.type == UrgencyTier.emergency:
            extracted = extract(message.text, self._lexicon)
            self._dispatcher.schedule_alert(
                CaseSummary(
                    call_id=f"sms-{message.id}" if message.id else f"sms-{sender}",
                    timestamp=datetime.now(timezone.utc),
                    caller_phone=sender,
                    patient_name=extracted.name,
                    callback_number=extracted.phone,
                    description=message.text,
                    classification=UrgencyTier.emergency,
                    confidence=classification.confidence,
                    emotional_tone=classification.emotional_tone,
                    action_taken="Emergency text message received",
                    summary=summarize_classification(message.text, classification),
                )
            )

        if not self._settings.enable_auto_responder or not sender:
            return classification, None

        reply = (
            EMERGENCY_SMS_REPLY
            if classification.type == UrgencyTier.emergency
            else self._practice.auto_response_message
        )
        result = await self._dispatcher.send_sms(sender, reply, Channel.patient_sms)
        return classification, result
