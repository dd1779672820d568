from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class UrgencyTier(StrEnum):
    emergency = "emergency"
    uncertain = "uncertain"
    non_emergency = "non_emergency"


class ConversationMode(StrEnum):
    none = "none"
    emergency_intake = "emergency_intake"
    completed = "completed"


class IntakeStep(StrEnum):
    name = "name"
    phone = "phone"
    description = "description"
    complete = "complete"


class UtteranceClassification(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: UrgencyTier
    confidence: int = 0
    reasons: list[str] = []
    emotional_tone: str
    keyword_hits: dict[str, list[str]] = {}


class ExtractedInfo(BaseModel):
    name: str | None = None
    phone: str | None = None
    description: str = ""
    preferred_callback_time: str | None = None


class CollectedInfo(BaseModel):
    name: str | None = None
    phone: str | None = None
    description: str | None = None
    emotional_tone: str | None = None

    def present_fields(self) -> set[str]:
        return {k for k, v in self.model_dump().items() if v is not None}


class CallConversationState(BaseModel):
    mode: ConversationMode = ConversationMode.none
    step: IntakeStep = IntakeStep.name
    collected_info: CollectedInfo = CollectedInfo()
    last_classification: UrgencyTier | None = None
    transcript: list[str] = []

    @property
    def intake_in_progress(self) -> bool:
        return self.mode == ConversationMode.emergency_intake


class CaseSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    call_id: str
    timestamp: datetime
    caller_phone: str | None = None
    patient_name: str | None = None
    callback_number: str | None = None
    description: str = ""
    classification: UrgencyTier
    confidence: int = 0
    emotional_tone: str = ""
    action_taken: str
    summary: str = ""
    preferred_callback_time: str | None = None
