from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from app.mappers.notification_builder import Channel
from app.schemas.call import CallConversationState, UrgencyTier, UtteranceClassification
from app.schemas.call_control import CallInstructions


class NotificationResult(BaseModel):
    channel: Channel
    success: bool
    id: str | None = None
    error: str | None = None


class DispatchReport(BaseModel):
    call_id: str
    classification: UrgencyTier
    stage: str
    results: list[NotificationResult] = []

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)


class WebhookAck(BaseModel):
    status: str = "received"
    request_id: str
    event_type: str | None = None
    detail: str | None = None


class TurnRequest(BaseModel):
    call_id: str
    utterance: str = ""
    caller_phone: str | None = None
    state: CallConversationState | None = None


class TurnResponse(BaseModel):
    call_id: str
    instructions: CallInstructions
    state: CallConversationState | None = None
    classification: UtteranceClassification | None = None
    intake_completed: bool = False
    fallback: bool = False


class HangupRequest(BaseModel):
    call_id: str
    caller_phone: str | None = None
    state: CallConversationState | None = None


class HangupResponse(BaseModel):
    call_id: str
    outcome: str  # "dispatched" | "abandoned_intake" | "already_dispatched" | "no_action"
    job_id: str | None = None


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    task_type: str
    call_id: str | None = None
    created_at: datetime
    finished_at: datetime | None = None
    result: DispatchReport | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    status: str
    practice: str
    lexicon_version: str
    features: dict[str, bool]
    configured: dict[str, bool]
    errors: list[str] = []
    warnings: list[str] = []
