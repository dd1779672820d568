from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.schemas.call import UrgencyTier


class TranscriptionData(BaseModel):
    transcript: str = ""
    is_final: bool = True
    confidence: float | None = None


class TelnyxCallPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    call_control_id: str = ""
    call_leg_id: str | None = None
    call_session_id: str | None = None
    from_: str | None = Field(default=None, alias="from")
    to: str | None = None
    direction: str | None = None
    state: str | None = None
    client_state: str | None = None
    result: dict | None = None  # call.ai_gather.ended
    transcription_data: TranscriptionData | None = None
    hangup_cause: str | None = None


class TelnyxCallEvent(BaseModel):
    id: str | None = None
    event_type: str = ""
    payload: TelnyxCallPayload = TelnyxCallPayload()


class TelnyxCallWebhook(BaseModel):
    data: TelnyxCallEvent = TelnyxCallEvent()


class MessageParty(BaseModel):
    phone_number: str = ""


class TelnyxMessagePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = ""
    text: str = ""
    direction: str | None = None
    from_: MessageParty = Field(default=MessageParty(), alias="from")
    to: list[MessageParty] = []


class TelnyxMessageEvent(BaseModel):
    id: str | None = None
    event_type: str = ""
    payload: TelnyxMessagePayload = TelnyxMessagePayload()


class TelnyxMessageWebhook(BaseModel):
    data: TelnyxMessageEvent = TelnyxMessageEvent()


class SentMessage(BaseModel):
    id: str = ""
    to: list[MessageParty] = []


class AssistantGatherReport(BaseModel):
    """Fields the AI assistant's gather tool posts back."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str | None = None
    phone: str | None = None
    reasons: str | None = Field(default=None, validation_alias=AliasChoices("Reasons", "reasons"))
    emergency: bool | None = Field(default=None, validation_alias=AliasChoices("Emergency", "emergency"))
    pain_level: float | int | str | None = Field(
        default=None, validation_alias=AliasChoices("Pain level", "pain_level")
    )
    call_control_id: str | None = None
    conversational_id: str | None = Field(
        default=None, validation_alias=AliasChoices("Conversational_id", "conversational_id")
    )

    @property
    def storage_key(self) -> str | None:
        return self.call_control_id or self.conversational_id


class InsightResult(BaseModel):
    result: str | None = None


class InsightMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    call_control_id: str | None = None


class InsightPayload(BaseModel):
    conversation_id: str | None = None
    metadata: InsightMetadata = InsightMetadata()
    results: list[InsightResult] = []


class InsightWebhook(BaseModel):
    event_type: str = ""
    payload: InsightPayload = InsightPayload()


class AssistantCallRecord(BaseModel):
    """What the assistant reported for a call, kept until the insight arrives."""

    key: str
    name: str | None = None
    phone: str | None = None
    reasons: str | None = None
    pain_level: str | None = None
    tier: UrgencyTier
    confidence: int = 0
    emotional_tone: str = ""
    time_called: datetime
