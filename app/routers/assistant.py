import logging
import uuid
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from app.dependencies import AssistantDep
from app.schemas.responses import WebhookAck
from app.schemas.telnyx import AssistantGatherReport, InsightWebhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook")


class EmergencyStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    emergency: Any = Field(default=None, alias="Emergency")
    reason: str | None = Field(default=None, alias="Reason")
    call_control_id: str | None = None


@router.post("/gather-ai", response_model=WebhookAck)
async def gather_ai(report: AssistantGatherReport, service: AssistantDep) -> WebhookAck:
    request_id = uuid.uuid4().hex[:12]
    try:
        record = await service.record_report(report)
    except Exception:
        logger.exception("Assistant report %s failed", request_id)
        return WebhookAck(status="error", request_id=request_id)

    if record is None:
        return WebhookAck(request_id=request_id, detail="missing_call_id")
    return WebhookAck(request_id=request_id, detail=record.tier)


@router.post("/ai/insights", response_model=WebhookAck)
async def ai_insights(body: InsightWebhook, service: AssistantDep) -> WebhookAck:
    request_id = uuid.uuid4().hex[:12]
    try:
        job = await service.handle_insight(body)
    except Exception:
        logger.exception("Assistant insight %s failed", request_id)
        return WebhookAck(status="error", request_id=request_id, event_type=body.event_type)

    return WebhookAck(
        request_id=request_id,
        event_type=body.event_type,
        detail=job.job_id if job else "skipped",
    )


@router.post("/emergency", response_model=WebhookAck)
async def emergency_status(body: EmergencyStatusRequest, service: AssistantDep) -> WebhookAck:
    if not isinstance(body.emergency, bool):
        raise HTTPException(status_code=400, detail="Emergency must be a boolean")

    request_id = uuid.uuid4().hex[:12]
    job = await service.handle_emergency_status(body.emergency, body.reason, body.call_control_id)
    return WebhookAck(request_id=request_id, detail=job.job_id if job else "no_action")
