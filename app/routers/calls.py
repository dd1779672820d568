import logging
import uuid

from fastapi import APIRouter

from app.dependencies import CallEventDep
from app.schemas.responses import WebhookAck
from app.schemas.telnyx import TelnyxCallWebhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook")


@router.post("/call", response_model=WebhookAck)
async def call_webhook(body: TelnyxCallWebhook, service: CallEventDep) -> WebhookAck:
    event = body.data
    request_id = event.id or uuid.uuid4().hex[:12]

    if service is None:
        logger.warning("Call event %s received but Telnyx is not configured", event.event_type)
        return WebhookAck(request_id=request_id, event_type=event.event_type, detail="telnyx_not_configured")

    try:
        outcome = await service.handle(event)
    except Exception:
        logger.exception("Call event %s (%s) failed", event.event_type, request_id)
        return WebhookAck(status="error", request_id=request_id, event_type=event.event_type)

    return WebhookAck(request_id=request_id, event_type=event.event_type, detail=outcome)
