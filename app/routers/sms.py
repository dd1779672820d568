import logging
import uuid

from fastapi import APIRouter

from app.dependencies import SmsDep
from app.schemas.responses import WebhookAck
from app.schemas.telnyx import TelnyxMessageWebhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook")


@router.post("/sms", response_model=WebhookAck)
async def sms_webhook(body: TelnyxMessageWebhook, service: SmsDep) -> WebhookAck:
    event = body.data
    request_id = event.id or uuid.uuid4().hex[:12]

    if event.event_type != "message.received":
        return WebhookAck(request_id=request_id, event_type=event.event_type, detail="ignored")

    try:
        classification, _ = await service.handle_inbound(event.payload)
    except Exception:
        logger.exception("Inbound SMS %s failed", request_id)
        return WebhookAck(status="error", request_id=request_id, event_type=event.event_type)

    return WebhookAck(
        request_id=request_id, event_type=event.event_type, detail=classification.type
    )
