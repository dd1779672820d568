import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from app.config import Settings, load_practice_settings, validate_practice
from app.exceptions.custom import RateLimitError, SendGridError, StateStoreError, TelnyxError
from app.exceptions.handlers import (
    rate_limit_error_handler,
    sendgrid_error_handler,
    state_store_error_handler,
    telnyx_error_handler,
)
from app.jobs import JobStore
from app.lexicon import load_lexicon
from app.routers.assistant import router as assistant_router
from app.routers.calls import router as calls_router
from app.routers.jobs import router as jobs_router
from app.routers.receptionist import router as receptionist_router
from app.routers.sms import router as sms_router
from app.services.assistant import AssistantService
from app.services.call_events import CallEventService
from app.services.case_log import CaseLog
from app.services.notifications import NotificationDispatcher
from app.services.receptionist import ReceptionistService
from app.services.sendgrid import SendGridService
from app.services.sms import SmsService
from app.services.storage import FileStateStore
from app.services.telnyx import TelnyxService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    practice = load_practice_settings(settings)
    validation = validate_practice(practice)
    for warning in validation.warnings:
        logger.warning("Practice config: %s", warning)
    for error in validation.errors:
        logger.error("Practice config: %s", error)

    lexicon = load_lexicon(settings.lexicon_path or None)
    logger.info("Keyword lexicon %s loaded", lexicon.version)

    async with httpx.AsyncClient(timeout=30.0) as client:
        telnyx: TelnyxService | None = None
        if settings.telnyx_api_key:
            telnyx = TelnyxService(
                client,
                settings.telnyx_api_key,
                settings.telnyx_phone_number,
                connection_id=settings.telnyx_connection_id,
                messaging_profile_id=settings.telnyx_messaging_profile_id,
                ai_assistant_id=settings.telnyx_ai_assistant_id,
                voice=settings.telnyx_voice,
            )

        sendgrid: SendGridService | None = None
        if settings.sendgrid_api_key and settings.from_email:
            sendgrid = SendGridService(
                client, settings.sendgrid_api_key, settings.from_email, settings.from_name
            )

        job_store = JobStore()
        store = FileStateStore(settings.data_dir)
        case_log = CaseLog(settings.log_dir)
        dispatcher = NotificationDispatcher(
            settings, practice, job_store, case_log, telnyx=telnyx, sendgrid=sendgrid
        )
        receptionist = ReceptionistService(
            settings, practice, store, dispatcher, case_log, lexicon=lexicon
        )

        app.state.settings = settings
        app.state.practice = practice
        app.state.job_store = job_store
        app.state.dispatcher = dispatcher
        app.state.receptionist_service = receptionist
        app.state.assistant_service = AssistantService(store, dispatcher, lexicon=lexicon)
        app.state.sms_service = SmsService(settings, practice, dispatcher, lexicon=lexicon)
        # Telnyx call control (conditional, needs an API key)
        app.state.call_event_service = (
            CallEventService(telnyx, receptionist) if telnyx is not None else None
        )

        yield

        await dispatcher.drain()


app = FastAPI(title="After-Hours Receptionist", lifespan=lifespan)

app.add_exception_handler(TelnyxError, telnyx_error_handler)
app.add_exception_handler(SendGridError, sendgrid_error_handler)
app.add_exception_handler(StateStoreError, state_store_error_handler)
app.add_exception_handler(RateLimitError, rate_limit_error_handler)

app.include_router(calls_router)
app.include_router(sms_router)
app.include_router(assistant_router)
app.include_router(receptionist_router)
app.include_router(jobs_router)
