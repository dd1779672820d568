from typing import Annotated

from fastapi import Depends, Request

from app.jobs import JobStore
from app.services.assistant import AssistantService
from app.services.call_events import CallEventService
from app.services.receptionist import ReceptionistService
from app.services.sms import SmsService


def get_receptionist_service(request: Request) -> ReceptionistService:
    return request.app.state.receptionist_service


def get_job_store(request: Request) -> JobStore:
    return request.app.state.job_store


def get_assistant_service(request: Request) -> AssistantService:
    return request.app.state.assistant_service


def get_call_event_service(request: Request) -> CallEventService | None:
    return getattr(request.app.state, "call_event_service", None)


def get_sms_service(request: Request) -> SmsService:
    return request.app.state.sms_service


ReceptionistDep = Annotated[ReceptionistService, Depends(get_receptionist_service)]
JobStoreDep = Annotated[JobStore, Depends(get_job_store)]
AssistantDep = Annotated[AssistantService, Depends(get_assistant_service)]
CallEventDep = Annotated[CallEventService | None, Depends(get_call_event_service)]
SmsDep = Annotated[SmsService, Depends(get_sms_service)]
