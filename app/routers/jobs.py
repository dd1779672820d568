from fastapi import APIRouter, HTTPException, Request

from app.config import validate_practice
from app.dependencies import JobStoreDep, ReceptionistDep
from app.schemas.responses import HealthResponse, JobStatusResponse

router = APIRouter()


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job(job_id: str, store: JobStoreDep) -> JobStatusResponse:
    job = store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatusResponse(**job.model_dump())


@router.get("/health", response_model=HealthResponse)
async def health(request: Request, receptionist: ReceptionistDep) -> HealthResponse:
    settings = request.app.state.settings
    practice = request.app.state.practice
    validation = validate_practice(practice)
    return HealthResponse(
        status="ok" if validation.is_valid else "degraded",
        practice=practice.name,
        lexicon_version=receptionist.lexicon.version,
        features={
            "sms_notifications": settings.enable_sms_notifications,
            "patient_sms": settings.enable_patient_sms,
            "real_transfers": settings.enable_real_transfers,
            "conference_calls": settings.enable_conference_calls,
            "auto_responder": settings.enable_auto_responder,
        },
        configured={
            "telnyx": bool(settings.telnyx_api_key),
            "ai_assistant": bool(settings.telnyx_ai_assistant_id),
            "sendgrid": bool(settings.sendgrid_api_key and settings.from_email),
            "emergency_doctor": bool(practice.emergency_doctor_phone),
            "night_doctor": bool(practice.night_doctor_phone),
        },
        errors=validation.errors,
        warnings=validation.warnings,
    )
