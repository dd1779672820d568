import json
import logging
from pathlib import Path

from pydantic_settings import BaseSettings

from app.schemas.practice import EmergencyContact, PracticeSettings, PracticeValidation

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    log_level: str = "INFO"
    base_url: str = "http://localhost:8000"

    telnyx_api_key: str = ""
    telnyx_phone_number: str = ""
    telnyx_connection_id: str = ""
    telnyx_messaging_profile_id: str = ""
    telnyx_ai_assistant_id: str = ""
    telnyx_voice: str = "Telnyx.KokoroTTS.af_heart"

    sendgrid_api_key: str = ""
    from_email: str = ""
    from_name: str = "AI Front Desk"

    practice_name: str = "Healthcare Practice"
    admin_email: str = ""
    staff_email: str = ""
    primary_emergency_doctor: str = ""
    night_emergency_doctor: str = ""
    timezone: str = "America/Los_Angeles"
    practice_config_path: str = ""

    enable_sms_notifications: bool = False
    enable_patient_sms: bool = False
    enable_real_transfers: bool = False
    enable_conference_calls: bool = False
    enable_auto_responder: bool = False

    data_dir: str = "data"
    log_dir: str = "logs"
    lexicon_path: str = ""

    sms_template_emergency_alert: str = (
        "DENTAL EMERGENCY ALERT\n"
        "Call from: {{callerPhone}}\n"
        "Message: \"{{description}}\"\n"
        "Confidence: {{confidence}}%\n"
        "Time: {{timestamp}}\n"
        "Clinic: {{practiceName}}\n\n"
        "Emergency detected! AI is collecting patient details now. "
        "Prepare for incoming call transfer.\n\n"
        "Call ID: {{callId}}"
    )
    sms_template_emergency_doctor: str = (
        "DENTAL EMERGENCY\n"
        "Patient: {{patientName}}\n"
        "Phone: {{patientPhone}}\n"
        "Emergency: {{description}}\n"
        "Time: {{timestamp}}\n"
        "Clinic: {{practiceName}}\n\n"
        "Patient is being connected to you now. Please answer incoming call "
        "or call back immediately."
    )
    sms_template_emergency_patient: str = (
        "{{practiceName}}: the on-call doctor has been alerted about your "
        "emergency and will contact you at {{patientPhone}} shortly. "
        "If this is life threatening, dial 911."
    )
    sms_template_nonemergency_confirmation: str = (
        "Thanks for calling {{practiceName}}. We received your message and "
        "our team will get back to you within {{responseTime}}."
    )


def load_practice_settings(settings: Settings) -> PracticeSettings:
    """Build practice settings from env, merged with an optional JSON file.

    Top-level keys in the file replace the env-derived values.
    """
    practice = PracticeSettings(
        name=settings.practice_name,
        admin_email=settings.admin_email,
        staff_email=settings.staff_email,
        emergency_doctor_phone=settings.primary_emergency_doctor,
        night_doctor_phone=settings.night_emergency_doctor,
        timezone=settings.timezone,
        emergency_contacts=(
            [
                EmergencyContact(
                    name="On-call doctor",
                    phone=settings.primary_emergency_doctor,
                    role="Primary Physician",
                )
            ]
            if settings.primary_emergency_doctor
            else []
        ),
    )
    path = Path(settings.practice_config_path) if settings.practice_config_path else None
    if path is None or not path.exists():
        return practice
    try:
        overrides = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.warning("Error loading practice config %s, using defaults", path, exc_info=True)
        return practice
    return PracticeSettings.model_validate({**practice.model_dump(), **overrides})


def validate_practice(practice: PracticeSettings) -> PracticeValidation:
    errors: list[str] = []
    warnings: list[str] = []

    if not practice.name:
        errors.append("Practice name is required")
    if not practice.admin_email:
        errors.append("Admin email is required")
    if not practice.emergency_contacts:
        warnings.append("No emergency contacts configured")
    for i, contact in enumerate(practice.emergency_contacts, start=1):
        if not contact.phone:
            errors.append(f"Emergency contact {i} missing phone number")
        if not contact.name:
            warnings.append(f"Emergency contact {i} missing name")
    if not practice.emergency_doctor_phone:
        warnings.append("No emergency doctor phone configured")

    return PracticeValidation(is_valid=not errors, errors=errors, warnings=warnings)
