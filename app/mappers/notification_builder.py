import re
from datetime import datetime
from enum import StrEnum
from html import escape
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from app.schemas.call import CaseSummary, UrgencyTier
from app.schemas.practice import PracticeSettings

NIGHT_START_HOUR = 22
NIGHT_END_HOUR = 6

_TEMPLATE_RE = re.compile(r"\{\{(\w+)\}\}")

_STATUS_LABEL = {
    UrgencyTier.emergency: "Urgency",
    UrgencyTier.uncertain: "Needs Review",
    UrgencyTier.non_emergency: "Non-Urgency",
}

_STATUS_COLOR = {
    UrgencyTier.emergency: "#d32f2f",
    UrgencyTier.uncertain: "#ef6c00",
    UrgencyTier.non_emergency: "#2e7d32",
}


class Channel(StrEnum):
    doctor_sms = "doctor_sms"
    staff_email = "staff_email"
    patient_sms = "patient_sms"


class DispatchStage(StrEnum):
    detected = "detected"
    completed = "completed"


DOCTOR_FACING = frozenset({Channel.doctor_sms, Channel.staff_email})


class EmailContent(BaseModel):
    subject: str
    text: str
    html: str


def plan_channels(
    tier: UrgencyTier,
    stage: DispatchStage,
    *,
    sms_enabled: bool,
    patient_sms_enabled: bool,
    has_doctor_phone: bool,
    has_patient_phone: bool,
) -> list[Channel]:
    """Decide which channels to notify, in the order they should go out.

    Emergency detection only pages the doctor by SMS; a completed emergency
    always includes the staff email so at least one doctor-facing channel
    is attempted.
    """
    channels: list[Channel] = []
    patient_sms = sms_enabled and patient_sms_enabled and has_patient_phone

    if tier == UrgencyTier.emergency:
        if sms_enabled and has_doctor_phone:
            channels.append(Channel.doctor_sms)
        if stage == DispatchStage.completed:
            channels.append(Channel.staff_email)
            if patient_sms:
                channels.append(Channel.patient_sms)
        return channels

    channels.append(Channel.staff_email)
    if tier == UrgencyTier.non_emergency and patient_sms:
        channels.append(Channel.patient_sms)
    return channels


def is_night(now: datetime) -> bool:
    return now.hour >= NIGHT_START_HOUR or now.hour < NIGHT_END_HOUR


def local_time(moment: datetime, practice: PracticeSettings) -> datetime:
    try:
        return moment.astimezone(ZoneInfo(practice.timezone))
    except (KeyError, ValueError):
        return moment


def select_on_call_doctor(practice: PracticeSettings, now: datetime) -> str | None:
    """Night doctor between 22:00 and 06:00 practice time, when one is set."""
    if practice.night_doctor_phone and is_night(local_time(now, practice)):
        return practice.night_doctor_phone
    return practice.emergency_doctor_phone or None


def render_template(template: str, data: dict[str, str]) -> str:
    """Replace ``{{key}}`` placeholders; unknown keys are left untouched."""
    return _TEMPLATE_RE.sub(lambda m: data.get(m.group(1)) or m.group(0), template)


def template_data(case: CaseSummary, practice: PracticeSettings) -> dict[str, str]:
    when = local_time(case.timestamp, practice)
    return {
        "callId": case.call_id,
        "callerPhone": case.caller_phone or "Unknown",
        "patientName": case.patient_name or "Unknown Patient",
        "patientPhone": case.callback_number or case.caller_phone or "No phone provided",
        "description": case.description or "Not specified",
        "confidence": str(case.confidence),
        "status": _STATUS_LABEL[case.classification],
        "emotionalTone": case.emotional_tone or "Unknown",
        "callbackTime": case.preferred_callback_time or "Not specified",
        "timestamp": when.strftime("%Y-%m-%d %I:%M %p %Z").strip(),
        "practiceName": practice.name,
        "responseTime": practice.response_time,
    }


def build_case_email(case: CaseSummary, practice: PracticeSettings) -> EmailContent:
    data = template_data(case, practice)
    status = data["status"]
    color = _STATUS_COLOR[case.classification]
    summary = case.summary or case.description or "No summary available"

    rows = [
        ("Name", data["patientName"]),
        ("Phone", data["patientPhone"]),
        ("Caller ID", data["callerPhone"]),
        ("Time", data["timestamp"]),
        ("Emotional tone", data["emotionalTone"]),
        ("Preferred callback", data["callbackTime"]),
        ("Action taken", case.action_taken),
    ]

    text_lines = [f"{label}: {value}" for label, value in rows]
    text_lines.insert(2, f"Status: {status}")
    text = "\n\n".join(text_lines + [f"Summary: {summary}", "Sent by AI - Front Desk"])

    html_rows = "".join(
        f"<tr><td><strong>{label}</strong></td><td>{escape(value)}</td></tr>"
        for label, value in rows
    )
    html = (
        '<div style="font-family: Arial, sans-serif; font-size: 14px; line-height: 1.6; color: #333;">'
        f'<p>Status: <span style="color: {color}; font-weight: bold;">{status}</span></p>'
        f'<table border="1" cellpadding="6" cellspacing="0">{html_rows}</table>'
        f"<p><strong>Summary:</strong> {escape(summary)}</p>"
        "<p><em>Sent by AI - Front Desk</em></p>"
        "</div>"
    )

    subject = f"AFTER HOURS - {data['patientName']} ({status})"
    if case.classification == UrgencyTier.emergency:
        subject = f"URGENT: {subject}"
    return EmailContent(subject=subject, text=text, html=html)


def to_e164(phone: str | None) -> str | None:
    """Ten-digit North-American numbers get a +1 prefix; others pass through."""
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    return phone.strip() or None
