from pydantic import BaseModel


class EmergencyContact(BaseModel):
    name: str = ""
    phone: str = ""
    role: str = ""


class PracticeSettings(BaseModel):
    name: str = "Healthcare Practice"
    admin_email: str = ""
    staff_email: str = ""
    emergency_contacts: list[EmergencyContact] = []
    emergency_doctor_phone: str = ""
    night_doctor_phone: str = ""
    timezone: str = "America/Los_Angeles"
    response_time: str = "24 hours"
    auto_response_message: str = (
        "Thank you for contacting us. Our AI assistant is here to help you."
    )

    @property
    def notification_email(self) -> str:
        return self.staff_email or self.admin_email


class PracticeValidation(BaseModel):
    is_valid: bool
    errors: list[str] = []
    warnings: list[str] = []
