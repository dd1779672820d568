import httpx
import pytest
from httpx import ASGITransport

from app.config import Settings, load_practice_settings
from app.jobs import JobStore
from app.services.case_log import CaseLog
from app.services.notifications import NotificationDispatcher
from app.services.receptionist import ReceptionistService
from app.services.sendgrid import SendGridService
from app.services.storage import FileStateStore
from app.services.telnyx import TelnyxService

DOCTOR_PHONE = "+15550001111"
NIGHT_DOCTOR_PHONE = "+15550002222"


@pytest.fixture
def mock_env(monkeypatch, tmp_path):
    monkeypatch.setenv("TELNYX_API_KEY", "test-telnyx-key")
    monkeypatch.setenv("TELNYX_PHONE_NUMBER", "+15550009999")
    monkeypatch.setenv("TELNYX_CONNECTION_ID", "conn-1")
    monkeypatch.setenv("TELNYX_AI_ASSISTANT_ID", "")
    monkeypatch.setenv("SENDGRID_API_KEY", "test-sg-key")
    monkeypatch.setenv("FROM_EMAIL", "frontdesk@example.com")
    monkeypatch.setenv("PRACTICE_NAME", "Smile Dental")
    monkeypatch.setenv("ADMIN_EMAIL", "admin@example.com")
    monkeypatch.setenv("STAFF_EMAIL", "staff@example.com")
    monkeypatch.setenv("PRIMARY_EMERGENCY_DOCTOR", DOCTOR_PHONE)
    monkeypatch.setenv("NIGHT_EMERGENCY_DOCTOR", "")
    monkeypatch.setenv("TIMEZONE", "America/New_York")
    monkeypatch.setenv("PRACTICE_CONFIG_PATH", "")
    monkeypatch.setenv("ENABLE_SMS_NOTIFICATIONS", "true")
    monkeypatch.setenv("ENABLE_PATIENT_SMS", "false")
    monkeypatch.setenv("ENABLE_REAL_TRANSFERS", "true")
    monkeypatch.setenv("ENABLE_CONFERENCE_CALLS", "false")
    monkeypatch.setenv("ENABLE_AUTO_RESPONDER", "true")
    monkeypatch.setenv("LEXICON_PATH", "")
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def settings(mock_env):
    return Settings(_env_file=None)


@pytest.fixture
def practice(settings):
    return load_practice_settings(settings)


@pytest.fixture
async def http_client():
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def job_store():
    return JobStore()


@pytest.fixture
def state_store(settings):
    return FileStateStore(settings.data_dir)


@pytest.fixture
def case_log(settings):
    return CaseLog(settings.log_dir)


@pytest.fixture
def dispatcher(settings, practice, job_store, case_log, http_client):
    telnyx = TelnyxService(http_client, "key", "+15550009999", connection_id="conn-1")
    sendgrid = SendGridService(http_client, "sg-key", "frontdesk@example.com", "AI Front Desk")
    return NotificationDispatcher(
        settings, practice, job_store, case_log, telnyx=telnyx, sendgrid=sendgrid
    )


@pytest.fixture
def receptionist(settings, practice, state_store, dispatcher, case_log):
    return ReceptionistService(settings, practice, state_store, dispatcher, case_log)


@pytest.fixture
async def client(mock_env):
    from app.main import app, lifespan

    async with lifespan(app):
        async with httpx.AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as c:
            yield c
