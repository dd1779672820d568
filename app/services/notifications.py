import asyncio
import logging

from app.config import Settings
from app.jobs import Job, JobStore
from app.mappers.notification_builder import (
    Channel,
    DispatchStage,
    build_case_email,
    plan_channels,
    render_template,
    select_on_call_doctor,
    template_data,
    to_e164,
)
from app.schemas.call import CaseSummary, UrgencyTier
from app.schemas.practice import PracticeSettings
from app.schemas.responses import DispatchReport, NotificationResult
from app.services.case_log import CaseLog
from app.services.sendgrid import SendGridService
from app.services.telnyx import TelnyxService

logger = logging.getLogger(__name__)

ALERT_TASK = "emergency_alert"
DISPATCH_TASK = "case_dispatch"


class NotificationDispatcher:
    """Fans a case out to the doctor, staff and patient.

    Every send returns a ``NotificationResult``; provider errors are logged
    and reported as failed results, never raised.
    """

    def __init__(
        self,
        settings: Settings,
        practice: PracticeSettings,
        jobs: JobStore,
        case_log: CaseLog,
        telnyx: TelnyxService | None = None,
        sendgrid: SendGridService | None = None,
    ):
        self._settings = settings
        self._practice = practice
        self._jobs = jobs
        self._case_log = case_log
        self._telnyx = telnyx
        self._sendgrid = sendgrid
        self._tasks: set[asyncio.Task] = set()

    @property
    def sms_enabled(self) -> bool:
        return self._settings.enable_sms_notifications and self._telnyx is not None

    async def send_sms(self, to: str | None, body: str, channel: Channel) -> NotificationResult:
        if self._telnyx is None:
            return NotificationResult(channel=channel, success=False, error="SMS not configured")
        number = to_e164(to)
        if not number:
            return NotificationResult(channel=channel, success=False, error="No phone number")
        try:
            message = await self._telnyx.send_sms(number, body)
        except Exception as exc:
            logger.exception("SMS (%s) to %s failed", channel, number)
            return NotificationResult(channel=channel, success=False, error=str(exc))
        return NotificationResult(channel=channel, success=True, id=message.id or None)

    async def send_email(
        self, to: str | None, subject: str, text: str, html: str | None = None
    ) -> NotificationResult:
        channel = Channel.staff_email
        if self._sendgrid is None:
            return NotificationResult(channel=channel, success=False, error="Email not configured")
        if not to:
            return NotificationResult(channel=channel, success=False, error="No staff email configured")
        try:
            message_id = await self._sendgrid.send_email(to, subject, text, html)
        except Exception as exc:
            logger.exception("Email to %s failed", to)
            return NotificationResult(channel=channel, success=False, error=str(exc))
        return NotificationResult(channel=channel, success=True, id=message_id)

    def _plan(self, case: CaseSummary, stage: DispatchStage, doctor: str | None) -> list[Channel]:
        return plan_channels(
            case.classification,
            stage,
            sms_enabled=self.sms_enabled,
            patient_sms_enabled=self._settings.enable_patient_sms,
            has_doctor_phone=bool(doctor),
            has_patient_phone=bool(case.callback_number or case.caller_phone),
        )

    async def alert_emergency_detected(self, case: CaseSummary) -> DispatchReport:
        """Page the on-call doctor as soon as an emergency is heard."""
        doctor = select_on_call_doctor(self._practice, case.timestamp)
        data = template_data(case, self._practice)
        report = DispatchReport(
            call_id=case.call_id,
            classification=case.classification,
            stage=DispatchStage.detected,
        )
        for channel in self._plan(case, DispatchStage.detected, doctor):
            if channel == Channel.doctor_sms:
                body = render_template(self._settings.sms_template_emergency_alert, data)
                report.results.append(await self.send_sms(doctor, body, channel))
        self._log_report(report)
        return report

    async def dispatch_case(self, case: CaseSummary) -> DispatchReport:
        doctor = select_on_call_doctor(self._practice, case.timestamp)
        data = template_data(case, self._practice)
        report = DispatchReport(
            call_id=case.call_id,
            classification=case.classification,
            stage=DispatchStage.completed,
        )

        for channel in self._plan(case, DispatchStage.completed, doctor):
            if channel == Channel.doctor_sms:
                body = render_template(self._settings.sms_template_emergency_doctor, data)
                result = await self.send_sms(doctor, body, channel)
            elif channel == Channel.staff_email:
                email = build_case_email(case, self._practice)
                result = await self.send_email(
                    self._practice.notification_email, email.subject, email.text, email.html
                )
            else:
                template = (
                    self._settings.sms_template_emergency_patient
                    if case.classification == UrgencyTier.emergency
                    else self._settings.sms_template_nonemergency_confirmation
                )
                result = await self.send_sms(
                    case.callback_number or case.caller_phone,
                    render_template(template, data),
                    channel,
                )
            report.results.append(result)

        self._log_report(report)
        return report

    def _log_report(self, report: DispatchReport) -> None:
        failed = [r.channel for r in report.results if not r.success]
        logger.info(
            "Dispatch %s/%s for call %s: %d/%d sent",
            report.classification,
            report.stage,
            report.call_id,
            report.succeeded,
            len(report.results),
        )
        if failed:
            logger.warning("Failed channels for call %s: %s", report.call_id, failed)

    def schedule_alert(self, case: CaseSummary) -> Job | None:
        return self._schedule(ALERT_TASK, case)

    def schedule_dispatch(self, case: CaseSummary) -> Job | None:
        return self._schedule(DISPATCH_TASK, case)

    def _schedule(self, task_type: str, case: CaseSummary) -> Job | None:
        """Start a background send unless this call already had one of this kind."""
        job = self._jobs.claim(task_type, case.call_id)
        if job is None:
            logger.info("Skipping duplicate %s for call %s", task_type, case.call_id)
            return None
        task = asyncio.create_task(self._run(job.job_id, task_type, case))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job

    async def _run(self, job_id: str, task_type: str, case: CaseSummary) -> None:
        self._jobs.mark_running(job_id)
        try:
            if task_type == ALERT_TASK:
                report = await self.alert_emergency_detected(case)
            else:
                report = await self.dispatch_case(case)
                await self._case_log.record_case(case)
            await self._case_log.write(
                task_type,
                case.call_id,
                classification=case.classification,
                results=[r.model_dump(mode="json") for r in report.results],
            )
            self._jobs.mark_completed(job_id, report)
        except Exception as exc:
            logger.exception("%s job %s failed", task_type, job_id)
            self._jobs.mark_failed(job_id, str(exc))

    async def drain(self) -> None:
        """Wait for every in-flight background send."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
