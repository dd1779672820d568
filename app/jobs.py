from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from enum import StrEnum

from pydantic import BaseModel

from app.schemas.responses import DispatchReport

JobResult = DispatchReport


class JobStatus(StrEnum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


class Job(BaseModel):
    job_id: str
    status: JobStatus
    task_type: str
    created_at: datetime
    finished_at: datetime | None = None
    call_id: str | None = None
    result: JobResult | None = None
    error: str | None = None


class JobStore:
    def __init__(self, max_jobs: int = 1000, claim_ttl: timedelta = timedelta(days=1)) -> None:
        self._jobs: dict[str, Job] = {}
        # (task_type, call_id) -> (job_id, claimed_at)
        self._by_key: dict[tuple[str, str | None], tuple[str, datetime]] = {}
        self._max_jobs = max_jobs
        self._claim_ttl = claim_ttl

    def _evict(self) -> None:
        cutoff = datetime.now(timezone.utc) - self._claim_ttl
        for key in [k for k, (_, claimed_at) in self._by_key.items() if claimed_at < cutoff]:
            del self._by_key[key]

        if len(self._jobs) <= self._max_jobs:
            return
        # Remove oldest completed/failed jobs first
        candidates = sorted(
            (j for j in self._jobs.values() if j.status in (JobStatus.completed, JobStatus.failed)),
            key=lambda j: j.created_at,
        )
        while len(self._jobs) > self._max_jobs and candidates:
            self._jobs.pop(candidates.pop(0).job_id, None)

    def create_job(self, task_type: str, call_id: str | None = None) -> Job:
        job = Job(
            job_id=uuid.uuid4().hex[:12],
            status=JobStatus.pending,
            task_type=task_type,
            created_at=datetime.now(timezone.utc),
            call_id=call_id,
        )
        self._jobs[job.job_id] = job
        self._by_key[(task_type, call_id)] = (job.job_id, job.created_at)
        self._evict()
        return job

    def get_job(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def find_job(self, task_type: str, call_id: str | None) -> Job | None:
        """Most recent job for a (task_type, call_id) pair, if still retained."""
        entry = self._by_key.get((task_type, call_id))
        return self._jobs.get(entry[0]) if entry else None

    def claim(self, task_type: str, call_id: str) -> Job | None:
        """Create a job unless one already exists for this pair.

        Returns None when the pair was already claimed, so redelivered
        webhooks do not dispatch twice. Claims expire after ``claim_ttl``.
        """
        entry = self._by_key.get((task_type, call_id))
        if entry and entry[1] >= datetime.now(timezone.utc) - self._claim_ttl:
            return None
        return self.create_job(task_type, call_id)

    def mark_running(self, job_id: str) -> None:
        if job := self._jobs.get(job_id):
            job.status = JobStatus.running

    def mark_completed(self, job_id: str, result: JobResult | None) -> None:
        if job := self._jobs.get(job_id):
            job.status = JobStatus.completed
            job.result = result
            job.finished_at = datetime.now(timezone.utc)

    def mark_failed(self, job_id: str, error: str) -> None:
        if job := self._jobs.get(job_id):
            job.status = JobStatus.failed
            job.error = error
            job.finished_at = datetime.now(timezone.utc)
