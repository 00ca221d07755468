"""In-process repository keeping the latest version of each record."""

from __future__ import annotations

import threading

from ..core.errors import RecordNotFound, StaleWrite
from ..schemas import Application, Job
from .results import Failure, Result, Success

# Engagement counters change outside the workflow and never bump Job.version.
JOB_COUNTERS = ("views_count", "applications_count")


class InMemoryRepository:
    """Dictionary-backed store with optimistic version checks."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[str, Job] = {}
        self._applications: dict[str, Application] = {}

    def load_job(self, job_id: str) -> Result[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            return Failure(RecordNotFound("job", job_id))
        return Success(job)

    def save_job(self, job: Job, expected_version: int | None) -> Result[Job]:
        with self._lock:
            stored = self._jobs.get(job.id)
            error = _check_version(job.id, stored, expected_version, "job")
            if error is not None:
                return Failure(error)
            job = keep_counters(job, stored)
            self._jobs[job.id] = job
        return Success(job)

    def increment_job_counter(self, job_id: str, counter: str) -> Result[Job]:
        _require_counter(counter)
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return Failure(RecordNotFound("job", job_id))
            job = job.model_copy(update={counter: getattr(job, counter) + 1})
            self._jobs[job_id] = job
        return Success(job)

    def load_application(self, application_id: str) -> Result[Application]:
        with self._lock:
            application = self._applications.get(application_id)
        if application is None:
            return Failure(RecordNotFound("application", application_id))
        return Success(application)

    def save_application(self, application: Application, expected_version: int | None) -> Result[Application]:
        with self._lock:
            error = _check_version(
                application.id, self._applications.get(application.id), expected_version, "application"
            )
            if error is not None:
                return Failure(error)
            self._applications[application.id] = application
        return Success(application)

    def list_applications(self, job_id: str) -> Result[list[Application]]:
        with self._lock:
            found = [app for app in self._applications.values() if app.job_id == job_id]
        return Success(found)

    def list_jobs(self) -> Result[list[Job]]:
        with self._lock:
            return Success(list(self._jobs.values()))


def _check_version(
    record_id: str,
    stored: Job | Application | None,
    expected_version: int | None,
    kind: str,
) -> Exception | None:
    if expected_version is None:
        if stored is not None:
            return StaleWrite(record_id, None, stored.version)
        return None
    if stored is None:
        return RecordNotFound(kind, record_id)
    if stored.version != expected_version:
        return StaleWrite(record_id, expected_version, stored.version)
    return None


def keep_counters(job: Job, stored: Job | None) -> Job:
    """Carry the stored counters over a workflow save made from an older read."""
    if stored is None:
        return job
    return job.model_copy(update={name: getattr(stored, name) for name in JOB_COUNTERS})


def _require_counter(counter: str) -> None:
    if counter not in JOB_COUNTERS:
        raise ValueError(f"Unknown job counter {counter!r}")
