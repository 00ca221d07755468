"""Collaborator interfaces consumed by the workflow core."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..schemas import Application, Job, Role, WorkflowNotification
from .filesystem import JsonFileRepository
from .memory import InMemoryRepository
from .notify import LoggingNotifier, RecordingNotifier
from .results import Failure, Result, Success, unwrap


@runtime_checkable
class WorkflowRepository(Protocol):
    """Persistence contract for jobs and applications.

    ``save_*`` must fail with ``StaleWrite`` when the stored version differs
    from ``expected_version`` (``None`` meaning the record must not exist yet).
    """

    def load_job(self, job_id: str) -> Result[Job]:
        """Return the latest stored job."""

    def save_job(self, job: Job, expected_version: int | None) -> Result[Job]:
        """Store ``job`` if the stored version still matches, keeping stored counters."""

    def increment_job_counter(self, job_id: str, counter: str) -> Result[Job]:
        """Add one to a view/application counter without touching ``version``."""

    def load_application(self, application_id: str) -> Result[Application]:
        """Return the latest stored application."""

    def save_application(self, application: Application, expected_version: int | None) -> Result[Application]:
        """Store ``application`` if the stored version still matches."""

    def list_applications(self, job_id: str) -> Result[list[Application]]:
        """Return every application submitted against ``job_id``."""


@runtime_checkable
class Notifier(Protocol):
    """Fire-and-forget notification service."""

    def notify(self, recipient_role: Role, notification: WorkflowNotification) -> Result[None]:
        """Deliver ``notification`` to everyone holding ``recipient_role``."""


__all__ = [
    "Failure",
    "InMemoryRepository",
    "JsonFileRepository",
    "LoggingNotifier",
    "Notifier",
    "RecordingNotifier",
    "Result",
    "Success",
    "WorkflowRepository",
    "unwrap",
]
