"""Notification service implementations."""

from __future__ import annotations

import structlog

from ..schemas import Role, WorkflowNotification
from .results import Result, Success


class LoggingNotifier:
    """Emit notifications as structured log events."""

    def __init__(self) -> None:
        self._logger = structlog.get_logger(__name__)

    def notify(self, recipient_role: Role, notification: WorkflowNotification) -> Result[None]:
        self._logger.info(
            "notification.sent",
            recipient_role=recipient_role.value,
            type=notification.type,
            title=notification.title,
            priority=notification.priority,
            job_id=notification.related_job_id,
            application_id=notification.related_application_id,
        )
        return Success(None)


class RecordingNotifier:
    """Keep every notification in memory; used by tests and scenario runs."""

    def __init__(self) -> None:
        self.sent: list[tuple[Role, WorkflowNotification]] = []

    def notify(self, recipient_role: Role, notification: WorkflowNotification) -> Result[None]:
        self.sent.append((recipient_role, notification))
        return Success(None)

    def types_for(self, role: Role) -> list[str]:
        return [n.type for r, n in self.sent if r is role]
