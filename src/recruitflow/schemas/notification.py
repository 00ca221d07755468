from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

from .actor import Role

NotificationType = Literal[
    "hr_enhancement_required",
    "ceo_approval_required",
    "job_approved",
    "job_rejected",
    "job_published",
    "application_received",
    "assessment_completed",
    "decision_required",
]

Priority = Literal["low", "medium", "high", "urgent"]


class WorkflowNotification(BaseModel):
    """Message handed to the notification service after a committed change."""

    id: str
    type: NotificationType
    title: str
    message: str
    recipient_role: Role
    recipient_id: str | None = None
    related_job_id: str | None = None
    related_application_id: str | None = None
    priority: Priority = "medium"
    action_required: bool = False
    created_at: datetime

    model_config = ConfigDict(frozen=True, extra="forbid")
