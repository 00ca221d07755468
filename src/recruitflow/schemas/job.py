"""Job posting records and their workflow history."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .actor import WorkflowParticipant
from .quiz import Quiz


class JobStatus(str, Enum):
    DRAFT = "draft"
    PENDING_HR_ENHANCEMENT = "pending_hr_enhancement"
    HR_ENHANCEMENT_COMPLETE = "hr_enhancement_complete"
    PENDING_CEO_APPROVAL = "pending_ceo_approval"
    APPROVED = "approved"
    PUBLISHED = "published"
    PAUSED = "paused"
    CLOSED = "closed"
    REJECTED = "rejected"
    ARCHIVED = "archived"


class JobEventType(str, Enum):
    SUBMITTED_FOR_ENHANCEMENT = "submitted_for_enhancement"
    HR_ENHANCED = "hr_enhanced"
    SUBMITTED_FOR_APPROVAL = "submitted_for_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    PUBLISHED = "published"
    PAUSED = "paused"
    RESUMED = "resumed"
    CLOSED = "closed"
    ARCHIVED = "archived"


TechnicalGate = Literal["advisory", "hard"]


class JobWorkflowEvent(BaseModel):
    """One status change in a job's history."""

    id: str
    type: JobEventType
    from_status: JobStatus
    to_status: JobStatus
    actor: WorkflowParticipant
    timestamp: datetime
    notes: str | None = None
    feedback: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class JobDraft(BaseModel):
    """Project Leader input for a new posting."""

    title: str
    department: str = ""
    location: str = ""
    description: str = ""
    employment_type: str = "FULL_TIME"
    skills: tuple[str, ...] = ()
    number_of_positions: int = Field(default=1, ge=1)
    tags: tuple[str, ...] = ()
    technical_quiz: Quiz | None = None
    technical_gate: TechnicalGate = "advisory"

    model_config = ConfigDict(frozen=True, extra="forbid")


class Job(BaseModel):
    """A staffable position moving through the approval pipeline."""

    id: str
    title: str
    department: str = ""
    location: str = ""
    description: str = ""
    employment_type: str = "FULL_TIME"
    skills: tuple[str, ...] = ()
    number_of_positions: int = 1
    tags: tuple[str, ...] = ()

    status: JobStatus = JobStatus.DRAFT
    version: int = 1
    workflow_history: tuple[JobWorkflowEvent, ...] = ()

    project_leader: WorkflowParticipant
    hr_manager: WorkflowParticipant | None = None
    ceo_approver: WorkflowParticipant | None = None

    technical_quiz: Quiz | None = None
    hr_quiz: Quiz | None = None
    technical_gate: TechnicalGate = "advisory"

    views_count: int = 0
    applications_count: int = 0

    created_at: datetime
    updated_at: datetime
    published_at: datetime | None = None
    closed_at: datetime | None = None

    revision_of: str | None = None
    previous_feedback: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def is_accepting_applications(self) -> bool:
        return self.status is JobStatus.PUBLISHED
