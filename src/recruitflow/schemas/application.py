"""Candidate applications and assessment results."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .quiz import AssessmentKind


class ApplicationStatus(str, Enum):
    SUBMITTED = "submitted"
    TECHNICAL_REVIEW = "technical_review"
    HR_REVIEW = "hr_review"
    UNDER_REVIEW = "under_review"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEW_COMPLETED = "interview_completed"
    PENDING_DECISION = "pending_decision"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class AssessmentStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    EXPIRED = "expired"


FINISHED_ASSESSMENT = frozenset({AssessmentStatus.COMPLETED, AssessmentStatus.EXPIRED})


class AssessmentResult(BaseModel):
    """Outcome of one timed attempt at a quiz."""

    kind: AssessmentKind
    status: AssessmentStatus = AssessmentStatus.NOT_STARTED
    quiz_id: str | None = None
    score: float | None = None
    max_score: int = 0
    percentage: int | None = None
    passed: bool = False
    started_at: datetime | None = None
    completed_at: datetime | None = None
    time_spent_seconds: int | None = None
    answers: dict[str, Any] = Field(default_factory=dict)
    manual_grading: tuple[str, ...] = ()
    auto_submitted: bool = False

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_ASSESSMENT

    @classmethod
    def not_started(cls, kind: AssessmentKind) -> "AssessmentResult":
        return cls(kind=kind)


class ApplicationDocument(BaseModel):
    """Reference to a document held by the file service."""

    type: Literal["resume", "cover_letter", "portfolio", "certificate", "transcript", "other"] = "resume"
    name: str = ""
    url: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class CandidateInfo(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    phone: str | None = None
    location: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class CandidateSubmission(BaseModel):
    """Data a candidate sends when applying."""

    candidate_id: str
    candidate: CandidateInfo = Field(default_factory=CandidateInfo)
    cover_letter: str | None = None
    documents: tuple[ApplicationDocument, ...] = ()

    model_config = ConfigDict(frozen=True, extra="forbid")


DecisionValue = Literal["accept", "reject", "pending"]


class DecisionInput(BaseModel):
    decision: DecisionValue
    feedback: str | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    next_steps: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class ProjectLeaderDecision(BaseModel):
    decision: DecisionValue
    feedback: str | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    next_steps: str | None = None
    decided_by: str
    decided_at: datetime

    model_config = ConfigDict(frozen=True, extra="forbid")


class TimelineEventType(str, Enum):
    SUBMITTED = "submitted"
    ASSESSMENT_STARTED = "assessment_started"
    ASSESSMENT_COMPLETED = "assessment_completed"
    STATUS_CHANGED = "status_changed"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEW_COMPLETED = "interview_completed"
    DECISION_MADE = "decision_made"
    WITHDRAWN = "withdrawn"


class ApplicationTimelineEvent(BaseModel):
    id: str
    type: TimelineEventType
    title: str
    from_status: ApplicationStatus | None = None
    to_status: ApplicationStatus
    actor_id: str | None = None
    timestamp: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def changes_status(self) -> bool:
        return self.from_status != self.to_status


class Application(BaseModel):
    """A single candidate's submission against one published job."""

    id: str
    job_id: str
    candidate_id: str
    candidate: CandidateInfo = Field(default_factory=CandidateInfo)
    cover_letter: str | None = None
    documents: tuple[ApplicationDocument, ...] = ()

    status: ApplicationStatus = ApplicationStatus.SUBMITTED
    version: int = 1

    technical_assessment: AssessmentResult = Field(
        default_factory=lambda: AssessmentResult.not_started(AssessmentKind.TECHNICAL)
    )
    hr_assessment: AssessmentResult = Field(
        default_factory=lambda: AssessmentResult.not_started(AssessmentKind.HR)
    )
    overall_score: float | None = None

    project_leader_decision: ProjectLeaderDecision | None = None
    timeline: tuple[ApplicationTimelineEvent, ...] = ()

    applied_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _check_overall_score(self) -> "Application":
        if self.overall_score is None:
            return self
        if not (self.technical_assessment.is_finished and self.hr_assessment.is_finished):
            raise ValueError("overall_score requires both assessments to be finished")
        return self

    def assessment(self, kind: AssessmentKind) -> AssessmentResult:
        if kind is AssessmentKind.TECHNICAL:
            return self.technical_assessment
        return self.hr_assessment
