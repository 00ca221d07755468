"""Pydantic schema definitions for workflow records."""

from __future__ import annotations

from .actor import Actor, ActorContext, Role, WorkflowParticipant
from .application import (
    Application,
    ApplicationDocument,
    ApplicationStatus,
    ApplicationTimelineEvent,
    AssessmentResult,
    AssessmentStatus,
    CandidateInfo,
    CandidateSubmission,
    DecisionInput,
    ProjectLeaderDecision,
    TimelineEventType,
)
from .job import Job, JobDraft, JobEventType, JobStatus, JobWorkflowEvent
from .notification import WorkflowNotification
from .quiz import AssessmentKind, Question, QuestionType, Quiz

__all__ = [
    "Actor",
    "ActorContext",
    "Application",
    "ApplicationDocument",
    "ApplicationStatus",
    "ApplicationTimelineEvent",
    "AssessmentKind",
    "AssessmentResult",
    "AssessmentStatus",
    "CandidateInfo",
    "CandidateSubmission",
    "DecisionInput",
    "Job",
    "JobDraft",
    "JobEventType",
    "JobStatus",
    "JobWorkflowEvent",
    "ProjectLeaderDecision",
    "Question",
    "QuestionType",
    "Quiz",
    "Role",
    "TimelineEventType",
    "WorkflowNotification",
    "WorkflowParticipant",
]
