"""Core workflow components: role gate, state machines and the assessment engine."""

from __future__ import annotations

from .analytics import JobAnalytics, compute_job_analytics
from .application_workflow import ApplicationWorkflow, progress_percentage
from .assessment import AssessmentEngine, score_question
from .errors import (
    IllegalTransition,
    IncompleteJob,
    PersistenceError,
    PreconditionFailed,
    RecordNotFound,
    StaleWrite,
    Unauthorized,
    WorkflowError,
)
from .job_workflow import JobEvent, JobWorkflow
from .roles import RoleGate
from .ticker import IntervalTicker, ManualTicker, Ticker

__all__ = [
    "ApplicationWorkflow",
    "AssessmentEngine",
    "IllegalTransition",
    "IncompleteJob",
    "IntervalTicker",
    "JobAnalytics",
    "JobEvent",
    "JobWorkflow",
    "ManualTicker",
    "PersistenceError",
    "PreconditionFailed",
    "RecordNotFound",
    "RoleGate",
    "StaleWrite",
    "Ticker",
    "Unauthorized",
    "WorkflowError",
    "compute_job_analytics",
    "progress_percentage",
    "score_question",
]
