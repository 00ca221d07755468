"""Workflow and application metrics for a single job."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from ..schemas import Application, AssessmentStatus, Job, JobEventType, JobStatus


@dataclass(slots=True)
class StageMetrics:
    """Hours spent reaching each pipeline milestone, measured from creation."""

    time_to_hr_enhancement: float | None = None
    time_to_ceo_decision: float | None = None
    time_to_publication: float | None = None
    total_workflow_time: float | None = None


@dataclass(slots=True)
class ApplicationMetrics:
    total_applications: int = 0
    technical_pass_rate: float | None = None
    hr_pass_rate: float | None = None
    overall_pass_rate: float | None = None
    average_overall_score: float | None = None
    average_days_to_decision: float | None = None


@dataclass(slots=True)
class JobAnalytics:
    job_id: str
    status: JobStatus
    stages: StageMetrics = field(default_factory=StageMetrics)
    applications: ApplicationMetrics = field(default_factory=ApplicationMetrics)


def compute_job_analytics(job: Job, applications: Iterable[Application]) -> JobAnalytics:
    related = [app for app in applications if app.job_id == job.id]
    return JobAnalytics(
        job_id=job.id,
        status=job.status,
        stages=_stage_metrics(job),
        applications=_application_metrics(related),
    )


def _stage_metrics(job: Job) -> StageMetrics:
    first: dict[JobEventType, datetime] = {}
    for event in job.workflow_history:
        first.setdefault(event.type, event.timestamp)

    decided = first.get(JobEventType.APPROVED) or first.get(JobEventType.REJECTED)
    published = first.get(JobEventType.PUBLISHED)
    final = published or job.closed_at
    return StageMetrics(
        time_to_hr_enhancement=_hours(job.created_at, first.get(JobEventType.HR_ENHANCED)),
        time_to_ceo_decision=_hours(job.created_at, decided),
        time_to_publication=_hours(job.created_at, published),
        total_workflow_time=_hours(job.created_at, final),
    )


def _application_metrics(applications: list[Application]) -> ApplicationMetrics:
    technical = [a.technical_assessment for a in applications if a.technical_assessment.status is AssessmentStatus.COMPLETED]
    hr = [a.hr_assessment for a in applications if a.hr_assessment.status is AssessmentStatus.COMPLETED]
    both = [
        a for a in applications
        if a.technical_assessment.status is AssessmentStatus.COMPLETED
        and a.hr_assessment.status is AssessmentStatus.COMPLETED
    ]
    scores = [a.overall_score for a in applications if a.overall_score is not None]
    decision_days = [
        (a.project_leader_decision.decided_at - a.applied_at).total_seconds() / 86400
        for a in applications
        if a.project_leader_decision is not None and a.project_leader_decision.decision != "pending"
    ]
    return ApplicationMetrics(
        total_applications=len(applications),
        technical_pass_rate=_rate(sum(r.passed for r in technical), len(technical)),
        hr_pass_rate=_rate(sum(r.passed for r in hr), len(hr)),
        overall_pass_rate=_rate(
            sum(a.technical_assessment.passed and a.hr_assessment.passed for a in both), len(both)
        ),
        average_overall_score=_mean(scores),
        average_days_to_decision=_mean(decision_days),
    )


def _hours(start: datetime, end: datetime | None) -> float | None:
    if end is None:
        return None
    return round((end - start).total_seconds() / 3600, 2)


def _rate(numerator: int, denominator: int) -> float | None:
    if not denominator:
        return None
    return round(numerator / denominator * 100, 1)


def _mean(values: list[float]) -> float | None:
    if not values:
        return None
    return round(sum(values) / len(values), 2)


__all__ = ["ApplicationMetrics", "JobAnalytics", "StageMetrics", "compute_job_analytics"]
