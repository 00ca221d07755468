from __future__ import annotations

from datetime import timedelta

import pendulum

from recruitflow.core import compute_job_analytics
from recruitflow.schemas import (
    ActorContext,
    Application,
    AssessmentKind,
    AssessmentResult,
    AssessmentStatus,
    Job,
    JobEventType,
    JobStatus,
    JobWorkflowEvent,
    ProjectLeaderDecision,
    Role,
    WorkflowParticipant,
)

START = pendulum.datetime(2025, 1, 1, tz="UTC")
PL = WorkflowParticipant(id="pl-1", role=Role.PROJECT_LEADER)


def event(event_type: JobEventType, source: JobStatus, target: JobStatus, hours: float) -> JobWorkflowEvent:
    return JobWorkflowEvent(
        id=f"evt-{event_type.value}",
        type=event_type,
        from_status=source,
        to_status=target,
        actor=WorkflowParticipant.from_context(ActorContext.system(), Role.SYSTEM),
        timestamp=START + timedelta(hours=hours),
    )


def result(kind: AssessmentKind, percentage: int, passed: bool) -> AssessmentResult:
    return AssessmentResult(kind=kind, status=AssessmentStatus.COMPLETED, percentage=percentage, passed=passed)


def test_stage_metrics_measure_hours_from_creation():
    job = Job(
        id="job-1",
        title="SRE",
        status=JobStatus.PUBLISHED,
        project_leader=PL,
        created_at=START,
        updated_at=START,
        workflow_history=(
            event(JobEventType.SUBMITTED_FOR_ENHANCEMENT, JobStatus.DRAFT, JobStatus.PENDING_HR_ENHANCEMENT, 1),
            event(JobEventType.HR_ENHANCED, JobStatus.PENDING_HR_ENHANCEMENT, JobStatus.HR_ENHANCEMENT_COMPLETE, 5),
            event(JobEventType.APPROVED, JobStatus.HR_ENHANCEMENT_COMPLETE, JobStatus.APPROVED, 24),
            event(JobEventType.PUBLISHED, JobStatus.APPROVED, JobStatus.PUBLISHED, 30.5),
        ),
    )

    analytics = compute_job_analytics(job, [])

    assert analytics.stages.time_to_hr_enhancement == 5
    assert analytics.stages.time_to_ceo_decision == 24
    assert analytics.stages.time_to_publication == 30.5
    assert analytics.stages.total_workflow_time == 30.5
    assert analytics.applications.total_applications == 0
    assert analytics.applications.technical_pass_rate is None


def test_application_metrics():
    job = Job(id="job-1", title="SRE", project_leader=PL, created_at=START, updated_at=START)
    decided = ProjectLeaderDecision(decision="accept", decided_by="pl-1", decided_at=START.add(days=3))
    applications = [
        Application(
            id="app-1",
            job_id="job-1",
            candidate_id="c1",
            technical_assessment=result(AssessmentKind.TECHNICAL, 90, True),
            hr_assessment=result(AssessmentKind.HR, 70, True),
            overall_score=80.0,
            project_leader_decision=decided,
            applied_at=START,
            updated_at=START,
        ),
        Application(
            id="app-2",
            job_id="job-1",
            candidate_id="c2",
            technical_assessment=result(AssessmentKind.TECHNICAL, 40, False),
            applied_at=START,
            updated_at=START,
        ),
        Application(id="app-3", job_id="other", candidate_id="c3", applied_at=START, updated_at=START),
    ]

    metrics = compute_job_analytics(job, applications).applications

    assert metrics.total_applications == 2
    assert metrics.technical_pass_rate == 50.0
    assert metrics.hr_pass_rate == 100.0
    assert metrics.overall_pass_rate == 100.0
    assert metrics.average_overall_score == 80.0
    assert metrics.average_days_to_decision == 3.0
