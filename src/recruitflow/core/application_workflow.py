"""Application status machine: assessments, review and the final decision."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

import pendulum
import structlog

from ..schemas import (
    ActorContext,
    Application,
    ApplicationStatus,
    ApplicationTimelineEvent,
    AssessmentKind,
    AssessmentResult,
    AssessmentStatus,
    CandidateSubmission,
    DecisionInput,
    Job,
    JobStatus,
    ProjectLeaderDecision,
    Role,
    TimelineEventType,
)
from .errors import IllegalTransition, PreconditionFailed, Unauthorized
from .ids import new_id
from .roles import APPLICATION_TERMINAL, RoleGate

Clock = Callable[[], datetime]

_S = ApplicationStatus

PROGRESS_ORDER: tuple[ApplicationStatus, ...] = (
    _S.SUBMITTED,
    _S.TECHNICAL_REVIEW,
    _S.HR_REVIEW,
    _S.UNDER_REVIEW,
    _S.INTERVIEW_SCHEDULED,
    _S.INTERVIEW_COMPLETED,
    _S.PENDING_DECISION,
    _S.ACCEPTED,
)

_TIMELINE_TYPES: dict[ApplicationStatus, TimelineEventType] = {
    _S.INTERVIEW_SCHEDULED: TimelineEventType.INTERVIEW_SCHEDULED,
    _S.INTERVIEW_COMPLETED: TimelineEventType.INTERVIEW_COMPLETED,
    _S.WITHDRAWN: TimelineEventType.WITHDRAWN,
}

_DECISION_TARGETS = {"accept": _S.ACCEPTED, "reject": _S.REJECTED}
# Edges a candidate triggers by taking assessments; only the applicant or SYSTEM may drive them.
_ASSESSMENT_STAGES = frozenset({_S.TECHNICAL_REVIEW, _S.HR_REVIEW, _S.UNDER_REVIEW})
_LABELS = {AssessmentKind.TECHNICAL: "Technical", AssessmentKind.HR: "HR"}


def progress_percentage(status: ApplicationStatus) -> float:
    """Display progress; rejected and withdrawn applications count as finished."""
    if status in (_S.REJECTED, _S.WITHDRAWN):
        return 100.0
    index = PROGRESS_ORDER.index(status)
    return (index + 1) / len(PROGRESS_ORDER) * 100


def overall_score(application: Application) -> float | None:
    technical = application.technical_assessment
    hr = application.hr_assessment
    if not (technical.is_finished and hr.is_finished):
        return None
    return round(((technical.percentage or 0) + (hr.percentage or 0)) / 2, 1)


class ApplicationWorkflow:
    """Transition function for applications; copy-on-write like :class:`JobWorkflow`."""

    def __init__(self, gate: RoleGate, *, clock: Clock | None = None) -> None:
        self._gate = gate
        self._clock = clock or (lambda: pendulum.now("UTC"))
        self._logger = structlog.get_logger(__name__)

    def create(self, job: Job, submission: CandidateSubmission) -> Application:
        if job.status is not JobStatus.PUBLISHED:
            raise PreconditionFailed("job.status", f"job {job.id} is {job.status.value}, not published")
        now = self._clock()
        event = ApplicationTimelineEvent(
            id=new_id("tl"),
            type=TimelineEventType.SUBMITTED,
            title="Application submitted",
            from_status=None,
            to_status=_S.SUBMITTED,
            actor_id=submission.candidate_id,
            timestamp=now,
        )
        application = Application(
            id=new_id("app"),
            job_id=job.id,
            candidate_id=submission.candidate_id,
            candidate=submission.candidate,
            cover_letter=submission.cover_letter,
            documents=submission.documents,
            timeline=(event,),
            applied_at=now,
            updated_at=now,
        )
        self._logger.info("application.submitted", application_id=application.id, job_id=job.id)
        return application

    def transition(
        self,
        application: Application,
        target: ApplicationStatus,
        context: ActorContext,
        *,
        job: Job | None = None,
        title: str | None = None,
        event_type: TimelineEventType | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Application:
        current = application.status
        roles = context.roles

        if not any(self._gate.can_transition(roles, source, target) for source in _S):
            raise Unauthorized(context.actor_id, roles, current, target)
        if not self._gate.allowed_roles(current, target):
            raise IllegalTransition(current, target, record_id=application.id)
        if not self._gate.can_transition(roles, current, target):
            raise Unauthorized(context.actor_id, roles, current, target)
        if target is _S.WITHDRAWN and context.actor_id != application.candidate_id:
            raise Unauthorized(
                context.actor_id, roles, current, target, reason="only the applicant can withdraw"
            )
        if (
            target in _ASSESSMENT_STAGES
            and Role.SYSTEM not in roles
            and context.actor_id != application.candidate_id
        ):
            raise Unauthorized(
                context.actor_id, roles, current, target, reason="only the applicant advances their assessments"
            )

        self._check_preconditions(application, target, job)

        event = self._event(
            application,
            event_type or _TIMELINE_TYPES.get(target, TimelineEventType.STATUS_CHANGED),
            title or f"Status changed to {target.value}",
            current,
            target,
            context,
            metadata,
        )
        self._logger.info(
            "application.transition",
            application_id=application.id,
            from_status=current.value,
            to_status=target.value,
            actor_id=context.actor_id,
        )
        return self._append(application, event, {"status": target})

    def start_assessment(
        self,
        application: Application,
        result: AssessmentResult,
        context: ActorContext,
    ) -> Application:
        """Store a freshly started attempt; starting the technical quiz leaves ``submitted``."""
        self.require_applicant(application, context)
        kind = result.kind
        if application.assessment(kind).status is not AssessmentStatus.NOT_STARTED:
            raise PreconditionFailed(f"{kind.value}_assessment", "assessment was already started")

        if kind is AssessmentKind.TECHNICAL and application.status is _S.SUBMITTED:
            application = self.transition(
                application,
                _S.TECHNICAL_REVIEW,
                context,
                title="Technical assessment started",
                event_type=TimelineEventType.ASSESSMENT_STARTED,
            )
            return self._with_result(application, result)

        expected = _S.TECHNICAL_REVIEW if kind is AssessmentKind.TECHNICAL else _S.HR_REVIEW
        if application.status is not expected:
            raise PreconditionFailed(
                "status", f"{kind.value} assessment cannot start while {application.status.value}"
            )
        event = self._event(
            application,
            TimelineEventType.ASSESSMENT_STARTED,
            f"{_LABELS[kind]} assessment started",
            application.status,
            application.status,
            context,
            None,
        )
        return self._append(application, event, {_slot(kind): result})

    def save_progress(self, application: Application, result: AssessmentResult) -> Application:
        """Persist recorded answers of a running attempt without touching status."""
        stored = application.assessment(result.kind)
        if stored.is_finished or result.status is not AssessmentStatus.IN_PROGRESS:
            return application
        return self._with_result(application, result)

    def record_result(
        self,
        application: Application,
        result: AssessmentResult,
        context: ActorContext,
        *,
        job: Job | None = None,
    ) -> Application:
        """Write a finished attempt and advance the status where the result allows.

        A slot that already holds a finished result is left unchanged, so a late
        timer or duplicate submit cannot score twice.
        """
        if Role.SYSTEM not in context.roles:
            self.require_applicant(application, context)
        kind = result.kind
        if application.assessment(kind).is_finished or not result.is_finished:
            return application

        updated = self._with_result(application, result, bump=False)
        event = self._event(
            updated,
            TimelineEventType.ASSESSMENT_COMPLETED,
            f"{_LABELS[kind]} assessment {result.status.value}",
            updated.status,
            updated.status,
            context,
            {
                "kind": kind.value,
                "score": result.score,
                "percentage": result.percentage,
                "passed": result.passed,
                "auto_submitted": result.auto_submitted,
            },
        )
        updated = self._append(updated, event, {"overall_score": overall_score(updated)})

        if result.status is not AssessmentStatus.COMPLETED:
            return updated
        if kind is AssessmentKind.TECHNICAL and updated.status is _S.TECHNICAL_REVIEW:
            if _hard_gate_failed(updated, job):
                return self.transition(
                    updated, _S.REJECTED, ActorContext.system(), job=job,
                    title="Technical assessment below required score",
                )
            return self.transition(updated, _S.HR_REVIEW, context, job=job)
        if kind is AssessmentKind.HR and updated.status is _S.HR_REVIEW:
            return self.transition(updated, _S.UNDER_REVIEW, context, job=job)
        return updated

    def record_decision(
        self,
        application: Application,
        decision: DecisionInput,
        context: ActorContext,
        job: Job,
    ) -> Application:
        target = _DECISION_TARGETS.get(decision.decision, _S.PENDING_DECISION)
        if Role.PROJECT_LEADER not in context.roles or context.actor_id != job.project_leader.id:
            raise Unauthorized(
                context.actor_id, context.roles, application.status, target,
                reason="only the job's project leader can decide",
            )
        if application.status in (_S.UNDER_REVIEW, _S.INTERVIEW_COMPLETED):
            application = self.transition(application, _S.PENDING_DECISION, context, job=job)
        if application.status is not _S.PENDING_DECISION:
            raise IllegalTransition(application.status, target, record_id=application.id)

        now = self._timestamp(application)
        record = ProjectLeaderDecision(
            decision=decision.decision,
            feedback=decision.feedback,
            rating=decision.rating,
            next_steps=decision.next_steps,
            decided_by=context.actor_id,
            decided_at=now,
        )
        event = self._event(
            application,
            TimelineEventType.DECISION_MADE,
            f"Decision: {decision.decision}",
            application.status,
            application.status,
            context,
            {"decision": decision.decision, "rating": decision.rating},
        )
        application = self._append(application, event, {"project_leader_decision": record})
        if target is _S.PENDING_DECISION:
            return application
        return self.transition(application, target, context, job=job)

    def withdraw(self, application: Application, context: ActorContext) -> Application:
        return self.transition(application, _S.WITHDRAWN, context, title="Application withdrawn")

    def _check_preconditions(
        self, application: Application, target: ApplicationStatus, job: Job | None
    ) -> None:
        current = application.status
        if current is _S.TECHNICAL_REVIEW and target in (_S.HR_REVIEW, _S.REJECTED):
            if application.technical_assessment.status is not AssessmentStatus.COMPLETED:
                raise PreconditionFailed("technical_assessment", "technical assessment is not completed")
            if target is _S.HR_REVIEW and _hard_gate_failed(application, job):
                raise PreconditionFailed(
                    "technical_assessment", "technical assessment is a hard gate and was not passed"
                )
        elif current is _S.HR_REVIEW and target is _S.UNDER_REVIEW:
            if application.hr_assessment.status is not AssessmentStatus.COMPLETED:
                raise PreconditionFailed("hr_assessment", "HR assessment is not completed")
        elif current is _S.PENDING_DECISION and target in (_S.ACCEPTED, _S.REJECTED):
            decision = application.project_leader_decision
            if decision is None or _DECISION_TARGETS.get(decision.decision) is not target:
                raise PreconditionFailed("project_leader_decision", f"no matching decision for {target.value}")
            if job is None or decision.decided_by != job.project_leader.id:
                raise PreconditionFailed(
                    "project_leader_decision", "decision must come from the job's project leader"
                )

    def require_applicant(self, application: Application, context: ActorContext) -> None:
        """Refuse anyone but the candidate who applied."""
        if Role.CANDIDATE not in context.roles or context.actor_id != application.candidate_id:
            raise Unauthorized(
                context.actor_id, context.roles, application.status, application.status,
                reason="only the applicant can take assessments",
            )

    def _with_result(self, application: Application, result: AssessmentResult, *, bump: bool = True) -> Application:
        update: dict[str, Any] = {_slot(result.kind): result}
        if bump:
            update["version"] = application.version + 1
            update["updated_at"] = self._timestamp(application)
        return application.model_copy(update=update)

    def _event(
        self,
        application: Application,
        event_type: TimelineEventType,
        title: str,
        from_status: ApplicationStatus,
        to_status: ApplicationStatus,
        context: ActorContext,
        metadata: dict[str, Any] | None,
    ) -> ApplicationTimelineEvent:
        return ApplicationTimelineEvent(
            id=new_id("tl"),
            type=event_type,
            title=title,
            from_status=from_status,
            to_status=to_status,
            actor_id=context.actor_id,
            timestamp=self._timestamp(application),
            metadata=metadata or {},
        )

    def _append(
        self, application: Application, event: ApplicationTimelineEvent, update: dict[str, Any]
    ) -> Application:
        return application.model_copy(
            update={
                **update,
                "timeline": application.timeline + (event,),
                "version": application.version + 1,
                "updated_at": event.timestamp,
            }
        )

    def _timestamp(self, application: Application) -> datetime:
        now = self._clock()
        if application.timeline and application.timeline[-1].timestamp > now:
            return application.timeline[-1].timestamp
        return now


def _slot(kind: AssessmentKind) -> str:
    return "technical_assessment" if kind is AssessmentKind.TECHNICAL else "hr_assessment"


def _hard_gate_failed(application: Application, job: Job | None) -> bool:
    return (
        job is not None
        and job.technical_gate == "hard"
        and application.technical_assessment.status is AssessmentStatus.COMPLETED
        and not application.technical_assessment.passed
    )


__all__ = [
    "APPLICATION_TERMINAL",
    "ApplicationWorkflow",
    "PROGRESS_ORDER",
    "overall_score",
    "progress_percentage",
]
