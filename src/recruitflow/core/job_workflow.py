"""Job posting workflow: draft through approval to publication."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable

import pendulum
import structlog

from ..schemas import (
    ActorContext,
    AssessmentKind,
    Job,
    JobDraft,
    JobEventType,
    JobStatus,
    JobWorkflowEvent,
    Quiz,
    Role,
    WorkflowParticipant,
)
from .errors import IllegalTransition, IncompleteJob, PreconditionFailed, Unauthorized
from .ids import new_id
from .roles import RoleGate

Clock = Callable[[], datetime]


class JobEvent(str, Enum):
    SUBMIT_FOR_ENHANCEMENT = "submit_for_enhancement"
    COMPLETE_ENHANCEMENT = "complete_enhancement"
    SUBMIT_FOR_APPROVAL = "submit_for_approval"
    APPROVE = "approve"
    REJECT = "reject"
    PUBLISH = "publish"
    PAUSE = "pause"
    RESUME = "resume"
    CLOSE = "close"
    ARCHIVE = "archive"


@dataclass(frozen=True, slots=True)
class JobEdge:
    sources: frozenset[JobStatus]
    target: JobStatus
    history_type: JobEventType


_S = JobStatus
_CEO_QUEUE = frozenset({_S.HR_ENHANCEMENT_COMPLETE, _S.PENDING_CEO_APPROVAL})

JOB_EDGES: dict[JobEvent, JobEdge] = {
    JobEvent.SUBMIT_FOR_ENHANCEMENT: JobEdge(
        frozenset({_S.DRAFT}), _S.PENDING_HR_ENHANCEMENT, JobEventType.SUBMITTED_FOR_ENHANCEMENT
    ),
    JobEvent.COMPLETE_ENHANCEMENT: JobEdge(
        frozenset({_S.PENDING_HR_ENHANCEMENT}), _S.HR_ENHANCEMENT_COMPLETE, JobEventType.HR_ENHANCED
    ),
    JobEvent.SUBMIT_FOR_APPROVAL: JobEdge(
        frozenset({_S.HR_ENHANCEMENT_COMPLETE}), _S.PENDING_CEO_APPROVAL, JobEventType.SUBMITTED_FOR_APPROVAL
    ),
    JobEvent.APPROVE: JobEdge(_CEO_QUEUE, _S.APPROVED, JobEventType.APPROVED),
    JobEvent.REJECT: JobEdge(_CEO_QUEUE, _S.REJECTED, JobEventType.REJECTED),
    JobEvent.PUBLISH: JobEdge(frozenset({_S.APPROVED}), _S.PUBLISHED, JobEventType.PUBLISHED),
    JobEvent.PAUSE: JobEdge(frozenset({_S.PUBLISHED}), _S.PAUSED, JobEventType.PAUSED),
    JobEvent.RESUME: JobEdge(frozenset({_S.PAUSED}), _S.PUBLISHED, JobEventType.RESUMED),
    JobEvent.CLOSE: JobEdge(frozenset({_S.PUBLISHED, _S.PAUSED}), _S.CLOSED, JobEventType.CLOSED),
    JobEvent.ARCHIVE: JobEdge(frozenset({_S.REJECTED, _S.CLOSED}), _S.ARCHIVED, JobEventType.ARCHIVED),
}

# Statuses in which the technical quiz may still be replaced.
TECHNICAL_QUIZ_EDITABLE = frozenset(
    {_S.DRAFT, _S.PENDING_HR_ENHANCEMENT, _S.HR_ENHANCEMENT_COMPLETE, _S.PENDING_CEO_APPROVAL}
)

_ROLE_PREFERENCE = (Role.CEO, Role.HR, Role.PROJECT_LEADER, Role.SYSTEM, Role.CANDIDATE)


class JobWorkflow:
    """Transition function for job postings.

    Every method returns a new :class:`Job`; the record passed in is never
    modified. Each status change appends exactly one history event.
    """

    def __init__(self, gate: RoleGate, *, clock: Clock | None = None) -> None:
        self._gate = gate
        self._clock = clock or (lambda: pendulum.now("UTC"))
        self._logger = structlog.get_logger(__name__)

    def create(self, draft: JobDraft, context: ActorContext) -> Job:
        if Role.PROJECT_LEADER not in context.roles:
            raise Unauthorized(
                context.actor_id, context.roles, "none", JobStatus.DRAFT,
                reason="only a project leader can create jobs",
            )
        if draft.technical_quiz is not None:
            _require_kind(draft.technical_quiz, AssessmentKind.TECHNICAL, "technical_quiz")
        now = self._clock()
        job = Job(
            id=new_id("job"),
            title=draft.title,
            department=draft.department,
            location=draft.location,
            description=draft.description,
            employment_type=draft.employment_type,
            skills=draft.skills,
            number_of_positions=draft.number_of_positions,
            tags=draft.tags,
            technical_quiz=draft.technical_quiz,
            technical_gate=draft.technical_gate,
            project_leader=WorkflowParticipant.from_context(context, Role.PROJECT_LEADER, action_date=now),
            created_at=now,
            updated_at=now,
        )
        self._logger.info("job.created", job_id=job.id, actor_id=context.actor_id)
        return job

    def transition(
        self,
        job: Job,
        event: JobEvent,
        context: ActorContext,
        *,
        notes: str | None = None,
        feedback: str | None = None,
    ) -> Job:
        edge = JOB_EDGES[event]
        current = job.status
        roles = context.roles

        if not any(self._gate.can_transition(roles, source, edge.target) for source in edge.sources):
            raise Unauthorized(context.actor_id, roles, current, edge.target)
        if current not in edge.sources:
            raise IllegalTransition(current, edge.target, record_id=job.id)
        if not self._gate.can_transition(roles, current, edge.target):
            raise Unauthorized(context.actor_id, roles, current, edge.target)

        self._check_preconditions(job, event, feedback)

        now = self._timestamp(job)
        role = self._acting_role(context, current, edge.target)
        record = JobWorkflowEvent(
            id=new_id("evt"),
            type=edge.history_type,
            from_status=current,
            to_status=edge.target,
            actor=WorkflowParticipant.from_context(context, role, action_date=now),
            timestamp=now,
            notes=notes,
            feedback=feedback,
        )
        update: dict = {
            "status": edge.target,
            "workflow_history": job.workflow_history + (record,),
            "version": job.version + 1,
            "updated_at": now,
        }
        if event is JobEvent.SUBMIT_FOR_ENHANCEMENT:
            update["project_leader"] = job.project_leader.model_copy(update={"action_date": now})
        elif event is JobEvent.COMPLETE_ENHANCEMENT:
            update["hr_manager"] = WorkflowParticipant.from_context(
                context, Role.HR, action_date=now, feedback=notes
            )
        elif event in (JobEvent.APPROVE, JobEvent.REJECT):
            update["ceo_approver"] = WorkflowParticipant.from_context(
                context, Role.CEO, action_date=now, feedback=feedback
            )
        elif event is JobEvent.PUBLISH:
            update["published_at"] = now
        elif event is JobEvent.CLOSE:
            update["closed_at"] = now

        self._logger.info(
            "job.transition",
            job_id=job.id,
            job_event=event.value,
            from_status=current.value,
            to_status=edge.target.value,
            actor_id=context.actor_id,
        )
        return job.model_copy(update=update)

    def enhance(self, job: Job, hr_quiz: Quiz, context: ActorContext, *, notes: str | None = None) -> Job:
        """Attach the HR quiz and complete the enhancement step in one change."""
        _require_kind(hr_quiz, AssessmentKind.HR, "hr_quiz")
        return self.transition(
            job.model_copy(update={"hr_quiz": hr_quiz}),
            JobEvent.COMPLETE_ENHANCEMENT,
            context,
            notes=notes,
        )

    def set_technical_quiz(self, job: Job, quiz: Quiz, context: ActorContext) -> Job:
        if Role.PROJECT_LEADER not in context.roles or context.actor_id != job.project_leader.id:
            raise Unauthorized(
                context.actor_id, context.roles, job.status, job.status,
                reason="only the job's project leader can edit the technical quiz",
            )
        if job.status not in TECHNICAL_QUIZ_EDITABLE:
            raise PreconditionFailed("status", f"technical quiz is locked once the job is {job.status.value}")
        _require_kind(quiz, AssessmentKind.TECHNICAL, "technical_quiz")
        return job.model_copy(
            update={"technical_quiz": quiz, "version": job.version + 1, "updated_at": self._clock()}
        )

    def revise(self, rejected: Job, context: ActorContext) -> Job:
        """Start a new draft from a rejected job, carrying the CEO's feedback."""
        if rejected.status is not JobStatus.REJECTED:
            raise IllegalTransition(rejected.status, JobStatus.DRAFT, record_id=rejected.id)
        draft = JobDraft(
            title=rejected.title,
            department=rejected.department,
            location=rejected.location,
            description=rejected.description,
            employment_type=rejected.employment_type,
            skills=rejected.skills,
            number_of_positions=rejected.number_of_positions,
            tags=rejected.tags,
            technical_quiz=rejected.technical_quiz,
            technical_gate=rejected.technical_gate,
        )
        job = self.create(draft, context)
        feedback = rejected.ceo_approver.feedback if rejected.ceo_approver else None
        return job.model_copy(update={"revision_of": rejected.id, "previous_feedback": feedback})

    def available_events(self, job: Job, context: ActorContext) -> list[JobEvent]:
        return [
            event
            for event, edge in JOB_EDGES.items()
            if job.status in edge.sources
            and self._gate.can_transition(context.roles, job.status, edge.target)
        ]

    @staticmethod
    def replay(history: Iterable[JobWorkflowEvent]) -> JobStatus:
        """Reapply history from ``draft`` and return the resulting status."""
        status = JobStatus.DRAFT
        for event in history:
            if event.from_status is not status:
                raise ValueError(
                    f"History event {event.id} starts from {event.from_status.value}, expected {status.value}"
                )
            status = event.to_status
        return status

    def _check_preconditions(self, job: Job, event: JobEvent, feedback: str | None) -> None:
        if event is JobEvent.SUBMIT_FOR_ENHANCEMENT and not job.title.strip():
            raise IncompleteJob("title", "a job title is required before HR enhancement")
        if event in (JobEvent.COMPLETE_ENHANCEMENT, JobEvent.SUBMIT_FOR_APPROVAL, JobEvent.APPROVE):
            if job.hr_quiz is None or job.hr_quiz.is_empty:
                raise IncompleteJob("hr_quiz", "an HR quiz with at least one question is required")
        if event is JobEvent.APPROVE:
            if job.technical_quiz is None or job.technical_quiz.is_empty:
                raise IncompleteJob("technical_quiz", "a technical quiz with at least one question is required")
        if event is JobEvent.REJECT and not (feedback or "").strip():
            raise PreconditionFailed("feedback", "rejection feedback is required for the revised draft")

    def _acting_role(self, context: ActorContext, current: JobStatus, target: JobStatus) -> Role:
        allowed = self._gate.allowed_roles(current, target)
        preferred = tuple(role for role in _ROLE_PREFERENCE if role in allowed)
        return context.primary_role(preferred) or Role.SYSTEM

    def _timestamp(self, job: Job) -> datetime:
        now = self._clock()
        if job.workflow_history and job.workflow_history[-1].timestamp > now:
            return job.workflow_history[-1].timestamp
        return now


def _require_kind(quiz: Quiz, kind: AssessmentKind, field: str) -> None:
    if quiz.kind is not kind:
        raise IncompleteJob(field, f"expected a {kind.value} quiz, got {quiz.kind.value}")


__all__ = ["JOB_EDGES", "JobEdge", "JobEvent", "JobWorkflow"]
