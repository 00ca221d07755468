"""Workflow orchestration: load, transition, commit, notify."""

from __future__ import annotations

import json
import threading
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Any, Callable, TypeVar

import pendulum
import structlog

from .adapters import Failure, Notifier, Result, WorkflowRepository, unwrap
from .core import (
    ApplicationWorkflow,
    AssessmentEngine,
    JobEvent,
    JobWorkflow,
    PersistenceError,
    PreconditionFailed,
    StaleWrite,
    Ticker,
    Unauthorized,
    WorkflowError,
    compute_job_analytics,
    progress_percentage,
)
from .core.analytics import JobAnalytics
from .core.ids import new_id
from .schemas import (
    ActorContext,
    Application,
    ApplicationStatus,
    AssessmentKind,
    AssessmentResult,
    CandidateSubmission,
    DecisionInput,
    Job,
    JobDraft,
    JobStatus,
    Quiz,
    Role,
    WorkflowNotification,
)

Clock = Callable[[], datetime]
T = TypeVar("T")

_JOB_NOTIFICATIONS: dict[JobEvent, tuple[Role, str, str, str]] = {
    JobEvent.SUBMIT_FOR_ENHANCEMENT: (
        Role.HR, "hr_enhancement_required", "HR enhancement required", "high",
    ),
    JobEvent.COMPLETE_ENHANCEMENT: (
        Role.CEO, "ceo_approval_required", "CEO approval required", "high",
    ),
    JobEvent.SUBMIT_FOR_APPROVAL: (
        Role.CEO, "ceo_approval_required", "CEO approval required", "high",
    ),
    JobEvent.APPROVE: (Role.PROJECT_LEADER, "job_approved", "Job approved", "medium"),
    JobEvent.REJECT: (Role.PROJECT_LEADER, "job_rejected", "Job rejected", "high"),
    JobEvent.PUBLISH: (Role.HR, "job_published", "Job published", "low"),
}

_ACTION_REQUIRED = {"hr_enhancement_required", "ceo_approval_required", "job_rejected", "decision_required"}


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def append(self, record: dict) -> None:
        line = json.dumps(record, default=_json_default, ensure_ascii=False)
        with self._lock, self._path.open("a", encoding="utf-8") as handle:
            handle.write(line)
            handle.write("\n")


class WorkflowOrchestrator:
    """Public surface sequencing the state machines and collaborators.

    Every operation computes the new record in memory and returns it only after
    the repository accepted it. Operations taking ``expected_version`` reject a
    caller working from an outdated read with :class:`StaleWrite`.
    """

    def __init__(
        self,
        *,
        repository: WorkflowRepository,
        notifier: Notifier,
        job_workflow: JobWorkflow,
        application_workflow: ApplicationWorkflow,
        ticker: Ticker | None = None,
        clock: Clock | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._repository = repository
        self._notifier = notifier
        self._jobs = job_workflow
        self._applications = application_workflow
        self._ticker = ticker
        self._clock = clock or (lambda: pendulum.now("UTC"))
        self._audit = audit_logger
        self._engines: dict[tuple[str, AssessmentKind], tuple[str, AssessmentEngine]] = {}
        self._engines_lock = threading.RLock()
        self._logger = structlog.get_logger(__name__)

    # Jobs

    def create_job(self, draft: JobDraft, context: ActorContext, *, submit: bool = True) -> Job:
        """Create a draft; by default hand it straight to HR for enhancement."""
        job = self._guard(context, lambda: self._jobs.create(draft, context))
        job = self._commit_job(job, None)
        if submit:
            job = self.submit_job_for_enhancement(job.id, context)
        return job

    def submit_job_for_enhancement(self, job_id: str, context: ActorContext, *, expected_version: int | None = None) -> Job:
        return self._job_transition(job_id, JobEvent.SUBMIT_FOR_ENHANCEMENT, context, expected_version)

    def set_technical_quiz(self, job_id: str, quiz: Quiz, context: ActorContext, *, expected_version: int | None = None) -> Job:
        job = self._load_job(job_id, expected_version)
        updated = self._guard(context, lambda: self._jobs.set_technical_quiz(job, quiz, context))
        return self._commit_job(updated, job.version)

    def enhance_with_hr(
        self,
        job_id: str,
        hr_quiz: Quiz,
        context: ActorContext,
        *,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> Job:
        job = self._load_job(job_id, expected_version)
        updated = self._guard(context, lambda: self._jobs.enhance(job, hr_quiz, context, notes=notes))
        committed = self._commit_job(updated, job.version)
        self._notify_job(JobEvent.COMPLETE_ENHANCEMENT, committed)
        return committed

    def submit_for_approval(self, job_id: str, context: ActorContext, *, expected_version: int | None = None) -> Job:
        return self._job_transition(job_id, JobEvent.SUBMIT_FOR_APPROVAL, context, expected_version)

    def approve_job(
        self,
        job_id: str,
        context: ActorContext,
        *,
        feedback: str | None = None,
        expected_version: int | None = None,
    ) -> Job:
        return self._job_transition(job_id, JobEvent.APPROVE, context, expected_version, feedback=feedback)

    def reject_job(self, job_id: str, feedback: str, context: ActorContext, *, expected_version: int | None = None) -> Job:
        return self._job_transition(job_id, JobEvent.REJECT, context, expected_version, feedback=feedback)

    def publish_job(self, job_id: str, context: ActorContext, *, expected_version: int | None = None) -> Job:
        return self._job_transition(job_id, JobEvent.PUBLISH, context, expected_version)

    def pause_job(self, job_id: str, context: ActorContext, *, expected_version: int | None = None) -> Job:
        return self._job_transition(job_id, JobEvent.PAUSE, context, expected_version)

    def resume_job(self, job_id: str, context: ActorContext, *, expected_version: int | None = None) -> Job:
        return self._job_transition(job_id, JobEvent.RESUME, context, expected_version)

    def close_job(self, job_id: str, context: ActorContext, *, expected_version: int | None = None) -> Job:
        job = self._job_transition(job_id, JobEvent.CLOSE, context, expected_version)
        for application_id, kind in self._engines_for_job(job.id):
            try:
                self._cancel_assessment(application_id, kind)
            except WorkflowError as exc:
                self._logger.error(
                    "assessment.cancel_failed",
                    application_id=application_id,
                    kind=kind.value,
                    error=str(exc),
                )
        return job

    def archive_job(self, job_id: str, context: ActorContext, *, expected_version: int | None = None) -> Job:
        return self._job_transition(job_id, JobEvent.ARCHIVE, context, expected_version)

    def revise_job(self, rejected_job_id: str, context: ActorContext) -> Job:
        """Create a new draft from a rejected job; the rejected record is untouched."""
        rejected = self._load_job(rejected_job_id, None)
        draft = self._guard(context, lambda: self._jobs.revise(rejected, context))
        return self._commit_job(draft, None)

    def record_job_view(self, job_id: str) -> Job:
        return self._unwrap_io(self._repository.increment_job_counter(job_id, "views_count"))

    def get_job(self, job_id: str) -> Job:
        return self._load_job(job_id, None)

    def job_analytics(self, job_id: str) -> JobAnalytics:
        job = self._load_job(job_id, None)
        applications = self._unwrap_io(self._repository.list_applications(job_id))
        return compute_job_analytics(job, applications)

    # Applications

    def submit_application(self, job_id: str, submission: CandidateSubmission) -> Application:
        job = self._load_job(job_id, None)
        application = self._applications.create(job, submission)
        committed = self._commit_application(application, None)
        self._unwrap_io(self._repository.increment_job_counter(job_id, "applications_count"))
        self._notify(
            Role.PROJECT_LEADER,
            "application_received",
            "Application received",
            f"New application {committed.id} for {job.title}",
            job=job,
            application=committed,
            recipient_id=job.project_leader.id,
        )
        return committed

    def start_assessment(self, application_id: str, kind: AssessmentKind, context: ActorContext) -> AssessmentResult:
        application = self._load_application(application_id, None)
        self._require_applicant(application, context)
        with self._engines_lock:
            active = self._engines.get((application_id, kind))
            if active is not None:
                return active[1].result
        job = self._load_job(application.job_id, None)
        if job.status is not JobStatus.PUBLISHED:
            raise PreconditionFailed("job.status", f"job {job.id} is {job.status.value}, not published")
        quiz = job.technical_quiz if kind is AssessmentKind.TECHNICAL else job.hr_quiz
        if quiz is None:
            raise PreconditionFailed(f"{kind.value}_quiz", "job has no quiz for this assessment")

        engine = AssessmentEngine(
            quiz,
            ticker=self._ticker,
            clock=self._clock,
            on_expire=partial(self._on_timer_expired, application_id),
        )
        # Dry run against the unstarted result so the countdown never starts for a refused actor.
        self._guard(context, lambda: self._applications.start_assessment(application, engine.result, context))

        result = engine.start()
        updated = self._applications.start_assessment(application, result, context)
        with self._engines_lock:
            self._engines[(application_id, kind)] = (job.id, engine)
        try:
            self._commit_application(updated, application.version)
        except WorkflowError:
            self._drop_engine(application_id, kind)
            engine.expire()
            raise
        return result

    def record_answer(
        self,
        application_id: str,
        kind: AssessmentKind,
        question_id: str,
        value: Any,
        context: ActorContext,
    ) -> AssessmentResult:
        application, engine = self._applicant_engine(application_id, kind, context)
        if engine is None:
            return self._stored_finished_result(application, kind)
        return engine.record_answer(question_id, value)

    def pause_assessment(self, application_id: str, kind: AssessmentKind, context: ActorContext) -> AssessmentResult:
        application, engine = self._applicant_engine(application_id, kind, context)
        if engine is None:
            return self._stored_finished_result(application, kind)
        return engine.pause()

    def resume_assessment(self, application_id: str, kind: AssessmentKind, context: ActorContext) -> AssessmentResult:
        application, engine = self._applicant_engine(application_id, kind, context)
        if engine is None:
            return self._stored_finished_result(application, kind)
        return engine.resume()

    def save_assessment_progress(self, application_id: str, kind: AssessmentKind, context: ActorContext) -> Application:
        application, engine = self._applicant_engine(application_id, kind, context)
        if engine is None:
            return application
        updated = self._applications.save_progress(application, engine.result)
        if updated is application:
            return application
        return self._commit_application(updated, application.version)

    def remaining_seconds(self, application_id: str, kind: AssessmentKind) -> int | None:
        engine = self._engine(application_id, kind)
        return engine.remaining_seconds if engine is not None else None

    def submit_assessment(self, application_id: str, kind: AssessmentKind, context: ActorContext) -> Application:
        application, engine = self._applicant_engine(application_id, kind, context)
        if engine is None:
            self._stored_finished_result(application, kind)
            return application
        result = engine.submit()
        return self._finalize_assessment(application_id, result, context)

    def schedule_interview(
        self,
        application_id: str,
        context: ActorContext,
        *,
        scheduled_for: datetime | None = None,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> Application:
        metadata = {"scheduled_for": scheduled_for.isoformat() if scheduled_for else None, "notes": notes}
        return self._application_transition(
            application_id, ApplicationStatus.INTERVIEW_SCHEDULED, context, expected_version, metadata=metadata
        )

    def complete_interview(
        self,
        application_id: str,
        context: ActorContext,
        *,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> Application:
        return self._application_transition(
            application_id, ApplicationStatus.INTERVIEW_COMPLETED, context, expected_version, metadata={"notes": notes}
        )

    def record_decision(
        self,
        application_id: str,
        decision: DecisionInput,
        context: ActorContext,
        *,
        expected_version: int | None = None,
    ) -> Application:
        application = self._load_application(application_id, expected_version)
        job = self._load_job(application.job_id, None)
        updated = self._guard(
            context, lambda: self._applications.record_decision(application, decision, context, job)
        )
        return self._commit_application(updated, application.version)

    def withdraw_application(
        self,
        application_id: str,
        context: ActorContext,
        *,
        expected_version: int | None = None,
    ) -> Application:
        application = self._load_application(application_id, expected_version)
        self._guard(context, lambda: self._applications.withdraw(application, context))

        working = application
        cancelled: list[AssessmentKind] = []
        for kind in AssessmentKind:
            engine = self._engine(application_id, kind)
            if engine is None:
                continue
            result = engine.expire()
            working = self._applications.record_result(working, result, context)
            cancelled.append(kind)
        withdrawn = self._applications.withdraw(working, context)
        committed = self._commit_application(withdrawn, application.version)
        with self._engines_lock:
            for kind in cancelled:
                self._engines.pop((application_id, kind), None)
        return committed

    def get_application(self, application_id: str) -> Application:
        return self._load_application(application_id, None)

    def application_progress(self, application_id: str) -> float:
        return progress_percentage(self._load_application(application_id, None).status)

    # Internals

    def _job_transition(
        self,
        job_id: str,
        event: JobEvent,
        context: ActorContext,
        expected_version: int | None,
        *,
        feedback: str | None = None,
    ) -> Job:
        job = self._load_job(job_id, expected_version)
        updated = self._guard(context, lambda: self._jobs.transition(job, event, context, feedback=feedback))
        committed = self._commit_job(updated, job.version)
        self._notify_job(event, committed)
        return committed

    def _application_transition(
        self,
        application_id: str,
        target: ApplicationStatus,
        context: ActorContext,
        expected_version: int | None,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> Application:
        application = self._load_application(application_id, expected_version)
        job = self._load_job(application.job_id, None)
        updated = self._guard(
            context,
            lambda: self._applications.transition(application, target, context, job=job, metadata=metadata),
        )
        return self._commit_application(updated, application.version)

    def _finalize_assessment(
        self,
        application_id: str,
        result: AssessmentResult,
        context: ActorContext,
    ) -> Application:
        """Write a finished result exactly once and advance the application."""
        for _ in range(3):
            application = self._load_application(application_id, None)
            if application.assessment(result.kind).is_finished:
                self._drop_engine(application_id, result.kind)
                return application
            job = self._load_job(application.job_id, None)
            updated = self._applications.record_result(application, result, context, job=job)
            try:
                committed = self._commit_application(updated, application.version)
            except StaleWrite:
                continue
            self._drop_engine(application_id, result.kind)
            if result.kind is AssessmentKind.HR or committed.status is ApplicationStatus.REJECTED:
                self._notify(
                    Role.PROJECT_LEADER,
                    "decision_required" if committed.status is ApplicationStatus.UNDER_REVIEW else "assessment_completed",
                    "Assessments completed",
                    f"Application {committed.id} finished its {result.kind.value} assessment",
                    job=job,
                    application=committed,
                    recipient_id=job.project_leader.id,
                )
            return committed
        raise StaleWrite(application_id, None, None)

    def _on_timer_expired(self, application_id: str, result: AssessmentResult) -> None:
        self._logger.info("assessment.auto_submitted", application_id=application_id, kind=result.kind.value)
        self._finalize_assessment(application_id, result, ActorContext.system())

    def _cancel_assessment(self, application_id: str, kind: AssessmentKind) -> None:
        engine = self._engine(application_id, kind)
        if engine is None:
            return
        result = engine.expire()
        self._finalize_assessment(application_id, result, ActorContext.system())

    def _engine(self, application_id: str, kind: AssessmentKind) -> AssessmentEngine | None:
        with self._engines_lock:
            entry = self._engines.get((application_id, kind))
        return entry[1] if entry is not None else None

    def _drop_engine(self, application_id: str, kind: AssessmentKind) -> None:
        with self._engines_lock:
            self._engines.pop((application_id, kind), None)

    def _engines_for_job(self, job_id: str) -> list[tuple[str, AssessmentKind]]:
        with self._engines_lock:
            return [key for key, (owner, _) in self._engines.items() if owner == job_id]

    def _applicant_engine(
        self, application_id: str, kind: AssessmentKind, context: ActorContext
    ) -> tuple[Application, AssessmentEngine | None]:
        application = self._load_application(application_id, None)
        self._require_applicant(application, context)
        return application, self._engine(application_id, kind)

    def _require_applicant(self, application: Application, context: ActorContext) -> None:
        self._guard(context, lambda: self._applications.require_applicant(application, context))

    def _stored_finished_result(self, application: Application, kind: AssessmentKind) -> AssessmentResult:
        stored = application.assessment(kind)
        if stored.is_finished:
            return stored
        raise PreconditionFailed(f"{kind.value}_assessment", "assessment is not running")

    def _load_job(self, job_id: str, expected_version: int | None) -> Job:
        job = self._unwrap_io(self._repository.load_job(job_id))
        if expected_version is not None and job.version != expected_version:
            raise StaleWrite(job_id, expected_version, job.version)
        return job

    def _load_application(self, application_id: str, expected_version: int | None) -> Application:
        application = self._unwrap_io(self._repository.load_application(application_id))
        if expected_version is not None and application.version != expected_version:
            raise StaleWrite(application_id, expected_version, application.version)
        return application

    def _commit_job(self, job: Job, expected_version: int | None) -> Job:
        return self._unwrap_io(self._repository.save_job(job, expected_version))

    def _commit_application(self, application: Application, expected_version: int | None) -> Application:
        return self._unwrap_io(self._repository.save_application(application, expected_version))

    def _unwrap_io(self, result: Result[T]) -> T:
        if isinstance(result, Failure):
            if isinstance(result.error, StaleWrite):
                self._logger.info("record.stale_write", record_id=result.error.record_id)
            elif isinstance(result.error, PersistenceError):
                self._logger.error("record.persistence_failed", error=str(result.error))
        return unwrap(result)

    def _guard(self, context: ActorContext, action: Callable[[], Any]) -> Any:
        try:
            return action()
        except Unauthorized as exc:
            self._logger.warning(
                "security.unauthorized",
                actor_id=exc.actor_id,
                roles=sorted(role.value for role in exc.roles),
                current=str(getattr(exc.current, "value", exc.current)),
                target=str(getattr(exc.target, "value", exc.target)),
                reason=exc.reason,
            )
            if self._audit is not None:
                self._audit.append(
                    {
                        "event": "security.unauthorized",
                        "actor_id": exc.actor_id,
                        "roles": sorted(role.value for role in exc.roles),
                        "current": str(getattr(exc.current, "value", exc.current)),
                        "target": str(getattr(exc.target, "value", exc.target)),
                        "reason": exc.reason,
                        "timestamp": self._clock(),
                    }
                )
            raise

    def _notify_job(self, event: JobEvent, job: Job) -> None:
        template = _JOB_NOTIFICATIONS.get(event)
        if template is None:
            return
        role, kind, title, priority = template
        message = f"{job.title} is now {job.status.value}"
        if event is JobEvent.REJECT and job.ceo_approver and job.ceo_approver.feedback:
            message = f"{message}: {job.ceo_approver.feedback}"
        recipient = job.project_leader.id if role is Role.PROJECT_LEADER else None
        self._notify(role, kind, title, message, job=job, priority=priority, recipient_id=recipient)

    def _notify(
        self,
        role: Role,
        kind: str,
        title: str,
        message: str,
        *,
        job: Job | None = None,
        application: Application | None = None,
        priority: str = "medium",
        recipient_id: str | None = None,
    ) -> None:
        notification = WorkflowNotification(
            id=new_id("ntf"),
            type=kind,
            title=title,
            message=message,
            recipient_role=role,
            recipient_id=recipient_id,
            related_job_id=job.id if job else None,
            related_application_id=application.id if application else None,
            priority=priority,
            action_required=kind in _ACTION_REQUIRED,
            created_at=self._clock(),
        )
        try:
            outcome = self._notifier.notify(role, notification)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("notification.failed", type=kind, error=str(exc))
            return
        if isinstance(outcome, Failure):
            self._logger.warning("notification.failed", type=kind, error=str(outcome.error))


def _json_default(value: Any) -> Any:
    if isinstance(value, pendulum.DateTime):
        return value.to_iso8601_string()
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


__all__ = ["AuditLogger", "WorkflowOrchestrator"]
