"""Scripted workflow runs: load a YAML scenario, drive the orchestrator, report."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable

import pendulum
import structlog
from pydantic import BaseModel, ConfigDict, Field

from . import __version__
from .config import read_yaml
from .core import ManualTicker, WorkflowError
from .orchestrator import WorkflowOrchestrator
from .schemas import (
    ActorContext,
    AssessmentKind,
    CandidateSubmission,
    DecisionInput,
    JobDraft,
    Quiz,
    Role,
)


class ScenarioActor(BaseModel):
    id: str
    name: str = ""
    roles: list[Role]

    model_config = ConfigDict(extra="forbid")

    def context(self) -> ActorContext:
        return ActorContext.of(self.id, *self.roles, name=self.name)


class ScenarioStep(BaseModel):
    """One orchestrator call. ``job``/``application`` name a saved reference or a literal id."""

    op: str
    actor: str | None = Field(default=None, alias="as")
    job: str | None = None
    application: str | None = None
    kind: AssessmentKind | None = None
    save_as: str | None = None
    expect_error: str | None = None
    args: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class Scenario(BaseModel):
    name: str = "scenario"
    actors: dict[str, ScenarioActor] = Field(default_factory=dict)
    quizzes: dict[str, Quiz] = Field(default_factory=dict)
    steps: list[ScenarioStep] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


@dataclass(slots=True)
class StepOutcome:
    index: int
    op: str
    ok: bool
    error: str | None = None
    message: str | None = None
    record_id: str | None = None
    status: str | None = None
    version: int | None = None


@dataclass(slots=True)
class ScenarioReport:
    name: str
    steps: list[StepOutcome] = field(default_factory=list)
    jobs: list[dict[str, Any]] = field(default_factory=list)
    applications: list[dict[str, Any]] = field(default_factory=list)

    @property
    def failures(self) -> list[StepOutcome]:
        return [step for step in self.steps if not step.ok]

    def to_payload(self) -> dict[str, Any]:
        return {
            "metadata": {
                "scenario": self.name,
                "step_count": len(self.steps),
                "failure_count": len(self.failures),
                "timestamp": pendulum.now().to_iso8601_string(),
                "app_version": __version__,
            },
            "steps": [asdict(step) for step in self.steps],
            "jobs": self.jobs,
            "applications": self.applications,
        }


def load_scenario(path: Path) -> Scenario:
    raw = read_yaml(path)
    if not isinstance(raw, dict):
        raise ValueError(f"Scenario file {path} must contain a YAML mapping")
    return Scenario.model_validate(raw)


def write_report(path: Path, report: ScenarioReport) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(report.to_payload(), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )


class ScenarioRunner:
    """Execute scenario steps in order, collecting an outcome per step.

    A step that raises a workflow error does not stop the run; it is marked
    failed unless the step declared that error under ``expect_error``.
    """

    def __init__(self, orchestrator: WorkflowOrchestrator, *, ticker: ManualTicker | None = None) -> None:
        self._orchestrator = orchestrator
        self._ticker = ticker
        self._logger = structlog.get_logger(__name__)
        self._handlers: dict[str, Callable[[Scenario, ScenarioStep], Any]] = {
            "create_job": self._create_job,
            "submit_job_for_enhancement": self._job_op("submit_job_for_enhancement"),
            "submit_for_approval": self._job_op("submit_for_approval"),
            "publish_job": self._job_op("publish_job"),
            "pause_job": self._job_op("pause_job"),
            "resume_job": self._job_op("resume_job"),
            "close_job": self._job_op("close_job"),
            "archive_job": self._job_op("archive_job"),
            "approve_job": self._approve_job,
            "reject_job": self._reject_job,
            "set_technical_quiz": self._set_technical_quiz,
            "enhance_with_hr": self._enhance_with_hr,
            "revise_job": self._revise_job,
            "record_job_view": self._record_job_view,
            "submit_application": self._submit_application,
            "start_assessment": self._start_assessment,
            "answer": self._answer,
            "pause_assessment": self._assessment_op("pause_assessment"),
            "resume_assessment": self._assessment_op("resume_assessment"),
            "save_assessment_progress": self._assessment_op("save_assessment_progress"),
            "submit_assessment": self._submit_assessment,
            "schedule_interview": self._schedule_interview,
            "complete_interview": self._complete_interview,
            "record_decision": self._record_decision,
            "withdraw_application": self._withdraw_application,
            "advance": self._advance,
        }
        self._refs: dict[str, str] = {}

    def run(self, scenario: Scenario) -> ScenarioReport:
        report = ScenarioReport(name=scenario.name)
        job_ids: list[str] = []
        application_ids: list[str] = []

        for index, step in enumerate(scenario.steps, start=1):
            handler = self._handlers.get(step.op)
            if handler is None:
                report.steps.append(StepOutcome(index, step.op, False, "UnknownOperation", f"unknown op {step.op!r}"))
                continue
            try:
                record = handler(scenario, step)
            except (WorkflowError, ValueError, KeyError) as exc:
                name = type(exc).__name__
                ok = step.expect_error == name
                report.steps.append(StepOutcome(index, step.op, ok, name, str(exc)))
                self._logger.info("scenario.step_failed", index=index, op=step.op, error=name, expected=ok)
                continue

            outcome = StepOutcome(index, step.op, step.expect_error is None)
            if step.expect_error is not None:
                outcome.error = "NoError"
                outcome.message = f"expected {step.expect_error}"
            record_id = getattr(record, "id", None)
            if record_id is not None:
                outcome.record_id = record_id
                outcome.status = getattr(getattr(record, "status", None), "value", None)
                outcome.version = getattr(record, "version", None)
                bucket = job_ids if step.op in _JOB_PRODUCING else application_ids
                if record_id not in bucket:
                    bucket.append(record_id)
                if step.save_as:
                    self._refs[step.save_as] = record_id
            report.steps.append(outcome)

        report.jobs = [self._orchestrator.get_job(job_id).model_dump(mode="json") for job_id in job_ids]
        report.applications = [
            self._orchestrator.get_application(app_id).model_dump(mode="json") for app_id in application_ids
        ]
        self._logger.info(
            "scenario.completed",
            scenario=scenario.name,
            steps=len(report.steps),
            failures=len(report.failures),
        )
        return report

    def _context(self, scenario: Scenario, step: ScenarioStep) -> ActorContext:
        if step.actor is None:
            raise ValueError(f"step {step.op!r} needs an actor")
        try:
            return scenario.actors[step.actor].context()
        except KeyError as exc:
            raise ValueError(f"unknown actor {step.actor!r}") from exc

    def _quiz(self, scenario: Scenario, value: Any) -> Quiz:
        if isinstance(value, str):
            try:
                return scenario.quizzes[value]
            except KeyError as exc:
                raise ValueError(f"unknown quiz {value!r}") from exc
        return Quiz.model_validate(value)

    def _ref(self, value: str | None, what: str) -> str:
        if value is None:
            raise ValueError(f"missing {what} reference")
        return self._refs.get(value, value)

    def _kind(self, step: ScenarioStep) -> AssessmentKind:
        if step.kind is None:
            raise ValueError(f"step {step.op!r} needs an assessment kind")
        return step.kind

    def _version(self, step: ScenarioStep) -> int | None:
        return step.args.get("expected_version")

    def _create_job(self, scenario: Scenario, step: ScenarioStep):
        raw = dict(step.args.get("draft", {}))
        if raw.get("technical_quiz") is not None:
            raw["technical_quiz"] = self._quiz(scenario, raw["technical_quiz"])
        return self._orchestrator.create_job(
            JobDraft.model_validate(raw),
            self._context(scenario, step),
            submit=step.args.get("submit", True),
        )

    def _job_op(self, name: str) -> Callable[[Scenario, ScenarioStep], Any]:
        def handler(scenario: Scenario, step: ScenarioStep):
            operation = getattr(self._orchestrator, name)
            return operation(
                self._ref(step.job, "job"),
                self._context(scenario, step),
                expected_version=self._version(step),
            )

        return handler

    def _approve_job(self, scenario: Scenario, step: ScenarioStep):
        return self._orchestrator.approve_job(
            self._ref(step.job, "job"),
            self._context(scenario, step),
            feedback=step.args.get("feedback"),
            expected_version=self._version(step),
        )

    def _reject_job(self, scenario: Scenario, step: ScenarioStep):
        return self._orchestrator.reject_job(
            self._ref(step.job, "job"),
            step.args.get("feedback", ""),
            self._context(scenario, step),
            expected_version=self._version(step),
        )

    def _set_technical_quiz(self, scenario: Scenario, step: ScenarioStep):
        return self._orchestrator.set_technical_quiz(
            self._ref(step.job, "job"),
            self._quiz(scenario, step.args.get("quiz")),
            self._context(scenario, step),
            expected_version=self._version(step),
        )

    def _enhance_with_hr(self, scenario: Scenario, step: ScenarioStep):
        return self._orchestrator.enhance_with_hr(
            self._ref(step.job, "job"),
            self._quiz(scenario, step.args.get("quiz")),
            self._context(scenario, step),
            notes=step.args.get("notes"),
            expected_version=self._version(step),
        )

    def _revise_job(self, scenario: Scenario, step: ScenarioStep):
        return self._orchestrator.revise_job(self._ref(step.job, "job"), self._context(scenario, step))

    def _record_job_view(self, scenario: Scenario, step: ScenarioStep):
        return self._orchestrator.record_job_view(self._ref(step.job, "job"))

    def _submit_application(self, scenario: Scenario, step: ScenarioStep):
        raw = dict(step.args.get("submission", {}))
        if "candidate_id" not in raw:
            raw["candidate_id"] = self._context(scenario, step).actor_id
        return self._orchestrator.submit_application(
            self._ref(step.job, "job"), CandidateSubmission.model_validate(raw)
        )

    def _start_assessment(self, scenario: Scenario, step: ScenarioStep):
        application_id = self._ref(step.application, "application")
        self._orchestrator.start_assessment(application_id, self._kind(step), self._context(scenario, step))
        return self._orchestrator.get_application(application_id)

    def _answer(self, scenario: Scenario, step: ScenarioStep):
        application_id = self._ref(step.application, "application")
        if "question" not in step.args:
            raise ValueError("answer step needs a question id")
        self._orchestrator.record_answer(
            application_id,
            self._kind(step),
            step.args["question"],
            step.args.get("value"),
            self._context(scenario, step),
        )
        return None

    def _assessment_op(self, name: str) -> Callable[[Scenario, ScenarioStep], Any]:
        def handler(scenario: Scenario, step: ScenarioStep):
            application_id = self._ref(step.application, "application")
            getattr(self._orchestrator, name)(application_id, self._kind(step), self._context(scenario, step))
            return None

        return handler

    def _submit_assessment(self, scenario: Scenario, step: ScenarioStep):
        return self._orchestrator.submit_assessment(
            self._ref(step.application, "application"), self._kind(step), self._context(scenario, step)
        )

    def _schedule_interview(self, scenario: Scenario, step: ScenarioStep):
        scheduled_for = step.args.get("scheduled_for")
        return self._orchestrator.schedule_interview(
            self._ref(step.application, "application"),
            self._context(scenario, step),
            scheduled_for=pendulum.parse(scheduled_for) if scheduled_for else None,
            notes=step.args.get("notes"),
            expected_version=self._version(step),
        )

    def _complete_interview(self, scenario: Scenario, step: ScenarioStep):
        return self._orchestrator.complete_interview(
            self._ref(step.application, "application"),
            self._context(scenario, step),
            notes=step.args.get("notes"),
            expected_version=self._version(step),
        )

    def _record_decision(self, scenario: Scenario, step: ScenarioStep):
        return self._orchestrator.record_decision(
            self._ref(step.application, "application"),
            DecisionInput.model_validate(step.args.get("decision", {})),
            self._context(scenario, step),
            expected_version=self._version(step),
        )

    def _withdraw_application(self, scenario: Scenario, step: ScenarioStep):
        return self._orchestrator.withdraw_application(
            self._ref(step.application, "application"),
            self._context(scenario, step),
            expected_version=self._version(step),
        )

    def _advance(self, scenario: Scenario, step: ScenarioStep):
        if self._ticker is None:
            raise ValueError("advance steps need a manual ticker")
        self._ticker.advance(int(step.args.get("seconds", 1)))
        return None


_JOB_PRODUCING = frozenset(
    {
        "create_job",
        "submit_job_for_enhancement",
        "submit_for_approval",
        "publish_job",
        "pause_job",
        "resume_job",
        "close_job",
        "archive_job",
        "approve_job",
        "reject_job",
        "set_technical_quiz",
        "enhance_with_hr",
        "revise_job",
        "record_job_view",
    }
)


__all__ = [
    "Scenario",
    "ScenarioActor",
    "ScenarioReport",
    "ScenarioRunner",
    "ScenarioStep",
    "StepOutcome",
    "load_scenario",
    "write_report",
]
