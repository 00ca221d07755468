from __future__ import annotations

import pytest

from recruitflow.adapters import InMemoryRepository, RecordingNotifier
from recruitflow.core import ApplicationWorkflow, JobWorkflow, ManualTicker, RoleGate
from recruitflow.orchestrator import WorkflowOrchestrator
from recruitflow.schemas import ActorContext, Role

from builders import build_draft, build_hr_quiz, build_quiz


@pytest.fixture
def pl() -> ActorContext:
    return ActorContext.of("pl-1", Role.PROJECT_LEADER, name="Pat Lee")


@pytest.fixture
def hr() -> ActorContext:
    return ActorContext.of("hr-1", Role.HR, name="Hana Ruiz")


@pytest.fixture
def ceo() -> ActorContext:
    return ActorContext.of("ceo-1", Role.CEO, name="Cora Eng")


@pytest.fixture
def candidate() -> ActorContext:
    return ActorContext.of("cand-1", Role.CANDIDATE, name="Ana Silva")


@pytest.fixture
def ticker() -> ManualTicker:
    return ManualTicker()


@pytest.fixture
def gate() -> RoleGate:
    return RoleGate()


@pytest.fixture
def job_workflow(gate: RoleGate, ticker: ManualTicker) -> JobWorkflow:
    return JobWorkflow(gate, clock=ticker.now)


@pytest.fixture
def application_workflow(gate: RoleGate, ticker: ManualTicker) -> ApplicationWorkflow:
    return ApplicationWorkflow(gate, clock=ticker.now)


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def orchestrator(
    repository: InMemoryRepository,
    notifier: RecordingNotifier,
    job_workflow: JobWorkflow,
    application_workflow: ApplicationWorkflow,
    ticker: ManualTicker,
) -> WorkflowOrchestrator:
    return WorkflowOrchestrator(
        repository=repository,
        notifier=notifier,
        job_workflow=job_workflow,
        application_workflow=application_workflow,
        ticker=ticker,
        clock=ticker.now,
    )


@pytest.fixture
def published_job(orchestrator: WorkflowOrchestrator, pl, hr, ceo):
    """Drive a job from draft to published and return the stored record."""
    job = orchestrator.create_job(build_draft(technical_quiz=build_quiz()), pl)
    orchestrator.enhance_with_hr(job.id, build_hr_quiz(), hr)
    orchestrator.approve_job(job.id, ceo)
    return orchestrator.publish_job(job.id, pl)
