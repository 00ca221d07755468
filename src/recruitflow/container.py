"""Dependency injection container for the recruitment workflow."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from dependency_injector import containers, providers

from .adapters import InMemoryRepository, JsonFileRepository, LoggingNotifier, Notifier
from .core import ApplicationWorkflow, IntervalTicker, JobWorkflow, RoleGate, Ticker
from .orchestrator import AuditLogger, WorkflowOrchestrator
from .schemas.config import AppConfig, load_config


class WorkflowContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    clock = providers.Object(None)

    ticker = providers.Singleton(
        IntervalTicker,
        interval=config.assessment.tick_interval_seconds,
    )

    role_gate = providers.Singleton(
        RoleGate.from_settings,
        publisher_roles=config.workflow.publisher_roles,
        lifecycle_roles=config.workflow.lifecycle_roles,
    )

    job_workflow = providers.Singleton(JobWorkflow, gate=role_gate, clock=clock)
    application_workflow = providers.Singleton(ApplicationWorkflow, gate=role_gate, clock=clock)

    repository = providers.Singleton(InMemoryRepository)
    notifier = providers.Singleton(LoggingNotifier)
    audit_logger = providers.Object(None)

    orchestrator = providers.Singleton(
        WorkflowOrchestrator,
        repository=repository,
        notifier=notifier,
        job_workflow=job_workflow,
        application_workflow=application_workflow,
        ticker=ticker,
        clock=clock,
        audit_logger=audit_logger,
    )


def create_container(
    *,
    settings: dict[str, Any] | AppConfig | None = None,
    ticker: Ticker | None = None,
    notifier: Notifier | None = None,
) -> WorkflowContainer:
    """Instantiate container with optional overrides.

    A ticker exposing ``now()`` (such as ``ManualTicker``) also becomes the clock,
    so timestamps and countdowns move together.
    """

    container = WorkflowContainer()

    app_config = settings if isinstance(settings, AppConfig) else load_config(settings)
    resolved = app_config.to_settings()
    container.config.from_dict(resolved)

    if ticker is not None:
        container.ticker.override(providers.Object(ticker))
        now = getattr(ticker, "now", None)
        if callable(now):
            container.clock.override(providers.Object(now))

    if notifier is not None:
        container.notifier.override(providers.Object(notifier))

    storage_path = resolved.get("storage", {}).get("path")
    if storage_path:
        container.repository.override(
            providers.Singleton(JsonFileRepository, base_path=Path(storage_path))
        )

    audit_path = resolved.get("audit_log")
    if audit_path:
        container.audit_logger.override(providers.Singleton(AuditLogger, Path(audit_path)))

    return container


__all__ = ["WorkflowContainer", "create_container"]
