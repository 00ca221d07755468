"""Typer CLI entrypoint for the recruitment workflow."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError

from .adapters import Failure, JsonFileRepository
from .config import read_yaml
from .container import create_container
from .core import JobWorkflow, ManualTicker
from .logging import configure_logging
from .scenario import ScenarioRunner, load_scenario, write_report
from .schemas.config import load_config

app = typer.Typer(help="Recruitment workflow CLI.")


def _load_settings(config: Optional[Path]) -> dict[str, Any]:
    if not config:
        return {}
    loaded = read_yaml(config) or {}
    if not isinstance(loaded, dict):
        raise typer.BadParameter("Config file must be a YAML object", param_name="config")
    return loaded


@app.command()
def run(
    scenario: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Scenario YAML path."),
    output: Path = typer.Option(
        ...,
        exists=False,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
        help="Output JSON path.",
    ),
    store: Optional[Path] = typer.Option(None, file_okay=False, help="Directory for the JSON record store."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: Optional[str] = typer.Option(None, help="Log level for structured logging."),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
) -> None:
    """Run a scripted scenario against the workflow and write the resulting records."""
    settings = _load_settings(config)
    if store is not None:
        settings["storage"] = {**(settings.get("storage") or {}), "path": str(store)}
    if audit_log is not None:
        settings["audit_log"] = str(audit_log)
    try:
        app_config = load_config(settings)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc), param_name="config") from exc

    configure_logging(log_level or app_config.log_level)

    try:
        plan = load_scenario(scenario)
    except (ValueError, ValidationError) as exc:
        raise typer.BadParameter(str(exc), param_name="scenario") from exc

    ticker = ManualTicker()
    container = create_container(settings=app_config, ticker=ticker)
    runner = ScenarioRunner(container.orchestrator(), ticker=ticker)
    report = runner.run(plan)
    write_report(output, report)

    typer.echo(
        f"Ran {len(report.steps)} steps ({len(report.failures)} failed). Results saved to {output}."
    )
    if report.failures:
        raise typer.Exit(code=1)


@app.command()
def verify(
    store: Path = typer.Option(..., exists=True, file_okay=False, help="Directory of the JSON record store."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
) -> None:
    """Replay every stored job history and check it reproduces the stored status."""
    configure_logging(log_level)
    listed = JsonFileRepository(store).list_jobs()
    if isinstance(listed, Failure):
        typer.echo(f"Cannot read store: {listed.error}", err=True)
        raise typer.Exit(code=2)

    mismatches = 0
    for job in listed.value:
        try:
            replayed = JobWorkflow.replay(job.workflow_history)
        except ValueError as exc:
            typer.echo(f"{job.id}: broken history ({exc})")
            mismatches += 1
            continue
        if replayed is not job.status:
            typer.echo(f"{job.id}: history replays to {replayed.value}, stored {job.status.value}")
            mismatches += 1

    typer.echo(f"Verified {len(listed.value)} jobs, {mismatches} mismatches.")
    if mismatches:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
