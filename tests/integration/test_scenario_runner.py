from __future__ import annotations

from pathlib import Path

import pytest

from recruitflow.adapters import RecordingNotifier
from recruitflow.container import create_container
from recruitflow.core import ManualTicker
from recruitflow.scenario import Scenario, ScenarioRunner, load_scenario

from builders import build_hr_quiz, build_quiz


def build_runner(**settings):
    ticker = ManualTicker()
    notifier = RecordingNotifier()
    container = create_container(settings=settings or None, ticker=ticker, notifier=notifier)
    return ScenarioRunner(container.orchestrator(), ticker=ticker), notifier


def publish_steps() -> list[dict]:
    return [
        {"op": "create_job", "as": "pl", "save_as": "job", "args": {"draft": {"title": "Analyst", "technical_quiz": "tech"}}},
        {"op": "enhance_with_hr", "as": "hr", "job": "job", "args": {"quiz": "culture"}},
        {"op": "approve_job", "as": "ceo", "job": "job"},
        {"op": "publish_job", "as": "ceo", "job": "job"},
        {"op": "submit_application", "as": "ana", "job": "job", "save_as": "app"},
    ]


def build_scenario(steps: list[dict]) -> Scenario:
    return Scenario.model_validate(
        {
            "name": "runner",
            "actors": {
                "pl": {"id": "pl-1", "roles": ["PROJECT_LEADER"]},
                "hr": {"id": "hr-1", "roles": ["HR"]},
                "ceo": {"id": "ceo-1", "roles": ["CEO"]},
                "ana": {"id": "cand-1", "roles": ["CANDIDATE"]},
            },
            "quizzes": {
                "tech": build_quiz().model_dump(),
                "culture": build_hr_quiz().model_dump(),
            },
            "steps": steps,
        }
    )


def test_closing_job_expires_running_assessment():
    runner, notifier = build_runner()
    scenario = build_scenario(
        publish_steps()
        + [
            {"op": "start_assessment", "as": "ana", "application": "app", "kind": "technical"},
            {"op": "answer", "as": "ana", "application": "app", "kind": "technical", "args": {"question": "q1", "value": 0}},
            {"op": "advance", "args": {"seconds": 30}},
            {"op": "close_job", "as": "pl", "job": "job"},
            {"op": "advance", "args": {"seconds": 60}},
        ]
    )

    report = runner.run(scenario)

    assert report.failures == []
    application = report.applications[0]
    assert application["technical_assessment"]["status"] == "expired"
    assert application["technical_assessment"]["time_spent_seconds"] == 30
    assert report.jobs[0]["status"] == "closed"
    assert "ceo_approval_required" in [n.type for _, n in notifier.sent]


def test_withdrawal_and_expected_errors():
    runner, _ = build_runner()
    scenario = build_scenario(
        publish_steps()
        + [
            {"op": "withdraw_application", "as": "pl", "application": "app", "expect_error": "Unauthorized"},
            {"op": "withdraw_application", "as": "ana", "application": "app"},
            {"op": "withdraw_application", "as": "ana", "application": "app", "expect_error": "IllegalTransition"},
            {"op": "launch_rocket"},
        ]
    )

    report = runner.run(scenario)

    assert [step.op for step in report.failures] == ["launch_rocket"]
    assert report.applications[0]["status"] == "withdrawn"


def test_configured_publishers_are_enforced():
    runner, _ = build_runner(workflow={"publisher_roles": ["HR"]})
    steps = publish_steps()
    steps[3] = {"op": "publish_job", "as": "ceo", "job": "job", "expect_error": "Unauthorized"}
    steps[4] = {"op": "publish_job", "as": "hr", "job": "job"}

    report = runner.run(build_scenario(steps))

    assert report.failures == []
    assert report.jobs[0]["status"] == "published"


def test_stale_expected_version_is_reported():
    runner, _ = build_runner()
    steps = publish_steps()[:4] + [
        {"op": "pause_job", "as": "pl", "job": "job", "args": {"expected_version": 2}, "expect_error": "StaleWrite"},
    ]

    report = runner.run(build_scenario(steps))

    assert report.failures == []


def test_load_scenario_requires_mapping(tmp_path: Path):
    path = tmp_path / "scenario.yaml"
    path.write_text("- op: create_job\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_scenario(path)


def test_only_applicant_answers_and_views_keep_version():
    runner, _ = build_runner()
    steps = publish_steps() + [
        {"op": "record_job_view", "job": "job"},
        {"op": "pause_job", "as": "pl", "job": "job", "args": {"expected_version": 5}},
        {"op": "resume_job", "as": "pl", "job": "job"},
        {"op": "start_assessment", "as": "ana", "application": "app", "kind": "technical"},
        {
            "op": "answer",
            "as": "pl",
            "application": "app",
            "kind": "technical",
            "args": {"question": "q1", "value": 0},
            "expect_error": "Unauthorized",
        },
        {"op": "pause_assessment", "as": "hr", "application": "app", "kind": "technical", "expect_error": "Unauthorized"},
        {"op": "advance", "args": {"seconds": 60}},
    ]

    report = runner.run(build_scenario(steps))

    assert report.failures == []
    application = report.applications[0]
    assert application["technical_assessment"]["auto_submitted"] is True
    assert application["technical_assessment"]["answers"] == {}
    assert report.jobs[0]["views_count"] == 1
