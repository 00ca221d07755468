from __future__ import annotations

from pathlib import Path

import pendulum
import pytest

from recruitflow.adapters import (
    Failure,
    InMemoryRepository,
    JsonFileRepository,
    LoggingNotifier,
    Notifier,
    RecordingNotifier,
    Success,
    WorkflowRepository,
    unwrap,
)
from recruitflow.core import PersistenceError, RecordNotFound, StaleWrite
from recruitflow.schemas import (
    Application,
    Job,
    Role,
    WorkflowNotification,
    WorkflowParticipant,
)

from builders import build_hr_quiz

NOW = pendulum.datetime(2025, 3, 1, 9, tz="UTC")


def build_job(**kwargs) -> Job:
    defaults = {
        "id": "job-1",
        "title": "Data Engineer",
        "project_leader": WorkflowParticipant(id="pl-1", role=Role.PROJECT_LEADER),
        "hr_quiz": build_hr_quiz(),
        "created_at": NOW,
        "updated_at": NOW,
    }
    defaults.update(kwargs)
    return Job(**defaults)


def build_application(**kwargs) -> Application:
    defaults = {
        "id": "app-1",
        "job_id": "job-1",
        "candidate_id": "cand-1",
        "applied_at": NOW,
        "updated_at": NOW,
    }
    defaults.update(kwargs)
    return Application(**defaults)


@pytest.fixture(params=["memory", "json"])
def repo(request, tmp_path: Path):
    if request.param == "memory":
        return InMemoryRepository()
    return JsonFileRepository(tmp_path / "store")


def test_repositories_satisfy_protocol(repo):
    assert isinstance(repo, WorkflowRepository)
    assert isinstance(RecordingNotifier(), Notifier)
    assert isinstance(LoggingNotifier(), Notifier)


def test_insert_then_update_with_version(repo):
    job = build_job()
    assert isinstance(repo.save_job(job, None), Success)

    updated = job.model_copy(update={"version": 2, "title": "Staff Data Engineer"})
    assert unwrap(repo.save_job(updated, 1)) == updated

    loaded = unwrap(repo.load_job("job-1"))
    assert loaded.title == "Staff Data Engineer"
    assert loaded.hr_quiz.total_points == 25


def test_counters_do_not_bump_version(repo):
    job = build_job()
    repo.save_job(job, None)

    unwrap(repo.increment_job_counter("job-1", "views_count"))
    counted = unwrap(repo.increment_job_counter("job-1", "applications_count"))
    assert (counted.views_count, counted.applications_count, counted.version) == (1, 1, 1)

    saved = unwrap(repo.save_job(job.model_copy(update={"version": 2, "title": "Other"}), 1))

    assert (saved.views_count, saved.applications_count) == (1, 1)
    assert unwrap(repo.load_job("job-1")) == saved
    assert isinstance(repo.increment_job_counter("nope", "views_count").error, RecordNotFound)
    with pytest.raises(ValueError):
        repo.increment_job_counter("job-1", "version")


def test_stale_version_is_refused(repo):
    job = build_job()
    repo.save_job(job, None)
    repo.save_job(job.model_copy(update={"version": 2}), 1)

    outcome = repo.save_job(job.model_copy(update={"version": 2, "title": "Other"}), 1)

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, StaleWrite)
    assert outcome.error.actual == 2
    assert unwrap(repo.load_job("job-1")).title == "Data Engineer"


def test_duplicate_insert_is_refused(repo):
    repo.save_application(build_application(), None)

    outcome = repo.save_application(build_application(), None)

    assert isinstance(outcome.error, StaleWrite)


def test_missing_records(repo):
    assert isinstance(repo.load_job("nope").error, RecordNotFound)
    assert isinstance(repo.save_job(build_job(), 3).error, RecordNotFound)
    with pytest.raises(RecordNotFound):
        unwrap(repo.load_application("nope"))


def test_list_applications_filters_by_job(repo):
    repo.save_application(build_application(), None)
    repo.save_application(build_application(id="app-2", job_id="job-2"), None)

    listed = unwrap(repo.list_applications("job-1"))

    assert [app.id for app in listed] == ["app-1"]


def test_json_store_survives_reopen(tmp_path: Path):
    JsonFileRepository(tmp_path).save_job(build_job(), None)

    reopened = JsonFileRepository(tmp_path)

    assert unwrap(reopened.load_job("job-1")) == build_job()
    assert (tmp_path / "jobs" / "job-1.json").exists()
    assert not list((tmp_path / "jobs").glob("*.tmp"))


def test_corrupt_json_is_a_persistence_error(tmp_path: Path):
    jobs_dir = tmp_path / "jobs"
    jobs_dir.mkdir()
    (jobs_dir / "job-1.json").write_text("{not json", encoding="utf-8")

    repo = JsonFileRepository(tmp_path)

    assert isinstance(repo.load_job("job-1").error, PersistenceError)
    assert isinstance(repo.save_job(build_job(), None).error, PersistenceError)
    assert isinstance(repo.list_jobs().error, PersistenceError)


def test_recording_notifier_groups_by_role():
    notifier = RecordingNotifier()
    notification = WorkflowNotification(
        id="ntf-1",
        type="job_published",
        title="Job published",
        message="Data Engineer is now published",
        recipient_role=Role.HR,
        created_at=NOW,
    )

    assert notifier.notify(Role.HR, notification).ok
    assert LoggingNotifier().notify(Role.HR, notification).ok
    assert notifier.types_for(Role.HR) == ["job_published"]
    assert notifier.types_for(Role.CEO) == []
