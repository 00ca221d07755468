"""JSON-file repository: one document per record under a base directory."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.errors import PersistenceError, RecordNotFound
from ..schemas import Application, Job
from .memory import _check_version, _require_counter, keep_counters
from .results import Failure, Result, Success

M = TypeVar("M", bound=BaseModel)


class JsonFileRepository:
    """Persist jobs and applications as pretty-printed JSON files."""

    def __init__(self, base_path: str | Path) -> None:
        self._base = Path(base_path)
        self._jobs_dir = self._base / "jobs"
        self._applications_dir = self._base / "applications"
        self._lock = threading.Lock()

    def load_job(self, job_id: str) -> Result[Job]:
        return self._load(self._jobs_dir, job_id, Job, "job")

    def save_job(self, job: Job, expected_version: int | None) -> Result[Job]:
        return self._save(self._jobs_dir, job, expected_version, Job, "job", merge=keep_counters)

    def increment_job_counter(self, job_id: str, counter: str) -> Result[Job]:
        _require_counter(counter)
        with self._lock:
            current = self._load(self._jobs_dir, job_id, Job, "job")
            if isinstance(current, Failure):
                return current
            job = current.value
            return self._write(self._jobs_dir, job.model_copy(update={counter: getattr(job, counter) + 1}), "job")

    def load_application(self, application_id: str) -> Result[Application]:
        return self._load(self._applications_dir, application_id, Application, "application")

    def save_application(self, application: Application, expected_version: int | None) -> Result[Application]:
        return self._save(self._applications_dir, application, expected_version, Application, "application")

    def list_applications(self, job_id: str) -> Result[list[Application]]:
        listed = self._list(self._applications_dir, Application)
        if isinstance(listed, Failure):
            return listed
        return Success([app for app in listed.value if app.job_id == job_id])

    def list_jobs(self) -> Result[list[Job]]:
        return self._list(self._jobs_dir, Job)

    def _load(self, directory: Path, record_id: str, model: type[M], kind: str) -> Result[M]:
        path = directory / f"{record_id}.json"
        if not path.exists():
            return Failure(RecordNotFound(kind, record_id))
        try:
            return Success(model.model_validate_json(path.read_text(encoding="utf-8")))
        except (OSError, ValidationError) as exc:
            return Failure(PersistenceError(f"Cannot read {kind} {record_id!r}: {exc}"))

    def _save(
        self,
        directory: Path,
        record: Job | Application,
        expected_version: int | None,
        model: type[M],
        kind: str,
        *,
        merge: Callable[[M, M | None], M] | None = None,
    ) -> Result:
        with self._lock:
            current = self._load(directory, record.id, model, kind)
            stored = current.value if isinstance(current, Success) else None
            if isinstance(current, Failure) and not isinstance(current.error, RecordNotFound):
                return current
            error = _check_version(record.id, stored, expected_version, kind)
            if error is not None:
                return Failure(error)
            if merge is not None:
                record = merge(record, stored)
            return self._write(directory, record, kind)

    def _write(self, directory: Path, record: Job | Application, kind: str) -> Result:
        path = directory / f"{record.id}.json"
        tmp_path = path.with_suffix(".json.tmp")
        try:
            directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(record.model_dump_json(indent=2), encoding="utf-8")
            tmp_path.replace(path)
        except OSError as exc:
            return Failure(PersistenceError(f"Cannot write {kind} {record.id!r}: {exc}"))
        return Success(record)

    def _list(self, directory: Path, model: type[M]) -> Result[list[M]]:
        if not directory.exists():
            return Success([])
        records: list[M] = []
        try:
            for path in sorted(directory.glob("*.json")):
                records.append(model.model_validate_json(path.read_text(encoding="utf-8")))
        except (OSError, ValidationError) as exc:
            return Failure(PersistenceError(f"Cannot list {directory.name}: {exc}"))
        return Success(records)
