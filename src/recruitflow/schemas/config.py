"""Pydantic configuration schema for CLI YAML input."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .actor import Role


class WorkflowConfig(BaseModel):
    publisher_roles: list[Role] | None = None
    lifecycle_roles: list[Role] | None = None


class AssessmentConfig(BaseModel):
    tick_interval_seconds: float = Field(default=1.0, gt=0)


class StorageConfig(BaseModel):
    path: Path | None = None


class AppConfig(BaseModel):
    log_level: str = "INFO"
    audit_log: Path | None = None
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    assessment: AssessmentConfig = Field(default_factory=AssessmentConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        workflow = self.workflow.model_dump(mode="json", exclude_none=True)
        if workflow:
            settings["workflow"] = workflow
        settings["assessment"] = self.assessment.model_dump(mode="json")
        if self.storage.path is not None:
            settings["storage"] = {"path": str(self.storage.path)}
        if self.audit_log is not None:
            settings["audit_log"] = str(self.audit_log)
        return settings


def load_config(raw: Any) -> AppConfig:
    if raw is None:
        return AppConfig()
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
