"""Error taxonomy shared by the state machines and the orchestrator."""

from __future__ import annotations

from typing import Any


class WorkflowError(Exception):
    """Base class for workflow failures surfaced to callers."""


class IllegalTransition(WorkflowError):
    """Requested target is not reachable from the current status."""

    def __init__(self, current: Any, target: Any, *, record_id: str | None = None):
        super().__init__(f"Cannot move {record_id or 'record'} from {_value(current)} to {_value(target)}")
        self.current = current
        self.target = target
        self.record_id = record_id


class Unauthorized(WorkflowError):
    """Actor lacks the role (or ownership) required for an edge."""

    def __init__(
        self,
        actor_id: str,
        roles: frozenset,
        current: Any,
        target: Any,
        *,
        reason: str | None = None,
    ):
        detail = reason or "role not permitted"
        super().__init__(
            f"Actor {actor_id!r} may not move {_value(current)} to {_value(target)}: {detail}"
        )
        self.actor_id = actor_id
        self.roles = roles
        self.current = current
        self.target = target
        self.reason = detail


class PreconditionFailed(WorkflowError):
    """A transition is legal and authorized but a required field is missing or invalid."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class IncompleteJob(PreconditionFailed):
    """A job lacks a quiz (or other field) needed to advance."""


class StaleWrite(WorkflowError):
    """The stored record changed since the caller loaded it; re-fetch and retry."""

    def __init__(self, record_id: str, expected: int | None, actual: int | None):
        super().__init__(
            f"Record {record_id!r} is at version {actual}, expected {expected}"
        )
        self.record_id = record_id
        self.expected = expected
        self.actual = actual


class RecordNotFound(WorkflowError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} {record_id!r} not found")
        self.kind = kind
        self.record_id = record_id


class PersistenceError(WorkflowError):
    """A collaborator I/O call failed; the prior record remains valid."""


def _value(status: Any) -> str:
    return str(getattr(status, "value", status))


__all__ = [
    "IllegalTransition",
    "IncompleteJob",
    "PersistenceError",
    "PreconditionFailed",
    "RecordNotFound",
    "StaleWrite",
    "Unauthorized",
    "WorkflowError",
]
