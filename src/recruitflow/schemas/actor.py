"""Actors, roles and the explicit session context passed to transitions."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Closed set of roles known to the workflow."""

    PROJECT_LEADER = "PROJECT_LEADER"
    HR = "HR"
    CEO = "CEO"
    CANDIDATE = "CANDIDATE"
    SYSTEM = "SYSTEM"


class Actor(BaseModel):
    """Person (or the system itself) performing an action."""

    id: str
    name: str = ""
    email: str | None = None
    roles: frozenset[Role] = Field(default_factory=frozenset)

    model_config = ConfigDict(frozen=True, extra="forbid")

    def has_role(self, role: Role) -> bool:
        return role in self.roles


class ActorContext(BaseModel):
    """Session value carried into every transition call."""

    actor: Actor

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def roles(self) -> frozenset[Role]:
        return self.actor.roles

    @property
    def actor_id(self) -> str:
        return self.actor.id

    def primary_role(self, preferred: tuple[Role, ...] = ()) -> Role | None:
        """Return the first preferred role held, falling back to any held role."""
        for role in preferred:
            if role in self.roles:
                return role
        return next(iter(sorted(self.roles, key=lambda r: r.value)), None)

    @classmethod
    def of(cls, actor_id: str, *roles: Role, name: str = "") -> "ActorContext":
        return cls(actor=Actor(id=actor_id, name=name, roles=frozenset(roles)))

    @classmethod
    def system(cls) -> "ActorContext":
        return cls.of("system", Role.SYSTEM, name="System")


class WorkflowParticipant(BaseModel):
    """Actor snapshot stored on a job for one pipeline role."""

    id: str
    name: str = ""
    role: Role
    action_date: datetime | None = None
    feedback: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_context(
        cls,
        context: ActorContext,
        role: Role,
        *,
        action_date: datetime | None = None,
        feedback: str | None = None,
    ) -> "WorkflowParticipant":
        return cls(
            id=context.actor.id,
            name=context.actor.name,
            role=role,
            action_date=action_date,
            feedback=feedback,
        )
