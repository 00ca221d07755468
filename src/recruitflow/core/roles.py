"""Role gate: the single authorization predicate for every status edge."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Mapping

from ..schemas import ApplicationStatus, JobStatus, Role

EdgeKey = tuple[str, str, str]

PL = Role.PROJECT_LEADER
DEFAULT_PUBLISHER_ROLES: frozenset[Role] = frozenset({Role.PROJECT_LEADER, Role.CEO})
DEFAULT_LIFECYCLE_ROLES: frozenset[Role] = frozenset({Role.PROJECT_LEADER, Role.CEO})

APPLICATION_TERMINAL: frozenset[ApplicationStatus] = frozenset(
    {ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED, ApplicationStatus.WITHDRAWN}
)


def _key(current: Enum, target: Enum) -> EdgeKey:
    if type(current) is not type(target) or not isinstance(current, Enum):
        raise TypeError("Edge endpoints must share a status enum")
    return (type(current).__name__, current.value, target.value)


def default_job_rules(
    *,
    publisher_roles: Iterable[Role] | None = None,
    lifecycle_roles: Iterable[Role] | None = None,
) -> dict[tuple[JobStatus, JobStatus], frozenset[Role]]:
    publishers = frozenset(publisher_roles) if publisher_roles is not None else DEFAULT_PUBLISHER_ROLES
    lifecycle = frozenset(lifecycle_roles) if lifecycle_roles is not None else DEFAULT_LIFECYCLE_ROLES
    s = JobStatus
    rules: dict[tuple[JobStatus, JobStatus], frozenset[Role]] = {
        (s.DRAFT, s.PENDING_HR_ENHANCEMENT): frozenset({PL}),
        (s.PENDING_HR_ENHANCEMENT, s.HR_ENHANCEMENT_COMPLETE): frozenset({Role.HR}),
        (s.HR_ENHANCEMENT_COMPLETE, s.PENDING_CEO_APPROVAL): frozenset({Role.HR, PL}),
        (s.APPROVED, s.PUBLISHED): publishers,
        (s.PUBLISHED, s.PAUSED): lifecycle,
        (s.PAUSED, s.PUBLISHED): lifecycle,
        (s.PUBLISHED, s.CLOSED): lifecycle,
        (s.PAUSED, s.CLOSED): lifecycle,
        (s.REJECTED, s.ARCHIVED): lifecycle,
        (s.CLOSED, s.ARCHIVED): lifecycle,
    }
    for source in (s.HR_ENHANCEMENT_COMPLETE, s.PENDING_CEO_APPROVAL):
        rules[(source, s.APPROVED)] = frozenset({Role.CEO})
        rules[(source, s.REJECTED)] = frozenset({Role.CEO})
    return rules


def default_application_rules() -> dict[tuple[ApplicationStatus, ApplicationStatus], frozenset[Role]]:
    s = ApplicationStatus
    automatic = frozenset({Role.CANDIDATE, Role.SYSTEM})
    reviewers = frozenset({PL, Role.HR})
    rules: dict[tuple[ApplicationStatus, ApplicationStatus], frozenset[Role]] = {
        (s.SUBMITTED, s.TECHNICAL_REVIEW): automatic,
        (s.TECHNICAL_REVIEW, s.HR_REVIEW): automatic,
        (s.TECHNICAL_REVIEW, s.REJECTED): frozenset({Role.SYSTEM}),
        (s.HR_REVIEW, s.UNDER_REVIEW): automatic,
        (s.UNDER_REVIEW, s.INTERVIEW_SCHEDULED): reviewers,
        (s.INTERVIEW_SCHEDULED, s.INTERVIEW_COMPLETED): reviewers,
        (s.UNDER_REVIEW, s.PENDING_DECISION): frozenset({PL}),
        (s.INTERVIEW_COMPLETED, s.PENDING_DECISION): frozenset({PL}),
        (s.PENDING_DECISION, s.ACCEPTED): frozenset({PL}),
        (s.PENDING_DECISION, s.REJECTED): frozenset({PL}),
    }
    for status in s:
        if status not in APPLICATION_TERMINAL:
            rules[(status, s.WITHDRAWN)] = frozenset({Role.CANDIDATE})
    return rules


class RoleGate:
    """Pure allow/deny lookup over a whitelist of (edge, roles) pairs.

    Anything absent from the whitelist is denied, including the empty role set.
    """

    def __init__(self, rules: Mapping[tuple[Enum, Enum], Iterable[Role]] | None = None) -> None:
        if rules is None:
            rules = {**default_job_rules(), **default_application_rules()}
        self._rules: dict[EdgeKey, frozenset[Role]] = {
            _key(current, target): frozenset(roles) for (current, target), roles in rules.items()
        }

    @classmethod
    def from_settings(
        cls,
        *,
        publisher_roles: Iterable[Role] | None = None,
        lifecycle_roles: Iterable[Role] | None = None,
    ) -> "RoleGate":
        rules: dict[tuple[Enum, Enum], frozenset[Role]] = {}
        rules.update(
            default_job_rules(
                publisher_roles=_as_roles(publisher_roles),
                lifecycle_roles=_as_roles(lifecycle_roles),
            )
        )
        rules.update(default_application_rules())
        return cls(rules)

    def can_transition(self, actor_roles: Iterable[Role], current: Enum, target: Enum) -> bool:
        roles = frozenset(actor_roles)
        if not roles:
            return False
        try:
            allowed = self._rules.get(_key(current, target))
        except TypeError:
            return False
        if not allowed:
            return False
        return bool(roles & allowed)

    def allowed_roles(self, current: Enum, target: Enum) -> frozenset[Role]:
        try:
            return self._rules.get(_key(current, target), frozenset())
        except TypeError:
            return frozenset()


def _as_roles(values: Iterable[Role | str] | None) -> frozenset[Role] | None:
    if values is None:
        return None
    return frozenset(Role(value) for value in values)


__all__ = [
    "APPLICATION_TERMINAL",
    "RoleGate",
    "default_application_rules",
    "default_job_rules",
]
