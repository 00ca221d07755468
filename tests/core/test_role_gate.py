from __future__ import annotations

import itertools

import pytest

from recruitflow.core import RoleGate
from recruitflow.core.roles import default_application_rules, default_job_rules
from recruitflow.schemas import ApplicationStatus, JobStatus, Role


def test_every_unlisted_pair_is_denied():
    gate = RoleGate()
    rules = {**default_job_rules(), **default_application_rules()}

    for status_type in (JobStatus, ApplicationStatus):
        for current, target in itertools.product(status_type, repeat=2):
            allowed = rules.get((current, target), frozenset())
            for role in Role:
                assert gate.can_transition({role}, current, target) is (role in allowed)


@pytest.mark.parametrize(
    "current, target",
    [
        (JobStatus.DRAFT, JobStatus.PENDING_HR_ENHANCEMENT),
        (ApplicationStatus.SUBMITTED, ApplicationStatus.TECHNICAL_REVIEW),
    ],
)
def test_empty_role_set_is_denied(current, target):
    assert not RoleGate().can_transition(set(), current, target)


def test_mixed_status_types_are_denied():
    gate = RoleGate()
    assert not gate.can_transition({Role.CEO}, JobStatus.REJECTED, ApplicationStatus.REJECTED)
    assert gate.allowed_roles(JobStatus.DRAFT, ApplicationStatus.SUBMITTED) == frozenset()


def test_job_and_application_rejections_do_not_collide():
    gate = RoleGate()

    assert gate.allowed_roles(JobStatus.PENDING_CEO_APPROVAL, JobStatus.REJECTED) == {Role.CEO}
    assert gate.allowed_roles(ApplicationStatus.PENDING_DECISION, ApplicationStatus.REJECTED) == {
        Role.PROJECT_LEADER
    }


def test_any_held_role_authorizes():
    gate = RoleGate()
    assert gate.can_transition(
        {Role.CANDIDATE, Role.HR}, JobStatus.PENDING_HR_ENHANCEMENT, JobStatus.HR_ENHANCEMENT_COMPLETE
    )


def test_from_settings_overrides_publishers():
    gate = RoleGate.from_settings(publisher_roles=["HR"])

    assert gate.can_transition({Role.HR}, JobStatus.APPROVED, JobStatus.PUBLISHED)
    assert not gate.can_transition({Role.CEO}, JobStatus.APPROVED, JobStatus.PUBLISHED)
    assert gate.can_transition({Role.CEO}, JobStatus.PUBLISHED, JobStatus.CLOSED)


def test_withdrawal_only_from_open_states():
    gate = RoleGate()
    for status in ApplicationStatus:
        expected = status not in (
            ApplicationStatus.ACCEPTED,
            ApplicationStatus.REJECTED,
            ApplicationStatus.WITHDRAWN,
        )
        assert gate.can_transition({Role.CANDIDATE}, status, ApplicationStatus.WITHDRAWN) is expected
