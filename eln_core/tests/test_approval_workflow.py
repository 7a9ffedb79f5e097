# eln_core/tests/test_approval_workflow.py

import pytest

from eln_core import lifecycle
from eln_core.lifecycle import InvalidTransition, PermissionDenied, ValidationError


def test_pi_approves_pending_project(actors, project_record, clock):
    pi = actors["principal_investigator"]

    result = lifecycle.approve("project", project_record, pi, clock=clock)

    assert result.patch == {
        "status": "Approved",
        "approved_by": pi.id,
        "approval_date": clock.now(),
    }
    assert result.event.action == "approved"
    assert result.event.entity == "projects"
    assert result.event.entity_id == 10
    assert result.event.performed_by == pi.id
    assert result.event.details == {"from_status": "Pending Approval", "to_status": "Approved"}


def test_admin_rejects_pending_project(actors, project_record, clock):
    admin = actors["admin"]

    result = lifecycle.reject("project", project_record, admin, clock=clock)

    assert result.patch["status"] == "Rejected"
    assert result.patch["approved_by"] == admin.id
    assert result.patch["approval_date"] == clock.now()
    assert result.event.action == "rejected"


def test_approve_with_reject_target_is_a_rejection(actors, project_record, clock):
    result = lifecycle.approve(
        "project", project_record, actors["admin"], target_status="Rejected", clock=clock
    )
    assert result.patch["status"] == "Rejected"
    assert result.event.action == "rejected"


@pytest.mark.parametrize("role", ["research_associate", "accounts", "guest"])
def test_non_approvers_are_denied(actors, project_record, role):
    with pytest.raises(PermissionDenied) as exc:
        lifecycle.approve("project", project_record, actors[role])
    assert exc.value.capability == "can_approve"


@pytest.mark.parametrize("role", ["admin", "principal_investigator", "research_associate"])
def test_approving_an_approved_project_is_invalid_for_everyone(actors, project_record, role):
    """
    Source state is checked before the role.
    """
    approved = dict(project_record, status="Approved")

    with pytest.raises(InvalidTransition) as exc:
        lifecycle.approve("project", approved, actors[role])
    assert exc.value.current == "Approved"


def test_rejected_project_cannot_be_rejected_again(actors, project_record):
    rejected = dict(project_record, status="Rejected")
    with pytest.raises(InvalidTransition):
        lifecycle.reject("project", rejected, actors["admin"])


def test_approval_target_outside_the_rule(actors, project_record):
    with pytest.raises(ValidationError) as exc:
        lifecycle.approve("project", project_record, actors["admin"], target_status="Completed")
    assert exc.value.field == "status"


def test_draft_protocol_must_be_submitted_first(actors):
    draft = {"id": 4, "business_id": "PROT-2025-001", "status": "Draft", "created_by": 3}

    with pytest.raises(InvalidTransition):
        lifecycle.approve("protocol", draft, actors["principal_investigator"])


def test_protocol_submitted_then_approved(actors, clock):
    ra = actors["research_associate"]
    draft = {"id": 4, "business_id": "PROT-2025-001", "status": "Draft", "created_by": ra.id}

    submitted = lifecycle.edit("protocol", draft, {"status": "Pending Approval"}, ra, clock)
    assert submitted.patch == {"status": "Pending Approval"}

    pending = {**draft, **submitted.patch}
    approved = lifecycle.approve("protocol", pending, actors["principal_investigator"], clock=clock)
    assert approved.patch["status"] == "Approved"


def test_kinds_without_approval_workflow(actors):
    chemical = {"id": 1, "business_id": "CHEM-2025-001", "status": "Available", "quantity": 50}

    with pytest.raises(InvalidTransition):
        lifecycle.approve("chemical", chemical, actors["admin"])
    with pytest.raises(InvalidTransition):
        lifecycle.reject("chemical", chemical, actors["admin"])


def test_approval_fields_cannot_be_written_by_edit(actors, project_record):
    with pytest.raises(ValidationError) as exc:
        lifecycle.edit("project", project_record, {"approved_by": 2}, actors["admin"])
    assert exc.value.field == "approved_by"


def test_editor_cannot_approve_through_a_status_edit(actors, project_record):
    with pytest.raises(PermissionDenied) as exc:
        lifecycle.edit("project", project_record, {"status": "Approved"}, actors["research_associate"])
    assert exc.value.capability == "can_approve"
