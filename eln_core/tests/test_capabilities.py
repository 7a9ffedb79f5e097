# eln_core/tests/test_capabilities.py

import pytest

from eln_core.lifecycle import (
    CAN_APPROVE,
    CAN_EDIT,
    Actor,
    PermissionDenied,
    normalize_role,
    require_capability,
    resolve_capabilities,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("admin", "admin"),
        ("Administrator", "admin"),
        ("Principal Investigator", "principal_investigator"),
        ("PI", "principal_investigator"),
        ("research-associate", "research_associate"),
        ("  Research   Associate ", "research_associate"),
        ("accounts", "accounts"),
        ("guest", "guest"),
        ("", "guest"),
        (None, "guest"),
        ("janitor", "guest"),
    ],
)
def test_normalize_role(raw, expected):
    assert normalize_role(raw) == expected


@pytest.mark.parametrize(
    "role, can_edit, can_approve, view_only, inventory_only",
    [
        ("admin", True, True, False, False),
        ("principal_investigator", False, True, False, False),
        ("research_associate", True, False, False, False),
        ("accounts", True, False, False, True),
        ("guest", False, False, True, False),
    ],
)
def test_capability_table(role, can_edit, can_approve, view_only, inventory_only):
    caps = resolve_capabilities(role)
    assert caps.role == role
    assert caps.can_edit is can_edit
    assert caps.can_approve is can_approve
    assert caps.view_only is view_only
    assert caps.inventory_only is inventory_only


def test_unknown_role_gets_guest_capabilities():
    assert resolve_capabilities("intern").as_dict() == {
        "role": "guest",
        "can_edit": False,
        "can_approve": False,
        "view_only": True,
        "inventory_only": False,
    }


def test_require_capability_raises_with_role_and_capability():
    with pytest.raises(PermissionDenied) as exc:
        require_capability(Actor(id=7, role="principal_investigator"), CAN_EDIT)

    assert exc.value.capability == "can_edit"
    assert exc.value.role == "principal_investigator"
    assert "can_edit" in str(exc.value)


def test_require_capability_returns_caps():
    caps = require_capability(Actor(id=1, role="PI"), CAN_APPROVE)
    assert caps.can_approve is True


def test_actor_is_admin_uses_canonical_role():
    assert Actor(id=1, role="Administrator").is_admin is True
    assert Actor(id=2, role="research_associate").is_admin is False
