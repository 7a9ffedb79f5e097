# eln_core/tests/test_order_tracking.py

from datetime import date

import pytest

from eln_core import lifecycle
from eln_core.lifecycle import InvalidTransition, PermissionDenied


@pytest.fixture
def plasmid_order():
    return {
        "id": 31,
        "business_id": "PORD-2025-001",
        "plasmid_name": "pUC19",
        "status": "Ordered",
        "received_date": None,
        "created_by": 3,
    }


@pytest.fixture
def chemical_order():
    return {
        "id": 32,
        "business_id": "CORD-2025-001",
        "chemical_name": "Ethanol",
        "status": "Shipped",
        "received_date": None,
        "created_by": 3,
    }


def test_mark_received_sets_status_and_date(actors, plasmid_order, clock):
    result = lifecycle.mark_received("plasmid_order", plasmid_order, actors["accounts"], clock)

    assert result.patch == {"status": "Received", "received_date": date(2025, 6, 15)}
    assert result.event.action == "received"
    assert result.event.entity == "plasmid_orders"
    assert result.event.details["from_status"] == "Ordered"


def test_chemical_order_can_be_received_from_shipped(actors, chemical_order, clock):
    result = lifecycle.mark_received("chemical_order", chemical_order, actors["research_associate"], clock)
    assert result.patch["status"] == "Received"


@pytest.mark.parametrize("terminal", ["Received", "Cancelled"])
def test_terminal_orders_cannot_be_received(actors, plasmid_order, terminal):
    closed = dict(plasmid_order, status=terminal)
    with pytest.raises(InvalidTransition) as exc:
        lifecycle.mark_received("plasmid_order", closed, actors["admin"])
    assert exc.value.current == terminal


def test_state_is_checked_before_role(actors, plasmid_order):
    received = dict(plasmid_order, status="Received")

    with pytest.raises(InvalidTransition):
        lifecycle.mark_received("plasmid_order", received, actors["guest"])

    with pytest.raises(PermissionDenied):
        lifecycle.mark_received("plasmid_order", plasmid_order, actors["guest"])


def test_only_orders_can_be_received(actors, project_record):
    with pytest.raises(InvalidTransition):
        lifecycle.mark_received("project", project_record, actors["admin"])


def test_edit_to_received_fills_received_date(actors, chemical_order, clock):
    result = lifecycle.edit("chemical_order", chemical_order, {"status": "Received"}, actors["accounts"], clock)
    assert result.patch == {"status": "Received", "received_date": date(2025, 6, 15)}


def test_edit_keeps_explicit_received_date(actors, chemical_order, clock):
    result = lifecycle.edit(
        "chemical_order",
        chemical_order,
        {"status": "Received", "received_date": date(2025, 6, 1)},
        actors["accounts"],
        clock,
    )
    assert result.patch["received_date"] == date(2025, 6, 1)


def test_orders_are_not_owner_gated(actors, plasmid_order):
    result = lifecycle.edit("plasmid_order", plasmid_order, {"notes": "chased supplier"}, actors["accounts"])
    assert result.patch == {"notes": "chased supplier"}
