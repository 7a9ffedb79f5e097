# eln_core/tests/test_lifecycle_service.py

from datetime import date, datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal

import pytest
from django.utils import timezone

from eln_core.lifecycle import InvalidTransition, PermissionDenied, ValidationError
from eln_core.models import AuditTrail, ChemicalInventoryItem, PlasmidOrder, Project
from eln_core.services import lifecycle_service as service
from eln_core.services.record_store import RecordNotFound


pytestmark = pytest.mark.django_db


def test_actor_resolution(ra_user, make_user):
    assert service.actor_for_user(ra_user).role == "research_associate"

    no_profile = make_user("noprofile")
    assert service.actor_for_user(no_profile).role == "guest"

    root = make_user("root", is_superuser=True)
    assert service.actor_for_user(root).role == "admin"

    assert service.actor_for_user(None).id is None


def test_project_approval_end_to_end(ra_user, lab_admin, clock):
    ra = service.actor_for_user(ra_user)
    admin = service.actor_for_user(lab_admin)

    created = service.create_record("project", {"title": "Yeast screen"}, ra, clock)
    assert created["business_id"] == "PROJ-2025-001"
    assert created["status"] == "Pending Approval"
    assert created["created_by"] == ra_user.id

    approved = service.approve_record("project", created["id"], admin, clock=clock)
    assert approved["status"] == "Approved"
    assert approved["approved_by"] == lab_admin.id
    assert approved["approval_date"] == clock.now()

    with pytest.raises(InvalidTransition):
        service.approve_record("project", created["id"], ra, clock=clock)

    actions = list(
        AuditTrail.objects.filter(entity="projects", entity_id=str(created["id"]))
        .order_by("id")
        .values_list("action", flat=True)
    )
    assert actions == ["created", "approved"]


def test_business_ids_continue_per_year(ra_user, clock):
    ra = service.actor_for_user(ra_user)
    service.create_record("project", {"title": "A"}, ra, clock)
    second = service.create_record("project", {"title": "B"}, ra, clock)
    assert second["business_id"] == "PROJ-2025-002"


def test_rejected_operation_writes_nothing(ra_user, pi_user, clock):
    ra = service.actor_for_user(ra_user)
    created = service.create_record("project", {"title": "Yeast screen"}, ra, clock)

    with pytest.raises(PermissionDenied):
        service.approve_record("project", created["id"], ra, clock=clock)

    project = Project.objects.get(pk=created["id"])
    assert project.status == "Pending Approval"
    assert project.approved_by_id is None
    assert AuditTrail.objects.filter(action="approved").count() == 0


def test_edit_record_writes_patch_and_audit(ra_user, clock):
    ra = service.actor_for_user(ra_user)
    created = service.create_record("project", {"title": "Old"}, ra, clock)

    updated = service.edit_record("project", created["id"], {"title": "New"}, ra, clock)

    assert updated["title"] == "New"
    row = AuditTrail.objects.get(action="updated")
    assert row.performed_by_id == ra_user.id
    assert row.details == {"fields": ["title"]}


def test_chemical_stock_flow(accounts_user, clock):
    actor = service.actor_for_user(accounts_user)
    chem = service.create_record("chemical", {"name": "Tris base", "quantity": Decimal("15"), "unit": "g"}, actor, clock)
    assert chem["status"] == "Available"
    assert chem["display_status"] == "Available"

    after = service.adjust_record_quantity("chemical", chem["id"], "-7", actor, clock)
    assert after["quantity"] == Decimal("8")
    assert after["status"] == "Low Stock"

    after = service.adjust_record_quantity("chemical", chem["id"], "-8", actor, clock)
    assert after["status"] == "Out of Stock"

    row = AuditTrail.objects.filter(action="quantity_adjusted").order_by("-id").first()
    assert row.details["to_quantity"] == "0.000"


def test_mark_received(accounts_user, clock):
    actor = service.actor_for_user(accounts_user)
    order = service.create_record("plasmid_order", {"plasmid_name": "pUC19"}, actor, clock)
    assert order["business_id"] == "PORD-2025-001"
    assert order["status"] == "Ordered"

    received = service.mark_record_received("plasmid_order", order["id"], actor, clock)
    assert received["status"] == "Received"
    assert received["received_date"] == date(2025, 6, 15)

    with pytest.raises(InvalidTransition):
        service.mark_record_received("plasmid_order", order["id"], actor, clock)

    assert PlasmidOrder.objects.get(pk=order["id"]).status == "Received"


def test_delete_record(ra_user, accounts_user, clock):
    ra = service.actor_for_user(ra_user)
    created = service.create_record("experiment", {"title": "Growth curve"}, ra, clock)

    with pytest.raises(PermissionDenied):
        service.delete_record("experiment", created["id"], service.actor_for_user(accounts_user))

    service.delete_record("experiment", created["id"], ra)
    with pytest.raises(RecordNotFound):
        service.get_record("experiment", created["id"])
    assert AuditTrail.objects.filter(entity="experiments", action="deleted").exists()


def test_refresh_inventory_statuses(clock):
    today = date(2025, 6, 15)
    ChemicalInventoryItem.objects.create(business_id="CHEM-2025-001", name="A", quantity=100, status="Available")
    expired = ChemicalInventoryItem.objects.create(
        business_id="CHEM-2025-002",
        name="B",
        quantity=100,
        expiry_date=today - timedelta(days=1),
        status="Available",
    )
    empty = ChemicalInventoryItem.objects.create(business_id="CHEM-2025-003", name="C", quantity=0, status="Low Stock")

    assert service.refresh_inventory_statuses(clock) == 2
    assert ChemicalInventoryItem.objects.get(pk=expired.pk).status == "Expired"
    assert ChemicalInventoryItem.objects.get(pk=empty.pk).status == "Out of Stock"

    # second pass has nothing left to fix
    assert service.refresh_inventory_statuses(clock) == 0


def test_expiring_chemicals_and_dashboard(ra_user, clock):
    today = date(2025, 6, 15)
    ChemicalInventoryItem.objects.create(
        business_id="CHEM-2025-001", name="Soon", quantity=50, expiry_date=today + timedelta(days=5)
    )
    ChemicalInventoryItem.objects.create(
        business_id="CHEM-2025-002", name="Later", quantity=50, expiry_date=today + timedelta(days=90)
    )
    ChemicalInventoryItem.objects.create(
        business_id="CHEM-2025-003", name="Gone", quantity=50, expiry_date=today - timedelta(days=2)
    )
    ChemicalInventoryItem.objects.create(business_id="CHEM-2025-004", name="Low", quantity=3)

    expiring = service.expiring_chemicals(clock)
    assert [row["name"] for row in expiring] == ["Soon"]
    assert expiring[0]["days_until"] == 5
    assert expiring[0]["expiry_date"] == "2025-06-20"

    service.create_record("project", {"title": "P1"}, service.actor_for_user(ra_user), clock)

    summary = service.dashboard_summary(clock)
    assert summary["counts"] == {"projects": 1, "experiments": 0, "protocols": 0, "chemicals": 4}
    assert summary["inventory"] == {"low_stock": 1, "out_of_stock": 0, "expired": 1}
    assert summary["pending_approvals"]["projects"] == 1
    assert summary["recent_projects"][0]["title"] == "P1"
    assert len(summary["expiring_soon"]) == 1


def test_allowed_actions_for(ra_user, pi_user, clock):
    created = service.create_record("project", {"title": "P"}, service.actor_for_user(ra_user), clock)

    assert service.allowed_actions_for("project", created["id"], service.actor_for_user(pi_user)) == [
        "approve",
        "reject",
    ]


def test_business_id_taken_concurrently_is_retried(ra_user, clock, monkeypatch):
    # Another transaction committed PROJ-2025-001 after our id read.
    Project.objects.create(business_id="PROJ-2025-001", title="Theirs")
    real_business_ids = service.store.business_ids
    reads = []

    def stale_then_real(table, prefix):
        reads.append(prefix)
        return [] if len(reads) == 1 else real_business_ids(table, prefix)

    monkeypatch.setattr(service.store, "business_ids", stale_then_real)

    created = service.create_record("project", {"title": "Ours"}, service.actor_for_user(ra_user), clock)

    assert created["business_id"] == "PROJ-2025-002"
    assert len(reads) == 2
    assert Project.objects.get(business_id="PROJ-2025-001").title == "Theirs"
    assert AuditTrail.objects.filter(entity="projects", action="created").count() == 1


def test_business_id_retries_are_bounded(ra_user, clock, monkeypatch):
    Project.objects.create(business_id="PROJ-2025-001", title="Taken")
    monkeypatch.setattr(service, "BUSINESS_ID_ATTEMPTS", 1)
    monkeypatch.setattr(service.store, "business_ids", lambda table, prefix: [])

    with pytest.raises(ValidationError) as exc:
        service.create_record("project", {"title": "Ours"}, service.actor_for_user(ra_user), clock)

    assert exc.value.field == "business_id"
    assert Project.objects.count() == 1


def test_explicit_duplicate_business_id_is_a_validation_error(ra_user, clock):
    Project.objects.create(business_id="PROJ-2025-001", title="Existing")

    with pytest.raises(ValidationError) as exc:
        service.create_record(
            "project",
            {"business_id": "PROJ-2025-001", "title": "Copy"},
            service.actor_for_user(ra_user),
            clock,
        )

    assert exc.value.field == "business_id"
    assert Project.objects.count() == 1
    assert not AuditTrail.objects.exists()


def test_explicit_duplicate_lost_in_a_race_is_a_validation_error(ra_user, clock, monkeypatch):
    Project.objects.create(business_id="PROJ-2025-001", title="Existing")
    checks = []

    def unseen_first(k, business_id):
        checks.append(business_id)
        return len(checks) > 1

    monkeypatch.setattr(service, "_business_id_exists", unseen_first)

    with pytest.raises(ValidationError) as exc:
        service.create_record(
            "project",
            {"business_id": "PROJ-2025-001", "title": "Copy"},
            service.actor_for_user(ra_user),
            clock,
        )

    assert exc.value.field == "business_id"
    assert Project.objects.count() == 1


def test_today_follows_the_site_time_zone(ra_user, settings, monkeypatch):
    settings.TIME_ZONE = "Pacific/Kiritimati"
    # 12:00 UTC on 31 December is 02:00 on 1 January in UTC+14
    monkeypatch.setattr(timezone, "now", lambda: datetime(2025, 12, 31, 12, 0, tzinfo=dt_timezone.utc))

    assert service.LOCAL_CLOCK.now().date() == date(2026, 1, 1)

    chem = service.create_record(
        "chemical",
        {"name": "Acetone", "quantity": Decimal("50"), "expiry_date": date(2025, 12, 31)},
        service.actor_for_user(ra_user),
    )
    assert chem["business_id"] == "CHEM-2026-001"
    assert chem["status"] == "Expired"
    assert chem["display_status"] == "Expired"
