# eln_core/tests/test_management_commands.py

from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from eln_core.models import ChemicalInventoryItem
from eln_core.tasks import refresh_inventory_statuses


pytestmark = pytest.mark.django_db


def test_refresh_inventory_status_command():
    item = ChemicalInventoryItem.objects.create(business_id="CHEM-2025-001", name="A", quantity=0)

    out = StringIO()
    call_command("refresh_inventory_status", stdout=out)

    assert "1 chemical record(s) updated" in out.getvalue()
    item.refresh_from_db()
    assert item.status == "Out of Stock"


def test_refresh_task_runs_inline():
    ChemicalInventoryItem.objects.create(business_id="CHEM-2025-001", name="A", quantity=5)
    assert refresh_inventory_statuses.apply().get() == 1


def test_expiry_report():
    today = timezone.localdate()
    ChemicalInventoryItem.objects.create(
        business_id="CHEM-2025-001", name="Acetone", quantity=40, expiry_date=today + timedelta(days=3)
    )

    out = StringIO()
    call_command("expiry_report", stdout=out)
    assert "CHEM-2025-001\tAcetone" in out.getvalue()
    assert "1 chemical(s) expiring soon" in out.getvalue()

    out = StringIO()
    call_command("expiry_report", "--days", "1", stdout=out)
    assert "No chemicals expiring soon." in out.getvalue()
