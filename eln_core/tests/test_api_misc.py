# eln_core/tests/test_api_misc.py

import pytest


pytestmark = pytest.mark.django_db


def test_health_is_public(api_client):
    resp = api_client.get("/eln/health/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_whoami_reports_capabilities(client_for, pi_user):
    resp = client_for(pi_user).get("/eln/whoami/")
    assert resp.status_code == 200

    body = resp.json()
    assert body["username"] == "pi"
    assert body["profile"]["role"] == "principal_investigator"
    assert body["capabilities"] == {
        "role": "principal_investigator",
        "can_edit": False,
        "can_approve": True,
        "view_only": False,
        "inventory_only": False,
    }


def test_whoami_without_profile_is_guest(client_for, make_user):
    resp = client_for(make_user("nobody")).get("/eln/whoami/")
    assert resp.json()["profile"] is None
    assert resp.json()["capabilities"]["view_only"] is True


def test_workflow_definition(client_for, guest_user):
    client = client_for(guest_user)

    resp = client.get("/eln/workflows/protocol/")
    assert resp.status_code == 200
    assert resp.json()["default_status"] == "Draft"
    assert resp.json()["approval"]["source"] == "Pending Approval"

    resp = client.get("/eln/workflows/sample/")
    assert resp.status_code == 400
    assert "kind" in resp.json()


def test_dashboard(client_for, ra_user):
    client = client_for(ra_user)
    client.post("/eln/projects/", {"title": "P"}, format="json")

    resp = client.get("/eln/dashboard/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["counts"]["projects"] == 1
    assert body["pending_approvals"]["projects"] == 1
    assert set(body["inventory"]) == {"low_stock", "out_of_stock", "expired"}


def test_schema_is_served(api_client):
    resp = api_client.get("/api/schema/")
    assert resp.status_code == 200
