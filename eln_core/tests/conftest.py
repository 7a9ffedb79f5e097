# eln_core/tests/conftest.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from eln_core.lifecycle import (
    ACCOUNTS,
    ADMIN,
    GUEST,
    PRINCIPAL_INVESTIGATOR,
    RESEARCH_ASSOCIATE,
    Actor,
    FixedClock,
)
from eln_core.models import UserProfile


# ===============================================================
# Pure engine fixtures
# ===============================================================

@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 6, 15, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def actors() -> Dict[str, Actor]:
    """
    One actor per role; ids are arbitrary but distinct.
    """
    return {
        ADMIN: Actor(id=1, role=ADMIN),
        PRINCIPAL_INVESTIGATOR: Actor(id=2, role=PRINCIPAL_INVESTIGATOR),
        RESEARCH_ASSOCIATE: Actor(id=3, role=RESEARCH_ASSOCIATE),
        ACCOUNTS: Actor(id=4, role=ACCOUNTS),
        GUEST: Actor(id=5, role=GUEST),
    }


@pytest.fixture
def project_record() -> Dict[str, Any]:
    return {
        "id": 10,
        "business_id": "PROJ-2025-001",
        "title": "Yeast screen",
        "status": "Pending Approval",
        "created_by": 3,
        "approved_by": None,
        "approval_date": None,
    }


# ===============================================================
# Django fixtures
# ===============================================================

@pytest.fixture
def make_user(db) -> Callable[..., Any]:
    """
    Factory: user with an optional UserProfile carrying `role`.
    """
    User = get_user_model()

    def _factory(username: str, role: Optional[str] = None, **extra: Any):
        user = User.objects.create_user(username=username, password="pass123", **extra)
        if role is not None:
            UserProfile.objects.create(user=user, role=role, full_name=username.title())
        return user

    return _factory


@pytest.fixture
def lab_admin(make_user):
    return make_user("lab_admin", ADMIN)


@pytest.fixture
def pi_user(make_user):
    return make_user("pi", PRINCIPAL_INVESTIGATOR)


@pytest.fixture
def ra_user(make_user):
    return make_user("ra", RESEARCH_ASSOCIATE)


@pytest.fixture
def accounts_user(make_user):
    return make_user("accounts", ACCOUNTS)


@pytest.fixture
def guest_user(make_user):
    return make_user("visitor", GUEST)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def client_for(api_client) -> Callable[[Any], APIClient]:
    def _as(user) -> APIClient:
        api_client.force_authenticate(user=user)
        return api_client

    return _as
