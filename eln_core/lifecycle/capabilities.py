# eln_core/lifecycle/capabilities.py
"""
Single source of truth for what a role may do.

UI gating and engine enforcement both read the flags produced here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet

from .errors import PermissionDenied


# ===============================================================
# Roles
# ===============================================================

ADMIN = "admin"
PRINCIPAL_INVESTIGATOR = "principal_investigator"
RESEARCH_ASSOCIATE = "research_associate"
ACCOUNTS = "accounts"
GUEST = "guest"

ROLES = (ADMIN, PRINCIPAL_INVESTIGATOR, RESEARCH_ASSOCIATE, ACCOUNTS, GUEST)

# Normalize user-provided / stored roles into canonical roles.
#
# Examples handled:
# - "Principal Investigator" -> principal_investigator
# - "PI" -> principal_investigator
# - "research-associate" -> research_associate
ROLE_ALIASES: Dict[str, str] = {
    "admin": ADMIN,
    "administrator": ADMIN,
    "superuser": ADMIN,
    "principal_investigator": PRINCIPAL_INVESTIGATOR,
    "pi": PRINCIPAL_INVESTIGATOR,
    "research_associate": RESEARCH_ASSOCIATE,
    "researcher": RESEARCH_ASSOCIATE,
    "ra": RESEARCH_ASSOCIATE,
    "accounts": ACCOUNTS,
    "accountant": ACCOUNTS,
    "guest": GUEST,
    "viewer": GUEST,
    "readonly": GUEST,
}

EDIT_ROLES: FrozenSet[str] = frozenset({ADMIN, RESEARCH_ASSOCIATE, ACCOUNTS})
APPROVE_ROLES: FrozenSet[str] = frozenset({ADMIN, PRINCIPAL_INVESTIGATOR})

CAN_EDIT = "can_edit"
CAN_APPROVE = "can_approve"


def normalize_role(role) -> str:
    """
    Canonicalize role strings so small formatting differences
    do not change the resolved capabilities.

    Unknown or empty roles fall back to guest.
    """
    r = str(role or "").strip().lower()
    if not r:
        return GUEST

    r = re.sub(r"[\s\-]+", "_", r)
    r = re.sub(r"_+", "_", r)

    return ROLE_ALIASES.get(r, GUEST)


# ===============================================================
# Actor + capabilities
# ===============================================================

@dataclass(frozen=True)
class Actor:
    id: Any
    role: str = GUEST

    @property
    def canonical_role(self) -> str:
        return normalize_role(self.role)

    @property
    def is_admin(self) -> bool:
        return self.canonical_role == ADMIN


@dataclass(frozen=True)
class Capabilities:
    role: str
    can_edit: bool
    can_approve: bool
    view_only: bool
    inventory_only: bool

    def as_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "can_edit": self.can_edit,
            "can_approve": self.can_approve,
            "view_only": self.view_only,
            "inventory_only": self.inventory_only,
        }


def resolve_capabilities(role) -> Capabilities:
    r = normalize_role(role)
    return Capabilities(
        role=r,
        can_edit=r in EDIT_ROLES,
        can_approve=r in APPROVE_ROLES,
        view_only=r == GUEST,
        # presentation-layer hint only; the engine gates on can_edit
        inventory_only=r == ACCOUNTS,
    )


def require_capability(actor: Actor, capability: str) -> Capabilities:
    caps = resolve_capabilities(actor.role)
    if not getattr(caps, capability, False):
        raise PermissionDenied(capability=capability, role=caps.role)
    return caps
