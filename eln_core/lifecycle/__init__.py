# eln_core/lifecycle/__init__.py
"""
Lifecycle and derivation engine for ELN records.

Pure functions over plain record mappings: no storage, no Django.
Callers load a record, ask the engine for a patch, apply it themselves.
"""

from __future__ import annotations

from .capabilities import (
    ACCOUNTS,
    ADMIN,
    CAN_APPROVE,
    CAN_EDIT,
    GUEST,
    PRINCIPAL_INVESTIGATOR,
    RESEARCH_ASSOCIATE,
    ROLES,
    Actor,
    Capabilities,
    normalize_role,
    require_capability,
    resolve_capabilities,
)
from .clock import SYSTEM_CLOCK, Clock, FixedClock, SystemClock
from .derivation import (
    EXPIRY_WARNING_DAYS,
    LOW_STOCK_THRESHOLD,
    days_until,
    derive_chemical_status,
    display_status,
    is_expiring_soon,
    stale_statuses,
)
from .engine import (
    AuditEvent,
    TransitionResult,
    adjust_quantity,
    allowed_actions,
    approve,
    authorize_delete,
    capabilities_for,
    create,
    edit,
    mark_received,
    reject,
)
from .errors import (
    ImmutableFieldViolation,
    InvalidTransition,
    LifecycleError,
    PermissionDenied,
    ValidationError,
)
from .identifiers import next_business_id
from .kinds import (
    APPROVAL_FIELDS,
    IMMUTABLE_FIELDS,
    KINDS,
    EntityKind,
    get_kind,
    validate_status,
    workflow_definition,
)


__all__ = [
    "ACCOUNTS",
    "ADMIN",
    "CAN_APPROVE",
    "CAN_EDIT",
    "GUEST",
    "PRINCIPAL_INVESTIGATOR",
    "RESEARCH_ASSOCIATE",
    "ROLES",
    "Actor",
    "Capabilities",
    "normalize_role",
    "require_capability",
    "resolve_capabilities",
    "Clock",
    "FixedClock",
    "SystemClock",
    "SYSTEM_CLOCK",
    "EXPIRY_WARNING_DAYS",
    "LOW_STOCK_THRESHOLD",
    "days_until",
    "derive_chemical_status",
    "display_status",
    "is_expiring_soon",
    "stale_statuses",
    "AuditEvent",
    "TransitionResult",
    "adjust_quantity",
    "allowed_actions",
    "approve",
    "authorize_delete",
    "capabilities_for",
    "create",
    "edit",
    "mark_received",
    "reject",
    "ImmutableFieldViolation",
    "InvalidTransition",
    "LifecycleError",
    "PermissionDenied",
    "ValidationError",
    "next_business_id",
    "APPROVAL_FIELDS",
    "IMMUTABLE_FIELDS",
    "KINDS",
    "EntityKind",
    "get_kind",
    "validate_status",
    "workflow_definition",
]
