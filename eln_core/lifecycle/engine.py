# eln_core/lifecycle/engine.py
"""
Transition engine.

Every operation takes the most recently read record (a plain mapping),
the requesting actor and an optional clock, and returns a TransitionResult:
the patch to write plus the audit event describing it. Nothing here
touches storage. On any rule violation a LifecycleError is raised and no
patch exists.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .capabilities import (
    CAN_APPROVE,
    CAN_EDIT,
    Actor,
    require_capability,
    resolve_capabilities,
)
from .clock import resolve_clock
from .derivation import LOW_STOCK_THRESHOLD, derive_chemical_status, to_decimal
from .errors import (
    ImmutableFieldViolation,
    InvalidTransition,
    LifecycleError,
    PermissionDenied,
    ValidationError,
)
from .kinds import (
    APPROVAL_FIELDS,
    CANCELLED,
    IMMUTABLE_FIELDS,
    PENDING_APPROVAL,
    RECEIVED,
    EntityKind,
    get_kind,
    validate_status,
)


# ===============================================================
# Results
# ===============================================================

@dataclass(frozen=True)
class AuditEvent:
    entity: str
    entity_id: Any
    action: str
    performed_by: Any
    details: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "entity_id": self.entity_id,
            "action": self.action,
            "performed_by": self.performed_by,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class TransitionResult:
    patch: Dict[str, Any]
    event: AuditEvent


# ===============================================================
# Helpers
# ===============================================================

def _same(a: Any, b: Any) -> bool:
    if a == b:
        return True
    if a is None or b is None:
        return False
    return str(a) == str(b)


def _event(k: EntityKind, record: Mapping[str, Any], action: str, actor: Actor, details: Dict[str, Any]) -> AuditEvent:
    return AuditEvent(
        entity=k.table,
        entity_id=record.get("id", record.get("business_id")),
        action=action,
        performed_by=actor.id,
        details=details,
    )


def _check_immutables(record: Mapping[str, Any], changes: Mapping[str, Any]) -> None:
    for name in sorted(IMMUTABLE_FIELDS):
        if name in changes and not _same(changes[name], record.get(name)):
            raise ImmutableFieldViolation(name)


def _check_approval_fields(changes: Mapping[str, Any]) -> None:
    for name in sorted(APPROVAL_FIELDS):
        if changes.get(name) not in (None, ""):
            raise ValidationError(
                f"'{name}' is set only by approve or reject.",
                field=name,
            )


def _check_owner(k: EntityKind, record: Mapping[str, Any], actor: Actor) -> None:
    if not k.owner_edits or actor.is_admin:
        return
    if _same(record.get("created_by"), actor.id):
        return
    raise PermissionDenied(
        capability="owner_or_admin",
        role=actor.canonical_role,
        message=(
            f"Only the creator of this {k.name} or an admin may change it: "
            f"'owner_or_admin' is required, actor role is '{actor.canonical_role or 'none'}'."
        ),
    )


def _gated_statuses(k: EntityKind) -> tuple:
    # Approval outcomes of a Pending Approval workflow are reserved to approvers
    if k.approval is not None and k.approval.source == PENDING_APPROVAL:
        return k.approval.targets
    return ()


def _non_negative_quantity(value: Any):
    qty = to_decimal(value)
    if qty < 0:
        raise ValidationError("Quantity cannot be negative.", field="quantity")
    return qty


def _require_approval(k: EntityKind):
    if k.approval is None:
        raise InvalidTransition(f"{k.name.capitalize()} records have no approval workflow.")
    return k.approval


# ===============================================================
# Creation and plain edits
# ===============================================================

def create(
    kind,
    fields: Mapping[str, Any],
    actor: Actor,
    clock=None,
    *,
    low_stock_threshold: Any = LOW_STOCK_THRESHOLD,
) -> TransitionResult:
    k = get_kind(kind)
    fields = dict(fields)

    _check_approval_fields(fields)
    caps = require_capability(actor, CAN_EDIT)

    if not str(fields.get("business_id") or "").strip():
        raise ValidationError("'business_id' is required.", field="business_id")

    missing = [f for f in k.required_fields if fields.get(f) in (None, "")]
    if missing:
        raise ValidationError(
            f"Missing required field(s) for {k.name}: {', '.join(missing)}",
            field=missing[0],
        )

    if fields.get("quantity") not in (None, ""):
        fields["quantity"] = _non_negative_quantity(fields["quantity"])

    if k.derived_status:
        fields["status"] = derive_chemical_status(
            fields.get("quantity"),
            fields.get("expiry_date"),
            resolve_clock(clock).now(),
            low_stock_threshold=low_stock_threshold,
        )
    else:
        status = fields.get("status") or k.default_status
        validate_status(k, status)
        if status in _gated_statuses(k) and not caps.can_approve:
            raise PermissionDenied(capability=CAN_APPROVE, role=caps.role)
        fields["status"] = status

    fields["created_by"] = actor.id

    details = {"business_id": fields["business_id"], "status": fields["status"]}
    for label in ("title", "name", "plasmid_name", "chemical_name"):
        if fields.get(label):
            details[label] = str(fields[label])
            break

    return TransitionResult(patch=fields, event=_event(k, fields, "created", actor, details))


def edit(
    kind,
    record: Mapping[str, Any],
    changes: Mapping[str, Any],
    actor: Actor,
    clock=None,
    *,
    low_stock_threshold: Any = LOW_STOCK_THRESHOLD,
) -> TransitionResult:
    """
    Plain edit by a permitted editor.

    Immutable fields are checked before anything else, so a changed
    business_id fails the same way for every role.
    """
    k = get_kind(kind)
    changes = dict(changes)

    _check_immutables(record, changes)
    _check_approval_fields(changes)
    caps = require_capability(actor, CAN_EDIT)
    _check_owner(k, record, actor)

    patch = {
        name: value
        for name, value in changes.items()
        if name not in IMMUTABLE_FIELDS and name not in APPROVAL_FIELDS
    }

    if "quantity" in patch:
        patch["quantity"] = _non_negative_quantity(patch["quantity"])

    current = record.get("status")
    now = resolve_clock(clock).now()

    if k.derived_status:
        merged = {**record, **patch}
        patch["status"] = derive_chemical_status(
            merged.get("quantity"),
            merged.get("expiry_date"),
            now,
            low_stock_threshold=low_stock_threshold,
        )
    elif "status" in patch:
        validate_status(k, patch["status"])
        if (
            patch["status"] != current
            and patch["status"] in _gated_statuses(k)
            and not caps.can_approve
        ):
            raise PermissionDenied(capability=CAN_APPROVE, role=caps.role)

        if (
            k.receivable
            and patch["status"] == RECEIVED
            and not patch.get("received_date")
            and not record.get("received_date")
        ):
            patch["received_date"] = now.date()

    details: Dict[str, Any] = {"fields": sorted(changes)}
    if patch.get("status") is not None and patch["status"] != current:
        details["from_status"] = current
        details["to_status"] = patch["status"]

    return TransitionResult(patch=patch, event=_event(k, record, "updated", actor, details))


def authorize_delete(kind, record: Mapping[str, Any], actor: Actor) -> AuditEvent:
    k = get_kind(kind)
    require_capability(actor, CAN_EDIT)
    _check_owner(k, record, actor)
    return _event(
        k,
        record,
        "deleted",
        actor,
        {"business_id": record.get("business_id"), "status": record.get("status")},
    )


# ===============================================================
# Approval workflow
# ===============================================================

def approve(
    kind,
    record: Mapping[str, Any],
    actor: Actor,
    target_status: Optional[str] = None,
    clock=None,
) -> TransitionResult:
    """
    Resolve a pending record to its approve or reject target.

    Source state is checked before the actor's role: approving a record
    that is no longer pending is an InvalidTransition for everyone.
    """
    k = get_kind(kind)
    rule = _require_approval(k)

    target = target_status or rule.approve_to
    if target not in rule.targets:
        raise ValidationError(
            f"{k.name.capitalize()} approval target must be one of: {', '.join(rule.targets)}",
            field="status",
        )

    action = "approved" if target == rule.approve_to else "rejected"
    current = record.get("status")
    if current != rule.source:
        raise InvalidTransition(
            f"Cannot mark {k.name} as {target}: status is '{current}', expected '{rule.source}'.",
            current=current,
        )

    require_capability(actor, CAN_APPROVE)

    now = resolve_clock(clock).now()
    patch = {
        "status": target,
        "approved_by": actor.id,
        "approval_date": now,
    }
    details = {"from_status": current, "to_status": target}
    return TransitionResult(patch=patch, event=_event(k, record, action, actor, details))


def reject(kind, record: Mapping[str, Any], actor: Actor, clock=None) -> TransitionResult:
    k = get_kind(kind)
    rule = _require_approval(k)
    return approve(k, record, actor, target_status=rule.reject_to, clock=clock)


# ===============================================================
# Orders and stock
# ===============================================================

def mark_received(kind, record: Mapping[str, Any], actor: Actor, clock=None) -> TransitionResult:
    k = get_kind(kind)
    if not k.receivable:
        raise InvalidTransition(f"{k.name.capitalize()} records cannot be received.")

    current = record.get("status")
    if current in (RECEIVED, CANCELLED):
        raise InvalidTransition(
            f"{k.name.capitalize()} is already {current} and cannot be received.",
            current=current,
        )

    require_capability(actor, CAN_EDIT)

    received_on = resolve_clock(clock).now().date()
    patch = {"status": RECEIVED, "received_date": received_on}
    details = {"from_status": current, "to_status": RECEIVED, "received_date": received_on.isoformat()}
    return TransitionResult(patch=patch, event=_event(k, record, "received", actor, details))


def adjust_quantity(
    kind,
    record: Mapping[str, Any],
    delta: Any,
    actor: Actor,
    clock=None,
    *,
    low_stock_threshold: Any = LOW_STOCK_THRESHOLD,
) -> TransitionResult:
    """
    Stock movement. Results below zero are rejected, never clamped.
    """
    k = get_kind(kind)
    if not k.stocked:
        raise ValidationError(f"{k.name.capitalize()} records do not track stock.", field="quantity")

    require_capability(actor, CAN_EDIT)

    change = to_decimal(delta, field="delta")
    before = to_decimal(record.get("quantity"))
    after = before + change
    if after < 0:
        raise ValidationError(
            f"Adjustment of {change} would leave quantity at {after}; quantity cannot be negative.",
            field="quantity",
        )

    patch: Dict[str, Any] = {"quantity": after}
    if k.derived_status:
        patch["status"] = derive_chemical_status(
            after,
            record.get("expiry_date"),
            resolve_clock(clock).now(),
            low_stock_threshold=low_stock_threshold,
        )

    details = {"delta": str(change), "from_quantity": str(before), "to_quantity": str(after)}
    if patch.get("status") and patch["status"] != record.get("status"):
        details["from_status"] = record.get("status")
        details["to_status"] = patch["status"]

    return TransitionResult(patch=patch, event=_event(k, record, "quantity_adjusted", actor, details))


# ===============================================================
# Introspection
# ===============================================================

def allowed_actions(kind, record: Mapping[str, Any], actor: Actor, clock=None) -> List[str]:
    """
    Actions the actor could perform on the record right now.
    """
    k = get_kind(kind)
    checks = {
        "edit": lambda: edit(k, record, {}, actor, clock),
        "delete": lambda: authorize_delete(k, record, actor),
    }
    if k.approval is not None:
        checks["approve"] = lambda: approve(k, record, actor, clock=clock)
        checks["reject"] = lambda: reject(k, record, actor, clock=clock)
    if k.receivable:
        checks["mark_received"] = lambda: mark_received(k, record, actor, clock)
    if k.stocked:
        checks["adjust_quantity"] = lambda: require_capability(actor, CAN_EDIT)

    out: List[str] = []
    for name, check in checks.items():
        try:
            check()
        except LifecycleError:
            continue
        out.append(name)
    return sorted(out)


def capabilities_for(actor: Actor) -> Dict[str, Any]:
    return resolve_capabilities(actor.role).as_dict()
