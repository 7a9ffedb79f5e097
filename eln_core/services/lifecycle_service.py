# eln_core/services/lifecycle_service.py
from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import IntegrityError, transaction
from django.utils import timezone

from eln_core import lifecycle
from eln_core.lifecycle import (
    ADMIN,
    EXPIRY_WARNING_DAYS,
    GUEST,
    LOW_STOCK_THRESHOLD,
    Actor,
    AuditEvent,
    LifecycleError,
    TransitionResult,
    ValidationError,
    get_kind,
)
from eln_core.lifecycle.derivation import days_until, is_expiring_soon, stale_statuses
from eln_core.lifecycle.kinds import (
    CHEMICAL,
    EXPERIMENT,
    EXPIRED,
    LOW_STOCK,
    OUT_OF_STOCK,
    PROJECT,
    PROTOCOL,
)
from eln_core.models import AuditTrail, UserProfile

from .record_store import store

logger = logging.getLogger(__name__)

BUSINESS_ID_ATTEMPTS = 5


# ===============================================================
# Settings + actor resolution
# ===============================================================

class LocalClock:
    """
    Wall clock in the site TIME_ZONE, so "today" turns over at local
    midnight.
    """

    def now(self):
        if settings.USE_TZ:
            return timezone.localtime()
        return timezone.now()


LOCAL_CLOCK = LocalClock()


def _clock(clock=None):
    return clock if clock is not None else LOCAL_CLOCK


def low_stock_threshold():
    return getattr(settings, "ELN_LOW_STOCK_THRESHOLD", LOW_STOCK_THRESHOLD)


def expiry_warning_days() -> int:
    return int(getattr(settings, "ELN_EXPIRY_WARNING_DAYS", EXPIRY_WARNING_DAYS))


def actor_for_user(user) -> Actor:
    """
    Superusers act as admin; users without a profile are guests.
    """
    if not user or not getattr(user, "is_authenticated", False):
        return Actor(id=None, role=GUEST)

    if getattr(user, "is_superuser", False):
        return Actor(id=user.pk, role=ADMIN)

    role = (
        UserProfile.objects.filter(user_id=user.pk)
        .values_list("role", flat=True)
        .first()
    )
    return Actor(id=user.pk, role=role or GUEST)


# ===============================================================
# Internals
# ===============================================================

def _jsonable(details: Mapping[str, Any]) -> Dict[str, Any]:
    return json.loads(json.dumps(dict(details), cls=DjangoJSONEncoder))


def _write_audit(event: AuditEvent) -> AuditTrail:
    return AuditTrail.objects.create(
        entity=event.entity,
        entity_id=str(event.entity_id),
        action=event.action,
        performed_by_id=event.performed_by,
        details=_jsonable(event.details),
    )


def _business_id_exists(k, business_id: str) -> bool:
    return store.count(k.table, {"business_id": business_id}) > 0


def _duplicate_business_id(k, business_id: str) -> ValidationError:
    return ValidationError(f"A {k.name} with business id {business_id} already exists.", field="business_id")


def _run_engine(op: str, kind_name: str, pk: Any, actor: Actor, fn: Callable[[], Any]):
    try:
        return fn()
    except LifecycleError as exc:
        logger.warning(
            "%s rejected for %s/%s (actor=%s role=%s): %s",
            op,
            kind_name,
            pk,
            actor.id,
            actor.role,
            exc,
        )
        raise


def _with_display_status(kind, record: Dict[str, Any], clock=None) -> Dict[str, Any]:
    out = dict(record)
    out["display_status"] = lifecycle.display_status(
        kind,
        out,
        _clock(clock).now(),
        low_stock_threshold=low_stock_threshold(),
    )
    return out


def _apply(kind, pk: Any, op: str, actor: Actor, compute: Callable[[Dict[str, Any]], TransitionResult], clock=None):
    """
    Read-lock the row, let the engine compute the patch, write patch and
    audit row in the same transaction.
    """
    k = get_kind(kind)
    with transaction.atomic():
        record = store.get(k.table, pk, for_update=True)
        result = _run_engine(op, k.name, pk, actor, lambda: compute(record))
        updated = store.update(k.table, pk, result.patch)
        _write_audit(result.event)

    logger.info(
        "%s applied to %s/%s by actor=%s: %s",
        op,
        k.name,
        pk,
        actor.id,
        sorted(result.patch),
    )
    return _with_display_status(k, updated, clock)


# ===============================================================
# Public operations
# ===============================================================

def get_record(kind, pk: Any, clock=None) -> Dict[str, Any]:
    k = get_kind(kind)
    return _with_display_status(k, store.get(k.table, pk), clock)


def create_record(kind, fields: Mapping[str, Any], actor: Actor, clock=None) -> Dict[str, Any]:
    """
    Create a record, assigning the next business id when none is given.

    An assigned id that another transaction took first is retried with
    the following number; an explicit id that already exists is a
    ValidationError on business_id.
    """
    k = get_kind(kind)
    fields = dict(fields)
    clock = _clock(clock)
    year = clock.now().year
    assigned = not str(fields.get("business_id") or "").strip()
    taken: List[str] = []

    with transaction.atomic():
        for _ in range(BUSINESS_ID_ATTEMPTS):
            if assigned:
                fields["business_id"] = lifecycle.next_business_id(
                    k,
                    store.business_ids(k.table, k.prefix) + taken,
                    year,
                )

            result = _run_engine(
                "create",
                k.name,
                fields["business_id"],
                actor,
                lambda: lifecycle.create(k, fields, actor, clock, low_stock_threshold=low_stock_threshold()),
            )
            business_id = result.patch["business_id"]
            if not assigned and _business_id_exists(k, business_id):
                raise _duplicate_business_id(k, business_id)

            try:
                with transaction.atomic():
                    record = store.insert(k.table, result.patch)
            except IntegrityError:
                if not _business_id_exists(k, business_id):
                    raise
                if not assigned:
                    raise _duplicate_business_id(k, business_id)
                logger.warning("Business id %s was taken concurrently, retrying", business_id)
                taken.append(business_id)
                continue

            _write_audit(replace(result.event, entity_id=record["id"]))
            break
        else:
            raise ValidationError(
                f"Could not assign a free business id for {k.name} after {BUSINESS_ID_ATTEMPTS} attempts.",
                field="business_id",
            )

    logger.info("Created %s %s (id=%s) by actor=%s", k.name, record["business_id"], record["id"], actor.id)
    return _with_display_status(k, record, clock)


def edit_record(kind, pk: Any, changes: Mapping[str, Any], actor: Actor, clock=None) -> Dict[str, Any]:
    clock = _clock(clock)
    return _apply(
        kind,
        pk,
        "edit",
        actor,
        lambda record: lifecycle.edit(
            kind,
            record,
            changes,
            actor,
            clock,
            low_stock_threshold=low_stock_threshold(),
        ),
        clock,
    )


def approve_record(kind, pk: Any, actor: Actor, target_status: Optional[str] = None, clock=None) -> Dict[str, Any]:
    clock = _clock(clock)
    return _apply(
        kind,
        pk,
        "approve",
        actor,
        lambda record: lifecycle.approve(kind, record, actor, target_status=target_status, clock=clock),
        clock,
    )


def reject_record(kind, pk: Any, actor: Actor, clock=None) -> Dict[str, Any]:
    clock = _clock(clock)
    return _apply(
        kind,
        pk,
        "reject",
        actor,
        lambda record: lifecycle.reject(kind, record, actor, clock=clock),
        clock,
    )


def mark_record_received(kind, pk: Any, actor: Actor, clock=None) -> Dict[str, Any]:
    clock = _clock(clock)
    return _apply(
        kind,
        pk,
        "mark_received",
        actor,
        lambda record: lifecycle.mark_received(kind, record, actor, clock),
        clock,
    )


def adjust_record_quantity(kind, pk: Any, delta: Any, actor: Actor, clock=None) -> Dict[str, Any]:
    clock = _clock(clock)
    return _apply(
        kind,
        pk,
        "adjust_quantity",
        actor,
        lambda record: lifecycle.adjust_quantity(
            kind,
            record,
            delta,
            actor,
            clock,
            low_stock_threshold=low_stock_threshold(),
        ),
        clock,
    )


def delete_record(kind, pk: Any, actor: Actor) -> None:
    k = get_kind(kind)
    with transaction.atomic():
        record = store.get(k.table, pk, for_update=True)
        event = _run_engine("delete", k.name, pk, actor, lambda: lifecycle.authorize_delete(k, record, actor))
        store.delete(k.table, pk)
        _write_audit(event)

    logger.info("Deleted %s %s (id=%s) by actor=%s", k.name, record.get("business_id"), pk, actor.id)


def allowed_actions_for(kind, pk: Any, actor: Actor, clock=None) -> List[str]:
    clock = _clock(clock)
    k = get_kind(kind)
    return lifecycle.allowed_actions(k, store.get(k.table, pk), actor, clock)


# ===============================================================
# Inventory + dashboard
# ===============================================================

def refresh_inventory_statuses(clock=None) -> int:
    """
    Rewrite stale cached statuses on chemical inventory.
    Returns the number of rows updated.
    """
    now = _clock(clock).now()
    records = store.list(CHEMICAL.table)

    changed = 0
    with transaction.atomic():
        for record, derived in stale_statuses(records, now, low_stock_threshold=low_stock_threshold()):
            store.update(CHEMICAL.table, record["id"], {"status": derived})
            changed += 1

    logger.info("Inventory status refresh: %d of %d chemical records updated", changed, len(records))
    return changed


def expiring_chemicals(clock=None, window_days: Optional[int] = None) -> List[Dict[str, Any]]:
    now = _clock(clock).now()
    window = expiry_warning_days() if window_days is None else window_days

    out: List[Dict[str, Any]] = []
    for record in store.list(CHEMICAL.table, {"expiry_date__isnull": False}, order=["expiry_date"]):
        if is_expiring_soon(record["expiry_date"], now, window_days=window):
            out.append(
                {
                    "id": record["id"],
                    "business_id": record["business_id"],
                    "name": record["name"],
                    "expiry_date": record["expiry_date"].isoformat(),
                    "days_until": days_until(record["expiry_date"], now),
                    "status": lifecycle.derive_chemical_status(
                        record["quantity"],
                        record["expiry_date"],
                        now,
                        low_stock_threshold=low_stock_threshold(),
                    ),
                }
            )
    return out


def dashboard_summary(clock=None, recent: int = 5) -> Dict[str, Any]:
    """
    Counts and alerts for the home dashboard. Chemical figures use the
    derived status, not the stored one.
    """
    now = _clock(clock).now()
    chemicals = store.list(CHEMICAL.table)

    derived = [
        lifecycle.derive_chemical_status(
            c["quantity"],
            c["expiry_date"],
            now,
            low_stock_threshold=low_stock_threshold(),
        )
        for c in chemicals
    ]

    recent_projects = store.list(PROJECT.table, order=["-created_at", "-id"], limit=recent)

    return {
        "counts": {
            "projects": store.count(PROJECT.table),
            "experiments": store.count(EXPERIMENT.table),
            "protocols": store.count(PROTOCOL.table),
            "chemicals": len(chemicals),
        },
        "inventory": {
            "low_stock": derived.count(LOW_STOCK),
            "out_of_stock": derived.count(OUT_OF_STOCK),
            "expired": derived.count(EXPIRED),
        },
        "expiring_soon": expiring_chemicals(clock),
        "pending_approvals": {
            "projects": store.count(PROJECT.table, {"status": PROJECT.approval.source}),
            "protocols": store.count(PROTOCOL.table, {"status": PROTOCOL.approval.source}),
            "experiments": store.count(EXPERIMENT.table, {"status": EXPERIMENT.approval.source}),
        },
        "recent_projects": [
            {
                "id": p["id"],
                "business_id": p["business_id"],
                "title": p["title"],
                "status": p["status"],
                "created_at": p["created_at"].isoformat() if p["created_at"] else None,
            }
            for p in recent_projects
        ],
    }
