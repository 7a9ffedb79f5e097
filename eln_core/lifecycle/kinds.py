# eln_core/lifecycle/kinds.py
"""
Canonical entity kinds for the ELN.

Defines:
- Status universes per kind
- Default status on creation
- Approval rules (source state, approve/reject targets)
- Which kinds can be received, derive their status, or gate edits on ownership

Lookups accept either the kind name ("chemical") or its store table
("chemical_inventory").
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

from .errors import ValidationError


# ===============================================================
# Status values
# ===============================================================

PENDING_APPROVAL = "Pending Approval"
APPROVED = "Approved"
REJECTED = "Rejected"
DRAFT = "Draft"
ARCHIVED = "Archived"
IN_PROGRESS = "In Progress"
COMPLETED = "Completed"

PLANNED = "Planned"
ON_HOLD = "On Hold"
CANCELLED = "Cancelled"

AVAILABLE = "Available"
LOW_STOCK = "Low Stock"
OUT_OF_STOCK = "Out of Stock"
EXPIRED = "Expired"

REQUESTED = "Requested"
ORDERED = "Ordered"
SHIPPED = "Shipped"
IN_TRANSIT = "In Transit"
RECEIVED = "Received"

QC_PENDING = "Pending"
QC_PASS = "Pass"
QC_FAIL = "Fail"
QC_NOT_APPLICABLE = "N/A"


PROJECT_STATUSES: Tuple[str, ...] = (PENDING_APPROVAL, APPROVED, IN_PROGRESS, COMPLETED, REJECTED)
PROTOCOL_STATUSES: Tuple[str, ...] = (DRAFT, PENDING_APPROVAL, APPROVED, REJECTED, ARCHIVED)
EXPERIMENT_STATUSES: Tuple[str, ...] = (PLANNED, IN_PROGRESS, COMPLETED, ON_HOLD, CANCELLED)
CHEMICAL_STATUSES: Tuple[str, ...] = (AVAILABLE, LOW_STOCK, OUT_OF_STOCK, EXPIRED)
CHEMICAL_ORDER_STATUSES: Tuple[str, ...] = (REQUESTED, ORDERED, SHIPPED, RECEIVED, CANCELLED)
PLASMID_ORDER_STATUSES: Tuple[str, ...] = (ORDERED, IN_TRANSIT, RECEIVED, CANCELLED)
PRODUCT_STATUSES: Tuple[str, ...] = (QC_PENDING, QC_PASS, QC_FAIL, QC_NOT_APPLICABLE)


# Fields nobody may change once the record exists
IMMUTABLE_FIELDS: FrozenSet[str] = frozenset({"id", "business_id", "created_by", "created_at"})

# Written only by approve/reject so they are always set together
APPROVAL_FIELDS: FrozenSet[str] = frozenset({"approved_by", "approval_date"})


# ===============================================================
# Descriptors
# ===============================================================

@dataclass(frozen=True)
class ApprovalRule:
    source: str
    approve_to: str
    reject_to: str

    @property
    def targets(self) -> Tuple[str, str]:
        return (self.approve_to, self.reject_to)


@dataclass(frozen=True)
class EntityKind:
    name: str
    table: str
    prefix: str
    statuses: Tuple[str, ...]
    default_status: Optional[str]
    required_fields: Tuple[str, ...] = ()
    approval: Optional[ApprovalRule] = None
    receivable: bool = False
    derived_status: bool = False
    owner_edits: bool = False
    stocked: bool = False

    @property
    def terminal_states(self) -> Tuple[str, ...]:
        if self.receivable:
            return (RECEIVED, CANCELLED)
        return ()


PROJECT = EntityKind(
    name="project",
    table="projects",
    prefix="PROJ",
    statuses=PROJECT_STATUSES,
    default_status=PENDING_APPROVAL,
    required_fields=("title",),
    approval=ApprovalRule(PENDING_APPROVAL, APPROVED, REJECTED),
    owner_edits=True,
)

PROTOCOL = EntityKind(
    name="protocol",
    table="protocols",
    prefix="PROT",
    statuses=PROTOCOL_STATUSES,
    default_status=DRAFT,
    required_fields=("title",),
    approval=ApprovalRule(PENDING_APPROVAL, APPROVED, REJECTED),
    owner_edits=True,
)

EXPERIMENT = EntityKind(
    name="experiment",
    table="experiments",
    prefix="EXP",
    statuses=EXPERIMENT_STATUSES,
    default_status=PLANNED,
    required_fields=("title",),
    approval=ApprovalRule(PLANNED, IN_PROGRESS, CANCELLED),
    owner_edits=True,
)

CHEMICAL = EntityKind(
    name="chemical",
    table="chemical_inventory",
    prefix="CHEM",
    statuses=CHEMICAL_STATUSES,
    default_status=None,
    required_fields=("name", "quantity"),
    derived_status=True,
    stocked=True,
)

CHEMICAL_ORDER = EntityKind(
    name="chemical_order",
    table="chemical_orders",
    prefix="CORD",
    statuses=CHEMICAL_ORDER_STATUSES,
    default_status=REQUESTED,
    required_fields=("chemical_name",),
    receivable=True,
)

PLASMID_ORDER = EntityKind(
    name="plasmid_order",
    table="plasmid_orders",
    prefix="PORD",
    statuses=PLASMID_ORDER_STATUSES,
    default_status=ORDERED,
    required_fields=("plasmid_name",),
    receivable=True,
)

PRODUCT = EntityKind(
    name="product",
    table="products",
    prefix="PROD",
    statuses=PRODUCT_STATUSES,
    default_status=QC_PENDING,
    required_fields=("name",),
    stocked=True,
)


KINDS: Dict[str, EntityKind] = {
    k.name: k
    for k in (PROJECT, PROTOCOL, EXPERIMENT, CHEMICAL, CHEMICAL_ORDER, PLASMID_ORDER, PRODUCT)
}

_BY_TABLE: Dict[str, EntityKind] = {k.table: k for k in KINDS.values()}


def get_kind(kind) -> EntityKind:
    if isinstance(kind, EntityKind):
        return kind

    key = (kind or "").strip().lower().replace("-", "_")
    found = KINDS.get(key) or _BY_TABLE.get(key)
    if found is None:
        raise ValidationError(f"Unknown entity kind: {kind}", field="kind")
    return found


def validate_status(kind, status: str) -> str:
    k = get_kind(kind)
    if status not in k.statuses:
        allowed = ", ".join(k.statuses)
        raise ValidationError(
            f"Unknown {k.name} status: '{status}'. Allowed: {allowed}",
            field="status",
        )
    return status


def workflow_definition(kind) -> Dict:
    """
    Stable JSON-serializable definition for UI and API clients.
    """
    k = get_kind(kind)
    out: Dict = {
        "kind": k.name,
        "table": k.table,
        "statuses": list(k.statuses),
        "default_status": k.default_status,
        "derived_status": k.derived_status,
        "receivable": k.receivable,
        "stocked": k.stocked,
        "terminal_states": list(k.terminal_states),
        "approval": None,
    }
    if k.approval is not None:
        out["approval"] = {
            "source": k.approval.source,
            "approve_to": k.approval.approve_to,
            "reject_to": k.approval.reject_to,
        }
    return out
