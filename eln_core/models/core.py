# eln_core/models/core.py

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from eln_core.guards import BusinessIdGuardMixin
from eln_core.lifecycle import kinds as K
from eln_core.lifecycle.capabilities import ROLES, GUEST


def _choices(values):
    return [(v, v) for v in values]


# ============================================================
# Base
# ============================================================
class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class LabRecord(BusinessIdGuardMixin, TimeStampedModel):
    """
    Fields shared by every tracked entity.

    `status` choices are narrowed per subclass from the lifecycle kinds.
    """

    KIND = None

    business_id = models.CharField(max_length=50, unique=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self):
        return self.business_id


class ApprovableRecord(LabRecord):
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    approval_date = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True
        ordering = ["-created_at"]
        # approved_by and approval_date are set together or not at all
        constraints = [
            models.CheckConstraint(
                name="%(class)s_approval_pair",
                condition=Q(approved_by__isnull=True, approval_date__isnull=True)
                | Q(approved_by__isnull=False, approval_date__isnull=False),
            ),
        ]


# ============================================================
# Profiles
# ============================================================
class UserProfile(TimeStampedModel):
    """Role carrier for an authenticated user."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="eln_profile",
    )
    full_name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=40, choices=_choices(ROLES), default=GUEST)

    class Meta:
        ordering = ["user__username"]

    def __str__(self):
        return f"{self.full_name or self.user.get_username()} ({self.role})"


# ============================================================
# Projects / Protocols / Experiments
# ============================================================
class Project(ApprovableRecord):
    KIND = K.PROJECT

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    status = models.CharField(
        max_length=40,
        choices=_choices(K.PROJECT_STATUSES),
        default=K.PENDING_APPROVAL,
        db_index=True,
    )

    def __str__(self):
        return f"{self.business_id} - {self.title}"


class Protocol(ApprovableRecord):
    KIND = K.PROTOCOL

    title = models.CharField(max_length=255)
    version = models.CharField(max_length=20, default="1.0")
    description = models.TextField(blank=True)
    steps = models.TextField(blank=True)
    safety_notes = models.TextField(blank=True)
    required_materials = models.TextField(blank=True)
    status = models.CharField(
        max_length=40,
        choices=_choices(K.PROTOCOL_STATUSES),
        default=K.DRAFT,
        db_index=True,
    )

    def __str__(self):
        return f"{self.business_id} - {self.title} v{self.version}"


class Experiment(ApprovableRecord):
    KIND = K.EXPERIMENT

    project = models.ForeignKey(
        Project,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="experiments",
    )
    protocol = models.ForeignKey(
        Protocol,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="experiments",
    )
    title = models.CharField(max_length=255)
    objective = models.TextField(blank=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    status = models.CharField(
        max_length=40,
        choices=_choices(K.EXPERIMENT_STATUSES),
        default=K.PLANNED,
        db_index=True,
    )

    class Meta(ApprovableRecord.Meta):
        constraints = ApprovableRecord.Meta.constraints + [
            models.CheckConstraint(
                name="experiment_end_after_start",
                condition=Q(end_date__gte=F("start_date")) | Q(start_date__isnull=True) | Q(end_date__isnull=True),
            ),
        ]

    def __str__(self):
        return f"{self.business_id} - {self.title}"


# ============================================================
# Inventory
# ============================================================
class ChemicalInventoryItem(LabRecord):
    """
    Stored status is a cache of the derived status (see lifecycle.derivation).
    """

    KIND = K.CHEMICAL

    name = models.CharField(max_length=255, db_index=True)
    cas_number = models.CharField(max_length=50, blank=True)
    quantity = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    unit = models.CharField(max_length=20, default="mL")
    location = models.CharField(max_length=255, blank=True)
    expiry_date = models.DateField(null=True, blank=True, db_index=True)
    safety_data_sheet_url = models.URLField(blank=True)
    status = models.CharField(
        max_length=40,
        choices=_choices(K.CHEMICAL_STATUSES),
        default=K.AVAILABLE,
        db_index=True,
    )

    class Meta(LabRecord.Meta):
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(name="chemical_quantity_non_negative", condition=Q(quantity__gte=0)),
        ]

    def __str__(self):
        return f"{self.name} ({self.quantity} {self.unit})"


class Product(LabRecord):
    KIND = K.PRODUCT

    name = models.CharField(max_length=255, db_index=True)
    mfg_date = models.DateField(null=True, blank=True)
    quantity = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    unit = models.CharField(max_length=20, blank=True)
    location = models.CharField(max_length=255, blank=True)
    batch_number = models.CharField(max_length=100, blank=True)
    lot_no = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(
        max_length=40,
        choices=_choices(K.PRODUCT_STATUSES),
        default=K.QC_PENDING,
        db_index=True,
        help_text="QC result",
    )

    class Meta(LabRecord.Meta):
        constraints = [
            models.CheckConstraint(name="product_quantity_non_negative", condition=Q(quantity__gte=0)),
        ]

    def __str__(self):
        return f"{self.business_id} - {self.name}"


# ============================================================
# Orders
# ============================================================
class ChemicalOrder(LabRecord):
    KIND = K.CHEMICAL_ORDER

    chemical_name = models.CharField(max_length=255)
    cas_number = models.CharField(max_length=50, blank=True)
    supplier = models.CharField(max_length=255, blank=True)
    quantity = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    unit = models.CharField(max_length=20, blank=True)
    order_date = models.DateField(null=True, blank=True)
    received_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(
        max_length=40,
        choices=_choices(K.CHEMICAL_ORDER_STATUSES),
        default=K.REQUESTED,
        db_index=True,
    )

    def __str__(self):
        return f"{self.business_id} - {self.chemical_name}"


class PlasmidOrder(LabRecord):
    KIND = K.PLASMID_ORDER

    plasmid_name = models.CharField(max_length=255)
    gene = models.CharField(max_length=255, blank=True)
    place = models.CharField(max_length=255, blank=True)
    quantity = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    order_date = models.DateField(null=True, blank=True)
    received_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(
        max_length=40,
        choices=_choices(K.PLASMID_ORDER_STATUSES),
        default=K.ORDERED,
        db_index=True,
    )

    def __str__(self):
        return f"{self.business_id} - {self.plasmid_name}"
