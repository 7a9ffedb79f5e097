import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _choices(values):
    return [(v, v) for v in values]


ROLES = ["admin", "principal_investigator", "research_associate", "accounts", "guest"]
PROJECT_STATUSES = ["Pending Approval", "Approved", "In Progress", "Completed", "Rejected"]
PROTOCOL_STATUSES = ["Draft", "Pending Approval", "Approved", "Rejected", "Archived"]
EXPERIMENT_STATUSES = ["Planned", "In Progress", "Completed", "On Hold", "Cancelled"]
CHEMICAL_STATUSES = ["Available", "Low Stock", "Out of Stock", "Expired"]
PRODUCT_STATUSES = ["Pending", "Pass", "Fail", "N/A"]
CHEMICAL_ORDER_STATUSES = ["Requested", "Ordered", "Shipped", "Received", "Cancelled"]
PLASMID_ORDER_STATUSES = ["Ordered", "In Transit", "Received", "Cancelled"]


def _base_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        ("business_id", models.CharField(max_length=50, unique=True)),
        (
            "created_by",
            models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
    ]


def _approval_fields():
    return [
        (
            "approved_by",
            models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
        ("approval_date", models.DateTimeField(blank=True, null=True)),
    ]


def _approval_pair(model_name):
    return models.CheckConstraint(
        condition=models.Q(("approved_by__isnull", True), ("approval_date__isnull", True))
        | models.Q(("approved_by__isnull", False), ("approval_date__isnull", False)),
        name=f"{model_name}_approval_pair",
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("full_name", models.CharField(blank=True, max_length=255)),
                ("role", models.CharField(choices=_choices(ROLES), default="guest", max_length=40)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="eln_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["user__username"]},
        ),
        migrations.CreateModel(
            name="Project",
            fields=_base_fields()
            + _approval_fields()
            + [
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=_choices(PROJECT_STATUSES),
                        db_index=True,
                        default="Pending Approval",
                        max_length=40,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "abstract": False,
                "constraints": [_approval_pair("project")],
            },
        ),
        migrations.CreateModel(
            name="Protocol",
            fields=_base_fields()
            + _approval_fields()
            + [
                ("title", models.CharField(max_length=255)),
                ("version", models.CharField(default="1.0", max_length=20)),
                ("description", models.TextField(blank=True)),
                ("steps", models.TextField(blank=True)),
                ("safety_notes", models.TextField(blank=True)),
                ("required_materials", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=_choices(PROTOCOL_STATUSES),
                        db_index=True,
                        default="Draft",
                        max_length=40,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "abstract": False,
                "constraints": [_approval_pair("protocol")],
            },
        ),
        migrations.CreateModel(
            name="Experiment",
            fields=_base_fields()
            + _approval_fields()
            + [
                (
                    "project",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="experiments",
                        to="eln_core.project",
                    ),
                ),
                (
                    "protocol",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="experiments",
                        to="eln_core.protocol",
                    ),
                ),
                ("title", models.CharField(max_length=255)),
                ("objective", models.TextField(blank=True)),
                ("start_date", models.DateField(blank=True, null=True)),
                ("end_date", models.DateField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=_choices(EXPERIMENT_STATUSES),
                        db_index=True,
                        default="Planned",
                        max_length=40,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "abstract": False,
                "constraints": [
                    _approval_pair("experiment"),
                    models.CheckConstraint(
                        condition=models.Q(("end_date__gte", models.F("start_date")))
                        | models.Q(("start_date__isnull", True))
                        | models.Q(("end_date__isnull", True)),
                        name="experiment_end_after_start",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ChemicalInventoryItem",
            fields=_base_fields()
            + [
                ("name", models.CharField(db_index=True, max_length=255)),
                ("cas_number", models.CharField(blank=True, max_length=50)),
                ("quantity", models.DecimalField(decimal_places=3, default=0, max_digits=12)),
                ("unit", models.CharField(default="mL", max_length=20)),
                ("location", models.CharField(blank=True, max_length=255)),
                ("expiry_date", models.DateField(blank=True, db_index=True, null=True)),
                ("safety_data_sheet_url", models.URLField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=_choices(CHEMICAL_STATUSES),
                        db_index=True,
                        default="Available",
                        max_length=40,
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
                "abstract": False,
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gte", 0)),
                        name="chemical_quantity_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=_base_fields()
            + [
                ("name", models.CharField(db_index=True, max_length=255)),
                ("mfg_date", models.DateField(blank=True, null=True)),
                ("quantity", models.DecimalField(decimal_places=3, default=0, max_digits=12)),
                ("unit", models.CharField(blank=True, max_length=20)),
                ("location", models.CharField(blank=True, max_length=255)),
                ("batch_number", models.CharField(blank=True, max_length=100)),
                ("lot_no", models.CharField(blank=True, max_length=100)),
                ("notes", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=_choices(PRODUCT_STATUSES),
                        db_index=True,
                        default="Pending",
                        help_text="QC result",
                        max_length=40,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "abstract": False,
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gte", 0)),
                        name="product_quantity_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ChemicalOrder",
            fields=_base_fields()
            + [
                ("chemical_name", models.CharField(max_length=255)),
                ("cas_number", models.CharField(blank=True, max_length=50)),
                ("supplier", models.CharField(blank=True, max_length=255)),
                ("quantity", models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ("unit", models.CharField(blank=True, max_length=20)),
                ("order_date", models.DateField(blank=True, null=True)),
                ("received_date", models.DateField(blank=True, null=True)),
                ("notes", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=_choices(CHEMICAL_ORDER_STATUSES),
                        db_index=True,
                        default="Requested",
                        max_length=40,
                    ),
                ),
            ],
            options={"ordering": ["-created_at"], "abstract": False},
        ),
        migrations.CreateModel(
            name="PlasmidOrder",
            fields=_base_fields()
            + [
                ("plasmid_name", models.CharField(max_length=255)),
                ("gene", models.CharField(blank=True, max_length=255)),
                ("place", models.CharField(blank=True, max_length=255)),
                ("quantity", models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ("order_date", models.DateField(blank=True, null=True)),
                ("received_date", models.DateField(blank=True, null=True)),
                ("notes", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=_choices(PLASMID_ORDER_STATUSES),
                        db_index=True,
                        default="Ordered",
                        max_length=40,
                    ),
                ),
            ],
            options={"ordering": ["-created_at"], "abstract": False},
        ),
        migrations.CreateModel(
            name="AuditTrail",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("entity", models.CharField(db_index=True, max_length=64)),
                ("entity_id", models.CharField(db_index=True, max_length=64)),
                ("action", models.CharField(db_index=True, max_length=64)),
                ("details", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="eln_audit_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["entity", "entity_id"], name="audit_entity_idx")],
            },
        ),
    ]
