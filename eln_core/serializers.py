# eln_core/serializers.py
from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .lifecycle import display_status
from .models import (
    AuditTrail,
    ChemicalInventoryItem,
    ChemicalOrder,
    Experiment,
    PlasmidOrder,
    Product,
    Project,
    Protocol,
    UserProfile,
)
from .services.lifecycle_service import LOCAL_CLOCK, low_stock_threshold


# ===============================================================
# Helpers
# ===============================================================

RECORD_READ_ONLY = ("id", "created_by", "created_at", "updated_at")
APPROVAL_READ_ONLY = ("approved_by", "approval_date")


class UserSlimSerializer(serializers.ModelSerializer):
    class Meta:
        model = get_user_model()
        fields = ("id", "username", "email")
        read_only_fields = fields


class LabRecordSerializer(serializers.ModelSerializer):
    """
    Shape validation only. Lifecycle rules (immutability, role gates,
    derived status) are applied by the lifecycle service, not here.
    """

    display_status = serializers.SerializerMethodField()

    def get_display_status(self, obj) -> str:
        return display_status(
            obj.KIND,
            {"status": obj.status, "quantity": getattr(obj, "quantity", None), "expiry_date": getattr(obj, "expiry_date", None)},
            LOCAL_CLOCK.now(),
            low_stock_threshold=low_stock_threshold(),
        )


# ===============================================================
# Projects / Protocols / Experiments
# ===============================================================

class ProjectSerializer(LabRecordSerializer):
    class Meta:
        model = Project
        fields = (
            "id",
            "business_id",
            "title",
            "description",
            "status",
            "display_status",
            "created_by",
            "approved_by",
            "approval_date",
            "created_at",
            "updated_at",
        )
        read_only_fields = RECORD_READ_ONLY + APPROVAL_READ_ONLY
        extra_kwargs = {"business_id": {"required": False}}


class ProtocolSerializer(LabRecordSerializer):
    class Meta:
        model = Protocol
        fields = (
            "id",
            "business_id",
            "title",
            "version",
            "description",
            "steps",
            "safety_notes",
            "required_materials",
            "status",
            "display_status",
            "created_by",
            "approved_by",
            "approval_date",
            "created_at",
            "updated_at",
        )
        read_only_fields = RECORD_READ_ONLY + APPROVAL_READ_ONLY
        extra_kwargs = {"business_id": {"required": False}}


class ExperimentSerializer(LabRecordSerializer):
    project_code = serializers.SerializerMethodField()
    protocol_code = serializers.SerializerMethodField()

    class Meta:
        model = Experiment
        fields = (
            "id",
            "business_id",
            "project",
            "project_code",
            "protocol",
            "protocol_code",
            "title",
            "objective",
            "start_date",
            "end_date",
            "status",
            "display_status",
            "created_by",
            "approved_by",
            "approval_date",
            "created_at",
            "updated_at",
        )
        read_only_fields = RECORD_READ_ONLY + APPROVAL_READ_ONLY
        extra_kwargs = {"business_id": {"required": False}}

    def get_project_code(self, obj):
        return obj.project.business_id if obj.project_id else None

    def get_protocol_code(self, obj):
        return obj.protocol.business_id if obj.protocol_id else None

    def validate(self, attrs):
        start = attrs.get("start_date", getattr(self.instance, "start_date", None))
        end = attrs.get("end_date", getattr(self.instance, "end_date", None))
        if start and end and end < start:
            raise serializers.ValidationError({"end_date": "End date must not be before start date."})
        return attrs


# ===============================================================
# Inventory
# ===============================================================

class ChemicalInventoryItemSerializer(LabRecordSerializer):
    class Meta:
        model = ChemicalInventoryItem
        fields = (
            "id",
            "business_id",
            "name",
            "cas_number",
            "quantity",
            "unit",
            "location",
            "expiry_date",
            "safety_data_sheet_url",
            "status",
            "display_status",
            "created_by",
            "created_at",
            "updated_at",
        )
        # status is derived from quantity and expiry
        read_only_fields = RECORD_READ_ONLY + ("status",)
        extra_kwargs = {
            "business_id": {"required": False},
            "quantity": {"required": True},
        }


class ProductSerializer(LabRecordSerializer):
    class Meta:
        model = Product
        fields = (
            "id",
            "business_id",
            "name",
            "mfg_date",
            "quantity",
            "unit",
            "location",
            "batch_number",
            "lot_no",
            "notes",
            "status",
            "display_status",
            "created_by",
            "created_at",
            "updated_at",
        )
        read_only_fields = RECORD_READ_ONLY
        extra_kwargs = {"business_id": {"required": False}}


# ===============================================================
# Orders
# ===============================================================

class ChemicalOrderSerializer(LabRecordSerializer):
    class Meta:
        model = ChemicalOrder
        fields = (
            "id",
            "business_id",
            "chemical_name",
            "cas_number",
            "supplier",
            "quantity",
            "unit",
            "order_date",
            "received_date",
            "notes",
            "status",
            "display_status",
            "created_by",
            "created_at",
            "updated_at",
        )
        read_only_fields = RECORD_READ_ONLY
        extra_kwargs = {"business_id": {"required": False}}


class PlasmidOrderSerializer(LabRecordSerializer):
    class Meta:
        model = PlasmidOrder
        fields = (
            "id",
            "business_id",
            "plasmid_name",
            "gene",
            "place",
            "quantity",
            "order_date",
            "received_date",
            "notes",
            "status",
            "display_status",
            "created_by",
            "created_at",
            "updated_at",
        )
        read_only_fields = RECORD_READ_ONLY
        extra_kwargs = {"business_id": {"required": False}}


# ===============================================================
# Actions
# ===============================================================

class ApprovalRequestSerializer(serializers.Serializer):
    status = serializers.CharField(required=False, allow_blank=False)


class QuantityAdjustmentSerializer(serializers.Serializer):
    delta = serializers.DecimalField(max_digits=12, decimal_places=3)


# ===============================================================
# Profiles / Audit
# ===============================================================

class UserProfileSerializer(serializers.ModelSerializer):
    user = UserSlimSerializer(read_only=True)

    class Meta:
        model = UserProfile
        fields = ("id", "user", "full_name", "role", "created_at", "updated_at")
        read_only_fields = fields


class AuditTrailSerializer(serializers.ModelSerializer):
    performed_by = UserSlimSerializer(read_only=True)

    class Meta:
        model = AuditTrail
        fields = (
            "id",
            "entity",
            "entity_id",
            "action",
            "performed_by",
            "details",
            "created_at",
        )
        read_only_fields = fields
