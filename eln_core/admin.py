# eln_core/admin.py

from django.contrib import admin

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


# =============================================================
# Lab records (business_id locked after creation)
# =============================================================

class LabRecordAdmin(admin.ModelAdmin):
    list_filter = ("status",)
    ordering = ("-created_at",)

    def get_readonly_fields(self, request, obj=None):
        fixed = ["created_by", "created_at", "updated_at"]
        if obj is not None:
            fixed.insert(0, "business_id")
        return fixed

    def save_model(self, request, obj, form, change):
        if not change and obj.created_by_id is None:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)


class ApprovableRecordAdmin(LabRecordAdmin):
    def get_readonly_fields(self, request, obj=None):
        return super().get_readonly_fields(request, obj) + ["approved_by", "approval_date"]


@admin.register(Project)
class ProjectAdmin(ApprovableRecordAdmin):
    list_display = ("business_id", "title", "status", "created_by", "approved_by", "created_at")
    search_fields = ("business_id", "title")


@admin.register(Protocol)
class ProtocolAdmin(ApprovableRecordAdmin):
    list_display = ("business_id", "title", "version", "status", "created_by", "created_at")
    search_fields = ("business_id", "title")


@admin.register(Experiment)
class ExperimentAdmin(ApprovableRecordAdmin):
    list_display = ("business_id", "title", "project", "protocol", "status", "start_date", "end_date")
    list_filter = ("status", "project")
    search_fields = ("business_id", "title")


@admin.register(ChemicalInventoryItem)
class ChemicalInventoryItemAdmin(LabRecordAdmin):
    list_display = ("business_id", "name", "quantity", "unit", "expiry_date", "status", "location")
    search_fields = ("business_id", "name", "cas_number")
    ordering = ("name",)

    def get_readonly_fields(self, request, obj=None):
        # refreshed by refresh_inventory_status
        return super().get_readonly_fields(request, obj) + ["status"]


@admin.register(Product)
class ProductAdmin(LabRecordAdmin):
    list_display = ("business_id", "name", "quantity", "unit", "batch_number", "status")
    search_fields = ("business_id", "name", "batch_number", "lot_no")


@admin.register(ChemicalOrder)
class ChemicalOrderAdmin(LabRecordAdmin):
    list_display = ("business_id", "chemical_name", "supplier", "status", "order_date", "received_date")
    search_fields = ("business_id", "chemical_name", "supplier")


@admin.register(PlasmidOrder)
class PlasmidOrderAdmin(LabRecordAdmin):
    list_display = ("business_id", "plasmid_name", "gene", "status", "order_date", "received_date")
    search_fields = ("business_id", "plasmid_name", "gene")


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "full_name", "role", "updated_at")
    list_filter = ("role",)
    search_fields = ("user__username", "full_name")


# =============================================================
# Audit trail (READ-ONLY)
# =============================================================

@admin.register(AuditTrail)
class AuditTrailAdmin(admin.ModelAdmin):
    list_display = ("entity", "entity_id", "action", "performed_by", "created_at")
    list_filter = ("entity", "action")
    search_fields = ("entity_id", "performed_by__username")
    ordering = ("-created_at",)

    readonly_fields = [f.name for f in AuditTrail._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
