# eln_core/filters.py
import django_filters as df
from django.db.models import Q

from .models import (
    AuditTrail,
    ChemicalInventoryItem,
    ChemicalOrder,
    Experiment,
    PlasmidOrder,
    Product,
    Project,
    Protocol,
)


class SearchFilterSet(df.FilterSet):
    """
    ?q= matches business_id or any of `search_fields` (icontains).
    """

    search_fields = ()

    q = df.CharFilter(method="filter_q")

    def filter_q(self, queryset, name, value):
        value = (value or "").strip()
        if not value:
            return queryset
        cond = Q(business_id__icontains=value)
        for field in self.search_fields:
            cond |= Q(**{f"{field}__icontains": value})
        return queryset.filter(cond)


class ProjectFilter(SearchFilterSet):
    search_fields = ("title",)
    created_at = df.DateFromToRangeFilter()

    class Meta:
        model = Project
        fields = ["status", "created_by", "created_at"]


class ProtocolFilter(SearchFilterSet):
    search_fields = ("title",)

    class Meta:
        model = Protocol
        fields = ["status", "version", "created_by"]


class ExperimentFilter(SearchFilterSet):
    search_fields = ("title",)
    project = df.NumberFilter(field_name="project_id")
    protocol = df.NumberFilter(field_name="protocol_id")
    start_date = df.DateFromToRangeFilter()
    end_date = df.DateFromToRangeFilter()

    class Meta:
        model = Experiment
        fields = ["status", "project", "protocol", "start_date", "end_date", "created_by"]


class ChemicalInventoryItemFilter(SearchFilterSet):
    search_fields = ("name", "cas_number")
    location = df.CharFilter(field_name="location", lookup_expr="icontains")
    expiry_date = df.DateFromToRangeFilter()

    class Meta:
        model = ChemicalInventoryItem
        fields = ["status", "location", "expiry_date", "unit"]


class ProductFilter(SearchFilterSet):
    search_fields = ("name", "batch_number", "lot_no")
    mfg_date = df.DateFromToRangeFilter()

    class Meta:
        model = Product
        fields = ["status", "mfg_date", "location"]


class ChemicalOrderFilter(SearchFilterSet):
    search_fields = ("chemical_name", "supplier")
    order_date = df.DateFromToRangeFilter()

    class Meta:
        model = ChemicalOrder
        fields = ["status", "supplier", "order_date"]


class PlasmidOrderFilter(SearchFilterSet):
    search_fields = ("plasmid_name", "gene")
    order_date = df.DateFromToRangeFilter()

    class Meta:
        model = PlasmidOrder
        fields = ["status", "order_date"]


class AuditTrailFilter(df.FilterSet):
    class Meta:
        model = AuditTrail
        fields = ["entity", "entity_id", "action", "performed_by"]
