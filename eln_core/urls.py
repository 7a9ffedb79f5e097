# eln_core/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    AuditTrailViewSet,
    ChemicalInventoryItemViewSet,
    ChemicalOrderViewSet,
    DashboardView,
    ExperimentViewSet,
    HealthCheckView,
    PlasmidOrderViewSet,
    ProductViewSet,
    ProjectViewSet,
    ProtocolViewSet,
    WhoAmIView,
    WorkflowDefinitionView,
)


app_name = "eln_core"

# -------------------------------------------------
# Router (CRUD + lifecycle actions)
# -------------------------------------------------
router = DefaultRouter()
router.register(r"projects", ProjectViewSet, basename="project")
router.register(r"protocols", ProtocolViewSet, basename="protocol")
router.register(r"experiments", ExperimentViewSet, basename="experiment")
router.register(r"chemicals", ChemicalInventoryItemViewSet, basename="chemical")
router.register(r"products", ProductViewSet, basename="product")
router.register(r"chemical-orders", ChemicalOrderViewSet, basename="chemical-order")
router.register(r"plasmid-orders", PlasmidOrderViewSet, basename="plasmid-order")
router.register(r"audit-trail", AuditTrailViewSet, basename="audit-trail")


urlpatterns = [
    # ============================================================
    # Core CRUD API
    # ============================================================
    path("", include(router.urls)),

    # ============================================================
    # System
    # ============================================================
    path("health/", HealthCheckView.as_view(), name="health_check"),

    # ============================================================
    # Identity
    # ============================================================
    path("whoami/", WhoAmIView.as_view(), name="whoami"),

    # ============================================================
    # Workflow definitions / dashboard
    # ============================================================
    path("workflows/<str:kind>/", WorkflowDefinitionView.as_view(), name="workflow-definition"),
    path("dashboard/", DashboardView.as_view(), name="dashboard"),
]
