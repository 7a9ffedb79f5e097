# eln_core/views.py
from __future__ import annotations

from contextlib import contextmanager

from django.db import models
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.exceptions import PermissionDenied as DRFPermissionDenied
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import lifecycle
from .filters import (
    AuditTrailFilter,
    ChemicalInventoryItemFilter,
    ChemicalOrderFilter,
    ExperimentFilter,
    PlasmidOrderFilter,
    ProductFilter,
    ProjectFilter,
    ProtocolFilter,
)
from .lifecycle import (
    APPROVAL_FIELDS,
    IMMUTABLE_FIELDS,
    ImmutableFieldViolation,
    InvalidTransition,
    LifecycleError,
    PermissionDenied,
    ValidationError,
)
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
from .permissions import CapabilityPermission
from .serializers import (
    ApprovalRequestSerializer,
    AuditTrailSerializer,
    ChemicalInventoryItemSerializer,
    ChemicalOrderSerializer,
    ExperimentSerializer,
    PlasmidOrderSerializer,
    ProductSerializer,
    ProjectSerializer,
    ProtocolSerializer,
    QuantityAdjustmentSerializer,
    UserProfileSerializer,
)
from .services import lifecycle_service as service
from .services.record_store import RecordNotFound


# ===============================================================
# Error mapping
# ===============================================================
@contextmanager
def api_errors():
    """
    Translate lifecycle errors into DRF exceptions.

    ImmutableFieldViolation / InvalidTransition / ValidationError -> 400
    PermissionDenied -> 403
    RecordNotFound -> 404
    """
    try:
        yield
    except ImmutableFieldViolation as exc:
        raise DRFValidationError({exc.field: exc.message})
    except InvalidTransition as exc:
        raise DRFValidationError({"status": exc.message})
    except ValidationError as exc:
        raise DRFValidationError({exc.field or "non_field_errors": exc.message})
    except PermissionDenied as exc:
        raise DRFPermissionDenied(exc.message)
    except RecordNotFound as exc:
        raise NotFound(str(exc))
    except LifecycleError as exc:
        raise DRFValidationError({"non_field_errors": exc.message})


def _plain(data) -> dict:
    """
    Serializer output -> engine input: related objects become their pk.
    """
    return {
        name: (value.pk if isinstance(value, models.Model) else value)
        for name, value in dict(data).items()
    }


def _server_controlled(request, names, current=None) -> dict:
    """
    Raw values for fields the serializer treats as read-only, so the
    engine can reject attempts to write them.

    Values equal to the current representation are dropped; a PUT of a
    GET response is not a change.
    """
    incoming = getattr(request, "data", {}) or {}
    current = current or {}
    out = {}
    for name in sorted(names):
        if name not in incoming:
            continue
        if name in current and str(incoming[name]) == str(current[name]):
            continue
        out[name] = incoming[name]
    return out


# ===============================================================
# Lifecycle-backed CRUD
# ===============================================================
class LifecycleViewSet(viewsets.ModelViewSet):
    """
    CRUD where every write goes through the lifecycle service.

    The serializer validates shape; the engine decides legality, computes
    the patch and emits the audit event.
    """

    kind: str = ""
    permission_classes = [IsAuthenticated, CapabilityPermission]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    ordering_fields = ["created_at", "updated_at", "business_id", "status"]

    @property
    def actor(self) -> lifecycle.Actor:
        return service.actor_for_user(self.request.user)

    def _respond(self, pk, status_code=status.HTTP_200_OK):
        instance = self.get_queryset().get(pk=pk)
        return Response(self.get_serializer(instance).data, status=status_code)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        fields = _plain(serializer.validated_data)
        fields.update(_server_controlled(request, APPROVAL_FIELDS))

        with api_errors():
            record = service.create_record(self.kind, fields, self.actor)
        return self._respond(record["id"], status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        changes = _plain(serializer.validated_data)
        changes.update(
            _server_controlled(
                request,
                IMMUTABLE_FIELDS | APPROVAL_FIELDS,
                current=self.get_serializer(instance).data,
            )
        )

        with api_errors():
            service.edit_record(self.kind, instance.pk, changes, self.actor)
        return self._respond(instance.pk)

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        with api_errors():
            service.delete_record(self.kind, instance.pk, self.actor)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Lifecycle"], responses={200: OpenApiResponse(description="Sorted action names")})
    @action(detail=True, methods=["get"])
    def allowed(self, request, pk=None):
        instance = self.get_object()
        with api_errors():
            actions = service.allowed_actions_for(self.kind, instance.pk, self.actor)
        return Response(
            {
                "kind": self.kind,
                "id": instance.pk,
                "status": instance.status,
                "role": self.actor.canonical_role,
                "allowed": actions,
            }
        )


class ApprovalActionsMixin:
    @extend_schema(tags=["Lifecycle"], request=ApprovalRequestSerializer)
    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        instance = self.get_object()
        body = ApprovalRequestSerializer(data=request.data or {})
        body.is_valid(raise_exception=True)

        with api_errors():
            service.approve_record(
                self.kind,
                instance.pk,
                self.actor,
                target_status=body.validated_data.get("status"),
            )
        return self._respond(instance.pk)

    @extend_schema(tags=["Lifecycle"], request=None)
    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        instance = self.get_object()
        with api_errors():
            service.reject_record(self.kind, instance.pk, self.actor)
        return self._respond(instance.pk)


class ReceiveActionMixin:
    @extend_schema(tags=["Orders"], request=None)
    @action(detail=True, methods=["post"])
    def receive(self, request, pk=None):
        instance = self.get_object()
        with api_errors():
            service.mark_record_received(self.kind, instance.pk, self.actor)
        return self._respond(instance.pk)


class AdjustQuantityMixin:
    @extend_schema(tags=["Inventory"], request=QuantityAdjustmentSerializer)
    @action(detail=True, methods=["post"])
    def adjust(self, request, pk=None):
        instance = self.get_object()
        body = QuantityAdjustmentSerializer(data=request.data)
        body.is_valid(raise_exception=True)

        with api_errors():
            service.adjust_record_quantity(self.kind, instance.pk, body.validated_data["delta"], self.actor)
        return self._respond(instance.pk)


# ===============================================================
# Projects / Protocols / Experiments
# ===============================================================
class ProjectViewSet(ApprovalActionsMixin, LifecycleViewSet):
    kind = "project"
    queryset = Project.objects.all().order_by("-created_at", "-id")
    serializer_class = ProjectSerializer
    filterset_class = ProjectFilter


class ProtocolViewSet(ApprovalActionsMixin, LifecycleViewSet):
    kind = "protocol"
    queryset = Protocol.objects.all().order_by("-created_at", "-id")
    serializer_class = ProtocolSerializer
    filterset_class = ProtocolFilter


class ExperimentViewSet(ApprovalActionsMixin, LifecycleViewSet):
    kind = "experiment"
    queryset = Experiment.objects.select_related("project", "protocol").order_by("-created_at", "-id")
    serializer_class = ExperimentSerializer
    filterset_class = ExperimentFilter


# ===============================================================
# Inventory
# ===============================================================
class ChemicalInventoryItemViewSet(AdjustQuantityMixin, LifecycleViewSet):
    kind = "chemical"
    queryset = ChemicalInventoryItem.objects.all().order_by("name", "id")
    serializer_class = ChemicalInventoryItemSerializer
    filterset_class = ChemicalInventoryItemFilter
    ordering_fields = ["name", "quantity", "expiry_date", "business_id", "status"]

    @extend_schema(tags=["Inventory"])
    @action(detail=False, methods=["get"], url_path="expiring")
    def expiring(self, request):
        days = request.query_params.get("days")
        try:
            window = int(days) if days not in (None, "") else None
        except ValueError:
            raise DRFValidationError({"days": "Must be an integer."})
        return Response(service.expiring_chemicals(window_days=window))


class ProductViewSet(AdjustQuantityMixin, LifecycleViewSet):
    kind = "product"
    queryset = Product.objects.all().order_by("-created_at", "-id")
    serializer_class = ProductSerializer
    filterset_class = ProductFilter


# ===============================================================
# Orders
# ===============================================================
class ChemicalOrderViewSet(ReceiveActionMixin, LifecycleViewSet):
    kind = "chemical_order"
    queryset = ChemicalOrder.objects.all().order_by("-created_at", "-id")
    serializer_class = ChemicalOrderSerializer
    filterset_class = ChemicalOrderFilter


class PlasmidOrderViewSet(ReceiveActionMixin, LifecycleViewSet):
    kind = "plasmid_order"
    queryset = PlasmidOrder.objects.all().order_by("-created_at", "-id")
    serializer_class = PlasmidOrderSerializer
    filterset_class = PlasmidOrderFilter


# ===============================================================
# Audit trail (READ-ONLY)
# ===============================================================
class AuditTrailViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = AuditTrail.objects.select_related("performed_by").all()
    serializer_class = AuditTrailSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_class = AuditTrailFilter


# ===============================================================
# Workflow definitions / identity / dashboard
# ===============================================================
class WorkflowDefinitionView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Lifecycle"])
    def get(self, request, kind: str):
        with api_errors():
            return Response(lifecycle.workflow_definition(kind))


class WhoAmIView(APIView):
    """
    Current user plus the capability set their role resolves to.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Identity"])
    def get(self, request):
        user = request.user
        actor = service.actor_for_user(user)
        profile = UserProfile.objects.filter(user=user).select_related("user").first()

        return Response(
            {
                "id": user.id,
                "username": user.username,
                "is_superuser": bool(getattr(user, "is_superuser", False)),
                "profile": UserProfileSerializer(profile).data if profile else None,
                "capabilities": lifecycle.capabilities_for(actor),
            }
        )


class DashboardView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Dashboard"])
    def get(self, request):
        return Response(service.dashboard_summary())


class HealthCheckView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(tags=["System"])
    def get(self, request):
        return Response({"status": "ok", "service": "ELN"})
