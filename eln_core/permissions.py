# eln_core/permissions.py
from __future__ import annotations

from rest_framework.permissions import SAFE_METHODS, BasePermission

from .lifecycle import CAN_EDIT, resolve_capabilities
from .services.lifecycle_service import actor_for_user


# Actions the lifecycle engine authorizes itself: edits check immutable
# fields before the role, transitions check the source status first.
ENGINE_GATED_ACTIONS = {"update", "partial_update", "approve", "reject", "receive"}


class CapabilityPermission(BasePermission):
    """
    Read: any authenticated user
    Write: role must resolve to can_edit (guest and principal_investigator are read-only)
    """

    message = "Write access denied."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False

        if request.method in SAFE_METHODS:
            return True

        if getattr(view, "action", None) in ENGINE_GATED_ACTIONS:
            return True

        caps = resolve_capabilities(actor_for_user(user).role)
        if not caps.can_edit:
            self.message = (
                f"Permission denied: '{CAN_EDIT}' is required, actor role is '{caps.role}'."
            )
            return False
        return True
