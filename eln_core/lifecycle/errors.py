# eln_core/lifecycle/errors.py
from __future__ import annotations

from typing import Optional


class LifecycleError(Exception):
    """
    Base class for every rule violation raised by the lifecycle engine.

    The message is meant to be shown to the user as-is.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidTransition(LifecycleError):
    """Requested action is not legal from the record's current status."""

    def __init__(self, message: str, current: Optional[str] = None):
        super().__init__(message)
        self.current = current


class PermissionDenied(LifecycleError):
    """Actor's role lacks the capability the action requires."""

    def __init__(self, capability: str, role: str, message: Optional[str] = None):
        self.capability = capability
        self.role = role
        super().__init__(
            message
            or f"Permission denied: '{capability}' is required, actor role is '{role or 'none'}'."
        )


class ImmutableFieldViolation(LifecycleError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Field '{field}' is immutable after creation.")


class ValidationError(LifecycleError):
    """Malformed input: negative quantity, missing required field, unknown status."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


__all__ = [
    "LifecycleError",
    "InvalidTransition",
    "PermissionDenied",
    "ImmutableFieldViolation",
    "ValidationError",
]
