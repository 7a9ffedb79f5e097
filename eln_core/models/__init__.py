# eln_core/models/__init__.py

from .core import (
    ApprovableRecord,
    ChemicalInventoryItem,
    ChemicalOrder,
    Experiment,
    LabRecord,
    PlasmidOrder,
    Product,
    Project,
    Protocol,
    TimeStampedModel,
    UserProfile,
)
from .audit import AuditTrail

__all__ = [
    "ApprovableRecord",
    "AuditTrail",
    "ChemicalInventoryItem",
    "ChemicalOrder",
    "Experiment",
    "LabRecord",
    "PlasmidOrder",
    "Product",
    "Project",
    "Protocol",
    "TimeStampedModel",
    "UserProfile",
]
