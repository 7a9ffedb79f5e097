# eln_core/models/audit.py

from django.conf import settings
from django.db import models


class AuditTrail(models.Model):
    """
    Append-only record of lifecycle events produced by the engine.
    """

    entity = models.CharField(max_length=64, db_index=True)
    entity_id = models.CharField(max_length=64, db_index=True)
    action = models.CharField(max_length=64, db_index=True)
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="eln_audit_events",
    )
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["entity", "entity_id"], name="audit_entity_idx"),
        ]

    def __str__(self):
        who = self.performed_by.get_username() if self.performed_by else "system"
        return f"{self.entity}:{self.entity_id} {self.action} by {who}"
