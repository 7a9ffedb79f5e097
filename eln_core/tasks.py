# eln_core/tasks.py
from __future__ import annotations

from celery import shared_task

from eln_core.services.lifecycle_service import refresh_inventory_statuses as _refresh


@shared_task
def refresh_inventory_statuses() -> int:
    return _refresh()
