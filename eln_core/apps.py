# eln_core/apps.py

from django.apps import AppConfig


class ElnCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "eln_core"
    verbose_name = "Electronic Lab Notebook"
