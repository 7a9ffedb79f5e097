# eln_site/celery.py
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "eln_site.settings")

app = Celery("eln_site")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
