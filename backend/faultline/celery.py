import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "faultline.settings.dev")

app = Celery("faultline")
app.config_from_object("django.conf:settings", namespace="CELERY")
# Only the failures app ships tasks; record_failure is routed per call to FAULTLINE_QUEUE_NAME.
app.autodiscover_tasks(["failures"])
