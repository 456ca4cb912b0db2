from __future__ import annotations

from django.core.signals import setting_changed
from django.dispatch import receiver

from failures.integration import capture_exception, reset

RECORD_TASK_NAME = "failures.tasks.record_failure"


@receiver(setting_changed)
def reset_reporter_on_settings_change(sender, setting, **kwargs):
    if setting.startswith("FAULTLINE_") or setting == "CELERY_BROKER_URL":
        reset()


def report_task_failure(sender=None, exception=None, **kwargs):
    # Failures of the reporting task itself are logged by the task, never re-reported.
    if sender is not None and getattr(sender, "name", None) == RECORD_TASK_NAME:
        return
    if exception is not None:
        capture_exception(exception)
