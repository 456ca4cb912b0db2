from django.apps import AppConfig


class FailuresConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "failures"

    def ready(self):
        from celery.signals import task_failure

        from failures import signals

        task_failure.connect(signals.report_task_failure, weak=False, dispatch_uid="failures.report_task_failure")
