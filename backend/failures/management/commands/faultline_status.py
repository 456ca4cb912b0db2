from __future__ import annotations

import json

from django.core.management.base import BaseCommand

from failures.integration import get_status


class Command(BaseCommand):
    help = "Show the failure reporting configuration status."

    def handle(self, *args, **options):
        status = get_status()
        self.stdout.write(json.dumps(status, indent=2, sort_keys=True))
        if status.get("error"):
            self.stdout.write(self.style.ERROR("Failure reporting is not available."))
        elif status.get("enabled") and status.get("database_id"):
            self.stdout.write(self.style.SUCCESS("Failure reporting is configured."))
        else:
            self.stdout.write(self.style.WARNING("Failure reporting is disabled or not configured."))
