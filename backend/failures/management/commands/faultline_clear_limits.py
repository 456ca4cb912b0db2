from __future__ import annotations

from django.core.management.base import BaseCommand

from failures.integration import get_reporter


class Command(BaseCommand):
    help = "Reset failure reporting rate limits (the global counter, or one fingerprint)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--fingerprint",
            type=str,
            help="Clear only this fingerprint's counter.",
        )

    def handle(self, *args, **options):
        quota_manager = get_reporter().quota_manager
        fingerprint = options.get("fingerprint")
        if fingerprint:
            quota_manager.clear(fingerprint)
            self.stdout.write(self.style.SUCCESS(f"Cleared rate limit for {fingerprint}."))
            return
        quota_manager.clear_global()
        self.stdout.write(
            self.style.SUCCESS("Cleared the global rate limit (fingerprint limits expire on their own).")
        )
