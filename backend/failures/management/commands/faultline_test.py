from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from failures.errors import ConfigurationError
from failures.integration import build_reporter, get_config


class FaultlineTestException(RuntimeError):
    pass


class Command(BaseCommand):
    help = "Raise a sample exception and report it synchronously, to check the Notion integration end to end."

    def add_arguments(self, parser):
        parser.add_argument(
            "--message",
            type=str,
            default="Faultline test exception",
            help="Message of the sample exception.",
        )

    def handle(self, *args, **options):
        try:
            config = get_config().model_copy(update={"use_queue": False})
        except ConfigurationError as exc:
            raise CommandError(str(exc)) from exc
        if not config.is_configured:
            raise CommandError("Failure reporting is disabled or the Notion database id is missing.")

        reporter = build_reporter(config)
        try:
            raise FaultlineTestException(options["message"])
        except FaultlineTestException as exc:
            reported = reporter.report(exc)
        if not reported:
            raise CommandError("The sample exception was not reported; check the logs.")
        self.stdout.write(self.style.SUCCESS("Sample exception reported."))
