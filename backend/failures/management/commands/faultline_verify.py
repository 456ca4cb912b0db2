from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from failures.errors import ConfigurationError
from failures.integration import get_config, get_database_manager


class Command(BaseCommand):
    help = "Check that the configured Notion database is reachable with the configured API key."

    def add_arguments(self, parser):
        parser.add_argument(
            "--database-id",
            type=str,
            help="Database to check (defaults to FAULTLINE_NOTION_DATABASE_ID).",
        )

    def handle(self, *args, **options):
        try:
            database_id = options.get("database_id") or get_config().database_id
            if not database_id:
                raise ConfigurationError("Notion database id is not configured")
            database = get_database_manager().verify_database(database_id)
        except ConfigurationError as exc:
            raise CommandError(str(exc)) from exc

        title = "".join(item.get("plain_text", "") for item in database.get("title") or [])
        self.stdout.write(self.style.SUCCESS(f"Notion database {database_id} is reachable ({title or 'untitled'})."))
