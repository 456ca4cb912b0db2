from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Union

from failures.conf import ReportingConfig
from failures.errors import ConfigurationError, PersistenceFailure
from failures.events import FailureEvent, as_event
from records.services.client import NotionAPIError, NotionClient
from records.services.content import PageBuilder
from records.types import ExternalRecord, number_value

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Find-or-create/update of failure pages in one Notion database.

    ``record_exception`` looks a fingerprint up and then either bumps the
    existing page or creates a new one. Nothing serialises those two steps:
    two workers recording the same new fingerprint at once can both miss the
    lookup and both create a page. Deduplication is best-effort.
    """

    def __init__(self, client: NotionClient, page_builder: Optional[PageBuilder] = None):
        self.client = client
        self.page_builder = page_builder or PageBuilder()
        self._database: Optional[Dict[str, Any]] = None
        self._database_id: Optional[str] = None

    def record_exception(
        self,
        database_id: str,
        failure: Union[BaseException, FailureEvent],
        fingerprint: str,
        environment: str,
        context: Optional[Mapping[str, Any]] = None,
    ) -> ExternalRecord:
        event = as_event(failure)
        existing = self.find_existing(database_id, fingerprint, event=event)
        if existing is not None:
            return self._update_existing(existing, event)
        return self._create_new(database_id, event, fingerprint, environment, context or {})

    def find_existing(
        self,
        database_id: str,
        fingerprint: str,
        *,
        event: Optional[FailureEvent] = None,
    ) -> Optional[Dict[str, Any]]:
        self.get_database(database_id)
        try:
            pages = self.client.query_database(
                database_id,
                filter=self.page_builder.fingerprint_filter(fingerprint),
                page_size=1,
            )
        except NotionAPIError as exc:
            raise PersistenceFailure(
                f"Querying Notion database {database_id} failed: {exc}",
                original=event.identity() if event else None,
            ) from exc
        return pages[0] if pages else None

    def _create_new(
        self,
        database_id: str,
        event: FailureEvent,
        fingerprint: str,
        environment: str,
        context: Mapping[str, Any],
    ) -> ExternalRecord:
        properties = self.page_builder.build_properties(event, fingerprint, environment)
        content = self.page_builder.build_page_content(event, context)
        try:
            page = self.client.create_page(database_id, properties, content)
        except NotionAPIError as exc:
            raise PersistenceFailure(
                f"Creating Notion page for {fingerprint} failed: {exc}",
                original=event.identity(),
            ) from exc
        logger.info("Recorded new failure %s (%s)", fingerprint[:16], event.kind)
        return self._to_record(page)

    def _update_existing(self, page: Dict[str, Any], event: FailureEvent) -> ExternalRecord:
        current = self.occurrence_count(page)
        properties = self.page_builder.occurrence_properties(current)
        try:
            updated = self.client.update_page(str(page.get("id")), properties)
        except NotionAPIError as exc:
            raise PersistenceFailure(
                f"Updating Notion page {page.get('id')} failed: {exc}",
                original=event.identity(),
            ) from exc
        return self._to_record(updated)

    def occurrence_count(self, page: Mapping[str, Any]) -> int:
        properties = page.get("properties") or {}
        return number_value(properties.get(self.page_builder.field("occurrences")))

    def _to_record(self, page: Mapping[str, Any]) -> ExternalRecord:
        return ExternalRecord.from_page(page, self.page_builder.field_names)

    def get_database(self, database_id: str) -> Dict[str, Any]:
        """Return the database handle, reusing the cached one while the id is unchanged."""
        if not database_id:
            raise ConfigurationError("Notion database id is not configured")
        if self._database is None or self._database_id != database_id:
            try:
                database = self.client.find_database(database_id)
            except NotionAPIError as exc:
                raise ConfigurationError(f"Unable to access Notion database '{database_id}': {exc}") from exc
            self._database = database
            self._database_id = database_id
        return self._database

    def verify_database(self, database_id: str) -> Dict[str, Any]:
        self.clear_cache()
        return self.get_database(database_id)

    def clear_cache(self) -> None:
        self._database = None
        self._database_id = None


def build_database_manager(config: ReportingConfig) -> DatabaseManager:
    if not config.api_key:
        raise ConfigurationError("Notion API key is not configured")
    client = NotionClient(
        config.api_key,
        base_url=config.notion_base_url,
        version=config.notion_version,
        timeout=config.notion_timeout,
    )
    return DatabaseManager(client, PageBuilder(config.fields))
