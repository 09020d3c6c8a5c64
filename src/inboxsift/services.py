"""Summary: Core application services for InboxSift.

Importance: Orchestrates ingestion, extraction, and suggestion review per workspace.
Alternatives: Build a full service layer with dependency injection framework.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from datetime import date, datetime, timezone
from typing import Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from inboxsift.ai import ExtractionClient
from inboxsift.errors import ArchivedItemError, NotFoundError
from inboxsift.lifecycle import (
    is_inbox_transition_allowed,
    resolve_suggestion,
    status_after_archive,
    status_after_extraction,
)
from inboxsift.materializer import materialize_suggestions
from inboxsift.models import (
    InboxItem,
    InboxItemSource,
    InboxItemStatus,
    NewExtraction,
    SuggestionStatus,
    SuggestionType,
    Workspace,
)
from inboxsift.prompts import build_prompt
from inboxsift.storage.sqlite_store import (
    SqliteStore,
    StoredExtraction,
    StoredInboxItem,
    StoredSuggestion,
    StoredWorkspace,
)


logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_date(moment: datetime, tz_name: str) -> date:
    """Summary: Calendar date of a moment in a named timezone.

    Importance: Relative dates in content are grounded in the workspace's own day.
    Alternatives: Always use the server's local date.
    """

    return moment.astimezone(ZoneInfo(tz_name)).date()


@dataclass(frozen=True)
class WorkspaceService:
    """Summary: Manages workspace records.

    Importance: Provides the tenancy boundary every other service is scoped to.
    Alternatives: Use an external tenant directory.
    """

    store: SqliteStore

    def create_workspace(self, name: str, timezone: str = "UTC", locale: str = "en") -> StoredWorkspace:
        """Summary: Create a workspace after checking its timezone.

        Importance: Rejects timezones the prompt builder could not resolve.
        Alternatives: Accept any string and fail at extraction time.
        """

        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {timezone}") from exc
        workspace = self.store.create_workspace(Workspace(name=name, timezone=timezone, locale=locale))
        logger.info("Created workspace %s (%s).", workspace.id, name)
        return workspace

    def ensure_workspace(self, name: str, timezone: str = "UTC", locale: str = "en") -> StoredWorkspace:
        """Summary: Return the named workspace, creating it when missing."""

        existing = self.store.get_workspace_by_name(name)
        if existing:
            return existing
        return self.create_workspace(name, timezone, locale)

    def get_workspace(self, workspace_id: int) -> StoredWorkspace:
        workspace = self.store.get_workspace(workspace_id)
        if not workspace:
            raise NotFoundError(f"Workspace {workspace_id} not found")
        return workspace


@dataclass(frozen=True)
class InboxService:
    """Summary: Handles inbox item ingestion, listing, and archival.

    Importance: Centralizes inbox item rules for every ingestion adapter.
    Alternatives: Insert inbox items directly from each adapter.
    """

    store: SqliteStore
    workspace_id: int

    def create_item(
        self,
        raw_content: str,
        raw_subject: str | None = None,
        source: InboxItemSource = InboxItemSource.MANUAL,
        received_at: datetime | None = None,
    ) -> StoredInboxItem:
        """Summary: Persist a new inbox item in New status.

        Importance: Normalizes ingestion across manual, share, and email sources.
        Alternatives: Use a queue-based ingestion pipeline.
        """

        item = InboxItem(
            workspace_id=self.workspace_id,
            source=source,
            raw_subject=raw_subject or None,
            raw_content=raw_content,
            received_at=received_at or _utc_now(),
        )
        stored = self.store.create_inbox_item(item)
        logger.info("Created %s inbox item %s.", source.value, stored.id)
        return stored

    def get_item(self, item_id: int) -> StoredInboxItem:
        """Summary: Fetch an inbox item owned by this workspace."""

        item = self.store.get_inbox_item(item_id, self.workspace_id)
        if not item:
            raise NotFoundError(f"Inbox item {item_id} not found")
        return item

    def list_items(
        self, status: InboxItemStatus | None = None, limit: int = 15, offset: int = 0
    ) -> list[StoredInboxItem]:
        return self.store.list_inbox_items(self.workspace_id, status=status, limit=limit, offset=offset)

    def archive_item(self, item_id: int) -> StoredInboxItem:
        """Summary: Archive an inbox item.

        Importance: Lets users dismiss items without deleting them.
        Alternatives: Hard-delete dismissed items.
        """

        item = self.get_item(item_id)
        self.store.update_inbox_item_status(item.id, status_after_archive(item.status))
        logger.info("Archived inbox item %s.", item.id)
        return self.get_item(item_id)

    def ensure_extractable(self, item_id: int) -> StoredInboxItem:
        """Summary: Check that extraction may be requested for an item.

        Importance: Keeps archived items from being re-parsed through user actions.
        Alternatives: Let extraction run and overwrite the archived status.
        """

        item = self.get_item(item_id)
        if not is_inbox_transition_allowed(item.status, InboxItemStatus.PARSED):
            raise ArchivedItemError(f"Inbox item {item_id} is archived")
        return item

    def list_extractions(self, item_id: int) -> list[StoredExtraction]:
        item = self.get_item(item_id)
        return self.store.list_extractions(item.id)

    def latest_extraction(self, item_id: int) -> StoredExtraction | None:
        """Summary: Return the most recently created extraction for an item."""

        item = self.get_item(item_id)
        return self.store.get_latest_extraction(item.id)

    def list_item_suggestions(self, item_id: int) -> list[StoredSuggestion]:
        item = self.get_item(item_id)
        return self.store.list_suggestions_for_item(item.id)


@dataclass(frozen=True)
class ExtractionService:
    """Summary: Runs the extraction pipeline for one inbox item.

    Importance: Ties the model call, extraction record, suggestions, and status
    change together so a run either fully lands or leaves no trace.
    Alternatives: Persist each step as it completes.
    """

    store: SqliteStore
    client: ExtractionClient
    workspace_id: int
    clock: Callable[[], datetime] = field(default=_utc_now)

    def run_extraction(self, item_id: int) -> StoredExtraction:
        """Summary: Extract suggestions from an inbox item and mark it parsed.

        Importance: The model call happens before the transaction so no database
        lock is held during network I/O.
        Alternatives: Hold one transaction across the whole run.
        """

        item = self.store.get_inbox_item(item_id, self.workspace_id)
        if not item:
            raise NotFoundError(f"Inbox item {item_id} not found")
        workspace = self.store.get_workspace(self.workspace_id)
        if not workspace:
            raise NotFoundError(f"Workspace {self.workspace_id} not found")
        prompt = build_prompt(
            item.raw_subject,
            item.raw_content,
            workspace.timezone,
            workspace.locale,
            local_date(self.clock(), workspace.timezone),
        )
        result = self.client.extract(prompt)
        with self.store.transaction() as tx:
            extraction = tx.create_extraction(
                NewExtraction(
                    inbox_item_id=item.id,
                    model_version=result.model_version,
                    prompt_version=result.prompt_version,
                    raw_response=result.payload,
                )
            )
            suggestion_ids = tx.create_suggestions(
                materialize_suggestions(result.payload, extraction.id)
            )
            tx.set_inbox_item_status(item.id, status_after_extraction(item.status))
        logger.info(
            "Extraction %s for inbox item %s created %s suggestions.",
            extraction.id,
            item.id,
            len(suggestion_ids),
        )
        return extraction


@dataclass(frozen=True)
class SuggestionService:
    """Summary: Lists and resolves suggestions for a workspace.

    Importance: Keeps the review flow scoped to the owning workspace.
    Alternatives: Resolve suggestions by ID without ownership checks.
    """

    store: SqliteStore
    workspace_id: int

    def list_suggestions(
        self,
        status: SuggestionStatus | None = None,
        suggestion_type: SuggestionType | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[StoredSuggestion]:
        return self.store.list_suggestions(
            self.workspace_id,
            status=status,
            suggestion_type=suggestion_type,
            limit=limit,
            offset=offset,
        )

    def get_suggestion(self, suggestion_id: int) -> StoredSuggestion:
        suggestion = self.store.get_suggestion(suggestion_id, self.workspace_id)
        if not suggestion:
            raise NotFoundError(f"Suggestion {suggestion_id} not found")
        return suggestion

    def accept(self, suggestion_id: int) -> StoredSuggestion:
        """Summary: Mark a suggestion accepted."""

        return self._resolve(suggestion_id, SuggestionStatus.ACCEPTED)

    def reject(self, suggestion_id: int) -> StoredSuggestion:
        """Summary: Mark a suggestion rejected."""

        return self._resolve(suggestion_id, SuggestionStatus.REJECTED)

    def _resolve(self, suggestion_id: int, target: SuggestionStatus) -> StoredSuggestion:
        suggestion = self.get_suggestion(suggestion_id)
        status = resolve_suggestion(suggestion.status, target, suggestion_id=suggestion.id)
        self.store.update_suggestion_status(suggestion.id, status)
        logger.info("Suggestion %s marked %s.", suggestion.id, status.value)
        return self.get_suggestion(suggestion_id)
