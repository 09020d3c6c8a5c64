"""Summary: Tests for suggestion review.

Importance: Ensures accept and reject flows stay workspace-scoped and auditable.
Alternatives: Test review only through the API.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from inboxsift.ai import ExtractionClient, MockAiProvider
from inboxsift.errors import NotFoundError
from inboxsift.models import SuggestionStatus, SuggestionType
from inboxsift.services import ExtractionService, InboxService, SuggestionService, WorkspaceService
from inboxsift.storage.sqlite_store import SqliteStore

PAYLOAD = {
    "events": [{"title": "Standup", "date": "2026-02-02", "time": "09:30", "end_time": None, "location": None}],
    "reminders": [],
    "tasks": [{"title": "Prepare slides", "due_date": "2026-02-01", "priority": "medium"}],
}


def _extracted(tmp_path: Path) -> tuple[SqliteStore, int, list[int]]:
    store = SqliteStore(str(tmp_path / "test.db"))
    store.initialize()
    workspace = WorkspaceService(store).create_workspace("Home")
    item = InboxService(store, workspace.id).create_item("Standup Monday, slides due Sunday")
    service = ExtractionService(store, ExtractionClient(MockAiProvider(PAYLOAD)), workspace.id)
    extraction = service.run_extraction(item.id)
    ids = [s.id for s in store.list_suggestions_for_extraction(extraction.id)]
    return store, workspace.id, ids


def test_accept_and_reject(tmp_path: Path) -> None:
    """Summary: Verify proposed suggestions can be accepted or rejected.

    Importance: Review outcomes are the product's main user action.
    Alternatives: Delete rejected suggestions.
    """

    store, workspace_id, (event_id, task_id) = _extracted(tmp_path)
    service = SuggestionService(store, workspace_id)

    assert service.accept(event_id).status is SuggestionStatus.ACCEPTED
    assert service.reject(task_id).status is SuggestionStatus.REJECTED
    assert service.get_suggestion(event_id).payload == PAYLOAD["events"][0]


def test_resolved_suggestion_can_be_overwritten(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    """Summary: Verify rejecting an accepted suggestion overwrites it with a warning."""

    store, workspace_id, (event_id, _) = _extracted(tmp_path)
    service = SuggestionService(store, workspace_id)
    service.accept(event_id)

    with caplog.at_level(logging.WARNING, logger="inboxsift.lifecycle"):
        rejected = service.reject(event_id)

    assert rejected.status is SuggestionStatus.REJECTED
    assert any("Overwriting resolved suggestion" in r.getMessage() for r in caplog.records)


def test_other_workspace_cannot_review(tmp_path: Path) -> None:
    store, _, (event_id, _) = _extracted(tmp_path)
    other = WorkspaceService(store).create_workspace("Work")
    service = SuggestionService(store, other.id)

    with pytest.raises(NotFoundError):
        service.accept(event_id)
    assert service.list_suggestions() == []


def test_list_filters_by_status_and_type(tmp_path: Path) -> None:
    """Summary: Verify review queues can be filtered."""

    store, workspace_id, (event_id, task_id) = _extracted(tmp_path)
    service = SuggestionService(store, workspace_id)
    service.accept(task_id)

    proposed = service.list_suggestions(status=SuggestionStatus.PROPOSED)
    assert [s.id for s in proposed] == [event_id]
    tasks = service.list_suggestions(suggestion_type=SuggestionType.TASK)
    assert [s.id for s in tasks] == [task_id]
    assert len(service.list_suggestions(limit=1)) == 1
