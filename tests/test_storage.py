"""Summary: Tests for the SQLite storage layer.

Importance: Ensures persistence, workspace scoping, and transactions behave as expected.
Alternatives: Rely on manual testing for storage operations.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from inboxsift.models import (
    InboxItem,
    InboxItemSource,
    InboxItemStatus,
    NewExtraction,
    NewSuggestion,
    SuggestionStatus,
    SuggestionType,
    Workspace,
)
from inboxsift.storage.sqlite_store import SqliteStore


def _store(tmp_path: Path) -> SqliteStore:
    store = SqliteStore(str(tmp_path / "test.db"))
    store.initialize()
    return store


def _item(workspace_id: int, content: str = "Meeting tomorrow at 2pm") -> InboxItem:
    return InboxItem(
        workspace_id=workspace_id,
        source=InboxItemSource.MANUAL,
        raw_content=content,
        received_at=datetime(2026, 1, 24, 9, 0, tzinfo=timezone.utc),
        raw_subject="Sync",
    )


def _extraction(item_id: int, payload: dict | None = None) -> NewExtraction:
    return NewExtraction(
        inbox_item_id=item_id,
        model_version="gpt-4o-mini",
        prompt_version="v1.0.0",
        raw_response=payload or {"events": [], "reminders": [], "tasks": []},
    )


def test_workspace_has_unique_inbound_token(tmp_path: Path) -> None:
    """Summary: Verify workspaces get distinct 32-character alphanumeric tokens.

    Importance: Tokens route inbound email to exactly one workspace.
    Alternatives: Use workspace IDs in inbound addresses.
    """

    store = _store(tmp_path)
    first = store.create_workspace(Workspace(name="Home", timezone="Europe/Berlin", locale="de"))
    second = store.create_workspace(Workspace(name="Work"))
    assert len(first.inbound_email_token) == 32
    assert first.inbound_email_token.isalnum()
    assert first.inbound_email_token != second.inbound_email_token
    assert store.get_workspace_by_token(first.inbound_email_token) == first
    assert store.get_workspace(first.id).timezone == "Europe/Berlin"


def test_inbox_items_are_scoped_to_workspace(tmp_path: Path) -> None:
    """Summary: Verify inbox items cannot be read through another workspace."""

    store = _store(tmp_path)
    home = store.create_workspace(Workspace(name="Home"))
    work = store.create_workspace(Workspace(name="Work"))
    item = store.create_inbox_item(_item(home.id))
    assert store.get_inbox_item(item.id, home.id) == item
    assert store.get_inbox_item(item.id, work.id) is None
    assert store.list_inbox_items(work.id) == []
    assert item.status is InboxItemStatus.NEW


def test_list_inbox_items_filters_and_orders(tmp_path: Path) -> None:
    store = _store(tmp_path)
    workspace = store.create_workspace(Workspace(name="Home"))
    older = store.create_inbox_item(_item(workspace.id, "older"))
    newer = store.create_inbox_item(
        InboxItem(
            workspace_id=workspace.id,
            source=InboxItemSource.SHARE,
            raw_content="newer",
            received_at=datetime(2026, 1, 25, tzinfo=timezone.utc),
        )
    )
    store.update_inbox_item_status(older.id, InboxItemStatus.ARCHIVED)
    assert [item.id for item in store.list_inbox_items(workspace.id)] == [newer.id, older.id]
    archived = store.list_inbox_items(workspace.id, status=InboxItemStatus.ARCHIVED)
    assert [item.id for item in archived] == [older.id]


def test_transaction_commits_all_writes(tmp_path: Path) -> None:
    """Summary: Verify extraction, suggestions, and status land together.

    Importance: Confirms the transactional scope used by the extraction service.
    Alternatives: Commit after every statement.
    """

    store = _store(tmp_path)
    workspace = store.create_workspace(Workspace(name="Home"))
    item = store.create_inbox_item(_item(workspace.id))
    payload = {"title": "Meeting", "date": "2026-01-25"}
    with store.transaction() as tx:
        extraction = tx.create_extraction(_extraction(item.id))
        tx.create_suggestions([NewSuggestion(extraction.id, SuggestionType.EVENT, payload)])
        tx.set_inbox_item_status(item.id, InboxItemStatus.PARSED)
    suggestions = store.list_suggestions_for_extraction(extraction.id)
    assert suggestions[0].payload == payload
    assert suggestions[0].status is SuggestionStatus.PROPOSED
    assert store.get_inbox_item(item.id, workspace.id).status is InboxItemStatus.PARSED


def test_transaction_rolls_back_on_error(tmp_path: Path) -> None:
    """Summary: Verify no partial writes survive a failure inside the transaction."""

    store = _store(tmp_path)
    workspace = store.create_workspace(Workspace(name="Home"))
    item = store.create_inbox_item(_item(workspace.id))
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            extraction = tx.create_extraction(_extraction(item.id))
            tx.create_suggestions([NewSuggestion(extraction.id, SuggestionType.TASK, {"title": "x"})])
            raise RuntimeError("boom")
    assert store.count_rows("extractions") == 0
    assert store.count_rows("suggestions") == 0
    assert store.get_inbox_item(item.id, workspace.id).status is InboxItemStatus.NEW


def test_latest_extraction_is_most_recent(tmp_path: Path) -> None:
    store = _store(tmp_path)
    workspace = store.create_workspace(Workspace(name="Home"))
    item = store.create_inbox_item(_item(workspace.id))
    created = []
    for _ in range(3):
        with store.transaction() as tx:
            created.append(tx.create_extraction(_extraction(item.id)))
    latest = store.get_latest_extraction(item.id)
    assert latest.id == created[-1].id
    assert latest.created_at == max(extraction.created_at for extraction in store.list_extractions(item.id))
    assert len(store.list_extractions(item.id)) == 3


def test_suggestions_are_scoped_through_inbox_item(tmp_path: Path) -> None:
    """Summary: Verify suggestion queries follow the ownership chain."""

    store = _store(tmp_path)
    home = store.create_workspace(Workspace(name="Home"))
    work = store.create_workspace(Workspace(name="Work"))
    item = store.create_inbox_item(_item(home.id))
    with store.transaction() as tx:
        extraction = tx.create_extraction(_extraction(item.id))
        ids = tx.create_suggestions(
            [
                NewSuggestion(extraction.id, SuggestionType.EVENT, {"title": "E", "date": "2026-01-25"}),
                NewSuggestion(extraction.id, SuggestionType.TASK, {"title": "T"}),
            ]
        )
    assert store.get_suggestion(ids[0], work.id) is None
    assert store.list_suggestions(work.id) == []
    assert len(store.list_suggestions(home.id)) == 2
    tasks = store.list_suggestions(home.id, suggestion_type=SuggestionType.TASK)
    assert [s.id for s in tasks] == [ids[1]]
    store.update_suggestion_status(ids[1], SuggestionStatus.ACCEPTED)
    accepted = store.list_suggestions(home.id, status=SuggestionStatus.ACCEPTED)
    assert [s.id for s in accepted] == [ids[1]]


def test_deleting_workspace_cascades(tmp_path: Path) -> None:
    """Summary: Verify workspace deletion removes items, extractions, and suggestions."""

    store = _store(tmp_path)
    workspace = store.create_workspace(Workspace(name="Home"))
    item = store.create_inbox_item(_item(workspace.id))
    with store.transaction() as tx:
        extraction = tx.create_extraction(_extraction(item.id))
        tx.create_suggestions([NewSuggestion(extraction.id, SuggestionType.TASK, {"title": "T"})])
    store.delete_workspace(workspace.id)
    for table in ("inbox_items", "extractions", "suggestions"):
        assert store.count_rows(table) == 0
