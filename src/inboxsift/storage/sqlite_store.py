"""Summary: SQLite storage implementation for InboxSift.

Importance: Provides a local-first relational store for inbox items, extractions, and suggestions.
Alternatives: Use an ORM or an external database immediately.
"""

from __future__ import annotations

import json
import secrets
import sqlite3
import string
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

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

_TOKEN_ALPHABET = string.ascii_letters + string.digits

_INBOX_COLUMNS = "i.id, i.workspace_id, i.source, i.raw_subject, i.raw_content, i.received_at, i.status, i.created_at"
_EXTRACTION_COLUMNS = "e.id, e.inbox_item_id, e.model_version, e.prompt_version, e.raw_response, e.created_at"
_SUGGESTION_COLUMNS = "s.id, s.extraction_id, s.type, s.payload, s.status, s.created_at, s.updated_at"


@dataclass(frozen=True)
class StoredWorkspace:
    """Summary: Workspace record with database identifier."""

    id: int
    name: str
    timezone: str
    locale: str
    inbound_email_token: str


@dataclass(frozen=True)
class StoredInboxItem:
    """Summary: Inbox item record with database identifier.

    Importance: Links raw content to its extractions and owning workspace.
    Alternatives: Use provider message IDs as the only identifier.
    """

    id: int
    workspace_id: int
    source: InboxItemSource
    raw_subject: str | None
    raw_content: str
    received_at: str
    status: InboxItemStatus
    created_at: str


@dataclass(frozen=True)
class StoredExtraction:
    """Summary: Immutable extraction record with its verbatim model response."""

    id: int
    inbox_item_id: int
    model_version: str
    prompt_version: str
    raw_response: dict[str, Any]
    created_at: str


@dataclass(frozen=True)
class StoredSuggestion:
    """Summary: Suggestion record with decoded payload.

    Importance: Exposes the type-tagged payload exactly as it was extracted.
    Alternatives: Store one table per suggestion type.
    """

    id: int
    extraction_id: int
    type: SuggestionType
    payload: dict[str, Any]
    status: SuggestionStatus
    created_at: str
    updated_at: str


def utc_now() -> str:
    """Summary: Current UTC time as an ISO 8601 string with microseconds."""

    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _inbox_item(row: tuple) -> StoredInboxItem:
    return StoredInboxItem(
        id=row[0],
        workspace_id=row[1],
        source=InboxItemSource(row[2]),
        raw_subject=row[3],
        raw_content=row[4],
        received_at=row[5],
        status=InboxItemStatus(row[6]),
        created_at=row[7],
    )


def _extraction(row: tuple) -> StoredExtraction:
    return StoredExtraction(
        id=row[0],
        inbox_item_id=row[1],
        model_version=row[2],
        prompt_version=row[3],
        raw_response=json.loads(row[4]),
        created_at=row[5],
    )


def _suggestion(row: tuple) -> StoredSuggestion:
    return StoredSuggestion(
        id=row[0],
        extraction_id=row[1],
        type=SuggestionType(row[2]),
        payload=json.loads(row[3]),
        status=SuggestionStatus(row[4]),
        created_at=row[5],
        updated_at=row[6],
    )


class StoreTransaction:
    """Summary: Write operations bound to one open transaction.

    Importance: Lets the extraction service commit its record, suggestions, and
    status change together or not at all.
    Alternatives: Pass raw connections into every store method.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def create_extraction(self, extraction: NewExtraction) -> StoredExtraction:
        """Summary: Insert an extraction record and return it."""

        created_at = utc_now()
        raw_response = json.dumps(extraction.raw_response)
        cursor = self._connection.execute(
            """
            INSERT INTO extractions (inbox_item_id, model_version, prompt_version, raw_response, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                extraction.inbox_item_id,
                extraction.model_version,
                extraction.prompt_version,
                raw_response,
                created_at,
            ),
        )
        return StoredExtraction(
            id=int(cursor.lastrowid),
            inbox_item_id=extraction.inbox_item_id,
            model_version=extraction.model_version,
            prompt_version=extraction.prompt_version,
            raw_response=json.loads(raw_response),
            created_at=created_at,
        )

    def create_suggestions(self, suggestions: list[NewSuggestion]) -> list[int]:
        """Summary: Insert suggestions in order and return their IDs."""

        ids: list[int] = []
        for suggestion in suggestions:
            now = utc_now()
            cursor = self._connection.execute(
                """
                INSERT INTO suggestions (extraction_id, type, payload, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    suggestion.extraction_id,
                    suggestion.type.value,
                    json.dumps(suggestion.payload),
                    suggestion.status.value,
                    now,
                    now,
                ),
            )
            ids.append(int(cursor.lastrowid))
        return ids

    def set_inbox_item_status(self, item_id: int, status: InboxItemStatus) -> None:
        """Summary: Update an inbox item's status within the transaction."""

        self._connection.execute(
            "UPDATE inbox_items SET status = ?, updated_at = ? WHERE id = ?",
            (status.value, utc_now(), item_id),
        )


class SqliteStore:
    """Summary: SQLite-backed storage for InboxSift.

    Importance: Enables local-first persistence with minimal dependencies.
    Alternatives: Use Postgres and SQLAlchemy from day one.
    """

    def __init__(self, db_path: str, timeout: float = 30.0) -> None:
        """Summary: Initialize the storage with a database path.

        Importance: Allows configurable database location per environment.
        Alternatives: Hardcode a default path in the class.
        """

        self._db_path = Path(db_path)
        self._timeout = timeout

    def initialize(self) -> None:
        """Summary: Create tables and indexes if they do not exist.

        Importance: Ensures the database is ready for ingestion and extraction.
        Alternatives: Run migrations using a dedicated migration tool.
        """

        with self._connection() as connection:
            connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS workspaces (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    timezone TEXT NOT NULL DEFAULT 'UTC',
                    locale TEXT NOT NULL DEFAULT 'en',
                    inbound_email_token TEXT NOT NULL UNIQUE,
                    created_at TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS inbox_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    workspace_id INTEGER NOT NULL REFERENCES workspaces(id) ON DELETE CASCADE,
                    source TEXT NOT NULL,
                    raw_subject TEXT,
                    raw_content TEXT NOT NULL,
                    received_at TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'new',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_inbox_items_workspace_status
                    ON inbox_items (workspace_id, status);
                CREATE INDEX IF NOT EXISTS idx_inbox_items_workspace_received
                    ON inbox_items (workspace_id, received_at);
                CREATE TABLE IF NOT EXISTS extractions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    inbox_item_id INTEGER NOT NULL REFERENCES inbox_items(id) ON DELETE CASCADE,
                    model_version TEXT NOT NULL,
                    prompt_version TEXT NOT NULL,
                    raw_response TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_extractions_inbox_item
                    ON extractions (inbox_item_id);
                CREATE TABLE IF NOT EXISTS suggestions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    extraction_id INTEGER NOT NULL REFERENCES extractions(id) ON DELETE CASCADE,
                    type TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'proposed',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_suggestions_extraction
                    ON suggestions (extraction_id);
                """
            )

    def create_workspace(self, workspace: Workspace) -> StoredWorkspace:
        """Summary: Create a workspace with a fresh inbound email token.

        Importance: Establishes the tenancy boundary for all inbox data.
        Alternatives: Derive workspaces implicitly from users.
        """

        with self._connection() as connection:
            while True:
                token = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(32))
                try:
                    cursor = connection.execute(
                        """
                        INSERT INTO workspaces (name, timezone, locale, inbound_email_token, created_at)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (workspace.name, workspace.timezone, workspace.locale, token, utc_now()),
                    )
                except sqlite3.IntegrityError:
                    continue
                break
        return StoredWorkspace(
            id=int(cursor.lastrowid),
            name=workspace.name,
            timezone=workspace.timezone,
            locale=workspace.locale,
            inbound_email_token=token,
        )

    def get_workspace(self, workspace_id: int) -> StoredWorkspace | None:
        """Summary: Retrieve a workspace by ID."""

        with self._connection() as connection:
            row = connection.execute(
                "SELECT id, name, timezone, locale, inbound_email_token FROM workspaces WHERE id = ?",
                (workspace_id,),
            ).fetchone()
        return StoredWorkspace(*row) if row else None

    def get_workspace_by_name(self, name: str) -> StoredWorkspace | None:
        """Summary: Retrieve the oldest workspace with a given name."""

        with self._connection() as connection:
            row = connection.execute(
                """
                SELECT id, name, timezone, locale, inbound_email_token
                FROM workspaces WHERE name = ? ORDER BY id ASC LIMIT 1
                """,
                (name,),
            ).fetchone()
        return StoredWorkspace(*row) if row else None

    def get_workspace_by_token(self, token: str) -> StoredWorkspace | None:
        """Summary: Resolve a workspace from its inbound email token.

        Importance: Routes inbound emails to the right inbox.
        Alternatives: Route by sender address.
        """

        with self._connection() as connection:
            row = connection.execute(
                """
                SELECT id, name, timezone, locale, inbound_email_token
                FROM workspaces WHERE inbound_email_token = ?
                """,
                (token,),
            ).fetchone()
        return StoredWorkspace(*row) if row else None

    def create_inbox_item(self, item: InboxItem) -> StoredInboxItem:
        """Summary: Persist a new inbox item and return the stored record."""

        now = utc_now()
        received_at = item.received_at.isoformat()
        with self._connection() as connection:
            cursor = connection.execute(
                """
                INSERT INTO inbox_items (
                    workspace_id, source, raw_subject, raw_content, received_at, status, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.workspace_id,
                    item.source.value,
                    item.raw_subject,
                    item.raw_content,
                    received_at,
                    item.status.value,
                    now,
                    now,
                ),
            )
        return StoredInboxItem(
            id=int(cursor.lastrowid),
            workspace_id=item.workspace_id,
            source=item.source,
            raw_subject=item.raw_subject,
            raw_content=item.raw_content,
            received_at=received_at,
            status=item.status,
            created_at=now,
        )

    def get_inbox_item(self, item_id: int, workspace_id: int) -> StoredInboxItem | None:
        """Summary: Retrieve an inbox item scoped to a workspace.

        Importance: Keeps one workspace from reading another's items.
        Alternatives: Check ownership in the caller after loading by ID.
        """

        with self._connection() as connection:
            row = connection.execute(
                f"SELECT {_INBOX_COLUMNS} FROM inbox_items i WHERE i.id = ? AND i.workspace_id = ?",
                (item_id, workspace_id),
            ).fetchone()
        return _inbox_item(row) if row else None

    def list_inbox_items(
        self,
        workspace_id: int,
        status: InboxItemStatus | None = None,
        limit: int = 15,
        offset: int = 0,
    ) -> list[StoredInboxItem]:
        """Summary: List a workspace's inbox items, newest first."""

        query = f"SELECT {_INBOX_COLUMNS} FROM inbox_items i WHERE i.workspace_id = ?"
        params: list[Any] = [workspace_id]
        if status is not None:
            query += " AND i.status = ?"
            params.append(status.value)
        query += " ORDER BY i.received_at DESC, i.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        with self._connection() as connection:
            rows = connection.execute(query, params).fetchall()
        return [_inbox_item(row) for row in rows]

    def update_inbox_item_status(self, item_id: int, status: InboxItemStatus) -> None:
        """Summary: Update an inbox item's status outside an extraction run."""

        with self.transaction() as tx:
            tx.set_inbox_item_status(item_id, status)

    def list_extractions(self, item_id: int) -> list[StoredExtraction]:
        """Summary: List an inbox item's extractions, oldest first."""

        with self._connection() as connection:
            rows = connection.execute(
                f"""
                SELECT {_EXTRACTION_COLUMNS} FROM extractions e
                WHERE e.inbox_item_id = ?
                ORDER BY e.created_at ASC, e.id ASC
                """,
                (item_id,),
            ).fetchall()
        return [_extraction(row) for row in rows]

    def get_latest_extraction(self, item_id: int) -> StoredExtraction | None:
        """Summary: Return the most recently created extraction for an item.

        Importance: Gives review screens the current view of an item.
        Alternatives: Keep a latest_extraction_id pointer on the inbox item.
        """

        with self._connection() as connection:
            row = connection.execute(
                f"""
                SELECT {_EXTRACTION_COLUMNS} FROM extractions e
                WHERE e.inbox_item_id = ?
                ORDER BY e.created_at DESC, e.id DESC
                LIMIT 1
                """,
                (item_id,),
            ).fetchone()
        return _extraction(row) if row else None

    def list_suggestions_for_extraction(self, extraction_id: int) -> list[StoredSuggestion]:
        """Summary: List suggestions created by one extraction, in creation order."""

        with self._connection() as connection:
            rows = connection.execute(
                f"SELECT {_SUGGESTION_COLUMNS} FROM suggestions s WHERE s.extraction_id = ? ORDER BY s.id ASC",
                (extraction_id,),
            ).fetchall()
        return [_suggestion(row) for row in rows]

    def list_suggestions_for_item(self, item_id: int) -> list[StoredSuggestion]:
        """Summary: List suggestions across all of an inbox item's extractions."""

        with self._connection() as connection:
            rows = connection.execute(
                f"""
                SELECT {_SUGGESTION_COLUMNS} FROM suggestions s
                JOIN extractions e ON e.id = s.extraction_id
                WHERE e.inbox_item_id = ?
                ORDER BY s.id ASC
                """,
                (item_id,),
            ).fetchall()
        return [_suggestion(row) for row in rows]

    def list_suggestions(
        self,
        workspace_id: int,
        status: SuggestionStatus | None = None,
        suggestion_type: SuggestionType | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[StoredSuggestion]:
        """Summary: List a workspace's suggestions, newest first.

        Importance: Scopes suggestions through extraction and inbox item ownership.
        Alternatives: Denormalize workspace_id onto suggestions.
        """

        query = f"""
            SELECT {_SUGGESTION_COLUMNS} FROM suggestions s
            JOIN extractions e ON e.id = s.extraction_id
            JOIN inbox_items i ON i.id = e.inbox_item_id
            WHERE i.workspace_id = ?
        """
        params: list[Any] = [workspace_id]
        if status is not None:
            query += " AND s.status = ?"
            params.append(status.value)
        if suggestion_type is not None:
            query += " AND s.type = ?"
            params.append(suggestion_type.value)
        query += " ORDER BY s.created_at DESC, s.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        with self._connection() as connection:
            rows = connection.execute(query, params).fetchall()
        return [_suggestion(row) for row in rows]

    def get_suggestion(self, suggestion_id: int, workspace_id: int) -> StoredSuggestion | None:
        """Summary: Retrieve a suggestion scoped to a workspace."""

        with self._connection() as connection:
            row = connection.execute(
                f"""
                SELECT {_SUGGESTION_COLUMNS} FROM suggestions s
                JOIN extractions e ON e.id = s.extraction_id
                JOIN inbox_items i ON i.id = e.inbox_item_id
                WHERE s.id = ? AND i.workspace_id = ?
                """,
                (suggestion_id, workspace_id),
            ).fetchone()
        return _suggestion(row) if row else None

    def update_suggestion_status(self, suggestion_id: int, status: SuggestionStatus) -> None:
        """Summary: Persist a suggestion's new review status."""

        with self._connection() as connection:
            connection.execute(
                "UPDATE suggestions SET status = ?, updated_at = ? WHERE id = ?",
                (status.value, utc_now(), suggestion_id),
            )

    def delete_workspace(self, workspace_id: int) -> None:
        """Summary: Delete a workspace and, by cascade, everything it owns.

        Importance: Supports tenant offboarding without orphaned rows.
        Alternatives: Soft-delete workspaces with a flag.
        """

        with self._connection() as connection:
            connection.execute("DELETE FROM workspaces WHERE id = ?", (workspace_id,))

    def count_rows(self, table: str) -> int:
        """Summary: Count rows in one of the store's tables."""

        if table not in {"workspaces", "inbox_items", "extractions", "suggestions"}:
            raise ValueError(f"Unknown table: {table}")
        with self._connection() as connection:
            row = connection.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
        return int(row[0])

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Summary: Open a write transaction that commits or rolls back as a unit.

        Importance: Guarantees readers never see an extraction without its suggestions.
        Alternatives: Rely on per-statement autocommit.
        """

        connection = self._open()
        try:
            connection.execute("BEGIN IMMEDIATE")
            try:
                yield StoreTransaction(connection)
            except BaseException:
                connection.execute("ROLLBACK")
                raise
            connection.execute("COMMIT")
        finally:
            connection.close()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Summary: Context manager for autocommit SQLite connections.

        Importance: Ensures connections are closed cleanly after use.
        Alternatives: Keep a single long-lived connection.
        """

        connection = self._open()
        try:
            yield connection
        finally:
            connection.close()

    def _open(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path, timeout=self._timeout, isolation_level=None)
        connection.execute("PRAGMA foreign_keys = ON")
        return connection

