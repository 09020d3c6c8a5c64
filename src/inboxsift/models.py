"""Summary: Domain enums and dataclasses for InboxSift.

Importance: Defines the core entities shared across services and storage.
Alternatives: Use Pydantic models or ORM classes directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class InboxItemSource(str, Enum):
    """Summary: Where an inbox item came from.

    Importance: Lets ingestion adapters tag items for later filtering.
    Alternatives: Store free-form source strings.
    """

    EMAIL = "email"
    MANUAL = "manual"
    SHARE = "share"


class InboxItemStatus(str, Enum):
    """Summary: Lifecycle states of an inbox item."""

    NEW = "new"
    PARSED = "parsed"
    ARCHIVED = "archived"


class SuggestionType(str, Enum):
    """Summary: Kinds of actionable items an extraction can propose.

    Importance: Acts as the discriminant for suggestion payload shapes.
    Alternatives: Store one table per suggestion kind.
    """

    EVENT = "event"
    REMINDER = "reminder"
    TASK = "task"


class SuggestionStatus(str, Enum):
    """Summary: Review states of a suggestion."""

    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Workspace:
    """Summary: Tenancy boundary that owns inbox items.

    Importance: Carries the timezone and locale used to ground relative dates.
    Alternatives: Read timezone and locale from global configuration only.
    """

    name: str
    timezone: str = "UTC"
    locale: str = "en"


@dataclass(frozen=True)
class InboxItem:
    """Summary: One ingested piece of raw content awaiting extraction.

    Importance: Core unit that flows through the extraction pipeline.
    Alternatives: Store raw content directly on suggestions.
    """

    workspace_id: int
    source: InboxItemSource
    raw_content: str
    received_at: datetime
    raw_subject: str | None = None
    status: InboxItemStatus = InboxItemStatus.NEW

    def __post_init__(self) -> None:
        if not self.raw_content or not self.raw_content.strip():
            raise ValueError("raw_content must be non-empty")


@dataclass(frozen=True)
class NewExtraction:
    """Summary: Values for a completed extraction run before persistence.

    Importance: Records which model and prompt produced a raw response.
    Alternatives: Persist only the derived suggestions.
    """

    inbox_item_id: int
    model_version: str
    prompt_version: str
    raw_response: dict[str, Any]


@dataclass(frozen=True)
class NewSuggestion:
    """Summary: A suggestion creation request produced by the materializer."""

    extraction_id: int
    type: SuggestionType
    payload: dict[str, Any] = field(default_factory=dict)
    status: SuggestionStatus = SuggestionStatus.PROPOSED
