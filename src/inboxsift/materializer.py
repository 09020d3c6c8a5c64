"""Summary: Converts an extraction payload into suggestion creation requests.

Importance: Keeps the mapping from result arrays to typed suggestions in one place.
Alternatives: Create suggestion rows directly inside the extraction service.
"""

from __future__ import annotations

from typing import Any

from inboxsift.models import NewSuggestion, SuggestionType

# Creation order: events, then reminders, then tasks.
PAYLOAD_KEYS: tuple[tuple[str, SuggestionType], ...] = (
    ("events", SuggestionType.EVENT),
    ("reminders", SuggestionType.REMINDER),
    ("tasks", SuggestionType.TASK),
)


def materialize_suggestions(
    payload: dict[str, Any] | None, extraction_id: int
) -> list[NewSuggestion]:
    """Summary: Build one proposed suggestion per entry in the payload.

    Importance: Preserves each entry verbatim so consumers see exactly what the model returned.
    Alternatives: Reshape entries into a normalized suggestion format.
    """

    if payload is None:
        return []
    suggestions: list[NewSuggestion] = []
    for key, suggestion_type in PAYLOAD_KEYS:
        for entry in payload.get(key) or []:
            suggestions.append(
                NewSuggestion(extraction_id=extraction_id, type=suggestion_type, payload=entry)
            )
    return suggestions
