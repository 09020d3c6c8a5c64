"""Summary: Status transitions for inbox items and suggestions.

Importance: Gives every status change a single named entry point.
Alternatives: Assign status strings ad hoc in services.
"""

from __future__ import annotations

import logging

from inboxsift.models import InboxItemStatus, SuggestionStatus

logger = logging.getLogger(__name__)

INBOX_TRANSITIONS: dict[InboxItemStatus, frozenset[InboxItemStatus]] = {
    InboxItemStatus.NEW: frozenset({InboxItemStatus.PARSED, InboxItemStatus.ARCHIVED}),
    InboxItemStatus.PARSED: frozenset({InboxItemStatus.PARSED, InboxItemStatus.ARCHIVED}),
    InboxItemStatus.ARCHIVED: frozenset({InboxItemStatus.ARCHIVED}),
}

SUGGESTION_TRANSITIONS: dict[SuggestionStatus, frozenset[SuggestionStatus]] = {
    SuggestionStatus.PROPOSED: frozenset({SuggestionStatus.ACCEPTED, SuggestionStatus.REJECTED}),
    SuggestionStatus.ACCEPTED: frozenset(),
    SuggestionStatus.REJECTED: frozenset(),
}


def is_inbox_transition_allowed(current: InboxItemStatus, target: InboxItemStatus) -> bool:
    """Summary: Report whether an inbox item may move between two statuses."""

    return target in INBOX_TRANSITIONS[current]


def is_suggestion_transition_allowed(
    current: SuggestionStatus, target: SuggestionStatus
) -> bool:
    """Summary: Report whether a suggestion may move between two statuses."""

    return target in SUGGESTION_TRANSITIONS[current]


def status_after_extraction(current: InboxItemStatus) -> InboxItemStatus:
    """Summary: Status an inbox item takes once an extraction run commits.

    Importance: Extraction completion always marks the item parsed; refusing
    archived items is left to the caller that dispatches extraction.
    Alternatives: Raise on archived items here.
    """

    if current is InboxItemStatus.ARCHIVED:
        logger.warning("Marking an archived inbox item as parsed after extraction.")
    return InboxItemStatus.PARSED


def status_after_archive(current: InboxItemStatus) -> InboxItemStatus:
    """Summary: Status an inbox item takes when a user archives it."""

    return InboxItemStatus.ARCHIVED


def resolve_suggestion(
    current: SuggestionStatus, target: SuggestionStatus, suggestion_id: int | None = None
) -> SuggestionStatus:
    """Summary: Status a suggestion takes when a user accepts or rejects it.

    Importance: Resolution overwrites any prior decision; a warning is logged
    when an already-resolved suggestion changes.
    Alternatives: Raise a conflict error for resolved suggestions.
    """

    if target is SuggestionStatus.PROPOSED:
        raise ValueError("Suggestions cannot be moved back to proposed")
    if not is_suggestion_transition_allowed(current, target) and current is not target:
        logger.warning(
            "Overwriting resolved suggestion %s from %s to %s.",
            suggestion_id,
            current.value,
            target.value,
        )
    return target
