"""Summary: Prompt templates for structured extraction.

Importance: Keeps the instructions sent to the model versioned and reproducible.
Alternatives: Inline prompt strings inside the extraction service.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

PROMPT_VERSION = "v1.0.0"

NO_SUBJECT = "(No subject)"

SYSTEM_PROMPT = """\
You are an AI assistant that extracts actionable items from unstructured text content such as emails, notes, and messages.

## Your Task

Analyze the provided content and extract:
1. **Events** - Calendar events with dates, times, and locations
2. **Reminders** - Things the user should be reminded about
3. **Tasks** - Action items or to-dos

## Rules

1. **Only extract what is explicitly mentioned** - Do not hallucinate or infer dates/times that aren't present
2. **Partial success is acceptable** - If only some items can be extracted, that's fine
3. **Be conservative** - When in doubt, don't extract
4. **Use ISO 8601 format for dates** - YYYY-MM-DD for dates, YYYY-MM-DDTHH:MM:SS for datetimes
5. **Preserve context** - Include relevant details in titles and descriptions
"""


@dataclass(frozen=True)
class ExtractionPrompt:
    """Summary: System and user prompt pair for one extraction call.

    Importance: Carries the prompt version alongside the text for auditing.
    Alternatives: Concatenate both prompts into a single string.
    """

    system: str
    user: str
    version: str = PROMPT_VERSION


def build_user_prompt(
    raw_subject: str | None,
    raw_content: str,
    timezone: str,
    locale: str,
    current_date: date,
) -> str:
    """Summary: Render the user prompt for an inbox item.

    Importance: Grounds relative dates like "tomorrow" in the workspace's calendar.
    Alternatives: Resolve relative dates in code before calling the model.
    """

    subject = raw_subject if raw_subject else NO_SUBJECT
    return (
        f"Subject: {subject}\n"
        "\n"
        "Content:\n"
        f"{raw_content}\n"
        "\n"
        "---\n"
        f"Timezone: {timezone}\n"
        f"Locale: {locale}\n"
        f"Current Date: {current_date.isoformat()}"
    )


def build_prompt(
    raw_subject: str | None,
    raw_content: str,
    timezone: str,
    locale: str,
    current_date: date,
) -> ExtractionPrompt:
    """Summary: Build the full prompt pair for an extraction run."""

    return ExtractionPrompt(
        system=SYSTEM_PROMPT,
        user=build_user_prompt(raw_subject, raw_content, timezone, locale, current_date),
    )
