"""Summary: Structured-output contract for extraction results.

Importance: Defines exactly what the model must return and validates it at the boundary.
Alternatives: Trust provider-side schema enforcement and skip local validation.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError, field_validator

from inboxsift.errors import SchemaValidationError

SCHEMA_NAME = "extraction_result"

_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def _check_iso_date(value: str) -> str:
    if not _DATE_PATTERN.fullmatch(value):
        raise ValueError("must be a date in YYYY-MM-DD format")
    try:
        date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError("must be a date in YYYY-MM-DD format") from exc
    return value


def _check_not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


IsoDate = Annotated[str, AfterValidator(_check_iso_date)]
NonBlankStr = Annotated[str, AfterValidator(_check_not_blank)]


class _Item(BaseModel):
    model_config = ConfigDict(extra="ignore")


class EventItem(_Item):
    """Summary: A calendar event proposed by the model.

    Importance: Carries the minimum needed to place something on a calendar.
    Alternatives: Use full iCalendar VEVENT fields.
    """

    title: NonBlankStr
    date: IsoDate
    time: str | None = Field(default=None, pattern=_TIME_PATTERN)
    end_time: str | None = Field(default=None, pattern=_TIME_PATTERN)
    location: str | None = None


class ReminderItem(_Item):
    """Summary: A reminder proposed by the model."""

    message: NonBlankStr
    remind_at: str | None = None
    offset: str | None = None

    @field_validator("remind_at")
    @classmethod
    def check_remind_at(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValueError("must be an ISO 8601 datetime") from exc
        return value


class TaskItem(_Item):
    """Summary: A task or to-do proposed by the model."""

    title: NonBlankStr
    due_date: IsoDate | None = None
    priority: Literal["low", "medium", "high"] | None = None


class ExtractionPayload(BaseModel):
    """Summary: Top-level extraction result with all three arrays required.

    Importance: Guarantees downstream code never sees an absent category.
    Alternatives: Default missing arrays to empty lists.
    """

    model_config = ConfigDict(extra="ignore")

    events: list[EventItem]
    reminders: list[ReminderItem]
    tasks: list[TaskItem]


def _nullable(description: str) -> dict[str, Any]:
    return {"type": ["string", "null"], "description": description}


def _object(properties: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": properties,
        "required": list(properties),
    }


EXTRACTION_SCHEMA: dict[str, Any] = _object(
    {
        "events": {
            "type": "array",
            "description": "Calendar events extracted from the content",
            "items": _object(
                {
                    "title": {"type": "string", "description": "The title of the event"},
                    "date": {
                        "type": "string",
                        "description": "The date of the event in YYYY-MM-DD format",
                    },
                    "time": _nullable("The time of the event in HH:MM format (24-hour)"),
                    "end_time": _nullable("The end time of the event in HH:MM format (24-hour)"),
                    "location": _nullable("The location of the event"),
                }
            ),
        },
        "reminders": {
            "type": "array",
            "description": "Reminders extracted from the content",
            "items": _object(
                {
                    "message": {"type": "string", "description": "The reminder message"},
                    "remind_at": _nullable("When to remind in ISO 8601 datetime format"),
                    "offset": _nullable(
                        'Relative time offset like "1 day before", "2 hours before"'
                    ),
                }
            ),
        },
        "tasks": {
            "type": "array",
            "description": "Tasks or to-dos extracted from the content",
            "items": _object(
                {
                    "title": {"type": "string", "description": "The title of the task"},
                    "due_date": _nullable("The due date in YYYY-MM-DD format"),
                    "priority": {
                        "type": ["string", "null"],
                        "enum": ["low", "medium", "high", None],
                        "description": "The priority: low, medium, or high",
                    },
                }
            ),
        },
    }
)


def validate_payload(data: Any) -> ExtractionPayload:
    """Summary: Validate a decoded model response against the extraction contract.

    Importance: Turns malformed output into a typed, non-retryable failure.
    Alternatives: Coerce or drop invalid entries silently.
    """

    if not isinstance(data, dict):
        raise SchemaValidationError(
            f"Extraction result must be a JSON object, got {type(data).__name__}"
        )
    try:
        return ExtractionPayload.model_validate(data)
    except ValidationError as exc:
        errors = [
            {"loc": ".".join(str(part) for part in error["loc"]), "msg": error["msg"]}
            for error in exc.errors()
        ]
        summary = "; ".join(f"{error['loc']}: {error['msg']}" for error in errors[:5])
        raise SchemaValidationError(f"Extraction result failed validation: {summary}", errors) from exc
