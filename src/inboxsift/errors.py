"""Summary: Error taxonomy for the extraction pipeline and services.

Importance: Lets the job runner and API tell transient failures from permanent ones.
Alternatives: Raise RuntimeError everywhere and inspect messages.
"""

from __future__ import annotations


class ExtractionError(Exception):
    """Summary: Base class for failures of a single extraction attempt.

    Importance: Carries whether retrying the same request could succeed.
    Alternatives: Encode retryability in separate exception hierarchies.
    """

    retryable = False

    def __init__(self, message: str, retryable: bool | None = None) -> None:
        super().__init__(message)
        if retryable is not None:
            self.retryable = retryable


class ModelError(ExtractionError):
    """Summary: The AI provider call failed (network, auth, rate limit, 5xx)."""

    retryable = True


class ModelTimeoutError(ModelError, TimeoutError):
    """Summary: The AI provider call exceeded its allotted time."""

    retryable = True


class SchemaValidationError(ExtractionError, ValueError):
    """Summary: The AI response does not conform to the extraction schema.

    Importance: Surfaces malformed output instead of silently coercing it.
    Alternatives: Drop invalid entries and keep the rest.
    """

    retryable = False

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(LookupError):
    """Summary: A record does not exist within the caller's workspace."""


class ArchivedItemError(ValueError):
    """Summary: Extraction was requested for an archived inbox item."""


class InvalidSignatureError(PermissionError):
    """Summary: An inbound webhook failed signature verification."""
