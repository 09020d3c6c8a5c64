"""Summary: Background extraction jobs with bounded retries.

Importance: Keeps model calls off the request path and owns the failure policy.
Alternatives: Use Celery or RQ with a message broker.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable

from inboxsift.errors import ExtractionError
from inboxsift.storage.sqlite_store import StoredExtraction

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 60.0


@dataclass(frozen=True)
class ExtractionJob:
    """Summary: A queued request to extract one inbox item.

    Importance: Carries the workspace explicitly so the job never relies on ambient context.
    Alternatives: Serialize the whole inbox item into the job.
    """

    inbox_item_id: int
    workspace_id: int


class ExtractionJobRunner:
    """Summary: Runs extraction jobs on a thread pool with fixed-backoff retries.

    Importance: Every exception counts as a failed attempt; after the last attempt
    the failure is logged once and the job is dropped.
    Alternatives: Re-enqueue failed jobs into a persistent queue.
    """

    def __init__(
        self,
        run_extraction: Callable[[ExtractionJob], StoredExtraction],
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        workers: int = 2,
        sleep: Callable[[float], None] = time.sleep,
        on_failure: Callable[[ExtractionJob, BaseException], None] | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._run_extraction = run_extraction
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep
        self._on_failure = on_failure
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="extraction")

    def dispatch(self, job: ExtractionJob) -> Future:
        """Summary: Queue a job and return immediately.

        Importance: Lets callers acknowledge the request before extraction finishes.
        Alternatives: Run extraction inline in the request.
        """

        logger.info("Queued extraction for inbox item %s.", job.inbox_item_id)
        return self._executor.submit(self.run, job)

    def run(self, job: ExtractionJob) -> StoredExtraction | None:
        """Summary: Execute a job with up to max_attempts attempts.

        Importance: Returns None instead of raising once attempts are exhausted.
        Alternatives: Propagate the final exception to the caller.
        """

        last_error: BaseException | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self._run_extraction(job)
            except Exception as exc:  # every failure consumes an attempt
                last_error = exc
                retryable = exc.retryable if isinstance(exc, ExtractionError) else None
                if attempt < self.max_attempts:
                    logger.warning(
                        "Extraction attempt %s/%s for inbox item %s failed (retryable=%s): %s",
                        attempt,
                        self.max_attempts,
                        job.inbox_item_id,
                        retryable,
                        exc,
                    )
                    self._sleep(self.backoff_seconds)
        self._failed(job, last_error)
        return None

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _failed(self, job: ExtractionJob, error: BaseException | None) -> None:
        logger.error("Extraction failed for inbox item %s: %s", job.inbox_item_id, error)
        if self._on_failure is not None and error is not None:
            self._on_failure(job, error)
