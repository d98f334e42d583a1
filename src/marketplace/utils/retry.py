"""Bounded retry for optimistic-concurrency conflicts.

Aggregates are versioned; when two writers race on the same ProductStock or
Order, the loser's unit of work is rolled back with ``ExpectedVersionError``.
The whole command is then re-dispatched from scratch, never partially.
"""

import random
import time
from collections.abc import Callable
from typing import TypeVar

import structlog
from protean.exceptions import ExpectedVersionError

from marketplace import policy
from marketplace.errors import TransientStoreConflict

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_MAX_BACKOFF_SECONDS = 0.5


def run_with_retry(
    operation: str,
    fn: Callable[[], T],
    attempts: int | None = None,
    base_delay: float | None = None,
) -> T:
    """Call ``fn`` until it stops losing version races, up to ``attempts`` times."""
    attempts = attempts or policy.STORE_RETRY_ATTEMPTS
    base_delay = policy.STORE_RETRY_BACKOFF_SECONDS if base_delay is None else base_delay

    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except ExpectedVersionError as exc:
            if attempt >= attempts:
                logger.error(
                    "Store conflict retries exhausted",
                    operation=operation,
                    attempts=attempts,
                    error=str(exc),
                )
                raise TransientStoreConflict(operation, attempts) from exc

            delay = min(_MAX_BACKOFF_SECONDS, base_delay * (2 ** (attempt - 1)))
            logger.warning(
                "Store conflict, retrying",
                operation=operation,
                attempt=attempt,
                delay=delay,
            )
            time.sleep(delay * (0.6 + 0.4 * random.random()))

    raise AssertionError("unreachable")
