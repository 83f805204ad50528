# Overview: Bounded optimistic retry for storage transactions.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import TransactionConflictExhausted

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 5

_LOCK_MARKERS = ("database is locked", "database table is locked", "deadlock", "could not serialize")


class StaleStockVersion(Exception):
    """Compare-and-swap found the stock record changed since it was read."""


def is_retryable(exc: BaseException) -> bool:
    """
    OperationalError is only retryable when it is a lock or serialization
    failure; a missing table is not going to fix itself. Everything else the
    caller listed in retry_on is.
    """
    if isinstance(exc, OperationalError):
        message = str(exc.orig or exc).lower()
        return any(marker in message for marker in _LOCK_MARKERS)
    return True


def run_with_retry(
    func,
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    backoff_base: float = 0.05,
    retry_on: tuple[type[BaseException], ...] = (StaleStockVersion, StaleDataError, OperationalError),
    describe: str = "transaction",
):
    """
    Execute `func` (one complete transaction) with retry on concurrency failures.

    `func` must open and close its own transaction so every attempt re-reads
    fresh state. Errors that are not retryable propagate unchanged. When the
    bound is reached TransactionConflictExhausted is raised from the last
    conflict.
    """
    attempts = max(1, attempts)
    last_exc = None
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except retry_on as exc:
            if not is_retryable(exc):
                raise
            last_exc = exc
            if attempt >= attempts:
                break
            delay = backoff_base * (2 ** (attempt - 1))
            logger.warning(
                "%s conflicted (attempt %d/%d): %s", describe, attempt, attempts, exc
            )
            if delay > 0:
                time.sleep(delay)

    logger.error("%s gave up after %d attempts", describe, attempts)
    raise TransactionConflictExhausted(
        f"{describe} did not commit after {attempts} attempts", attempts=attempts
    ) from last_exc
