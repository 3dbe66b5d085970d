"""Retry-with-backoff helper for store calls and offline scripts."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

import structlog

T = TypeVar("T")

logger = structlog.get_logger(__name__)


def with_retry(
    fn: Callable[[], T],
    *,
    retries: int = 3,
    base_delay: float = 0.5,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    label: str | None = None,
) -> T:
    """Call ``fn`` up to ``retries`` times, sleeping ``base_delay * attempt`` between tries."""
    if retries < 1:
        raise ValueError("retries must be at least 1")

    for attempt in range(retries):
        try:
            return fn()
        except retry_on as exc:
            if attempt == retries - 1:
                logger.error(
                    "retry_exhausted",
                    label=label,
                    attempts=retries,
                    error=str(exc),
                )
                raise
            logger.warning(
                "retry_attempt_failed",
                label=label,
                attempt=attempt + 1,
                error=str(exc),
            )
            sleep(base_delay * (attempt + 1))

    raise AssertionError("unreachable")
