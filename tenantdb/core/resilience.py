"""Bounded retry for idempotent control-plane calls."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from tenantdb.core.config import Settings
from tenantdb.core.errors import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int
    backoff_ms: int


def default_retry_policy(settings: Settings) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.retry_max_attempts,
        backoff_ms=settings.retry_backoff_ms,
    )


async def retry_async(
    func: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    retryable: Callable[[Exception], bool] = is_retryable,
    label: str = "call",
) -> T:
    """Await ``func()``, retrying transient failures with jittered backoff.

    Cancellation is never retried: ``asyncio.CancelledError`` is not an
    ``Exception`` subclass and passes straight through.
    """
    attempt = 1
    while True:
        try:
            return await func()
        except Exception as exc:
            if attempt >= max(policy.max_attempts, 1) or not retryable(exc):
                raise
            jitter = random.uniform(0.5, 1.5)
            sleep_s = (policy.backoff_ms / 1000.0) * (2 ** (attempt - 1)) * jitter
            logger.warning(
                "Retrying %s after attempt %d failed: %s", label, attempt, exc
            )
            await asyncio.sleep(sleep_s)
            attempt += 1
