"""Retry with exponential backoff for model calls."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_PATTERNS = (
    "timeout",
    "timed out",
    "connection",
    "rate limit",
    "429",
    "500",
    "502",
    "503",
    "504",
    "ssl",
    "eof",
    "broken pipe",
    "temporary",
    "unavailable",
    "overloaded",
)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter_factor: float = 0.2  # ±20% random variation


class TransientError(Exception):
    """Error worth retrying (network hiccup, rate limit, overloaded backend)."""


class PermanentError(Exception):
    """Error that will not go away by retrying (bad key, bad request)."""


def is_transient_error(error: BaseException) -> bool:
    """Classify *error* by type first, then by its message."""
    if isinstance(error, TransientError):
        return True
    if isinstance(error, PermanentError):
        return False
    if isinstance(error, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return True
    message = str(error).lower()
    return any(pattern in message for pattern in TRANSIENT_PATTERNS)


def backoff_delay(attempt: int, config: RetryConfig) -> float:
    """Delay before retry number *attempt* (0-based), jitter included."""
    base = min(config.base_delay * (config.exponential_base**attempt), config.max_delay)
    jitter = base * config.jitter_factor * (2 * random.random() - 1)
    return max(0.0, base + jitter)


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    config: RetryConfig,
    *args: Any,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    **kwargs: Any,
) -> T:
    """Await ``func(*args, **kwargs)``, retrying transient failures.

    Cancellation is never retried. A non-transient error is re-raised as
    :class:`PermanentError` on the first attempt; the last transient error
    is re-raised unchanged once attempts run out.
    """
    attempts = max(1, config.max_attempts)

    for attempt in range(attempts):
        try:
            result = await func(*args, **kwargs)
        except asyncio.CancelledError:
            raise
        except PermanentError:
            logger.error("Permanent error encountered, not retrying")
            raise
        except Exception as e:
            if not is_transient_error(e):
                logger.error("Permanent error encountered, not retrying: %s", e)
                raise PermanentError(str(e)) from e
            if attempt == attempts - 1:
                logger.error("All %d retry attempts failed", attempts)
                raise

            delay = backoff_delay(attempt, config)
            logger.warning("Attempt %d/%d failed: %s. Retrying in %.2fs...", attempt + 1, attempts, e, delay)
            if on_retry is not None:
                on_retry(attempt + 1, e, delay)
            await asyncio.sleep(delay)
        else:
            if attempt > 0:
                logger.info("Retry succeeded on attempt %d", attempt + 1)
            return result

    raise RuntimeError("unreachable: retry loop exited without result")
