"""Retry and timeout handling shared by every vendor adapter."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from ..config import DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT_MS
from ..exceptions import (
    ImageLoadError,
    InvalidInputError,
    ModelAPIError,
    ModelConfigError,
    VisionMCPError,
    VisionTimeoutError,
)

logger = logging.getLogger("vision-mcp")

T = TypeVar("T")

# Client/config errors: retrying cannot change the outcome.
NON_RETRYABLE_STATUS_CODES = frozenset({400, 401, 403, 404})

BASE_BACKOFF_MS = 1000
MAX_BACKOFF_MS = 5000


def backoff_delay_ms(attempt: int) -> int:
    """Delay after the given zero-based attempt: 1s, 2s, 4s, then capped at 5s."""
    return min(BASE_BACKOFF_MS * 2**attempt, MAX_BACKOFF_MS)


class RetryEngine:
    """Run one network attempt at a time with a per-attempt deadline.

    Up to ``max_retries + 1`` attempts. HTTP 400/401/403/404 abort at once,
    a timeout on the final attempt raises VisionTimeoutError, and any other
    exhausted failure becomes a ModelAPIError carrying the last error's details.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.max_retries = max_retries
        self.timeout_ms = timeout_ms
        self._sleep = sleep

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        attempts = self.max_retries + 1
        last_error: BaseException | None = None

        for attempt in range(attempts):
            is_final = attempt == attempts - 1
            logger.debug("Attempt %d/%d", attempt + 1, attempts)
            try:
                return await asyncio.wait_for(
                    operation(), timeout=self.timeout_ms / 1000
                )
            except asyncio.TimeoutError as e:
                timeout_error = VisionTimeoutError(
                    f"Request timed out after {self.timeout_ms}ms",
                    {"timeoutMs": self.timeout_ms, "attempt": attempt + 1},
                    cause=e,
                )
                if is_final:
                    raise timeout_error
                last_error = timeout_error
            except (InvalidInputError, ImageLoadError, ModelConfigError):
                raise
            except ModelAPIError as e:
                if e.status in NON_RETRYABLE_STATUS_CODES:
                    logger.error(
                        "Non-retryable error (HTTP %s) on attempt %d, failing immediately",
                        e.status,
                        attempt + 1,
                    )
                    raise
                last_error = e
            except Exception as e:
                last_error = e

            if is_final:
                break

            delay_ms = backoff_delay_ms(attempt)
            logger.warning(
                "Attempt %d failed, retrying in %dms: %s",
                attempt + 1,
                delay_ms,
                last_error,
            )
            await self._sleep(delay_ms / 1000)

        if isinstance(last_error, VisionMCPError):
            details = {**last_error.details, "lastError": last_error.message}
            reason = last_error.message.removeprefix(last_error.prefix)
        else:
            reason = str(last_error) or type(last_error).__name__
            details = {"lastError": reason}
        raise ModelAPIError(
            f"Failed after {attempts} attempts: {reason}", details, cause=last_error
        )
