"""
Resilient call wrapper for remote generation APIs.

Every remote call (script, speech, video submit, status query, download) goes
through ``call_with_retry``. Failures are classified into three classes:

- QUOTA: rate limit / quota exhaustion. Exponential backoff with jitter,
  never shorter than the previous wait, capped at ``max_delay``.
- TRANSIENT: server-side or network failure. Fixed short wait.
- FATAL: anything else. Re-raised immediately, untouched.

Waits are split into one-second ticks so callers can show a live countdown
through ``on_wait``.
"""

import asyncio
import math
import random
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

import httpx
from google.genai import errors as genai_errors

from viralvibe.config.pipeline import RetryPolicy
from viralvibe.core.exceptions import (
    QuotaExceededError,
    RetryExhaustedError,
    TransientIOError,
    ViralVibeError,
)
from viralvibe.core.logging import get_logger

logger = get_logger(__name__, component="retry")

T = TypeVar("T")

WaitCallback = Callable[[str], None]
SleepFn = Callable[[float], Awaitable[None]]

_TRANSIENT_HTTP_CODES = {500, 502, 503, 504}
_QUOTA_STATUSES = {"RESOURCE_EXHAUSTED"}
_TRANSIENT_STATUSES = {"UNAVAILABLE", "INTERNAL", "DEADLINE_EXCEEDED"}
_QUOTA_MARKERS = ("429", "resource_exhausted", "quota", "rate limit", "rate-limit")
_TRANSIENT_MARKERS = ("overloaded", "unavailable", "temporarily", "deadline exceeded")


class ErrorClass(str, Enum):
    QUOTA = "quota"
    TRANSIENT = "transient"
    FATAL = "fatal"


def _classify_code(code: Optional[int], status: str) -> Optional[ErrorClass]:
    if code == 429 or status in _QUOTA_STATUSES:
        return ErrorClass.QUOTA
    if code in _TRANSIENT_HTTP_CODES or status in _TRANSIENT_STATUSES:
        return ErrorClass.TRANSIENT
    return None


def classify_error(exc: BaseException) -> ErrorClass:
    """Decide whether a failure is worth retrying, and how."""
    if isinstance(exc, QuotaExceededError):
        return ErrorClass.QUOTA
    if isinstance(exc, TransientIOError):
        return ErrorClass.TRANSIENT
    if isinstance(exc, ViralVibeError):
        return ErrorClass.FATAL

    if isinstance(exc, genai_errors.APIError):
        status = str(getattr(exc, "status", "") or "").upper()
        result = _classify_code(getattr(exc, "code", None), status)
        if result is not None:
            return result
        if isinstance(exc, genai_errors.ServerError):
            return ErrorClass.TRANSIENT

    if isinstance(exc, httpx.HTTPStatusError):
        result = _classify_code(exc.response.status_code, "")
        if result is not None:
            return result

    if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError)):
        return ErrorClass.TRANSIENT

    message = str(exc).lower()
    if any(marker in message for marker in _QUOTA_MARKERS):
        return ErrorClass.QUOTA
    if any(marker in message for marker in _TRANSIENT_MARKERS):
        return ErrorClass.TRANSIENT
    return ErrorClass.FATAL


def compute_quota_delay(
    policy: RetryPolicy,
    attempt: int,
    previous_delay: float = 0.0,
    rng: Callable[[float, float], float] = random.uniform,
) -> float:
    """Backoff for the ``attempt``-th quota failure (0-based).

    The result is clamped to ``policy.max_delay`` and never falls below
    ``previous_delay``.
    """
    raw = policy.base_delay * (policy.multiplier ** attempt) + rng(0.0, policy.jitter)
    return max(previous_delay, min(raw, policy.max_delay))


async def _wait_with_countdown(
    delay: float,
    reason: str,
    label: str,
    next_attempt: int,
    max_attempts: int,
    on_wait: Optional[WaitCallback],
    sleep: SleepFn,
) -> None:
    remaining = delay
    while remaining > 0:
        if on_wait is not None:
            text = (
                f"{reason} on {label}; retrying in {int(math.ceil(remaining))}s "
                f"(attempt {next_attempt}/{max_attempts})"
            )
            try:
                on_wait(text)
            except Exception:
                logger.error("Wait callback failed", exc_info=True, extra={"label": label})
                raise
        tick = min(1.0, remaining)
        await sleep(tick)
        remaining = round(remaining - tick, 6)


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    on_wait: Optional[WaitCallback] = None,
    sleep: Optional[SleepFn] = None,
    label: str = "",
    rng: Callable[[float, float], float] = random.uniform,
) -> T:
    """Invoke ``fn`` until it succeeds, a fatal error occurs, or the attempt
    budget runs out.

    Args:
        fn: Zero-argument callable returning an awaitable (a fresh one per attempt).
        policy: Attempt budget and backoff parameters.
        on_wait: Receives a countdown string once per second while waiting.
        sleep: Injectable sleep, defaults to ``asyncio.sleep``.
        label: Human-readable name of the call for messages and logs.

    Raises:
        The original exception for FATAL failures.
        RetryExhaustedError: after ``policy.max_attempts`` retryable failures.
    """
    sleep = sleep or asyncio.sleep
    display_label = label or "remote call"
    previous_delay = 0.0
    quota_failures = 0
    last_error: Optional[BaseException] = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await fn()
        except Exception as exc:
            error_class = classify_error(exc)
            if error_class is ErrorClass.FATAL:
                raise

            last_error = exc
            if attempt >= policy.max_attempts:
                break

            if error_class is ErrorClass.QUOTA:
                delay = compute_quota_delay(policy, quota_failures, previous_delay, rng)
                previous_delay = delay
                quota_failures += 1
                reason = "Quota limit hit"
            else:
                delay = policy.transient_delay
                reason = "Service temporarily unavailable"

            logger.warning(
                f"{reason} on {display_label}, retrying",
                extra={
                    "label": display_label,
                    "attempt": attempt,
                    "max_attempts": policy.max_attempts,
                    "delay_seconds": round(delay, 2),
                    "error_class": error_class.value,
                    "error": str(exc),
                },
            )
            await _wait_with_countdown(
                delay, reason, display_label, attempt + 1, policy.max_attempts, on_wait, sleep,
            )

    logger.error(
        f"Retries exhausted for {display_label}",
        extra={"label": display_label, "attempts": policy.max_attempts, "error": str(last_error)},
    )
    raise RetryExhaustedError(display_label, policy.max_attempts, last_error) from last_error
