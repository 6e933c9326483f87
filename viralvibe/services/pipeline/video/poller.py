"""
Operation poller - drives a long-running video operation to completion.

Two states, Pending and Done. After a cold-start wait the poller queries the
operation status (through the retry wrapper) and sleeps a fixed interval
between queries. The number of status queries is bounded; exceeding it raises
``OperationTimeoutError`` so a stuck job cannot block the run forever.

Cancellation is observed during every sleep. Before giving up on a cancelled
run the poller issues one best-effort status query so the remote job is not
silently abandoned.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from viralvibe.config.pipeline import PollSettings, RetryPolicy
from viralvibe.core.exceptions import OperationFailedError, OperationTimeoutError, PipelineCancelledError
from viralvibe.core.logging import get_logger
from viralvibe.models.pipeline import VideoAsset
from viralvibe.services.infrastructure.orchestration.cancellation import CancelToken
from viralvibe.services.infrastructure.resilience import call_with_retry

logger = get_logger(__name__, component="operation_poller")


@dataclass
class OperationStatus:
    done: bool
    video: Any = None
    uri: Optional[str] = None
    error: Optional[str] = None


def _field(obj: Any, *names: str) -> Any:
    for name in names:
        if isinstance(obj, dict):
            if obj.get(name) is not None:
                return obj[name]
        elif getattr(obj, name, None) is not None:
            return getattr(obj, name)
    return None


def _error_text(error: Any) -> Optional[str]:
    if not error:
        return None
    if isinstance(error, str):
        return error
    message = _field(error, "message")
    return str(message) if message else str(error)


def read_operation(operation: Any) -> OperationStatus:
    """Normalise an SDK operation or a plain dict into an ``OperationStatus``.

    Accepted dict shape::

        {"done": bool,
         "response": {"generated_videos": [{"video": {...}}]} | {"video": {...}},
         "error": {"message": str}}
    """
    done = bool(_field(operation, "done"))
    error = _error_text(_field(operation, "error"))

    video = None
    response = _field(operation, "response", "result")
    if response is not None:
        generated = _field(response, "generated_videos", "generatedVideos")
        if generated:
            video = _field(generated[0], "video")
        else:
            video = _field(response, "video")

    uri = _field(video, "uri") if video is not None else None
    return OperationStatus(done=done, video=video, uri=uri, error=error)


class OperationPoller:
    """
    Poll loop shared by the initial generation and every extension.

    Args:
        fetch_status: async callable refreshing an operation handle.
        settings: cold start, interval and query bound.
        retry_policy: policy for each status query.
        cancel_token: cancellation signal for this run.
        on_status: receives human-readable progress strings.
        sleep: optional sleep override; cancellation is still checked after it.
    """

    def __init__(
        self,
        fetch_status: Callable[[Any], Awaitable[Any]],
        settings: PollSettings,
        retry_policy: RetryPolicy,
        cancel_token: Optional[CancelToken] = None,
        on_status: Optional[Callable[[str], None]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.fetch_status = fetch_status
        self.settings = settings
        self.retry_policy = retry_policy
        self.cancel_token = cancel_token or CancelToken()
        self.on_status = on_status
        self._sleep_override = sleep
        self.queries = 0

    async def _sleep(self, seconds: float) -> None:
        if self._sleep_override is None:
            await self.cancel_token.sleep(seconds)
            return
        self.cancel_token.raise_if_cancelled()
        await self._sleep_override(seconds)
        self.cancel_token.raise_if_cancelled()

    def _notify(self, message: str) -> None:
        if self.on_status is not None:
            self.on_status(message)

    async def _query(self, operation: Any, label: str) -> Any:
        self.queries += 1
        return await call_with_retry(
            lambda: self.fetch_status(operation),
            self.retry_policy,
            on_wait=self.on_status,
            sleep=self._sleep,
            label=f"{label} status",
        )

    async def _final_check(self, operation: Any, label: str) -> None:
        try:
            await asyncio.wait_for(
                self.fetch_status(operation),
                timeout=self.settings.final_check_timeout_seconds,
            )
            logger.info(f"Final status check before abandoning {label}")
        except Exception as exc:
            logger.warning(
                f"Final status check failed for {label}",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )

    @staticmethod
    def _resolve(status: OperationStatus, label: str) -> VideoAsset:
        if status.error:
            raise OperationFailedError(f"{label} reported an error: {status.error}")
        if status.video is None:
            raise OperationFailedError(f"{label} finished without a video")
        return VideoAsset(uri=status.uri, source=status.video, stage_label=label)

    async def poll(self, operation: Any, label: str = "video generation") -> VideoAsset:
        status = read_operation(operation)
        if status.done or status.error:
            return self._resolve(status, label)

        max_polls = self.settings.max_polls
        try:
            await self._sleep(self.settings.cold_start_seconds)
            for attempt in range(1, max_polls + 1):
                operation = await self._query(operation, label)
                status = read_operation(operation)
                # An error can arrive before the done flag is set
                if status.done or status.error:
                    logger.info(f"{label} finished", extra={"queries": attempt})
                    return self._resolve(status, label)

                self._notify(f"{label}: rendering (check {attempt}/{max_polls})")
                logger.debug(f"{label} still pending", extra={"attempt": attempt, "max_polls": max_polls})
                if attempt < max_polls:
                    await self._sleep(self.settings.interval_seconds)
        except (PipelineCancelledError, asyncio.CancelledError):
            await self._final_check(operation, label)
            raise

        raise OperationTimeoutError(
            f"{label} still pending after {max_polls} status checks "
            f"(~{int(self.settings.max_wait_seconds)}s)"
        )
