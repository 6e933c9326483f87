"""
Cooperative cancellation for pipeline runs.

A ``CancelToken`` is shared by everything working on one run. Poll loops and
retry waits sleep through it, so cancelling wakes them immediately.
"""

import asyncio
from typing import Optional

from viralvibe.core.exceptions import PipelineCancelledError


class CancelToken:
    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled by user") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PipelineCancelledError(self.reason or "cancelled")

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled first.

        Raises:
            PipelineCancelledError: if the token is (or becomes) cancelled.
        """
        self.raise_if_cancelled()
        if seconds > 0:
            try:
                await asyncio.wait_for(self._event.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                return
        self.raise_if_cancelled()
