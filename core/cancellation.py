"""
Cooperative cancellation token shared by the orchestrator and the retry loop.
"""

import asyncio
from typing import Awaitable, TypeVar

from .errors import RequestCancelled

T = TypeVar("T")


class CancellationToken:
    """
    One token per in-flight request.

    Cancelling is idempotent. ``run`` races an awaitable against the token so
    outstanding I/O is abandoned as soon as the user cancels.
    """

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self):
        self._event.set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise RequestCancelled("Request was cancelled")

    async def sleep(self, delay: float):
        """Sleep for ``delay`` seconds, waking early (and raising) on cancel."""
        self.raise_if_cancelled()
        if delay > 0:
            try:
                await asyncio.wait_for(self._event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
        self.raise_if_cancelled()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first; the loser is cancelled."""
        work = asyncio.ensure_future(awaitable)
        if self.cancelled:
            work.cancel()
            raise RequestCancelled("Request was cancelled")
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()

        if work.done():
            # A result that lands together with a cancel is discarded
            if self.cancelled:
                if not work.cancelled():
                    work.exception()
                raise RequestCancelled("Request was cancelled")
            return work.result()

        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        except Exception:
            # The response of a cancelled call is discarded, errors included
            pass
        raise RequestCancelled("Request was cancelled")
