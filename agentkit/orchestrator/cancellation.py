"""Cooperative cancellation for orchestration runs."""

from __future__ import annotations

import asyncio


class CancelToken:
    """
    An explicit cancel signal passed into a run.

    The orchestrator and wire adapters poll ``cancelled`` at their suspension
    points; once set, the run stops emitting events and the stream ends
    without raising.  Setting it is idempotent.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()
