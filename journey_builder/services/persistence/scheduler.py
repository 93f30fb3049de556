"""
Trailing-edge debounce for autosave.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from journey_builder.core.logging import get_logger

logger = get_logger(__name__)


class DebouncedScheduler:
    """
    Deliver only the last scheduled payload, ``delay`` seconds after the last
    call to ``schedule``.

    Only the waiting timer is ever cancelled; once delivery has started it
    runs to completion even if a newer payload is scheduled meanwhile.
    """

    def __init__(self, callback: Callable[[Any], Awaitable[Any]], delay: float):
        self._callback = callback
        self.delay = delay
        self._timer: Optional[asyncio.Task] = None
        self._payload: Any = None
        self._has_payload = False

    @property
    def pending(self) -> bool:
        return self._has_payload

    def schedule(self, payload: Any) -> None:
        self._payload = payload
        self._has_payload = True
        self._cancel_timer()
        self._timer = asyncio.ensure_future(self._wait_and_deliver())

    def cancel(self) -> None:
        """Drop the pending payload without delivering it."""
        self._cancel_timer()
        self._payload = None
        self._has_payload = False

    async def flush(self) -> None:
        """Deliver the pending payload now, if any."""
        self._cancel_timer()
        await self._deliver()

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _wait_and_deliver(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        await self._deliver()

    async def _deliver(self) -> None:
        if not self._has_payload:
            return
        payload = self._payload
        self._payload = None
        self._has_payload = False
        await self._callback(payload)
