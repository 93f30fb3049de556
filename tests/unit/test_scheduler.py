"""
Unit tests for the autosave debounce scheduler.
"""

import asyncio

import pytest

from journey_builder.services.persistence import DebouncedScheduler


class TestDebouncedScheduler:
    """Trailing-edge debounce semantics."""

    @pytest.mark.asyncio
    async def test_only_last_payload_delivered(self):
        delivered = []

        async def deliver(payload):
            delivered.append(payload)

        scheduler = DebouncedScheduler(deliver, 0.01)
        for payload in (1, 2, 3):
            scheduler.schedule(payload)

        assert scheduler.pending is True
        await asyncio.sleep(0.05)

        assert delivered == [3]
        assert scheduler.pending is False

    @pytest.mark.asyncio
    async def test_flush_delivers_immediately(self):
        delivered = []

        async def deliver(payload):
            delivered.append(payload)

        scheduler = DebouncedScheduler(deliver, 10)
        scheduler.schedule("draft")
        await scheduler.flush()

        assert delivered == ["draft"]
        await scheduler.flush()
        assert delivered == ["draft"]

    @pytest.mark.asyncio
    async def test_cancel_drops_payload(self):
        delivered = []

        async def deliver(payload):
            delivered.append(payload)

        scheduler = DebouncedScheduler(deliver, 0.01)
        scheduler.schedule("draft")
        scheduler.cancel()
        await asyncio.sleep(0.03)

        assert delivered == []
        assert scheduler.pending is False

    @pytest.mark.asyncio
    async def test_in_flight_delivery_is_not_cancelled(self):
        started = asyncio.Event()
        release = asyncio.Event()
        delivered = []

        async def deliver(payload):
            started.set()
            await release.wait()
            delivered.append(payload)

        scheduler = DebouncedScheduler(deliver, 0.001)
        scheduler.schedule("first")
        await asyncio.wait_for(started.wait(), 1)

        scheduler.schedule("second")
        release.set()
        await asyncio.sleep(0.05)

        assert delivered == ["first", "second"]
