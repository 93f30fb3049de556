"""
Test-mode polling of test executions and test users.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from journey_builder.core.config import get_settings
from journey_builder.core.logging import JourneyLogger, get_logger
from journey_builder.services.persistence.gateway import JourneyGateway, JourneyGatewayError

logger = get_logger(__name__)

RESOURCE_EXECUTIONS = "executions"
RESOURCE_USERS = "users"


class TestModePoller:
    """
    Periodically refresh test-mode data while test mode is on.

    Each resource keeps its own consecutive-failure counter. Failures below
    ``max_retries`` are silent; reaching it reports the failure once through
    ``on_halt`` and stops polling until ``start`` is called again. Any
    success resets that resource's counter.
    """

    __test__ = False

    def __init__(
        self,
        journey_id: str,
        gateway: JourneyGateway,
        interval: Optional[float] = None,
        max_retries: Optional[int] = None,
        on_executions: Optional[Callable[[Dict[str, Any]], None]] = None,
        on_users: Optional[Callable[[List[Dict[str, Any]]], None]] = None,
        on_halt: Optional[Callable[[str, str], None]] = None,
    ):
        config = get_settings().lifecycle_config
        self.journey_id = journey_id
        self.gateway = gateway
        self.interval = interval if interval is not None else config["poll_interval"]
        self.max_retries = max_retries if max_retries is not None else config["max_retries"]
        self.on_executions = on_executions
        self.on_users = on_users
        self.on_halt = on_halt
        self.failures: Dict[str, int] = {RESOURCE_EXECUTIONS: 0, RESOURCE_USERS: 0}
        self.halted = False
        self._task: Optional[asyncio.Task] = None
        self._journey_logger = JourneyLogger()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling with fresh failure counters."""
        if self.running:
            return
        self.failures = {RESOURCE_EXECUTIONS: 0, RESOURCE_USERS: 0}
        self.halted = False
        self._task = asyncio.ensure_future(self._loop())
        logger.info("Test mode polling started", extra={"journey_id": self.journey_id, "interval": self.interval})

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Test mode polling stopped", extra={"journey_id": self.journey_id})

    async def _loop(self) -> None:
        while True:
            await self.poll_once()
            if self.halted:
                return
            await asyncio.sleep(self.interval)

    async def poll_once(self) -> bool:
        """Fetch both resources once. True when both succeeded."""
        executions_ok = await self._poll(RESOURCE_EXECUTIONS, self._fetch_executions)
        users_ok = await self._poll(RESOURCE_USERS, self._fetch_users)
        return executions_ok and users_ok

    async def _fetch_executions(self) -> None:
        data = await self.gateway.fetch_test_executions(self.journey_id)
        if self.on_executions:
            self.on_executions(data)

    async def _fetch_users(self) -> None:
        users = await self.gateway.list_test_users(self.journey_id)
        if self.on_users:
            self.on_users(users)

    async def _poll(self, resource: str, fetch: Callable[[], Awaitable[None]]) -> bool:
        try:
            await fetch()
        except JourneyGatewayError as e:
            self.failures[resource] += 1
            attempt = self.failures[resource]
            limit_reached = attempt >= self.max_retries
            self._journey_logger.log_poll_failure(self.journey_id, resource, attempt, e.message, limit_reached)
            if limit_reached and not self.halted:
                self.halted = True
                if self.on_halt:
                    self.on_halt(resource, e.message)
            return False
        self.failures[resource] = 0
        return True
