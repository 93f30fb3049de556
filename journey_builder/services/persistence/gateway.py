"""
Journey storage gateway.

The storage service owns journeys, versions, validation and test-mode data.
``JourneyGateway`` is the request/response contract the lifecycle manager
depends on; ``HttpJourneyGateway`` implements it over HTTP with httpx.
Transport failures and non-2xx responses surface as ``JourneyGatewayError``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from journey_builder.core.config import get_settings
from journey_builder.core.logging import get_logger
from journey_builder.utils.constants import LOG_CONTEXT_JOURNEY_ID

logger = get_logger(__name__)


class JourneyGatewayError(Exception):
    """Raised when the storage service cannot be reached or rejects a request."""

    def __init__(
        self,
        message: str,
        operation: str = "request",
        status_code: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.operation = operation
        self.status_code = status_code
        self.payload = payload or {}
        super().__init__(self.message)


class JourneyGateway(ABC):
    """Contract between the lifecycle manager and the storage service."""

    @abstractmethod
    async def load_journey(self, journey_id: str) -> Dict[str, Any]:
        """Raw stored journey JSON."""

    @abstractmethod
    async def save_journey(self, journey_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the journey's name, status, settings, nodes and edges."""

    @abstractmethod
    async def create_version(self, journey_id: str, reason: str) -> Dict[str, Any]:
        """Record a version snapshot of the stored journey."""

    @abstractmethod
    async def validate(self, journey_id: str) -> Dict[str, Any]:
        """``{errors, warnings, evaluatedAt}`` for the stored journey."""

    @abstractmethod
    async def set_status(self, journey_id: str, status: str) -> Dict[str, Any]:
        """Change the journey status; the response may carry ``validation``."""

    @abstractmethod
    async def list_test_users(self, journey_id: str) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def add_test_user(self, journey_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def remove_test_user(self, journey_id: str, test_user_id: str) -> None:
        ...

    @abstractmethod
    async def clear_test_users(self, journey_id: str) -> None:
        ...

    @abstractmethod
    async def trigger_test_user(self, journey_id: str, test_user_id: str) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def fetch_test_executions(self, journey_id: str) -> Dict[str, Any]:
        """``{progress, logs}`` for the journey's test users."""

    @abstractmethod
    async def clear_test_executions(self, journey_id: str) -> None:
        ...

    async def close(self) -> None:
        """Release transport resources."""


class HttpJourneyGateway(JourneyGateway):
    """
    Storage gateway speaking to ``/api/journeys/{id}[...]``.

    Args:
        base_url: Storage service base URL, defaults to ``JOURNEY_API_BASE_URL``
        timeout: Request timeout in seconds
        token: Optional bearer token
        client: Pre-built ``httpx.AsyncClient``, mainly for tests
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        config = get_settings().gateway_config
        self.base_url = (base_url or config["base_url"]).rstrip("/")
        self.timeout = timeout if timeout is not None else config["timeout"]
        token = token if token is not None else config["token"]

        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._owns_client = client is None
        self.http_client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=headers,
        )

    def _path(self, journey_id: str, suffix: str = "") -> str:
        return f"/api/journeys/{journey_id}{suffix}"

    async def _request(
        self,
        operation: str,
        journey_id: str,
        method: str,
        suffix: str = "",
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        path = self._path(journey_id, suffix)
        try:
            response = await self.http_client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning(
                f"Storage request failed: {operation}",
                extra={LOG_CONTEXT_JOURNEY_ID: journey_id, "operation": operation, "error": str(e)},
            )
            raise JourneyGatewayError(f"{operation} failed: {e}", operation=operation) from e

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}

        if response.is_error:
            message = body.get("error") or f"{operation} failed (status {response.status_code})"
            logger.warning(
                f"Storage service rejected {operation}",
                extra={
                    LOG_CONTEXT_JOURNEY_ID: journey_id,
                    "operation": operation,
                    "status_code": response.status_code,
                },
            )
            raise JourneyGatewayError(
                str(message), operation=operation, status_code=response.status_code, payload=body
            )
        return body

    async def load_journey(self, journey_id: str) -> Dict[str, Any]:
        body = await self._request("load_journey", journey_id, "GET")
        journey = body.get("journey")
        if not isinstance(journey, dict):
            raise JourneyGatewayError("Journey payload missing.", operation="load_journey", payload=body)
        return journey

    async def save_journey(self, journey_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("save_journey", journey_id, "PUT", json=payload)

    async def create_version(self, journey_id: str, reason: str) -> Dict[str, Any]:
        return await self._request("create_version", journey_id, "POST", "/versions", json={"reason": reason})

    async def validate(self, journey_id: str) -> Dict[str, Any]:
        return await self._request("validate", journey_id, "GET", "/validate")

    async def set_status(self, journey_id: str, status: str) -> Dict[str, Any]:
        return await self._request("set_status", journey_id, "POST", "/activate", json={"status": status})

    async def list_test_users(self, journey_id: str) -> List[Dict[str, Any]]:
        body = await self._request("list_test_users", journey_id, "GET", "/test-users")
        users = body.get("testUsers")
        return [user for user in users if isinstance(user, dict)] if isinstance(users, list) else []

    async def add_test_user(self, journey_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("add_test_user", journey_id, "POST", "/test-users", json=user)

    async def remove_test_user(self, journey_id: str, test_user_id: str) -> None:
        await self._request("remove_test_user", journey_id, "DELETE", f"/test-users/{test_user_id}")

    async def clear_test_users(self, journey_id: str) -> None:
        await self._request("clear_test_users", journey_id, "DELETE", "/test-users")

    async def trigger_test_user(self, journey_id: str, test_user_id: str) -> Dict[str, Any]:
        return await self._request(
            "trigger_test_user", journey_id, "POST", "/test-trigger", json={"testUserId": test_user_id}
        )

    async def fetch_test_executions(self, journey_id: str) -> Dict[str, Any]:
        body = await self._request("fetch_test_executions", journey_id, "GET", "/test-executions")
        return {
            "progress": body.get("progress") if isinstance(body.get("progress"), list) else [],
            "logs": body.get("logs") if isinstance(body.get("logs"), list) else [],
        }

    async def clear_test_executions(self, journey_id: str) -> None:
        await self._request("clear_test_executions", journey_id, "POST", "/test-executions/clear")

    async def close(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()
