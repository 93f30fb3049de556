"""
Unit tests for the HTTP storage gateway.
"""

import json

import httpx
import pytest

from journey_builder.services.persistence import HttpJourneyGateway, JourneyGatewayError


def _gateway(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://storage.test")
    return HttpJourneyGateway(base_url="http://storage.test", client=client)


class TestHttpJourneyGateway:
    @pytest.mark.asyncio
    async def test_load_journey(self, sample_journey):
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path))
            return httpx.Response(200, json={"journey": sample_journey})

        gateway = _gateway(handler)
        journey = await gateway.load_journey("journey_1")

        assert journey["id"] == "journey_1"
        assert seen == [("GET", "/api/journeys/journey_1")]

    @pytest.mark.asyncio
    async def test_load_without_journey_is_error(self):
        gateway = _gateway(lambda request: httpx.Response(200, json={"ok": True}))

        with pytest.raises(JourneyGatewayError) as exc_info:
            await gateway.load_journey("journey_1")

        assert exc_info.value.operation == "load_journey"

    @pytest.mark.asyncio
    async def test_save_sends_payload(self):
        captured = {}

        def handler(request):
            captured["method"] = request.method
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True})

        gateway = _gateway(handler)
        await gateway.save_journey("journey_1", {"name": "Welcome", "nodes": [], "edges": []})

        assert captured == {"method": "PUT", "body": {"name": "Welcome", "nodes": [], "edges": []}}

    @pytest.mark.asyncio
    async def test_error_status_carries_body(self):
        validation = {"errors": [{"message": "No trigger"}], "warnings": []}

        def handler(request):
            return httpx.Response(422, json={"error": "Journey has errors", "validation": validation})

        gateway = _gateway(handler)
        with pytest.raises(JourneyGatewayError) as exc_info:
            await gateway.set_status("journey_1", "ACTIVE")

        error = exc_info.value
        assert error.message == "Journey has errors"
        assert error.status_code == 422
        assert error.payload["validation"] == validation

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        gateway = _gateway(handler)
        with pytest.raises(JourneyGatewayError) as exc_info:
            await gateway.validate("journey_1")

        assert exc_info.value.status_code is None
        assert "connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_test_mode_endpoints(self):
        requests = []

        def handler(request):
            requests.append((request.method, request.url.path))
            if request.url.path.endswith("/test-users") and request.method == "GET":
                return httpx.Response(200, json={"testUsers": [{"id": "tu_1"}, "junk"]})
            if request.url.path.endswith("/test-executions"):
                return httpx.Response(200, json={"progress": [{"testUserId": "tu_1"}], "logs": None})
            return httpx.Response(204)

        gateway = _gateway(handler)

        assert await gateway.list_test_users("j1") == [{"id": "tu_1"}]
        assert await gateway.fetch_test_executions("j1") == {"progress": [{"testUserId": "tu_1"}], "logs": []}
        await gateway.remove_test_user("j1", "tu_1")
        await gateway.clear_test_executions("j1")

        assert requests[2:] == [
            ("DELETE", "/api/journeys/j1/test-users/tu_1"),
            ("POST", "/api/journeys/j1/test-executions/clear"),
        ]

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        gateway = HttpJourneyGateway(base_url="http://storage.test", client=client)

        await gateway.close()

        assert client.is_closed is False
        await client.aclose()
