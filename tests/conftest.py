"""
Shared fixtures for journey builder tests.
"""

from copy import deepcopy
from typing import Any, Dict, List, Optional

import pytest

from journey_builder.services.persistence.gateway import JourneyGateway, JourneyGatewayError


class FakeJourneyGateway(JourneyGateway):
    """In-memory storage service that records every call."""

    def __init__(self, journey: Optional[Dict[str, Any]] = None):
        self.journey = deepcopy(journey) if journey else None
        self.calls: List[tuple] = []
        self.saved: List[Dict[str, Any]] = []
        self.versions: List[str] = []
        self.statuses: List[str] = []
        self.validation: Dict[str, Any] = {"errors": [], "warnings": [], "evaluatedAt": "2024-05-01T10:00:00Z"}
        self.test_users: List[Dict[str, Any]] = []
        self.executions: Dict[str, Any] = {"progress": [], "logs": []}
        self.fail: Dict[str, int] = {}

    def fail_next(self, operation: str, times: int = 1) -> None:
        self.fail[operation] = times

    def _record(self, operation: str, *args) -> None:
        self.calls.append((operation, *args))
        remaining = self.fail.get(operation, 0)
        if remaining:
            self.fail[operation] = remaining - 1
            raise JourneyGatewayError(f"{operation} unavailable", operation=operation, status_code=503)

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    async def load_journey(self, journey_id):
        self._record("load_journey", journey_id)
        if self.journey is None:
            raise JourneyGatewayError("Journey not found", operation="load_journey", status_code=404)
        return deepcopy(self.journey)

    async def save_journey(self, journey_id, payload):
        self._record("save_journey", journey_id)
        self.saved.append(deepcopy(payload))
        return {"success": True}

    async def create_version(self, journey_id, reason):
        self._record("create_version", journey_id, reason)
        self.versions.append(reason)
        return {"id": f"version_{len(self.versions)}"}

    async def validate(self, journey_id):
        self._record("validate", journey_id)
        return deepcopy(self.validation)

    async def set_status(self, journey_id, status):
        self._record("set_status", journey_id, status)
        self.statuses.append(status)
        return {"status": status}

    async def list_test_users(self, journey_id):
        self._record("list_test_users", journey_id)
        return deepcopy(self.test_users)

    async def add_test_user(self, journey_id, user):
        self._record("add_test_user", journey_id)
        created = {"id": f"tu_{len(self.test_users) + 1}", **user}
        self.test_users.append(created)
        return created

    async def remove_test_user(self, journey_id, test_user_id):
        self._record("remove_test_user", journey_id, test_user_id)
        self.test_users = [user for user in self.test_users if user["id"] != test_user_id]

    async def clear_test_users(self, journey_id):
        self._record("clear_test_users", journey_id)
        self.test_users = []

    async def trigger_test_user(self, journey_id, test_user_id):
        self._record("trigger_test_user", journey_id, test_user_id)
        return {"executionId": "exec_1"}

    async def fetch_test_executions(self, journey_id):
        self._record("fetch_test_executions", journey_id)
        return deepcopy(self.executions)

    async def clear_test_executions(self, journey_id):
        self._record("clear_test_executions", journey_id)
        self.executions = {"progress": [], "logs": []}


@pytest.fixture
def sample_journey() -> Dict[str, Any]:
    """Stored journey covering every node type."""
    return {
        "id": "journey_1",
        "name": "Welcome series",
        "status": "DRAFT",
        "settings": {"timezone": "Asia/Kolkata", "testMode": False},
        "config": {"reEntryRules": {"allow": False, "cooldownDays": 0}, "maxEnrollments": None, "timezone": "UTC"},
        "stats": {"totalEnrollments": 10, "activeEnrollments": 4, "completedEnrollments": 6, "goalConversionRate": 0.5},
        "nodes": [
            {
                "id": "trigger_1",
                "type": "trigger",
                "subtype": "segment_joined",
                "name": "New subscribers",
                "position": {"x": 0, "y": 0},
                "trigger": {"type": "segment", "segmentId": "seg_1"},
                "data": {"triggerType": "segment_joined", "segmentId": "seg_1"},
            },
            {
                "id": "wait_1",
                "type": "delay",
                "name": "Wait a day",
                "position": {"x": 0, "y": 120},
                "delay": {"unit": "days", "value": 1},
            },
            {
                "id": "decision_1",
                "type": "condition",
                "subtype": "if_else",
                "name": "Purchased?",
                "position": {"x": 0, "y": 240},
                "condition": {
                    "kind": "if_else",
                    "args": {
                        "join": "all",
                        "conditions": [{"field": "orders_count", "operator": "gt", "value": 0}],
                        "trueLabel": "Converted",
                        "falseLabel": "Not yet",
                    },
                },
            },
            {
                "id": "action_1",
                "type": "action",
                "subtype": "send_whatsapp",
                "name": "Thank you",
                "position": {"x": -120, "y": 360},
                "action": {"kind": "whatsapp_template", "templateName": "thanks", "language": "en"},
            },
            {
                "id": "goal_1",
                "type": "goal",
                "name": "Purchase",
                "position": {"x": 120, "y": 360},
                "goal": {
                    "description": "Made a purchase",
                    "config": {"goalType": "shopify_event", "goalName": "Purchase", "eventName": "order_placed"},
                },
            },
        ],
        "edges": [
            {"id": "e1", "source": "trigger_1", "target": "wait_1"},
            {"id": "e2", "source": "wait_1", "target": "decision_1"},
            {"id": "e3", "source": "decision_1", "target": "action_1", "sourceHandle": "yes"},
            {"id": "e4", "source": "decision_1", "target": "goal_1", "sourceHandle": "no"},
        ],
        "createdAt": "2024-05-01T09:00:00+00:00",
        "updatedAt": "2024-05-01T09:30:00+00:00",
    }


@pytest.fixture
def experiment_config() -> Dict[str, Any]:
    return {
        "experimentName": "Discount test",
        "variants": [
            {"id": "control", "name": "Control", "trafficAllocation": 50, "isControl": True},
            {"id": "variant_b", "name": "Ten percent off", "trafficAllocation": 50},
        ],
        "goals": [{"id": "g1", "name": "Purchases", "type": "conversion"}],
        "primaryGoalId": "g1",
    }


@pytest.fixture
def fake_gateway(sample_journey) -> FakeJourneyGateway:
    return FakeJourneyGateway(sample_journey)


@pytest.fixture
def make_gateway():
    """Factory for gateways holding a custom stored journey."""
    return FakeJourneyGateway
