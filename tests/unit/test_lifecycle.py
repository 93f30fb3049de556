"""
Unit tests for the journey persistence lifecycle.

The storage service is replaced by an in-memory gateway that records every
call; timings are shortened so debounced autosaves fire within the test.
"""

import asyncio

import pytest

from journey_builder.models.journey import JourneySettings
from journey_builder.services.persistence import (
    InMemoryJourneyCache,
    JourneyGatewayError,
    JourneyPersistenceManager,
    SaveState,
    draft_key,
    journey_key,
    stats_key,
)
from journey_builder.utils.constants import SNAPSHOT_BEFORE_ACTIVATION, SNAPSHOT_NODE_REMOVED

DEBOUNCE = 0.01
SETTLE = 0.05


@pytest.fixture
def notes():
    return []


@pytest.fixture
def make_manager(fake_gateway, notes):
    """Factory for managers wired to the recording gateway."""
    def factory(gateway=None, cache=None):
        return JourneyPersistenceManager(
            "journey_1",
            gateway or fake_gateway,
            cache=cache,
            notifier=lambda level, message: notes.append((level, message)),
            autosave_debounce=DEBOUNCE,
            poll_interval=0.005,
            max_retries=3,
        )
    return factory


class TestLoad:
    """Loading from the storage service and the local cache."""

    @pytest.mark.asyncio
    async def test_load_from_server(self, make_manager):
        cache = InMemoryJourneyCache()
        manager = make_manager(cache=cache)

        journey = await manager.load()

        assert journey.id == "journey_1"
        assert manager.name == "Welcome series"
        assert manager.state == SaveState.IDLE
        assert len(manager.graph.nodes) == 5
        assert (await cache.get(journey_key("journey_1")))["name"] == "Welcome series"
        assert (await cache.get(stats_key("journey_1")))["totalEnrollments"] == 10

    @pytest.mark.asyncio
    async def test_falls_back_to_cached_journey(self, make_manager, make_gateway, sample_journey, notes):
        cache = InMemoryJourneyCache()
        await cache.set(journey_key("journey_1"), sample_journey)
        manager = make_manager(gateway=make_gateway(None), cache=cache)

        journey = await manager.load()

        assert journey.name == "Welcome series"
        assert len(manager.graph.nodes) == 5
        assert manager.last_error == "Journey not found"
        assert notes == [("error", "Unable to load journey: Journey not found")]

    @pytest.mark.asyncio
    async def test_newer_draft_is_kept_and_saved(self, make_manager, fake_gateway):
        cache = InMemoryJourneyCache()
        await cache.set(draft_key("journey_1"), {
            "id": "journey_1",
            "name": "Draft name",
            "status": "DRAFT",
            "nodes": [{"id": "a", "data": {"variant": "action", "label": "Only node"}}],
            "edges": [],
            "updatedAt": 4102444800000,
        })
        manager = make_manager(cache=cache)

        await manager.load()

        assert manager.name == "Draft name"
        assert manager.state == SaveState.DIRTY
        assert manager.autosave_pending is True

        await manager.flush()

        assert fake_gateway.saved[-1]["name"] == "Draft name"
        assert [node["id"] for node in fake_gateway.saved[-1]["nodes"]] == ["a"]
        assert manager.state == SaveState.IDLE

    @pytest.mark.asyncio
    async def test_older_draft_is_replaced(self, make_manager):
        cache = InMemoryJourneyCache()
        await cache.set(draft_key("journey_1"), {"name": "Stale", "nodes": [], "edges": [], "updatedAt": 0})
        manager = make_manager(cache=cache)

        await manager.load()

        assert manager.name == "Welcome series"
        assert manager.state == SaveState.IDLE

    @pytest.mark.asyncio
    async def test_newer_load_supersedes_older(self, make_manager, make_gateway, sample_journey):
        class SlowFirstLoadGateway(make_gateway):
            delays = [0.2, 0]

            async def load_journey(self, journey_id):
                await asyncio.sleep(self.delays.pop(0))
                return await super().load_journey(journey_id)

        manager = make_manager(gateway=SlowFirstLoadGateway(sample_journey))

        first = asyncio.ensure_future(manager.load())
        await asyncio.sleep(0.01)
        second = await manager.load()

        assert await first is None
        assert second.id == "journey_1"


class TestAutosave:
    """Debounced, idempotent autosave."""

    @pytest.mark.asyncio
    async def test_repeated_change_saves_once(self, make_manager, fake_gateway):
        manager = make_manager()
        await manager.load()

        await manager.rename("Renamed")
        await manager.rename("Renamed")
        await asyncio.sleep(SETTLE)

        assert fake_gateway.count("save_journey") == 1
        assert fake_gateway.saved[0]["name"] == "Renamed"
        assert set(fake_gateway.saved[0]) == {"name", "status", "settings", "nodes", "edges"}
        assert manager.state == SaveState.IDLE
        assert manager.last_saved_at is not None

    @pytest.mark.asyncio
    async def test_unchanged_payload_is_not_sent(self, make_manager, fake_gateway):
        manager = make_manager()
        await manager.load()

        await manager.replace_graph(manager.graph)
        await asyncio.sleep(SETTLE)

        assert fake_gateway.count("save_journey") == 0
        assert manager.state == SaveState.IDLE

    @pytest.mark.asyncio
    async def test_mutation_writes_draft(self, make_manager):
        cache = InMemoryJourneyCache()
        manager = make_manager(cache=cache)
        await manager.load()

        await manager.connect("goal_1", "trigger_1")
        draft = await cache.get(draft_key("journey_1"))

        assert manager.state == SaveState.DIRTY
        assert any(edge["source"] == "goal_1" for edge in draft["edges"])
        assert draft["updatedAt"] > 0
        await manager.close()

    @pytest.mark.asyncio
    async def test_save_failure_then_recovery(self, make_manager, fake_gateway, notes):
        manager = make_manager()
        await manager.load()
        fake_gateway.fail_next("save_journey")

        await manager.rename("Renamed")
        await manager.flush()

        assert manager.state == SaveState.SAVE_FAILED
        assert manager.last_error == "save_journey unavailable"
        assert notes[-1] == ("error", "Unable to save journey: save_journey unavailable")

        await manager.rename("Renamed")
        await manager.flush()

        assert fake_gateway.count("save_journey") == 2
        assert manager.state == SaveState.IDLE
        assert manager.last_error is None

    @pytest.mark.asyncio
    async def test_manual_save_always_sends(self, make_manager, fake_gateway):
        manager = make_manager()
        await manager.load()

        assert await manager.save() is True
        assert fake_gateway.count("save_journey") == 1

    @pytest.mark.asyncio
    async def test_close_flushes_pending_autosave(self, make_manager, fake_gateway):
        manager = make_manager()
        await manager.load()

        await manager.update_settings(JourneySettings(timezone="Europe/Berlin"))
        await manager.close()

        assert fake_gateway.saved[-1]["settings"]["timezone"] == "Europe/Berlin"


class TestEditing:
    @pytest.mark.asyncio
    async def test_delete_node_takes_silent_snapshot(self, make_manager, fake_gateway, notes):
        manager = make_manager()
        await manager.load()

        await manager.delete_node("wait_1")

        assert fake_gateway.versions == [SNAPSHOT_NODE_REMOVED]
        assert manager.graph.node_by_id("wait_1") is None
        assert [edge.id for edge in manager.graph.edges] == ["e3", "e4"]
        assert notes == []
        await manager.close()

    @pytest.mark.asyncio
    async def test_delete_unknown_node_does_nothing(self, make_manager, fake_gateway):
        manager = make_manager()
        await manager.load()

        await manager.delete_node("ghost")

        assert fake_gateway.versions == []
        assert manager.state == SaveState.IDLE

    @pytest.mark.asyncio
    async def test_snapshot_failure_does_not_block_delete(self, make_manager, fake_gateway):
        manager = make_manager()
        await manager.load()
        fake_gateway.fail_next("create_version")

        await manager.delete_node("wait_1")

        assert manager.graph.node_by_id("wait_1") is None
        await manager.close()

    @pytest.mark.asyncio
    async def test_duplicate_node(self, make_manager):
        manager = make_manager()
        await manager.load()

        new_id = await manager.duplicate_node("action_1")

        assert manager.graph.node_by_id(new_id).data.label == "Thank you"
        assert await manager.duplicate_node("ghost") is None
        await manager.close()

    @pytest.mark.asyncio
    async def test_manual_snapshot_notifies(self, make_manager, fake_gateway, notes):
        manager = make_manager()
        await manager.load()

        assert await manager.create_snapshot("Before launch") is True
        assert notes == [("success", "Snapshot created")]


class TestActivation:
    """Validation-gated status changes."""

    @pytest.mark.asyncio
    async def test_errors_block_activation(self, make_manager, fake_gateway, notes):
        fake_gateway.validation = {"errors": [{"nodeId": "action_1", "message": "Missing template"}], "warnings": []}
        manager = make_manager()
        await manager.load()

        assert await manager.request_activation() is False
        assert fake_gateway.statuses == []
        assert manager.validation.status == "fail"
        assert list(manager.validation.by_node) == ["action_1"]
        assert notes[-1][0] == "error"

    @pytest.mark.asyncio
    async def test_override_activates_with_snapshot(self, make_manager, fake_gateway):
        fake_gateway.validation = {"errors": [{"message": "No goal"}], "warnings": []}
        manager = make_manager()
        await manager.load()

        assert await manager.request_activation(override=True) is True
        assert fake_gateway.statuses == ["ACTIVE"]
        assert fake_gateway.versions == [SNAPSHOT_BEFORE_ACTIVATION]
        assert manager.status == "ACTIVE"
        assert manager.journey.status == "ACTIVE"

    @pytest.mark.asyncio
    async def test_activation_flushes_pending_autosave(self, make_manager, fake_gateway):
        manager = make_manager()
        await manager.load()
        await manager.rename("Launch version")

        assert await manager.request_activation() is True

        save_index = next(index for index, call in enumerate(fake_gateway.calls) if call[0] == "save_journey")
        status_index = next(index for index, call in enumerate(fake_gateway.calls) if call[0] == "set_status")
        assert save_index < status_index

    @pytest.mark.asyncio
    async def test_server_rejection_applies_validation(self, make_manager, make_gateway, sample_journey, notes):
        class RejectingGateway(make_gateway):
            async def set_status(self, journey_id, status):
                raise JourneyGatewayError(
                    "Journey has errors",
                    operation="set_status",
                    status_code=422,
                    payload={"validation": {"errors": [{"nodeId": "goal_1", "message": "Unreachable"}]}},
                )

        manager = make_manager(gateway=RejectingGateway(sample_journey))
        await manager.load()

        assert await manager.request_activation() is False
        assert manager.validation.status == "fail"
        assert manager.status == "DRAFT"
        assert notes[-1] == ("error", "Journey has errors")

    @pytest.mark.asyncio
    async def test_pause(self, make_manager, fake_gateway):
        manager = make_manager()
        await manager.load()

        assert await manager.pause() is True
        assert manager.status == "PAUSED"


class TestTestMode:
    @pytest.mark.asyncio
    async def test_toggle_starts_and_stops_polling(self, make_manager, fake_gateway):
        fake_gateway.test_users = [{"id": "tu_1", "phone": "+15550100"}]
        manager = make_manager()
        await manager.load()

        await manager.set_test_mode(True)
        await asyncio.sleep(0.02)

        assert manager.settings.testMode is True
        assert manager.poller.running is True
        assert manager.test_users == [{"id": "tu_1", "phone": "+15550100"}]

        await manager.set_test_mode(False)

        assert manager.poller.running is False
        await manager.close()

    @pytest.mark.asyncio
    async def test_add_test_user_refreshes(self, make_manager, fake_gateway, notes):
        manager = make_manager()
        await manager.load()

        assert await manager.add_test_user({"phone": "+15550100"}) is True
        assert manager.test_users == [{"id": "tu_1", "phone": "+15550100"}]
        assert ("success", "Test user added") in notes

    @pytest.mark.asyncio
    async def test_failed_test_call_notifies(self, make_manager, fake_gateway, notes):
        manager = make_manager()
        await manager.load()
        fake_gateway.fail_next("trigger_test_user")

        assert await manager.trigger_test_user("tu_1") is False
        assert notes[-1] == ("error", "Unable to trigger journey: trigger_test_user unavailable")
        assert fake_gateway.count("fetch_test_executions") == 0

    @pytest.mark.asyncio
    async def test_poll_halt_is_reported(self, make_manager, fake_gateway, notes):
        fake_gateway.fail_next("fetch_test_executions", 10)
        manager = make_manager()
        await manager.load()

        await manager.set_test_mode(True)
        await asyncio.sleep(0.1)

        assert manager.poller.halted is True
        assert notes.count(("error", "Test mode executions unavailable: fetch_test_executions unavailable")) == 1
        await manager.close()
