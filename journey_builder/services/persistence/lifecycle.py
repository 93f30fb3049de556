"""
Persistence lifecycle of one open journey.

The manager owns the editable graph, journey metadata and the last journey
known to be stored. Every mutation marks the journey dirty, writes the draft
cache and schedules a debounced autosave. Autosaves are skipped when the
serialized payload equals the last one sent successfully.

State machine::

    IDLE -> DIRTY -> SAVING -> IDLE
                     SAVING -> SAVE_FAILED -> DIRTY (next mutation)
"""

import asyncio
import logging
import json
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from journey_builder.core.config import get_settings
from journey_builder.core.logging import JourneyLogger, get_logger
from journey_builder.models.graph import GraphNode, JourneyGraph
from journey_builder.models.journey import Journey, JourneySettings, JourneyStatus
from journey_builder.services.mapping import (
    add_node,
    connect,
    delete_edge,
    delete_node,
    duplicate_node,
    normalize_journey,
    parse_graph,
    to_domain,
    to_graph,
    update_node,
)
from journey_builder.services.persistence.cache import (
    InMemoryJourneyCache,
    JourneyCache,
    draft_key,
    journey_key,
    stats_key,
)
from journey_builder.services.persistence.gateway import JourneyGateway, JourneyGatewayError
from journey_builder.services.persistence.poller import TestModePoller
from journey_builder.services.persistence.scheduler import DebouncedScheduler
from journey_builder.services.validation import ValidationSummary, can_activate, parse_validation
from journey_builder.utils.constants import LOG_CONTEXT_JOURNEY_ID, SNAPSHOT_BEFORE_ACTIVATION, SNAPSHOT_NODE_REMOVED

logger = get_logger(__name__)

Notifier = Callable[[str, str], None]


class SaveState(str, Enum):
    IDLE = "idle"
    DIRTY = "dirty"
    SAVING = "saving"
    SAVE_FAILED = "save_failed"


def _log_notifier(level: str, message: str) -> None:
    logger.log(logging.ERROR if level == "error" else logging.INFO, message, extra={"notification": level})


def serialize_payload(payload: Dict[str, Any]) -> str:
    """Canonical serialization used to detect unchanged saves."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


def _epoch_ms(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.timestamp() * 1000
    return None


class JourneyPersistenceManager:
    """
    Load, edit, autosave and activate a single journey.

    Args:
        journey_id: Journey being edited
        gateway: Storage service gateway
        cache: Local cache, in-memory by default
        notifier: ``(level, message)`` callback for user-facing notices
        autosave_debounce: Seconds of quiet before an autosave is sent
        poll_interval: Seconds between test-mode polls
        max_retries: Consecutive poll failures before polling halts
    """

    def __init__(
        self,
        journey_id: str,
        gateway: JourneyGateway,
        cache: Optional[JourneyCache] = None,
        notifier: Optional[Notifier] = None,
        autosave_debounce: Optional[float] = None,
        poll_interval: Optional[float] = None,
        max_retries: Optional[int] = None,
    ):
        config = get_settings().lifecycle_config
        self.journey_id = journey_id
        self.gateway = gateway
        self.cache = cache or InMemoryJourneyCache()
        self.notifier = notifier or _log_notifier

        self.state = SaveState.IDLE
        self.last_saved_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

        self._journey: Optional[Journey] = None
        self._graph = JourneyGraph()
        self._name = "Untitled journey"
        self._status = JourneyStatus.DRAFT.value
        self._settings = JourneySettings()
        self._validation: Optional[ValidationSummary] = None

        self._last_sent = ""
        self._revision = 0
        self._load_generation = 0
        self._load_task: Optional[asyncio.Task] = None
        self._save_lock = asyncio.Lock()

        self.test_users: List[Dict[str, Any]] = []
        self.test_progress: List[Any] = []
        self.test_logs: List[Any] = []

        debounce = autosave_debounce if autosave_debounce is not None else config["autosave_debounce"]
        self._scheduler = DebouncedScheduler(self._autosave, debounce)
        self.poller = TestModePoller(
            journey_id,
            gateway,
            interval=poll_interval,
            max_retries=max_retries,
            on_executions=self._apply_executions,
            on_users=self._apply_test_users,
            on_halt=self._report_poll_halt,
        )
        self._journey_logger = JourneyLogger()

    # Accessors
    @property
    def graph(self) -> JourneyGraph:
        return self._graph.model_copy(deep=True)

    @property
    def journey(self) -> Optional[Journey]:
        """Last journey known to be stored."""
        return self._journey.model_copy(deep=True) if self._journey else None

    @property
    def name(self) -> str:
        return self._name

    @property
    def status(self) -> str:
        return self._status

    @property
    def settings(self) -> JourneySettings:
        return self._settings.model_copy(deep=True)

    @property
    def validation(self) -> Optional[ValidationSummary]:
        return self._validation

    @property
    def autosave_pending(self) -> bool:
        return self._scheduler.pending

    # Payloads and caches
    def build_save_payload(self) -> Dict[str, Any]:
        nodes, edges = to_domain(self._graph.nodes, self._graph.edges)
        return {
            "name": self._name,
            "status": self._status,
            "settings": self._settings.model_dump(mode="json"),
            "nodes": [node.to_dict() for node in nodes],
            "edges": [edge.to_dict() for edge in edges],
        }

    def _draft_snapshot(self, updated_at: datetime) -> Dict[str, Any]:
        graph = self._graph.to_dict()
        return {
            "id": self.journey_id,
            "name": self._name,
            "status": self._status,
            "settings": self._settings.model_dump(mode="json"),
            "nodes": graph["nodes"],
            "edges": graph["edges"],
            "updatedAt": updated_at.timestamp() * 1000,
        }

    async def _write_draft(self) -> None:
        await self.cache.set(draft_key(self.journey_id), self._draft_snapshot(datetime.now(timezone.utc)))

    async def _write_journey_caches(self, journey: Journey) -> None:
        await self.cache.set(journey_key(self.journey_id), journey.to_dict())
        await self.cache.set(stats_key(self.journey_id), journey.stats.model_dump(mode="json"))

    # Loading
    def _apply_journey(self, journey: Journey, source: str) -> None:
        self._journey = journey
        self._graph = to_graph(journey)
        self._name = journey.name
        self._status = journey.status
        self._settings = journey.settings.model_copy(deep=True)
        self._journey_logger.log_load(self.journey_id, source, len(journey.nodes))

    def _apply_draft(self, draft: Dict[str, Any]) -> None:
        header = normalize_journey({
            "id": self.journey_id,
            "name": draft.get("name"),
            "status": draft.get("status"),
            "settings": draft.get("settings"),
        })
        self._graph = parse_graph(draft)
        self._name = header.name
        self._status = header.status
        self._settings = header.settings
        self._journey_logger.log_load(self.journey_id, "draft", len(self._graph.nodes))

    async def load(self) -> Optional[Journey]:
        """
        Load the journey: cached copies first, then the storage service.

        A newer ``load`` supersedes an in-flight one, whose result is then
        discarded and None returned. When the cached draft is newer than the
        stored journey the draft stays applied and is marked dirty.
        """
        self._load_generation += 1
        generation = self._load_generation

        cached = await self.cache.get(journey_key(self.journey_id))
        draft = await self.cache.get(draft_key(self.journey_id))
        if isinstance(cached, dict):
            self._apply_journey(normalize_journey(cached), "cache")
        if isinstance(draft, dict):
            self._apply_draft(draft)

        previous = self._load_task
        if previous is not None and not previous.done():
            previous.cancel()
        task = asyncio.ensure_future(self.gateway.load_journey(self.journey_id))
        self._load_task = task
        try:
            raw = await task
        except asyncio.CancelledError:
            if task.cancelled() and generation != self._load_generation:
                logger.debug("Journey load superseded", extra={LOG_CONTEXT_JOURNEY_ID: self.journey_id})
                return None
            raise
        except JourneyGatewayError as e:
            self.last_error = e.message
            self.notifier("error", f"Unable to load journey: {e.message}")
            return self.journey
        finally:
            if self._load_task is task:
                self._load_task = None

        if generation != self._load_generation:
            return None

        journey = normalize_journey(raw)
        draft_time = _epoch_ms(draft.get("updatedAt")) if isinstance(draft, dict) else None
        server_time = _epoch_ms(journey.updatedAt)
        await self._write_journey_caches(journey)

        if draft_time is not None and (server_time is None or draft_time > server_time):
            self._journey = journey
            logger.info(
                "Keeping unsaved draft newer than stored journey",
                extra={LOG_CONTEXT_JOURNEY_ID: self.journey_id},
            )
            self._mark_dirty()
            return self.journey

        self._apply_journey(journey, "server")
        self._last_sent = serialize_payload(self.build_save_payload())
        self.state = SaveState.IDLE
        return self.journey

    # Mutations
    def _mark_dirty(self) -> None:
        self._revision += 1
        self.state = SaveState.DIRTY
        self._scheduler.schedule(self.build_save_payload())

    async def _commit(self, graph: JourneyGraph) -> None:
        self._graph = graph
        self._mark_dirty()
        await self._write_draft()

    async def replace_graph(self, graph: JourneyGraph) -> None:
        await self._commit(graph.model_copy(deep=True))

    async def add_node(self, node: GraphNode) -> None:
        await self._commit(add_node(self._graph, node))

    async def update_node(self, node: GraphNode) -> None:
        await self._commit(update_node(self._graph, node))

    async def delete_node(self, node_id: str) -> None:
        """Remove a node and its edges, taking a silent snapshot first."""
        if self._graph.node_by_id(node_id) is None:
            return
        await self.create_snapshot(SNAPSHOT_NODE_REMOVED, silent=True)
        await self._commit(delete_node(self._graph, node_id))

    async def connect(self, source: str, target: str, source_handle: Optional[str] = None) -> None:
        await self._commit(connect(self._graph, source, target, source_handle))

    async def delete_edge(self, edge_id: str) -> None:
        await self._commit(delete_edge(self._graph, edge_id))

    async def duplicate_node(self, node_id: str) -> Optional[str]:
        graph, new_id = duplicate_node(self._graph, node_id)
        if new_id is not None:
            await self._commit(graph)
        return new_id

    async def rename(self, name: str) -> None:
        self._name = name
        self._mark_dirty()
        await self._write_draft()

    async def update_settings(self, settings: JourneySettings) -> None:
        self._settings = settings.model_copy(deep=True)
        self._mark_dirty()
        await self._write_draft()

    # Saving
    async def _autosave(self, payload: Dict[str, Any]) -> None:
        serialized = serialize_payload(payload)
        if serialized == self._last_sent:
            self._journey_logger.log_save_skipped(self.journey_id, "autosave")
            if self.state == SaveState.DIRTY:
                self.state = SaveState.IDLE
            return
        await self._send(payload, serialized, "autosave")

    async def save(self) -> bool:
        """Send the current journey now, even when unchanged."""
        self._scheduler.cancel()
        payload = self.build_save_payload()
        return await self._send(payload, serialize_payload(payload), "manual")

    async def flush(self) -> None:
        """Deliver a pending autosave immediately."""
        await self._scheduler.flush()

    async def _send(self, payload: Dict[str, Any], serialized: str, reason: str) -> bool:
        async with self._save_lock:
            revision = self._revision
            self.state = SaveState.SAVING
            started = time.perf_counter()
            try:
                await self.gateway.save_journey(self.journey_id, payload)
            except JourneyGatewayError as e:
                self._last_sent = ""
                self.last_error = e.message
                self.state = SaveState.SAVE_FAILED if revision == self._revision else SaveState.DIRTY
                self._journey_logger.log_save_error(self.journey_id, reason, e.message)
                self.notifier("error", f"Unable to save journey: {e.message}")
                return False

            updated_at = datetime.now(timezone.utc)
            self._last_sent = serialized
            self.last_saved_at = updated_at
            self.last_error = None
            self._journey = self._merge_saved(payload, updated_at)
            await self._write_journey_caches(self._journey)
            await self.cache.set(draft_key(self.journey_id), self._draft_snapshot(updated_at))
            if revision == self._revision:
                self.state = SaveState.IDLE

            self._journey_logger.log_save_success(
                self.journey_id,
                reason,
                (time.perf_counter() - started) * 1000,
                len(payload["nodes"]),
                len(payload["edges"]),
            )
            return True

    def _merge_saved(self, payload: Dict[str, Any], updated_at: datetime) -> Journey:
        if self._journey is not None:
            merged = self._journey.to_dict()
        else:
            merged = {"id": self.journey_id, "createdAt": updated_at.isoformat()}
        merged.update(payload)
        merged["id"] = self.journey_id
        merged["updatedAt"] = updated_at.isoformat()
        return normalize_journey(merged)

    # Snapshots, validation and status
    async def create_snapshot(self, reason: str, silent: bool = False) -> bool:
        try:
            await self.gateway.create_version(self.journey_id, reason)
        except JourneyGatewayError as e:
            if silent:
                logger.warning(
                    "Snapshot failed",
                    extra={LOG_CONTEXT_JOURNEY_ID: self.journey_id, "reason": reason, "error": e.message},
                )
            else:
                self.notifier("error", f"Unable to create snapshot: {e.message}")
            return False
        if not silent:
            self.notifier("success", "Snapshot created")
        return True

    def _apply_validation(self, raw: Any) -> ValidationSummary:
        self._validation = ValidationSummary.from_response(parse_validation(raw))
        return self._validation

    async def run_validation(self) -> Optional[ValidationSummary]:
        try:
            raw = await self.gateway.validate(self.journey_id)
        except JourneyGatewayError as e:
            self.notifier("error", f"Unable to validate journey: {e.message}")
            return None
        return self._apply_validation(raw)

    async def request_activation(self, override: bool = False) -> bool:
        """
        Validate and activate. A failing validation blocks activation unless
        ``override`` is set; a snapshot is taken before the status changes.
        """
        summary = await self.run_validation()
        if summary is None:
            return False
        if not can_activate(summary.response, override):
            self.notifier("error", "Resolve validation errors before activating the journey")
            return False

        await self.flush()
        await self.create_snapshot(SNAPSHOT_BEFORE_ACTIVATION, silent=True)
        return await self._set_status(JourneyStatus.ACTIVE.value, "Journey activated")

    async def pause(self) -> bool:
        return await self._set_status(JourneyStatus.PAUSED.value, "Journey paused")

    async def _set_status(self, status: str, success_message: str) -> bool:
        try:
            body = await self.gateway.set_status(self.journey_id, status) or {}
        except JourneyGatewayError as e:
            if isinstance(e.payload.get("validation"), dict):
                self._apply_validation(e.payload["validation"])
            self.notifier("error", e.message)
            return False

        if isinstance(body.get("validation"), dict):
            self._apply_validation(body["validation"])
        self._status = status
        if self._journey is not None:
            self._journey = self._journey.model_copy(update={"status": status})
        if self.state == SaveState.IDLE:
            self._last_sent = serialize_payload(self.build_save_payload())
        self.notifier("success", success_message)
        return True

    # Test mode
    async def set_test_mode(self, enabled: bool) -> None:
        self._settings = self._settings.model_copy(update={"testMode": enabled})
        self._mark_dirty()
        await self._write_draft()
        if enabled:
            self.poller.start()
        else:
            await self.poller.stop()

    def _apply_executions(self, data: Dict[str, Any]) -> None:
        self.test_progress = data.get("progress", [])
        self.test_logs = data.get("logs", [])

    def _apply_test_users(self, users: List[Dict[str, Any]]) -> None:
        self.test_users = users

    def _report_poll_halt(self, resource: str, error: str) -> None:
        self.notifier("error", f"Test mode {resource} unavailable: {error}")

    async def refresh_test_data(self) -> bool:
        return await self.poller.poll_once()

    async def _test_call(self, action: str, call, success_message: str) -> bool:
        try:
            await call
        except JourneyGatewayError as e:
            self.notifier("error", f"Unable to {action}: {e.message}")
            return False
        self.notifier("success", success_message)
        await self.refresh_test_data()
        return True

    async def add_test_user(self, user: Dict[str, Any]) -> bool:
        return await self._test_call(
            "add test user", self.gateway.add_test_user(self.journey_id, user), "Test user added"
        )

    async def remove_test_user(self, test_user_id: str) -> bool:
        return await self._test_call(
            "remove test user", self.gateway.remove_test_user(self.journey_id, test_user_id), "Test user removed"
        )

    async def clear_test_users(self) -> bool:
        return await self._test_call(
            "clear test users", self.gateway.clear_test_users(self.journey_id), "Cleared test users"
        )

    async def trigger_test_user(self, test_user_id: str) -> bool:
        return await self._test_call(
            "trigger journey",
            self.gateway.trigger_test_user(self.journey_id, test_user_id),
            "Journey triggered for test user",
        )

    async def clear_test_executions(self) -> bool:
        return await self._test_call(
            "clear test data", self.gateway.clear_test_executions(self.journey_id), "Cleared test execution data"
        )

    async def close(self) -> None:
        """Flush a pending autosave and stop background work."""
        await self._scheduler.flush()
        await self.poller.stop()
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
