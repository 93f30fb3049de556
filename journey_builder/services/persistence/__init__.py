"""
Journey persistence: storage gateway, local cache, autosave and test mode.
"""
from .cache import InMemoryJourneyCache, JourneyCache, SqlJourneyCache, draft_key, journey_key, stats_key
from .gateway import HttpJourneyGateway, JourneyGateway, JourneyGatewayError
from .lifecycle import JourneyPersistenceManager, SaveState, serialize_payload
from .poller import TestModePoller
from .scheduler import DebouncedScheduler

__all__ = [
    "InMemoryJourneyCache",
    "JourneyCache",
    "SqlJourneyCache",
    "draft_key",
    "journey_key",
    "stats_key",
    "HttpJourneyGateway",
    "JourneyGateway",
    "JourneyGatewayError",
    "JourneyPersistenceManager",
    "SaveState",
    "serialize_payload",
    "TestModePoller",
    "DebouncedScheduler",
]
