"""Host-facing data model: entities, world view, event feed."""

from .entities import EMPTY_WORLD, Entity, EntityRegistry, EntitySource, WorldView
from .event_feed import EventFeed, FeedRecord, InMemoryEventFeed

__all__ = [
    "EMPTY_WORLD",
    "Entity",
    "EntityRegistry",
    "EntitySource",
    "EventFeed",
    "FeedRecord",
    "InMemoryEventFeed",
    "WorldView",
]
