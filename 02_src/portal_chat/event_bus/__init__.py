"""EventBus module."""

from .event_bus import EventBus, IEventBus, Topic, TopicHandler, ViewEvent

__all__ = ["EventBus", "IEventBus", "Topic", "TopicHandler", "ViewEvent"]
