"""EventBus for view signals emitted by the messaging core."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

from ..logging_config import get_logger

logger = get_logger(__name__)


class Topic(str, Enum):
    """View signal topics."""

    CONVERSATIONS = "conversations"  # directory data changed
    MESSAGES = "messages"  # visible message list changed
    SELECTION = "selection"  # selected conversation changed or resolved
    LOADING = "loading"  # foreground loading indicator toggled
    SCROLL = "scroll"  # host should scroll to the latest message
    ALERT = "alert"  # blocking message for the operator


@dataclass
class ViewEvent:
    """A signal for the host UI."""

    topic: Topic
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


TopicHandler = Callable[[ViewEvent], Awaitable[None]]


class IEventBus(Protocol):
    """In-memory pub/sub for view signals."""

    def subscribe(self, topic: Topic, handler: TopicHandler) -> None:
        """Subscribe a handler to a topic."""
        ...

    def unsubscribe(self, topic: Topic, handler: TopicHandler) -> None:
        """Remove a previously subscribed handler."""
        ...

    async def publish(self, event: ViewEvent) -> None:
        """Publish ViewEvent to all subscribers of its topic."""
        ...


class EventBus:
    """In-memory pub/sub event bus."""

    def __init__(self):
        self._subscribers: dict[Topic, list[TopicHandler]] = {
            topic: [] for topic in Topic
        }

    def subscribe(self, topic: Topic, handler: TopicHandler) -> None:
        """Subscribe a handler to a topic."""
        self._subscribers[topic].append(handler)

    def unsubscribe(self, topic: Topic, handler: TopicHandler) -> None:
        """Remove a previously subscribed handler (no-op if absent)."""
        handlers = self._subscribers[topic]
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: ViewEvent) -> None:
        """Publish ViewEvent: calls subscriber callbacks concurrently."""
        handlers = list(self._subscribers.get(event.topic, []))
        if not handlers:
            return

        results = await asyncio.gather(
            *[handler(event) for handler in handlers],
            return_exceptions=True,
        )

        for i, result in enumerate(results):
            if isinstance(result, Exception):
                logger.error("Error in %s handler %s: %s", event.topic.value, i, result)

    async def emit(self, topic: Topic, **payload: Any) -> None:
        """Shortcut for publish(ViewEvent(topic, payload))."""
        await self.publish(ViewEvent(topic=topic, payload=payload))
