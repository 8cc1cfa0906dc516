"""Read-state tracker: read confirmation decoupled from message polling."""

from typing import Awaitable, Callable

from ..backend import IChatBackend
from ..event_bus import IEventBus, Topic
from ..logging_config import get_logger
from ..models import Operator
from .state import SessionState

logger = get_logger(__name__)


class ReadStateTracker:
    """Confirms read receipts for the open conversation.

    Runs on its own (slower) cadence: a tick only writes to the backend when
    the synchronizer has flagged unread messages.
    """

    def __init__(
        self,
        backend: IChatBackend,
        operator: Operator,
        state: SessionState,
        events: IEventBus,
        on_marked: Callable[[], Awaitable[object]] | None = None,
    ):
        self._backend = backend
        self._operator = operator
        self._state = state
        self._events = events
        self._on_marked = on_marked

    async def confirm(self, force: bool = False) -> bool:
        """Mark the conversation read if it has unread messages (or if forced).

        Returns True when a markRead call succeeded.
        """
        state = self._state
        conversation = state.conversation
        if state.closed or conversation.is_virtual:
            return False
        if not force and not state.has_unread:
            return False

        generation = state.unread_generation
        try:
            await self._backend.mark_read(
                conversation.id,
                self._operator.role.lower(),
                conversation.is_group,
                True,
            )
        except Exception as e:
            logger.warning("markRead failed for %s: %s", conversation.id, e)
            return False

        if state.closed or state.conversation.id != conversation.id:
            return True

        if state.unread_generation != generation:
            # Messages flagged during the call were not covered by it
            logger.debug("New unread messages in %s during markRead", conversation.id)
        else:
            state.has_unread = False
            logger.debug("Marked %s as read", conversation.id)
            await self._events.emit(
                Topic.MESSAGES, conversation_id=conversation.id, has_unread=False
            )
        if self._on_marked:
            try:
                await self._on_marked()
            except Exception as e:
                logger.error("Refresh after markRead failed: %s", e)
        return True
