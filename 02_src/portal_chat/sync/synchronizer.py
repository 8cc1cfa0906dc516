"""Polling message synchronizer."""

from enum import Enum
from typing import Protocol

from ..backend import IChatBackend
from ..event_bus import IEventBus, Topic
from ..logging_config import get_logger
from ..models import Conversation, Message, Operator
from .state import SessionState, dedupe_messages, have_messages_changed

logger = get_logger(__name__)


class SyncMode(str, Enum):
    """How a sync presents itself."""

    FOREGROUND = "foreground"  # open/send: loading UI, unconditional update
    SILENT = "silent"  # poll tick: update only on change


class IMessageSynchronizer(Protocol):
    """Fetching and applying a conversation's messages."""

    async def sync(
        self, mode: SyncMode = SyncMode.SILENT, show_loading: bool | None = None
    ) -> bool:
        """Fetch messages and apply them to session state. Return True if state changed."""
        ...


class MessageSynchronizer:
    """Fetches the open conversation's messages and applies them to session state."""

    def __init__(
        self,
        backend: IChatBackend,
        operator: Operator,
        state: SessionState,
        events: IEventBus,
    ):
        self._backend = backend
        self._operator = operator
        self._state = state
        self._events = events
        self._issued = 0
        self._applied = 0

    async def sync(
        self, mode: SyncMode = SyncMode.SILENT, show_loading: bool | None = None
    ) -> bool:
        """Fetch and apply messages. Returns True when the visible state was updated.

        Args:
            mode: FOREGROUND updates unconditionally and drops confirmed
                optimistic messages; SILENT updates only on detected change.
            show_loading: Override the loading indicator (defaults to
                FOREGROUND).
        """
        state = self._state
        if state.closed:
            return False

        foreground = mode == SyncMode.FOREGROUND
        loading = foreground if show_loading is None else show_loading
        conversation = state.conversation
        self._issued += 1
        seq = self._issued

        if loading:
            await self._set_loading(True)

        fetched: list[Message] | None
        try:
            fetched = await self._fetch(conversation)
        except Exception as e:
            fetched = None
            log = logger.warning if foreground else logger.debug
            log(
                "%s sync failed for %s: %s",
                mode.value,
                conversation.id,
                e,
            )

        if loading and not state.closed:
            await self._set_loading(False)

        if self._is_stale(conversation, seq):
            if foreground and self._is_current(conversation):
                # A newer sync already applied server data; the overlay is obsolete
                await self._drop_confirmed_pending()
            logger.debug("Discarded stale sync #%s for %s", seq, conversation.id)
            return False

        if fetched is None:
            if not foreground:
                return False
            state.synced = []
            await self._events.emit(Topic.MESSAGES, conversation_id=conversation.id)
            return True

        messages = dedupe_messages(fetched)
        changed = have_messages_changed(state.synced, messages)
        self._applied = seq

        if not foreground and not changed:
            return False

        state.synced = messages
        if foreground:
            state.drop_confirmed()

        if changed and messages:
            newest = messages[-1]
            if newest.sender_role != self._operator.role:
                state.flag_unread()
            await self._events.emit(Topic.SCROLL, conversation_id=conversation.id)

        await self._events.emit(
            Topic.MESSAGES, conversation_id=conversation.id, count=len(state.visible)
        )
        return True

    async def _fetch(self, conversation: Conversation) -> list[Message]:
        # A virtual conversation has no server messages yet
        if conversation.is_virtual:
            return []
        return await self._backend.list_messages(
            conversation.id, self._operator.is_admin
        )

    def _is_current(self, conversation: Conversation) -> bool:
        state = self._state
        return not state.closed and state.conversation.id == conversation.id

    def _is_stale(self, conversation: Conversation, seq: int) -> bool:
        return not self._is_current(conversation) or seq < self._applied

    async def _drop_confirmed_pending(self) -> None:
        state = self._state
        if state.drop_confirmed():
            await self._events.emit(
                Topic.MESSAGES, conversation_id=state.conversation.id
            )

    async def _set_loading(self, value: bool) -> None:
        if self._state.is_loading == value:
            return
        self._state.is_loading = value
        await self._events.emit(
            Topic.LOADING,
            conversation_id=self._state.conversation.id,
            loading=value,
        )
