"""Conversation session: the owner of an open conversation's timers and state."""

import asyncio
import uuid
from typing import Awaitable, Callable

from .backend import IChatBackend
from .config import POLL_INTERVAL_SECONDS, READ_CONFIRM_INTERVAL_SECONDS
from .event_bus import IEventBus
from .logging_config import get_logger
from .models import Conversation, Operator
from .sync import MessageSynchronizer, ReadStateTracker, SessionState, SyncMode


class ConversationSession:
    """One open conversation: its message state, poll task and read-confirm task.

    Closing the session cancels and awaits both tasks, so no tick can fire
    against a conversation that is no longer displayed.
    """

    def __init__(
        self,
        conversation: Conversation,
        backend: IChatBackend,
        operator: Operator,
        events: IEventBus,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        read_interval: float = READ_CONFIRM_INTERVAL_SECONDS,
        on_marked_read: Callable[[], Awaitable[object]] | None = None,
    ):
        self.id = str(uuid.uuid4())
        self._log = get_logger(__name__, session_id=self.id)
        self.state = SessionState(conversation=conversation)
        self.synchronizer = MessageSynchronizer(backend, operator, self.state, events)
        self.read_tracker = ReadStateTracker(
            backend, operator, self.state, events, on_marked=on_marked_read
        )
        self._poll_interval = poll_interval
        self._read_interval = read_interval
        self._poll_task: asyncio.Task | None = None
        self._read_task: asyncio.Task | None = None

    @property
    def conversation(self) -> Conversation:
        return self.state.conversation

    @property
    def closed(self) -> bool:
        return self.state.closed

    @property
    def is_running(self) -> bool:
        return any(
            task is not None and not task.done()
            for task in (self._poll_task, self._read_task)
        )

    async def open(self) -> None:
        """Foreground load, immediate read confirmation, then start both timers."""
        self._log.info("Opening conversation %s", self.conversation.id)
        await self.synchronizer.sync(SyncMode.FOREGROUND)
        await self.read_tracker.confirm(force=True)

        if self.state.closed:
            return
        self._poll_task = asyncio.create_task(
            self._run_every(self._poll_interval, self._poll_tick, "sync")
        )
        self._read_task = asyncio.create_task(
            self._run_every(self._read_interval, self.read_tracker.confirm, "read")
        )

    def retarget(self, conversation: Conversation) -> None:
        """Point the session at a resolved conversation; later ticks use the new id."""
        self.state.conversation = conversation

    async def close(self) -> None:
        """Stop both timers and mark the state closed."""
        if self.state.closed:
            return
        self.state.closed = True

        current = asyncio.current_task()
        for task in (self._poll_task, self._read_task):
            if task is None or task is current:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._poll_task = None
        self._read_task = None
        self._log.info("Closed conversation %s", self.conversation.id)

    async def _poll_tick(self) -> None:
        await self.synchronizer.sync(SyncMode.SILENT)

    async def _run_every(
        self, interval: float, tick: Callable[[], Awaitable[object]], name: str
    ) -> None:
        """Background timer: run `tick` every `interval` seconds until closed."""
        while not self.state.closed:
            try:
                await asyncio.sleep(interval)
                if self.state.closed:
                    break
                await tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self._log.error(
                    f"{name} timer error for {self.conversation.id}: {e}", exc_info=True
                )
