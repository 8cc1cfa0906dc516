"""Messaging core bootstrap and host-facing API."""

from typing import Iterable, Protocol

from .backend import IChatBackend
from .composer import (
    AttachmentPipeline,
    Composer,
    SelectedFile,
    build_optimistic_message,
    build_payload,
)
from .config import ChatSettings
from .directory import ConversationDirectory, FilterType, resolve
from .event_bus import EventBus, IEventBus, Topic
from .logging_config import get_logger
from .models import (
    Conversation,
    ConversationId,
    Employee,
    Group,
    Message,
    MessagePayload,
    Operator,
    participant_from_virtual_id,
)
from .session import ConversationSession
from .sync import SyncMode

logger = get_logger(__name__)

SEND_FAILED_ALERT = "Failed to send message. Please try again."
GROUP_INVALID_ALERT = "Please enter a group name and select at least one employee"
GROUP_FAILED_ALERT = "Failed to create group. Please try again."


class IMessagingCore(Protocol):
    """What the host UI drives."""

    async def start(self) -> None:
        """Load roster, groups and conversations."""
        ...

    async def stop(self) -> None:
        """Close the open conversation and release timers."""
        ...

    async def select_conversation(self, conversation: Conversation) -> None:
        """Open a conversation (resolving virtual ones first)."""
        ...

    async def back_to_list(self) -> None:
        """Leave the open conversation."""
        ...

    async def send_message(self, payload: MessagePayload | str | None = None) -> bool:
        """Send into the open conversation with an optimistic local echo."""
        ...


class MessagingCore:
    """Admin/employee messaging core.

    Owns the conversation directory, at most one open ConversationSession
    and the composer. Every public coroutine catches backend failures and
    turns them into state plus view events; nothing raises into the host.
    """

    def __init__(
        self,
        backend: IChatBackend,
        operator: Operator | None = None,
        settings: ChatSettings | None = None,
        events: IEventBus | None = None,
    ):
        self._backend = backend
        self._operator = operator or Operator.admin()
        self._settings = settings or ChatSettings()
        self.events: IEventBus = events or EventBus()
        self.directory = ConversationDirectory(
            search_debounce=self._settings.search_debounce,
            on_search_settled=self._on_search_settled,
        )
        self.pipeline = AttachmentPipeline(
            max_bytes=self._settings.max_attachment_bytes,
            allowed_types=self._settings.allowed_attachment_types,
        )
        self.composer = Composer(self.pipeline)
        self._groups: list[Group] = []
        self._session: ConversationSession | None = None

    async def start(self) -> None:
        logger.info("Starting messaging core for %s", self._operator.id)
        await self.load_data()

    async def stop(self) -> None:
        await self.back_to_list()
        self.directory.close()
        logger.info("Messaging core stopped")

    # Directory
    async def load_data(self) -> None:
        """Reload roster, groups and conversations; failures leave empty lists."""
        if self._operator.is_admin:
            try:
                employees = await self._backend.list_employees()
            except Exception as e:
                logger.warning("Failed to load employees: %s", e)
                employees = []
            self.directory.set_roster(employees)

            try:
                self._groups = await self._backend.list_groups()
            except Exception as e:
                logger.warning("Failed to load groups: %s", e)
                self._groups = []
        else:
            self.directory.set_roster(None)

        await self.refresh_conversations()

    async def refresh_conversations(self) -> list[Conversation]:
        """Reload persisted conversations; on failure keep the previous list."""
        try:
            conversations = await self._backend.list_conversations(
                self._operator.id, self._operator.is_admin
            )
        except Exception as e:
            logger.warning("Failed to refresh conversations: %s", e)
            return self.directory.conversations

        self.directory.set_conversations(conversations)
        await self.events.emit(Topic.CONVERSATIONS, count=len(conversations))
        await self._resolve_open_conversation()
        return conversations

    def set_search(self, query: str) -> None:
        self.directory.set_search(query)

    async def set_filter(self, filter_type: FilterType | str) -> None:
        self.directory.set_filter(filter_type)
        await self.events.emit(Topic.CONVERSATIONS, filter=self.directory.filter_type.value)

    async def _on_search_settled(self, query: str) -> None:
        await self.events.emit(Topic.CONVERSATIONS, search=query)

    # Selection
    async def select_conversation(self, conversation: Conversation) -> None:
        await self._close_session()

        resolved = resolve(conversation, self.directory.conversations)
        session = ConversationSession(
            resolved,
            self._backend,
            self._operator,
            self.events,
            poll_interval=self._settings.poll_interval,
            read_interval=self._settings.read_confirm_interval,
            on_marked_read=self.refresh_conversations,
        )
        self._session = session
        await self.events.emit(Topic.SELECTION, conversation_id=resolved.id)
        try:
            await session.open()
        except Exception as e:
            logger.error(f"Failed to open conversation {resolved.id}: {e}", exc_info=True)

    async def back_to_list(self) -> None:
        had_session = self._session is not None
        await self._close_session()
        self.composer.clear()
        if had_session:
            await self.events.emit(Topic.SELECTION, conversation_id=None)

    async def _close_session(self) -> None:
        session = self._session
        self._session = None
        if session is not None:
            await session.close()

    async def _resolve_open_conversation(self) -> None:
        session = self._session
        if session is None or session.closed or not session.conversation.is_virtual:
            return
        current = session.conversation
        resolved = resolve(current, self.directory.conversations)
        if resolved is current:
            return
        session.retarget(resolved)
        await self.events.emit(
            Topic.SELECTION, conversation_id=resolved.id, resolved_from=current.id
        )

    # Sending
    async def send_message(self, payload: MessagePayload | str | None = None) -> bool:
        """Send with an optimistic echo, then refresh, resolve and reconcile.

        Args:
            payload: A built payload, plain text, or None to send the composer draft.

        Returns:
            True if the backend accepted the message.
        """
        session = self._session
        if session is None or session.closed:
            return False

        if payload is None:
            payload = self.composer.take_payload()
        elif isinstance(payload, str):
            payload = build_payload(payload)
        if payload is None or payload.is_empty():
            return False

        state = session.state
        state.has_unread = False
        optimistic = build_optimistic_message(payload, self._operator)
        state.pending.append(optimistic)
        conversation = state.conversation
        await self.events.emit(
            Topic.MESSAGES, conversation_id=conversation.id, count=len(state.visible)
        )
        await self.events.emit(Topic.SCROLL, conversation_id=conversation.id)

        sent = True
        try:
            await self._dispatch(conversation, payload)
        except Exception as e:
            sent = False
            optimistic.pending = False
            optimistic.failed = True
            logger.error(f"Failed to send message to {conversation.id}: {e}")
            await self.events.emit(
                Topic.ALERT, message=SEND_FAILED_ALERT, conversation_id=conversation.id
            )
        else:
            # Only now may a foreground sync drop the echo
            optimistic.pending = False

        # Refresh resolves a virtual conversation before the re-sync uses its id
        await self.refresh_conversations()
        if session is self._session and not session.closed:
            await session.synchronizer.sync(SyncMode.FOREGROUND, show_loading=False)
            await self.events.emit(Topic.SCROLL, conversation_id=session.conversation.id)
        return sent

    async def _dispatch(self, conversation: Conversation, payload: MessagePayload) -> None:
        op = self._operator
        if not op.is_admin:
            await self._backend.send_conversation_message(
                conversation.id, payload, is_admin=False
            )
        elif conversation.is_group:
            await self._backend.send_group_message(
                conversation.id, op.id, op.name, op.role, payload
            )
        else:
            recipient_id = (
                conversation.participant_ref
                or participant_from_virtual_id(conversation.id)
                or str(conversation.id)
            )
            await self._backend.send_private_message(
                op.id, op.name, op.role, recipient_id, payload
            )

    async def attach_files(self, files: Iterable[SelectedFile]) -> list[SelectedFile]:
        """Add files to the draft; oversized files raise a blocking alert each."""
        for rejection in self.composer.attach(files):
            await self.events.emit(
                Topic.ALERT, message=rejection.reason, file_name=rejection.file_name
            )
        return self.composer.files

    async def dismiss_failed(self, message_id: str) -> None:
        """Remove a failed optimistic message from the open conversation."""
        session = self._session
        if session is None:
            return
        state = session.state
        kept = [m for m in state.pending if not (m.failed and m.id == message_id)]
        if len(kept) != len(state.pending):
            state.pending = kept
            await self.events.emit(Topic.MESSAGES, conversation_id=state.conversation.id)

    # Groups
    async def create_group(self, name: str, member_ids: list[str]) -> Group | None:
        if not name.strip() or not member_ids:
            await self.events.emit(Topic.ALERT, message=GROUP_INVALID_ALERT)
            return None
        try:
            group = await self._backend.create_group(
                name.strip(), self._operator.id, [str(m) for m in member_ids]
            )
        except Exception as e:
            logger.error(f"Failed to create group {name!r}: {e}")
            await self.events.emit(Topic.ALERT, message=GROUP_FAILED_ALERT)
            return None

        logger.info("Created group %s with %s members", group.id, len(member_ids))
        await self.load_data()
        return group

    async def add_employees_to_group(
        self, group_id: ConversationId, employee_ids: list[str]
    ) -> bool:
        try:
            await self._backend.add_employees_to_group(group_id, employee_ids)
        except Exception as e:
            logger.error(f"Failed to add employees to group {group_id}: {e}")
            return False
        await self.load_data()
        return True

    # View state
    @property
    def operator(self) -> Operator:
        return self._operator

    @property
    def session(self) -> ConversationSession | None:
        return self._session

    @property
    def selected_conversation(self) -> Conversation | None:
        return self._session.conversation if self._session else None

    @property
    def messages(self) -> list[Message]:
        return self._session.state.visible if self._session else []

    @property
    def has_unread(self) -> bool:
        return bool(self._session and self._session.state.has_unread)

    @property
    def is_loading(self) -> bool:
        return bool(self._session and self._session.state.is_loading)

    @property
    def employees(self) -> list[Employee]:
        return self.directory.roster

    @property
    def groups(self) -> list[Group]:
        return list(self._groups)

    @property
    def employee_conversations(self) -> list[Conversation]:
        return self.directory.employee_conversations()

    @property
    def group_conversations(self) -> list[Conversation]:
        return self.directory.group_conversations()

    @property
    def combined_conversations(self) -> list[Conversation]:
        return self.directory.combined_conversations()
