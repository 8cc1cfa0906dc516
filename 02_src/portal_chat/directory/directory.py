"""Conversation directory: roster/conversation merge, filters and search debounce."""

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Iterable

from ..config import SEARCH_DEBOUNCE_SECONDS
from ..logging_config import get_logger
from ..models import (
    Conversation,
    ConversationKind,
    Employee,
    parse_timestamp,
    virtual_conversation_id,
)
from .membership import find_private_conversation

logger = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class FilterType(str, Enum):
    """List filters offered by the conversation view."""

    ALL = "all"
    UNREAD = "unread"
    GROUPS = "groups"
    PRIVATE = "private"


def active_employees(employees: Iterable[Employee]) -> list[Employee]:
    """Only ACTIVE/APPROVED employees can be messaged."""
    return [employee for employee in employees if employee.is_active]


def virtual_conversation(employee: Employee) -> Conversation:
    """Placeholder conversation for an employee without a persisted one."""
    return Conversation(
        id=virtual_conversation_id(employee.id),
        kind=ConversationKind.PRIVATE,
        display_name=employee.display_name,
        participant_ref=str(employee.id),
        employee=employee,
        created_at=employee.created_at,
    )


def build_directory(
    roster: Iterable[Employee], conversations: list[Conversation]
) -> list[Conversation]:
    """Every roster entry exactly once: its persisted conversation or a virtual one."""
    entries = []
    for employee in roster:
        existing = find_private_conversation(employee.id, conversations)
        if existing is None:
            entries.append(virtual_conversation(employee))
        else:
            entries.append(
                replace(
                    existing,
                    display_name=employee.display_name,
                    participant_ref=str(employee.id),
                    employee=employee,
                )
            )
    return entries


def search_conversations(
    conversations: Iterable[Conversation], query: str
) -> list[Conversation]:
    """Case-insensitive substring match on display name."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(conversations)
    return [c for c in conversations if needle in (c.display_name or "").lower()]


def unread_only(conversations: Iterable[Conversation]) -> list[Conversation]:
    return [c for c in conversations if c.unread_count > 0]


def _last_activity(conversation: Conversation) -> datetime:
    if conversation.last_message is None:
        return _EPOCH
    return parse_timestamp(conversation.last_message.timestamp) or _EPOCH


def combine_conversations(
    private: Iterable[Conversation], groups: Iterable[Conversation]
) -> list[Conversation]:
    """Single list for compact layouts: unread first, then newest activity first."""
    combined = [*private, *groups]
    return sorted(
        combined,
        key=lambda c: (not c.has_unread, -_last_activity(c).timestamp()),
    )


class SearchDebouncer:
    """Holds back a search term until typing pauses for `delay` seconds."""

    def __init__(
        self,
        delay: float = SEARCH_DEBOUNCE_SECONDS,
        on_settle: Callable[[str], Awaitable[None]] | None = None,
    ):
        self._delay = delay
        self._on_settle = on_settle
        self._value = ""
        self._pending: str | None = None
        self._task: asyncio.Task | None = None

    @property
    def value(self) -> str:
        """The settled (debounced) term."""
        return self._value

    def set(self, value: str) -> None:
        """Record a keystroke; restarts the pause timer."""
        self.cancel()
        self._pending = value
        self._task = asyncio.create_task(self._settle_later(value))

    async def flush(self) -> None:
        """Apply the pending term immediately."""
        if self._pending is None:
            return
        value = self._pending
        self.cancel()
        await self._apply(value)

    def cancel(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _settle_later(self, value: str) -> None:
        await asyncio.sleep(self._delay)
        await self._apply(value)

    async def _apply(self, value: str) -> None:
        self._pending = None
        if value == self._value:
            return
        self._value = value
        if self._on_settle:
            await self._on_settle(value)


class ConversationDirectory:
    """Merged, filtered conversation lists ready for rendering.

    The roster merge is cached and rebuilt only when the roster or the
    persisted conversations change; search and filter work on the cached
    merge. Without a roster (employee operators) the private list is the
    persisted private conversations.
    """

    def __init__(
        self,
        search_debounce: float = SEARCH_DEBOUNCE_SECONDS,
        on_search_settled: Callable[[str], Awaitable[None]] | None = None,
    ):
        self._roster: list[Employee] | None = None
        self._conversations: list[Conversation] = []
        self._merged: list[Conversation] | None = None
        self._filter = FilterType.ALL
        self._search = SearchDebouncer(search_debounce, on_search_settled)

    # Inputs
    def set_roster(self, employees: Iterable[Employee] | None) -> None:
        self._roster = None if employees is None else active_employees(employees)
        self._merged = None

    def set_conversations(self, conversations: Iterable[Conversation]) -> None:
        self._conversations = list(conversations)
        self._merged = None

    def set_search(self, query: str) -> None:
        self._search.set(query)

    async def flush_search(self) -> None:
        await self._search.flush()

    def set_filter(self, filter_type: FilterType | str) -> None:
        self._filter = FilterType(filter_type)

    def close(self) -> None:
        self._search.cancel()

    # State
    @property
    def roster(self) -> list[Employee]:
        return list(self._roster or [])

    @property
    def conversations(self) -> list[Conversation]:
        return list(self._conversations)

    @property
    def search_term(self) -> str:
        return self._search.value

    @property
    def filter_type(self) -> FilterType:
        return self._filter

    @property
    def merged(self) -> list[Conversation]:
        if self._merged is None:
            if self._roster is None:
                self._merged = [
                    c for c in self._conversations if c.kind == ConversationKind.PRIVATE
                ]
            else:
                self._merged = build_directory(self._roster, self._conversations)
            logger.debug("Directory rebuilt with %s entries", len(self._merged))
        return self._merged

    # Derived views
    def employee_conversations(self) -> list[Conversation]:
        if self._filter == FilterType.GROUPS:
            return []
        result = search_conversations(self.merged, self._search.value)
        if self._filter == FilterType.UNREAD:
            result = unread_only(result)
        return result

    def group_conversations(self) -> list[Conversation]:
        if self._filter == FilterType.PRIVATE:
            return []
        groups = [c for c in self._conversations if c.kind == ConversationKind.GROUP]
        result = search_conversations(groups, self._search.value)
        if self._filter == FilterType.UNREAD:
            result = unread_only(result)
        return result

    def combined_conversations(self) -> list[Conversation]:
        return combine_conversations(
            self.employee_conversations(), self.group_conversations()
        )
