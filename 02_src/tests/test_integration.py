"""Integration tests: MessagingCore over HTTP against the sandbox backend."""

import asyncio

import pytest

from portal_chat import MessagingCore
from portal_chat.composer import SelectedFile, decode
from portal_chat.config import ChatSettings
from portal_chat.models import Operator

ANNA = Operator(id="1", name="Anna Kowalski", role="Employee")


@pytest.fixture
def settings():
    return ChatSettings(poll_interval=0.05, read_confirm_interval=0.1, search_debounce=0.01)


@pytest.fixture
async def admin_core(admin_backend, settings):
    core = MessagingCore(admin_backend, settings=settings)
    await core.start()
    yield core
    await core.stop()


@pytest.fixture
async def anna_core(make_backend, settings):
    core = MessagingCore(make_backend(token="1"), operator=ANNA, settings=settings)
    yield core
    await core.stop()


def entry(core, name):
    return next(c for c in core.employee_conversations if c.display_name == name)


async def wait_for(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            return False
        await asyncio.sleep(0.02)
    return True


class TestFirstMessage:
    """Tests for messaging an employee with no conversation yet."""

    async def test_directory_lists_active_roster_as_virtual(self, admin_core):
        entries = admin_core.employee_conversations
        assert [c.display_name for c in entries] == ["Anna Kowalski", "Ben Ortiz", "Chloe Nguyen"]
        assert all(c.is_virtual for c in entries)

    async def test_first_message_materializes_and_resolves(self, admin_core):
        """Test virtual -> persisted resolution after the first send."""
        await admin_core.select_conversation(entry(admin_core, "Ben Ortiz"))

        assert await admin_core.send_message("Welcome to the team!")

        selected = admin_core.selected_conversation
        assert not selected.is_virtual
        assert selected.display_name == "Ben Ortiz"
        assert [m.content for m in admin_core.messages] == ["Welcome to the team!"]
        assert not admin_core.messages[0].is_optimistic
        assert admin_core.messages[0].text_content == "Welcome to the team!"

        # Each roster employee still appears exactly once
        ids = [c.id for c in admin_core.employee_conversations]
        assert len(ids) == 3
        assert selected.id in ids
        assert "employee_2" not in ids

    async def test_second_message_reuses_conversation(self, admin_core):
        await admin_core.select_conversation(entry(admin_core, "Chloe Nguyen"))
        await admin_core.send_message("one")
        first_id = admin_core.selected_conversation.id

        await admin_core.send_message("two")

        assert admin_core.selected_conversation.id == first_id
        assert [m.content for m in admin_core.messages] == ["one", "two"]


class TestConversationFlow:
    """Tests for a two-sided conversation."""

    async def test_reply_is_polled_and_marked_read(self, admin_core, anna_core):
        """Test that an employee reply appears for the admin and is marked read."""
        await admin_core.select_conversation(entry(admin_core, "Anna Kowalski"))
        await admin_core.send_message("Can you cover Friday?")
        conversation_id = admin_core.selected_conversation.id

        await anna_core.start()
        anna_entry = anna_core.employee_conversations[0]
        assert anna_entry.id == conversation_id
        assert anna_entry.display_name == "Management"
        assert anna_entry.unread_count == 1

        await anna_core.select_conversation(anna_entry)
        assert [m.content for m in anna_core.messages] == ["Can you cover Friday?"]
        await anna_core.send_message("Yes, no problem")

        assert await wait_for(lambda: len(admin_core.messages) == 2)
        assert admin_core.messages[-1].sender_role == "Employee"
        assert await wait_for(lambda: not admin_core.has_unread)

        await admin_core.refresh_conversations()
        assert entry(admin_core, "Anna Kowalski").unread_count == 0

    async def test_closed_conversation_stops_polling(self, admin_core, anna_core):
        await admin_core.select_conversation(entry(admin_core, "Anna Kowalski"))
        await admin_core.send_message("ping")
        await admin_core.back_to_list()

        await anna_core.start()
        await anna_core.select_conversation(anna_core.employee_conversations[0])
        await anna_core.send_message("pong")
        await asyncio.sleep(0.3)

        assert admin_core.messages == []
        await admin_core.refresh_conversations()
        assert entry(admin_core, "Anna Kowalski").unread_count == 1


class TestGroupsAndAttachments:
    """Tests for groups and attachments over HTTP."""

    async def test_group_message_reaches_member(self, admin_core, anna_core):
        group = await admin_core.create_group("Kitchen", ["1", "3"])
        assert group is not None
        assert [g.name for g in admin_core.groups] == ["Kitchen"]

        await admin_core.select_conversation(admin_core.group_conversations[0])
        await admin_core.send_message("Inventory tonight")

        await anna_core.start()
        groups = anna_core.group_conversations
        assert [g.display_name for g in groups] == ["Kitchen"]
        await anna_core.select_conversation(groups[0])
        assert [m.content for m in anna_core.messages] == ["Inventory tonight"]

    async def test_attachment_round_trip(self, admin_core, anna_core):
        content = b"%PDF-1.4 schedule"
        await admin_core.select_conversation(entry(admin_core, "Anna Kowalski"))
        await admin_core.attach_files(
            [SelectedFile(name="schedule.pdf", type="application/pdf", content=content)]
        )
        assert await admin_core.send_message()

        await anna_core.start()
        await anna_core.select_conversation(anna_core.employee_conversations[0])
        message = anna_core.messages[0]

        assert message.content == "File attachment"
        assert message.has_attachments
        assert decode(message.attachments[0]) == content
