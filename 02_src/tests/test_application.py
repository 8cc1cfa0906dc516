"""Tests for MessagingCore against a mocked backend."""

import asyncio

import pytest

from portal_chat import MessagingCore
from portal_chat.backend.parsers import parse_conversation
from portal_chat.composer import SelectedFile
from portal_chat.config import ChatSettings
from portal_chat.errors import BackendError
from portal_chat.event_bus import Topic
from portal_chat.models import Employee, Group, Message, Operator

ANNA = Employee(id="1", first_name="Anna", last_name="Kowalski", status="ACTIVE")
BEN = Employee(id="2", first_name="Ben", last_name="Ortiz", status="ACTIVE")


def server_message(message_id, role="Admin", content="hello"):
    return Message(
        id=str(message_id),
        sender_id="admin" if role == "Admin" else "1",
        sender_name="Management" if role == "Admin" else "Anna Kowalski",
        sender_role=role,
        content=content,
        timestamp="2024-01-01T10:00:00Z",
    )


def private_conversation(conversation_id, participant_id, **extra):
    record = {
        "id": conversation_id,
        "type": "private",
        "participants": [{"participant_id": "admin"}, {"participant_id": participant_id}],
    }
    record.update(extra)
    return parse_conversation(record)


def group_conversation(conversation_id, name, members):
    return parse_conversation(
        {"id": conversation_id, "type": "group", "name": name, "members": members}
    )


@pytest.fixture
def settings():
    # Long timer intervals keep background ticks out of these tests
    return ChatSettings(poll_interval=5.0, read_confirm_interval=5.0, search_debounce=0.01)


@pytest.fixture
async def core(mock_backend, events, settings):
    """Started admin MessagingCore with Anna (persisted) and Ben (virtual)."""
    mock_backend.list_employees.return_value = [ANNA, BEN]
    mock_backend.list_conversations.return_value = [private_conversation(10, "1")]
    c = MessagingCore(mock_backend, settings=settings, events=events)
    await c.start()
    yield c
    await c.stop()


def by_name(core, name):
    return next(c for c in core.employee_conversations if c.display_name == name)


class TestStart:
    """Tests for loading data."""

    async def test_admin_directory(self, core, mock_backend):
        """Test roster merge after start."""
        assert [c.id for c in core.employee_conversations] == [10, "employee_2"]
        mock_backend.list_conversations.assert_awaited_with("admin", True)

    async def test_roster_failure_leaves_empty_roster(self, mock_backend, events, settings):
        mock_backend.list_employees.side_effect = BackendError("down")
        mock_backend.list_conversations.return_value = [private_conversation(10, "1")]
        core = MessagingCore(mock_backend, settings=settings, events=events)

        await core.start()

        assert core.employees == []
        assert core.employee_conversations == []
        await core.stop()

    async def test_employee_mode_skips_roster(self, mock_backend, events, settings):
        mock_backend.list_conversations.return_value = [private_conversation(10, "1")]
        operator = Operator(id="1", name="Anna Kowalski", role="Employee")
        core = MessagingCore(mock_backend, operator=operator, settings=settings, events=events)

        await core.start()

        mock_backend.list_employees.assert_not_awaited()
        mock_backend.list_conversations.assert_awaited_with("1", False)
        assert [c.id for c in core.employee_conversations] == [10]
        await core.stop()

    async def test_refresh_failure_keeps_previous_list(self, core, mock_backend):
        mock_backend.list_conversations.side_effect = BackendError("down")
        await core.refresh_conversations()
        assert [c.id for c in core.employee_conversations] == [10, "employee_2"]

    async def test_search_settles_with_event(self, core, recorder):
        """Test search via the debounce and the list-changed event."""
        core.set_search("ben")
        await asyncio.sleep(0.1)

        assert [c.display_name for c in core.employee_conversations] == ["Ben Ortiz"]
        assert any(
            e.topic == Topic.CONVERSATIONS and e.payload.get("search") == "ben" for e in recorder
        )


class TestSelection:
    """Tests for selecting conversations."""

    async def test_select_virtual_makes_no_calls(self, core, mock_backend, recorder):
        await core.select_conversation(by_name(core, "Ben Ortiz"))

        assert core.selected_conversation.id == "employee_2"
        assert core.messages == []
        mock_backend.list_messages.assert_not_awaited()
        mock_backend.mark_read.assert_not_awaited()
        assert any(e.topic == Topic.SELECTION for e in recorder)

    async def test_select_persisted_loads_and_marks_read(self, core, mock_backend):
        mock_backend.list_messages.return_value = [server_message(1, role="Employee")]

        await core.select_conversation(by_name(core, "Anna Kowalski"))

        assert [m.id for m in core.messages] == ["1"]
        mock_backend.mark_read.assert_awaited_once_with(10, "admin", False, True)
        assert not core.has_unread

    async def test_switch_closes_previous_session(self, core):
        await core.select_conversation(by_name(core, "Anna Kowalski"))
        first = core.session

        await core.select_conversation(by_name(core, "Ben Ortiz"))

        assert first.closed
        assert not first.is_running
        assert core.session is not first

    async def test_back_to_list(self, core, recorder):
        await core.select_conversation(by_name(core, "Anna Kowalski"))
        session = core.session

        await core.back_to_list()

        assert session.closed
        assert core.selected_conversation is None
        assert recorder[-1].topic == Topic.SELECTION
        assert recorder[-1].payload == {"conversation_id": None}


class TestSend:
    """Tests for sending messages."""

    async def test_empty_message_is_noop(self, core, mock_backend):
        await core.select_conversation(by_name(core, "Anna Kowalski"))
        assert not await core.send_message("   ")
        mock_backend.send_private_message.assert_not_awaited()

    async def test_send_without_selection_is_noop(self, core, mock_backend):
        assert not await core.send_message("hi")
        mock_backend.send_private_message.assert_not_awaited()

    async def test_send_to_virtual_resolves_conversation(self, core, mock_backend, recorder):
        """Test the first message to an employee without a conversation."""
        await core.select_conversation(by_name(core, "Ben Ortiz"))

        async def send_private(sender_id, sender_name, sender_role, recipient_id, payload):
            mock_backend.list_conversations.return_value = [
                private_conversation(10, "1"),
                private_conversation(55, "2"),
            ]
            mock_backend.list_messages.return_value = [server_message(900, content=payload.content)]
            return {}

        mock_backend.send_private_message.side_effect = send_private

        assert await core.send_message("hello Ben")

        args = mock_backend.send_private_message.await_args.args
        assert args[:4] == ("admin", "Management", "Admin", "2")
        assert core.selected_conversation.id == 55
        assert core.selected_conversation.display_name == "Ben Ortiz"
        mock_backend.list_messages.assert_awaited_with(55, True)
        assert [m.id for m in core.messages] == ["900"]
        assert [c.id for c in core.employee_conversations] == [10, 55]
        assert any(e.payload.get("resolved_from") == "employee_2" for e in recorder)

    async def test_optimistic_message_visible_before_confirmation(self, core, mock_backend):
        """Test that the local echo shows while the send is in flight."""
        await core.select_conversation(by_name(core, "Anna Kowalski"))
        release = asyncio.Event()

        async def slow_send(*args):
            await release.wait()
            return {}

        mock_backend.send_private_message.side_effect = slow_send

        sending = asyncio.create_task(core.send_message("on my way"))
        await asyncio.sleep(0.01)

        assert [m.content for m in core.messages] == ["on my way"]
        assert core.messages[0].pending
        assert core.messages[0].is_optimistic

        release.set()
        assert await sending
        assert core.messages == []

    async def test_send_failure_keeps_failed_message(self, core, mock_backend, recorder):
        await core.select_conversation(by_name(core, "Anna Kowalski"))
        mock_backend.send_private_message.side_effect = BackendError("down")

        assert not await core.send_message("are you in today?")

        assert len(core.messages) == 1
        failed = core.messages[0]
        assert failed.failed
        assert not failed.pending
        alerts = [e for e in recorder if e.topic == Topic.ALERT]
        assert alerts[-1].payload["message"] == "Failed to send message. Please try again."

        await core.dismiss_failed(failed.id)
        assert core.messages == []

    async def test_overlapping_send_keeps_in_flight_echo(self, core, mock_backend):
        """Test that the re-sync after one send leaves a concurrent send's echo visible."""
        await core.select_conversation(by_name(core, "Anna Kowalski"))
        gates = {"first": asyncio.Event(), "second": asyncio.Event()}

        async def gated_send(sender_id, sender_name, sender_role, recipient_id, payload):
            await gates[payload.content].wait()
            if payload.content == "second":
                raise BackendError("down")
            mock_backend.list_messages.return_value = [server_message(1, content="first")]
            return {}

        mock_backend.send_private_message.side_effect = gated_send

        first = asyncio.create_task(core.send_message("first"))
        second = asyncio.create_task(core.send_message("second"))
        await asyncio.sleep(0.01)
        assert [m.content for m in core.messages] == ["first", "second"]

        gates["first"].set()
        assert await first

        assert [m.content for m in core.messages] == ["first", "second"]
        assert not core.messages[0].is_optimistic
        assert core.messages[1].is_optimistic
        assert core.messages[1].pending

        gates["second"].set()
        assert not await second

        assert [m.content for m in core.messages] == ["first", "second"]
        assert core.messages[1].failed
        assert not core.messages[1].pending

    async def test_overlapping_sends_both_confirmed(self, core, mock_backend):
        """Test that two concurrent successful sends end with only server copies."""
        await core.select_conversation(by_name(core, "Anna Kowalski"))
        release = asyncio.Event()
        delivered = []

        async def gated_send(sender_id, sender_name, sender_role, recipient_id, payload):
            await release.wait()
            delivered.append(server_message(len(delivered) + 1, content=payload.content))
            mock_backend.list_messages.return_value = list(delivered)
            return {}

        mock_backend.send_private_message.side_effect = gated_send

        sends = [asyncio.create_task(core.send_message(text)) for text in ("one", "two")]
        await asyncio.sleep(0.01)
        release.set()

        assert await asyncio.gather(*sends) == [True, True]
        assert [m.content for m in core.messages] == ["one", "two"]
        assert not any(m.is_optimistic for m in core.messages)

    async def test_group_send(self, core, mock_backend):
        group = group_conversation(20, "Kitchen", ["1", "2"])
        await core.select_conversation(group)

        assert await core.send_message("Staff meeting at 3")

        args = mock_backend.send_group_message.await_args.args
        assert args[0] == 20
        assert args[4].content == "Staff meeting at 3"
        mock_backend.send_private_message.assert_not_awaited()

    async def test_employee_operator_sends_to_conversation(self, mock_backend, events, settings):
        mock_backend.list_conversations.return_value = [private_conversation(10, "1")]
        operator = Operator(id="1", name="Anna Kowalski", role="Employee")
        core = MessagingCore(mock_backend, operator=operator, settings=settings, events=events)
        await core.start()
        await core.select_conversation(core.employee_conversations[0])

        assert await core.send_message("running late")

        mock_backend.send_conversation_message.assert_awaited_once()
        assert mock_backend.send_conversation_message.await_args.args[0] == 10
        mock_backend.mark_read.assert_awaited_with(10, "employee", False, True)
        await core.stop()

    async def test_send_composer_draft(self, core, mock_backend):
        await core.select_conversation(by_name(core, "Anna Kowalski"))
        core.composer.text = "see menu"
        await core.attach_files([SelectedFile(name="menu.pdf", type="application/pdf", content=b"%PDF")])

        assert await core.send_message()

        payload = mock_backend.send_private_message.await_args.args[4]
        assert payload.content == "see menu"
        assert payload.has_attachments
        assert payload.attachments[0].name == "menu.pdf"
        assert core.composer.is_empty()


class TestAttachmentsAndGroups:
    """Tests for attachment alerts and group management."""

    async def test_oversized_file_alert(self, core, recorder):
        big = SelectedFile(name="video.pdf", type="application/pdf", content=b"\0" * (10 * 1024 * 1024 + 1))

        files = await core.attach_files([big])

        assert files == []
        alerts = [e for e in recorder if e.topic == Topic.ALERT]
        assert alerts[-1].payload["file_name"] == "video.pdf"

    async def test_create_group_validation(self, core, mock_backend, recorder):
        assert await core.create_group("  ", ["1"]) is None
        assert await core.create_group("Kitchen", []) is None
        mock_backend.create_group.assert_not_awaited()
        assert len([e for e in recorder if e.topic == Topic.ALERT]) == 2

    async def test_create_group_reloads(self, core, mock_backend):
        mock_backend.create_group.return_value = Group(id=30, name="Kitchen", member_ids=["1"])
        mock_backend.list_groups.return_value = [Group(id=30, name="Kitchen", member_ids=["1"])]

        group = await core.create_group(" Kitchen ", ["1"])

        assert group.id == 30
        mock_backend.create_group.assert_awaited_once_with("Kitchen", "admin", ["1"])
        assert [g.id for g in core.groups] == [30]

    async def test_create_group_failure_alerts(self, core, mock_backend, recorder):
        mock_backend.create_group.side_effect = BackendError("down")
        assert await core.create_group("Kitchen", ["1"]) is None
        assert recorder[-1].topic == Topic.ALERT

    async def test_add_employees_to_group(self, core, mock_backend):
        assert await core.add_employees_to_group(30, ["2"])
        mock_backend.add_employees_to_group.side_effect = BackendError("down")
        assert not await core.add_employees_to_group(30, ["3"])
