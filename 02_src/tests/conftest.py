"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

SANDBOX_URL = "http://sandbox/api/v1"

ROSTER = [
    ("1", "Anna", "Kowalski", "ACTIVE"),
    ("2", "Ben", "Ortiz", "approved"),
    ("3", "Chloe", "Nguyen", "ACTIVE"),
    ("4", "Dmitri", "Volkov", "PENDING"),
]


@pytest.fixture
def events():
    """Create an EventBus."""
    from portal_chat.event_bus import EventBus

    return EventBus()


@pytest.fixture
def recorder(events):
    """Subscribe to every topic and collect the published events."""
    from portal_chat.event_bus import Topic

    received = []

    async def handler(event):
        received.append(event)

    for topic in Topic:
        events.subscribe(topic, handler)
    return received


@pytest.fixture
def admin():
    """Admin operator."""
    from portal_chat.models import Operator

    return Operator.admin()


@pytest.fixture
def mock_backend():
    """Create a mock chat backend with empty defaults."""
    backend = AsyncMock()
    backend.list_conversations.return_value = []
    backend.list_messages.return_value = []
    backend.list_groups.return_value = []
    backend.list_employees.return_value = []
    backend.send_private_message.return_value = {}
    backend.send_group_message.return_value = {}
    backend.send_conversation_message.return_value = {}
    backend.mark_read.return_value = None
    return backend


@pytest_asyncio.fixture
async def sandbox_storage():
    """Create in-memory sandbox storage with a seeded roster."""
    from portal_chat.models import Employee
    from portal_chat.sandbox import SandboxStorage

    st = SandboxStorage(":memory:")
    await st.init()
    for employee_id, first, last, status in ROSTER:
        await st.save_employee(
            Employee(id=employee_id, first_name=first, last_name=last, status=status)
        )
    yield st
    await st.close()


@pytest.fixture
def sandbox_app(sandbox_storage):
    """Sandbox FastAPI app bound to the in-memory storage."""
    from portal_chat.sandbox import create_sandbox_app

    return create_sandbox_app(sandbox_storage)


@pytest_asyncio.fixture
async def api_client(sandbox_app):
    """Raw httpx client against the sandbox app."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=sandbox_app), base_url=SANDBOX_URL
    ) as client:
        yield client


@pytest_asyncio.fixture
async def make_backend(sandbox_app):
    """Build HttpChatBackend instances talking to the sandbox app."""
    from portal_chat.backend import HttpChatBackend

    created = []

    def factory(token: str | None = None):
        backend = HttpChatBackend(
            base_url=SANDBOX_URL,
            token=token,
            transport=httpx.ASGITransport(app=sandbox_app),
        )
        created.append(backend)
        return backend

    yield factory
    for backend in created:
        await backend.aclose()


@pytest.fixture
def admin_backend(make_backend):
    """HttpChatBackend for the admin operator."""
    return make_backend()
