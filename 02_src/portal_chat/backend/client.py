"""Portal communication API client built on httpx."""

from typing import Any, Protocol

import httpx

from ..config import DEFAULT_API_URL, REQUEST_TIMEOUT_SECONDS
from ..errors import BackendError
from ..logging_config import get_logger
from ..models import (
    Conversation,
    ConversationId,
    ConversationKind,
    Employee,
    Group,
    Message,
    MessagePayload,
)
from .parsers import (
    parse_conversation,
    parse_employee,
    parse_group,
    parse_message,
    payload_to_wire,
)

logger = get_logger(__name__)


class IChatBackend(Protocol):
    """Backend operations consumed by the messaging core."""

    async def list_conversations(
        self, participant_id: str, is_admin: bool
    ) -> list[Conversation]:
        """Conversations visible to the participant."""
        ...

    async def list_messages(
        self, conversation_id: ConversationId, is_admin: bool = True
    ) -> list[Message]:
        """Messages of a conversation, in backend (chronological) order."""
        ...

    async def send_group_message(
        self,
        conversation_id: ConversationId,
        sender_id: str,
        sender_name: str,
        sender_role: str,
        payload: MessagePayload,
    ) -> dict[str, Any] | None:
        """Post a message into a group conversation."""
        ...

    async def send_private_message(
        self,
        sender_id: str,
        sender_name: str,
        sender_role: str,
        recipient_id: str,
        payload: MessagePayload,
    ) -> dict[str, Any] | None:
        """Send a private message, creating the conversation if needed."""
        ...

    async def send_conversation_message(
        self,
        conversation_id: ConversationId,
        payload: MessagePayload,
        is_admin: bool = False,
    ) -> dict[str, Any] | None:
        """Post into an existing conversation (employee side)."""
        ...

    async def mark_read(
        self,
        conversation_id: ConversationId,
        role: str,
        is_group: bool = False,
        force: bool = False,
    ) -> None:
        """Confirm read receipts for the conversation."""
        ...

    async def list_groups(self) -> list[Group]:
        """All group conversations."""
        ...

    async def create_group(
        self, name: str, creator_id: str, member_ids: list[str]
    ) -> Group:
        """Create a group conversation."""
        ...

    async def add_employees_to_group(
        self, group_id: ConversationId, employee_ids: list[str]
    ) -> None:
        """Add participants to a group."""
        ...

    async def list_employees(self) -> list[Employee]:
        """Employee roster (unfiltered)."""
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...


class HttpChatBackend:
    """REST client for the portal communication endpoints."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        token: str | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _scope(is_admin: bool) -> str:
        return "admin" if is_admin else "employee"

    async def _request(
        self, method: str, path: str, json: dict[str, Any] | None = None
    ) -> Any:
        """Perform a request and unwrap the {success, data} envelope."""
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            logger.error(
                "Backend error %s on %s %s: %s",
                response.status_code,
                method,
                path,
                response.text[:200],
            )
            raise BackendError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise BackendError(f"{method} {path} returned invalid JSON") from e

        if isinstance(body, dict) and "success" in body:
            if not body["success"]:
                raise BackendError(
                    str(body.get("message") or f"{method} {path} was not successful"),
                    status_code=response.status_code,
                )
            return body.get("data")
        return body

    async def list_conversations(
        self, participant_id: str, is_admin: bool
    ) -> list[Conversation]:
        data = await self._request(
            "GET", f"/{self._scope(is_admin)}/communication/conversations"
        )
        return [parse_conversation(record) for record in data or []]

    async def list_messages(
        self, conversation_id: ConversationId, is_admin: bool = True
    ) -> list[Message]:
        data = await self._request(
            "GET",
            f"/{self._scope(is_admin)}/communication/conversations/{conversation_id}/messages",
        )
        return [parse_message(record) for record in data or []]

    async def send_group_message(
        self,
        conversation_id: ConversationId,
        sender_id: str,
        sender_name: str,
        sender_role: str,
        payload: MessagePayload,
    ) -> dict[str, Any] | None:
        """Post into a group conversation.

        The backend takes the sender from the bearer token, so the sender
        fields are not part of the body; they only appear in the debug log.
        """
        logger.debug(
            "Group message to %s from %s (%s, %s)",
            conversation_id,
            sender_name,
            sender_id,
            sender_role,
        )
        return await self._request(
            "POST",
            f"/admin/communication/conversations/{conversation_id}/messages",
            json=payload_to_wire(payload),
        )

    async def send_private_message(
        self,
        sender_id: str,
        sender_name: str,
        sender_role: str,
        recipient_id: str,
        payload: MessagePayload,
    ) -> dict[str, Any] | None:
        # Sender identity is implied by the token, as for group messages
        logger.debug("Private message to %s from %s (%s)", recipient_id, sender_name, sender_id)
        body = payload_to_wire(payload)
        body["recipient_id"] = str(recipient_id)
        return await self._request(
            "POST", "/admin/communication/messages/private", json=body
        )

    async def send_conversation_message(
        self,
        conversation_id: ConversationId,
        payload: MessagePayload,
        is_admin: bool = False,
    ) -> dict[str, Any] | None:
        return await self._request(
            "POST",
            f"/{self._scope(is_admin)}/communication/conversations/{conversation_id}/messages",
            json=payload_to_wire(payload),
        )

    async def mark_read(
        self,
        conversation_id: ConversationId,
        role: str,
        is_group: bool = False,
        force: bool = False,
    ) -> None:
        is_admin = role.lower() == "admin"
        await self._request(
            "POST",
            f"/{self._scope(is_admin)}/communication/conversations/{conversation_id}/read",
            json={"is_group": is_group, "force": force},
        )

    async def list_groups(self) -> list[Group]:
        data = await self._request("GET", "/admin/communication/conversations")
        return [
            parse_group(record)
            for record in data or []
            if record.get("type") == ConversationKind.GROUP.value
        ]

    async def create_group(
        self, name: str, creator_id: str, member_ids: list[str]
    ) -> Group:
        data = await self._request(
            "POST",
            "/admin/communication/conversations/group",
            json={"name": name, "employee_ids": [str(m) for m in member_ids]},
        )
        if not isinstance(data, dict):
            raise BackendError("Group creation returned no group")
        return parse_group(data)

    async def add_employees_to_group(
        self, group_id: ConversationId, employee_ids: list[str]
    ) -> None:
        await self._request(
            "POST",
            f"/admin/communication/conversations/{group_id}/participants",
            json={"employee_ids": [str(e) for e in employee_ids]},
        )

    async def list_employees(self) -> list[Employee]:
        data = await self._request("GET", "/admin/employees")
        records = data.get("employees", []) if isinstance(data, dict) else data
        return [parse_employee(record) for record in records or []]
