"""Communication API routes (admin and employee scopes)."""

from typing import Any

from fastapi import APIRouter, Header, HTTPException
from pydantic import BaseModel, Field

from ...logging_config import get_logger
from ...models import ConversationKind, Employee
from ..storage import ADMIN_PARTICIPANT_ID, SandboxStorage

logger = get_logger(__name__)

ADMIN_NAME = "Management"
ADMIN_ROLE = "Admin"
EMPLOYEE_ROLE = "Employee"


class AttachmentModel(BaseModel):
    """Inline attachment (data URL or base64)."""

    name: str
    type: str
    size: int
    data: str


class MessageRequest(BaseModel):
    """Request model for posting a message."""

    content: str
    text_content: str = ""
    has_attachments: bool = False
    attachments: list[AttachmentModel] = Field(default_factory=list)


class PrivateMessageRequest(MessageRequest):
    """Private message addressed by recipient."""

    recipient_id: str


class ReadRequest(BaseModel):
    """Read confirmation request."""

    is_group: bool = False
    force: bool = False


class GroupRequest(BaseModel):
    """Request model for creating a group."""

    name: str
    employee_ids: list[str]


class ParticipantsRequest(BaseModel):
    """Request model for adding group participants."""

    employee_ids: list[str]


def ok(data: Any = None) -> dict[str, Any]:
    return {"success": True, "data": data}


def create_communication_router(storage: SandboxStorage) -> APIRouter:
    """Create communication router bound to a storage."""
    router = APIRouter(prefix="/api/v1", tags=["communication"])

    async def current_employee(authorization: str | None) -> Employee:
        token = (authorization or "").removeprefix("Bearer ").strip()
        if not token:
            raise HTTPException(status_code=401, detail="Missing bearer token")
        employee = await storage.get_employee(token)
        if employee is None:
            raise HTTPException(status_code=401, detail="Unknown employee")
        return employee

    async def require_conversation(conversation_id: int, reader_id: str) -> dict[str, Any]:
        conversation = await storage.get_conversation(conversation_id, reader_id)
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        return conversation

    async def require_membership(conversation_id: int, employee: Employee) -> None:
        await require_conversation(conversation_id, employee.id)
        if not await storage.is_participant(conversation_id, employee.id):
            raise HTTPException(status_code=403, detail="Not a participant")

    def require_content(request: MessageRequest) -> None:
        if not request.content.strip() and not request.attachments:
            raise HTTPException(status_code=400, detail="Message is empty")

    async def save(
        conversation_id: int, sender_id: str, sender_name: str, sender_role: str,
        request: MessageRequest,
    ) -> dict[str, Any]:
        require_content(request)
        return await storage.save_message(
            conversation_id,
            sender_id,
            sender_name,
            sender_role,
            request.content,
            request.text_content,
            [a.model_dump() for a in request.attachments],
            request.has_attachments or bool(request.attachments),
        )

    # Admin scope
    @router.get("/admin/communication/conversations")
    async def admin_conversations() -> dict:
        return ok(await storage.list_conversations(ADMIN_PARTICIPANT_ID, is_admin=True))

    @router.get("/admin/communication/conversations/{conversation_id}/messages")
    async def admin_messages(conversation_id: int) -> dict:
        await require_conversation(conversation_id, ADMIN_PARTICIPANT_ID)
        return ok(await storage.get_messages(conversation_id))

    @router.post("/admin/communication/conversations/{conversation_id}/messages")
    async def admin_post_message(conversation_id: int, request: MessageRequest) -> dict:
        await require_conversation(conversation_id, ADMIN_PARTICIPANT_ID)
        message = await save(
            conversation_id, ADMIN_PARTICIPANT_ID, ADMIN_NAME, ADMIN_ROLE, request
        )
        return ok(message)

    @router.post("/admin/communication/messages/private")
    async def admin_private_message(request: PrivateMessageRequest) -> dict:
        require_content(request)
        recipient = await storage.get_employee(request.recipient_id)
        if recipient is None:
            raise HTTPException(status_code=404, detail="Recipient not found")

        conversation_id = await storage.find_private_conversation(
            ADMIN_PARTICIPANT_ID, recipient.id
        )
        if conversation_id is None:
            conversation_id = await storage.create_conversation(
                ConversationKind.PRIVATE, None, ADMIN_PARTICIPANT_ID, [recipient.id]
            )
            logger.info(f"Created private conversation {conversation_id} with {recipient.id}")

        message = await save(
            conversation_id, ADMIN_PARTICIPANT_ID, ADMIN_NAME, ADMIN_ROLE, request
        )
        return ok({"conversation_id": conversation_id, "message": message})

    @router.post("/admin/communication/conversations/{conversation_id}/read")
    async def admin_mark_read(conversation_id: int, request: ReadRequest) -> dict:
        await require_conversation(conversation_id, ADMIN_PARTICIPANT_ID)
        await storage.mark_read(conversation_id, ADMIN_PARTICIPANT_ID)
        return ok()

    @router.post("/admin/communication/conversations/group")
    async def admin_create_group(request: GroupRequest) -> dict:
        if not request.name.strip() or not request.employee_ids:
            raise HTTPException(status_code=400, detail="Name and employees are required")
        conversation_id = await storage.create_conversation(
            ConversationKind.GROUP,
            request.name.strip(),
            ADMIN_PARTICIPANT_ID,
            request.employee_ids,
        )
        return ok(await storage.get_conversation(conversation_id))

    @router.post("/admin/communication/conversations/{conversation_id}/participants")
    async def admin_add_participants(conversation_id: int, request: ParticipantsRequest) -> dict:
        conversation = await require_conversation(conversation_id, ADMIN_PARTICIPANT_ID)
        if conversation["type"] != ConversationKind.GROUP.value:
            raise HTTPException(status_code=400, detail="Not a group conversation")
        await storage.add_participants(conversation_id, request.employee_ids)
        return ok(await storage.get_conversation(conversation_id))

    @router.get("/admin/employees")
    async def admin_employees() -> dict:
        employees = await storage.list_employees()
        return ok(
            {
                "employees": employees,
                "pagination": {"total": len(employees), "page": 1, "pages": 1},
            }
        )

    # Employee scope
    @router.get("/employee/communication/conversations")
    async def employee_conversations(authorization: str | None = Header(default=None)) -> dict:
        employee = await current_employee(authorization)
        return ok(await storage.list_conversations(employee.id, is_admin=False))

    @router.get("/employee/communication/conversations/{conversation_id}/messages")
    async def employee_messages(
        conversation_id: int, authorization: str | None = Header(default=None)
    ) -> dict:
        employee = await current_employee(authorization)
        await require_membership(conversation_id, employee)
        return ok(await storage.get_messages(conversation_id))

    @router.post("/employee/communication/conversations/{conversation_id}/messages")
    async def employee_post_message(
        conversation_id: int,
        request: MessageRequest,
        authorization: str | None = Header(default=None),
    ) -> dict:
        employee = await current_employee(authorization)
        await require_membership(conversation_id, employee)
        message = await save(
            conversation_id, employee.id, employee.display_name, EMPLOYEE_ROLE, request
        )
        return ok(message)

    @router.post("/employee/communication/conversations/{conversation_id}/read")
    async def employee_mark_read(
        conversation_id: int,
        request: ReadRequest,
        authorization: str | None = Header(default=None),
    ) -> dict:
        employee = await current_employee(authorization)
        await require_membership(conversation_id, employee)
        await storage.mark_read(conversation_id, employee.id)
        return ok()

    return router
