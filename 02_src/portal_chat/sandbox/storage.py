"""SQLite storage behind the sandbox communication API."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import ConversationKind, Employee

ADMIN_PARTICIPANT_ID = "admin"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class ISandboxStorage(Protocol):
    """Persistent storage for sandbox conversations (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    async def clear(self) -> None:
        """Clear all data."""
        ...


class SandboxStorage:
    """SQLite storage implementation.

    Conversation and message rows are returned already shaped as the
    portal API's JSON records (camelCase keys).
    """

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    @property
    def initialized(self) -> bool:
        return self._conn is not None

    async def init(self) -> None:
        """Initialize database and create tables (idempotent)."""
        if self._conn:
            return
        self._conn = await aiosqlite.connect(self._db_path)
        await self._conn.execute("PRAGMA foreign_keys = ON")

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _db(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    # Employees
    async def save_employee(self, employee: Employee) -> None:
        """Insert or replace a roster entry."""
        conn = self._db()
        await conn.execute(
            """
            INSERT OR REPLACE INTO employees (id, first_name, last_name, status, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                employee.id,
                employee.first_name,
                employee.last_name,
                employee.status,
                employee.created_at or _now(),
            ),
        )
        await conn.commit()

    async def get_employee(self, employee_id: str) -> Employee | None:
        conn = self._db()
        cursor = await conn.execute(
            "SELECT id, first_name, last_name, status, created_at FROM employees WHERE id = ?",
            (str(employee_id),),
        )
        row = await cursor.fetchone()
        if not row:
            return None
        return Employee(
            id=row[0], first_name=row[1], last_name=row[2], status=row[3], created_at=row[4]
        )

    async def list_employees(self) -> list[dict[str, Any]]:
        conn = self._db()
        cursor = await conn.execute(
            "SELECT id, first_name, last_name, status, created_at FROM employees ORDER BY id"
        )
        rows = await cursor.fetchall()
        return [
            {
                "id": row[0],
                "first_name": row[1],
                "last_name": row[2],
                "status": row[3],
                "created_at": row[4],
            }
            for row in rows
        ]

    # Conversations
    async def create_conversation(
        self,
        kind: ConversationKind,
        name: str | None,
        created_by: str,
        participant_ids: list[str],
    ) -> int:
        conn = self._db()
        cursor = await conn.execute(
            "INSERT INTO conversations (type, name, created_by, created_at) VALUES (?, ?, ?, ?)",
            (kind.value, name, created_by, _now()),
        )
        conversation_id = cursor.lastrowid
        await conn.executemany(
            "INSERT OR IGNORE INTO participants (conversation_id, participant_id) VALUES (?, ?)",
            [(conversation_id, str(p)) for p in {created_by, *participant_ids}],
        )
        await conn.commit()
        return conversation_id

    async def add_participants(self, conversation_id: int, participant_ids: list[str]) -> None:
        conn = self._db()
        await conn.executemany(
            "INSERT OR IGNORE INTO participants (conversation_id, participant_id) VALUES (?, ?)",
            [(conversation_id, str(p)) for p in participant_ids],
        )
        await conn.commit()

    async def find_private_conversation(self, a: str, b: str) -> int | None:
        """Private conversation whose participants are exactly {a, b}."""
        conn = self._db()
        cursor = await conn.execute(
            """
            SELECT c.id FROM conversations c
            JOIN participants pa ON pa.conversation_id = c.id AND pa.participant_id = ?
            JOIN participants pb ON pb.conversation_id = c.id AND pb.participant_id = ?
            WHERE c.type = 'private'
            ORDER BY c.id
            LIMIT 1
            """,
            (str(a), str(b)),
        )
        row = await cursor.fetchone()
        return row[0] if row else None

    async def get_participants(self, conversation_id: int) -> list[str]:
        conn = self._db()
        cursor = await conn.execute(
            "SELECT participant_id FROM participants WHERE conversation_id = ? ORDER BY participant_id",
            (conversation_id,),
        )
        return [row[0] for row in await cursor.fetchall()]

    async def is_participant(self, conversation_id: int, participant_id: str) -> bool:
        return str(participant_id) in await self.get_participants(conversation_id)

    async def get_conversation(
        self, conversation_id: int, reader_id: str = ADMIN_PARTICIPANT_ID
    ) -> dict[str, Any] | None:
        conn = self._db()
        cursor = await conn.execute(
            "SELECT id, type, name, created_at FROM conversations WHERE id = ?",
            (conversation_id,),
        )
        row = await cursor.fetchone()
        if not row:
            return None
        return await self._conversation_record(row, reader_id)

    async def list_conversations(self, reader_id: str, is_admin: bool) -> list[dict[str, Any]]:
        """Conversations visible to the reader, with lastMessage and unreadCount."""
        conn = self._db()
        if is_admin:
            cursor = await conn.execute(
                "SELECT id, type, name, created_at FROM conversations ORDER BY id"
            )
        else:
            cursor = await conn.execute(
                """
                SELECT c.id, c.type, c.name, c.created_at FROM conversations c
                JOIN participants p ON p.conversation_id = c.id
                WHERE p.participant_id = ?
                ORDER BY c.id
                """,
                (str(reader_id),),
            )
        rows = await cursor.fetchall()
        return [await self._conversation_record(row, reader_id) for row in rows]

    async def _conversation_record(self, row: tuple, reader_id: str) -> dict[str, Any]:
        conn = self._db()
        conversation_id, kind, name, created_at = row
        participants = await self.get_participants(conversation_id)

        cursor = await conn.execute(
            """
            SELECT content, timestamp FROM messages
            WHERE conversation_id = ? ORDER BY id DESC LIMIT 1
            """,
            (conversation_id,),
        )
        last = await cursor.fetchone()

        cursor = await conn.execute(
            """
            SELECT COUNT(*) FROM messages
            WHERE conversation_id = ? AND sender_id != ? AND id > COALESCE(
                (SELECT last_read_message_id FROM read_markers
                 WHERE conversation_id = ? AND reader_id = ?), 0)
            """,
            (conversation_id, str(reader_id), conversation_id, str(reader_id)),
        )
        unread = (await cursor.fetchone())[0]

        record: dict[str, Any] = {
            "id": conversation_id,
            "type": kind,
            "name": name or "",
            "createdAt": created_at,
            "lastMessage": {"content": last[0], "timestamp": last[1]} if last else None,
            "unreadCount": unread,
        }
        if kind == ConversationKind.GROUP.value:
            record["members"] = participants
        else:
            record["participants"] = [{"participant_id": p} for p in participants]
            if not name:
                record["name"] = await self._counterpart_name(participants, reader_id)
        return record

    async def _counterpart_name(self, participants: list[str], reader_id: str) -> str:
        for participant_id in participants:
            if participant_id == str(reader_id):
                continue
            if participant_id == ADMIN_PARTICIPANT_ID:
                return "Management"
            employee = await self.get_employee(participant_id)
            if employee:
                return employee.display_name
        return ""

    # Messages
    async def save_message(
        self,
        conversation_id: int,
        sender_id: str,
        sender_name: str,
        sender_role: str,
        content: str,
        text_content: str,
        attachments: list[dict[str, Any]],
        has_attachments: bool,
    ) -> dict[str, Any]:
        """Save a message (and its attachments); return its API record."""
        conn = self._db()
        timestamp = _now()
        cursor = await conn.execute(
            """
            INSERT INTO messages (conversation_id, sender_id, sender_name, sender_role,
                                  content, text_content, has_attachments, timestamp)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                conversation_id,
                sender_id,
                sender_name,
                sender_role,
                content,
                text_content,
                1 if has_attachments else 0,
                timestamp,
            ),
        )
        message_id = cursor.lastrowid
        for attachment in attachments:
            await conn.execute(
                "INSERT INTO attachments (message_id, name, type, size, data) VALUES (?, ?, ?, ?, ?)",
                (
                    message_id,
                    attachment["name"],
                    attachment["type"],
                    attachment["size"],
                    attachment["data"],
                ),
            )
        # The sender has read everything up to their own message
        await conn.execute(
            """
            INSERT OR REPLACE INTO read_markers (conversation_id, reader_id, last_read_message_id, updated_at)
            VALUES (?, ?, ?, ?)
            """,
            (conversation_id, sender_id, message_id, timestamp),
        )
        await conn.commit()

        return {
            "id": message_id,
            "senderId": sender_id,
            "senderName": sender_name,
            "senderRole": sender_role,
            "content": content,
            "textContent": text_content,
            "attachments": [dict(a) for a in attachments],
            "hasAttachments": has_attachments,
            "timestamp": timestamp,
        }

    async def get_messages(self, conversation_id: int) -> list[dict[str, Any]]:
        """Messages of a conversation in insertion order."""
        conn = self._db()
        cursor = await conn.execute(
            """
            SELECT id, sender_id, sender_name, sender_role, content, text_content,
                   has_attachments, timestamp
            FROM messages WHERE conversation_id = ? ORDER BY id ASC
            """,
            (conversation_id,),
        )
        rows = await cursor.fetchall()

        messages = []
        for row in rows:
            att_cursor = await conn.execute(
                "SELECT name, type, size, data FROM attachments WHERE message_id = ? ORDER BY id",
                (row[0],),
            )
            attachments = [
                {"name": a[0], "type": a[1], "size": a[2], "data": a[3]}
                for a in await att_cursor.fetchall()
            ]
            messages.append(
                {
                    "id": row[0],
                    "senderId": row[1],
                    "senderName": row[2],
                    "senderRole": row[3],
                    "content": row[4],
                    "textContent": row[5],
                    "attachments": attachments,
                    "hasAttachments": bool(row[6]),
                    "timestamp": row[7],
                }
            )
        return messages

    async def mark_read(self, conversation_id: int, reader_id: str) -> None:
        conn = self._db()
        cursor = await conn.execute(
            "SELECT COALESCE(MAX(id), 0) FROM messages WHERE conversation_id = ?",
            (conversation_id,),
        )
        last_id = (await cursor.fetchone())[0]
        await conn.execute(
            """
            INSERT OR REPLACE INTO read_markers (conversation_id, reader_id, last_read_message_id, updated_at)
            VALUES (?, ?, ?, ?)
            """,
            (conversation_id, str(reader_id), last_id, _now()),
        )
        await conn.commit()

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        conn = self._db()
        tables = [
            "attachments",
            "messages",
            "read_markers",
            "participants",
            "conversations",
            "employees",
        ]
        for table in tables:
            await conn.execute(f"DELETE FROM {table}")
        await conn.commit()
