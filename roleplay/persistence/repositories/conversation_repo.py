"""Conversation repository for database operations."""

import json
from datetime import datetime
from typing import List, Optional

import aiosqlite
import structlog

from roleplay.domain.models.conversation import (
    Conversation,
    ConversationMessage,
    ConversationStatus,
    Sender,
)
from roleplay.domain.models.scenario import PersonaSnapshot

log = structlog.get_logger(__name__)


class ConversationRepository:
    """Repository for conversations and their messages."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    async def create(self, conversation: Conversation) -> Conversation:
        """Insert a new conversation (messages are added separately)."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO conversations (id, scenario_id, persona_id, persona_snapshot, "
                "turn_count, status, created_at, completed_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    conversation.id,
                    conversation.scenario_id,
                    conversation.persona_id,
                    conversation.persona_snapshot.model_dump_json(),
                    conversation.turn_count,
                    conversation.status.value,
                    conversation.created_at.isoformat(),
                    conversation.completed_at.isoformat() if conversation.completed_at else None,
                ),
            )
            await db.commit()

        log.debug("conversation_inserted", conversation_id=conversation.id)
        return conversation

    async def get(self, conversation_id: str) -> Optional[Conversation]:
        """Get a conversation with its messages in insertion order."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM conversations WHERE id = ?", (conversation_id,)
            )
            row = await cursor.fetchone()
            if not row:
                return None

            cursor = await db.execute(
                "SELECT * FROM conversation_messages WHERE conversation_id = ? ORDER BY id",
                (conversation_id,),
            )
            message_rows = await cursor.fetchall()

        return self._row_to_conversation(
            row, [self._row_to_message(m) for m in message_rows]
        )

    async def add_message(self, conversation_id: str, message: ConversationMessage) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO conversation_messages (conversation_id, sender, message, "
                "emotion, emotion_reason, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    conversation_id,
                    message.sender.value,
                    message.message,
                    message.emotion,
                    message.emotion_reason,
                    (message.timestamp or datetime.now()).isoformat(),
                ),
            )
            await db.commit()

    async def update_progress(
        self,
        conversation_id: str,
        turn_count: int,
        status: ConversationStatus,
        completed_at: Optional[datetime] = None,
    ) -> None:
        """Persist turn count and status. turn_count never decreases."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "UPDATE conversations SET turn_count = MAX(turn_count, ?), status = ?, "
                "completed_at = COALESCE(completed_at, ?) WHERE id = ?",
                (
                    turn_count,
                    status.value,
                    completed_at.isoformat() if completed_at else None,
                    conversation_id,
                ),
            )
            await db.commit()

    async def list_by_scenario(self, scenario_id: str) -> List[Conversation]:
        """List conversations for a scenario, newest first (without messages)."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM conversations WHERE scenario_id = ? ORDER BY created_at DESC",
                (scenario_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_conversation(row, []) for row in rows]

    def _row_to_conversation(
        self, row: aiosqlite.Row, messages: List[ConversationMessage]
    ) -> Conversation:
        return Conversation(
            id=row["id"],
            scenario_id=row["scenario_id"],
            persona_id=row["persona_id"],
            persona_snapshot=PersonaSnapshot(**json.loads(row["persona_snapshot"])),
            messages=messages,
            turn_count=row["turn_count"],
            status=ConversationStatus(row["status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            completed_at=(
                datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None
            ),
        )

    def _row_to_message(self, row: aiosqlite.Row) -> ConversationMessage:
        return ConversationMessage(
            sender=Sender(row["sender"]),
            message=row["message"],
            timestamp=datetime.fromisoformat(row["created_at"]),
            emotion=row["emotion"],
            emotion_reason=row["emotion_reason"],
        )
