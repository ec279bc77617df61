"""Conversation domain models.

A Conversation is one bounded, turn-limited dialogue between the trainee and
a single persona. The workflow only holds conversation ids; the records are
owned by the conversation store.

Turn counting:
    A turn is one completed user message followed by an ai reply. turn_count
    never decreases. A conversation is complete from the workflow's point of
    view when the turn limit is reached or the trainee exits explicitly.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from roleplay.domain.models.scenario import PersonaSnapshot


class Sender(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    AI = "ai"


class ConversationStatus(str, Enum):
    """Conversation lifecycle state."""

    ACTIVE = "active"
    COMPLETED = "completed"


class CompletionReason(str, Enum):
    """Why a conversation ended."""

    TURN_LIMIT = "turn_limit"
    USER_EXIT = "user_exit"


class ConversationMessage(BaseModel):
    """Single message in a conversation."""

    sender: Sender
    message: str
    timestamp: Optional[datetime] = None
    emotion: Optional[str] = Field(default=None, description="Emotion tag for ai messages")
    emotion_reason: Optional[str] = None


class Conversation(BaseModel):
    """Dialogue with one persona, created once per persona engagement."""

    id: str
    scenario_id: str
    persona_id: str
    persona_snapshot: PersonaSnapshot
    messages: List[ConversationMessage] = Field(default_factory=list)
    turn_count: int = Field(default=0, ge=0)
    status: ConversationStatus = ConversationStatus.ACTIVE
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status == ConversationStatus.COMPLETED

    def reached_turn_limit(self, turn_limit: int) -> bool:
        return self.turn_count >= turn_limit
