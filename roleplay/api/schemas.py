"""
API request/response schemas.

Pydantic models for API validation and serialization. Conversation, Feedback
and StrategyReflection domain models are returned as-is.
"""

from pydantic import BaseModel, Field
from typing import List, Optional

from roleplay.domain.models.conversation import Sender
from roleplay.domain.models.scenario import PersonaSnapshot


# ============ SCENARIO SCHEMAS ============


class ScenarioSummary(BaseModel):
    """Catalog entry."""

    id: str
    title: str


class ScenarioListResponse(BaseModel):
    scenarios: List[ScenarioSummary]
    total: int


# ============ CONVERSATION SCHEMAS ============


class ConversationCreate(BaseModel):
    """Request to create a conversation with a scenario persona."""

    scenario_id: str
    persona_id: str
    persona_snapshot: Optional[PersonaSnapshot] = Field(
        default=None, description="Defaults to the catalog persona"
    )


class MessageCreate(BaseModel):
    """Message appended to a conversation."""

    sender: Sender = Sender.USER
    message: str = Field(..., min_length=1, max_length=5000)
    emotion: Optional[str] = None
    emotion_reason: Optional[str] = None


# ============ REFLECTION SCHEMAS ============


class StrategyReflectionCreate(BaseModel):
    """Strategy reflection for a multi-persona session."""

    reflection: str = Field(..., min_length=1)
    conversation_order: List[str] = Field(
        ..., min_length=1, description="Persona ids in completion order"
    )
