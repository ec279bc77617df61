"""
Conversation endpoints.

Create a conversation for a scenario persona, read it back, append messages
(turn counting and auto-completion at the turn limit) and complete it on
explicit exit.
"""

from fastapi import APIRouter, status
import structlog

from roleplay.api.dependencies import ConversationServiceDep
from roleplay.api.schemas import ConversationCreate, MessageCreate
from roleplay.domain.models.conversation import Conversation

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.post("", response_model=Conversation, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    request: ConversationCreate,
    service: ConversationServiceDep,
):
    """Create an active conversation with turn_count 0."""
    return await service.create_conversation(
        scenario_id=request.scenario_id,
        persona_id=request.persona_id,
        persona_snapshot=request.persona_snapshot,
    )


@router.get("/{conversation_id}", response_model=Conversation)
async def get_conversation(conversation_id: str, service: ConversationServiceDep):
    """Get a conversation with messages, turn count and status."""
    return await service.get_conversation(conversation_id)


@router.post("/{conversation_id}/messages", response_model=Conversation)
async def append_message(
    conversation_id: str,
    request: MessageCreate,
    service: ConversationServiceDep,
):
    """Append a message. Rejected with 400 once the conversation is completed."""
    return await service.append_message(
        conversation_id,
        sender=request.sender,
        message=request.message,
        emotion=request.emotion,
        emotion_reason=request.emotion_reason,
    )


@router.post("/{conversation_id}/complete", response_model=Conversation)
async def complete_conversation(conversation_id: str, service: ConversationServiceDep):
    """Mark a conversation completed (explicit exit)."""
    return await service.complete_conversation(conversation_id)
