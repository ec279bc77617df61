"""
Conversation service.

Server side of the conversation store contract: creates conversations with a
persona snapshot, appends messages with turn counting, and completes them at
the turn limit or on explicit exit.

Turn counting:
    An ai message that answers a user message completes one turn. The
    conversation completes automatically once turn_count reaches the limit;
    a completed conversation rejects further messages.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

import structlog

from roleplay.core.config import training_config
from roleplay.core.exceptions import (
    ConversationCompletedError,
    ConversationNotFoundError,
    ValidationError,
)
from roleplay.core.scenario_loader import load_scenario
from roleplay.domain.models.conversation import (
    Conversation,
    ConversationMessage,
    ConversationStatus,
    Sender,
)
from roleplay.domain.models.scenario import PersonaSnapshot
from roleplay.persistence.repositories.conversation_repo import ConversationRepository

log = structlog.get_logger(__name__)


class ConversationService:
    """Conversation lifecycle backed by the conversation repository."""

    def __init__(
        self,
        conversation_repo: ConversationRepository,
        turn_limit: Optional[int] = None,
    ):
        self.repo = conversation_repo
        self.turn_limit = turn_limit or training_config.session.turn_limit

    async def create_conversation(
        self,
        scenario_id: str,
        persona_id: str,
        persona_snapshot: Optional[PersonaSnapshot] = None,
    ) -> Conversation:
        """
        Create an active conversation for a scenario persona.

        Args:
            scenario_id: Scenario in the catalog
            persona_id: Persona within the scenario
            persona_snapshot: Attributes to freeze; defaults to the catalog persona

        Raises:
            ScenarioNotFoundError: Unknown scenario
            ValidationError: Persona not in the scenario
        """
        scenario = load_scenario(scenario_id)
        persona = scenario.get_persona(persona_id)
        if persona is None:
            raise ValidationError(
                f"Persona '{persona_id}' not found in scenario '{scenario_id}'"
            )

        conversation = Conversation(
            id=str(uuid4()),
            scenario_id=scenario_id,
            persona_id=persona_id,
            persona_snapshot=persona_snapshot or persona.snapshot(),
            created_at=datetime.now(),
        )
        await self.repo.create(conversation)

        log.info(
            "conversation_created",
            conversation_id=conversation.id,
            scenario_id=scenario_id,
            persona_id=persona_id,
        )
        return conversation

    async def get_conversation(self, conversation_id: str) -> Conversation:
        """
        Raises:
            ConversationNotFoundError: No such conversation
        """
        conversation = await self.repo.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        return conversation

    async def append_message(
        self,
        conversation_id: str,
        sender: Sender,
        message: str,
        emotion: Optional[str] = None,
        emotion_reason: Optional[str] = None,
    ) -> Conversation:
        """
        Append a message and advance the turn count.

        Returns:
            The updated conversation

        Raises:
            ConversationNotFoundError: No such conversation
            ConversationCompletedError: Conversation already completed
        """
        conversation = await self.get_conversation(conversation_id)
        if conversation.is_completed:
            raise ConversationCompletedError(
                f"Conversation {conversation_id} is already completed"
            )

        completes_turn = (
            sender == Sender.AI
            and bool(conversation.messages)
            and conversation.messages[-1].sender == Sender.USER
        )

        await self.repo.add_message(
            conversation_id,
            ConversationMessage(
                sender=sender,
                message=message,
                timestamp=datetime.now(),
                emotion=emotion,
                emotion_reason=emotion_reason,
            ),
        )

        if completes_turn:
            turn_count = conversation.turn_count + 1
            reached_limit = turn_count >= self.turn_limit
            await self.repo.update_progress(
                conversation_id,
                turn_count=turn_count,
                status=ConversationStatus.COMPLETED if reached_limit else ConversationStatus.ACTIVE,
                completed_at=datetime.now() if reached_limit else None,
            )
            log.info(
                "turn_completed",
                conversation_id=conversation_id,
                turn_count=turn_count,
                turn_limit=self.turn_limit,
                completed=reached_limit,
            )

        return await self.get_conversation(conversation_id)

    async def complete_conversation(self, conversation_id: str) -> Conversation:
        """Mark a conversation completed (explicit exit). Idempotent."""
        conversation = await self.get_conversation(conversation_id)
        if conversation.is_completed:
            return conversation

        await self.repo.update_progress(
            conversation_id,
            turn_count=conversation.turn_count,
            status=ConversationStatus.COMPLETED,
            completed_at=datetime.now(),
        )
        log.info(
            "conversation_completed",
            conversation_id=conversation_id,
            turn_count=conversation.turn_count,
        )
        return await self.get_conversation(conversation_id)
