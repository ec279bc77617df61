"""
Feedback service.

Server side of the feedback synthesizer contract:

- get_feedback() returns the stored record or raises FeedbackNotFoundError.
- generate() returns the stored record when one exists; otherwise it checks
  the conversation is ready, runs the analyzer once and stores the result.

Concurrent generate() calls for the same conversation are serialized by a
per-conversation lock, and the second caller receives the record stored by
the first. Calls for different conversations run independently.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Callable, Dict, Optional

import structlog

from roleplay.core.config import training_config
from roleplay.core.exceptions import (
    FeedbackNotFoundError,
    ScenarioNotFoundError,
    ValidationError,
)
from roleplay.core.scenario_loader import load_scenario
from roleplay.domain.models.feedback import Feedback
from roleplay.persistence.repositories.feedback_repo import FeedbackRepository
from roleplay.services.conversation_service import ConversationService
from roleplay.services.feedback_analyzer import FeedbackAnalyzer

log = structlog.get_logger(__name__)


class FeedbackService:
    """Fetches and synthesizes conversation feedback."""

    def __init__(
        self,
        feedback_repo: FeedbackRepository,
        conversation_service: ConversationService,
        analyzer_factory: Callable[[], FeedbackAnalyzer],
        min_turns_for_partial: Optional[int] = None,
    ):
        """
        Args:
            feedback_repo: Feedback persistence
            conversation_service: Source of conversations to analyze
            analyzer_factory: Builds the analyzer on first synthesis (the LLM
                client needs an API key, which reads do not)
            min_turns_for_partial: Turns needed to analyze an unfinished conversation
        """
        self.repo = feedback_repo
        self.conversations = conversation_service
        self._analyzer_factory = analyzer_factory
        self._analyzer: Optional[FeedbackAnalyzer] = None
        self.min_turns_for_partial = (
            min_turns_for_partial
            if min_turns_for_partial is not None
            else training_config.feedback.min_turns_for_partial
        )
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @property
    def analyzer(self) -> FeedbackAnalyzer:
        if self._analyzer is None:
            self._analyzer = self._analyzer_factory()
        return self._analyzer

    async def get_feedback(self, conversation_id: str) -> Feedback:
        """
        Raises:
            FeedbackNotFoundError: No feedback stored for the conversation
        """
        feedback = await self.repo.get_by_conversation(conversation_id)
        if feedback is None:
            raise FeedbackNotFoundError(f"No feedback for conversation {conversation_id}")
        return feedback

    async def generate(self, conversation_id: str) -> Feedback:
        """
        Return existing feedback or synthesize and store it.

        Raises:
            ConversationNotFoundError: No such conversation
            ValidationError: Conversation not completed and below the partial threshold
            GenerationError: Synthesis failed
        """
        existing = await self.repo.get_by_conversation(conversation_id)
        if existing is not None:
            log.info("feedback_exists", conversation_id=conversation_id)
            return existing

        async with self._conversation_lock(conversation_id):
            # A concurrent call may have stored it while we waited
            existing = await self.repo.get_by_conversation(conversation_id)
            if existing is not None:
                log.info("feedback_stored_by_concurrent_request", conversation_id=conversation_id)
                return existing

            conversation = await self.conversations.get_conversation(conversation_id)
            if not conversation.is_completed and conversation.turn_count < self.min_turns_for_partial:
                raise ValidationError(
                    f"Conversation {conversation_id} is not completed yet "
                    f"({conversation.turn_count} of {self.min_turns_for_partial} turns "
                    f"needed for partial feedback)"
                )

            try:
                scenario = load_scenario(conversation.scenario_id)
            except ScenarioNotFoundError:
                log.warning(
                    "feedback_scenario_missing",
                    conversation_id=conversation_id,
                    scenario_id=conversation.scenario_id,
                )
                scenario = None

            feedback = await self.analyzer.analyze(conversation, scenario)
            stored = await self.repo.create(feedback)

            log.info(
                "feedback_stored",
                conversation_id=conversation_id,
                feedback_id=stored.id,
                overall_score=stored.overall_score,
                partial=not conversation.is_completed,
            )
            return stored

    @asynccontextmanager
    async def _conversation_lock(self, conversation_id: str):
        lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        self._lock_users[conversation_id] = self._lock_users.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[conversation_id] -= 1
            if self._lock_users[conversation_id] == 0:
                del self._lock_users[conversation_id]
                self._locks.pop(conversation_id, None)
