"""Dependency injection for API routes."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from roleplay.core.config import settings
from roleplay.llm.client import get_feedback_llm_client
from roleplay.persistence.repositories.conversation_repo import ConversationRepository
from roleplay.persistence.repositories.feedback_repo import FeedbackRepository
from roleplay.persistence.repositories.reflection_repo import ReflectionRepository
from roleplay.services.conversation_service import ConversationService
from roleplay.services.feedback_analyzer import FeedbackAnalyzer
from roleplay.services.feedback_service import FeedbackService


def get_conversation_service() -> ConversationService:
    """FastAPI dependency injection for ConversationService.

    Each request gets a new service over a repository bound to settings.database_path.
    """
    return ConversationService(ConversationRepository(str(settings.database_path)))


def get_reflection_repository() -> ReflectionRepository:
    return ReflectionRepository(str(settings.database_path))


def build_feedback_analyzer() -> FeedbackAnalyzer:
    return FeedbackAnalyzer(get_feedback_llm_client())


@lru_cache(maxsize=1)
def get_feedback_service() -> FeedbackService:
    """Shared FeedbackService.

    One instance per process so the per-conversation generation locks are
    shared by all requests.
    """
    return FeedbackService(
        feedback_repo=FeedbackRepository(str(settings.database_path)),
        conversation_service=get_conversation_service(),
        analyzer_factory=build_feedback_analyzer,
    )


# Type aliases for dependency injection
ConversationServiceDep = Annotated[ConversationService, Depends(get_conversation_service)]
ReflectionRepoDep = Annotated[ReflectionRepository, Depends(get_reflection_repository)]
FeedbackServiceDep = Annotated[FeedbackService, Depends(get_feedback_service)]
