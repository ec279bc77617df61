"""Repository implementations."""

from roleplay.persistence.repositories.conversation_repo import ConversationRepository
from roleplay.persistence.repositories.feedback_repo import FeedbackRepository
from roleplay.persistence.repositories.reflection_repo import ReflectionRepository

__all__ = [
    "ConversationRepository",
    "FeedbackRepository",
    "ReflectionRepository",
]
