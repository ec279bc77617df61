"""Domain models package."""

from .scenario import Scenario, Persona, PersonaSnapshot
from .conversation import (
    Conversation,
    ConversationMessage,
    ConversationStatus,
    CompletionReason,
    Sender,
)
from .feedback import (
    Feedback,
    EvaluationScore,
    DetailedFeedback,
    ActionGuide,
    ConversationGuide,
    DevelopmentPlan,
    PlanItem,
)
from .reflection import StrategyReflection
from .session_state import SessionState, View, NextAction

__all__ = [
    "Scenario",
    "Persona",
    "PersonaSnapshot",
    "Conversation",
    "ConversationMessage",
    "ConversationStatus",
    "CompletionReason",
    "Sender",
    "Feedback",
    "EvaluationScore",
    "DetailedFeedback",
    "ActionGuide",
    "ConversationGuide",
    "DevelopmentPlan",
    "PlanItem",
    "StrategyReflection",
    "SessionState",
    "View",
    "NextAction",
]
