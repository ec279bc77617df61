"""
Training workflow state machine.

Explicit transition table over an immutable SessionState. The async
WorkflowController (roleplay.services.workflow_controller) drives it.
"""

from .events import (
    WorkflowEvent,
    ScenarioChosen,
    PersonaChosen,
    ConversationEnded,
    FeedbackReceived,
    ContinueRequested,
    ReflectionAccepted,
    RetryStarted,
    ExitRequested,
)
from .transitions import (
    WorkflowRules,
    transition,
    next_action,
    available_personas,
    reset,
)

__all__ = [
    "WorkflowEvent",
    "ScenarioChosen",
    "PersonaChosen",
    "ConversationEnded",
    "FeedbackReceived",
    "ContinueRequested",
    "ReflectionAccepted",
    "RetryStarted",
    "ExitRequested",
    "WorkflowRules",
    "transition",
    "next_action",
    "available_personas",
    "reset",
]
