"""
Workflow events.

Each event is a fact the state machine reacts to. Events that follow a
network call (PersonaChosen, FeedbackReceived, RetryStarted,
ReflectionAccepted) carry the result of that call, so the transition
function itself never performs I/O.
"""

from dataclasses import dataclass

from roleplay.domain.models.conversation import CompletionReason
from roleplay.domain.models.scenario import Persona, Scenario


@dataclass(frozen=True)
class WorkflowEvent:
    """Base class for workflow events."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


@dataclass(frozen=True)
class ScenarioChosen(WorkflowEvent):
    scenario: Scenario


@dataclass(frozen=True)
class PersonaChosen(WorkflowEvent):
    """Persona selected and its conversation created."""

    persona: Persona
    conversation_id: str


@dataclass(frozen=True)
class ConversationEnded(WorkflowEvent):
    reason: CompletionReason


@dataclass(frozen=True)
class FeedbackReceived(WorkflowEvent):
    """Feedback record obtained for the conversation under review."""

    conversation_id: str


@dataclass(frozen=True)
class ContinueRequested(WorkflowEvent):
    pass


@dataclass(frozen=True)
class ReflectionAccepted(WorkflowEvent):
    """Reflection persisted by the reflection store."""

    reflection: str


@dataclass(frozen=True)
class RetryStarted(WorkflowEvent):
    """New conversation created for the persona just reviewed."""

    conversation_id: str


@dataclass(frozen=True)
class ExitRequested(WorkflowEvent):
    pass
