"""Training session state.

SessionState is the in-memory record of where a trainee is in the workflow.
It is transient and client-local: it is never persisted, and it is reset to
empty whenever the trainee returns to scenario selection.

The record is immutable. The WorkflowController is its only writer and
replaces it wholesale after each transition; views only read it.

Invariants:
    - completed_persona_ids and conversation_ids are append-only and
      index-aligned (same length, entry i of one belongs to entry i of the
      other).
    - completed_persona_ids holds distinct persona ids.
    - reflection_submitted only moves from False to True within a session.
    - feedback_ready is True only in the feedback view, once a Feedback
      record for the conversation under review has been obtained.
"""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from roleplay.domain.models.scenario import Persona, Scenario


class View(str, Enum):
    """Workflow position, one per screen."""

    SCENARIO_SELECTION = "scenario-selection"
    PERSONA_SELECTION = "persona-selection"
    CHAT = "chat"
    FEEDBACK = "feedback"
    STRATEGY_REFLECTION = "strategy-reflection"
    STRATEGY_RESULT = "strategy-result"


class NextAction(str, Enum):
    """Where "continue" leads from the feedback view."""

    GO_TO_PERSONA_SELECTION = "go-to-persona-selection"
    GO_TO_STRATEGY_REFLECTION = "go-to-strategy-reflection"
    GO_TO_SCENARIO_SELECTION = "go-to-scenario-selection"


class SessionState(BaseModel):
    """Current workflow position of one training session."""

    model_config = ConfigDict(frozen=True)

    current_view: View = View.SCENARIO_SELECTION
    selected_scenario: Optional[Scenario] = None
    selected_persona: Optional[Persona] = None
    active_conversation_id: Optional[str] = None
    completed_persona_ids: Tuple[str, ...] = ()
    conversation_ids: Tuple[str, ...] = ()
    reflection_submitted: bool = False
    feedback_ready: bool = Field(
        default=False,
        description="A Feedback record was obtained for the conversation under review",
    )
    submitted_reflection: Optional[str] = Field(
        default=None, description="Accepted reflection text, shown on the result view"
    )
    retried_conversation_ids: Tuple[str, ...] = Field(
        default=(),
        description="Conversations held through 'retry same persona', in order",
    )
    epoch: int = Field(
        default=0,
        ge=0,
        description="Incremented on every reset; responses issued under an older epoch are dropped",
    )

    @property
    def total_personas(self) -> int:
        if self.selected_scenario is None:
            return 0
        return len(self.selected_scenario.personas)
