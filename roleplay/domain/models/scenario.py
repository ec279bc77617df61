"""Scenario and persona domain models.

A Scenario is a training situation with an ordered list of personas the
trainee converses with. Scenarios are loaded from YAML (see
roleplay.core.scenario_loader) and are immutable once a session starts.

PersonaSnapshot is the copy of a Persona stored on a Conversation at creation
time, so a finished conversation keeps displaying the persona it was held
with even if the catalog entry is later edited.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Persona(BaseModel):
    """Simulated conversational counterpart within a scenario.

    Display attributes (name, role, department) are shown to the trainee.
    Behavioral attributes (stance, goal, tradeoff) only frame the
    conversation; the workflow does not interpret them.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Persona identifier, unique within a scenario")
    name: str = Field(..., description="Display name")
    role: str = Field(default="", description="Position or job title")
    department: str = Field(default="")
    experience: str = Field(default="")
    stance: str = Field(default="", description="Position the persona takes in the scenario")
    goal: str = Field(default="", description="What the persona wants out of the conversation")
    tradeoff: str = Field(default="", description="What the persona is willing to concede")
    persona_ref: Optional[str] = Field(
        default=None, description="Reference to a shared personality profile"
    )

    def snapshot(self) -> "PersonaSnapshot":
        """Capture an immutable copy for a new conversation."""
        return PersonaSnapshot(**self.model_dump())


class PersonaSnapshot(Persona):
    """Persona attributes frozen at conversation-creation time."""

    pass


class Scenario(BaseModel):
    """Training situation containing one or more personas."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str
    description: str = Field(default="")
    personas: Tuple[Persona, ...] = Field(default=(), description="Personas in display order")
    objectives: Tuple[str, ...] = Field(default=())
    success_criteria: str = Field(default="")

    @field_validator("personas")
    @classmethod
    def persona_ids_unique(cls, v: Tuple[Persona, ...]) -> Tuple[Persona, ...]:
        """Persona ids identify completion state, so they must not repeat."""
        ids = [p.id for p in v]
        duplicates = sorted({pid for pid in ids if ids.count(pid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate persona ids in scenario: {', '.join(duplicates)}")
        return v

    @property
    def persona_ids(self) -> List[str]:
        return [p.id for p in self.personas]

    @property
    def is_multi_persona(self) -> bool:
        return len(self.personas) >= 2

    def get_persona(self, persona_id: str) -> Optional[Persona]:
        for persona in self.personas:
            if persona.id == persona_id:
                return persona
        return None
