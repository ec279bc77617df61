"""Feedback domain models.

Feedback is the synthesized evaluation of one conversation, keyed 1:1 by
conversation id. At most one record exists per conversation.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class EvaluationScore(BaseModel):
    """Score for a single evaluation dimension."""

    category: str = Field(..., description="Dimension key, e.g. 'listening_empathy'")
    name: str = Field(..., description="Display name of the dimension")
    score: int = Field(..., ge=0)
    label: str = Field(default="", description="Qualitative label derived from the score")
    feedback: str = Field(default="", description="Commentary for this dimension")


class ActionGuide(BaseModel):
    """Situation-specific behavior guide."""

    situation: str
    action: str
    example: str = ""
    impact: str = ""


class ConversationGuide(BaseModel):
    """Worked example contrasting a good and a bad reply."""

    scenario: str
    good_example: str = ""
    bad_example: str = ""
    key_points: List[str] = Field(default_factory=list)


class PlanItem(BaseModel):
    """Single goal in a development plan stage."""

    goal: str
    actions: List[str] = Field(default_factory=list)
    measurable: str = Field(default="", description="How progress is measured")


class DevelopmentPlan(BaseModel):
    """Staged development plan."""

    short_term: List[PlanItem] = Field(default_factory=list, description="1-2 weeks")
    medium_term: List[PlanItem] = Field(default_factory=list, description="1-2 months")
    long_term: List[PlanItem] = Field(default_factory=list, description="3-6 months")
    recommended_resources: List[str] = Field(default_factory=list)


class DetailedFeedback(BaseModel):
    """Narrative sections of a feedback report."""

    summary: str = ""
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)
    behavior_guides: List[ActionGuide] = Field(default_factory=list)
    conversation_guides: List[ConversationGuide] = Field(default_factory=list)
    development_plan: DevelopmentPlan = Field(default_factory=DevelopmentPlan)
    ranking: Optional[str] = Field(default=None, description="Expert commentary")


class Feedback(BaseModel):
    """Evaluation of a single conversation."""

    id: str
    conversation_id: str
    overall_score: int = Field(..., ge=0, le=100)
    scores: List[EvaluationScore] = Field(default_factory=list)
    detailed_feedback: DetailedFeedback = Field(default_factory=DetailedFeedback)
    created_at: Optional[datetime] = None
