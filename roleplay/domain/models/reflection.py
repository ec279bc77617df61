"""Strategy reflection domain model."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class StrategyReflection(BaseModel):
    """Trainee's rationale for the order in which personas were engaged.

    Keyed by the first conversation of a multi-persona session. The
    conversation order is the list of persona ids exactly as completed.
    """

    conversation_id: str = Field(..., description="Representative (first) conversation id")
    reflection: str
    conversation_order: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
