"""
Feedback endpoints.

GET returns 404 while no feedback exists; the client treats that as the
signal to POST, which returns the stored record or synthesizes one.
"""

from fastapi import APIRouter
import structlog

from roleplay.api.dependencies import FeedbackServiceDep
from roleplay.domain.models.feedback import Feedback

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/conversations", tags=["feedback"])


@router.get("/{conversation_id}/feedback", response_model=Feedback)
async def get_feedback(conversation_id: str, service: FeedbackServiceDep):
    return await service.get_feedback(conversation_id)


@router.post("/{conversation_id}/feedback", response_model=Feedback)
async def generate_feedback(conversation_id: str, service: FeedbackServiceDep):
    """
    Return existing feedback or synthesize it.

    Errors:
        404: Conversation not found
        400: Conversation not completed and below the partial-feedback threshold
        502: Synthesis failed
        504: LLM timed out
    """
    return await service.generate(conversation_id)
