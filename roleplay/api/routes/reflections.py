"""
Strategy reflection endpoints.

A reflection is stored once per session, keyed by the session's first
conversation. A second submission for the same conversation is rejected
with 409.
"""

from fastapi import APIRouter, status
import structlog

from roleplay.api.dependencies import ConversationServiceDep, ReflectionRepoDep
from roleplay.api.schemas import StrategyReflectionCreate
from roleplay.core.exceptions import ConversationNotFoundError
from roleplay.domain.models.reflection import StrategyReflection

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/conversations", tags=["reflections"])


@router.post(
    "/{conversation_id}/strategy-reflection",
    response_model=StrategyReflection,
    status_code=status.HTTP_201_CREATED,
)
async def submit_strategy_reflection(
    conversation_id: str,
    request: StrategyReflectionCreate,
    conversations: ConversationServiceDep,
    repo: ReflectionRepoDep,
):
    # 404 for unknown conversations rather than a foreign key failure
    await conversations.get_conversation(conversation_id)

    return await repo.create(
        StrategyReflection(
            conversation_id=conversation_id,
            reflection=request.reflection,
            conversation_order=request.conversation_order,
        )
    )


@router.get("/{conversation_id}/strategy-reflection", response_model=StrategyReflection)
async def get_strategy_reflection(conversation_id: str, repo: ReflectionRepoDep):
    reflection = await repo.get(conversation_id)
    if reflection is None:
        raise ConversationNotFoundError(
            f"No strategy reflection for conversation {conversation_id}"
        )
    return reflection
