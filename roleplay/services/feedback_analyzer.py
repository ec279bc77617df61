"""
Feedback analyzer.

Turns a conversation transcript into a Feedback record: builds the
evaluation prompt, calls the LLM, clamps per-dimension scores to their
range, derives qualitative labels and computes the weighted overall score.

The LLM is asked for dimension scores only; the overall score is always
recomputed here so it stays consistent with the weights.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

import httpx
import structlog
from pydantic import ValidationError as PydanticValidationError

from roleplay.core.exceptions import GenerationError, LLMError
from roleplay.domain.models.conversation import Conversation
from roleplay.domain.models.feedback import DetailedFeedback, EvaluationScore, Feedback
from roleplay.domain.models.scenario import Scenario
from roleplay.llm.client import LLMClient
from roleplay.llm.prompts.feedback import (
    DEFAULT_DIMENSIONS,
    SCORE_LABELS,
    EvaluationDimension,
    get_feedback_system_prompt,
    get_feedback_user_prompt,
    parse_feedback_response,
)

log = structlog.get_logger(__name__)


def clamp_score(raw: Any, dimension: EvaluationDimension) -> int:
    """Clamp a raw score into the dimension range; missing or bad values become the midpoint."""
    midpoint = (dimension.min_score + dimension.max_score + 1) // 2
    try:
        value = int(round(float(raw)))
    except (TypeError, ValueError):
        return midpoint
    return min(dimension.max_score, max(dimension.min_score, value))


def weighted_overall_score(
    scores: Dict[str, int], dimensions: List[EvaluationDimension]
) -> int:
    """
    Weighted 0-100 score.

    Each dimension is normalized to 0..1 over its range and weighted.
    """
    total_weight = sum(d.weight for d in dimensions)
    if total_weight <= 0:
        return 0

    weighted_sum = 0.0
    for d in dimensions:
        score = scores.get(d.key, d.min_score)
        span = d.max_score - d.min_score
        normalized = (score - d.min_score) / span if span else 1.0
        weighted_sum += normalized * d.weight

    return round(weighted_sum / total_weight * 100)


def score_label(score: int) -> str:
    return SCORE_LABELS.get(score, "")


class FeedbackAnalyzer:
    """Synthesizes feedback for a conversation with an LLM."""

    def __init__(
        self,
        llm_client: LLMClient,
        dimensions: Optional[List[EvaluationDimension]] = None,
    ):
        self.llm = llm_client
        self.dimensions = dimensions or DEFAULT_DIMENSIONS

    async def analyze(
        self, conversation: Conversation, scenario: Optional[Scenario] = None
    ) -> Feedback:
        """
        Analyze a conversation.

        Args:
            conversation: Conversation with messages
            scenario: Scenario context for the prompt, if available

        Returns:
            Unsaved Feedback record

        Raises:
            GenerationError: LLM call failed or its reply was unusable
        """
        prompt = get_feedback_user_prompt(
            messages=conversation.messages,
            persona=conversation.persona_snapshot,
            scenario=scenario,
            dimensions=self.dimensions,
        )

        log.info(
            "feedback_analysis_start",
            conversation_id=conversation.id,
            message_count=len(conversation.messages),
            turn_count=conversation.turn_count,
        )

        try:
            response = await self.llm.complete(
                prompt=prompt, system=get_feedback_system_prompt()
            )
            data = parse_feedback_response(response.content)
            feedback = self._build_feedback(conversation.id, data)
        except LLMError as e:
            log.error(
                "feedback_analysis_failed",
                conversation_id=conversation.id,
                error_type=type(e).__name__,
                error=e.message,
            )
            raise GenerationError("Feedback synthesis failed", detail=e.message) from e
        except httpx.HTTPError as e:
            log.error(
                "feedback_analysis_failed",
                conversation_id=conversation.id,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise GenerationError("Feedback synthesis failed", detail=str(e)) from e
        except PydanticValidationError as e:
            log.error(
                "feedback_report_invalid",
                conversation_id=conversation.id,
                error_count=e.error_count(),
            )
            raise GenerationError(
                "Feedback report did not match the expected structure", detail=str(e)
            ) from e

        log.info(
            "feedback_analysis_complete",
            conversation_id=conversation.id,
            overall_score=feedback.overall_score,
            latency_ms=round(response.latency_ms, 2),
        )
        return feedback

    def _build_feedback(self, conversation_id: str, data: Dict[str, Any]) -> Feedback:
        raw_scores = data.get("scores") or {}
        commentary = data.get("dimension_feedback") or {}

        scores: Dict[str, int] = {}
        evaluation_scores = []
        for d in self.dimensions:
            score = clamp_score(raw_scores.get(d.key), d)
            scores[d.key] = score
            evaluation_scores.append(
                EvaluationScore(
                    category=d.key,
                    name=d.name,
                    score=score,
                    label=score_label(score),
                    feedback=str(commentary.get(d.key) or d.description),
                )
            )

        detailed = DetailedFeedback(
            summary=data.get("summary") or "",
            strengths=data.get("strengths") or [],
            improvements=data.get("improvements") or [],
            next_steps=data.get("next_steps") or [],
            behavior_guides=data.get("behavior_guides") or [],
            conversation_guides=data.get("conversation_guides") or [],
            development_plan=data.get("development_plan") or {},
            ranking=data.get("ranking") or data.get("summary"),
        )

        return Feedback(
            id=str(uuid4()),
            conversation_id=conversation_id,
            overall_score=weighted_overall_score(scores, self.dimensions),
            scores=evaluation_scores,
            detailed_feedback=detailed,
            created_at=datetime.now(),
        )
