"""
Feedback acquisition policy.

Fetch-then-generate for a single conversation:

1. Fetch the feedback record. Found -> return it, no synthesis.
2. FeedbackNotFoundError -> trigger synthesis exactly once, then fetch again.
3. Any other fetch error -> no synthesis; the outcome is FAILED and the
   caller offers a manual retry. A failed synthesis is reported the same way.
4. A retry while a request for the same conversation is still in flight is
   a no-op that reports PENDING.

The in-flight set is keyed by conversation id, so acquisitions for
different conversations never contend.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Set

import structlog

from roleplay.core.exceptions import (
    FeedbackNotFoundError,
    TrainingSystemError,
)
from roleplay.domain.models.feedback import Feedback
from roleplay.services.protocols import IFeedbackSynthesizer

log = structlog.get_logger(__name__)


class AcquisitionStatus(str, Enum):
    READY = "ready"
    PENDING = "pending"
    FAILED = "failed"


@dataclass
class FeedbackOutcome:
    """Result of one acquire() call."""

    conversation_id: str
    status: AcquisitionStatus
    feedback: Optional[Feedback] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.status == AcquisitionStatus.READY

    @property
    def is_failed(self) -> bool:
        return self.status == AcquisitionStatus.FAILED


class FeedbackAcquisitionPolicy:
    """Obtains feedback for a conversation, synthesizing it at most once."""

    def __init__(self, synthesizer: IFeedbackSynthesizer):
        """
        Args:
            synthesizer: Feedback store able to fetch and generate records
        """
        self.synthesizer = synthesizer
        self._in_flight: Set[str] = set()

    def is_pending(self, conversation_id: str) -> bool:
        return conversation_id in self._in_flight

    async def acquire(self, conversation_id: str) -> FeedbackOutcome:
        """
        Return the feedback for a conversation, generating it if absent.

        Never raises for collaborator failures; they are reported in the
        outcome so the feedback view can offer a retry.

        Args:
            conversation_id: Conversation to obtain feedback for

        Returns:
            FeedbackOutcome with READY, PENDING or FAILED status
        """
        if conversation_id in self._in_flight:
            log.info("feedback_acquire_pending", conversation_id=conversation_id)
            return FeedbackOutcome(
                conversation_id=conversation_id, status=AcquisitionStatus.PENDING
            )

        self._in_flight.add(conversation_id)
        try:
            return await self._acquire(conversation_id)
        finally:
            self._in_flight.discard(conversation_id)

    async def _acquire(self, conversation_id: str) -> FeedbackOutcome:
        try:
            feedback = await self.synthesizer.get_feedback(conversation_id)
            log.info("feedback_found", conversation_id=conversation_id)
            return self._ready(conversation_id, feedback)
        except FeedbackNotFoundError:
            log.info("feedback_missing_generating", conversation_id=conversation_id)
        except TrainingSystemError as e:
            log.warning(
                "feedback_fetch_failed",
                conversation_id=conversation_id,
                error_type=type(e).__name__,
                error=e.message,
            )
            return self._failed(conversation_id, e)

        try:
            generated = await self.synthesizer.generate_feedback(conversation_id)
        except TrainingSystemError as e:
            log.error(
                "feedback_generation_failed",
                conversation_id=conversation_id,
                error_type=type(e).__name__,
                error=e.message,
            )
            return self._failed(conversation_id, e)

        # Re-fetch so the view shows the stored record
        try:
            feedback = await self.synthesizer.get_feedback(conversation_id)
        except FeedbackNotFoundError:
            log.warning("feedback_refetch_missing", conversation_id=conversation_id)
            feedback = generated
        except TrainingSystemError as e:
            log.warning(
                "feedback_refetch_failed",
                conversation_id=conversation_id,
                error=e.message,
            )
            feedback = generated

        log.info(
            "feedback_generated",
            conversation_id=conversation_id,
            overall_score=feedback.overall_score,
        )
        return self._ready(conversation_id, feedback)

    @staticmethod
    def _ready(conversation_id: str, feedback: Feedback) -> FeedbackOutcome:
        return FeedbackOutcome(
            conversation_id=conversation_id,
            status=AcquisitionStatus.READY,
            feedback=feedback,
        )

    @staticmethod
    def _failed(conversation_id: str, error: TrainingSystemError) -> FeedbackOutcome:
        message = error.message
        detail = getattr(error, "detail", None)
        if detail:
            message = f"{message}: {detail}"
        return FeedbackOutcome(
            conversation_id=conversation_id,
            status=AcquisitionStatus.FAILED,
            error=message,
            error_type=type(error).__name__,
        )
