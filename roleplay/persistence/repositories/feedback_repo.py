"""Feedback repository for database operations."""

import json
from datetime import datetime
from typing import Optional

import aiosqlite
import structlog

from roleplay.domain.models.feedback import DetailedFeedback, EvaluationScore, Feedback

log = structlog.get_logger(__name__)


class FeedbackRepository:
    """Repository for feedback records (one per conversation)."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    async def get_by_conversation(self, conversation_id: str) -> Optional[Feedback]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM feedback WHERE conversation_id = ?", (conversation_id,)
            )
            row = await cursor.fetchone()
            if not row:
                return None
            return self._row_to_feedback(row)

    async def create(self, feedback: Feedback) -> Feedback:
        """
        Store a feedback record.

        If a record already exists for the conversation it is kept and
        returned instead; the uniqueness constraint is never violated.
        """
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "INSERT INTO feedback (id, conversation_id, overall_score, scores, "
                "detailed_feedback, created_at) VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(conversation_id) DO NOTHING",
                (
                    feedback.id,
                    feedback.conversation_id,
                    feedback.overall_score,
                    json.dumps([s.model_dump() for s in feedback.scores]),
                    feedback.detailed_feedback.model_dump_json(),
                    (feedback.created_at or datetime.now()).isoformat(),
                ),
            )
            inserted = cursor.rowcount > 0
            await db.commit()

            cursor = await db.execute(
                "SELECT * FROM feedback WHERE conversation_id = ?",
                (feedback.conversation_id,),
            )
            row = await cursor.fetchone()

        if not inserted:
            log.warning(
                "feedback_already_stored",
                conversation_id=feedback.conversation_id,
                kept_id=row["id"],
            )
        return self._row_to_feedback(row)

    def _row_to_feedback(self, row: aiosqlite.Row) -> Feedback:
        return Feedback(
            id=row["id"],
            conversation_id=row["conversation_id"],
            overall_score=row["overall_score"],
            scores=[EvaluationScore(**s) for s in json.loads(row["scores"])],
            detailed_feedback=DetailedFeedback.model_validate_json(row["detailed_feedback"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
