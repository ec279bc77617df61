"""Strategy reflection repository for database operations."""

import json
from datetime import datetime
from typing import Optional

import aiosqlite
import structlog

from roleplay.core.exceptions import ReflectionAlreadySubmittedError
from roleplay.domain.models.reflection import StrategyReflection

log = structlog.get_logger(__name__)


class ReflectionRepository:
    """Repository for strategy reflections, keyed by representative conversation."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    async def create(self, reflection: StrategyReflection) -> StrategyReflection:
        """
        Store a reflection.

        Raises:
            ReflectionAlreadySubmittedError: A reflection exists for the conversation
        """
        created_at = reflection.created_at or datetime.now()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    "INSERT INTO strategy_reflections (conversation_id, reflection, "
                    "conversation_order, created_at) VALUES (?, ?, ?, ?)",
                    (
                        reflection.conversation_id,
                        reflection.reflection,
                        json.dumps(reflection.conversation_order),
                        created_at.isoformat(),
                    ),
                )
                await db.commit()
        except aiosqlite.IntegrityError as e:
            if "UNIQUE" not in str(e) and "PRIMARY KEY" not in str(e):
                raise
            raise ReflectionAlreadySubmittedError(
                f"Strategy reflection already submitted for conversation {reflection.conversation_id}"
            ) from e

        log.info(
            "strategy_reflection_stored",
            conversation_id=reflection.conversation_id,
            order_length=len(reflection.conversation_order),
        )
        return reflection.model_copy(update={"created_at": created_at})

    async def get(self, conversation_id: str) -> Optional[StrategyReflection]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM strategy_reflections WHERE conversation_id = ?",
                (conversation_id,),
            )
            row = await cursor.fetchone()
            if not row:
                return None
            return StrategyReflection(
                conversation_id=row["conversation_id"],
                reflection=row["reflection"],
                conversation_order=json.loads(row["conversation_order"]),
                created_at=datetime.fromisoformat(row["created_at"]),
            )
