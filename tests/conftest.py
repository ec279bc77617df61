"""
Shared test fixtures.

Temporary database, sample scenarios, and AsyncMock collaborators that
satisfy the conversation store, feedback synthesizer and reflection store
protocols.
"""

import itertools
import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from roleplay.core import scenario_loader
from roleplay.core.exceptions import FeedbackNotFoundError
from roleplay.domain.models.conversation import Conversation
from roleplay.domain.models.feedback import (
    DetailedFeedback,
    EvaluationScore,
    Feedback,
)
from roleplay.domain.models.reflection import StrategyReflection
from roleplay.domain.models.scenario import Persona, Scenario
from roleplay.persistence.database import init_database
from roleplay.persistence.repositories.conversation_repo import ConversationRepository
from roleplay.persistence.repositories.feedback_repo import FeedbackRepository
from roleplay.persistence.repositories.reflection_repo import ReflectionRepository
from roleplay.services.workflow.transitions import WorkflowRules
from roleplay.services.workflow_controller import WorkflowController


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
async def test_db():
    """Create and initialize test database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        await init_database(db_path)

        from roleplay.core import config

        original_path = config.settings.database_path
        config.settings.database_path = db_path

        with patch("roleplay.persistence.database.settings", config.settings):
            yield db_path

        config.settings.database_path = original_path


@pytest.fixture
async def conversation_repo(test_db):
    return ConversationRepository(str(test_db))


@pytest.fixture
async def feedback_repo(test_db):
    return FeedbackRepository(str(test_db))


@pytest.fixture
async def reflection_repo(test_db):
    return ReflectionRepository(str(test_db))


@pytest.fixture(autouse=True)
def clear_scenario_cache():
    """Scenario cache is module-level; keep tests independent."""
    scenario_loader.clear_cache()
    yield
    scenario_loader.clear_cache()


# =============================================================================
# Scenarios
# =============================================================================


def _persona(persona_id: str, name: str, role: str) -> Persona:
    return Persona(
        id=persona_id,
        name=name,
        role=role,
        department="Engineering",
        stance=f"{name} wants more time",
        goal="Protect quality",
        tradeoff="Accepts reduced scope",
    )


@pytest.fixture
def three_persona_scenario() -> Scenario:
    """Scenario with personas A, B, C in display order."""
    return Scenario(
        id="deadline_negotiation",
        title="Deadline negotiation",
        description="Agree on a release date",
        personas=(
            _persona("a", "Alex", "Dev lead"),
            _persona("b", "Blair", "QA lead"),
            _persona("c", "Casey", "Product manager"),
        ),
        objectives=("Agree on a date",),
    )


@pytest.fixture
def single_persona_scenario() -> Scenario:
    return Scenario(
        id="customer_escalation",
        title="Customer escalation",
        personas=(_persona("ops", "Morgan", "Operations manager"),),
    )


# =============================================================================
# Domain factories
# =============================================================================


@pytest.fixture
def make_feedback():
    """Factory for Feedback records."""

    def _make(conversation_id: str, overall_score: int = 72) -> Feedback:
        return Feedback(
            id=f"fb-{conversation_id}",
            conversation_id=conversation_id,
            overall_score=overall_score,
            scores=[
                EvaluationScore(
                    category="clarity_logic",
                    name="Clarity & Logic",
                    score=4,
                    label="Good",
                    feedback="Clear structure",
                )
            ],
            detailed_feedback=DetailedFeedback(summary="Solid conversation"),
            created_at=datetime(2026, 1, 1, 12, 0),
        )

    return _make


# =============================================================================
# Collaborator fakes
# =============================================================================


@pytest.fixture
def conversation_store():
    """AsyncMock conversation store that hands out conv-1, conv-2, ..."""
    store = AsyncMock()
    counter = itertools.count(1)

    async def create_conversation(scenario_id, persona_id, persona_snapshot):
        return Conversation(
            id=f"conv-{next(counter)}",
            scenario_id=scenario_id,
            persona_id=persona_id,
            persona_snapshot=persona_snapshot,
            created_at=datetime.now(),
        )

    store.create_conversation.side_effect = create_conversation
    return store


@pytest.fixture
def feedback_synthesizer(make_feedback):
    """
    AsyncMock synthesizer backed by a dict.

    get_feedback raises FeedbackNotFoundError until generate_feedback has
    stored a record for the conversation.
    """
    synthesizer = AsyncMock()
    synthesizer.records = {}

    async def get_feedback(conversation_id):
        if conversation_id not in synthesizer.records:
            raise FeedbackNotFoundError(f"No feedback for {conversation_id}")
        return synthesizer.records[conversation_id]

    async def generate_feedback(conversation_id):
        feedback = make_feedback(conversation_id)
        synthesizer.records[conversation_id] = feedback
        return feedback

    synthesizer.get_feedback.side_effect = get_feedback
    synthesizer.generate_feedback.side_effect = generate_feedback
    return synthesizer


@pytest.fixture
def reflection_store():
    store = AsyncMock()

    async def submit_reflection(conversation_id, reflection_text, conversation_order):
        return StrategyReflection(
            conversation_id=conversation_id,
            reflection=reflection_text,
            conversation_order=conversation_order,
        )

    store.submit_reflection.side_effect = submit_reflection
    return store


@pytest.fixture
def controller(conversation_store, feedback_synthesizer, reflection_store):
    """Controller with turn limit 10 and reflection minimum 50."""
    return WorkflowController(
        conversation_store=conversation_store,
        feedback_synthesizer=feedback_synthesizer,
        reflection_store=reflection_store,
        rules=WorkflowRules(reflection_min_length=50),
        turn_limit=10,
    )


@pytest.fixture
def valid_reflection() -> str:
    return (
        "I spoke to the dev lead first because the schedule depends on their "
        "estimate, then QA to size the test window."
    )
