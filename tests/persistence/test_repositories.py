"""Tests for the conversation, feedback and reflection repositories."""

from datetime import datetime, timedelta

import pytest

from roleplay.core.exceptions import ReflectionAlreadySubmittedError
from roleplay.domain.models.conversation import (
    Conversation,
    ConversationMessage,
    ConversationStatus,
    Sender,
)
from roleplay.domain.models.reflection import StrategyReflection


@pytest.fixture
def persona(three_persona_scenario):
    return three_persona_scenario.personas[0]


@pytest.fixture
async def conversation(conversation_repo, persona):
    conv = Conversation(
        id="conv-1",
        scenario_id="deadline_negotiation",
        persona_id=persona.id,
        persona_snapshot=persona.snapshot(),
        created_at=datetime(2026, 3, 1, 9, 0),
    )
    return await conversation_repo.create(conv)


class TestConversationRepository:
    async def test_create_and_get(self, conversation_repo, conversation, persona):
        fetched = await conversation_repo.get("conv-1")

        assert fetched.persona_snapshot == persona.snapshot()
        assert fetched.status == ConversationStatus.ACTIVE
        assert fetched.messages == []

    async def test_get_missing_returns_none(self, conversation_repo):
        assert await conversation_repo.get("nope") is None

    async def test_messages_returned_in_insertion_order(self, conversation_repo, conversation):
        for i, sender in enumerate([Sender.USER, Sender.AI, Sender.USER]):
            await conversation_repo.add_message(
                "conv-1",
                ConversationMessage(
                    sender=sender,
                    message=f"m{i}",
                    timestamp=datetime(2026, 3, 1, 9, 0, 0),
                ),
            )

        fetched = await conversation_repo.get("conv-1")

        assert [m.message for m in fetched.messages] == ["m0", "m1", "m2"]

    async def test_turn_count_never_decreases(self, conversation_repo, conversation):
        await conversation_repo.update_progress("conv-1", 4, ConversationStatus.ACTIVE)
        await conversation_repo.update_progress("conv-1", 2, ConversationStatus.ACTIVE)

        fetched = await conversation_repo.get("conv-1")
        assert fetched.turn_count == 4

    async def test_completed_at_set_once(self, conversation_repo, conversation):
        first = datetime(2026, 3, 1, 10, 0)
        await conversation_repo.update_progress("conv-1", 1, ConversationStatus.COMPLETED, first)
        await conversation_repo.update_progress(
            "conv-1", 1, ConversationStatus.COMPLETED, first + timedelta(hours=1)
        )

        fetched = await conversation_repo.get("conv-1")
        assert fetched.completed_at == first
        assert fetched.is_completed

    async def test_list_by_scenario_newest_first(self, conversation_repo, conversation, persona):
        later = conversation.model_copy(
            update={"id": "conv-2", "created_at": datetime(2026, 3, 2, 9, 0)}
        )
        await conversation_repo.create(later)

        listed = await conversation_repo.list_by_scenario("deadline_negotiation")

        assert [c.id for c in listed] == ["conv-2", "conv-1"]
        assert await conversation_repo.list_by_scenario("other") == []


class TestFeedbackRepository:
    async def test_create_and_get(self, feedback_repo, conversation, make_feedback):
        stored = await feedback_repo.create(make_feedback("conv-1"))
        fetched = await feedback_repo.get_by_conversation("conv-1")

        assert fetched == stored
        assert fetched.scores[0].label == "Good"
        assert fetched.detailed_feedback.summary == "Solid conversation"

    async def test_missing_returns_none(self, feedback_repo):
        assert await feedback_repo.get_by_conversation("conv-1") is None

    async def test_second_record_keeps_first(self, feedback_repo, conversation, make_feedback):
        first = await feedback_repo.create(make_feedback("conv-1", overall_score=70))
        duplicate = make_feedback("conv-1", overall_score=20).model_copy(update={"id": "fb-other"})

        kept = await feedback_repo.create(duplicate)

        assert kept.id == first.id
        assert kept.overall_score == 70


class TestReflectionRepository:
    async def test_create_and_get(self, reflection_repo, conversation):
        reflection = StrategyReflection(
            conversation_id="conv-1",
            reflection="Started with the dev lead to anchor the estimate.",
            conversation_order=["a", "c", "b"],
        )

        stored = await reflection_repo.create(reflection)
        fetched = await reflection_repo.get("conv-1")

        assert stored.created_at is not None
        assert fetched.conversation_order == ["a", "c", "b"]
        assert fetched.reflection == reflection.reflection

    async def test_second_reflection_rejected(self, reflection_repo, conversation):
        reflection = StrategyReflection(
            conversation_id="conv-1", reflection="first", conversation_order=["a"]
        )
        await reflection_repo.create(reflection)

        with pytest.raises(ReflectionAlreadySubmittedError):
            await reflection_repo.create(reflection.model_copy(update={"reflection": "second"}))

    async def test_missing_returns_none(self, reflection_repo):
        assert await reflection_repo.get("conv-1") is None
