"""Tests for FeedbackService synthesis and storage."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from roleplay.core.exceptions import (
    ConversationNotFoundError,
    FeedbackNotFoundError,
    GenerationError,
    ValidationError,
)
from roleplay.domain.models.conversation import Sender
from roleplay.services.conversation_service import ConversationService
from roleplay.services.feedback_service import FeedbackService


@pytest.fixture
def conversation_service(conversation_repo):
    return ConversationService(conversation_repo, turn_limit=10)


@pytest.fixture
def analyzer(make_feedback):
    analyzer = MagicMock()

    async def analyze(conversation, scenario=None):
        return make_feedback(conversation.id, overall_score=64)

    analyzer.analyze = AsyncMock(side_effect=analyze)
    return analyzer


@pytest.fixture
def service(feedback_repo, conversation_service, analyzer):
    return FeedbackService(
        feedback_repo,
        conversation_service,
        analyzer_factory=lambda: analyzer,
        min_turns_for_partial=3,
    )


async def new_conversation(conversation_service, turns=0, complete=False):
    conversation = await conversation_service.create_conversation(
        "deadline_negotiation", "dev_lead"
    )
    for i in range(turns):
        await conversation_service.append_message(conversation.id, Sender.USER, f"q{i}")
        await conversation_service.append_message(conversation.id, Sender.AI, f"a{i}")
    if complete:
        await conversation_service.complete_conversation(conversation.id)
    return conversation


async def test_get_missing_feedback_raises(service, conversation_service):
    conversation = await new_conversation(conversation_service)

    with pytest.raises(FeedbackNotFoundError):
        await service.get_feedback(conversation.id)


async def test_generate_stores_feedback(service, conversation_service, analyzer):
    conversation = await new_conversation(conversation_service, turns=1, complete=True)

    generated = await service.generate(conversation.id)
    fetched = await service.get_feedback(conversation.id)

    assert generated.overall_score == 64
    assert fetched.id == generated.id
    scenario = analyzer.analyze.await_args.args[1]
    assert scenario.id == "deadline_negotiation"


async def test_generate_returns_existing_without_analysis(service, conversation_service, analyzer):
    conversation = await new_conversation(conversation_service, complete=True)
    first = await service.generate(conversation.id)

    second = await service.generate(conversation.id)

    assert second.id == first.id
    assert analyzer.analyze.await_count == 1


async def test_unfinished_conversation_below_threshold_rejected(service, conversation_service, analyzer):
    conversation = await new_conversation(conversation_service, turns=2)

    with pytest.raises(ValidationError, match="not completed"):
        await service.generate(conversation.id)

    analyzer.analyze.assert_not_awaited()


async def test_partial_feedback_after_threshold(service, conversation_service):
    conversation = await new_conversation(conversation_service, turns=3)

    feedback = await service.generate(conversation.id)

    assert feedback.conversation_id == conversation.id


async def test_missing_conversation(service):
    with pytest.raises(ConversationNotFoundError):
        await service.generate("missing")


async def test_generation_error_stores_nothing(service, conversation_service, analyzer):
    analyzer.analyze.side_effect = GenerationError("Feedback synthesis failed", detail="boom")
    conversation = await new_conversation(conversation_service, complete=True)

    with pytest.raises(GenerationError):
        await service.generate(conversation.id)

    with pytest.raises(FeedbackNotFoundError):
        await service.get_feedback(conversation.id)


async def test_concurrent_generate_analyzes_once(service, conversation_service, analyzer, make_feedback):
    conversation = await new_conversation(conversation_service, complete=True)
    release = asyncio.Event()

    async def slow_analyze(conv, scenario=None):
        await release.wait()
        return make_feedback(conv.id)

    analyzer.analyze.side_effect = slow_analyze

    first = asyncio.create_task(service.generate(conversation.id))
    second = asyncio.create_task(service.generate(conversation.id))
    await asyncio.sleep(0.05)
    release.set()
    a, b = await asyncio.gather(first, second)

    assert a.id == b.id
    assert analyzer.analyze.await_count == 1
    assert service._locks == {}


async def test_analyzer_built_lazily(feedback_repo, conversation_service, analyzer):
    factory = MagicMock(return_value=analyzer)
    service = FeedbackService(feedback_repo, conversation_service, analyzer_factory=factory)
    conversation = await new_conversation(conversation_service, complete=True)

    with pytest.raises(FeedbackNotFoundError):
        await service.get_feedback(conversation.id)
    factory.assert_not_called()

    await service.generate(conversation.id)
    await service.generate(conversation.id)
    factory.assert_called_once()
