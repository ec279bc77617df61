"""Tests for FeedbackAcquisitionPolicy fetch-then-generate behavior."""

import asyncio

import pytest

from roleplay.core.exceptions import (
    GenerationError,
    LLMTimeoutError,
    TransientIOError,
    ValidationError,
)
from roleplay.services.feedback_acquisition import (
    AcquisitionStatus,
    FeedbackAcquisitionPolicy,
)


@pytest.fixture
def policy(feedback_synthesizer):
    return FeedbackAcquisitionPolicy(feedback_synthesizer)


async def test_existing_feedback_returned_without_generation(
    policy, feedback_synthesizer, make_feedback
):
    feedback_synthesizer.records["c1"] = make_feedback("c1", overall_score=81)

    outcome = await policy.acquire("c1")

    assert outcome.status == AcquisitionStatus.READY
    assert outcome.feedback.overall_score == 81
    feedback_synthesizer.generate_feedback.assert_not_awaited()


async def test_missing_feedback_generates_exactly_once(policy, feedback_synthesizer):
    outcome = await policy.acquire("c1")

    assert outcome.is_ready
    assert outcome.feedback.conversation_id == "c1"
    feedback_synthesizer.generate_feedback.assert_awaited_once_with("c1")
    # Fetched before generation and once more afterwards
    assert feedback_synthesizer.get_feedback.await_count == 2


async def test_refetch_miss_falls_back_to_generated(policy, feedback_synthesizer, make_feedback):
    async def generate_without_storing(conversation_id):
        return make_feedback(conversation_id, overall_score=55)

    feedback_synthesizer.generate_feedback.side_effect = generate_without_storing

    outcome = await policy.acquire("c1")

    assert outcome.is_ready
    assert outcome.feedback.overall_score == 55


async def test_other_fetch_error_does_not_generate(policy, feedback_synthesizer):
    feedback_synthesizer.get_feedback.side_effect = TransientIOError("503 from server", 503)

    outcome = await policy.acquire("c1")

    assert outcome.is_failed
    assert outcome.error_type == "TransientIOError"
    feedback_synthesizer.generate_feedback.assert_not_awaited()


async def test_generation_error_reported_with_detail(policy, feedback_synthesizer):
    feedback_synthesizer.generate_feedback.side_effect = GenerationError(
        "Feedback synthesis failed", detail="LLM timed out"
    )

    outcome = await policy.acquire("c1")

    assert outcome.status == AcquisitionStatus.FAILED
    assert outcome.error == "Feedback synthesis failed: LLM timed out"
    assert outcome.error_type == "GenerationError"
    assert policy.is_pending("c1") is False


@pytest.mark.parametrize(
    "error",
    [
        ValidationError("Conversation has too few turns for feedback"),
        LLMTimeoutError("LLM request timed out"),
        TransientIOError("502 from server", 502),
    ],
)
async def test_any_generation_failure_becomes_failed_outcome(policy, feedback_synthesizer, error):
    feedback_synthesizer.generate_feedback.side_effect = error

    outcome = await policy.acquire("c1")

    assert outcome.is_failed
    assert outcome.error_type == type(error).__name__
    assert policy.is_pending("c1") is False


async def test_concurrent_acquire_same_conversation_is_pending(policy, feedback_synthesizer):
    release = asyncio.Event()
    started = asyncio.Event()
    original = feedback_synthesizer.generate_feedback.side_effect

    async def slow_generate(conversation_id):
        started.set()
        await release.wait()
        return await original(conversation_id)

    feedback_synthesizer.generate_feedback.side_effect = slow_generate

    first = asyncio.create_task(policy.acquire("c1"))
    await started.wait()

    second = await policy.acquire("c1")
    assert second.status == AcquisitionStatus.PENDING

    release.set()
    assert (await first).is_ready
    assert feedback_synthesizer.generate_feedback.await_count == 1
    assert policy.is_pending("c1") is False


async def test_different_conversations_do_not_contend(policy, feedback_synthesizer):
    release = asyncio.Event()
    started = asyncio.Event()
    original = feedback_synthesizer.generate_feedback.side_effect

    async def generate(conversation_id):
        if conversation_id == "slow":
            started.set()
            await release.wait()
        return await original(conversation_id)

    feedback_synthesizer.generate_feedback.side_effect = generate

    slow = asyncio.create_task(policy.acquire("slow"))
    await started.wait()

    fast = await policy.acquire("fast")
    assert fast.is_ready

    release.set()
    assert (await slow).is_ready
