"""Tests for FeedbackAnalyzer scoring and error mapping."""

import json
from datetime import datetime

import httpx
import pytest

from roleplay.core.exceptions import GenerationError, LLMTimeoutError
from roleplay.domain.models.conversation import Conversation, ConversationMessage, Sender
from roleplay.llm.client import LLMClient, LLMResponse
from roleplay.llm.prompts.feedback import DEFAULT_DIMENSIONS, EvaluationDimension
from roleplay.services.feedback_analyzer import (
    FeedbackAnalyzer,
    clamp_score,
    weighted_overall_score,
)


class FakeLLM(LLMClient):
    """Returns a canned reply, or raises the configured error."""

    def __init__(self, content: str = "", error: Exception = None):
        self.content = content
        self.error = error
        self.prompts = []

    async def complete(self, prompt, system=None, temperature=None, max_tokens=None, timeout=None):
        self.prompts.append((system, prompt))
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.content, model="fake", latency_ms=1.0)


def report(scores, **extra) -> str:
    body = {
        "scores": scores,
        "dimension_feedback": {"clarity_logic": "You opened with the key ask."},
        "summary": "Good start.",
        "strengths": ["Clear ask"],
        "improvements": ["Acknowledge concerns"],
        "next_steps": ["Practice summarizing"],
    }
    body.update(extra)
    return json.dumps(body)


@pytest.fixture
def conversation(three_persona_scenario):
    persona = three_persona_scenario.personas[0]
    return Conversation(
        id="conv-1",
        scenario_id=three_persona_scenario.id,
        persona_id=persona.id,
        persona_snapshot=persona.snapshot(),
        messages=[
            ConversationMessage(sender=Sender.USER, message="We need to ship on the 1st."),
            ConversationMessage(sender=Sender.AI, message="That is not realistic."),
        ],
        turn_count=1,
        created_at=datetime(2026, 1, 1),
    )


class TestScoring:
    def test_clamp_into_range(self):
        d = DEFAULT_DIMENSIONS[0]

        assert clamp_score(7, d) == 5
        assert clamp_score(0, d) == 1
        assert clamp_score("4", d) == 4
        assert clamp_score(3.6, d) == 4

    def test_clamp_bad_value_uses_midpoint(self):
        d = DEFAULT_DIMENSIONS[0]

        assert clamp_score(None, d) == 3
        assert clamp_score("high", d) == 3

    @pytest.mark.parametrize(
        "value,expected",
        [(5, 100), (1, 0), (3, 50)],
    )
    def test_uniform_scores(self, value, expected):
        scores = {d.key: value for d in DEFAULT_DIMENSIONS}

        assert weighted_overall_score(scores, DEFAULT_DIMENSIONS) == expected

    def test_weights_shift_overall(self):
        dims = [
            EvaluationDimension(key="a", name="A", description="", weight=75),
            EvaluationDimension(key="b", name="B", description="", weight=25),
        ]

        assert weighted_overall_score({"a": 5, "b": 1}, dims) == 75

    def test_zero_weight_is_zero(self):
        dims = [EvaluationDimension(key="a", name="A", description="", weight=0)]

        assert weighted_overall_score({"a": 5}, dims) == 0


class TestAnalyze:
    async def test_builds_feedback_from_report(self, conversation, three_persona_scenario):
        scores = {
            "clarity_logic": 2,
            "listening_empathy": 4,
            "appropriateness_adaptability": 3,
            "persuasiveness_impact": 5,
            "strategic_communication": 1,
        }
        llm = FakeLLM(report(scores))

        feedback = await FeedbackAnalyzer(llm).analyze(conversation, three_persona_scenario)

        assert feedback.conversation_id == "conv-1"
        assert feedback.overall_score == 50
        assert [s.category for s in feedback.scores] == [d.key for d in DEFAULT_DIMENSIONS]
        clarity = feedback.scores[0]
        assert clarity.label == "Needs improvement"
        assert clarity.feedback == "You opened with the key ask."
        assert feedback.detailed_feedback.strengths == ["Clear ask"]
        assert "Trainee: We need to ship on the 1st." in llm.prompts[0][1]

    async def test_llm_overall_score_ignored(self, conversation):
        scores = {d.key: 5 for d in DEFAULT_DIMENSIONS}
        llm = FakeLLM(report(scores, overall_score=12))

        feedback = await FeedbackAnalyzer(llm).analyze(conversation)

        assert feedback.overall_score == 100

    async def test_llm_error_becomes_generation_error(self, conversation):
        llm = FakeLLM(error=LLMTimeoutError("timed out"))

        with pytest.raises(GenerationError) as exc_info:
            await FeedbackAnalyzer(llm).analyze(conversation)

        assert exc_info.value.detail == "timed out"

    async def test_http_error_becomes_generation_error(self, conversation):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        response = httpx.Response(500, request=request)
        llm = FakeLLM(error=httpx.HTTPStatusError("server error", request=request, response=response))

        with pytest.raises(GenerationError):
            await FeedbackAnalyzer(llm).analyze(conversation)

    async def test_unparseable_reply_becomes_generation_error(self, conversation):
        llm = FakeLLM("Sorry, I cannot do that.")

        with pytest.raises(GenerationError, match="Feedback synthesis failed"):
            await FeedbackAnalyzer(llm).analyze(conversation)

    async def test_malformed_sections_become_generation_error(self, conversation):
        scores = {d.key: 3 for d in DEFAULT_DIMENSIONS}
        llm = FakeLLM(report(scores, behavior_guides=[{"unexpected": "shape"}]))

        with pytest.raises(GenerationError, match="expected structure"):
            await FeedbackAnalyzer(llm).analyze(conversation)
