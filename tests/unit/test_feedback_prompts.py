"""Tests for feedback prompt building and response parsing."""

import pytest

from roleplay.core.exceptions import LLMResponseParseError
from roleplay.domain.models.conversation import ConversationMessage, Sender
from roleplay.llm.prompts.feedback import (
    DEFAULT_DIMENSIONS,
    format_transcript,
    get_feedback_user_prompt,
    parse_feedback_response,
)


@pytest.fixture
def messages():
    return [
        ConversationMessage(sender=Sender.USER, message="Can we move the date?"),
        ConversationMessage(sender=Sender.AI, message="Not without cutting scope."),
    ]


def test_transcript_labels_speakers(messages):
    transcript = format_transcript(messages, "Alex")

    assert transcript == "Trainee: Can we move the date?\nAlex: Not without cutting scope."


def test_user_prompt_lists_every_dimension(messages, three_persona_scenario):
    persona = three_persona_scenario.personas[0].snapshot()

    prompt = get_feedback_user_prompt(messages, persona, scenario=three_persona_scenario)

    for d in DEFAULT_DIMENSIONS:
        assert d.key in prompt
        assert d.name in prompt
    assert "## Scenario: Deadline negotiation" in prompt
    assert "- Agree on a date" in prompt
    assert "Alex: Not without cutting scope." in prompt


def test_user_prompt_without_scenario(messages, three_persona_scenario):
    persona = three_persona_scenario.personas[0].snapshot()

    prompt = get_feedback_user_prompt(messages, persona)

    assert "## Scenario" not in prompt
    assert prompt.startswith("## Persona")


class TestParseFeedbackResponse:
    def test_plain_json(self):
        assert parse_feedback_response('{"summary": "ok"}') == {"summary": "ok"}

    def test_fenced_json(self):
        content = '```json\n{"scores": {"clarity_logic": 4}}\n```'

        assert parse_feedback_response(content) == {"scores": {"clarity_logic": 4}}

    def test_surrounding_prose(self):
        content = 'Here is the report:\n{"summary": "fine"}\nLet me know.'

        assert parse_feedback_response(content)["summary"] == "fine"

    def test_no_json_raises(self):
        with pytest.raises(LLMResponseParseError):
            parse_feedback_response("I cannot evaluate this conversation.")

    def test_invalid_json_raises(self):
        with pytest.raises(LLMResponseParseError, match="Invalid JSON"):
            parse_feedback_response('{"summary": "unterminated}')
