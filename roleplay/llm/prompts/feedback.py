"""
Prompts for conversation feedback synthesis.

Builds an evaluation prompt over a transcript and a set of scoring
dimensions, and parses the JSON report the LLM returns. Scores are
requested per dimension only; the overall score is computed by
FeedbackAnalyzer from the dimension weights.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog

from roleplay.core.exceptions import LLMResponseParseError
from roleplay.domain.models.conversation import ConversationMessage, Sender
from roleplay.domain.models.scenario import PersonaSnapshot, Scenario

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EvaluationDimension:
    """One scored aspect of the trainee's communication."""

    key: str
    name: str
    description: str
    weight: float = 20.0
    min_score: int = 1
    max_score: int = 5


DEFAULT_DIMENSIONS: List[EvaluationDimension] = [
    EvaluationDimension(
        key="clarity_logic",
        name="Clarity & Logic",
        description="Structured statements, core message delivered, minimal ambiguity",
    ),
    EvaluationDimension(
        key="listening_empathy",
        name="Listening & Empathy",
        description="Restating and summarizing, recognizing emotions, respecting concerns",
    ),
    EvaluationDimension(
        key="appropriateness_adaptability",
        name="Appropriateness & Adaptability",
        description="Context-appropriate wording, flexible handling of conflict",
    ),
    EvaluationDimension(
        key="persuasiveness_impact",
        name="Persuasiveness & Impact",
        description="Logical grounds, use of examples, moving the other side to act",
    ),
    EvaluationDimension(
        key="strategic_communication",
        name="Strategic Communication",
        description="Goal-directed dialogue, negotiation and coordination, taking initiative",
    ),
]

# Qualitative label per score on the 1-5 scale
SCORE_LABELS: Dict[int, str] = {
    5: "Excellent",
    4: "Good",
    3: "Average",
    2: "Needs improvement",
    1: "Poor",
}


def get_feedback_system_prompt() -> str:
    return (
        "You are a communication assessment expert. You evaluate a trainee's side "
        "of a workplace roleplay conversation and write a detailed, evidence-based "
        "feedback report. Respond with a single JSON object and nothing else."
    )


def format_transcript(messages: List[ConversationMessage], persona_name: str) -> str:
    lines = []
    for msg in messages:
        speaker = "Trainee" if msg.sender == Sender.USER else persona_name
        lines.append(f"{speaker}: {msg.message}")
    return "\n".join(lines)


def get_feedback_user_prompt(
    messages: List[ConversationMessage],
    persona: PersonaSnapshot,
    scenario: Optional[Scenario] = None,
    dimensions: Optional[List[EvaluationDimension]] = None,
) -> str:
    """
    Build the evaluation prompt for one conversation.

    Args:
        messages: Transcript in order
        persona: Persona the trainee talked to (snapshot at creation)
        scenario: Scenario for objectives and success criteria, if known
        dimensions: Scoring dimensions (defaults to DEFAULT_DIMENSIONS)

    Returns:
        User prompt string
    """
    dimensions = dimensions or DEFAULT_DIMENSIONS

    dimension_lines = "\n".join(
        f"{i}. {d.name} ({d.key}): {d.description} "
        f"[{d.min_score}-{d.max_score}, weight {d.weight:g}%]"
        for i, d in enumerate(dimensions, 1)
    )

    # Varied example scores discourage identical scores across dimensions
    example_scores = [2, 4, 3, 5, 1]
    scores_example = ", ".join(
        f'"{d.key}": {example_scores[i % len(example_scores)]}'
        for i, d in enumerate(dimensions)
    )
    dimension_feedback_example = ", ".join(
        f'"{d.key}": "two or more sentences citing what the trainee said"'
        for d in dimensions
    )

    scenario_section = ""
    if scenario is not None:
        objectives = "\n".join(f"- {o}" for o in scenario.objectives) or "- (none listed)"
        scenario_section = (
            f"## Scenario: {scenario.title}\n{scenario.description}\n\n"
            f"Objectives:\n{objectives}\n\n"
            f"Success criteria: {scenario.success_criteria or '(none listed)'}\n\n"
        )

    return f"""{scenario_section}## Persona
- Name: {persona.name}
- Role: {persona.role} ({persona.department})
- Stance: {persona.stance}
- Goal: {persona.goal}
- Acceptable tradeoff: {persona.tradeoff}

## Conversation
{format_transcript(messages, persona.name)}

## Evaluation dimensions
{dimension_lines}

## Rules
- Score every dimension independently; identical scores across all dimensions are not acceptable.
- Write the dimension feedback first, quoting the trainee, then choose the score from it.
- Use the whole {dimensions[0].min_score}-{dimensions[0].max_score} range.
- summary: at least three sentences. strengths, improvements, next_steps: at least three items each.
- behavior_guides: at least three. conversation_guides: at least two, with concrete good and bad replies.
- development_plan: at least one item per stage, each with a measurable target.

Respond with JSON in exactly this shape:
{{
  "scores": {{{scores_example}}},
  "dimension_feedback": {{{dimension_feedback_example}}},
  "summary": "...",
  "strengths": ["..."],
  "improvements": ["..."],
  "next_steps": ["..."],
  "ranking": "expert commentary, three or more sentences",
  "behavior_guides": [{{"situation": "...", "action": "...", "example": "...", "impact": "..."}}],
  "conversation_guides": [{{"scenario": "...", "good_example": "...", "bad_example": "...", "key_points": ["..."]}}],
  "development_plan": {{
    "short_term": [{{"goal": "...", "actions": ["..."], "measurable": "..."}}],
    "medium_term": [{{"goal": "...", "actions": ["..."], "measurable": "..."}}],
    "long_term": [{{"goal": "...", "actions": ["..."], "measurable": "..."}}],
    "recommended_resources": ["..."]
  }}
}}"""


_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


def parse_feedback_response(content: str) -> Dict[str, Any]:
    """
    Parse the LLM's JSON report.

    Tolerates markdown code fences and leading/trailing prose around the
    JSON object.

    Raises:
        LLMResponseParseError: No JSON object could be decoded
    """
    text = _FENCE.sub("", content.strip()).strip()

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise LLMResponseParseError("No JSON object in feedback response")

    try:
        data = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        log.warning("feedback_response_parse_failed", error=str(e), length=len(content))
        raise LLMResponseParseError(f"Invalid JSON in feedback response: {e}") from e

    if not isinstance(data, dict):
        raise LLMResponseParseError("Feedback response is not a JSON object")
    return data
