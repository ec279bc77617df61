from roleplay.llm.prompts.feedback import (
    DEFAULT_DIMENSIONS,
    EvaluationDimension,
    get_feedback_system_prompt,
    get_feedback_user_prompt,
    parse_feedback_response,
)

__all__ = [
    "DEFAULT_DIMENSIONS",
    "EvaluationDimension",
    "get_feedback_system_prompt",
    "get_feedback_user_prompt",
    "parse_feedback_response",
]
