"""
Custom exception hierarchy for the training system.

All application exceptions inherit from TrainingSystemError.
"""

from typing import Optional


class TrainingSystemError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(TrainingSystemError):
    """Invalid or missing configuration."""

    pass


class ScenarioNotFoundError(TrainingSystemError):
    """Scenario does not exist in the catalog."""

    pass


# =============================================================================
# Workflow Errors
# =============================================================================


class GuardViolation(TrainingSystemError):
    """Attempted transition whose guard is false.

    Raised before any state change or network call. The caller shows it as
    inline validation; the session is unaffected.
    """

    pass


class ReflectionAlreadySubmittedError(GuardViolation):
    """A strategy reflection was already accepted for this session."""

    pass


class ValidationError(TrainingSystemError):
    """Input validation failed."""

    pass


# =============================================================================
# Conversation Errors
# =============================================================================


class ConversationError(TrainingSystemError):
    """Conversation-related error."""

    pass


class ConversationNotFoundError(ConversationError):
    """Conversation does not exist."""

    pass


class ConversationCompletedError(ConversationError):
    """Attempted to modify a completed conversation."""

    pass


# =============================================================================
# Feedback Errors
# =============================================================================


class FeedbackNotFoundError(TrainingSystemError):
    """No feedback exists yet for the conversation.

    Not a user-facing error: it is the trigger for synthesis.
    """

    pass


class GenerationError(TrainingSystemError):
    """Feedback synthesis completed but failed."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail


# =============================================================================
# Transport Errors
# =============================================================================


class TransientIOError(TrainingSystemError):
    """Network or service failure talking to a collaborator.

    Recoverable: the workflow stays in its pre-transition state.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# LLM Errors
# =============================================================================


class LLMError(TrainingSystemError):
    """Base for LLM-related errors."""

    pass


class LLMTimeoutError(LLMError):
    """LLM call timed out."""

    pass


class LLMRateLimitError(LLMError):
    """LLM rate limit exceeded."""

    pass


class LLMResponseParseError(LLMError):
    """Failed to parse LLM response."""

    pass
