"""
Collaborator protocol definitions (interfaces).

The workflow controller and the feedback acquisition policy talk to their
collaborators only through these Protocols. Any transport satisfying the
signatures is conformant: the HTTP adapter in ui.api_client, or in-process
fakes in tests.

Error contract:
    - Transport or service failures raise TransientIOError.
    - IFeedbackSynthesizer.get_feedback raises FeedbackNotFoundError when no
      record exists yet; that is distinct from every other failure.
    - IFeedbackSynthesizer.generate_feedback raises GenerationError when the
      synthesis ran but failed.
"""

from typing import Protocol, List

from roleplay.domain.models.conversation import Conversation
from roleplay.domain.models.feedback import Feedback
from roleplay.domain.models.reflection import StrategyReflection
from roleplay.domain.models.scenario import PersonaSnapshot


class IConversationStore(Protocol):
    """
    Protocol for conversation persistence.

    Creates conversations for a (scenario, persona) pair and reads them back.
    """

    async def create_conversation(
        self,
        scenario_id: str,
        persona_id: str,
        persona_snapshot: PersonaSnapshot,
    ) -> Conversation:
        """
        Create a new active conversation with turn_count 0.

        Args:
            scenario_id: Scenario the conversation belongs to
            persona_id: Persona being engaged
            persona_snapshot: Persona attributes frozen at creation time

        Returns:
            The created Conversation
        """
        ...

    async def get_conversation(self, conversation_id: str) -> Conversation:
        """
        Get a conversation with its messages, turn count and status.

        Args:
            conversation_id: Conversation identifier

        Returns:
            Conversation record
        """
        ...


class IFeedbackSynthesizer(Protocol):
    """
    Protocol for feedback retrieval and synthesis.

    Synthesis is triggered by the caller, never computed by it.
    """

    async def get_feedback(self, conversation_id: str) -> Feedback:
        """
        Fetch the existing feedback record.

        Raises:
            FeedbackNotFoundError: No feedback exists for the conversation
            TransientIOError: Fetch failed for any other reason
        """
        ...

    async def generate_feedback(self, conversation_id: str) -> Feedback:
        """
        Synthesize feedback for a conversation (slow).

        Raises:
            GenerationError: Synthesis ran but failed
            TransientIOError: Request could not be completed
        """
        ...


class IReflectionStore(Protocol):
    """Protocol for strategy reflection persistence."""

    async def submit_reflection(
        self,
        conversation_id: str,
        reflection_text: str,
        conversation_order: List[str],
    ) -> StrategyReflection:
        """
        Persist a strategy reflection keyed by the representative conversation.

        Args:
            conversation_id: First conversation of the session
            reflection_text: Free-text reflection
            conversation_order: Persona ids in completion order

        Returns:
            Stored StrategyReflection
        """
        ...
