"""
Workflow controller for training sessions.

Drives the state machine in roleplay.services.workflow against the three
collaborator protocols. It is the only writer of SessionState: every action
validates its guard first, performs at most one collaborator call, and then
replaces the state with the result of transition().

Concurrency model:
    - One action at a time (is_busy). A second action while busy raises
      GuardViolation; exit() is always accepted.
    - exit() never cancels an in-flight call. Each action captures the
      session epoch before suspending and drops its result if the epoch has
      moved on by the time the call returns.
"""

from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Tuple

import structlog

from roleplay.core.config import training_config
from roleplay.core.exceptions import GuardViolation
from roleplay.core.logging import action_context
from roleplay.domain.models.conversation import CompletionReason, Conversation
from roleplay.domain.models.reflection import StrategyReflection
from roleplay.domain.models.scenario import Persona, Scenario
from roleplay.domain.models.session_state import NextAction, SessionState, View
from roleplay.services.feedback_acquisition import (
    AcquisitionStatus,
    FeedbackAcquisitionPolicy,
    FeedbackOutcome,
)
from roleplay.services.protocols import (
    IConversationStore,
    IFeedbackSynthesizer,
    IReflectionStore,
)
from roleplay.services.workflow import transitions
from roleplay.services.workflow.events import (
    ContinueRequested,
    ConversationEnded,
    ExitRequested,
    FeedbackReceived,
    PersonaChosen,
    ReflectionAccepted,
    RetryStarted,
    ScenarioChosen,
    WorkflowEvent,
)
from roleplay.services.workflow.transitions import WorkflowRules

log = structlog.get_logger(__name__)


class WorkflowController:
    """Single-session training workflow driver."""

    def __init__(
        self,
        conversation_store: IConversationStore,
        feedback_synthesizer: IFeedbackSynthesizer,
        reflection_store: IReflectionStore,
        rules: Optional[WorkflowRules] = None,
        turn_limit: Optional[int] = None,
    ):
        """
        Initialize controller in the scenario-selection view.

        Args:
            conversation_store: Creates and reads conversations
            feedback_synthesizer: Fetches and generates feedback
            reflection_store: Persists strategy reflections
            rules: Guard constants (defaults to training_config.yaml)
            turn_limit: Turns per conversation (defaults to training_config.yaml)
        """
        self.conversation_store = conversation_store
        self.reflection_store = reflection_store
        self.feedback_policy = FeedbackAcquisitionPolicy(feedback_synthesizer)
        self.rules = rules or WorkflowRules(
            reflection_min_length=training_config.reflection.min_length
        )
        self.turn_limit = turn_limit or training_config.session.turn_limit

        self._state = SessionState()
        self._busy_epoch: Optional[int] = None
        self._feedback: Dict[str, FeedbackOutcome] = {}

    # ==========================================================================
    # Read-only view of the session
    # ==========================================================================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current_view(self) -> View:
        return self._state.current_view

    @property
    def selected_scenario(self) -> Optional[Scenario]:
        return self._state.selected_scenario

    @property
    def selected_persona(self) -> Optional[Persona]:
        return self._state.selected_persona

    @property
    def active_conversation_id(self) -> Optional[str]:
        return self._state.active_conversation_id

    @property
    def completed_persona_ids(self) -> Tuple[str, ...]:
        return self._state.completed_persona_ids

    @property
    def conversation_ids(self) -> Tuple[str, ...]:
        return self._state.conversation_ids

    @property
    def completed_personas(self) -> List[Persona]:
        """Completed personas in completion order."""
        scenario = self._state.selected_scenario
        if scenario is None:
            return []
        personas = []
        for persona_id in self._state.completed_persona_ids:
            persona = scenario.get_persona(persona_id)
            if persona is not None:
                personas.append(persona)
        return personas

    @property
    def available_personas(self) -> Tuple[Persona, ...]:
        return transitions.available_personas(self._state)

    @property
    def next_action(self) -> NextAction:
        return transitions.next_action(self._state)

    @property
    def reflection_submitted(self) -> bool:
        return self._state.reflection_submitted

    @property
    def submitted_reflection(self) -> Optional[str]:
        return self._state.submitted_reflection

    @property
    def is_busy(self) -> bool:
        return self._busy_epoch is not None and self._busy_epoch == self._state.epoch

    @property
    def feedback_outcome(self) -> Optional[FeedbackOutcome]:
        """Latest acquisition outcome for the active conversation."""
        conversation_id = self._state.active_conversation_id
        if conversation_id is None:
            return None
        return self._feedback.get(conversation_id)

    @property
    def feedback_ready(self) -> bool:
        return self._state.feedback_ready

    @property
    def feedback_pending(self) -> bool:
        conversation_id = self._state.active_conversation_id
        return conversation_id is not None and self.feedback_policy.is_pending(
            conversation_id
        )

    def can_submit_reflection(self, text: str) -> bool:
        """Whether submit_reflection(text) would pass its guard."""
        try:
            transitions.ensure_reflection_acceptable(self._state, text, self.rules)
        except GuardViolation:
            return False
        return not self.is_busy

    def is_persona_completed(self, persona_id: str) -> bool:
        return persona_id in self._state.completed_persona_ids

    # ==========================================================================
    # Actions
    # ==========================================================================

    async def select_scenario(self, scenario: Scenario) -> None:
        """Start a fresh session for a scenario."""
        self._ensure_idle("select a scenario")
        self._apply(ScenarioChosen(scenario=scenario))
        self._feedback.clear()

    async def select_persona(self, persona: Persona) -> Optional[Conversation]:
        """
        Create a conversation with a persona and enter the chat view.

        Args:
            persona: Persona from the selected scenario

        Returns:
            The created Conversation, or None when the session was left
            while the request was in flight

        Raises:
            GuardViolation: Persona already completed, not in the scenario,
                or wrong view (no network call is made)
            TransientIOError: Creation failed; the state is unchanged
        """
        transitions.ensure_persona_selectable(self._state, persona)
        scenario = self._state.selected_scenario

        async with self._guarded("select a persona") as epoch:
            conversation = await self.conversation_store.create_conversation(
                scenario_id=scenario.id,
                persona_id=persona.id,
                persona_snapshot=persona.snapshot(),
            )
            if self._is_stale(epoch, "select_persona"):
                return None

            self._apply(PersonaChosen(persona=persona, conversation_id=conversation.id))
            log.info(
                "conversation_started",
                conversation_id=conversation.id,
                scenario_id=scenario.id,
                persona_id=persona.id,
            )
            return conversation

    async def end_conversation(
        self, reason: CompletionReason = CompletionReason.USER_EXIT
    ) -> Optional[FeedbackOutcome]:
        """
        Leave the chat view and acquire feedback for the conversation.

        Args:
            reason: Turn limit reached or explicit exit

        Returns:
            Feedback acquisition outcome, or None if the session was left
        """
        self._ensure_idle("end the conversation")
        conversation_id = self._state.active_conversation_id
        self._apply(ConversationEnded(reason=reason))
        log.info(
            "conversation_ended",
            conversation_id=conversation_id,
            reason=reason.value,
            completed=len(self._state.completed_persona_ids),
            total=self._state.total_personas,
        )
        return await self.load_feedback()

    async def refresh_conversation(self) -> Optional[Conversation]:
        """
        Re-read the active conversation from the store.

        Ends the chat automatically when the store reports the turn limit
        reached or the conversation completed.

        Returns:
            The fetched Conversation, or None when not in the chat view or
            the session was left while the request was in flight
        """
        if self._state.current_view != View.CHAT:
            return None
        conversation_id = self._state.active_conversation_id

        async with self._guarded("refresh the conversation") as epoch:
            conversation = await self.conversation_store.get_conversation(conversation_id)
            if self._is_stale(epoch, "refresh_conversation"):
                return None

        if self._state.active_conversation_id != conversation_id:
            return conversation

        if conversation.reached_turn_limit(self.turn_limit):
            await self.end_conversation(CompletionReason.TURN_LIMIT)
        elif conversation.is_completed:
            await self.end_conversation(CompletionReason.USER_EXIT)
        return conversation

    async def load_feedback(self) -> Optional[FeedbackOutcome]:
        """
        Acquire feedback for the conversation under review.

        Also the manual retry after a failure. While a request for the same
        conversation is still in flight the call is a no-op reporting PENDING.

        Returns:
            FeedbackOutcome, or None if the session was left meanwhile
        """
        transitions.ensure_view(
            self._state, frozenset({View.FEEDBACK}), "load feedback"
        )
        conversation_id = self._state.active_conversation_id
        if self.feedback_policy.is_pending(conversation_id):
            return await self.feedback_policy.acquire(conversation_id)

        async with self._guarded("load feedback") as epoch:
            outcome = await self.feedback_policy.acquire(conversation_id)
            if self._is_stale(epoch, "load_feedback"):
                return None

            if outcome.status != AcquisitionStatus.PENDING:
                self._feedback[conversation_id] = outcome
            if outcome.is_ready and not self._state.feedback_ready:
                self._apply(FeedbackReceived(conversation_id=conversation_id))
            return outcome

    retry_feedback = load_feedback

    async def continue_(self) -> NextAction:
        """
        Leave the feedback view.

        Returns:
            The NextAction that was taken

        Raises:
            GuardViolation: No feedback obtained yet for the conversation;
                only exit() leaves the view until then
        """
        self._ensure_idle("continue")
        action = transitions.next_action(self._state)
        self._apply(ContinueRequested())
        if self._state.current_view == View.SCENARIO_SELECTION:
            self._feedback.clear()
        return action

    async def retry_persona(self) -> Optional[Conversation]:
        """
        Start a new conversation with the persona just reviewed.

        Completion bookkeeping is untouched: the retry never appears in
        completed_persona_ids or conversation_ids.

        Raises:
            GuardViolation: Not in the feedback view, or its feedback was not
                obtained yet (no network call is made)
            TransientIOError: Creation failed; the state is unchanged
        """
        transitions.ensure_retry_possible(self._state)
        scenario = self._state.selected_scenario
        persona = self._state.selected_persona

        async with self._guarded("retry the persona") as epoch:
            conversation = await self.conversation_store.create_conversation(
                scenario_id=scenario.id,
                persona_id=persona.id,
                persona_snapshot=persona.snapshot(),
            )
            if self._is_stale(epoch, "retry_persona"):
                return None

            self._apply(RetryStarted(conversation_id=conversation.id))
            log.info(
                "conversation_retry_started",
                conversation_id=conversation.id,
                persona_id=persona.id,
            )
            return conversation

    async def submit_reflection(self, reflection: str) -> Optional[StrategyReflection]:
        """
        Persist the strategy reflection for the session.

        The reflection is keyed by the first conversation of the session and
        carries the persona ids in completion order.

        Raises:
            GuardViolation: Too short, already submitted, or wrong view
                (no network call is made)
            TransientIOError: Persisting failed; the state is unchanged
        """
        transitions.ensure_reflection_acceptable(self._state, reflection, self.rules)
        representative_id = self._state.conversation_ids[0]
        order = list(self._state.completed_persona_ids)

        async with self._guarded("submit the reflection") as epoch:
            stored = await self.reflection_store.submit_reflection(
                conversation_id=representative_id,
                reflection_text=reflection.strip(),
                conversation_order=order,
            )
            if self._is_stale(epoch, "submit_reflection"):
                return None

            self._apply(ReflectionAccepted(reflection=reflection))
            log.info(
                "strategy_reflection_submitted",
                conversation_id=representative_id,
                conversation_order=order,
            )
            return stored

    async def exit(self) -> None:
        """Return to scenario selection from any view, discarding the session."""
        self._apply(ExitRequested())
        self._feedback.clear()

    # ==========================================================================
    # Internals
    # ==========================================================================

    def _apply(self, event: WorkflowEvent) -> None:
        previous = self._state
        self._state = transitions.transition(previous, event, self.rules)
        log.info(
            "workflow_transition",
            event_name=event.name,
            from_view=previous.current_view.value,
            to_view=self._state.current_view.value,
            epoch=self._state.epoch,
        )

    def _ensure_idle(self, action: str) -> None:
        if self.is_busy:
            raise GuardViolation(f"Cannot {action} while another action is in progress")

    @asynccontextmanager
    async def _guarded(self, action: str):
        """Mark the controller busy for the current epoch around a call."""
        self._ensure_idle(action)
        epoch = self._state.epoch
        scenario = self._state.selected_scenario
        self._busy_epoch = epoch
        try:
            with action_context(action, scenario_id=scenario.id if scenario else None):
                yield epoch
        finally:
            if self._busy_epoch == epoch:
                self._busy_epoch = None

    def _is_stale(self, epoch: int, action: str) -> bool:
        if self._state.epoch != epoch:
            log.info(
                "stale_response_ignored",
                action=action,
                issued_epoch=epoch,
                current_epoch=self._state.epoch,
            )
            return True
        return False
