"""
Training workflow state machine.

Pure functions over SessionState: no I/O, no logging, no mutation. The
controller validates with the guard helpers before issuing a network call,
then applies the resulting event with transition().

Transition table (source views, event, guard, effect):

    scenario-selection      ScenarioChosen       -                       fresh session     -> persona-selection
    persona-selection       PersonaChosen        persona not completed   set conversation  -> chat
    chat                    ConversationEnded    active conversation     record completion -> feedback
    feedback                FeedbackReceived     conversation in review  mark ready        -> feedback
    feedback                ContinueRequested    feedback ready          see next_action()
    feedback                RetryStarted         feedback ready          new conversation  -> chat
    strategy-reflection     ReflectionAccepted   length, not submitted   mark submitted    -> strategy-result
    any                     ExitRequested        -                       reset             -> scenario-selection
"""

from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Tuple, Type

from roleplay.core.exceptions import GuardViolation, ReflectionAlreadySubmittedError
from roleplay.domain.models.scenario import Persona
from roleplay.domain.models.session_state import NextAction, SessionState, View
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


@dataclass(frozen=True)
class WorkflowRules:
    """Behavioral constants the guards depend on."""

    reflection_min_length: int = 50


# =============================================================================
# Derived values
# =============================================================================


def next_action(state: SessionState) -> NextAction:
    """Where "continue" leads from the feedback view."""
    completed = len(state.completed_persona_ids)
    total = state.total_personas

    if completed < total:
        return NextAction.GO_TO_PERSONA_SELECTION
    if total >= 2 and not state.reflection_submitted:
        return NextAction.GO_TO_STRATEGY_REFLECTION
    return NextAction.GO_TO_SCENARIO_SELECTION


def available_personas(state: SessionState) -> Tuple[Persona, ...]:
    """Scenario personas minus the ones already completed this session."""
    if state.selected_scenario is None:
        return ()
    completed = set(state.completed_persona_ids)
    return tuple(p for p in state.selected_scenario.personas if p.id not in completed)


def reflection_length(text: str) -> int:
    return len(text.strip())


def reset(state: SessionState) -> SessionState:
    """Empty session; bumps the epoch so late responses are recognisable."""
    return SessionState(epoch=state.epoch + 1)


# =============================================================================
# Guards
# =============================================================================


def ensure_view(state: SessionState, allowed: FrozenSet[View], action: str) -> None:
    if state.current_view not in allowed:
        raise GuardViolation(
            f"Cannot {action} from view '{state.current_view.value}'"
        )


def ensure_persona_selectable(state: SessionState, persona: Persona) -> None:
    """Persona must belong to the scenario and not be completed yet."""
    ensure_view(state, frozenset({View.PERSONA_SELECTION}), "select a persona")

    scenario = state.selected_scenario
    if scenario is None or scenario.get_persona(persona.id) is None:
        raise GuardViolation(f"Persona '{persona.id}' is not part of the selected scenario")

    if persona.id in state.completed_persona_ids:
        raise GuardViolation(
            f"Persona '{persona.id}' was already completed in this session"
        )


def ensure_reflection_acceptable(
    state: SessionState, reflection: str, rules: WorkflowRules
) -> None:
    """Reflection can be submitted once, with at least the minimum length."""
    ensure_view(state, frozenset({View.STRATEGY_REFLECTION}), "submit a reflection")

    if state.reflection_submitted:
        raise ReflectionAlreadySubmittedError(
            "A strategy reflection was already submitted for this session"
        )
    if not state.conversation_ids:
        raise GuardViolation("No completed conversation to attach the reflection to")

    length = reflection_length(reflection)
    if length < rules.reflection_min_length:
        raise GuardViolation(
            f"Reflection must be at least {rules.reflection_min_length} characters "
            f"(got {length})"
        )


def ensure_feedback_ready(state: SessionState, action: str) -> None:
    """The feedback view is only left forward once feedback was obtained."""
    ensure_view(state, frozenset({View.FEEDBACK}), action)
    if not state.feedback_ready:
        raise GuardViolation(
            f"Cannot {action} before feedback for the conversation is available"
        )


def ensure_retry_possible(state: SessionState) -> None:
    ensure_feedback_ready(state, "retry the persona")
    if state.selected_scenario is None or state.selected_persona is None:
        raise GuardViolation("No persona to retry")


# =============================================================================
# Effects
# =============================================================================


def _choose_scenario(state: SessionState, event: ScenarioChosen, rules: WorkflowRules) -> SessionState:
    return SessionState(
        current_view=View.PERSONA_SELECTION,
        selected_scenario=event.scenario,
        epoch=state.epoch,
    )


def _choose_persona(state: SessionState, event: PersonaChosen, rules: WorkflowRules) -> SessionState:
    ensure_persona_selectable(state, event.persona)
    return state.model_copy(
        update={
            "current_view": View.CHAT,
            "selected_persona": event.persona,
            "active_conversation_id": event.conversation_id,
        }
    )


def _end_conversation(state: SessionState, event: ConversationEnded, rules: WorkflowRules) -> SessionState:
    if state.selected_persona is None or state.active_conversation_id is None:
        raise GuardViolation("No active conversation to end")

    persona_id = state.selected_persona.id
    if persona_id in state.completed_persona_ids:
        # Retried engagement: the first completion keeps its place in the order
        return state.model_copy(
            update={"current_view": View.FEEDBACK, "feedback_ready": False}
        )

    return state.model_copy(
        update={
            "current_view": View.FEEDBACK,
            "feedback_ready": False,
            "completed_persona_ids": state.completed_persona_ids + (persona_id,),
            "conversation_ids": state.conversation_ids + (state.active_conversation_id,),
        }
    )


_NEXT_VIEW: Dict[NextAction, View] = {
    NextAction.GO_TO_PERSONA_SELECTION: View.PERSONA_SELECTION,
    NextAction.GO_TO_STRATEGY_REFLECTION: View.STRATEGY_REFLECTION,
    NextAction.GO_TO_SCENARIO_SELECTION: View.SCENARIO_SELECTION,
}


def _receive_feedback(state: SessionState, event: FeedbackReceived, rules: WorkflowRules) -> SessionState:
    if event.conversation_id != state.active_conversation_id:
        raise GuardViolation(
            f"Feedback for '{event.conversation_id}' is not for the active conversation"
        )
    return state.model_copy(update={"feedback_ready": True})


def _continue(state: SessionState, event: ContinueRequested, rules: WorkflowRules) -> SessionState:
    ensure_feedback_ready(state, "continue")
    target = _NEXT_VIEW[next_action(state)]
    if target == View.SCENARIO_SELECTION:
        return reset(state)
    return state.model_copy(update={"current_view": target, "feedback_ready": False})


def _accept_reflection(state: SessionState, event: ReflectionAccepted, rules: WorkflowRules) -> SessionState:
    ensure_reflection_acceptable(state, event.reflection, rules)
    return state.model_copy(
        update={
            "current_view": View.STRATEGY_RESULT,
            "reflection_submitted": True,
            "submitted_reflection": event.reflection.strip(),
        }
    )


def _start_retry(state: SessionState, event: RetryStarted, rules: WorkflowRules) -> SessionState:
    ensure_retry_possible(state)
    return state.model_copy(
        update={
            "current_view": View.CHAT,
            "active_conversation_id": event.conversation_id,
            "feedback_ready": False,
            "retried_conversation_ids": state.retried_conversation_ids + (event.conversation_id,),
        }
    )


def _exit(state: SessionState, event: ExitRequested, rules: WorkflowRules) -> SessionState:
    return reset(state)


# =============================================================================
# Table
# =============================================================================


Effect = Callable[[SessionState, WorkflowEvent, WorkflowRules], SessionState]

ALL_VIEWS: FrozenSet[View] = frozenset(View)

TRANSITIONS: Dict[Type[WorkflowEvent], Tuple[FrozenSet[View], Effect]] = {
    ScenarioChosen: (frozenset({View.SCENARIO_SELECTION}), _choose_scenario),
    PersonaChosen: (frozenset({View.PERSONA_SELECTION}), _choose_persona),
    ConversationEnded: (frozenset({View.CHAT}), _end_conversation),
    FeedbackReceived: (frozenset({View.FEEDBACK}), _receive_feedback),
    ContinueRequested: (frozenset({View.FEEDBACK}), _continue),
    ReflectionAccepted: (frozenset({View.STRATEGY_REFLECTION}), _accept_reflection),
    RetryStarted: (frozenset({View.FEEDBACK}), _start_retry),
    ExitRequested: (ALL_VIEWS, _exit),
}


def transition(
    state: SessionState,
    event: WorkflowEvent,
    rules: WorkflowRules = WorkflowRules(),
) -> SessionState:
    """
    Apply an event to a session state.

    Args:
        state: Current state (not modified)
        event: Event to apply
        rules: Behavioral constants for the guards

    Returns:
        The next SessionState

    Raises:
        GuardViolation: Event not allowed from the current view, or its guard is false
    """
    try:
        sources, effect = TRANSITIONS[type(event)]
    except KeyError:
        raise GuardViolation(f"Unknown workflow event: {event.name}") from None

    if state.current_view not in sources:
        raise GuardViolation(
            f"{event.name} is not allowed from view '{state.current_view.value}'"
        )

    return effect(state, event, rules)
