"""
Streamlit front end for roleplay training sessions.

Renders the current WorkflowController view and wires buttons to controller
actions. The controller lives in st.session_state for the lifetime of the
browser session; buttons are disabled while it is busy.

Persona replies are not generated here: in facilitated mode a trainer types
them in the chat view, otherwise an external responder writes them and the
"Refresh" button picks them up.

Run with: streamlit run ui/streamlit_app.py
"""

import asyncio
from typing import Any, Awaitable, Optional

import streamlit as st

from roleplay.core.config import settings, training_config
from roleplay.core.exceptions import GuardViolation, TrainingSystemError, TransientIOError
from roleplay.domain.models.conversation import CompletionReason, Sender
from roleplay.domain.models.session_state import NextAction, View
from roleplay.services.workflow_controller import WorkflowController
from ui.api_client import APIClient


st.set_page_config(
    page_title="Roleplay Training",
    page_icon="🎭",
    layout="wide",
)


NEXT_ACTION_LABELS = {
    NextAction.GO_TO_PERSONA_SELECTION: "Next persona",
    NextAction.GO_TO_STRATEGY_REFLECTION: "Reflect on your strategy",
    NextAction.GO_TO_SCENARIO_SELECTION: "Finish scenario",
}


def initialize_api_client() -> APIClient:
    """Initialize or get existing API client from session state."""
    if "api_client" not in st.session_state:
        api_url = st.session_state.get("api_url", settings.api_base_url)
        st.session_state.api_client = APIClient(base_url=api_url, timeout=settings.api_timeout)
    return st.session_state.api_client


def get_controller(api_client: APIClient) -> WorkflowController:
    if "controller" not in st.session_state:
        st.session_state.controller = WorkflowController(
            conversation_store=api_client,
            feedback_synthesizer=api_client,
            reflection_store=api_client,
        )
    return st.session_state.controller


def run(coro: Awaitable[Any]) -> Optional[Any]:
    """Run a controller/client coroutine, showing errors inline."""
    try:
        return asyncio.run(coro)
    except GuardViolation as e:
        st.warning(e.message)
    except TransientIOError as e:
        st.error(f"Connection problem: {e.message}. Please try again.")
    except TrainingSystemError as e:
        st.error(e.message)
    return None


# =============================================================================
# Views
# =============================================================================


def render_scenario_selection(controller: WorkflowController, api_client: APIClient):
    st.header("Choose a scenario")

    scenarios = run(api_client.list_scenarios()) or {}
    if not scenarios:
        st.info("No scenarios available. Is the API running?")
        return

    for scenario_id, title in scenarios.items():
        if st.button(title, key=f"scenario_{scenario_id}", disabled=controller.is_busy):
            scenario = run(api_client.get_scenario(scenario_id))
            if scenario is not None:
                run(controller.select_scenario(scenario))
                st.rerun()


def render_persona_selection(controller: WorkflowController):
    scenario = controller.selected_scenario
    st.header(scenario.title)
    st.write(scenario.description)

    completed = len(controller.completed_persona_ids)
    total = len(scenario.personas)
    st.progress(completed / total if total else 0.0, text=f"{completed} of {total} personas completed")

    for persona in scenario.personas:
        done = controller.is_persona_completed(persona.id)
        with st.container(border=True):
            st.subheader(f"{persona.name} ({persona.role})")
            st.caption(f"{persona.department} · {persona.experience}")
            st.write(persona.stance)
            label = "Completed" if done else "Start conversation"
            if st.button(
                label,
                key=f"persona_{persona.id}",
                disabled=done or controller.is_busy,
            ):
                if run(controller.select_persona(persona)) is not None:
                    st.rerun()

    if st.button("Back to scenarios"):
        run(controller.exit())
        st.rerun()


def render_chat(controller: WorkflowController, api_client: APIClient):
    persona = controller.selected_persona
    conversation_id = controller.active_conversation_id
    st.header(f"Conversation with {persona.name}")

    conversation = run(api_client.get_conversation(conversation_id))
    if conversation is None:
        return

    st.caption(f"Turn {conversation.turn_count} of {controller.turn_limit}")
    for msg in conversation.messages:
        role = "user" if msg.sender == Sender.USER else "assistant"
        with st.chat_message(role):
            st.write(msg.message)
            if msg.emotion:
                st.caption(f"{msg.emotion}: {msg.emotion_reason or ''}")

    speaker = st.radio(
        "Speaking as",
        options=[Sender.USER, Sender.AI],
        format_func=lambda s: "Trainee" if s == Sender.USER else persona.name,
        horizontal=True,
    )
    text = st.chat_input("Type your message", disabled=controller.is_busy)
    if text:
        run(api_client.append_message(conversation_id, text, sender=speaker))
        run(controller.refresh_conversation())
        st.rerun()

    col1, col2, col3 = st.columns(3)
    if col1.button("Refresh", disabled=controller.is_busy):
        run(controller.refresh_conversation())
        st.rerun()
    if col2.button("End conversation", disabled=controller.is_busy):
        if run(api_client.complete_conversation(conversation_id)) is not None:
            with st.spinner("Generating feedback..."):
                run(controller.end_conversation(CompletionReason.USER_EXIT))
            st.rerun()
    if col3.button("Exit session"):
        run(controller.exit())
        st.rerun()


def render_feedback(controller: WorkflowController):
    st.header(f"Feedback: {controller.selected_persona.name}")

    outcome = controller.feedback_outcome
    if controller.feedback_pending:
        st.info("Feedback is being generated...")
    elif outcome is None or outcome.is_failed:
        if outcome is not None:
            st.error(f"Feedback could not be generated: {outcome.error}")
        if st.button("Retry feedback", disabled=controller.is_busy):
            with st.spinner("Generating feedback..."):
                run(controller.retry_feedback())
            st.rerun()
    else:
        render_feedback_report(outcome.feedback)

    st.divider()
    col1, col2, col3 = st.columns(3)
    # Until feedback exists the only way out is abandoning the session
    if controller.feedback_ready:
        if col1.button(NEXT_ACTION_LABELS[controller.next_action], disabled=controller.is_busy):
            run(controller.continue_())
            st.rerun()
        if col2.button("Retry same persona", disabled=controller.is_busy):
            if run(controller.retry_persona()) is not None:
                st.rerun()
    if col3.button("Select new scenario"):
        run(controller.exit())
        st.rerun()


def render_feedback_report(feedback):
    st.metric("Overall score", f"{feedback.overall_score} / 100")

    cols = st.columns(len(feedback.scores) or 1)
    for col, score in zip(cols, feedback.scores):
        col.metric(score.name, score.score, score.label)

    detail = feedback.detailed_feedback
    st.subheader("Summary")
    st.write(detail.summary)

    left, right = st.columns(2)
    with left:
        st.subheader("Strengths")
        for item in detail.strengths:
            st.markdown(f"- {item}")
    with right:
        st.subheader("Improvements")
        for item in detail.improvements:
            st.markdown(f"- {item}")

    if detail.next_steps:
        st.subheader("Next steps")
        for item in detail.next_steps:
            st.markdown(f"- {item}")

    with st.expander("Per-dimension commentary"):
        for score in feedback.scores:
            st.markdown(f"**{score.name}** ({score.label}): {score.feedback}")

    if detail.conversation_guides:
        with st.expander("Conversation guides"):
            for guide in detail.conversation_guides:
                st.markdown(f"**{guide.scenario}**")
                st.success(guide.good_example)
                st.error(guide.bad_example)

    plan = detail.development_plan
    with st.expander("Development plan"):
        for label, items in (
            ("Short term", plan.short_term),
            ("Medium term", plan.medium_term),
            ("Long term", plan.long_term),
        ):
            for item in items:
                st.markdown(f"**{label}: {item.goal}** ({item.measurable})")
                for action in item.actions:
                    st.markdown(f"- {action}")


def render_strategy_reflection(controller: WorkflowController):
    st.header("Strategy reflection")
    st.write("You talked to the personas in this order:")
    for i, persona in enumerate(controller.completed_personas, 1):
        st.markdown(f"{i}. **{persona.name}** ({persona.role})")

    min_length = controller.rules.reflection_min_length
    text = st.text_area(
        "Why did you choose this order, and what would you change?",
        height=200,
    )
    st.caption(f"{len(text.strip())} / {min_length} characters minimum")

    if st.button(
        "Submit reflection",
        disabled=not controller.can_submit_reflection(text),
    ):
        if run(controller.submit_reflection(text)) is not None:
            st.rerun()

    if st.button("Exit session"):
        run(controller.exit())
        st.rerun()


def render_strategy_result(controller: WorkflowController):
    st.header("Reflection submitted")
    st.subheader("Conversation order")
    st.write(" → ".join(p.name for p in controller.completed_personas))
    st.subheader("Your reflection")
    st.write(controller.submitted_reflection)

    if st.button("Back to scenarios"):
        run(controller.exit())
        st.rerun()


def main():
    """Main application entry point."""
    api_client = initialize_api_client()
    controller = get_controller(api_client)

    st.title("🎭 Roleplay Training")
    st.sidebar.caption(f"API: {api_client.base_url}")
    st.sidebar.caption(f"Turn limit: {training_config.session.turn_limit}")
    st.sidebar.caption(f"View: {controller.current_view.value}")

    view = controller.current_view
    if view == View.SCENARIO_SELECTION:
        render_scenario_selection(controller, api_client)
    elif view == View.PERSONA_SELECTION:
        render_persona_selection(controller)
    elif view == View.CHAT:
        render_chat(controller, api_client)
    elif view == View.FEEDBACK:
        render_feedback(controller)
    elif view == View.STRATEGY_REFLECTION:
        render_strategy_reflection(controller)
    elif view == View.STRATEGY_RESULT:
        render_strategy_result(controller)


if __name__ == "__main__":
    main()
