#!/usr/bin/env python3
"""
Walk a training session from the console against a running API.

Usage:
    python scripts/run_training_session.py                      # pick a scenario interactively
    python scripts/run_training_session.py deadline_negotiation
    python scripts/run_training_session.py deadline_negotiation --auto --turns 3
    python scripts/run_training_session.py deadline_negotiation --watch

Interactive mode asks for the trainee's and the persona's lines. --auto
fills both with canned text, which is enough to exercise the workflow
(feedback synthesis still needs ANTHROPIC_API_KEY on the server). --watch
only follows the transcript while another client writes it (voice mode).
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Configure logging first (before importing other modules)
from roleplay.core.logging import configure_logging

configure_logging(log_to_file=False)

from roleplay.core.config import settings
from roleplay.core.exceptions import GuardViolation, TrainingSystemError
from roleplay.domain.models.conversation import CompletionReason, Sender
from roleplay.domain.models.session_state import NextAction, View
from roleplay.services.conversation_monitor import ConversationMonitor
from roleplay.services.workflow_controller import WorkflowController
from ui.api_client import APIClient

AUTO_REFLECTION = (
    "I started with the person whose agreement unblocks everyone else, then "
    "moved to the people most affected by that decision."
)


def ask(prompt: str) -> str:
    return input(prompt).strip()


async def choose_scenario(api_client: APIClient, scenario_id: str | None):
    scenarios = await api_client.list_scenarios()
    if not scenario_id:
        print("\nAvailable scenarios:")
        for sid, title in scenarios.items():
            print(f"  - {sid}: {title}")
        scenario_id = ask("Scenario id: ")
    return await api_client.get_scenario(scenario_id)


async def run_chat(controller: WorkflowController, api_client: APIClient, args) -> None:
    conversation_id = controller.active_conversation_id
    persona = controller.selected_persona
    print(f"\n--- Conversation with {persona.name} ({persona.role}) ---")
    print("Type /end to finish early.\n")

    turn = 0
    while controller.current_view == View.CHAT:
        if args.auto:
            turn += 1
            user_text = f"Turn {turn}: here is my proposal and the reasoning behind it."
            reply = f"{persona.name}: I see your point, but {persona.stance or 'I have concerns'}."
            if turn > args.turns:
                user_text = "/end"
        else:
            user_text = ask("You: ")
            reply = None

        if user_text == "/end":
            await api_client.complete_conversation(conversation_id)
            await controller.end_conversation(CompletionReason.USER_EXIT)
            return

        await api_client.append_message(conversation_id, user_text, sender=Sender.USER)
        if reply is None:
            reply = ask(f"{persona.name}: ")
        else:
            print(f"You: {user_text}\n{reply}")
        await api_client.append_message(conversation_id, reply, sender=Sender.AI)

        conversation = await controller.refresh_conversation()
        if conversation is not None:
            print(f"  [turn {conversation.turn_count}/{controller.turn_limit}]")


async def watch_chat(controller: WorkflowController, api_client: APIClient) -> None:
    """Print the transcript as it grows until the conversation ends."""
    persona = controller.selected_persona
    printed = 0

    def show(conversation):
        nonlocal printed
        for msg in conversation.messages[printed:]:
            speaker = "You" if msg.sender == Sender.USER else persona.name
            print(f"{speaker}: {msg.message}")
        printed = len(conversation.messages)

    print(f"\n--- Watching conversation with {persona.name} ({persona.role}) ---")
    monitor = ConversationMonitor(api_client, on_update=show)
    monitor.start(controller.active_conversation_id)
    try:
        while monitor.is_running:
            latest = monitor.latest
            if latest is not None and latest.reached_turn_limit(controller.turn_limit):
                break
            await asyncio.sleep(monitor.poll_interval)
    finally:
        await monitor.stop()

    await controller.refresh_conversation()


def print_feedback(controller: WorkflowController) -> None:
    outcome = controller.feedback_outcome
    if outcome is None:
        print("No feedback yet.")
        return
    if outcome.is_failed:
        print(f"Feedback failed ({outcome.error_type}): {outcome.error}")
        return
    feedback = outcome.feedback
    print(f"\nOverall score: {feedback.overall_score}/100")
    for score in feedback.scores:
        print(f"  {score.name:<32} {score.score}  {score.label}")
    print(f"\n{feedback.detailed_feedback.summary}")


async def main():
    parser = argparse.ArgumentParser(description="Run a training session from the console")
    parser.add_argument("scenario_id", nargs="?", help="Scenario to run")
    parser.add_argument("--api-url", default=settings.api_base_url)
    parser.add_argument("--auto", action="store_true", help="Use canned messages")
    parser.add_argument("--turns", type=int, default=3, help="Turns per persona in --auto mode")
    parser.add_argument(
        "--watch", action="store_true", help="Follow conversations written by another client"
    )
    args = parser.parse_args()

    api_client = APIClient(base_url=args.api_url, timeout=settings.api_timeout)
    if not await api_client.health_check():
        print(f"API not reachable at {args.api_url}")
        sys.exit(1)

    controller = WorkflowController(
        conversation_store=api_client,
        feedback_synthesizer=api_client,
        reflection_store=api_client,
    )

    scenario = await choose_scenario(api_client, args.scenario_id)
    await controller.select_scenario(scenario)
    print(f"\nScenario: {scenario.title} ({len(scenario.personas)} personas)")

    while True:
        view = controller.current_view
        try:
            if view == View.PERSONA_SELECTION:
                available = controller.available_personas
                for i, persona in enumerate(available, 1):
                    print(f"  {i}. {persona.name} ({persona.role})")
                choice = "1" if args.auto else ask("Persona number: ") or "1"
                if not choice.isdigit() or not 1 <= int(choice) <= len(available):
                    print("Pick one of the listed numbers.")
                    continue
                await controller.select_persona(available[int(choice) - 1])

            elif view == View.CHAT and args.watch:
                await watch_chat(controller, api_client)

            elif view == View.CHAT:
                await run_chat(controller, api_client, args)

            elif view == View.FEEDBACK:
                print_feedback(controller)
                if not controller.feedback_ready:
                    if not args.auto and ask("Retry feedback? [y/N] ").lower() == "y":
                        await controller.retry_feedback()
                        continue
                    print("\nLeaving the session without feedback.")
                    await controller.exit()
                    if args.auto:
                        sys.exit(1)
                    return
                action = await controller.continue_()
                if action == NextAction.GO_TO_SCENARIO_SELECTION:
                    print("\nScenario finished.")
                    return

            elif view == View.STRATEGY_REFLECTION:
                order = " -> ".join(p.name for p in controller.completed_personas)
                print(f"\nYou engaged the personas in this order: {order}")
                text = AUTO_REFLECTION if args.auto else ask("Your reflection: ")
                await controller.submit_reflection(text)

            elif view == View.STRATEGY_RESULT:
                print(f"\nReflection saved:\n  {controller.submitted_reflection}")
                await controller.exit()
                return

            else:
                return

        except GuardViolation as e:
            print(f"Not allowed: {e.message}")
        except TrainingSystemError as e:
            print(f"Error ({type(e).__name__}): {e.message}")
            if args.auto:
                sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
