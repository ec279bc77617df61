"""
Background conversation polling for voice mode.

In voice mode the transcript grows outside the chat view's request cycle,
so the active conversation is re-read on an interval and each snapshot is
handed to a callback. The monitor only observes: it never calls the
workflow controller, and stops by itself once the conversation is
completed.
"""

import asyncio
import inspect
from typing import Any, Callable, Optional

import structlog

from roleplay.core.config import training_config
from roleplay.core.exceptions import TrainingSystemError
from roleplay.domain.models.conversation import Conversation
from roleplay.services.protocols import IConversationStore

log = structlog.get_logger(__name__)

ConversationCallback = Callable[[Conversation], Any]


class ConversationMonitor:
    """Polls one conversation and publishes snapshots."""

    def __init__(
        self,
        conversation_store: IConversationStore,
        on_update: ConversationCallback,
        poll_interval: Optional[float] = None,
    ):
        """
        Args:
            conversation_store: Store to read the conversation from
            on_update: Called with every fetched snapshot (sync or async)
            poll_interval: Seconds between reads (defaults to training_config.yaml)
        """
        self.store = conversation_store
        self.on_update = on_update
        self.poll_interval = poll_interval or training_config.monitor.poll_interval_seconds
        self.latest: Optional[Conversation] = None
        self._task: Optional[asyncio.Task] = None
        self._conversation_id: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def conversation_id(self) -> Optional[str]:
        return self._conversation_id

    def start(self, conversation_id: str) -> None:
        """Start polling a conversation, replacing any previous one."""
        if self.is_running:
            self._task.cancel()
        self._conversation_id = conversation_id
        self.latest = None
        self._task = asyncio.create_task(self._run(conversation_id))
        log.info(
            "conversation_monitor_started",
            conversation_id=conversation_id,
            poll_interval=self.poll_interval,
        )

    async def stop(self) -> None:
        """Stop polling and wait for the task to finish."""
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.info("conversation_monitor_stopped", conversation_id=self._conversation_id)

    async def _run(self, conversation_id: str) -> None:
        while True:
            try:
                conversation = await self.store.get_conversation(conversation_id)
            except TrainingSystemError as e:
                log.warning(
                    "conversation_poll_failed",
                    conversation_id=conversation_id,
                    error_type=type(e).__name__,
                    error=e.message,
                )
            else:
                self.latest = conversation
                result = self.on_update(conversation)
                if inspect.isawaitable(result):
                    await result

                if conversation.is_completed:
                    log.info(
                        "conversation_monitor_finished",
                        conversation_id=conversation_id,
                        turn_count=conversation.turn_count,
                    )
                    return

            await asyncio.sleep(self.poll_interval)
