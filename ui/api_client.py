# ui/api_client.py
"""API client for communicating with the FastAPI backend.

Async adapter implementing the collaborator protocols the workflow
controller consumes (IConversationStore, IFeedbackSynthesizer,
IReflectionStore), plus the catalog and chat calls the UI needs.

Error mapping:
    - Transport failures and 5xx responses -> TransientIOError
    - 404 on GET /conversations/{id}/feedback -> FeedbackNotFoundError
    - Any failed POST /conversations/{id}/feedback response -> GenerationError
      carrying the server's message as detail
    - 404 elsewhere -> ConversationNotFoundError / ScenarioNotFoundError
    - 409 on reflection submission -> ReflectionAlreadySubmittedError
    - Other 4xx -> ValidationError
"""

from typing import Any, Dict, List, Optional

import httpx
import structlog

from roleplay.core.exceptions import (
    ConversationNotFoundError,
    FeedbackNotFoundError,
    GenerationError,
    ReflectionAlreadySubmittedError,
    ScenarioNotFoundError,
    TransientIOError,
    ValidationError,
)
from roleplay.domain.models.conversation import Conversation, Sender
from roleplay.domain.models.feedback import Feedback
from roleplay.domain.models.reflection import StrategyReflection
from roleplay.domain.models.scenario import PersonaSnapshot, Scenario

log = structlog.get_logger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Extract the message from the backend's {"error": {...}} body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        message = error.get("message", "")
        detail = error.get("detail")
        return f"{message}: {detail}" if detail else message
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return response.text


class APIClient:
    """HTTP client for the training API.

    Args:
        base_url: API base URL (default: http://localhost:8000)
        timeout: Request timeout in seconds; feedback synthesis is slow,
            so keep this well above the server's LLM timeout
        transport: Optional httpx transport (tests inject a MockTransport)
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def _request(
        self, method: str, path: str, json: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        """Send a request; transport failures become TransientIOError."""
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.request(method, path, json=json)
        except httpx.HTTPError as e:
            log.warning("api_request_failed", method=method, path=path, error=str(e))
            raise TransientIOError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 500:
            raise TransientIOError(
                f"{method} {path} returned {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )
        return response

    # ============ CATALOG ============

    async def list_scenarios(self) -> Dict[str, str]:
        """Scenario id -> title."""
        response = await self._request("GET", "/scenarios")
        self._raise_for_client_error(response)
        return {s["id"]: s["title"] for s in response.json()["scenarios"]}

    async def get_scenario(self, scenario_id: str) -> Scenario:
        response = await self._request("GET", f"/scenarios/{scenario_id}")
        if response.status_code == 404:
            raise ScenarioNotFoundError(_error_message(response))
        self._raise_for_client_error(response)
        return Scenario.model_validate(response.json())

    # ============ CONVERSATION STORE ============

    async def create_conversation(
        self,
        scenario_id: str,
        persona_id: str,
        persona_snapshot: Optional[PersonaSnapshot] = None,
    ) -> Conversation:
        payload: Dict[str, Any] = {"scenario_id": scenario_id, "persona_id": persona_id}
        if persona_snapshot is not None:
            payload["persona_snapshot"] = persona_snapshot.model_dump()

        response = await self._request("POST", "/conversations", json=payload)
        if response.status_code == 404:
            raise ScenarioNotFoundError(_error_message(response))
        self._raise_for_client_error(response)
        return Conversation.model_validate(response.json())

    async def get_conversation(self, conversation_id: str) -> Conversation:
        response = await self._request("GET", f"/conversations/{conversation_id}")
        self._raise_for_client_error(response)
        return Conversation.model_validate(response.json())

    async def append_message(
        self,
        conversation_id: str,
        message: str,
        sender: Sender = Sender.USER,
        emotion: Optional[str] = None,
        emotion_reason: Optional[str] = None,
    ) -> Conversation:
        response = await self._request(
            "POST",
            f"/conversations/{conversation_id}/messages",
            json={
                "sender": sender.value,
                "message": message,
                "emotion": emotion,
                "emotion_reason": emotion_reason,
            },
        )
        self._raise_for_client_error(response)
        return Conversation.model_validate(response.json())

    async def complete_conversation(self, conversation_id: str) -> Conversation:
        response = await self._request("POST", f"/conversations/{conversation_id}/complete")
        self._raise_for_client_error(response)
        return Conversation.model_validate(response.json())

    # ============ FEEDBACK SYNTHESIZER ============

    async def get_feedback(self, conversation_id: str) -> Feedback:
        response = await self._request("GET", f"/conversations/{conversation_id}/feedback")
        if response.status_code == 404:
            raise FeedbackNotFoundError(f"No feedback for conversation {conversation_id}")
        self._raise_for_client_error(response)
        return Feedback.model_validate(response.json())

    async def generate_feedback(self, conversation_id: str) -> Feedback:
        path = f"/conversations/{conversation_id}/feedback"
        try:
            response = await self._request("POST", path)
        except TransientIOError as e:
            if e.status_code is None:
                raise
            raise GenerationError("Feedback synthesis failed", detail=e.message) from e

        if response.is_error:
            raise GenerationError(
                "Feedback synthesis failed", detail=_error_message(response)
            )
        return Feedback.model_validate(response.json())

    # ============ REFLECTION STORE ============

    async def submit_reflection(
        self,
        conversation_id: str,
        reflection_text: str,
        conversation_order: List[str],
    ) -> StrategyReflection:
        response = await self._request(
            "POST",
            f"/conversations/{conversation_id}/strategy-reflection",
            json={"reflection": reflection_text, "conversation_order": conversation_order},
        )
        if response.status_code == 409:
            raise ReflectionAlreadySubmittedError(_error_message(response))
        self._raise_for_client_error(response)
        return StrategyReflection.model_validate(response.json())

    async def get_reflection(self, conversation_id: str) -> StrategyReflection:
        response = await self._request(
            "GET", f"/conversations/{conversation_id}/strategy-reflection"
        )
        self._raise_for_client_error(response)
        return StrategyReflection.model_validate(response.json())

    # ============ HEALTH ============

    async def health_check(self) -> bool:
        """Check if API is healthy."""
        try:
            response = await self._request("GET", "/health/live")
        except TransientIOError:
            return False
        return response.status_code == 200

    @staticmethod
    def _raise_for_client_error(response: httpx.Response) -> None:
        if not response.is_error:
            return
        message = _error_message(response)
        if response.status_code == 404:
            raise ConversationNotFoundError(message)
        raise ValidationError(message)
