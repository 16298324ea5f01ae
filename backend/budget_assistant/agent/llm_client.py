"""
Reasoning backend gateway.

LLMProvider is the capability set the orchestrator depends on:
- generate(history, tools) -> CompletionResult
- credential_identity() -> str, used by the session owner to detect a
  changed credential and rebuild the session

OpenRouterClient binds it to the OpenRouter chat-completions API
(OpenAI-compatible wire format) over a pooled httpx.AsyncClient. Any other
provider is added by implementing the same operations.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import httpx
import structlog

from ..core.config import Settings
from ..core.exceptions import BackendError
from .state import CompletionResult, Message, ToolCall
from .tools.registry import Tool

logger = structlog.get_logger()

DEFAULT_MODEL = "google/gemini-2.5-flash"
DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_REFERER = "https://actualbudget.org"
DEFAULT_APP_TITLE = "Actual Budget"


class LLMProvider(ABC):
    """Remote chat-completion service as seen by the orchestrator."""

    @abstractmethod
    async def generate(
        self,
        messages: Sequence[Message],
        tools: Sequence[Tool] | None = None,
    ) -> CompletionResult:
        """
        Request a completion for the transcript.

        Args:
            messages: Conversation history, system prompt first
            tools: Tools to advertise; None or empty offers none

        Returns:
            CompletionResult with text (possibly empty) and any tool calls

        Raises:
            BackendError: Non-success response or malformed body
        """

    @abstractmethod
    def credential_identity(self) -> str:
        """The credential this provider is bound to."""

    async def aclose(self) -> None:
        """Release network resources."""


class OpenRouterClient(LLMProvider):
    """
    OpenRouter chat-completions client.

    One POST to {base_url}/chat/completions per generate() call, no retries.
    A non-2xx response raises BackendError carrying the status code, status
    text and the raw response body.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        referer: str = DEFAULT_REFERER,
        title: str = DEFAULT_APP_TITLE,
        timeout: float | None = 120.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize client.

        Args:
            api_key: OpenRouter API key (bearer credential)
            model: Model identifier, e.g. "google/gemini-2.5-flash"
            base_url: API root without trailing /chat/completions
            referer: Value of the HTTP-Referer identification header
            title: Value of the X-Title identification header
            timeout: HTTP timeout in seconds (None waits indefinitely)
            client: Optional shared httpx AsyncClient
        """
        if not api_key:
            raise ValueError("OpenRouter API key is required")

        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.referer = referer
        self.title = title
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

        logger.info(
            "OpenRouter client initialized",
            model=model,
            base_url=self.base_url,
            api_key_configured=True,
        )

    @classmethod
    def from_settings(cls, settings: Settings, api_key: str) -> "OpenRouterClient":
        """Build a client from application settings and a credential."""
        return cls(
            api_key=api_key,
            model=settings.openrouter_model,
            base_url=settings.openrouter_base_url,
            referer=settings.openrouter_referer,
            title=settings.openrouter_app_title,
            timeout=settings.llm_request_timeout_seconds,
        )

    def credential_identity(self) -> str:
        return self.api_key

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                limits=httpx.Limits(
                    max_keepalive_connections=5,
                    max_connections=10,
                    keepalive_expiry=30.0,
                ),
            )
        return self._client

    async def aclose(self) -> None:
        """Close HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("OpenRouter client closed")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.referer,  # Required by OpenRouter
            "X-Title": self.title,
        }

    def build_payload(
        self,
        messages: Sequence[Message],
        tools: Sequence[Tool] | None = None,
    ) -> dict[str, Any]:
        """Translate history and tools into the request body."""
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_dict() for message in messages],
        }
        if tools:
            payload["tools"] = [
                {"type": "function", "function": tool.descriptor()} for tool in tools
            ]
        return payload

    async def generate(
        self,
        messages: Sequence[Message],
        tools: Sequence[Tool] | None = None,
    ) -> CompletionResult:
        client = await self._get_client()
        payload = self.build_payload(messages, tools)

        logger.info(
            "Requesting completion",
            model=self.model,
            message_count=len(payload["messages"]),
            tool_count=len(payload.get("tools", [])),
        )

        try:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json=payload,
            )
        except httpx.HTTPError as e:
            logger.error(
                "OpenRouter request failed",
                model=self.model,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise BackendError(
                f"OpenRouter request failed: {e}",
                error_class=type(e).__name__,
            ) from e

        if not response.is_success:
            logger.error(
                "OpenRouter returned error status",
                model=self.model,
                status=response.status_code,
            )
            raise BackendError.from_response(
                response.status_code, response.reason_phrase, response.text
            )

        result = self.parse_response(response)
        logger.info(
            "Completion received",
            model=self.model,
            text_length=len(result.text),
            tool_calls=[call.name for call in result.tool_calls],
        )
        return result

    def parse_response(self, response: httpx.Response) -> CompletionResult:
        """Map the first choice's message into a CompletionResult."""
        try:
            data = response.json()
            message = data["choices"][0]["message"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise BackendError(
                f"Malformed OpenRouter response: {e}",
                status=response.status_code,
                body=response.text,
            ) from e

        if not isinstance(message, dict):
            raise BackendError(
                "Malformed OpenRouter response: message is not an object",
                status=response.status_code,
                body=response.text,
            )

        text = message.get("content") or ""
        tool_calls = [
            self._parse_tool_call(raw) for raw in message.get("tool_calls") or []
        ]
        return CompletionResult(text=text, tool_calls=tool_calls)

    @staticmethod
    def _parse_tool_call(raw: Any) -> ToolCall:
        try:
            function = raw["function"]
            name = function["name"]
            raw_arguments = function.get("arguments")
        except (KeyError, TypeError) as e:
            raise BackendError(f"Malformed tool call in response: {raw!r}") from e

        if raw_arguments in (None, ""):
            arguments: Any = {}
        elif isinstance(raw_arguments, dict):
            arguments = raw_arguments
        else:
            try:
                arguments = json.loads(raw_arguments)
            except (TypeError, json.JSONDecodeError) as e:
                raise BackendError(
                    f"Tool call arguments for {name} are not valid JSON: {e}",
                    tool=name,
                ) from e

        if not isinstance(arguments, dict):
            raise BackendError(
                f"Tool call arguments for {name} must be a JSON object",
                tool=name,
            )

        return ToolCall(name=name, arguments=arguments, id=raw.get("id"))
