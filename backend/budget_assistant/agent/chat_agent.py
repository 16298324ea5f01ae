"""
Conversation orchestrator for the budget assistant.

Owns one conversation history and runs the request / tool-call / response
loop against a reasoning backend:

1. Refresh the system prompt (History[0]) with the current date and month.
2. Append the user message and ask the backend, advertising all tools.
3. If the backend asks for tools: append a placeholder assistant entry, run
   each call in order and append its result (or failure) as a user entry.
4. Ask the backend again. Tools stay advertised until `max_tool_rounds`
   rounds have been consumed; the last request offers none, so the loop is
   always finite. With the default of one round the backend is consulted at
   most twice per turn.
5. Append the final assistant answer and return its text.

Turns on one instance must be serialized by the caller.
"""

import asyncio
import dataclasses
import json
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel

from ..core.exceptions import BackendTimeoutError
from ..core.utils.date_utils import utcnow
from .llm_client import LLMProvider
from .prompts import build_system_prompt
from .state import CompletionResult, Message, ToolCall
from .tools.registry import Tool, ToolRegistry

logger = structlog.get_logger()

T = TypeVar("T")

# Assistant entry recorded when the backend requests tools without any text
TOOL_CALL_PLACEHOLDER = "Calling tools..."


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def render_tool_result(name: str, result: Any) -> str:
    """History entry content for a successful tool call."""
    return f"Tool '{name}' result: {json.dumps(result, default=_json_default)}"


def render_tool_failure(name: str, error: BaseException) -> str:
    """History entry content for a failed tool call."""
    return f"Tool '{name}' failed: {error}"


class AssistantService:
    """
    Conversational agent that grounds answers in budget tools.

    One instance per session: it exclusively owns its history and its
    provider. The tool registry may be shared between instances.
    """

    def __init__(
        self,
        provider: LLMProvider,
        registry: ToolRegistry,
        *,
        max_tool_rounds: int = 1,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize orchestrator.

        Args:
            provider: Reasoning backend gateway
            registry: Tools the backend may call
            max_tool_rounds: Rounds of tool consultation allowed per turn (>= 1)
            clock: Time source for the system prompt (defaults to UTC now)
        """
        if max_tool_rounds < 1:
            raise ValueError("max_tool_rounds must be at least 1")

        self.provider = provider
        self.registry = registry
        self.max_tool_rounds = max_tool_rounds
        self._clock = clock or utcnow
        self._history: list[Message] = []

    @property
    def history(self) -> list[Message]:
        """Copy of the conversation history."""
        return [Message(role=m.role, content=m.content) for m in self._history]

    def credential_identity(self) -> str:
        return self.provider.credential_identity()

    def clear_history(self) -> None:
        """Forget the conversation; the next turn starts with a fresh system prompt."""
        self._history = []
        logger.info("Conversation history cleared")

    async def process_message(self, content: str, timeout: float | None = None) -> str:
        """
        Run one conversational turn.

        Args:
            content: User message text
            timeout: Optional deadline in seconds for the whole turn

        Returns:
            Final assistant text (may contain an embedded chart block)

        Raises:
            BackendError: A backend request failed; the user entry and any
                entries appended earlier in the turn remain in history
            BackendTimeoutError: The deadline expired during a pending step
        """
        deadline = None
        if timeout is not None:
            deadline = asyncio.get_running_loop().time() + timeout

        tools = self.registry.list()
        self._refresh_system_prompt(tools)
        self._history.append(Message(role="user", content=content))

        logger.info(
            "Processing message",
            history_length=len(self._history),
            tool_count=len(tools),
            max_tool_rounds=self.max_tool_rounds,
        )

        response = await self._generate(tools, deadline)

        rounds = 0
        while response.has_tool_calls:
            rounds += 1
            self._history.append(
                Message(role="assistant", content=response.text or TOOL_CALL_PLACEHOLDER)
            )

            for call in response.tool_calls:
                entry = await self._run_tool(call, deadline)
                self._history.append(Message(role="user", content=entry))

            offered = tools if rounds < self.max_tool_rounds else []
            response = await self._generate(offered, deadline)
            if not offered:
                # Tool calls in a response to a tool-less request are not acted on
                break

        self._history.append(Message(role="assistant", content=response.text))
        logger.info(
            "Message processed",
            tool_rounds=rounds,
            response_length=len(response.text),
        )
        return response.text

    def _refresh_system_prompt(self, tools: list[Tool]) -> None:
        prompt = build_system_prompt(self._clock(), tools)
        if not self._history:
            self._history.append(Message(role="system", content=prompt))
        elif self._history[0].role == "system":
            self._history[0].content = prompt

    async def _generate(
        self, tools: list[Tool], deadline: float | None
    ) -> CompletionResult:
        # Snapshot: the provider must not observe later appends
        transcript = list(self._history)
        return await self._await_step(
            self.provider.generate(transcript, tools or None), deadline, "generate"
        )

    async def _run_tool(self, call: ToolCall, deadline: float | None) -> str:
        try:
            result = await self._await_step(
                self.registry.execute(call.name, call.arguments),
                deadline,
                f"tool:{call.name}",
            )
        except BackendTimeoutError:
            raise
        except Exception as e:
            logger.warning(
                "Tool execution failed",
                tool=call.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return render_tool_failure(call.name, e)

        logger.info("Tool executed", tool=call.name)
        return render_tool_result(call.name, result)

    async def _await_step(
        self, step: Awaitable[T], deadline: float | None, label: str
    ) -> T:
        if deadline is None:
            return await step

        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            if asyncio.iscoroutine(step):
                step.close()
            raise BackendTimeoutError(
                f"Turn deadline expired before {label}", step=label
            )

        try:
            return await asyncio.wait_for(step, remaining)
        except TimeoutError as e:
            logger.error("Turn deadline expired", step=label)
            raise BackendTimeoutError(
                f"Turn deadline expired during {label}", step=label
            ) from e
