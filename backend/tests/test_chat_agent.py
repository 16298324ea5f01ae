"""
Unit tests for AssistantService (conversation orchestrator).

Tests the tool-calling turn loop with a scripted provider:
- System prompt placement and refresh
- Entry counts for plain and tool-calling turns
- Sequential, ordered tool execution and non-fatal tool failures
- Backend failures leaving the user entry in place
- Bounded multi-round consultation and turn deadlines
"""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from budget_assistant.agent.chat_agent import (
    TOOL_CALL_PLACEHOLDER,
    AssistantService,
    render_tool_failure,
    render_tool_result,
)
from budget_assistant.agent.llm_client import LLMProvider
from budget_assistant.agent.state import CompletionResult, ToolCall
from budget_assistant.agent.tools.registry import Tool, ToolRegistry
from budget_assistant.core.exceptions import BackendError, BackendTimeoutError

# ===== Helpers =====


class ScriptedProvider(LLMProvider):
    """Provider replaying queued results and recording each request"""

    def __init__(self, *results: CompletionResult | Exception):
        self.results = list(results)
        self.calls: list[dict] = []

    async def generate(self, messages, tools=None):
        self.calls.append(
            {
                "messages": [(m.role, m.content) for m in messages],
                "tools": [t.name for t in tools] if tools else None,
            }
        )
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def credential_identity(self) -> str:
        return "sk-or-test"


def fixed_clock(year: int = 2025, month: int = 10, day: int = 19):
    return lambda: datetime(year, month, day, 12, 0, tzinfo=UTC)


# ===== Fixtures =====


@pytest.fixture
def budget_action():
    return AsyncMock(return_value={"month": "2025-10", "totalSpent": -3950.5})


@pytest.fixture
def query_action():
    return AsyncMock(return_value={"data": [{"amount": -1599}]})


@pytest.fixture
def registry(budget_action, query_action):
    registry = ToolRegistry()
    registry.register(
        Tool(name="get_budget_month", description="Budget month", action=budget_action)
    )
    registry.register(Tool(name="run_query", description="Query", action=query_action))
    return registry


def make_service(provider, registry, **kwargs) -> AssistantService:
    kwargs.setdefault("clock", fixed_clock())
    return AssistantService(provider, registry, **kwargs)


# ===== Rendering =====


class TestRendering:
    def test_render_tool_result_json(self):
        assert (
            render_tool_result("run_query", {"data": [1, 2]})
            == "Tool 'run_query' result: {\"data\": [1, 2]}"
        )

    def test_render_tool_failure(self):
        assert (
            render_tool_failure("run_query", RuntimeError("db locked"))
            == "Tool 'run_query' failed: db locked"
        )


# ===== Construction =====


class TestInit:
    def test_rejects_zero_rounds(self, registry):
        with pytest.raises(ValueError):
            AssistantService(ScriptedProvider(), registry, max_tool_rounds=0)

    def test_credential_identity_delegates(self, registry):
        service = make_service(ScriptedProvider(), registry)

        assert service.credential_identity() == "sk-or-test"


# ===== Plain Turns =====


class TestPlainTurn:
    """Turns where the backend answers directly"""

    @pytest.mark.asyncio
    async def test_single_assistant_entry(self, registry):
        provider = ScriptedProvider(CompletionResult(text="Hello! How can I help?"))
        service = make_service(provider, registry)

        reply = await service.process_message("hi")

        assert reply == "Hello! How can I help?"
        history = service.history
        assert [m.role for m in history] == ["system", "user", "assistant"]
        assert history[1].content == "hi"
        assert history[2].content == "Hello! How can I help?"

    @pytest.mark.asyncio
    async def test_tools_offered_on_first_request(self, registry):
        provider = ScriptedProvider(CompletionResult(text="ok"))
        service = make_service(provider, registry)

        await service.process_message("hi")

        assert provider.calls[0]["tools"] == ["get_budget_month", "run_query"]
        assert provider.calls[0]["messages"][0][0] == "system"
        assert provider.calls[0]["messages"][-1] == ("user", "hi")

    @pytest.mark.asyncio
    async def test_empty_registry_offers_no_tools(self):
        provider = ScriptedProvider(CompletionResult(text="ok"))
        service = make_service(provider, ToolRegistry())

        await service.process_message("hi")

        assert provider.calls[0]["tools"] is None

    @pytest.mark.asyncio
    async def test_second_turn_appends(self, registry):
        provider = ScriptedProvider(
            CompletionResult(text="first"), CompletionResult(text="second")
        )
        service = make_service(provider, registry)

        await service.process_message("one")
        await service.process_message("two")

        roles = [m.role for m in service.history]
        assert roles == ["system", "user", "assistant", "user", "assistant"]
        assert roles.count("system") == 1


# ===== System Prompt =====


class TestSystemPrompt:
    """System prompt placement and freshness"""

    @pytest.mark.asyncio
    async def test_prompt_embeds_date_and_month(self, registry):
        provider = ScriptedProvider(CompletionResult(text="ok"))
        service = make_service(provider, registry, clock=fixed_clock(2025, 10, 19))

        await service.process_message("hi")

        prompt = service.history[0].content
        assert "Current Date: 2025-10-19" in prompt
        assert "Current Month: 2025-10" in prompt
        assert "get_budget_month" in prompt

    @pytest.mark.asyncio
    async def test_prompt_overwritten_not_appended(self, registry):
        now = {"value": datetime(2025, 10, 31, 23, 0, tzinfo=UTC)}
        provider = ScriptedProvider(
            CompletionResult(text="a"), CompletionResult(text="b")
        )
        service = make_service(provider, registry, clock=lambda: now["value"])

        await service.process_message("one")
        now["value"] = datetime(2025, 11, 1, 0, 30, tzinfo=UTC)
        await service.process_message("two")

        history = service.history
        assert sum(1 for m in history if m.role == "system") == 1
        assert "Current Month: 2025-11" in history[0].content
        assert "2025-10" not in history[0].content

    @pytest.mark.asyncio
    async def test_clear_history_then_fresh_prompt(self, registry):
        provider = ScriptedProvider(
            CompletionResult(text="a"), CompletionResult(text="b")
        )
        service = make_service(provider, registry, clock=datetime.now)

        await service.process_message("one")
        service.clear_history()
        assert service.history == []

        await service.process_message("hi")

        history = service.history
        assert len(history) == 3
        assert history[0].role == "system"
        assert datetime.now().strftime("%Y-%m") in history[0].content


# ===== Tool Turns =====


class TestToolTurn:
    """Turns where the backend requests tools"""

    @pytest.mark.asyncio
    async def test_entries_and_order(self, registry, budget_action, query_action):
        provider = ScriptedProvider(
            CompletionResult(
                text="",
                tool_calls=[
                    ToolCall(name="run_query", arguments={"query": {"t": 1}}),
                    ToolCall(name="get_budget_month", arguments={"month": "2025-10"}),
                ],
            ),
            CompletionResult(text="You spent $3,950.50 in October."),
        )
        service = make_service(provider, registry)

        reply = await service.process_message("How much did I spend?")

        assert reply == "You spent $3,950.50 in October."
        history = service.history
        # user + placeholder + 2 tool results + final answer
        assert len(history) == 1 + 1 + 2 + 2
        assert history[2].role == "assistant"
        assert history[2].content == TOOL_CALL_PLACEHOLDER
        assert history[3].role == "user"
        assert history[3].content.startswith("Tool 'run_query' result: ")
        assert history[4].content.startswith("Tool 'get_budget_month' result: ")
        assert '"totalSpent": -3950.5' in history[4].content
        assert history[5].role == "assistant"
        query_action.assert_awaited_once_with({"query": {"t": 1}})
        budget_action.assert_awaited_once_with({"month": "2025-10"})

    @pytest.mark.asyncio
    async def test_final_request_offers_no_tools(self, registry):
        provider = ScriptedProvider(
            CompletionResult(
                tool_calls=[ToolCall(name="run_query", arguments={})],
            ),
            CompletionResult(text="done"),
        )
        service = make_service(provider, registry)

        await service.process_message("q")

        assert len(provider.calls) == 2
        assert provider.calls[1]["tools"] is None
        assert provider.calls[1]["messages"][-1][1].startswith("Tool 'run_query'")

    @pytest.mark.asyncio
    async def test_text_kept_as_placeholder(self, registry):
        provider = ScriptedProvider(
            CompletionResult(
                text="Let me check your budget.",
                tool_calls=[ToolCall(name="get_budget_month", arguments={})],
            ),
            CompletionResult(text="done"),
        )
        service = make_service(provider, registry)

        await service.process_message("q")

        assert service.history[2].content == "Let me check your budget."

    @pytest.mark.asyncio
    async def test_tool_calls_in_final_response_ignored(self, registry, query_action):
        provider = ScriptedProvider(
            CompletionResult(tool_calls=[ToolCall(name="run_query", arguments={})]),
            CompletionResult(
                text="Here is the answer.",
                tool_calls=[ToolCall(name="run_query", arguments={})],
            ),
        )
        service = make_service(provider, registry)

        reply = await service.process_message("q")

        assert reply == "Here is the answer."
        assert query_action.await_count == 1
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_failing_tool_does_not_abort_turn(self, registry, query_action):
        failing = AsyncMock(side_effect=RuntimeError("budget file closed"))
        registry.register(Tool(name="flaky", description="Flaky", action=failing))
        provider = ScriptedProvider(
            CompletionResult(
                tool_calls=[
                    ToolCall(name="flaky", arguments={}),
                    ToolCall(name="nonexistent", arguments={}),
                    ToolCall(name="run_query", arguments={"query": {}}),
                ]
            ),
            CompletionResult(text="Partial answer."),
        )
        service = make_service(provider, registry)

        reply = await service.process_message("q")

        assert reply == "Partial answer."
        history = service.history
        assert history[3].content == "Tool 'flaky' failed: budget file closed"
        assert history[4].content == "Tool 'nonexistent' failed: Tool nonexistent not found"
        assert history[5].content.startswith("Tool 'run_query' result: ")
        query_action.assert_awaited_once()
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_tools_run_sequentially(self, registry):
        events: list[str] = []

        async def slow(args):
            events.append("slow:start")
            await asyncio.sleep(0.01)
            events.append("slow:end")
            return 1

        async def fast(args):
            events.append("fast")
            return 2

        registry.register(Tool(name="slow", description="s", action=slow))
        registry.register(Tool(name="fast", description="f", action=fast))
        provider = ScriptedProvider(
            CompletionResult(
                tool_calls=[ToolCall(name="slow"), ToolCall(name="fast")],
            ),
            CompletionResult(text="ok"),
        )
        service = make_service(provider, registry)

        await service.process_message("q")

        assert events == ["slow:start", "slow:end", "fast"]


# ===== Backend Failures =====


class TestBackendFailure:
    """Backend errors propagate without an assistant entry"""

    @pytest.mark.asyncio
    async def test_first_call_failure(self, registry):
        provider = ScriptedProvider(BackendError.from_response(500, "Internal", "x"))
        service = make_service(provider, registry)

        with pytest.raises(BackendError):
            await service.process_message("hi")

        assert [m.role for m in service.history] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_retry_after_failure_keeps_prompt_single(self, registry):
        provider = ScriptedProvider(
            BackendError("down"), CompletionResult(text="back up")
        )
        service = make_service(provider, registry)

        with pytest.raises(BackendError):
            await service.process_message("hi")
        reply = await service.process_message("hi")

        assert reply == "back up"
        roles = [m.role for m in service.history]
        assert roles == ["system", "user", "user", "assistant"]

    @pytest.mark.asyncio
    async def test_final_call_failure_keeps_tool_entries(self, registry):
        provider = ScriptedProvider(
            CompletionResult(tool_calls=[ToolCall(name="run_query", arguments={})]),
            BackendError("down"),
        )
        service = make_service(provider, registry)

        with pytest.raises(BackendError):
            await service.process_message("q")

        assert [m.role for m in service.history] == [
            "system",
            "user",
            "assistant",
            "user",
        ]


# ===== Multi-round =====


class TestToolRounds:
    """Bounded multi-round consultation"""

    @pytest.mark.asyncio
    async def test_second_round_when_allowed(self, registry, budget_action):
        provider = ScriptedProvider(
            CompletionResult(tool_calls=[ToolCall(name="run_query", arguments={})]),
            CompletionResult(
                tool_calls=[ToolCall(name="get_budget_month", arguments={})]
            ),
            CompletionResult(text="final"),
        )
        service = make_service(provider, registry, max_tool_rounds=2)

        reply = await service.process_message("q")

        assert reply == "final"
        assert [c["tools"] is not None for c in provider.calls] == [True, True, False]
        budget_action.assert_awaited_once()
        # user, (placeholder, result) x 2, final
        assert len(service.history) == 1 + 1 + 2 + 2 + 1

    @pytest.mark.asyncio
    async def test_early_answer_ends_rounds(self, registry):
        provider = ScriptedProvider(
            CompletionResult(tool_calls=[ToolCall(name="run_query", arguments={})]),
            CompletionResult(text="answered after one round"),
        )
        service = make_service(provider, registry, max_tool_rounds=3)

        reply = await service.process_message("q")

        assert reply == "answered after one round"
        assert len(provider.calls) == 2


# ===== Deadlines =====


class TestDeadline:
    """Optional turn timeout"""

    @pytest.mark.asyncio
    async def test_slow_backend_times_out(self, registry):
        class SlowProvider(ScriptedProvider):
            async def generate(self, messages, tools=None):
                await asyncio.sleep(1)
                return CompletionResult(text="late")

        service = make_service(SlowProvider(), registry)

        with pytest.raises(BackendTimeoutError):
            await service.process_message("hi", timeout=0.01)

        assert [m.role for m in service.history] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_slow_tool_aborts_turn(self, registry):
        async def hang(args):
            await asyncio.sleep(1)

        registry.register(Tool(name="hang", description="h", action=hang))
        provider = ScriptedProvider(
            CompletionResult(tool_calls=[ToolCall(name="hang", arguments={})]),
            CompletionResult(text="never"),
        )
        service = make_service(provider, registry)

        with pytest.raises(BackendTimeoutError):
            await service.process_message("q", timeout=0.05)

        assert [m.role for m in service.history] == ["system", "user", "assistant"]
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_no_timeout_by_default(self, registry):
        provider = ScriptedProvider(CompletionResult(text="ok"))
        service = make_service(provider, registry)

        assert await service.process_message("hi") == "ok"
