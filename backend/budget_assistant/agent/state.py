"""
Conversation state types shared by the orchestrator and the gateway.

History is an ordered, append-only list of Message entries whose first
entry (when present) is always the system prompt.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

Role = Literal["system", "user", "assistant"]


@dataclass
class Message:
    """Single entry in a conversation history."""

    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        """Convert to the chat-completions wire shape."""
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        """Create from dictionary."""
        return cls(role=data["role"], content=data["content"])


@dataclass
class ToolCall:
    """A tool invocation requested by the reasoning backend."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    id: str | None = None  # Provider-assigned call id, when the backend sends one


@dataclass
class CompletionResult:
    """Outcome of one backend completion: free text and optional tool calls."""

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)
