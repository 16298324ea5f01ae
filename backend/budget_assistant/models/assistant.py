"""
Request/response models for the assistant transport.
"""

from pydantic import BaseModel, Field

from .visualization import VisualizationSpec


class ChatRequest(BaseModel):
    """A user turn."""

    message: str = Field(..., min_length=1, description="User message text")


class ChatResponse(BaseModel):
    """
    Result of a chat turn.

    Exactly one of `response` or `error` is set. Failures are reported as
    values so the caller can render them instead of crashing the session.
    """

    response: str | None = Field(
        default=None, description="Assistant text with any chart JSON removed"
    )
    visualization: VisualizationSpec | None = Field(
        default=None, description="Chart extracted from the assistant text"
    )
    error: str | None = Field(default=None, description="User-visible error message")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, message: str) -> "ChatResponse":
        return cls(error=message)


class StatusResponse(BaseModel):
    """Whether a reasoning backend credential is configured."""

    configured: bool


class ClearHistoryResponse(BaseModel):
    cleared: bool = True
