"""
Custom exception hierarchy for error categorization and HTTP status mapping.

Distinguishes the failure classes of a conversational turn:
- Configuration errors: no reasoning backend credential, detected before any call
- Backend errors (502/503/504): the reasoning backend failed or misbehaved
- Tool errors: a backend-requested tool could not be found, validated or run
- Extraction errors: embedded chart JSON could not be recovered

Usage:
    from budget_assistant.core.exceptions import BackendError, ToolNotFoundError

    raise BackendError.from_response(503, "Service Unavailable", body)
    raise ToolNotFoundError("Tool get_budget_month not found", tool="get_budget_month")

Tool and extraction errors are local and recoverable: the orchestrator turns
tool failures into conversation content and the extractor degrades to
"no visualization". Configuration and backend errors reach the caller.
"""

from typing import Any


class AppError(Exception):
    """
    Base application error with HTTP status mapping.

    All custom exceptions inherit from this to enable consistent error handling.
    """

    # Default status code (subclasses override)
    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(self, message: str, **context: Any):
        """
        Initialize error with message and optional context.

        Args:
            message: Human-readable error description
            **context: Additional key-value pairs for logging (e.g., tool, status)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON response and structured logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "status_code": self.status_code,
            **self.context,
        }


# ===== 400-level: Client Errors =====


class ValidationError(AppError):
    """Caller provided invalid input (e.g., empty chat message)."""

    status_code = 400
    error_type = "validation_error"


# ===== 500-level: Server Errors =====


class ConfigurationError(AppError):
    """
    Application misconfigured (e.g., missing reasoning backend credential).

    Raised before any network call is attempted.
    """

    status_code = 500
    error_type = "configuration_error"


# ===== Tool dispatch =====


class ToolExecutionError(AppError):
    """
    A backend-requested tool failed.

    Caught per tool call by the orchestrator and rendered into the
    conversation; never aborts a turn.
    """

    status_code = 500
    error_type = "tool_execution_error"

    def __init__(self, message: str, tool: str, **context: Any):
        super().__init__(message, tool=tool, **context)
        self.tool = tool


class ToolNotFoundError(ToolExecutionError):
    """No tool of the requested name is registered."""

    status_code = 404
    error_type = "tool_not_found"


class ToolArgumentError(ToolExecutionError):
    """Tool arguments did not match the tool's parameter schema."""

    status_code = 400
    error_type = "tool_argument_error"


# ===== Response extraction =====


class ExtractionError(AppError):
    """Embedded visualization JSON was malformed or structurally wrong."""

    status_code = 422
    error_type = "extraction_error"


# ===== 502/503/504: External Service Errors =====


class ExternalServiceError(AppError):
    """
    External service unavailable or returned error.

    Maps to 503 Service Unavailable (third-party problem, retry may help).
    """

    status_code = 503
    error_type = "external_service_error"

    def __init__(self, message: str, service: str, **context: Any):
        """
        Initialize with service name for easier debugging.

        Args:
            message: Error description
            service: Service identifier (e.g., "openrouter")
            **context: Additional context (e.g., status, model)
        """
        super().__init__(message, service=service, **context)


class BackendError(ExternalServiceError):
    """
    Reasoning backend returned a non-success status or a malformed body.

    The failing turn appends no assistant entry for the failed call.
    """

    status_code = 502
    error_type = "backend_error"

    def __init__(
        self,
        message: str,
        service: str = "openrouter",
        status: int | None = None,
        status_text: str | None = None,
        body: str | None = None,
        **context: Any,
    ):
        super().__init__(
            message,
            service=service,
            status=status,
            status_text=status_text,
            **context,
        )
        self.status = status
        self.status_text = status_text
        self.body = body

    @classmethod
    def from_response(
        cls,
        status: int,
        status_text: str,
        body: str,
        service: str = "openrouter",
    ) -> "BackendError":
        """Build the error for a non-2xx response, keeping the body verbatim."""
        return cls(
            f"OpenRouter API error: {status} {status_text} - {body}",
            service=service,
            status=status,
            status_text=status_text,
            body=body,
        )


class BackendTimeoutError(BackendError):
    """The turn deadline expired while a backend or tool call was pending."""

    status_code = 504
    error_type = "backend_timeout"
