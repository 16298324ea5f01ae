"""
Session ownership for the assistant.

The transport layer owns one AssistantSessionManager. It binds the current
conversation to the configured credential: a missing credential is rejected
before the backend is contacted, and a credential that differs from the one
the session was built with (plain string equality) replaces the session,
discarding its history.
"""

import asyncio
import os
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from ..core.config import Settings, get_settings
from ..core.exceptions import AppError, ConfigurationError, ValidationError
from ..models.assistant import ChatResponse, StatusResponse
from ..services.response_extractor import ResponseExtractor
from .chat_agent import AssistantService
from .llm_client import LLMProvider, OpenRouterClient
from .tools.registry import ToolRegistry

logger = structlog.get_logger()

MISSING_CREDENTIAL_MESSAGE = (
    "API Key is required. Please configure OPENROUTER_API_KEY in .env"
)

CredentialLoader = Callable[[], str | None]
ProviderFactory = Callable[[str], LLMProvider]


@dataclass
class AssistantSession:
    """A conversation bound to one credential."""

    credential: str
    provider: LLMProvider
    service: AssistantService


class AssistantSessionManager:
    """
    Owns the active assistant session for a process.

    Turns are serialized with a lock, so concurrent chat requests queue
    rather than racing on the history.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        settings: Settings | None = None,
        credential_loader: CredentialLoader | None = None,
        provider_factory: ProviderFactory | None = None,
        extractor: ResponseExtractor | None = None,
    ):
        """
        Initialize session manager.

        Args:
            registry: Tools shared by every session
            settings: Application settings (defaults to cached settings)
            credential_loader: Returns the currently configured credential;
                defaults to the OPENROUTER_API_KEY environment variable,
                falling back to settings.openrouter_api_key
            provider_factory: Builds a gateway for a credential; defaults to
                an OpenRouterClient configured from settings
            extractor: Chart extractor applied to final answers
        """
        self.registry = registry
        self.settings = settings or get_settings()
        self._credential_loader = credential_loader or self._load_credential
        self._provider_factory = provider_factory or (
            lambda api_key: OpenRouterClient.from_settings(self.settings, api_key)
        )
        self._extractor = extractor or ResponseExtractor()
        self._session: AssistantSession | None = None
        self._lock = asyncio.Lock()

        logger.info(
            "AssistantSessionManager initialized",
            tool_count=len(registry),
            max_tool_rounds=self.settings.assistant_max_tool_rounds,
        )

    def _load_credential(self) -> str | None:
        # Re-read each call so a key changed after startup is observed
        return os.environ.get("OPENROUTER_API_KEY", self.settings.openrouter_api_key)

    @property
    def session(self) -> AssistantSession | None:
        return self._session

    def _credential(self) -> str:
        return self._credential_loader() or ""

    def status(self) -> StatusResponse:
        """Report whether a credential is configured, regardless of history."""
        return StatusResponse(configured=bool(self._credential()))

    async def _ensure_session(self) -> AssistantSession:
        credential = self._credential()
        if not credential:
            raise ConfigurationError(MISSING_CREDENTIAL_MESSAGE)

        session = self._session
        if session is not None and session.credential == credential:
            return session

        if session is not None:
            logger.info("Credential changed, rebuilding assistant session")
            await session.provider.aclose()

        provider = self._provider_factory(credential)
        service = AssistantService(
            provider,
            self.registry,
            max_tool_rounds=self.settings.assistant_max_tool_rounds,
        )
        self._session = AssistantSession(
            credential=credential, provider=provider, service=service
        )
        logger.info("Assistant session created")
        return self._session

    async def chat(self, message: str) -> ChatResponse:
        """
        Run a chat turn and report the outcome as a value.

        Args:
            message: User message text

        Returns:
            ChatResponse with display text and optional visualization, or
            with `error` set when the turn failed
        """
        async with self._lock:
            try:
                if not message or not message.strip():
                    raise ValidationError("Message must not be empty", field="message")
                session = await self._ensure_session()
                raw_text = await session.service.process_message(
                    message, timeout=self.settings.assistant_turn_timeout_seconds
                )
            except AppError as e:
                logger.error("AI chat error", **e.to_dict())
                return ChatResponse.failure(e.message)
            except Exception as e:
                logger.exception(
                    "AI chat failed unexpectedly",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return ChatResponse.failure(str(e) or "An unknown error occurred")

        extracted = self._extractor.split(raw_text)
        return ChatResponse(
            response=extracted.display_text,
            visualization=extracted.visualization,
        )

    async def clear_history(self) -> None:
        """Reset the active conversation, if any."""
        async with self._lock:
            if self._session is not None:
                self._session.service.clear_history()

    async def aclose(self) -> None:
        """Release the active session's gateway."""
        async with self._lock:
            if self._session is not None:
                await self._session.provider.aclose()
                self._session = None
