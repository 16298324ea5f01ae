"""
Budget assistant agent module.

Implements a tool-calling conversational agent over an OpenRouter backend:
- AssistantService: per-session history and the tool-call loop
- AssistantSessionManager: binds a session to the configured credential
- OpenRouterClient: chat-completions gateway
"""

from .chat_agent import AssistantService
from .llm_client import LLMProvider, OpenRouterClient
from .session_manager import AssistantSessionManager

__all__ = [
    "AssistantService",
    "AssistantSessionManager",
    "LLMProvider",
    "OpenRouterClient",
]
