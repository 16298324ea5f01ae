"""
Rate limiting dependencies for API endpoints.

Uses slowapi; storage defaults to in-process memory and can point at Redis
(RATE_LIMIT_STORAGE_URI=redis://...) when several backends share limits.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from ...core.config import get_settings

_settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200/minute"],  # Global default: 200 requests per minute
    storage_uri=_settings.rate_limit_storage_uri,
    enabled=_settings.rate_limit_enabled,
)


def chat_rate_limit() -> str:
    """Limit for LLM-backed chat turns (e.g. "10/minute")."""
    return get_settings().rate_limit_chat


def rate_limit_llm(func):
    """
    Restrictive rate limit for operations that call the reasoning backend.

    Usage:
        @router.post("/chat")
        @rate_limit_llm
        async def chat(request: Request):
            pass
    """
    return limiter.limit(chat_rate_limit)(func)
