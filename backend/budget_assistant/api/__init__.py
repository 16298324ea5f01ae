"""
HTTP transport for the budget assistant.
"""

from .assistant import router

__all__ = ["router"]
