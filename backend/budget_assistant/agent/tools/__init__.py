"""
Tools the reasoning backend may call, and the registry that dispatches them.
"""

from .budget_tools import build_default_registry, create_budget_tools
from .registry import Tool, ToolRegistry

__all__ = ["Tool", "ToolRegistry", "build_default_registry", "create_budget_tools"]
