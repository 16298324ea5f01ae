"""
Pydantic models for the budget assistant.
"""

from .assistant import ChatRequest, ChatResponse, ClearHistoryResponse, StatusResponse
from .budget import (
    BudgetMonthSummary,
    CategoryGroupRecord,
    CategoryRecord,
    CategorySummary,
    CategoryGroupSummary,
    SheetValue,
)
from .visualization import VisualizationSpec

__all__ = [
    "BudgetMonthSummary",
    "CategoryGroupRecord",
    "CategoryGroupSummary",
    "CategoryRecord",
    "CategorySummary",
    "ChatRequest",
    "ChatResponse",
    "ClearHistoryResponse",
    "SheetValue",
    "StatusResponse",
    "VisualizationSpec",
]
