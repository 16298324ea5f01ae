"""
Services backing the assistant: response extraction and budget collaborators.
"""

from .budget_data import BudgetDataSource, QueryEngine
from .response_extractor import ExtractedResponse, ResponseExtractor, split_response

__all__ = [
    "BudgetDataSource",
    "ExtractedResponse",
    "QueryEngine",
    "ResponseExtractor",
    "split_response",
]
