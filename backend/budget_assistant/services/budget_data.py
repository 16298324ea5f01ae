"""
Interfaces to the budgeting subsystem.

The assistant never computes budget figures or executes queries itself.
Both are delegated to collaborators implementing these protocols; the
concrete engines live in the host application.
"""

from typing import Any, Protocol, runtime_checkable

from ..models.budget import BudgetType, CategoryGroupRecord, SheetValue


@runtime_checkable
class BudgetDataSource(Protocol):
    """Read access to computed budget cells and category structure."""

    async def budget_type(self) -> BudgetType:
        """Budgeting mode of the open budget ("envelope" or "tracking")."""
        ...

    async def month_values(
        self, month: str, budget_type: BudgetType
    ) -> list[SheetValue]:
        """All computed cells for a month's sheet, names qualified as sheet!cell."""
        ...

    async def category_groups(self) -> list[CategoryGroupRecord]:
        """Category groups with their categories."""
        ...


@runtime_checkable
class QueryEngine(Protocol):
    """Executes structured queries against the budget database."""

    async def run_query(self, query: dict[str, Any]) -> Any:
        """Run a query object and return its structured result."""
        ...
