"""
Budget tools for the assistant.

Provides the reasoning backend with:
- get_budget_month: totals and category breakdown for one month
- run_query: passthrough to the budget query engine

Figures come from the budgeting subsystem as integer minor units keyed by
sheet cell name ("budget202510!total-income"); the tool looks cells up,
converts them to currency units and assembles a BudgetMonthSummary.
"""

from typing import Any

import structlog
from pydantic import BaseModel, Field

from ...core.utils.date_utils import MONTH_PATTERN, sheet_for_month
from ...models.budget import (
    BudgetMonthSummary,
    CategoryGroupRecord,
    CategoryGroupSummary,
    CategorySummary,
    SheetValue,
)
from ...services.budget_data import BudgetDataSource, QueryEngine
from .registry import Tool, ToolRegistry

logger = structlog.get_logger()


class BudgetMonthArgs(BaseModel):
    """Arguments for get_budget_month."""

    month: str = Field(
        ...,
        pattern=MONTH_PATTERN,
        description="The month to retrieve (YYYY-MM)",
    )


class RunQueryArgs(BaseModel):
    """Arguments for run_query."""

    query: dict[str, Any] = Field(..., description="The query object")


def integer_to_amount(value: int | float) -> float:
    """Convert integer minor units (cents) to currency units."""
    return round(value / 100, 2)


class _MonthSheet:
    """Lookup over one month's computed cells."""

    def __init__(self, month: str, values: list[SheetValue]):
        self.sheet = sheet_for_month(month)
        self._values = {v.name: v.value for v in values}

    def value(self, name: str) -> Any:
        """Cell value in currency units; missing cells read as 0."""
        raw = self._values.get(f"{self.sheet}!{name}")
        if raw is None:
            return 0
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, int | float):
            return integer_to_amount(raw)
        return raw

    def amount(self, name: str) -> float:
        value = self.value(name)
        return value if isinstance(value, int | float) else 0


def _summarize_group(
    group: CategoryGroupRecord, sheet: _MonthSheet
) -> CategoryGroupSummary:
    if group.is_income:
        return CategoryGroupSummary(
            id=group.id,
            name=group.name,
            is_income=True,
            hidden=group.hidden,
            received=sheet.amount("total-income"),
            categories=[
                CategorySummary(
                    id=cat.id,
                    name=cat.name,
                    is_income=True,
                    hidden=cat.hidden,
                    group_id=cat.group_id or group.id,
                    received=sheet.amount(f"sum-amount-{cat.id}"),
                )
                for cat in group.categories
            ],
        )

    return CategoryGroupSummary(
        id=group.id,
        name=group.name,
        is_income=False,
        hidden=group.hidden,
        budgeted=sheet.amount(f"group-budget-{group.id}"),
        spent=sheet.amount(f"group-sum-amount-{group.id}"),
        balance=sheet.amount(f"group-leftover-{group.id}"),
        categories=[
            CategorySummary(
                id=cat.id,
                name=cat.name,
                is_income=False,
                hidden=cat.hidden,
                group_id=cat.group_id or group.id,
                budgeted=sheet.amount(f"budget-{cat.id}"),
                spent=sheet.amount(f"sum-amount-{cat.id}"),
                balance=sheet.amount(f"leftover-{cat.id}"),
                carryover=sheet.value(f"carryover-{cat.id}"),
            )
            for cat in group.categories
        ],
    )


async def get_budget_month(
    data_source: BudgetDataSource, month: str
) -> BudgetMonthSummary:
    """
    Assemble the budget summary for a month.

    Args:
        data_source: Budgeting subsystem
        month: Month in YYYY-MM format

    Returns:
        BudgetMonthSummary with totals and per-group figures
    """
    budget_type = await data_source.budget_type()
    values = await data_source.month_values(month, budget_type)
    groups = await data_source.category_groups()

    sheet = _MonthSheet(month, values)

    summary = BudgetMonthSummary(
        month=month,
        type=budget_type,
        income_available=sheet.amount("available-funds"),
        last_month_overspent=sheet.amount("last-month-overspent"),
        for_next_month=sheet.amount("buffered"),
        total_budgeted=sheet.amount("total-budgeted"),
        to_budget=sheet.amount("to-budget"),
        from_last_month=sheet.amount("from-last-month"),
        total_income=sheet.amount("total-income"),
        total_spent=sheet.amount("total-spent"),
        total_balance=sheet.amount("total-leftover"),
        category_groups=[_summarize_group(group, sheet) for group in groups],
    )

    logger.info(
        "Budget month assembled",
        month=month,
        budget_type=budget_type,
        group_count=len(summary.category_groups),
    )
    return summary


def create_budget_tools(
    data_source: BudgetDataSource, query_engine: QueryEngine
) -> list[Tool]:
    """
    Create budget tools bound to the budgeting subsystem.

    Args:
        data_source: Source of computed budget cells and categories
        query_engine: Executor for structured queries

    Returns:
        Tools in advertisement order
    """

    async def budget_month_action(args: BudgetMonthArgs) -> BudgetMonthSummary:
        return await get_budget_month(data_source, args.month)

    async def run_query_action(args: RunQueryArgs) -> Any:
        logger.info("Running budget query", query_keys=sorted(args.query))
        return await query_engine.run_query(args.query)

    return [
        Tool(
            name="get_budget_month",
            description=(
                "Get the budget details for a specific month (format: YYYY-MM). "
                "Use this for questions about income, expenses, or category "
                "balances for a specific month."
            ),
            action=budget_month_action,
            args_model=BudgetMonthArgs,
        ),
        Tool(
            name="run_query",
            description=(
                "Run a query object against the budget database to retrieve data. "
                "Use this for specific transaction searches or custom aggregations."
            ),
            action=run_query_action,
            args_model=RunQueryArgs,
        ),
    ]


def build_default_registry(
    data_source: BudgetDataSource, query_engine: QueryEngine
) -> ToolRegistry:
    """Registry holding the budget tools."""
    registry = ToolRegistry()
    for tool in create_budget_tools(data_source, query_engine):
        registry.register(tool)
    return registry
