"""
Budget models exchanged with the budgeting subsystem and returned by tools.

Input records (SheetValue, CategoryGroupRecord) mirror what the external
budgeting engine exposes. BudgetMonthSummary is the structured object the
get_budget_month tool hands back to the reasoning backend; it serializes
with camelCase keys.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

BudgetType = Literal["envelope", "tracking"]


# ===== Budgeting subsystem records =====


class SheetValue(BaseModel):
    """A single computed budget cell, e.g. name="budget202510!total-income"."""

    name: str
    value: int | float | str | bool | None = None


class CategoryRecord(BaseModel):
    """Category as stored by the budgeting subsystem."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    is_income: bool = False
    hidden: bool = False
    group_id: str | None = None


class CategoryGroupRecord(BaseModel):
    """Category group with its categories."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    is_income: bool = False
    hidden: bool = False
    categories: list[CategoryRecord] = Field(default_factory=list)


# ===== Tool output =====


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CategorySummary(_CamelModel):
    """Per-category figures for one month (amounts in currency units)."""

    id: str
    name: str
    is_income: bool
    hidden: bool
    group_id: str | None = None

    # Expense categories
    budgeted: float | None = None
    spent: float | None = None
    balance: float | None = None
    carryover: float | bool | str | None = None

    # Income categories
    received: float | None = None


class CategoryGroupSummary(_CamelModel):
    """Per-group figures with the group's categories."""

    id: str
    name: str
    is_income: bool
    hidden: bool

    budgeted: float | None = None
    spent: float | None = None
    balance: float | None = None
    received: float | None = None

    categories: list[CategorySummary] = Field(default_factory=list)


class BudgetMonthSummary(_CamelModel):
    """Totals and category breakdown for a budget month."""

    month: str
    type: BudgetType

    income_available: float = 0
    last_month_overspent: float = 0
    for_next_month: float = 0
    total_budgeted: float = 0
    to_budget: float = 0

    from_last_month: float = 0
    total_income: float = 0
    total_spent: float = 0
    total_balance: float = 0

    category_groups: list[CategoryGroupSummary] = Field(default_factory=list)
