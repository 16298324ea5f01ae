"""
Chart descriptor embedded by the reasoning backend at the end of an answer.

Wire shape (camelCase, as written by the model):
    {"type": "bar", "title": "...", "data": [{...}], "dataKey": "value", "nameKey": "name"}
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class VisualizationSpec(BaseModel):
    """Structured chart specification separated from the display text."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Literal["bar", "pie", "line"] = Field(
        ..., description="bar for comparisons, pie for composition, line for trends"
    )
    data: list[dict[str, Any]] = Field(..., description="Chart records in order")
    data_key: str = Field(
        default="value",
        alias="dataKey",
        description="Field holding the numeric value in each record",
    )
    name_key: str = Field(
        default="name",
        alias="nameKey",
        description="Field holding the label in each record",
    )
    title: str | None = Field(default=None, description="Optional chart title")

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the camelCase keys the chart renderer expects."""
        return self.model_dump(by_alias=True, exclude_none=True)
