"""
System prompt for the budget assistant.

Rebuilt on every turn so that the date and month references stay current
for long-lived conversations.
"""

from collections.abc import Sequence
from datetime import datetime

from ..core.utils.date_utils import current_month
from .tools.registry import Tool

_CHART_INSTRUCTIONS = """You can also generate graphs! To do so, output a JSON block at the end of your response with the following structure:
```json
{
  "type": "bar" | "pie" | "line",
  "title": "Chart Title",
  "data": [
    { "name": "Label 1", "value": 100 },
    { "name": "Label 2", "value": 200 }
  ],
  "dataKey": "value"
}
```
Use "bar" for comparisons, "pie" for composition (like spending by category), and "line" for trends.
Only include one chart per response."""


def _describe_tools(tools: Sequence[Tool]) -> str:
    lines = []
    for index, tool in enumerate(tools, start=1):
        params = ", ".join(tool.parameters.get("properties", {}))
        lines.append(f"{index}. {tool.name}({params}): {tool.description}")
    return "\n".join(lines)


def build_system_prompt(now: datetime, tools: Sequence[Tool] = ()) -> str:
    """
    Render the system prompt for a turn.

    Args:
        now: Current time; its date and YYYY-MM month are embedded
        tools: Tools advertised this turn, listed for the model

    Returns:
        System prompt text
    """
    month = current_month(now)

    sections = [
        "You are a helpful financial assistant for Actual Budget.",
        f"Current Date: {now.date().isoformat()}\nCurrent Month: {month}",
    ]

    if tools:
        sections.append(
            "You have access to the following tools:\n" + _describe_tools(tools)
        )

    sections.append(
        f'When asked about "this month", use {month}.\n'
        'If the user asks about spending on a specific category (e.g., "subscriptions"), '
        "try to find that category in the budget first.\n"
        "Amounts returned by tools are in currency units, not cents."
    )
    sections.append(_CHART_INSTRUCTIONS)

    return "\n\n".join(sections) + "\n"
