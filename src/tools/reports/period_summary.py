from __future__ import annotations

from application.aggregation import summarize, summary_to_dict
from domain.models import Period
from domain.schemas import ToolRequest, ToolResponse
from tools._transactions_support import fetch_transactions, window_to_dict
from tools.base import Tool, ToolSpec
from tools.registry import register_tool


@register_tool
class PeriodSummaryTool(Tool):
    name = "reports.period_summary"
    description = (
        "Gross earnings, expenses, net profit, per-platform earnings and daily average profit for a period. "
        "`period` is day, month (default), year or custom; custom takes `start`/`end` dates, both included."
    )

    def run(self, request: ToolRequest) -> ToolResponse:
        try:
            transactions, window = fetch_transactions(request, default_period=Period.MONTH)
        except ValueError as exc:
            return self.fail(request, [str(exc)])

        result = summary_to_dict(summarize(transactions))
        result["window"] = window_to_dict(window)
        result["transaction_count"] = len(transactions)
        return self.ok(request, result)

    def spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            args_schema={
                "type": "object",
                "properties": {
                    "period": {"type": "string", "enum": [p.value for p in Period]},
                    "start": {"type": "string", "format": "date", "description": "First day of a custom window."},
                    "end": {"type": "string", "format": "date", "description": "Last day of a custom window."},
                    "now": {
                        "type": "string",
                        "description": "Reference date for day/month/year windows. Defaults to the current time.",
                    },
                },
            },
        )
