from __future__ import annotations

from application.grouping import group
from domain.models import EarningsGroup, Period
from domain.schemas import ToolRequest, ToolResponse
from tools._transactions_support import fetch_transactions, serialize_item, window_to_dict
from tools.base import Tool, ToolSpec
from tools.registry import register_tool


@register_tool
class HistoryTool(Tool):
    name = "ledger.history"
    description = (
        "Transaction history, newest first, with each day's earnings collapsed into one group "
        "and expenses listed individually. Optional `period`/`start`/`end` narrow the window."
    )

    def run(self, request: ToolRequest) -> ToolResponse:
        try:
            transactions, window = fetch_transactions(request, default_period=None)
        except ValueError as exc:
            return self.fail(request, [str(exc)])

        items = group(transactions)
        result = {
            "items": [serialize_item(item) for item in items],
            "group_count": sum(1 for item in items if isinstance(item, EarningsGroup)),
            "expense_count": sum(1 for item in items if not isinstance(item, EarningsGroup)),
            "window": window_to_dict(window),
        }
        return self.ok(request, result)

    def spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            args_schema={
                "type": "object",
                "properties": {
                    "period": {"type": "string", "enum": [p.value for p in Period]},
                    "start": {"type": "string", "format": "date"},
                    "end": {"type": "string", "format": "date"},
                    "now": {"type": "string"},
                },
            },
        )
