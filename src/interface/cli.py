from __future__ import annotations

import json
from datetime import datetime

from application.engine import LedgerEngine
from application.tool_executor import ToolExecutor
from domain.schemas import ToolContext
from infrastructure.get_transactions import get_transactions
from tools.registry import registry


def build_engine() -> LedgerEngine:
    return LedgerEngine(store=get_transactions)


def build_executor() -> ToolExecutor:
    import tools  # noqa: F401

    return ToolExecutor(registry)


def main() -> None:
    period = input("RideLedger period [day/month/year/custom] > ").strip().lower() or "month"
    args: dict[str, str] = {"period": period}
    if period == "custom":
        args["start"] = input("Start date (YYYY-MM-DD) > ").strip()
        args["end"] = input("End date (YYYY-MM-DD) > ").strip()

    response = build_executor().run_named(
        "reports.period_summary",
        args={key: value for key, value in args.items() if value},
        context=ToolContext(user_id="u_cli"),
        request_id=f"req_cli_{datetime.now().strftime('%Y%m%d%H%M%S')}",
    )
    if response.ok:
        print(json.dumps(response.result, indent=2, ensure_ascii=False))
    else:
        print({"errors": response.errors})


if __name__ == "__main__":
    main()
