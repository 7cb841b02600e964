from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Request, status
from fastapi.responses import JSONResponse

from application.aggregation import summary_to_dict
from application.engine import LedgerResult, RecordNotFoundError
from application.validator import LedgerValidationError, ValidationIssue
from domain.schemas import ToolContext
from infrastructure.ledger_providers.provider import StoreError
from interface.cli import build_engine, build_executor
from tools._transactions_support import resolve_now, serialize_item, serialize_op, window_to_dict

logger = logging.getLogger(__name__)

app = FastAPI(title="RideLedger API")
engine = build_engine()
executor = build_executor()


@app.exception_handler(LedgerValidationError)
async def _validation_error(_: Request, exc: LedgerValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"ok": False, "errors": exc.as_dicts()})


@app.exception_handler(RecordNotFoundError)
async def _not_found(_: Request, exc: RecordNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"ok": False, "errors": [str(exc.args[0])]})


@app.exception_handler(StoreError)
async def _store_error(_: Request, exc: StoreError) -> JSONResponse:
    logger.error("Store failure: %s", exc)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"ok": False, "errors": [str(exc)]})


def _mutation_response(result: LedgerResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    if not result.ok:
        return JSONResponse(
            status_code=422,
            content={"ok": False, "errors": [asdict(issue) for issue in result.errors]},
        )
    return JSONResponse(status_code=success_status, content={"ok": True, "ops": [serialize_op(op) for op in result.ops]})


def _caller_now(now: Optional[str], tz_name: str) -> datetime:
    """Reports follow the driver's local day, not the server clock."""
    try:
        return resolve_now(now, tz_name)
    except ValueError as exc:
        raise LedgerValidationError([ValidationIssue(code="INVALID_DATE", message=str(exc), path="now")]) from exc


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/summary")
def summary(
    period: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    now: Optional[str] = None,
    timezone: str = "UTC",
) -> dict[str, Any]:
    default_period = "custom" if start or end else "month"
    report = engine.report(
        {"period": period or default_period, "start": start, "end": end},
        now=_caller_now(now, timezone),
    )
    result = summary_to_dict(report.stats)
    result["window"] = window_to_dict(report.window)
    result["transaction_count"] = report.transaction_count
    return result


@app.get("/history")
def history(
    period: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    now: Optional[str] = None,
    timezone: str = "UTC",
) -> dict[str, Any]:
    window = None
    if period or start or end:
        window = engine.window_for(
            {"period": period or "custom", "start": start, "end": end},
            now=_caller_now(now, timezone),
        )
    items = engine.history(window)
    return {"items": [serialize_item(item) for item in items], "window": window_to_dict(window)}


@app.post("/earnings")
def record_earnings(payload: Dict[str, Any] = Body(...)) -> JSONResponse:
    return _mutation_response(engine.record_earnings(payload), status.HTTP_201_CREATED)


@app.post("/expenses")
def record_expense(payload: Dict[str, Any] = Body(...)) -> JSONResponse:
    return _mutation_response(engine.record_expense(payload), status.HTTP_201_CREATED)


@app.put("/earnings/{day}")
def edit_earnings(day: date, payload: Dict[str, Any] = Body(...)) -> JSONResponse:
    return _mutation_response(engine.edit_earnings(day, payload))


@app.put("/expenses/{txn_id}")
def edit_expense(txn_id: str, payload: Dict[str, Any] = Body(...)) -> JSONResponse:
    return _mutation_response(engine.edit_expense(txn_id, payload))


@app.delete("/earnings/{day}")
def delete_earnings(day: date) -> JSONResponse:
    return _mutation_response(engine.delete_earnings(day))


@app.delete("/expenses/{txn_id}")
def delete_expense(txn_id: str) -> JSONResponse:
    return _mutation_response(engine.delete_expense(txn_id))


@app.post("/tools/{name}")
def run_tool(name: str, payload: Optional[Dict[str, Any]] = Body(default=None)) -> dict[str, Any]:
    payload = payload or {}
    response = executor.run_named(
        name,
        args=payload.get("args") or {},
        context=ToolContext(user_id=str(payload.get("user_id") or "u_api"), timezone=str(payload.get("timezone") or "UTC")),
        request_id=str(payload.get("request_id") or f"req_api_{name}"),
    )
    return response.model_dump()
