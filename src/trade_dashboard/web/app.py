from __future__ import annotations

import json
import os
from dataclasses import asdict
from functools import lru_cache
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from jinja2 import Undefined
from pydantic import BaseModel

from trade_dashboard.api.errors import BackendError
from trade_dashboard.chat import SUGGESTIONS
from trade_dashboard.config.accounts import resolve_account_name
from trade_dashboard.config.app_config import load_app_config
from trade_dashboard.exports import (
    DEFAULT_EXPORT_CONFIGS,
    PLATFORMS,
    QUICK_ACTIONS,
    ExportConfig,
    ExportFormat,
    ExportOrchestrator,
    Platform,
    find_quick_action,
)
from trade_dashboard.filters import TradeFilters, apply_filters, parse_sort
from trade_dashboard.ingest.uploads import submit_upload
from trade_dashboard.metrics.heatmap import DAY_LABELS, HOURS
from trade_dashboard.models import Trade
from trade_dashboard.query import parse_data_scope, parse_date_selection
from trade_dashboard.timestamps import format_timestamp, timestamp_to_iso
from trade_dashboard.views import Dashboard, ViewState, build_dashboard

APP_ROOT = Path(__file__).resolve().parent
TEMPLATES = Jinja2Templates(directory=str(APP_ROOT / "templates"))


app = FastAPI(title="Trade Dashboard")
app.mount("/static", StaticFiles(directory=str(APP_ROOT / "static")), name="static")


class AccountPayload(BaseModel):
    account: str


class ChatPayload(BaseModel):
    message: str


class ExportPayload(BaseModel):
    platform: str | None = None
    format: str | None = None
    date_range: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    data_scope: str | None = None
    filename: str | None = None


@lru_cache(maxsize=1)
def get_dashboard() -> Dashboard:
    config = load_app_config()
    account = resolve_account_name(env=os.environ, settings=config.accounts)
    dashboard = build_dashboard(config, account=account)
    dashboard.load_accounts()
    return dashboard


@app.get("/", response_class=HTMLResponse)
def dashboard_page(request: Request, dashboard: Dashboard = Depends(get_dashboard)) -> HTMLResponse:
    states = dashboard.sync()
    trades_state = states["trades"]
    context = {
        "request": request,
        "account": dashboard.account,
        "account_info": dashboard.account_info,
        "accounts": dashboard.accounts,
        "metrics": states["metrics"],
        "trades": trades_state,
        "recent_trades": apply_filters(trades_state.data or [], TradeFilters()),
        "charts": states["charts"],
        "heatmap": states["heatmap"],
        "day_labels": DAY_LABELS,
        "hours": HOURS,
        "jobs": [job.to_dict() for job in dashboard.exports.recent_jobs()],
        "platforms": _platform_options(),
        "quick_actions": QUICK_ACTIONS,
        "messages": [message.to_dict() for message in dashboard.chat.messages],
        "suggestions": SUGGESTIONS,
    }
    return TEMPLATES.TemplateResponse(request, "dashboard.html", context)


@app.get("/api/accounts")
def accounts_api(dashboard: Dashboard = Depends(get_dashboard)) -> dict[str, Any]:
    accounts = dashboard.load_accounts()
    return {
        "active": dashboard.account,
        "accounts": [asdict(item) for item in accounts],
    }


@app.post("/api/account")
def select_account_api(payload: AccountPayload, dashboard: Dashboard = Depends(get_dashboard)) -> dict[str, Any]:
    account = payload.account.strip()
    if not account:
        raise HTTPException(status_code=400, detail="Account must not be empty.")
    dashboard.select_account(account)
    return {"active": dashboard.account, "refresh_epoch": dashboard.refresh_epoch}


@app.post("/api/refresh")
def refresh_api(dashboard: Dashboard = Depends(get_dashboard)) -> dict[str, Any]:
    return {"refresh_epoch": dashboard.trigger_refresh()}


@app.get("/api/metrics")
def metrics_api(dashboard: Dashboard = Depends(get_dashboard)) -> dict[str, Any]:
    state = dashboard.metrics.sync(dashboard.account, dashboard.refresh_epoch)
    return _state_payload(state, "metrics", state.data.to_dict() if state.data else None)


@app.get("/api/trades")
def trades_api(
    outcome: str | None = None,
    ticker: str | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    dashboard: Dashboard = Depends(get_dashboard),
) -> dict[str, Any]:
    try:
        filters = TradeFilters.from_params(outcome, ticker)
        sort_key, order = parse_sort(sort_by, sort_order)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    state = dashboard.trades.sync(dashboard.account, dashboard.refresh_epoch)
    trades = apply_filters(state.data or [], filters, sort_key, order)
    payload = _state_payload(state, "trades", [_trade_item(trade) for trade in trades])
    payload["count"] = len(trades)
    return payload


@app.get("/api/charts")
def charts_api(dashboard: Dashboard = Depends(get_dashboard)) -> dict[str, Any]:
    state = dashboard.charts.sync(dashboard.account, dashboard.refresh_epoch)
    charts = None
    if state.data is not None:
        charts = {
            "cumulative": [asdict(point) for point in state.data.cumulative],
            "distribution": {
                "wins": state.data.distribution.wins,
                "losses": state.data.distribution.losses,
            },
            "actions": [
                {"action": item.action, "label": item.label, "count": item.count}
                for item in state.data.actions
            ],
            "metrics": state.data.metrics.to_dict(),
        }
    return _state_payload(state, "charts", charts)


@app.get("/api/heatmap")
def heatmap_api(dashboard: Dashboard = Depends(get_dashboard)) -> dict[str, Any]:
    state = dashboard.heatmap.sync(dashboard.account, dashboard.refresh_epoch)
    heatmap = None
    if state.data is not None:
        low, high = state.data.bounds
        heatmap = {
            "rows": state.data.to_rows(),
            "min_avg": low,
            "max_avg": high,
            "skipped": state.data.skipped,
        }
    return _state_payload(state, "heatmap", heatmap)


@app.post("/api/chat")
def chat_api(payload: ChatPayload, dashboard: Dashboard = Depends(get_dashboard)) -> dict[str, Any]:
    reply = dashboard.chat.send(payload.message)
    return {
        "reply": reply.to_dict() if reply else None,
        "messages": [message.to_dict() for message in dashboard.chat.messages],
        "refresh_epoch": dashboard.refresh_epoch,
    }


@app.get("/api/exports")
def exports_api(dashboard: Dashboard = Depends(get_dashboard)) -> dict[str, Any]:
    return {
        "jobs": [job.to_dict() for job in dashboard.exports.recent_jobs()],
        "platforms": _platform_options(),
    }


@app.post("/api/exports")
def run_export_api(payload: ExportPayload, dashboard: Dashboard = Depends(get_dashboard)) -> dict[str, Any]:
    try:
        config = _export_config(payload, dashboard.exports)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    job = dashboard.exports.run_export(config)
    return job.to_dict()


@app.post("/api/exports/trades-csv")
def export_trades_csv_api(dashboard: Dashboard = Depends(get_dashboard)) -> dict[str, Any]:
    try:
        url = dashboard.exports.export_trades_csv()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except BackendError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {"url": url}


@app.get("/api/quick-actions")
def quick_actions_api() -> list[dict[str, Any]]:
    return [
        {
            "id": action.id,
            "label": action.label,
            "description": action.description,
            "platform": action.platform.value if action.platform else None,
            "chat_command": action.chat_command,
        }
        for action in QUICK_ACTIONS
    ]


@app.post("/api/quick-actions/{action_id}")
def run_quick_action_api(action_id: str, dashboard: Dashboard = Depends(get_dashboard)) -> dict[str, Any]:
    try:
        action = find_quick_action(action_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Quick action not found.") from exc
    return asdict(dashboard.exports.run_quick_action(action))


@app.post("/api/upload")
def upload_api(file: UploadFile = File(...), dashboard: Dashboard = Depends(get_dashboard)) -> dict[str, Any]:
    if not dashboard.account:
        raise HTTPException(status_code=400, detail="No active account selected.")
    content = file.file.read()
    outcome = submit_upload(dashboard.client, dashboard.account, file.filename or "", content)
    if outcome.success:
        dashboard.trigger_refresh()
    return asdict(outcome)


def _state_payload(state: ViewState[Any], key: str, data: Any) -> dict[str, Any]:
    return {
        "loading": state.loading,
        "error": state.error,
        key: data,
    }


def _trade_item(trade: Trade) -> dict[str, Any]:
    item = trade.to_payload()
    item["profit_value"] = trade.profit_value
    item["time_label"] = format_timestamp(trade.timestamp)
    item["time_iso"] = timestamp_to_iso(trade.timestamp_ms)
    return item


def _platform_options() -> list[dict[str, Any]]:
    options = []
    for platform, info in PLATFORMS.items():
        defaults = DEFAULT_EXPORT_CONFIGS[platform]
        options.append(
            {
                "id": platform.value,
                "name": info.name,
                "description": info.description,
                "formats": [item.value for item in info.formats],
                "auto_sync": info.supports_auto_sync,
                "default_filename": defaults.filename,
                "default_scope": defaults.data_scope.value,
            }
        )
    return options


def _export_config(payload: ExportPayload, exports: ExportOrchestrator) -> ExportConfig:
    platform_text = (payload.platform or "").strip().lower()
    platform = None
    if platform_text and platform_text != "download":
        try:
            platform = Platform(platform_text)
        except ValueError as exc:
            raise ValueError(f"Unknown platform: {payload.platform}") from exc
    updates: dict[str, Any] = {}
    if payload.format:
        try:
            updates["format"] = ExportFormat(payload.format.strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unknown export format: {payload.format}") from exc
    if payload.date_range or payload.start_date or payload.end_date:
        preset = payload.date_range or "custom"
        updates["date_selection"] = parse_date_selection(preset, payload.start_date, payload.end_date)
    if payload.data_scope:
        updates["data_scope"] = parse_data_scope(payload.data_scope)
    if payload.filename is not None:
        updates["filename"] = payload.filename.strip()
    if platform is None:
        return ExportConfig(platform=None, **updates)
    return exports.configure(platform, **updates)


def money_filter(value: float | None) -> str:
    if value is None or isinstance(value, Undefined):
        return "n/a"
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return "n/a"
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def percent_filter(value: float | None) -> str:
    if value is None or isinstance(value, Undefined):
        return "n/a"
    return f"{float(value) * 100:.1f}%"


def timestamp_filter(value: Any) -> str:
    if isinstance(value, Undefined):
        return format_timestamp(None)
    return format_timestamp(value)


def json_filter(value: Any) -> str:
    return json.dumps(value, default=str)


TEMPLATES.env.filters.update(
    {
        "money": money_filter,
        "percent": percent_filter,
        "timestamp": timestamp_filter,
        "json": json_filter,
    }
)


def main() -> None:
    import uvicorn

    app_config = load_app_config()
    uvicorn.run(
        "trade_dashboard.web.app:app",
        host=app_config.app.host,
        port=app_config.app.port,
        reload=app_config.app.reload,
    )


if __name__ == "__main__":
    main()
