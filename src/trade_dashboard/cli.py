from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import timezone
from pathlib import Path

from trade_dashboard.api.errors import BackendError
from trade_dashboard.config.accounts import resolve_account_name
from trade_dashboard.config.app_config import CONFIG_ENV, load_app_config
from trade_dashboard.exports import (
    QUICK_ACTIONS,
    ExportConfig,
    ExportFormat,
    JobStatus,
    Platform,
    find_quick_action,
)
from trade_dashboard.filters import TradeFilters, apply_filters, parse_sort
from trade_dashboard.ingest.uploads import submit_upload
from trade_dashboard.metrics.heatmap import DAY_LABELS, HOURS
from trade_dashboard.query import parse_data_scope, parse_date_selection
from trade_dashboard.timestamps import format_timestamp
from trade_dashboard.views import Dashboard, build_dashboard


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Trade dashboard backed by the trading assistant API.")
    parser.add_argument("--config", type=Path, default=None, help="Path to app.toml.")
    parser.add_argument("--account", type=str, default=None, help="Account to operate on.")
    parser.add_argument(
        "--utc",
        action="store_true",
        help="Print timestamps and bucket the heatmap in UTC instead of local timezone.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log backend requests to stderr.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("summary", help="Print account metrics.")

    trades_parser = subparsers.add_parser("trades", help="List recent trades.")
    trades_parser.add_argument("--outcome", default="all", help="all, wins or losses.")
    trades_parser.add_argument("--ticker", default="", help="Case-insensitive ticker substring.")
    trades_parser.add_argument("--sort-by", default="date", help="date or profit.")
    trades_parser.add_argument("--sort-order", default="desc", help="asc or desc.")

    subparsers.add_parser("heatmap", help="Print average profit by day and hour.")

    export_parser = subparsers.add_parser("export", help="Export trades, optionally to a platform.")
    export_parser.add_argument(
        "--platform",
        choices=[item.value for item in Platform],
        default=None,
        help="Destination platform; omit for a local download link.",
    )
    export_parser.add_argument("--format", choices=[item.value for item in ExportFormat], default=None)
    export_parser.add_argument("--range", dest="date_range", default=None, help="all, today, week, month, quarter, custom.")
    export_parser.add_argument("--start-date", default=None)
    export_parser.add_argument("--end-date", default=None)
    export_parser.add_argument("--scope", default=None, help="Data scope, e.g. winners or with_indicators.")
    export_parser.add_argument("--filename", default=None)

    quick_parser = subparsers.add_parser("quick-action", help="Run a preset export.")
    quick_parser.add_argument("action_id", nargs="?", default=None, choices=[item.id for item in QUICK_ACTIONS])

    upload_parser = subparsers.add_parser("upload", help="Upload trades from CSV, Excel or JSON.")
    upload_parser.add_argument("path", type=Path)

    chat_parser = subparsers.add_parser("chat", help="Send one message to the assistant.")
    chat_parser.add_argument("message", nargs="+")

    subparsers.add_parser("serve", help="Run the web dashboard.")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)

    if args.command == "serve":
        from trade_dashboard.web.app import main as serve

        if args.config is not None:
            os.environ[CONFIG_ENV] = str(args.config)
        serve()
        return 0

    app_config = load_app_config(args.config)
    account = resolve_account_name(args.account, env=os.environ, settings=app_config.accounts)
    dashboard = build_dashboard(app_config, account=account, tz=timezone.utc if args.utc else None)
    if dashboard.account is None:
        dashboard.load_accounts()
    if not dashboard.account:
        print("No account selected; pass --account or set TRADE_DASHBOARD_ACCOUNT.", file=sys.stderr)
        return 2

    try:
        handler = _COMMANDS[args.command]
        return handler(dashboard, args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except BackendError as exc:
        print(f"Backend error: {exc}", file=sys.stderr)
        return 1


def _summary(dashboard: Dashboard, args: argparse.Namespace) -> int:
    state = dashboard.metrics.sync(dashboard.account, dashboard.refresh_epoch)
    if state.error or state.data is None:
        print(state.error or "No metrics available.", file=sys.stderr)
        return 1
    print(f"account {dashboard.account}")
    for key, value in state.data.to_dict().items():
        print(f"{key} {_format_value(value)}")
    return 0


def _trades(dashboard: Dashboard, args: argparse.Namespace) -> int:
    filters = TradeFilters.from_params(args.outcome, args.ticker)
    sort_key, order = parse_sort(args.sort_by, args.sort_order)
    state = dashboard.trades.sync(dashboard.account, dashboard.refresh_epoch)
    if state.error:
        print(state.error, file=sys.stderr)
        return 1
    trades = apply_filters(state.data or [], filters, sort_key, order)
    if not trades:
        print("No trades found.")
        return 0
    print("time action ticker entry exit qty profit")
    for trade in trades:
        print(
            f"{format_timestamp(trade.timestamp, dashboard.tz)} {trade.action.upper()} {trade.ticker or '-'} "
            f"{trade.entry_price or '-'} {trade.exit_price or '-'} {trade.quantity or '-'} "
            f"{trade.profit_value:.2f}"
        )
    return 0


def _heatmap(dashboard: Dashboard, args: argparse.Namespace) -> int:
    state = dashboard.heatmap.sync(dashboard.account, dashboard.refresh_epoch)
    if state.error or state.data is None:
        print(state.error or "No trades found.", file=sys.stderr)
        return 1
    heatmap = state.data
    print("day " + " ".join(f"{hour:>7}" for hour in HOURS))
    for day, label in enumerate(DAY_LABELS):
        cells = []
        for hour in HOURS:
            average = heatmap.cell(day, hour).average
            cells.append(f"{average:>7.2f}" if average is not None else f"{'.':>7}")
        print(f"{label} " + " ".join(cells))
    if heatmap.skipped:
        print(f"Skipped {heatmap.skipped} trades without a usable timestamp.", file=sys.stderr)
    return 0


def _export(dashboard: Dashboard, args: argparse.Namespace) -> int:
    config = _export_config(dashboard, args)
    job = dashboard.exports.run_export(config)
    print(f"{job.status.value} {job.message}")
    if job.download_url:
        print(job.download_url)
    return 0 if job.status == JobStatus.SUCCESS else 1


def _quick_action(dashboard: Dashboard, args: argparse.Namespace) -> int:
    if args.action_id is None:
        for action in QUICK_ACTIONS:
            print(f"{action.id} {action.label}: {action.description}")
        return 0
    result = dashboard.exports.run_quick_action(find_quick_action(args.action_id))
    print(result.message)
    if result.url:
        print(result.url)
    return 0 if result.success else 1


def _upload(dashboard: Dashboard, args: argparse.Namespace) -> int:
    path: Path = args.path
    if not path.exists():
        print(f"File not found: {path}", file=sys.stderr)
        return 2
    outcome = submit_upload(dashboard.client, dashboard.account, path.name, path.read_bytes())
    if not outcome.success:
        print(outcome.message, file=sys.stderr)
        return 1
    print(outcome.message)
    for row in outcome.preview:
        print(" ".join(f"{key}={value}" for key, value in row.items()))
    return 0


def _chat(dashboard: Dashboard, args: argparse.Namespace) -> int:
    reply = dashboard.chat.send(" ".join(args.message))
    if reply is None:
        print("Nothing to send.", file=sys.stderr)
        return 2
    print(reply.content)
    for call in reply.tool_calls:
        print(f"[tool] {call.get('name')}", file=sys.stderr)
    return 0


def _export_config(dashboard: Dashboard, args: argparse.Namespace) -> ExportConfig:
    updates: dict[str, object] = {}
    if args.format:
        updates["format"] = ExportFormat(args.format)
    if args.date_range or args.start_date or args.end_date:
        preset = args.date_range or ("custom" if args.start_date or args.end_date else None)
        updates["date_selection"] = parse_date_selection(preset, args.start_date, args.end_date)
    if args.scope:
        updates["data_scope"] = parse_data_scope(args.scope)
    if args.filename:
        updates["filename"] = args.filename
    if not args.platform:
        return ExportConfig(platform=None, **updates)
    return dashboard.exports.configure(Platform(args.platform), **updates)


def _format_value(value: object) -> str:
    if value is None:
        return "na"
    if isinstance(value, float):
        return f"{value:.6g}"
    return str(value)


_COMMANDS = {
    "summary": _summary,
    "trades": _trades,
    "heatmap": _heatmap,
    "export": _export,
    "quick-action": _quick_action,
    "upload": _upload,
    "chat": _chat,
}


if __name__ == "__main__":
    raise SystemExit(main())
