"""Result shapes for the backend's ``/execute`` tools and ``/chat`` endpoint.

Each parser accepts the untyped JSON the backend returned and either
produces a typed value or raises ``ResultShapeError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from trade_dashboard.api.errors import ResultShapeError
from trade_dashboard.metrics.summary import TradeMetrics
from trade_dashboard.models import AccountInfo, Trade, parse_number

TRADE_WRITE_TOOLS = frozenset({"write_trade", "write_trades_batch", "update_trade"})


@dataclass(frozen=True)
class ExportArtifact:
    s3_key: str
    count: int | None = None


@dataclass(frozen=True)
class BatchWriteResult:
    written: int | None
    raw: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ChatReply:
    response: str | None
    tool_calls: list[Mapping[str, Any]] = field(default_factory=list)

    @property
    def tool_names(self) -> list[str]:
        return [str(call.get("name")) for call in self.tool_calls if call.get("name")]

    @property
    def modifies_trades(self) -> bool:
        return any(name in TRADE_WRITE_TOOLS for name in self.tool_names)


def parse_trades(result: Any) -> list[Trade]:
    if not isinstance(result, Mapping) or not isinstance(result.get("trades"), list):
        raise ResultShapeError("query_trades result is missing 'trades'")
    return [Trade.from_payload(row) for row in result["trades"] if isinstance(row, Mapping)]


def parse_metrics(result: Any) -> TradeMetrics:
    if not isinstance(result, Mapping) or not result:
        raise ResultShapeError("get_metrics returned no metrics")
    return TradeMetrics(
        total_trades=_int(result.get("total_trades")),
        winning_trades=_int(result.get("winning_trades")),
        losing_trades=_int(result.get("losing_trades")),
        win_rate=_optional_float(result.get("win_rate")),
        total_profit=parse_number(result.get("total_profit")),
        total_loss=parse_number(result.get("total_loss")),
        net_pnl=parse_number(result.get("net_pnl")),
        average_win=_optional_float(result.get("average_win")),
        average_loss=_optional_float(result.get("average_loss")),
        profit_factor=_optional_float(result.get("profit_factor")),
        largest_win=_optional_float(result.get("largest_win")),
        largest_loss=_optional_float(result.get("largest_loss")),
        max_consecutive_wins=_int(result.get("max_consecutive_wins")),
        max_consecutive_losses=_int(result.get("max_consecutive_losses")),
    )


def parse_accounts(payload: Any) -> list[AccountInfo]:
    # Older backends return the accounts list at the top level, not under "result".
    container = payload
    if isinstance(payload, Mapping) and isinstance(payload.get("result"), Mapping):
        container = payload["result"]
    if not isinstance(container, Mapping):
        raise ResultShapeError("list_accounts returned an unexpected payload")
    rows = container.get("accounts") or []
    if not isinstance(rows, list):
        raise ResultShapeError("list_accounts 'accounts' is not a list")
    accounts: list[AccountInfo] = []
    for row in rows:
        if not isinstance(row, Mapping) or not row.get("account"):
            continue
        latest = row.get("latest_activity")
        accounts.append(
            AccountInfo(
                account=str(row["account"]),
                total_trades=_int(row.get("total_trades")),
                complete=_int(row.get("complete")),
                total_pnl=parse_number(row.get("total_pnl")),
                latest_activity=str(latest) if latest else None,
            )
        )
    return accounts


def parse_export(result: Any) -> ExportArtifact:
    if not isinstance(result, Mapping) or not result.get("s3_key"):
        raise ResultShapeError("Export to S3 failed")
    count = result.get("count")
    return ExportArtifact(s3_key=str(result["s3_key"]), count=_int(count) if count is not None else None)


def parse_export_url(result: Any) -> str | None:
    return _url(result, "download_url", "url")


def parse_destination_url(result: Any, key: str) -> str | None:
    return _url(result, key)


def parse_batch_write(result: Any) -> BatchWriteResult:
    if not result:
        raise ResultShapeError("Failed to upload trades")
    if isinstance(result, Mapping):
        written = result.get("written", result.get("count"))
        return BatchWriteResult(
            written=_int(written) if written is not None else None,
            raw=dict(result),
        )
    return BatchWriteResult(written=None)


def parse_chat_reply(payload: Any) -> ChatReply:
    if not isinstance(payload, Mapping):
        raise ResultShapeError("chat returned an unexpected payload")
    response = payload.get("response")
    calls = payload.get("tool_calls") or []
    tool_calls = [call for call in calls if isinstance(call, Mapping)] if isinstance(calls, list) else []
    return ChatReply(response=str(response) if response else None, tool_calls=tool_calls)


def _url(result: Any, *keys: str) -> str | None:
    if not isinstance(result, Mapping):
        return None
    for key in keys:
        value = result.get(key)
        if value:
            return str(value)
    return None


def _int(value: Any) -> int:
    return int(parse_number(value))


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return parse_number(value)
