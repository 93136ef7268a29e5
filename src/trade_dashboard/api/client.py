from __future__ import annotations

import http.client
import json
import logging
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from trade_dashboard.api.errors import BackendError
from trade_dashboard.api.results import (
    BatchWriteResult,
    ChatReply,
    ExportArtifact,
    parse_accounts,
    parse_batch_write,
    parse_chat_reply,
    parse_destination_url,
    parse_export,
    parse_export_url,
    parse_metrics,
    parse_trades,
)
from trade_dashboard.config.app_config import ApiSettings
from trade_dashboard.metrics.summary import TradeMetrics
from trade_dashboard.models import AccountInfo, Trade
from trade_dashboard.query import QueryArgs

DEFAULT_BASE_URL = "http://127.0.0.1:8080"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRY_ATTEMPTS = 1
DEFAULT_RETRY_BACKOFF_SECONDS = 0.75

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackendConfig:
    base_url: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    debug: bool = False

    @classmethod
    def from_settings(cls, settings: ApiSettings) -> "BackendConfig":
        return cls(
            base_url=settings.base_url.rstrip("/") or DEFAULT_BASE_URL,
            timeout_seconds=settings.timeout_seconds,
            retry_attempts=settings.retry_attempts,
            retry_backoff_seconds=settings.retry_backoff_seconds,
            debug=settings.debug,
        )


class BackendClient:
    def __init__(self, config: BackendConfig) -> None:
        self._config = config

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def chat(
        self,
        message: str,
        account: str | None,
        history: Iterable[Mapping[str, str]] = (),
    ) -> ChatReply:
        payload = {
            "message": message,
            "active_account": account,
            "conversation_history": [dict(item) for item in history],
        }
        return parse_chat_reply(self._post("/chat", payload))

    def execute(self, tool: str, arguments: Mapping[str, Any] | None = None) -> Any:
        envelope = self._post("/execute", {"tool": tool, "arguments": dict(arguments or {})})
        if not isinstance(envelope, Mapping):
            return None
        return envelope.get("result")

    def get_metrics(self, account: str) -> TradeMetrics:
        return parse_metrics(self.execute("get_metrics", {"account": account}))

    def query_trades(self, args: QueryArgs) -> list[Trade]:
        return parse_trades(self.execute("query_trades", args.to_arguments()))

    def list_accounts(self) -> list[AccountInfo]:
        return parse_accounts(self._post("/execute", {"tool": "list_accounts", "arguments": {}}))

    def export_csv(self, arguments: Mapping[str, Any]) -> ExportArtifact:
        return parse_export(self.execute("export_csv", arguments))

    def get_export_url(self, s3_key: str) -> str | None:
        return parse_export_url(self.execute("get_export_url", {"s3_key": s3_key}))

    def upload_to_drive(self, s3_key: str, filename: str, folder: str) -> str | None:
        result = self.execute(
            "upload_to_drive",
            {"s3_key": s3_key, "filename": filename, "folder": folder},
        )
        return parse_destination_url(result, "drive_url")

    def sync_to_qc(self, s3_key: str, dataset_name: str, export_format: str) -> str | None:
        result = self.execute(
            "sync_to_qc",
            {"s3_key": s3_key, "dataset_name": dataset_name, "format": export_format},
        )
        return parse_destination_url(result, "qc_url")

    def upload_to_kaggle(self, s3_key: str, dataset_name: str, description: str) -> str | None:
        result = self.execute(
            "upload_to_kaggle",
            {"s3_key": s3_key, "dataset_name": dataset_name, "description": description},
        )
        return parse_destination_url(result, "kaggle_url")

    def write_trades_batch(self, trades: list[Mapping[str, Any]]) -> BatchWriteResult:
        return parse_batch_write(self.execute("write_trades_batch", {"trades": trades}))

    def _post(self, path: str, payload: Mapping[str, Any]) -> Any:
        url = f"{self._config.base_url}{path}"
        body = json.dumps(payload, default=str).encode("utf-8")
        last_error: Exception | None = None
        attempts = max(1, self._config.retry_attempts)
        for attempt in range(attempts):
            if self._config.debug:
                logger.debug("POST %s attempt=%s body=%s", url, attempt + 1, body[:500])
            try:
                return _send_json(url, body, self._config.timeout_seconds)
            except BackendError as exc:
                last_error = exc
                if not _should_retry(exc, attempt, attempts):
                    raise
                time.sleep(self._config.retry_backoff_seconds * (2**attempt))
        raise BackendError(f"Backend request failed: {last_error}") from last_error


def _send_json(url: str, body: bytes, timeout_seconds: float) -> Any:
    request = urllib.request.Request(
        url,
        method="POST",
        data=body,
        headers={"Content-Type": "application/json", "Accept": "application/json"},
    )
    try:
        with urllib.request.urlopen(request, timeout=timeout_seconds) as response:
            status = response.status
            raw = response.read()
    except urllib.error.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
        raise BackendError(f"HTTP {exc.code}: {detail[:500]}") from exc
    except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as exc:
        raise BackendError(f"Request to {url} failed: {exc}") from exc

    if not raw:
        raise BackendError(f"Empty response body (status {status}, url {url})")
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        snippet = raw[:500].decode("utf-8", errors="replace")
        raise BackendError(f"Non-JSON response (status {status}, url {url}): {snippet}") from exc


def _should_retry(exc: Exception, attempt: int, attempts: int) -> bool:
    if attempt >= attempts - 1:
        return False
    message = str(exc).lower()
    if "non-json response" in message:
        return False
    if "empty response body" in message:
        return True
    if "timed out" in message:
        return True
    if "http 429" in message or "http 408" in message:
        return True
    if "http 5" in message:
        return True
    return "failed:" in message
