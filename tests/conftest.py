from __future__ import annotations

import socketserver
import threading
from pathlib import Path
from typing import Any, Iterator, Mapping

import pytest

from trade_dashboard.api.client import BackendClient, BackendConfig
from trade_dashboard.config.app_config import AppConfig, load_app_config
from trade_dashboard.models import Trade


class FakeBackend(BackendClient):
    """Backend client whose transport answers from in-memory tool results."""

    def __init__(self) -> None:
        super().__init__(BackendConfig(base_url="http://backend.test"))
        self.results: dict[str, Any] = {}
        self.errors: dict[str, Exception] = {}
        self.chat_reply: Any = {"response": "ok", "tool_calls": []}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def _post(self, path: str, payload: Mapping[str, Any]) -> Any:
        if path == "/chat":
            self.calls.append(("chat", dict(payload)))
            if "chat" in self.errors:
                raise self.errors["chat"]
            return self.chat_reply

        tool = payload["tool"]
        arguments = dict(payload["arguments"])
        self.calls.append((tool, arguments))
        if tool in self.errors:
            raise self.errors[tool]
        result = self.results.get(tool)
        if callable(result):
            result = result(arguments)
        return {"result": result}

    def arguments_for(self, tool: str) -> list[dict[str, Any]]:
        return [arguments for name, arguments in self.calls if name == tool]

    def tools_called(self) -> list[str]:
        return [name for name, _ in self.calls]


def make_trade(
    profit: Any = "0",
    timestamp: Any = "1771229700000",
    action: str = "buy",
    ticker: str | None = "NQ1!",
    trade_id: str = "t",
) -> Trade:
    return Trade.from_payload(
        {
            "trade_id": trade_id,
            "timestamp": timestamp,
            "action": action,
            "ticker": ticker,
            "entry_price": "21000.25",
            "exit_price": "21010.50",
            "quantity": "1",
            "profit": profit,
        }
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def trade_factory():
    return make_trade


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return load_app_config(tmp_path / "missing.toml", env={})


class _NonHttpHandler(socketserver.BaseRequestHandler):
    def handle(self) -> None:
        self.request.recv(65536)
        self.request.sendall(b"GARBAGE\r\n\r\n")


@pytest.fixture
def non_http_backend() -> Iterator[BackendClient]:
    """Client pointed at a local socket that answers with a non-HTTP status line."""
    server = socketserver.TCPServer(("127.0.0.1", 0), _NonHttpHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    try:
        yield BackendClient(BackendConfig(base_url=f"http://{host}:{port}", timeout_seconds=5.0))
    finally:
        server.shutdown()
        server.server_close()
