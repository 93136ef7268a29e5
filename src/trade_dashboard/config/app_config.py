from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

try:
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - Python <3.11
    import tomli as tomllib

DEFAULT_CONFIG_PATH = Path("config/app.toml")
CONFIG_ENV = "TRADE_DASHBOARD_CONFIG"


@dataclass(frozen=True)
class AppSettings:
    host: str
    port: int
    reload: bool


@dataclass(frozen=True)
class ApiSettings:
    base_url: str
    timeout_seconds: float
    retry_attempts: int
    retry_backoff_seconds: float
    debug: bool


@dataclass(frozen=True)
class ViewSettings:
    trades_limit: int
    trades_window_days: int
    charts_limit: int
    chart_points: int
    heatmap_limit: int
    export_limit: int
    job_history: int


@dataclass(frozen=True)
class AccountSettings:
    default_account: str | None
    fallback_account: str | None


@dataclass(frozen=True)
class AppConfig:
    app: AppSettings
    api: ApiSettings
    views: ViewSettings
    accounts: AccountSettings


def resolve_config_path(path: Path | None = None, env: Mapping[str, str] | None = None) -> Path:
    if path is not None:
        return path
    env = env if env is not None else os.environ
    override = env.get(CONFIG_ENV, "").strip()
    return Path(override) if override else DEFAULT_CONFIG_PATH


def load_app_config(path: Path | None = None, env: Mapping[str, str] | None = None) -> AppConfig:
    env = env if env is not None else os.environ
    config_path = resolve_config_path(path, env)
    raw: Mapping[str, Any] = {}
    if config_path.exists():
        raw = tomllib.loads(config_path.read_text(encoding="utf-8"))

    app_raw = _section(raw, "app")
    api_raw = _section(raw, "api")
    views_raw = _section(raw, "views")
    accounts_raw = _section(raw, "accounts")

    app = AppSettings(
        host=str(app_raw.get("host", "127.0.0.1")),
        port=int(app_raw.get("port", 8000)),
        reload=bool(app_raw.get("reload", False)),
    )

    base_url = env.get("TRADE_DASHBOARD_API_URL", "").strip() or str(
        api_raw.get("base_url", "http://127.0.0.1:8080")
    )
    api = ApiSettings(
        base_url=base_url.rstrip("/"),
        timeout_seconds=float(api_raw.get("timeout_seconds", 30.0)),
        retry_attempts=max(1, int(api_raw.get("retry_attempts", 1))),
        retry_backoff_seconds=float(api_raw.get("retry_backoff_seconds", 0.75)),
        debug=bool(api_raw.get("debug", False)),
    )

    views = ViewSettings(
        trades_limit=_positive_int(views_raw.get("trades_limit"), 100),
        trades_window_days=_positive_int(views_raw.get("trades_window_days"), 30),
        charts_limit=_positive_int(views_raw.get("charts_limit"), 100),
        chart_points=_positive_int(views_raw.get("chart_points"), 200),
        heatmap_limit=_positive_int(views_raw.get("heatmap_limit"), 500),
        export_limit=_positive_int(views_raw.get("export_limit"), 10_000),
        job_history=_positive_int(views_raw.get("job_history"), 10),
    )

    accounts = AccountSettings(
        default_account=_str_or_none(accounts_raw.get("default_account")),
        fallback_account=_str_or_none(accounts_raw.get("fallback_account")),
    )

    return AppConfig(app=app, api=api, views=views, accounts=accounts)


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    if isinstance(value, Mapping):
        return value
    return {}


def _positive_int(value: Any, default: int) -> int:
    if value in (None, ""):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
