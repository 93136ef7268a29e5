"""Per-widget fetch state and the dashboard that owns the widgets.

Each widget refetches when the ``(account, refresh_epoch)`` pair it last saw
changes. Every fetch takes a generation token; a response carrying an older
token than the newest request is discarded instead of overwriting the view.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Generic, TypeVar

from trade_dashboard.api.client import BackendClient, BackendConfig
from trade_dashboard.api.errors import BackendError
from trade_dashboard.chat import ChatSession
from trade_dashboard.config.accounts import find_account, select_active_account
from trade_dashboard.config.app_config import AppConfig
from trade_dashboard.exports import ExportOrchestrator
from trade_dashboard.metrics.distribution import (
    ActionCount,
    WinLossDistribution,
    action_distribution,
    win_loss_distribution,
)
from trade_dashboard.metrics.heatmap import Heatmap, build_heatmap
from trade_dashboard.metrics.series import CumulativePoint, cumulative_pnl, downsample_points
from trade_dashboard.metrics.summary import TradeMetrics, compute_trade_metrics
from trade_dashboard.models import AccountInfo, Trade
from trade_dashboard.query import CustomRange, DatePreset, build_query_args

T = TypeVar("T")

logger = logging.getLogger(__name__)


class ViewState(Generic[T]):
    def __init__(self) -> None:
        self.loading = False
        self.data: T | None = None
        self.error: str | None = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        return self._generation

    def begin(self) -> int:
        with self._lock:
            self._generation += 1
            self.loading = True
            return self._generation

    def resolve(self, token: int, data: T) -> bool:
        with self._lock:
            if token != self._generation:
                return False
            self.data = data
            self.error = None
            self.loading = False
            return True

    def fail(self, token: int, message: str) -> bool:
        with self._lock:
            if token != self._generation:
                return False
            self.error = message
            self.loading = False
            return True


class Widget(Generic[T]):
    error_message = "Failed to load data."

    def __init__(self, client: BackendClient, config: AppConfig, tz: tzinfo | None = None) -> None:
        self._client = client
        self._config = config
        self._tz = tz
        self.state: ViewState[T] = ViewState()
        self._seen: tuple[str, int] | None = None

    def sync(self, account: str | None, epoch: int) -> ViewState[T]:
        if account and self._seen != (account, epoch):
            self._seen = (account, epoch)
            self.refresh(account)
        return self.state

    def refresh(self, account: str) -> bool:
        token = self.state.begin()
        try:
            data = self.load(account)
        except BackendError as exc:
            logger.warning("%s fetch failed: %s", type(self).__name__, exc)
            return self.state.fail(token, self.error_message)
        return self.state.resolve(token, data)

    def load(self, account: str) -> T:
        raise NotImplementedError


class MetricsWidget(Widget[TradeMetrics]):
    error_message = "No metrics available."

    def load(self, account: str) -> TradeMetrics:
        return self._client.get_metrics(account)


class TradesWidget(Widget[list[Trade]]):
    error_message = "Error fetching trades."

    def load(self, account: str) -> list[Trade]:
        views = self._config.views
        selection = trailing_window(views.trades_window_days) if views.trades_window_days else DatePreset.ALL
        return self._client.query_trades(build_query_args(account, selection, limit=views.trades_limit))


@dataclass(frozen=True)
class ChartData:
    cumulative: list[CumulativePoint]
    distribution: WinLossDistribution
    actions: list[ActionCount]
    metrics: TradeMetrics


class ChartsWidget(Widget[ChartData]):
    error_message = "Error fetching trades."

    def load(self, account: str) -> ChartData:
        views = self._config.views
        trades = self._client.query_trades(build_query_args(account, limit=views.charts_limit))
        return ChartData(
            cumulative=downsample_points(cumulative_pnl(trades, self._tz), views.chart_points),
            distribution=win_loss_distribution(trades),
            actions=action_distribution(trades),
            metrics=compute_trade_metrics(trades),
        )


class HeatmapWidget(Widget[Heatmap]):
    error_message = "Error fetching trades."

    def load(self, account: str) -> Heatmap:
        trades = self._client.query_trades(
            build_query_args(account, limit=self._config.views.heatmap_limit)
        )
        return build_heatmap(trades, self._tz)


class Dashboard:
    def __init__(
        self,
        client: BackendClient,
        config: AppConfig,
        account: str | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self.client = client
        self.config = config
        self.account = account
        self.tz = tz
        self.accounts: list[AccountInfo] = []
        self.refresh_epoch = 0
        self.metrics = MetricsWidget(client, config)
        self.trades = TradesWidget(client, config)
        self.charts = ChartsWidget(client, config, tz)
        self.heatmap = HeatmapWidget(client, config, tz)
        self.exports = ExportOrchestrator(
            client,
            lambda: self.account,
            export_limit=config.views.export_limit,
            history=config.views.job_history,
        )
        self.chat = ChatSession(client, lambda: self.account, on_trades_updated=self.trigger_refresh)

    @property
    def account_info(self) -> AccountInfo | None:
        return find_account(self.accounts, self.account)

    def trigger_refresh(self) -> int:
        self.refresh_epoch += 1
        return self.refresh_epoch

    def select_account(self, account: str) -> None:
        self.account = account
        self.trigger_refresh()

    def load_accounts(self) -> list[AccountInfo]:
        try:
            self.accounts = self.client.list_accounts()
        except BackendError as exc:
            logger.warning("listing accounts failed: %s", exc)
            self.accounts = []
            self.account = self.account or self.config.accounts.fallback_account
            return self.accounts
        self.account = select_active_account(
            self.accounts, self.account, self.config.accounts.fallback_account
        )
        return self.accounts

    def sync(self) -> dict[str, ViewState[Any]]:
        return {
            "metrics": self.metrics.sync(self.account, self.refresh_epoch),
            "trades": self.trades.sync(self.account, self.refresh_epoch),
            "charts": self.charts.sync(self.account, self.refresh_epoch),
            "heatmap": self.heatmap.sync(self.account, self.refresh_epoch),
        }


def trailing_window(days: int, now: datetime | None = None) -> CustomRange:
    current = now or datetime.now(timezone.utc)
    return CustomRange(
        start_date=(current - timedelta(days=days)).date().isoformat(),
        end_date=current.date().isoformat(),
    )


def build_dashboard(config: AppConfig, account: str | None = None, tz: tzinfo | None = None) -> Dashboard:
    client = BackendClient(BackendConfig.from_settings(config.api))
    return Dashboard(client, config, account=account, tz=tz)
