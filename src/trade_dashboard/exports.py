"""Export jobs: materialize a trade dataset on the backend, optionally publish it.

One export runs ``export_csv``, then a destination call for the configured
platform, then a best-effort ``get_export_url``. Every job is created in the
``running`` state and moves exactly once to ``success`` or ``failed``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable

from trade_dashboard.api.client import BackendClient
from trade_dashboard.api.errors import BackendError
from trade_dashboard.query import (
    DatePreset,
    DataScope,
    DateSelection,
    build_query_args,
)

DRIVE_FOLDER = "Trading Analytics"
EXPORT_FAILED = "Export failed"

logger = logging.getLogger(__name__)


class Platform(str, Enum):
    GOOGLE_DRIVE = "google_drive"
    QUANTCONNECT = "quantconnect"
    KAGGLE = "kaggle"


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class PlatformInfo:
    name: str
    description: str
    formats: tuple[ExportFormat, ...]
    supports_auto_sync: bool


PLATFORMS: dict[Platform, PlatformInfo] = {
    Platform.GOOGLE_DRIVE: PlatformInfo(
        name="Google Drive",
        description="Export trade data and reports to your Google Drive",
        formats=(ExportFormat.CSV, ExportFormat.JSON),
        supports_auto_sync=True,
    ),
    Platform.QUANTCONNECT: PlatformInfo(
        name="QuantConnect",
        description="Push datasets for backtesting and ML model training",
        formats=(ExportFormat.CSV, ExportFormat.JSON),
        supports_auto_sync=True,
    ),
    Platform.KAGGLE: PlatformInfo(
        name="Kaggle",
        description="Publish trading datasets for ML research and competitions",
        formats=(ExportFormat.CSV,),
        supports_auto_sync=False,
    ),
}


@dataclass(frozen=True)
class ExportConfig:
    platform: Platform | None
    format: ExportFormat = ExportFormat.CSV
    date_selection: DateSelection = DatePreset.ALL
    data_scope: DataScope = DataScope.ALL_TRADES
    filename: str = "trade_export"

    def __post_init__(self) -> None:
        if not self.filename.strip():
            raise ValueError("Export filename must not be empty.")
        if self.platform is not None and self.format not in PLATFORMS[self.platform].formats:
            name = PLATFORMS[self.platform].name
            raise ValueError(f"{name} does not accept {self.format.value} exports.")

    @property
    def target_name(self) -> str:
        return f"{self.filename}.{self.format.value}"


DEFAULT_EXPORT_CONFIGS: dict[Platform, ExportConfig] = {
    Platform.GOOGLE_DRIVE: ExportConfig(
        platform=Platform.GOOGLE_DRIVE,
        date_selection=DatePreset.MONTH,
        data_scope=DataScope.ALL_TRADES,
        filename="trading_data",
    ),
    Platform.QUANTCONNECT: ExportConfig(
        platform=Platform.QUANTCONNECT,
        date_selection=DatePreset.ALL,
        data_scope=DataScope.WITH_INDICATORS,
        filename="nq_backtest_data",
    ),
    Platform.KAGGLE: ExportConfig(
        platform=Platform.KAGGLE,
        date_selection=DatePreset.ALL,
        data_scope=DataScope.ALL_TRADES,
        filename="nq_futures_trading_dataset",
    ),
}


class InvalidTransition(RuntimeError):
    pass


@dataclass
class ExportJob:
    id: str
    platform: Platform | None
    status: JobStatus
    message: str
    timestamp: str
    download_url: str | None = None

    @property
    def finished(self) -> bool:
        return self.status in (JobStatus.SUCCESS, JobStatus.FAILED)

    def succeed(self, message: str, download_url: str | None = None) -> None:
        self._finish(JobStatus.SUCCESS, message)
        if download_url:
            self.download_url = download_url

    def fail(self, message: str) -> None:
        self._finish(JobStatus.FAILED, message)

    def attach_download_url(self, url: str | None) -> None:
        # A destination URL, once set, is never replaced by the generic link.
        if url and not self.download_url:
            self.download_url = url

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "platform": self.platform.value if self.platform else None,
            "status": self.status.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "download_url": self.download_url,
        }

    def _finish(self, status: JobStatus, message: str) -> None:
        if self.finished:
            raise InvalidTransition(f"Job {self.id} is already {self.status.value}.")
        self.status = status
        self.message = message


@dataclass(frozen=True)
class QuickAction:
    id: str
    label: str
    description: str
    platform: Platform | None
    chat_command: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class QuickActionResult:
    action_id: str
    success: bool
    message: str
    url: str | None = None


QUICK_ACTIONS: tuple[QuickAction, ...] = (
    QuickAction(
        id="drive_all",
        label="All Trades → Drive",
        description="Export complete dataset to Google Drive",
        platform=Platform.GOOGLE_DRIVE,
        chat_command="Export all my trades to Google Drive as CSV",
        arguments={"filename": "all_trades"},
    ),
    QuickAction(
        id="drive_winners",
        label="Winners → Drive",
        description="Export winning trades only",
        platform=Platform.GOOGLE_DRIVE,
        chat_command="Export only winning trades to Google Drive",
        arguments={"min_profit": 0.01, "filename": "winning_trades"},
    ),
    QuickAction(
        id="qc_backtest",
        label="Backtest Data → QC",
        description="Push indicator dataset to QuantConnect",
        platform=Platform.QUANTCONNECT,
        chat_command="Push my full trade dataset with indicators to QuantConnect for backtesting",
        arguments={"complete_only": True, "filename": "qc_backtest_data"},
    ),
    QuickAction(
        id="qc_ml",
        label="ML Training → QC",
        description="Push ML-ready dataset to QuantConnect",
        platform=Platform.QUANTCONNECT,
        chat_command="Create an ML training dataset and push to QuantConnect",
        arguments={"complete_only": True, "filename": "ml_training_data"},
    ),
    QuickAction(
        id="kaggle_dataset",
        label="Publish → Kaggle",
        description="Publish trading dataset for ML research",
        platform=Platform.KAGGLE,
        chat_command="Create and publish my NQ futures dataset to Kaggle",
        arguments={"filename": "nq_futures_dataset"},
    ),
    QuickAction(
        id="download_csv",
        label="Download CSV",
        description="Download trade data locally",
        platform=None,
        chat_command="Export all my trades to CSV and give me a download link",
        arguments={"filename": "trade_export"},
    ),
)


class ExportOrchestrator:
    def __init__(
        self,
        client: BackendClient,
        account: Callable[[], str | None],
        *,
        export_limit: int = 10_000,
        history: int = 10,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._account = account
        self._export_limit = export_limit
        self._history = history
        self._clock = clock
        self._jobs: list[ExportJob] = []

    @property
    def jobs(self) -> list[ExportJob]:
        return list(self._jobs)

    def recent_jobs(self, limit: int | None = None) -> list[ExportJob]:
        return self._jobs[: limit if limit is not None else self._history]

    def configure(self, platform: Platform, **updates: Any) -> ExportConfig:
        return replace(DEFAULT_EXPORT_CONFIGS[platform], **updates)

    def run_export(self, config: ExportConfig) -> ExportJob:
        job = self._start_job(config)
        s3_key: str | None = None
        try:
            query = build_query_args(
                self._require_account(),
                config.date_selection,
                config.data_scope,
                limit=self._export_limit,
            )
            arguments = {
                **query.to_arguments(),
                "filename": config.filename,
                "format": config.format.value,
            }
            s3_key = self._client.export_csv(arguments).s3_key
            message, destination_url = self._publish(config, s3_key)
            job.succeed(message, destination_url)
        except Exception as exc:
            logger.warning("export %s failed: %s", job.id, exc)
            job.fail(str(exc) or EXPORT_FAILED)

        if s3_key is not None:
            self._attach_download_url(job, s3_key)
        return job

    def run_quick_action(self, action: QuickAction) -> QuickActionResult:
        try:
            arguments = {"account": self._require_account(), **action.arguments}
            artifact = self._client.export_csv(arguments)
            url = self._client.get_export_url(artifact.s3_key)
        except (BackendError, ValueError) as exc:
            logger.warning("quick action %s failed: %s", action.id, exc)
            return QuickActionResult(action_id=action.id, success=False, message=str(exc) or EXPORT_FAILED)
        exported = artifact.count if artifact.count is not None else "trades"
        return QuickActionResult(
            action_id=action.id,
            success=True,
            message=f"Exported {exported} successfully",
            url=url,
        )

    def export_trades_csv(self) -> str | None:
        """One-click CSV export of the active account; returns the download link."""
        artifact = self._client.export_csv({"account": self._require_account()})
        return self._client.get_export_url(artifact.s3_key)

    def _start_job(self, config: ExportConfig) -> ExportJob:
        now_ms = int(self._clock() * 1000)
        target = PLATFORMS[config.platform].name if config.platform else "download"
        job = ExportJob(
            id=f"export-{now_ms}",
            platform=config.platform,
            status=JobStatus.RUNNING,
            message=f"Exporting to {target}...",
            timestamp=datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc).isoformat(),
        )
        self._jobs.insert(0, job)
        return job

    def _publish(self, config: ExportConfig, s3_key: str) -> tuple[str, str | None]:
        if config.platform == Platform.GOOGLE_DRIVE:
            url = self._client.upload_to_drive(s3_key, config.target_name, DRIVE_FOLDER)
            return f"Uploaded to Google Drive: {DRIVE_FOLDER}/{config.target_name}", url
        if config.platform == Platform.QUANTCONNECT:
            url = self._client.sync_to_qc(s3_key, config.filename, config.format.value)
            return f"Synced to QuantConnect: {config.filename}", url
        if config.platform == Platform.KAGGLE:
            description = (
                f"NQ Futures trading dataset - {config.data_scope.value} - "
                f"exported {date.today().isoformat()}"
            )
            url = self._client.upload_to_kaggle(s3_key, config.filename, description)
            return f"Published to Kaggle: {config.filename}", url
        return f"Export ready: {config.target_name}", None

    def _attach_download_url(self, job: ExportJob, s3_key: str) -> None:
        try:
            job.attach_download_url(self._client.get_export_url(s3_key))
        except BackendError as exc:
            logger.warning("download link for %s unavailable: %s", job.id, exc)

    def _require_account(self) -> str:
        account = self._account()
        if not account:
            raise ValueError("No active account selected.")
        return account


def find_quick_action(action_id: str) -> QuickAction:
    for action in QUICK_ACTIONS:
        if action.id == action_id:
            return action
    raise KeyError(action_id)
