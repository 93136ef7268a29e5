from trade_dashboard import cli
from trade_dashboard.config.app_config import CONFIG_ENV, load_app_config
from trade_dashboard.views import Dashboard


def test_serve_passes_config_path_to_web_app(monkeypatch, tmp_path):
    config_path = tmp_path / "custom.toml"
    config_path.write_text("[app]\nport = 9100\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV, str(tmp_path / "other.toml"))
    seen = []
    monkeypatch.setattr(
        "trade_dashboard.web.app.main",
        lambda: seen.append(load_app_config().app.port),
    )

    assert cli.main(["--config", str(config_path), "serve"]) == 0
    assert seen == [9100]


def test_export_applies_platform_defaults(monkeypatch, backend, app_config, capsys):
    backend.results["export_csv"] = {"s3_key": "k"}
    backend.results["sync_to_qc"] = {"qc_url": "https://qc/x"}
    monkeypatch.setattr(
        cli,
        "build_dashboard",
        lambda config, account=None, tz=None: Dashboard(backend, app_config, account=account, tz=tz),
    )

    assert cli.main(["--account", "ACC", "export", "--platform", "quantconnect"]) == 0
    assert backend.arguments_for("sync_to_qc")[0]["dataset_name"] == "nq_backtest_data"
    assert capsys.readouterr().out.startswith("success")
