"""Tests for the CLI.

Settings are pointed at temporary files through POLKADOT_MONITOR_*
environment variables; Subscan is mocked with respx.
"""

import json
import subprocess
import sys
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
import respx
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from typer.testing import CliRunner

from polkadot_monitor import __version__
from polkadot_monitor.cli import app
from polkadot_monitor.deploy.harness import HarnessError
from polkadot_monitor.reporting import ReportService
from polkadot_monitor.scraping import ScrapingService

runner = CliRunner()

ALICE = "15oF4uVJwmo4TdGW7VfQxNLavjCXviqxT9S1MgbjMNHr6Sp5"
KSM_STASH = "HNZata7iMYWmk5RvZRTiAsSDhV8366zq2YGb3tLH5Upf74F"


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch) -> Path:
    """Accounts, config and database files in tmp_path."""
    accounts = tmp_path / "accounts.yml"
    accounts.write_text(
        f"""
accounts:
  - stash: {ALICE}
    network: polkadot
    description: Alice
  - stash: {KSM_STASH}
    network: kusama
"""
    )
    config = tmp_path / "config.yml"
    config.write_text(
        f"""
scraping:
  modules: [transfer]
reporting:
  modules:
    - module: transfer
  publisher:
    type: directory
    path: {tmp_path / "reports"}
"""
    )

    monkeypatch.setenv("POLKADOT_MONITOR_ACCOUNTS_FILE", str(accounts))
    monkeypatch.setenv("POLKADOT_MONITOR_CONFIG_FILE", str(config))
    monkeypatch.setenv("POLKADOT_MONITOR_DB_URL", f"sqlite:///{tmp_path}/monitor.db")
    monkeypatch.setenv("POLKADOT_MONITOR_REQUEST_INTERVAL", "0")
    monkeypatch.setenv("POLKADOT_MONITOR_PUBLISHER_INTERVAL", "0")
    monkeypatch.delenv("POLKADOT_MONITOR_SUBSCAN_API_KEY", raising=False)
    return tmp_path


class TestCLIHelp:
    """Test CLI help and version commands."""

    def test_help_returns_zero(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Polkadot Account Monitor" in result.stdout

    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_short_version_flag(self) -> None:
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])
        assert "Usage:" in result.stdout

    @pytest.mark.parametrize(
        "command", ["accounts", "scrape", "report", "run", "integration-test"]
    )
    def test_subcommand_help(self, command: str) -> None:
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0


class TestCLIConfig:
    """Test CLI config command."""

    def test_config_command(self) -> None:
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "Files:" in result.stdout
        assert "Chain API:" in result.stdout
        assert "Status API:" in result.stdout
        assert "Rows per page" in result.stdout

    def test_config_hides_api_key(self, monkeypatch) -> None:
        monkeypatch.setenv("POLKADOT_MONITOR_SUBSCAN_API_KEY", "s3cr3t")
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "(set)" in result.stdout
        assert "s3cr3t" not in result.stdout

    def test_config_json(self) -> None:
        result = runner.invoke(app, ["config", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        for key in ["db_url", "config_file", "accounts_file", "row_amount"]:
            assert key in data, f"Missing key: {key}"


class TestCLIAccounts:
    """Test accounts commands."""

    def test_list(self, workspace: Path) -> None:
        result = runner.invoke(app, ["accounts", "list"])
        assert result.exit_code == 0
        assert "Found 2 account(s)" in result.stdout
        assert ALICE in result.stdout
        assert "Kusama" in result.stdout

    def test_list_json(self, workspace: Path) -> None:
        result = runner.invoke(app, ["accounts", "list", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data[0] == {"stash": ALICE, "network": "polkadot", "description": "Alice"}
        assert data[1]["network"] == "kusama"

    def test_list_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(
            app, ["accounts", "list", "--file", str(tmp_path / "nope.yml")]
        )
        assert result.exit_code == 1
        assert "File not found" in result.stdout

    def test_validate(self, workspace: Path) -> None:
        result = runner.invoke(
            app,
            [
                "accounts",
                "validate",
                str(workspace / "accounts.yml"),
                "--config",
                str(workspace / "config.yml"),
            ],
        )
        assert result.exit_code == 0
        assert "Valid accounts file: 2 account(s)" in result.stdout
        assert "Scraping: transfer" in result.stdout
        assert "Reporting: transfer/daily" in result.stdout

    def test_validate_invalid(self, tmp_path: Path) -> None:
        path = tmp_path / "accounts.yml"
        path.write_text("- stash: not-an-address\n")
        result = runner.invoke(app, ["accounts", "validate", str(path)])
        assert result.exit_code == 1
        assert "Validation failed" in result.stdout

    def test_validate_duplicate_modules(self, workspace: Path) -> None:
        config = workspace / "bad.yml"
        config.write_text("scraping:\n  modules: [transfer, transfer]\n")
        result = runner.invoke(
            app,
            [
                "accounts",
                "validate",
                str(workspace / "accounts.yml"),
                "--config",
                str(config),
            ],
        )
        assert result.exit_code == 1
        assert "Validation failed" in result.stdout


def transfers_body(count: int) -> dict:
    return {
        "code": 0,
        "message": "Success",
        "generated_at": 1628000000,
        "data": {
            "count": count,
            "transfers": [
                {
                    "amount": "1.5",
                    "block_num": 100 + i,
                    "block_timestamp": 1600000000 + i,
                    "extrinsic_index": f"{100 + i}-1",
                    "success": True,
                    "from": ALICE,
                    "to": KSM_STASH,
                }
                for i in range(count)
            ],
        },
    }


class TestCLIScrape:
    """Test scrape command."""

    @respx.mock
    def test_scrape_once(self, workspace: Path) -> None:
        respx.post("https://polkadot.api.subscan.io/api/scan/transfers").mock(
            return_value=httpx.Response(200, json=transfers_body(2))
        )
        respx.post("https://kusama.api.subscan.io/api/scan/transfers").mock(
            return_value=httpx.Response(200, json=transfers_body(0))
        )

        result = runner.invoke(app, ["scrape", "--once"])

        assert result.exit_code == 0, result.stdout
        assert "TransferFetcher: 2 new entries" in result.stdout

    @respx.mock
    def test_scrape_api_error(self, workspace: Path) -> None:
        respx.post("https://polkadot.api.subscan.io/api/scan/transfers").mock(
            return_value=httpx.Response(500)
        )

        result = runner.invoke(app, ["scrape", "--once", "--module", "transfer"])

        assert result.exit_code == 1
        assert "Error:" in result.stdout

    def test_database_error_during_scrape(self, workspace: Path) -> None:
        with patch.object(
            ScrapingService,
            "run_pass",
            side_effect=OperationalError("INSERT", {}, Exception("database is locked")),
        ):
            result = runner.invoke(app, ["scrape", "--once"])

        assert result.exit_code == 1
        assert "Error:" in result.stdout
        assert "database is locked" in result.stdout

    def test_unreachable_database(self, workspace: Path, monkeypatch) -> None:
        # A directory cannot be opened as a SQLite database file
        monkeypatch.setenv("POLKADOT_MONITOR_DB_URL", f"sqlite:///{workspace}")
        result = runner.invoke(app, ["scrape", "--once"])

        assert result.exit_code == 1
        assert "Database error" in result.stdout

    def test_scrape_without_modules(self, workspace: Path) -> None:
        (workspace / "config.yml").write_text("")
        result = runner.invoke(app, ["scrape", "--once"])
        assert result.exit_code == 1
        assert "No scraping modules configured" in result.stdout

    def test_invalid_config(self, workspace: Path) -> None:
        (workspace / "config.yml").write_text("scraping: {modules: [staking]}\n")
        result = runner.invoke(app, ["scrape", "--once"])
        assert result.exit_code == 1
        assert "Configuration error" in result.stdout


class TestCLIReport:
    """Test report command."""

    @respx.mock
    def test_scrape_then_report(self, workspace: Path) -> None:
        respx.post("https://polkadot.api.subscan.io/api/scan/transfers").mock(
            return_value=httpx.Response(200, json=transfers_body(3))
        )
        respx.post("https://kusama.api.subscan.io/api/scan/transfers").mock(
            return_value=httpx.Response(200, json=transfers_body(0))
        )
        assert runner.invoke(app, ["scrape", "--once"]).exit_code == 0

        result = runner.invoke(app, ["report", "--once"])

        assert result.exit_code == 0, result.stdout
        assert "2 report(s) published" in result.stdout
        reports = sorted(p.name for p in (workspace / "reports").iterdir())
        assert len(reports) == 2
        summary = (workspace / "reports" / reports[1]).read_text()
        assert f"Polkadot,{ALICE},Alice,4.5" in summary

        # Same day again: not due
        result = runner.invoke(app, ["report", "--once"])
        assert "0 report(s) published" in result.stdout

    def test_report_single_module(self, workspace: Path) -> None:
        result = runner.invoke(
            app,
            ["report", "--once", "--module", "nominations", "--occurrence", "weekly"],
        )
        assert result.exit_code == 0
        assert "NominationReportGenerator (weekly)" in result.stdout

    def test_report_without_reporting_section(self, workspace: Path) -> None:
        (workspace / "config.yml").write_text("scraping:\n  modules: [transfer]\n")
        result = runner.invoke(app, ["report", "--once"])
        assert result.exit_code == 1
        assert "No reporting section" in result.stdout


class TestCLIRun:
    """Test run command."""

    def test_nothing_configured(self, workspace: Path) -> None:
        (workspace / "config.yml").write_text("")
        result = runner.invoke(app, ["run", "--no-http"])
        assert result.exit_code == 1
        assert "Neither scraping nor reporting" in result.stdout

    @patch("uvicorn.run")
    def test_serves_status_api(self, mock_uvicorn, workspace: Path) -> None:
        with patch("polkadot_monitor.cli._chain_api"):
            result = runner.invoke(app, ["run"])

        assert result.exit_code == 0, result.stdout
        mock_uvicorn.assert_called_once()
        served = mock_uvicorn.call_args.args[0]
        assert len(served.state.services) == 2
        assert mock_uvicorn.call_args.kwargs["port"] == 8080

    def test_only_empty_module_lists(self, workspace: Path) -> None:
        (workspace / "config.yml").write_text(
            f"""
scraping:
  modules: []
reporting:
  modules: []
  publisher:
    type: directory
    path: {workspace / "reports"}
"""
        )
        result = runner.invoke(app, ["run", "--no-http"])
        assert result.exit_code == 1
        assert "Neither scraping nor reporting" in result.stdout

    @patch("uvicorn.run")
    def test_empty_scraping_section_stays_ready(
        self, mock_uvicorn, workspace: Path
    ) -> None:
        (workspace / "config.yml").write_text(
            f"""
scraping:
  modules: []
reporting:
  modules:
    - module: transfer
  publisher:
    type: directory
    path: {workspace / "reports"}
"""
        )
        responses = []
        mock_uvicorn.side_effect = lambda served, **kwargs: responses.append(
            TestClient(served).get("/ready")
        )

        result = runner.invoke(app, ["run"])

        assert result.exit_code == 0, result.stdout
        served = mock_uvicorn.call_args.args[0]
        assert [type(s) for s in served.state.services] == [ReportService]
        assert responses[0].status_code == 200
        assert responses[0].json()["services"] is True


class TestCLIIntegrationTest:
    """Test integration-test command."""

    @patch("polkadot_monitor.cli.run_integration_tests")
    def test_success(self, mock_run) -> None:
        result = runner.invoke(app, ["integration-test", "--timeout", "60"])
        assert result.exit_code == 0
        assert mock_run.call_args.kwargs["timeout"] == 60

    @patch("polkadot_monitor.cli.run_integration_tests")
    def test_failure_exit_code(self, mock_run) -> None:
        mock_run.side_effect = HarnessError(
            "kubectl exited with status 3", command=["kubectl"], exit_code=3
        )
        result = runner.invoke(app, ["integration-test"])
        assert result.exit_code == 3
        assert "Integration tests failed" in result.stdout


class TestModuleEntryPoint:
    """Test python -m polkadot_monitor entry point."""

    def test_module_help(self) -> None:
        result = subprocess.run(
            [sys.executable, "-m", "polkadot_monitor", "--help"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "Polkadot Account Monitor" in result.stdout

    def test_module_version(self) -> None:
        result = subprocess.run(
            [sys.executable, "-m", "polkadot_monitor", "--version"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert __version__ in result.stdout
