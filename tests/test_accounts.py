"""Tests for the accounts.yml and config.yml schemas and loaders."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from polkadot_monitor.accounts import (
    AccountSchema,
    ConfigError,
    DirectoryPublisherSchema,
    GoogleStoragePublisherSchema,
    MonitorConfigSchema,
    ScrapingSchema,
    load_accounts,
    load_monitor_config,
    parse_accounts_data,
)
from polkadot_monitor.types import Context, Module, Network, Occurrence

ALICE = "15oF4uVJwmo4TdGW7VfQxNLavjCXviqxT9S1MgbjMNHr6Sp5"
BOB = "14E5nqKAp3oAJcmzgZhUD2RcptBeUBScxKHgJKU4HPNcKVf3"
KSM_STASH = "HNZata7iMYWmk5RvZRTiAsSDhV8366zq2YGb3tLH5Upf74F"


class TestAccountSchema:
    """Test AccountSchema validation."""

    def test_minimal_account(self) -> None:
        account = AccountSchema(stash=ALICE)
        assert account.network == Network.POLKADOT
        assert account.description == ""

    def test_to_context(self) -> None:
        account = AccountSchema(stash=KSM_STASH, network="kusama", description="ksm")
        assert account.to_context() == Context(
            stash=KSM_STASH, network=Network.KUSAMA, description="ksm"
        )

    def test_strips_whitespace(self) -> None:
        assert AccountSchema(stash=f"  {ALICE} ").stash == ALICE

    @pytest.mark.parametrize("stash", ["", "0xdeadbeef", "not an address", "l" * 10])
    def test_invalid_stash(self, stash: str) -> None:
        with pytest.raises(ValidationError):
            AccountSchema(stash=stash)

    def test_unknown_network(self) -> None:
        with pytest.raises(ValidationError):
            AccountSchema(stash=ALICE, network="westend")

    def test_extra_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AccountSchema(stash=ALICE, nickname="alice")


class TestParseAccountsData:
    """Test parse_accounts_data function."""

    def test_bare_list(self) -> None:
        accounts = parse_accounts_data([{"stash": ALICE}, {"stash": BOB}])
        assert [a.stash for a in accounts.accounts] == [ALICE, BOB]

    def test_mapping(self) -> None:
        accounts = parse_accounts_data({"accounts": [{"stash": ALICE}]})
        assert len(accounts.accounts) == 1

    def test_empty(self) -> None:
        assert parse_accounts_data(None).accounts == []

    def test_duplicate_rejected(self) -> None:
        with pytest.raises(ValidationError, match="listed multiple times"):
            parse_accounts_data([{"stash": ALICE}, {"stash": ALICE}])

    def test_same_stash_on_two_networks_allowed(self) -> None:
        accounts = parse_accounts_data(
            [
                {"stash": ALICE, "network": "polkadot"},
                {"stash": ALICE, "network": "kusama"},
            ]
        )
        assert len(accounts.contexts()) == 2

    def test_scalar_rejected(self) -> None:
        with pytest.raises(ValueError):
            parse_accounts_data("alice")


class TestLoadAccounts:
    """Test load_accounts function."""

    def test_load_file(self, tmp_path: Path) -> None:
        path = tmp_path / "accounts.yml"
        path.write_text(
            f"""
accounts:
  - stash: {ALICE}
    network: polkadot
    description: Alice
  - stash: {KSM_STASH}
    network: kusama
"""
        )
        contexts = load_accounts(path).contexts()
        assert contexts[0] == Context(ALICE, Network.POLKADOT, "Alice")
        assert contexts[1] == Context(KSM_STASH, Network.KUSAMA, "")

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_accounts(tmp_path / "missing.yml")
        assert exc_info.value.code == "not_found"

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "accounts.yml"
        path.write_text("accounts: [unclosed")
        with pytest.raises(ConfigError) as exc_info:
            load_accounts(path)
        assert exc_info.value.code == "invalid_yaml"

    def test_validation_error(self, tmp_path: Path) -> None:
        path = tmp_path / "accounts.yml"
        path.write_text("accounts:\n  - stash: nope\n")
        with pytest.raises(ConfigError) as exc_info:
            load_accounts(path)
        assert exc_info.value.code == "validation_error"
        assert "accounts.0.stash" in str(exc_info.value)


class TestMonitorConfig:
    """Test config.yml schema and loader."""

    def test_full_config(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text(
            """
scraping:
  modules: [transfer, rewards_slashes, nominations]
reporting:
  modules:
    - module: transfer
      occurrence: weekly
    - module: nominations
  publisher:
    type: google_storage
    bucket_name: reports
    service_account: config/sa.json
"""
        )
        config = load_monitor_config(path)

        assert config.scraping is not None
        assert config.scraping.modules == [
            Module.TRANSFER,
            Module.REWARDS_SLASHES,
            Module.NOMINATIONS,
        ]
        assert config.reporting is not None
        assert config.reporting.modules[0].occurrence == Occurrence.WEEKLY
        assert config.reporting.modules[1].occurrence == Occurrence.DAILY
        publisher = config.reporting.publisher
        assert isinstance(publisher, GoogleStoragePublisherSchema)
        assert publisher.bucket_name == "reports"
        assert publisher.service_account == Path("config/sa.json")

    def test_directory_publisher(self) -> None:
        config = MonitorConfigSchema.model_validate(
            {
                "reporting": {
                    "modules": [{"module": "transfer"}],
                    "publisher": {"type": "directory", "path": "/tmp/reports"},
                }
            }
        )
        assert config.scraping is None
        assert isinstance(config.reporting.publisher, DirectoryPublisherSchema)

    def test_empty_file_disables_everything(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text("")
        config = load_monitor_config(path)
        assert config.scraping is None
        assert config.reporting is None

    def test_duplicate_scraping_module(self) -> None:
        with pytest.raises(
            ValidationError,
            match="configuration contains the same module multiple times",
        ):
            ScrapingSchema(modules=["transfer", "transfer"])

    def test_duplicate_report_job(self) -> None:
        with pytest.raises(ValidationError, match="same module multiple times"):
            MonitorConfigSchema.model_validate(
                {
                    "reporting": {
                        "modules": [
                            {"module": "transfer", "occurrence": "daily"},
                            {"module": "transfer"},
                        ],
                        "publisher": {"type": "directory", "path": "out"},
                    }
                }
            )

    def test_same_module_different_occurrence_allowed(self) -> None:
        config = MonitorConfigSchema.model_validate(
            {
                "reporting": {
                    "modules": [
                        {"module": "transfer", "occurrence": "daily"},
                        {"module": "transfer", "occurrence": "monthly"},
                    ],
                    "publisher": {"type": "directory", "path": "out"},
                }
            }
        )
        assert len(config.reporting.modules) == 2

    def test_unknown_publisher_type(self) -> None:
        with pytest.raises(ValidationError):
            MonitorConfigSchema.model_validate(
                {
                    "reporting": {
                        "modules": [],
                        "publisher": {"type": "ftp", "path": "out"},
                    }
                }
            )

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yml"
        path.write_text("- transfer\n")
        with pytest.raises(ConfigError) as exc_info:
            load_monitor_config(path)
        assert exc_info.value.code == "validation_error"
