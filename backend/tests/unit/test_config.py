"""Tests for settings defaults and the YAML overlay."""

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from flowpilot.config import Settings


def test_defaults(tmp_path: Path) -> None:
    settings = Settings(_env_file=None, data_dir=tmp_path)

    assert settings.ledger.demo_initial_balance == Decimal("1000.0")
    assert settings.ledger.chain_initial_balance == Decimal("100.0")
    assert settings.ledger.portfolio_markup == Decimal("1.3")
    assert not settings.ledger.allow_negative_balance
    assert settings.marketplace.catalog_size == 16
    assert not settings.wallet.has_account
    assert settings.data_dir.is_absolute()


def test_yaml_overlay(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text(
        yaml.safe_dump(
            {
                "ledger": {"demo_initial_balance": "250", "allow_negative_balance": True},
                "wallet": {"account_address": "0x01cf0e2f2f715450"},
                "marketplace": None,
            }
        )
    )
    settings = Settings(_env_file=None, data_dir=tmp_path)

    settings.load_yaml_config()

    assert settings.ledger.demo_initial_balance == Decimal("250")
    assert settings.ledger.allow_negative_balance
    # Untouched keys keep their defaults
    assert settings.ledger.connected_balance == Decimal("1000.0")
    assert settings.wallet.has_account
    assert settings.marketplace.catalog_size == 16


def test_missing_yaml_keeps_defaults(tmp_path: Path) -> None:
    settings = Settings(_env_file=None, data_dir=tmp_path)
    settings.load_yaml_config()
    assert settings.ledger.demo_initial_balance == Decimal("1000.0")


def test_invalid_yaml_raises(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text("ledger: [unclosed")
    settings = Settings(_env_file=None, data_dir=tmp_path)

    with pytest.raises(yaml.YAMLError):
        settings.load_yaml_config()


def test_nested_env_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LEDGER__DEMO_INITIAL_BALANCE", "75")
    monkeypatch.setenv("WALLET__QUERY_TIMEOUT_SECONDS", "2.5")

    settings = Settings(_env_file=None, data_dir=tmp_path)

    assert settings.ledger.demo_initial_balance == Decimal("75")
    assert settings.wallet.query_timeout_seconds == 2.5
