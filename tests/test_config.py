"""Tests for walletdash/config.py."""

from __future__ import annotations

from pathlib import Path

import pytest

from walletdash.config import (
    SEPOLIA_USDC_CONTRACT,
    WalletdashConfig,
    get_default_config_path,
    load_config,
    save_config,
)
from walletdash.exceptions import ConfigInvalidError

# ── load_config ───────────────────────────────────────────────────────────────


def test_load_config_returns_defaults_when_no_file(tmp_path: Path) -> None:
    """load_config should return defaults when config file doesn't exist."""
    config = load_config(str(tmp_path / "nonexistent.toml"))
    assert isinstance(config, WalletdashConfig)
    assert config.api.etherscan_url == "https://api.etherscan.io/v2/api"
    assert config.api.chain_id == "11155111"
    assert config.wallet.token_contract == SEPOLIA_USDC_CONTRACT
    assert config.wallet.token_decimals == 6
    assert config.cache.ttl_seconds == 60.0
    assert config.rate_limit.min_interval_ms == 350
    assert config.rate_limit.max_retries == 2
    assert config.rate_limit.backoff_ms == 1000
    assert config.pricing.fallback_eth_price == 3500.0
    assert config.output.default_format == "json"
    assert config.logging.level == "WARNING"


def test_load_config_from_valid_toml(tmp_path: Path) -> None:
    """load_config should correctly parse a valid TOML config."""
    config_file = tmp_path / "config.toml"
    config_file.write_text("""
[api]
etherscan_api_key = "my_key_123"
chain_id = 1

[wallet]
address = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"
name = "Treasury"

[cache]
ttl_seconds = 30

[rate_limit]
min_interval_ms = 500

[output]
default_format = "table"

[logging]
level = "debug"
""")
    config = load_config(str(config_file))
    assert config.api.etherscan_api_key == "my_key_123"
    assert config.api.chain_id == "1"
    assert config.wallet.address == "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"
    assert config.wallet.name == "Treasury"
    assert config.cache.ttl_seconds == 30.0
    assert config.rate_limit.min_interval_ms == 500
    assert config.output.default_format == "table"
    assert config.logging.level == "DEBUG"


def test_load_config_invalid_toml(tmp_path: Path) -> None:
    """load_config should raise ConfigInvalidError on bad TOML syntax."""
    config_file = tmp_path / "config.toml"
    config_file.write_text("this is not valid toml = [broken")
    with pytest.raises(ConfigInvalidError):
        load_config(str(config_file))


def test_load_config_invalid_value_type(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("""
[cache]
ttl_seconds = "soon"
""")
    with pytest.raises(ConfigInvalidError):
        load_config(str(config_file))


@pytest.mark.parametrize(
    "toml_text",
    [
        "[cache]\nttl_seconds = -1\n",
        "[rate_limit]\nmin_interval_ms = -5\n",
        "[rate_limit]\nmax_retries = -1\n",
        "[wallet]\ntoken_decimals = 99\n",
        "[output]\ndefault_format = \"xml\"\n",
        "[logging]\nlevel = \"chatty\"\n",
    ],
)
def test_load_config_rejects_out_of_range(tmp_path: Path, toml_text: str) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text(toml_text)
    with pytest.raises(ConfigInvalidError):
        load_config(str(config_file))


def test_config_path_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_file = tmp_path / "custom.toml"
    config_file.write_text('[wallet]\nname = "From Env Path"\n')
    monkeypatch.setenv("WALLETDASH_CONFIG_PATH", str(config_file))
    assert load_config().wallet.name == "From Env Path"


# ── Environment overrides ─────────────────────────────────────────────────────


def test_env_override_api_key(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WALLETDASH_ETHERSCAN_API_KEY", "env_key_xyz")
    config = load_config(str(tmp_path / "missing.toml"))
    assert config.api.etherscan_api_key == "env_key_xyz"


def test_env_override_beats_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text('[wallet]\naddress = "0xfile"\n')
    monkeypatch.setenv("WALLETDASH_WALLET_ADDRESS", "0xenv")
    assert load_config(str(config_file)).wallet.address == "0xenv"


def test_env_override_numeric(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WALLETDASH_MIN_INTERVAL_MS", "0")
    monkeypatch.setenv("WALLETDASH_CACHE_TTL_SECONDS", "5.5")
    config = load_config(str(tmp_path / "missing.toml"))
    assert config.rate_limit.min_interval_ms == 0
    assert config.cache.ttl_seconds == 5.5


def test_env_override_invalid_type(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WALLETDASH_MAX_RETRIES", "many")
    with pytest.raises(ConfigInvalidError):
        load_config(str(tmp_path / "missing.toml"))


def test_env_log_level_is_uppercased(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WALLETDASH_LOG_LEVEL", "info")
    assert load_config(str(tmp_path / "missing.toml")).logging.level == "INFO"


def test_env_no_color(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WALLETDASH_NO_COLOR", "1")
    assert load_config(str(tmp_path / "missing.toml")).output.color is False


# ── save_config ───────────────────────────────────────────────────────────────


def test_save_config_roundtrip(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config = WalletdashConfig()
    config.api.etherscan_api_key = "roundtrip_key"
    config.wallet.address = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"
    config.pricing.daily_change_percent = 1.5

    save_config(config, str(config_file))
    loaded = load_config(str(config_file))

    assert loaded == config


def test_save_config_creates_dir(tmp_path: Path) -> None:
    config_file = tmp_path / "nested" / "dir" / "config.toml"
    written = save_config(WalletdashConfig(), str(config_file))
    assert written == config_file
    assert config_file.exists()


def test_get_default_config_path() -> None:
    path = get_default_config_path()
    assert path.name == "config.toml"
    assert path.parent.name == ".walletdash"
