"""
Config loading for walletdash.

Sources (in precedence order, highest first):
  1. Environment variables (WALLETDASH_*)
  2. ~/.walletdash/config.toml
  3. Built-in defaults

Usage:
    from walletdash.config import load_config
    config = load_config()
    print(config.wallet.address)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import toml

from walletdash.exceptions import ConfigInvalidError

# Default config directory and file
DEFAULT_CONFIG_DIR = Path.home() / ".walletdash"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"

DEFAULT_ETHERSCAN_URL = "https://api.etherscan.io/v2/api"
DEFAULT_COINGECKO_URL = "https://api.coingecko.com/api/v3"
SEPOLIA_CHAIN_ID = "11155111"
SEPOLIA_USDC_CONTRACT = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"

# Environment variable → config key mapping
# Format: (env_var_name, dotted_config_path, type_converter)
_ENV_OVERRIDES: list[tuple[str, str, type]] = [
    ("WALLETDASH_ETHERSCAN_API_KEY", "api.etherscan_api_key", str),
    ("WALLETDASH_ETHERSCAN_URL", "api.etherscan_url", str),
    ("WALLETDASH_COINGECKO_URL", "api.coingecko_url", str),
    ("WALLETDASH_CHAIN_ID", "api.chain_id", str),
    ("WALLETDASH_TIMEOUT_SECONDS", "api.timeout_seconds", float),
    ("WALLETDASH_WALLET_ADDRESS", "wallet.address", str),
    ("WALLETDASH_WALLET_NAME", "wallet.name", str),
    ("WALLETDASH_TOKEN_CONTRACT", "wallet.token_contract", str),
    ("WALLETDASH_TOKEN_DECIMALS", "wallet.token_decimals", int),
    ("WALLETDASH_CACHE_TTL_SECONDS", "cache.ttl_seconds", float),
    ("WALLETDASH_MIN_INTERVAL_MS", "rate_limit.min_interval_ms", int),
    ("WALLETDASH_MAX_RETRIES", "rate_limit.max_retries", int),
    ("WALLETDASH_BACKOFF_MS", "rate_limit.backoff_ms", int),
    ("WALLETDASH_FALLBACK_ETH_PRICE", "pricing.fallback_eth_price", float),
    ("WALLETDASH_OUTPUT_FORMAT", "output.default_format", str),
    ("WALLETDASH_LOG_LEVEL", "logging.level", str),
]

VALID_FORMATS = {"json", "table"}
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class APIConfig:
    """Upstream API endpoints and credentials."""

    etherscan_api_key: str = ""
    etherscan_url: str = DEFAULT_ETHERSCAN_URL
    coingecko_url: str = DEFAULT_COINGECKO_URL
    chain_id: str = SEPOLIA_CHAIN_ID
    timeout_seconds: float = 30.0


@dataclass
class WalletConfig:
    """The single wallet this dashboard tracks."""

    address: str = ""
    name: str = "My Wallet"
    token_contract: str = SEPOLIA_USDC_CONTRACT
    token_decimals: int = 6
    token_symbol: str = "USDC"


@dataclass
class CacheConfig:
    """In-process TTL cache settings."""

    ttl_seconds: float = 60.0


@dataclass
class RateLimitConfig:
    """Explorer API throttle and retry settings."""

    min_interval_ms: int = 350
    max_retries: int = 2
    backoff_ms: int = 1000


@dataclass
class PricingConfig:
    """Price fallbacks used when the price source is unavailable."""

    fallback_eth_price: float = 3500.0
    daily_change_percent: float = 5.2


@dataclass
class OutputConfig:
    """Output formatting defaults."""

    default_format: str = "json"        # json | table
    color: bool = True


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class WalletdashConfig:
    """Full configuration object. Passed via Click context to all commands."""

    api: APIConfig = field(default_factory=APIConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | None = None) -> WalletdashConfig:
    """
    Load configuration from TOML file + environment variable overrides.

    Args:
        path: Override config file path. If None, uses WALLETDASH_CONFIG_PATH
              env var or default (~/.walletdash/config.toml).

    Returns:
        WalletdashConfig with all values resolved.

    Raises:
        ConfigInvalidError: Config file exists but is invalid TOML or values.
    """
    config_path = _resolve_config_path(path)

    raw: dict = {}
    if config_path.exists():
        try:
            raw = toml.load(str(config_path))
        except toml.TomlDecodeError as e:
            raise ConfigInvalidError(f"Invalid TOML in {config_path}: {e}") from e

    try:
        config = _dict_to_config(raw)
    except (ValueError, TypeError) as e:
        raise ConfigInvalidError(f"Invalid value in {config_path}: {e}") from e
    _apply_env_overrides(config)
    _validate_config(config)

    return config


def save_config(config: WalletdashConfig, path: str | None = None) -> Path:
    """
    Serialize WalletdashConfig to TOML and write to disk.

    Returns the path where config was written.
    """
    config_path = _resolve_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "api": {
            "etherscan_api_key": config.api.etherscan_api_key,
            "etherscan_url": config.api.etherscan_url,
            "coingecko_url": config.api.coingecko_url,
            "chain_id": config.api.chain_id,
            "timeout_seconds": config.api.timeout_seconds,
        },
        "wallet": {
            "address": config.wallet.address,
            "name": config.wallet.name,
            "token_contract": config.wallet.token_contract,
            "token_decimals": config.wallet.token_decimals,
            "token_symbol": config.wallet.token_symbol,
        },
        "cache": {
            "ttl_seconds": config.cache.ttl_seconds,
        },
        "rate_limit": {
            "min_interval_ms": config.rate_limit.min_interval_ms,
            "max_retries": config.rate_limit.max_retries,
            "backoff_ms": config.rate_limit.backoff_ms,
        },
        "pricing": {
            "fallback_eth_price": config.pricing.fallback_eth_price,
            "daily_change_percent": config.pricing.daily_change_percent,
        },
        "output": {
            "default_format": config.output.default_format,
            "color": config.output.color,
        },
        "logging": {
            "level": config.logging.level,
        },
    }

    with open(config_path, "w") as f:
        toml.dump(data, f)

    return config_path


def get_default_config_path() -> Path:
    """Return the default config file path."""
    return DEFAULT_CONFIG_PATH


# ──────────────────────────────────────────────────────────────
# Private helpers
# ──────────────────────────────────────────────────────────────


def _resolve_config_path(path: str | None) -> Path:
    if path:
        return Path(path).expanduser()
    env_path = os.environ.get("WALLETDASH_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def _dict_to_config(raw: dict) -> WalletdashConfig:
    """Build WalletdashConfig from raw TOML dict, applying defaults for missing keys."""
    config = WalletdashConfig()

    api = raw.get("api", {})
    config.api.etherscan_api_key = api.get("etherscan_api_key", "")
    config.api.etherscan_url = api.get("etherscan_url", DEFAULT_ETHERSCAN_URL)
    config.api.coingecko_url = api.get("coingecko_url", DEFAULT_COINGECKO_URL)
    config.api.chain_id = str(api.get("chain_id", SEPOLIA_CHAIN_ID))
    config.api.timeout_seconds = float(api.get("timeout_seconds", 30.0))

    wallet = raw.get("wallet", {})
    config.wallet.address = wallet.get("address", "")
    config.wallet.name = wallet.get("name", "My Wallet")
    config.wallet.token_contract = wallet.get("token_contract", SEPOLIA_USDC_CONTRACT)
    config.wallet.token_decimals = int(wallet.get("token_decimals", 6))
    config.wallet.token_symbol = wallet.get("token_symbol", "USDC")

    cache = raw.get("cache", {})
    config.cache.ttl_seconds = float(cache.get("ttl_seconds", 60.0))

    rate_limit = raw.get("rate_limit", {})
    config.rate_limit.min_interval_ms = int(rate_limit.get("min_interval_ms", 350))
    config.rate_limit.max_retries = int(rate_limit.get("max_retries", 2))
    config.rate_limit.backoff_ms = int(rate_limit.get("backoff_ms", 1000))

    pricing = raw.get("pricing", {})
    config.pricing.fallback_eth_price = float(pricing.get("fallback_eth_price", 3500.0))
    config.pricing.daily_change_percent = float(pricing.get("daily_change_percent", 5.2))

    output = raw.get("output", {})
    config.output.default_format = output.get("default_format", "json")
    config.output.color = bool(output.get("color", True))

    logging_section = raw.get("logging", {})
    config.logging.level = str(logging_section.get("level", "WARNING")).upper()

    return config


def _apply_env_overrides(config: WalletdashConfig) -> None:
    """Apply environment variable overrides to a loaded config."""
    if os.environ.get("WALLETDASH_NO_COLOR"):
        config.output.color = False

    for env_var, dotted_key, converter in _ENV_OVERRIDES:
        val = os.environ.get(env_var)
        if val is None:
            continue
        section, key = dotted_key.split(".", 1)
        section_obj = getattr(config, section)
        try:
            setattr(section_obj, key, converter(val))
        except (ValueError, TypeError) as e:
            raise ConfigInvalidError(
                f"Invalid value for {env_var}={val!r}: {e}"
            ) from e

    config.logging.level = config.logging.level.upper()


def _validate_config(config: WalletdashConfig) -> None:
    """Validate config values. Raises ConfigInvalidError on invalid values."""
    if config.cache.ttl_seconds < 0:
        raise ConfigInvalidError(
            f"cache.ttl_seconds must be non-negative, got {config.cache.ttl_seconds}"
        )
    if config.rate_limit.min_interval_ms < 0:
        raise ConfigInvalidError(
            f"rate_limit.min_interval_ms must be non-negative, "
            f"got {config.rate_limit.min_interval_ms}"
        )
    if config.rate_limit.max_retries < 0:
        raise ConfigInvalidError(
            f"rate_limit.max_retries must be non-negative, got {config.rate_limit.max_retries}"
        )
    if not 0 <= config.wallet.token_decimals <= 36:
        raise ConfigInvalidError(
            f"wallet.token_decimals must be 0–36, got {config.wallet.token_decimals}"
        )
    if config.output.default_format not in VALID_FORMATS:
        raise ConfigInvalidError(
            f"output.default_format must be one of {VALID_FORMATS}, "
            f"got {config.output.default_format!r}"
        )
    if config.logging.level not in VALID_LOG_LEVELS:
        raise ConfigInvalidError(
            f"logging.level must be one of {sorted(VALID_LOG_LEVELS)}, "
            f"got {config.logging.level!r}"
        )
