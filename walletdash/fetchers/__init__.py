"""
Upstream API clients for walletdash.

Factory functions build configured clients from a WalletdashConfig:

Usage:
    from walletdash.fetchers import get_explorer_client, get_price_client
    explorer = get_explorer_client(config)
    wei = await explorer.get_balance(address)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from walletdash.fetchers.base import ExplorerClient, PriceSource, is_valid_address

if TYPE_CHECKING:
    from walletdash.config import WalletdashConfig

__all__ = [
    "ExplorerClient",
    "PriceSource",
    "get_explorer_client",
    "get_price_client",
    "is_valid_address",
]


def get_explorer_client(config: WalletdashConfig) -> ExplorerClient:
    """Return a rate-limited Etherscan client configured from `config`."""
    from walletdash.fetchers.etherscan import EtherscanClient, RateLimiter

    rate = config.rate_limit
    return EtherscanClient(
        api_key=config.api.etherscan_api_key,
        chain_id=config.api.chain_id,
        base_url=config.api.etherscan_url,
        max_retries=rate.max_retries,
        retry_backoff=rate.backoff_ms / 1000,
        timeout=config.api.timeout_seconds,
        rate_limiter=RateLimiter(min_interval=rate.min_interval_ms / 1000),
    )


def get_price_client(config: WalletdashConfig) -> PriceSource:
    """Return a CoinGecko client configured from `config`."""
    from walletdash.fetchers.coingecko import CoinGeckoClient

    return CoinGeckoClient(
        base_url=config.api.coingecko_url,
        timeout=config.api.timeout_seconds,
    )
