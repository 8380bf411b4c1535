"""Pytest fixtures shared across all walletdash tests."""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from walletdash.cache import TTLCache
from walletdash.config import (
    APIConfig,
    CacheConfig,
    LoggingConfig,
    OutputConfig,
    PricingConfig,
    RateLimitConfig,
    WalletConfig,
    WalletdashConfig,
)
from walletdash.fetchers.coingecko import CoinGeckoClient
from walletdash.fetchers.etherscan import ETHERSCAN_BASE, EtherscanClient, RateLimiter
from walletdash.service import DashboardService, WalletDataService

WALLET = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"
OTHER = "0x28c6c06298d514db089934071355e5743bf21d60"
USDC = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"
COINGECKO_BASE = "https://api.coingecko.test/api/v3"


# ── Time fixtures ─────────────────────────────────────────────────────────────


class FakeClock:
    """Manual clock whose sleep() advances time instead of waiting."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ── Signer fixtures ───────────────────────────────────────────────────────────


class FakeSigner:
    """In-memory TokenSigner; records submitted transfers."""

    def __init__(
        self,
        address: str = WALLET,
        balance: int = 100_000_000,
        tx_hash: str = "0xfeed",
        transfer_error: Exception | None = None,
        balance_error: Exception | None = None,
    ) -> None:
        self.address = address
        self.balance = balance
        self.tx_hash = tx_hash
        self.transfer_error = transfer_error
        self.balance_error = balance_error
        self.sent: list[tuple[str, str, int]] = []

    async def balance_of(self, contract: str, account: str) -> int:
        if self.balance_error is not None:
            raise self.balance_error
        return self.balance

    async def transfer(self, contract: str, to_address: str, amount: int) -> str:
        if self.transfer_error is not None:
            raise self.transfer_error
        self.sent.append((contract, to_address, amount))
        return self.tx_hash


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


# ── Config fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def sample_config() -> WalletdashConfig:
    """Minimal valid WalletdashConfig for tests (no throttle delay)."""
    return WalletdashConfig(
        api=APIConfig(
            etherscan_api_key="test_etherscan_key_12345",
            etherscan_url=ETHERSCAN_BASE,
            coingecko_url=COINGECKO_BASE,
        ),
        wallet=WalletConfig(address=WALLET, token_contract=USDC),
        cache=CacheConfig(ttl_seconds=60.0),
        rate_limit=RateLimitConfig(min_interval_ms=0, max_retries=2, backoff_ms=0),
        pricing=PricingConfig(fallback_eth_price=3500.0, daily_change_percent=5.2),
        output=OutputConfig(default_format="json", color=False),
        logging=LoggingConfig(level="WARNING"),
    )


# ── Client / service fixtures ─────────────────────────────────────────────────


@pytest.fixture
async def etherscan(clock: FakeClock) -> EtherscanClient:
    client = EtherscanClient(
        api_key="test_key",
        rate_limiter=RateLimiter(min_interval=0.35, clock=clock, sleep=clock.sleep),
        sleep=clock.sleep,
    )
    yield client
    await client.close()


@pytest.fixture
async def coingecko() -> CoinGeckoClient:
    client = CoinGeckoClient(base_url=COINGECKO_BASE)
    yield client
    await client.close()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(ttl_seconds=60.0, clock=clock)


NOW_MS = 1_760_000_000_000


@pytest.fixture
async def data_service(
    etherscan: EtherscanClient, coingecko: CoinGeckoClient, cache: TTLCache
) -> WalletDataService:
    return WalletDataService(
        etherscan,
        coingecko,
        cache,
        token_contract=USDC,
        token_decimals=6,
        fallback_eth_price=3500.0,
        daily_change_percent=5.2,
        clock_ms=lambda: NOW_MS,
    )


@pytest.fixture
def dashboard(data_service: WalletDataService) -> DashboardService:
    return DashboardService(data_service, wallet_address=WALLET)


# ── Etherscan response fixtures ───────────────────────────────────────────────


def etherscan_ok(result: Any) -> dict:
    return {"status": "1", "message": "OK", "result": result}


def etherscan_empty() -> dict:
    return {"status": "0", "message": "No transactions found", "result": []}


def etherscan_ratelimit() -> dict:
    return {"status": "0", "message": "NOTOK", "result": "Max rate limit reached"}


def etherscan_router(
    bodies: dict[str, Any],
) -> Callable[[httpx.Request], httpx.Response]:
    """
    respx side effect that answers by the `action` query param.

    Values may be a JSON body, an httpx.Response, or a list of either
    (consumed in order, last one repeated).
    """
    calls: dict[str, int] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        action = request.url.params.get("action", "")
        body = bodies[action]
        if isinstance(body, list):
            idx = calls.get(action, 0)
            calls[action] = idx + 1
            body = body[min(idx, len(body) - 1)]
        if isinstance(body, httpx.Response):
            return httpx.Response(body.status_code, content=body.content)
        return httpx.Response(200, json=body)

    return handler


def make_token_tx(
    tx_hash: str = "0xabc",
    from_addr: str = OTHER,
    to_addr: str = WALLET,
    block: int = 9_000_000,
    ts: int = 1_760_000_000,
    value: str = "25000000",
) -> dict:
    return {
        "hash": tx_hash,
        "blockNumber": str(block),
        "timeStamp": str(ts),
        "from": from_addr,
        "to": to_addr,
        "value": value,
        "tokenSymbol": "USDC",
        "tokenDecimal": "6",
        "contractAddress": USDC.lower(),
    }
