"""
Wallet data services: cached fetchers and the presentation boundary.

WalletDataService
    Typed fetch operations. Each follows the same template: build the cache
    key → return on hit → call the explorer or price client on miss →
    normalize → cache → return. Results come back tagged (FetchResult) so the
    caller sees the error instead of a silently substituted value.

DashboardService
    What the UI calls. Unwraps each FetchResult, substituting the widget's
    fallback value and logging the error, so one failing upstream call
    degrades one widget rather than the page. Also hosts the cache
    invalidation hook and the transfer write path.

Cache keys (operation first, then arguments in this order):
    eth-current-price
    eth-balance:<address>
    usdc-balance:<address>
    portfolio:<address>
    first-tx:<address>
    recent-deposits:<address>
    eth-history:<period>:<address>:<holding>
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, TypeVar

from walletdash.cache import TTLCache, make_key
from walletdash.config import WalletdashConfig
from walletdash.exceptions import (
    ConfigMissingError,
    NoTransactionsError,
    ProviderError,
    WalletdashError,
)
from walletdash.fetchers import get_explorer_client, get_price_client
from walletdash.fetchers.base import ExplorerClient, PriceSource
from walletdash.metrics import (
    build_chart,
    format_month_year,
    now_ms,
    portfolio_value,
    synthetic_series,
)
from walletdash.models import (
    ChartSeries,
    DepositTransaction,
    EthBalance,
    FetchResult,
    PortfolioValue,
    TimePeriod,
    TokenBalance,
    TransferResult,
    WalletInfo,
)
from walletdash.transfer import TokenSigner, TransferService

logger = logging.getLogger(__name__)

T = TypeVar("T")

WEI_PER_ETH = Decimal(10) ** 18
RECENT_TRANSFERS_PAGE = 10
MAX_RECENT_DEPOSITS = 5
FALLBACK_JOINED_DATE = "Nov 2025"

# Malformed payloads surface as these during normalization
_NORMALIZE_ERRORS = (KeyError, IndexError, TypeError, ValueError, InvalidOperation)


class WalletDataService:
    """
    Cached, typed reads over the explorer and price clients.

    The cache and clients are injected; build one from config with
    WalletDataService.from_config(config).

    List results come back as shallow copies of the cached entry. The items
    inside are shared with the cache and should be treated as read-only.
    """

    def __init__(
        self,
        explorer: ExplorerClient,
        prices: PriceSource,
        cache: TTLCache,
        *,
        token_contract: str,
        token_decimals: int = 6,
        fallback_eth_price: float = 3500.0,
        daily_change_percent: float = 5.2,
        clock_ms: Callable[[], int] = now_ms,
    ) -> None:
        self.explorer = explorer
        self.prices = prices
        self.cache = cache
        self._token_contract = token_contract
        self._token_scale = Decimal(10) ** token_decimals
        self._fallback_eth_price = fallback_eth_price
        self._daily_change_percent = daily_change_percent
        self.clock_ms = clock_ms

    @classmethod
    def from_config(cls, config: WalletdashConfig) -> WalletDataService:
        return cls(
            explorer=get_explorer_client(config),
            prices=get_price_client(config),
            cache=TTLCache(ttl_seconds=config.cache.ttl_seconds),
            token_contract=config.wallet.token_contract,
            token_decimals=config.wallet.token_decimals,
            fallback_eth_price=config.pricing.fallback_eth_price,
            daily_change_percent=config.pricing.daily_change_percent,
        )

    async def close(self) -> None:
        await asyncio.gather(self.explorer.close(), self.prices.close())

    async def __aenter__(self) -> WalletDataService:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ── Fetchers ──────────────────────────────────────────────────────────────

    async def get_spot_price(self) -> FetchResult[float]:
        return await self._cached(
            make_key("eth-current-price"), lambda: self.prices.get_spot_price("ethereum")
        )

    async def get_eth_balance(self, address: str) -> FetchResult[EthBalance]:
        async def load() -> EthBalance:
            wei = await self.explorer.get_balance(address)
            eth = Decimal(wei) / WEI_PER_ETH
            price = (await self.get_spot_price()).unwrap_or(self._fallback_eth_price)
            return EthBalance(
                wei=wei,
                eth_formatted=f"{eth:.6f}",
                usd_value=float(eth) * price,
            )

        return await self._cached(make_key("eth-balance", address), load)

    async def get_token_balance(self, address: str) -> FetchResult[TokenBalance]:
        async def load() -> TokenBalance:
            raw = await self.explorer.get_token_balance(self._token_contract, address)
            balance = Decimal(raw) / self._token_scale
            usd_value = float(balance)  # stablecoin, 1:1 with USD
            daily_change = usd_value * self._daily_change_percent / 100
            return TokenBalance(
                raw=raw,
                formatted=f"{balance:.2f}",
                usd_value=usd_value,
                daily_change=daily_change,
                daily_change_percent=self._daily_change_percent,
                is_profit=daily_change >= 0,
            )

        return await self._cached(make_key("usdc-balance", address), load)

    async def get_portfolio_value(self, address: str) -> FetchResult[PortfolioValue]:
        """
        ETH + token valuation, fetched concurrently.

        A failing component counts as zero; such a partial portfolio is
        returned but not cached so the next read retries it.
        """
        key = make_key("portfolio", address)
        cached = self.cache.get(key)
        if cached is not None:
            return FetchResult.ok(cached)

        eth, token = await asyncio.gather(
            self.get_eth_balance(address), self.get_token_balance(address)
        )
        if not eth.is_ok and not token.is_ok:
            return FetchResult.err(eth.error)  # type: ignore[arg-type]

        portfolio = portfolio_value(
            eth.unwrap_or(EthBalance.zero()), token.unwrap_or(TokenBalance.zero())
        )
        if eth.is_ok and token.is_ok:
            self.cache.set(key, portfolio)
        else:
            logger.warning(
                "partial portfolio for %s: eth=%s token=%s",
                address, eth.error or "ok", token.error or "ok",
            )
        return FetchResult.ok(portfolio)

    async def get_first_transaction_date(self, address: str) -> FetchResult[str]:
        """Month and year of the address's earliest transaction, e.g. 'Nov 2025'."""
        async def load() -> str:
            txns = await self.explorer.get_transactions(address, page=1, offset=1, sort="asc")
            if not txns:
                raise NoTransactionsError(f"No transactions for {address}")
            return format_month_year(int(txns[0]["timeStamp"]))

        return await self._cached(make_key("first-tx", address), load)

    async def get_recent_deposits(self, address: str) -> FetchResult[list[DepositTransaction]]:
        async def load() -> list[DepositTransaction]:
            current_block = await self.explorer.get_block_number()
            transfers = await self.explorer.get_token_transfers(
                address,
                contract=self._token_contract,
                page=1,
                offset=RECENT_TRANSFERS_PAGE,
                sort="desc",
            )
            incoming = [t for t in transfers if str(t.get("to", "")).lower() == address.lower()]
            return [
                self._to_deposit(t, current_block) for t in incoming[:MAX_RECENT_DEPOSITS]
            ]

        return await self._cached(make_key("recent-deposits", address), load)

    async def get_price_history(
        self, period: TimePeriod, address: str, holding: float
    ) -> FetchResult[ChartSeries]:
        """
        ETH price series for `period` with profit/loss on `holding` ETH.

        The price source is always asked for the period's fixed day window;
        the exact cutoff is applied here.
        """
        async def load() -> ChartSeries:
            prices = await self.prices.get_market_chart("ethereum", period.lookback_days)
            return build_chart(prices, period, holding, self.clock_ms())

        return await self._cached(make_key("eth-history", period.value, address, holding), load)

    async def get_eth_holding(self, address: str) -> FetchResult[float]:
        """Current ETH balance as a plain number, for profit/loss."""
        result = await self.get_eth_balance(address)
        if not result.is_ok:
            return FetchResult.err(result.error)  # type: ignore[arg-type]
        return FetchResult.ok(float(Decimal(result.value.wei) / WEI_PER_ETH))  # type: ignore[union-attr]

    # ──────────────────────────────────────────────────────────────
    # Private helpers
    # ──────────────────────────────────────────────────────────────

    async def _cached(self, key: str, load: Callable[[], Awaitable[T]]) -> FetchResult[T]:
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("cache hit: %s", key)
            return FetchResult.ok(_detached(cached))
        try:
            value = await load()
        except WalletdashError as e:
            return FetchResult.err(e)
        except _NORMALIZE_ERRORS as e:
            return FetchResult.err(ProviderError(f"Malformed response for {key}: {e!r}"))
        self.cache.set(key, value)
        return FetchResult.ok(_detached(value))

    def _to_deposit(self, raw: dict[str, Any], current_block: int) -> DepositTransaction:
        confirmations = current_block - int(raw["blockNumber"])
        amount = Decimal(raw["value"]) / self._token_scale
        return DepositTransaction(
            hash=raw["hash"],
            from_addr=raw["from"],
            amount=f"{amount:.2f}",
            timestamp=int(raw["timeStamp"]) * 1000,
            confirmations=confirmations,
        )


class DashboardService:
    """
    Presentation boundary for the single configured wallet.

    Every read returns a plain value; failures are logged and replaced with
    the widget's fallback. Only send_token reports failure to the caller.
    """

    def __init__(
        self,
        data: WalletDataService,
        wallet_address: str = "",
        wallet_name: str = "My Wallet",
        transfers: TransferService | None = None,
    ) -> None:
        self.data = data
        self.wallet_address = wallet_address
        self.wallet_name = wallet_name
        self.transfers = transfers

    @classmethod
    def from_config(
        cls, config: WalletdashConfig, signer: TokenSigner | None = None
    ) -> DashboardService:
        data = WalletDataService.from_config(config)
        transfers = None
        if signer is not None:
            transfers = TransferService(
                signer,
                data.cache,
                token_contract=config.wallet.token_contract,
                token_decimals=config.wallet.token_decimals,
                token_symbol=config.wallet.token_symbol,
            )
        return cls(
            data,
            wallet_address=config.wallet.address,
            wallet_name=config.wallet.name,
            transfers=transfers,
        )

    @property
    def cache(self) -> TTLCache:
        return self.data.cache

    async def close(self) -> None:
        await self.data.close()

    async def __aenter__(self) -> DashboardService:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ── Reads ─────────────────────────────────────────────────────────────────

    async def get_eth_balance(self, address: str | None = None) -> EthBalance:
        result = await self.data.get_eth_balance(self._address(address))
        return _fallback(result, EthBalance.zero(), "ETH balance")

    async def get_token_balance(self, address: str | None = None) -> TokenBalance:
        result = await self.data.get_token_balance(self._address(address))
        return _fallback(result, TokenBalance.zero(), "token balance")

    async def get_portfolio_value(self, address: str | None = None) -> PortfolioValue:
        result = await self.data.get_portfolio_value(self._address(address))
        return _fallback(result, PortfolioValue.zero(), "portfolio value")

    async def get_first_transaction_date(self, address: str | None = None) -> str:
        result = await self.data.get_first_transaction_date(self._address(address))
        return _fallback(result, FALLBACK_JOINED_DATE, "first transaction date")

    async def get_recent_deposits(self, address: str | None = None) -> list[DepositTransaction]:
        result = await self.data.get_recent_deposits(self._address(address))
        return _fallback(result, [], "recent deposits")

    async def get_price_history(
        self,
        period: TimePeriod | str,
        address: str | None = None,
        holding: float | None = None,
    ) -> ChartSeries:
        """
        Chart data for `period`. Without an explicit holding, the wallet's
        current ETH balance is applied to the whole period.
        """
        period = TimePeriod(period)
        address = self._address(address)
        if holding is None:
            holding = _fallback(await self.data.get_eth_holding(address), 0.0, "ETH holding")
        result = await self.data.get_price_history(period, address, holding)
        if result.is_ok:
            return result.value  # type: ignore[return-value]
        logger.warning("price history unavailable, showing placeholder: %s", result.error)
        return synthetic_series(period, self.data.clock_ms(), holding)

    async def get_wallet_info(self) -> WalletInfo:
        if not self.wallet_address:
            return WalletInfo(name=self.wallet_name, address="", joined_date=FALLBACK_JOINED_DATE)
        joined = await self.get_first_transaction_date()
        return WalletInfo(
            name=self.wallet_name, address=self.wallet_address, joined_date=f"Joined {joined}"
        )

    # ── Invalidation ──────────────────────────────────────────────────────────

    async def refresh_wallet_data(self) -> int:
        """Drop every cached view of the configured wallet."""
        if not self.wallet_address:
            return 0
        return self.cache.invalidate(self.wallet_address)

    async def fetch_wallet_balances(self) -> tuple[TokenBalance, PortfolioValue]:
        """Invalidate, then re-fetch token balance and portfolio before returning."""
        address = self._address(None)
        self.cache.invalidate(address)
        token, portfolio = await asyncio.gather(
            self.get_token_balance(address), self.get_portfolio_value(address)
        )
        return token, portfolio

    # ── Writes ────────────────────────────────────────────────────────────────

    async def send_token(self, to_address: str, amount: str) -> TransferResult:
        if self.transfers is None:
            return TransferResult(success=False, error="Wallet signer not configured")
        result = await self.transfers.send_token(to_address, amount)
        # The configured address may differ in case from the signer's.
        if result.success and self.wallet_address and self.wallet_address != self.transfers.sender:
            self.cache.invalidate(self.wallet_address)
        return result

    def _address(self, address: str | None) -> str:
        address = address or self.wallet_address
        if not address:
            raise ConfigMissingError(
                "No wallet address configured (set wallet.address or WALLETDASH_WALLET_ADDRESS)"
            )
        return address


def _detached(value: T) -> T:
    # Lists are handed out as copies so callers cannot edit a cached entry.
    return list(value) if isinstance(value, list) else value  # type: ignore[return-value]


def _fallback(result: FetchResult[T], fallback: T, what: str) -> T:
    if not result.is_ok:
        logger.warning("%s unavailable, showing fallback: %s", what, result.error)
    return result.unwrap_or(fallback)
