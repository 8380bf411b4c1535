"""
CoinGecko price client — spot price and market-chart history.

Public endpoints, no API key required. Calls are not throttled: the
dashboard issues at most one chart and one spot-price request per view.
"""

from __future__ import annotations

from typing import Any

import httpx

from walletdash.exceptions import (
    ConnectionFailedError,
    NetworkTimeoutError,
    ProviderError,
    TransportError,
)

COINGECKO_BASE = "https://api.coingecko.com/api/v3"


class CoinGeckoClient:
    """Async CoinGecko API client."""

    def __init__(
        self,
        base_url: str = COINGECKO_BASE,
        vs_currency: str = "usd",
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._vs_currency = vs_currency
        self._client = httpx.AsyncClient(timeout=timeout)

    async def get_market_chart(
        self, coin_id: str = "ethereum", days: int = 1
    ) -> list[tuple[int, float]]:
        """
        Fetch the price series for the last `days` days.

        Returns:
            (unix_ms, price) pairs in the order CoinGecko returns them
            (ascending time).
        """
        data = await self._get(
            f"/coins/{coin_id}/market_chart",
            {"vs_currency": self._vs_currency, "days": str(days)},
        )
        prices = data.get("prices")
        if not isinstance(prices, list):
            raise ProviderError("CoinGecko market_chart response has no prices")

        series: list[tuple[int, float]] = []
        for row in prices:
            try:
                series.append((int(row[0]), float(row[1])))
            except (IndexError, TypeError, ValueError):
                continue
        return series

    async def get_spot_price(self, coin_id: str = "ethereum") -> float:
        data = await self._get(
            "/simple/price", {"ids": coin_id, "vs_currencies": self._vs_currency}
        )
        price = (data.get(coin_id) or {}).get(self._vs_currency)
        if not price:
            raise ProviderError(f"CoinGecko returned no {self._vs_currency} price for {coin_id}")
        return float(price)

    async def close(self) -> None:
        await self._client.aclose()

    # ──────────────────────────────────────────────────────────────
    # Private helpers
    # ──────────────────────────────────────────────────────────────

    async def _get(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        try:
            resp = await self._client.get(self._base_url + path, params=params)
        except httpx.TimeoutException as e:
            raise NetworkTimeoutError(f"CoinGecko timeout: {e}") from e
        except httpx.ConnectError as e:
            raise ConnectionFailedError(f"Cannot connect to CoinGecko: {e}") from e
        except httpx.HTTPError as e:
            raise ConnectionFailedError(f"CoinGecko request failed: {e!r}") from e

        if not resp.is_success:
            raise TransportError(
                f"CoinGecko API error: HTTP {resp.status_code}", status=resp.status_code
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(f"CoinGecko returned a non-JSON body: {e}") from e
        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected CoinGecko response shape: {type(data).__name__}")
        return data
