"""
Etherscan V2 client — throttled access to the explorer API.

API docs: https://docs.etherscan.io/etherscan-v2
Rate limit: free tier allows a handful of calls per second per key.

Design decisions:
- Uses async httpx for all HTTP calls.
- One RateLimiter per client gates every operation, so requests issued
  concurrently (e.g. balance + token balance for the portfolio view) are still
  dispatched at least `min_interval` apart.
- A provider-level "rate limit" answer is retried with a fixed backoff in a
  bounded loop; every attempt goes back through the limiter.
- status "0" + "No transactions found" is an empty result, not an error.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

import httpx

from walletdash.exceptions import (
    ConnectionFailedError,
    InvalidAPIKeyError,
    NetworkTimeoutError,
    ProviderError,
    RateLimitExceeded,
    TransportError,
)

logger = logging.getLogger(__name__)

# Etherscan V2 API base URL (multichain; network picked via chainid)
ETHERSCAN_BASE = "https://api.etherscan.io/v2/api"
SEPOLIA_CHAIN_ID = "11155111"

# Minimum spacing between dispatched requests (~3 req/sec)
MIN_REQUEST_INTERVAL = 0.35  # seconds

# Provider rate-limit rejections are retried this many times
MAX_RETRIES = 2
RETRY_BACKOFF = 1.0  # seconds

NO_TRANSACTIONS_MESSAGE = "No transactions found"

Sleep = Callable[[float], Awaitable[None]]


class RateLimiter:
    """
    Minimum-spacing gate shared by every request a client sends.

    The check-elapsed / sleep / stamp sequence runs under an asyncio.Lock so
    gathered callers queue up instead of reading the same stale marker.
    """

    def __init__(
        self,
        min_interval: float = MIN_REQUEST_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self.last_dispatch: float | None = None

    async def acquire(self) -> None:
        async with self._lock:
            if self.last_dispatch is not None:
                elapsed = self._clock() - self.last_dispatch
                if elapsed < self.min_interval:
                    wait = self.min_interval - elapsed
                    logger.debug("throttling explorer request for %.3fs", wait)
                    await self._sleep(wait)
            self.last_dispatch = self._clock()


class EtherscanClient:
    """
    Async Etherscan V2 API client.

    Every request carries `chainid` and `apikey`. Raw `result` payloads are
    returned as-is; normalization happens in the service layer.
    """

    def __init__(
        self,
        api_key: str,
        chain_id: str = SEPOLIA_CHAIN_ID,
        base_url: str = ETHERSCAN_BASE,
        *,
        max_retries: int = MAX_RETRIES,
        retry_backoff: float = RETRY_BACKOFF,
        timeout: float = 30.0,
        rate_limiter: RateLimiter | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._api_key = api_key
        self._chain_id = chain_id
        self._base_url = base_url
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff
        self._sleep = sleep
        self._client = httpx.AsyncClient(timeout=timeout)
        self.rate_limiter = rate_limiter or RateLimiter(sleep=sleep)

    async def call(self, params: dict[str, str], retries: int | None = None) -> Any:
        """
        Issue one explorer request and return its `result` payload.

        Raises:
            TransportError: Non-2xx HTTP status
            RateLimitExceeded: Still rate limited after `retries` retries
            ProviderError: status "0" with any message but "No transactions found"
            NetworkError: Timeout or connection failure
        """
        retries = self._max_retries if retries is None else retries
        attempt = 0
        last_error = ""

        while attempt <= retries:
            if attempt:
                await self._sleep(self._retry_backoff)
            attempt += 1

            data = await self._dispatch(params)
            if _is_rate_limited(data):
                last_error = str(data.get("result", ""))
                logger.warning(
                    "Etherscan rate limited %s/%s (attempt %d of %d)",
                    params.get("module"),
                    params.get("action"),
                    attempt,
                    retries + 1,
                )
                continue
            return _unwrap(data)

        raise RateLimitExceeded(
            f"Etherscan rate limit exceeded after {attempt} attempts: {last_error}",
            attempts=attempt,
        )

    async def get_balance(self, address: str) -> str:
        result = await self.call(
            {"module": "account", "action": "balance", "address": address, "tag": "latest"}
        )
        return str(result)

    async def get_token_balance(self, contract: str, address: str) -> str:
        result = await self.call(
            {
                "module": "account",
                "action": "tokenbalance",
                "contractaddress": contract,
                "address": address,
                "tag": "latest",
            }
        )
        return str(result)

    async def get_token_transfers(
        self,
        address: str,
        contract: str | None = None,
        page: int = 1,
        offset: int = 10,
        sort: str = "desc",
    ) -> list[dict[str, Any]]:
        params = {
            "module": "account",
            "action": "tokentx",
            "address": address,
            "page": str(page),
            "offset": str(offset),
            "sort": sort,
        }
        if contract:
            params["contractaddress"] = contract
        result = await self.call(params)
        return result if isinstance(result, list) else []

    async def get_transactions(
        self,
        address: str,
        page: int = 1,
        offset: int = 1,
        sort: str = "asc",
    ) -> list[dict[str, Any]]:
        result = await self.call(
            {
                "module": "account",
                "action": "txlist",
                "address": address,
                "startblock": "0",
                "endblock": "99999999",
                "page": str(page),
                "offset": str(offset),
                "sort": sort,
            }
        )
        return result if isinstance(result, list) else []

    async def get_block_number(self) -> int:
        """Current block height (proxy eth_blockNumber returns a hex string)."""
        result = await self.call({"module": "proxy", "action": "eth_blockNumber"})
        try:
            return int(str(result), 16)
        except ValueError as e:
            raise ProviderError(f"Unexpected block number from Etherscan: {result!r}") from e

    async def close(self) -> None:
        await self._client.aclose()

    # ──────────────────────────────────────────────────────────────
    # Private helpers
    # ──────────────────────────────────────────────────────────────

    async def _dispatch(self, params: dict[str, str]) -> dict[str, Any]:
        """Wait for the limiter, send the request, return the decoded body."""
        await self.rate_limiter.acquire()
        query = {"chainid": self._chain_id, "apikey": self._api_key, **params}
        try:
            resp = await self._client.get(self._base_url, params=query)
        except httpx.TimeoutException as e:
            raise NetworkTimeoutError(f"Etherscan timeout: {e}") from e
        except httpx.ConnectError as e:
            raise ConnectionFailedError(f"Cannot connect to Etherscan: {e}") from e
        except httpx.HTTPError as e:
            raise ConnectionFailedError(f"Etherscan request failed: {e!r}") from e

        if not resp.is_success:
            raise TransportError(
                f"Etherscan API error: HTTP {resp.status_code}", status=resp.status_code
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(f"Etherscan returned a non-JSON body: {e}") from e
        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected Etherscan response shape: {type(data).__name__}")
        return data


def _is_rate_limited(data: dict[str, Any]) -> bool:
    return data.get("status") == "0" and "rate limit" in str(data.get("result", "")).lower()


def _unwrap(data: dict[str, Any]) -> Any:
    """Return `result`, or raise ProviderError for an error payload."""
    if data.get("status") == "0":
        message = data.get("message", "")
        result = data.get("result")
        if message == NO_TRANSACTIONS_MESSAGE:
            return []  # Empty, not an error
        if "Invalid API Key" in str(result):
            raise InvalidAPIKeyError("Etherscan API key is invalid")
        raise ProviderError(
            str(result or message or "Etherscan API error"),
            details={"message": message},
        )
    return data.get("result")
