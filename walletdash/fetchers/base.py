"""Client protocols and shared address validation."""

from __future__ import annotations

import re
from typing import Any, Protocol, runtime_checkable

# ETH address regex (0x + 40 hex chars)
ETH_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_valid_address(address: str) -> bool:
    """Validate ETH address format. No API call required."""
    return bool(ETH_ADDRESS_RE.match(address or ""))


@runtime_checkable
class ExplorerClient(Protocol):
    """
    Protocol for the throttled blockchain explorer client.

    Implementations are responsible for:
    - Spacing outbound requests and retrying provider rate-limit rejections
    - Translating transport and provider failures into walletdash exceptions
    - Returning the raw `result` payload (strings / lists of dicts)

    They are NOT responsible for caching or normalization (that's service.py).
    """

    async def get_balance(self, address: str) -> str:
        """Native balance in wei, as a decimal string."""
        ...

    async def get_token_balance(self, contract: str, address: str) -> str:
        """Token balance in base units, as a decimal string."""
        ...

    async def get_token_transfers(
        self,
        address: str,
        contract: str | None = None,
        page: int = 1,
        offset: int = 10,
        sort: str = "desc",
    ) -> list[dict[str, Any]]:
        ...

    async def get_transactions(
        self,
        address: str,
        page: int = 1,
        offset: int = 1,
        sort: str = "asc",
    ) -> list[dict[str, Any]]:
        ...

    async def get_block_number(self) -> int:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class PriceSource(Protocol):
    """Protocol for the (unthrottled) market price client."""

    async def get_market_chart(
        self, coin_id: str = "ethereum", days: int = 1
    ) -> list[tuple[int, float]]:
        """Time-ordered (unix_ms, price) pairs covering the last `days` days."""
        ...

    async def get_spot_price(self, coin_id: str = "ethereum") -> float:
        ...

    async def close(self) -> None:
        ...
