"""Token transfer write path.

Signing and submission are delegated to a TokenSigner supplied by the host
(a wallet / transaction library wrapper). This module owns what happens
around it: input validation, the balance check, turning failures into a
structured TransferResult, and invalidating the sender's cached views once
the transfer is mined.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Protocol, runtime_checkable

from walletdash.cache import TTLCache
from walletdash.exceptions import (
    InsufficientBalanceError,
    InvalidAddressError,
    InvalidAmountError,
    TransferError,
    WalletdashError,
)
from walletdash.fetchers.base import is_valid_address
from walletdash.models import TransferResult

logger = logging.getLogger(__name__)


@runtime_checkable
class TokenSigner(Protocol):
    """Wallet backend able to read a token balance and sign a transfer."""

    address: str

    async def balance_of(self, contract: str, account: str) -> int:
        """Token balance of `account` in base units."""
        ...

    async def transfer(self, contract: str, to_address: str, amount: int) -> str:
        """Submit transfer(to, amount), wait for the receipt, return the tx hash."""
        ...


def parse_token_amount(amount: str, decimals: int) -> int:
    """
    Convert a human amount ("12.5") into token base units.

    Raises:
        InvalidAmountError: not a number, not positive, or more fractional
            digits than the token supports.
    """
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as e:
        raise InvalidAmountError(f"Invalid amount: {amount!r}") from e
    if not value.is_finite() or value <= 0:
        raise InvalidAmountError(f"Invalid amount: {amount!r}")

    units = value.scaleb(decimals)
    if units != units.to_integral_value():
        raise InvalidAmountError(
            f"Amount {amount!r} has more than {decimals} decimal places",
            details={"decimals": decimals},
        )
    return int(units)


class TransferService:
    """
    Sends the configured token from the signer's address.

    Usage:
        service = TransferService(signer, cache, token_contract)
        result = await service.send_token("0xabc...", "25.00")
        if not result.success:
            show(result.error)
    """

    def __init__(
        self,
        signer: TokenSigner,
        cache: TTLCache,
        token_contract: str,
        token_decimals: int = 6,
        token_symbol: str = "USDC",
    ) -> None:
        self._signer = signer
        self._cache = cache
        self._contract = token_contract
        self._decimals = token_decimals
        self._symbol = token_symbol

    @property
    def sender(self) -> str:
        return self._signer.address

    def validate(self, to_address: str, amount: str) -> int:
        """Check recipient and amount without touching the network."""
        if not is_valid_address(to_address):
            raise InvalidAddressError(
                "Invalid recipient address", details={"address": to_address}
            )
        return parse_token_amount(amount, self._decimals)

    async def send_token(self, to_address: str, amount: str) -> TransferResult:
        """
        Validate, check balance, submit, then invalidate the sender's cache.

        Never raises; any failure comes back as TransferResult(success=False).
        """
        try:
            units = self.validate(to_address, amount)
            await self._check_balance(units)
            tx_hash = await self._submit(to_address, units)
        except WalletdashError as e:
            logger.warning("token transfer rejected: %s", e.message)
            return TransferResult(success=False, error=e.message)

        removed = self._cache.invalidate(self.sender)
        logger.info(
            "sent %s %s to %s in %s; dropped %d cached entries",
            amount, self._symbol, to_address, tx_hash, removed,
        )
        return TransferResult(success=True, hash=tx_hash)

    # ──────────────────────────────────────────────────────────────
    # Private helpers
    # ──────────────────────────────────────────────────────────────

    async def _check_balance(self, units: int) -> None:
        try:
            balance = await self._signer.balance_of(self._contract, self.sender)
        except Exception as e:
            raise TransferError(f"Could not read {self._symbol} balance: {e}") from e
        if balance < units:
            raise InsufficientBalanceError(
                f"Insufficient {self._symbol} balance",
                details={"balance": balance, "requested": units},
            )

    async def _submit(self, to_address: str, units: int) -> str:
        try:
            return await self._signer.transfer(self._contract, to_address, units)
        except Exception as e:
            raise TransferError(str(e) or "Transaction failed") from e
