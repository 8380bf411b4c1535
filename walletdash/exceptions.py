"""
Custom exception hierarchy for walletdash.

Each exception maps to a CLI exit code and a JSON error_code field.
cli.py catches all WalletdashError subclasses and formats them as JSON output.

Exit code mapping:
  1 — WalletdashError (generic error)
  2 — APIError (transport failure, rate limit, provider error payload)
  3 — NetworkError (timeout, connection refused)
  4 — ValidationError (bad address, bad amount, insufficient balance)
  5 — ConfigError (missing/malformed config)
  6 — TransferError (signing backend failed to submit)
"""


class WalletdashError(Exception):
    """Base exception for all walletdash errors."""

    exit_code: int = 1
    error_code: str = "unknown_error"

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class APIError(WalletdashError):
    """Upstream API call failed."""

    exit_code = 2
    error_code = "api_error"


class TransportError(APIError):
    """Upstream API answered with a non-2xx HTTP status."""

    error_code = "transport_error"

    def __init__(self, message: str, status: int) -> None:
        super().__init__(message, details={"status": status})
        self.status = status


class RateLimitExceeded(APIError):
    """Provider kept rejecting the request as rate limited after all retries."""

    error_code = "rate_limited"

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message, details={"attempts": attempts})
        self.attempts = attempts


class ProviderError(APIError):
    """Provider returned an application-level error payload."""

    error_code = "provider_error"


class InvalidAPIKeyError(ProviderError):
    """API key is invalid or missing."""

    error_code = "invalid_api_key"


class NetworkError(WalletdashError):
    """Network connectivity issue — timeout or connection failure."""

    exit_code = 3
    error_code = "network_error"


class NetworkTimeoutError(NetworkError):
    """Request timed out."""

    error_code = "network_timeout"


class ConnectionFailedError(NetworkError):
    """Could not connect to API endpoint."""

    error_code = "connection_failed"


class ValidationError(WalletdashError):
    """Input rejected before any network call was made."""

    exit_code = 4
    error_code = "validation_error"


class InvalidAddressError(ValidationError):
    """Address is not a 0x-prefixed 40-hex-char Ethereum address."""

    error_code = "invalid_address"


class InvalidAmountError(ValidationError):
    """Amount is not a positive decimal representable in token units."""

    error_code = "invalid_amount"


class InsufficientBalanceError(ValidationError):
    """Sender's token balance does not cover the requested amount."""

    error_code = "insufficient_balance"


class NoTransactionsError(WalletdashError):
    """Address has no transaction history yet."""

    error_code = "no_transactions"


class ConfigError(WalletdashError):
    """Config file is missing or malformed."""

    exit_code = 5
    error_code = "config_error"


class ConfigMissingError(ConfigError):
    """A required config value (e.g. wallet address) is not set."""

    error_code = "config_missing"


class ConfigInvalidError(ConfigError):
    """Config file exists but contains invalid TOML or invalid values."""

    error_code = "config_invalid"


class TransferError(WalletdashError):
    """Signing backend failed while submitting a token transfer."""

    exit_code = 6
    error_code = "transfer_failed"
