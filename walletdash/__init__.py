"""walletdash — data-access layer for a single-wallet crypto dashboard."""

__version__ = "0.1.0"
