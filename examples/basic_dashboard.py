"""Basic dashboard example.

This script shows the wallet summary the dashboard renders: balances,
portfolio value, the past week's P/L and the latest deposits.
"""

import asyncio

from walletdash.config import load_config
from walletdash.models import TimePeriod
from walletdash.service import DashboardService


async def main():
    """Print a one-screen summary of the configured wallet."""
    config = load_config()

    async with DashboardService.from_config(config) as dashboard:
        info = await dashboard.get_wallet_info()
        portfolio = await dashboard.get_portfolio_value()
        token = await dashboard.get_token_balance()
        chart = await dashboard.get_price_history(TimePeriod.WEEK)
        deposits = await dashboard.get_recent_deposits()

    print(f"{info.name} ({info.address[:10]}...) · {info.joined_date}")
    print(f"Portfolio: ${portfolio.total_value:,.2f}")
    print(f"  ETH:  {portfolio.eth_balance} (${portfolio.eth_value:,.2f})")
    print(f"  USDC: {token.formatted}")

    pl = chart.profit_loss
    sign = "+" if pl.is_profit else "-"
    print(f"\n{pl.period_label}: {sign}${pl.amount:,.2f}")

    if deposits:
        print("\nRecent deposits:")
        for d in deposits:
            print(f"  • {d.amount} USDC from {d.from_addr[:10]}... [{d.status}]")


if __name__ == "__main__":
    asyncio.run(main())
