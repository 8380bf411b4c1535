"""Click CLI entry point for walletdash.

All commands are thin orchestration wrappers — business logic lives in
service, metrics, fetchers, cache and config modules. Each command builds a
fresh DashboardService, so the cache only spans a single invocation.

Exit codes:
  0 — success (including fallback values shown for failed upstream calls)
  1 — generic error
  2 — API error
  3 — network error
  4 — validation error
  5 — config error (e.g. no wallet address configured)
"""

from __future__ import annotations

import asyncio
import json
import shutil
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable

import click

from walletdash import __version__
from walletdash.config import (
    WalletdashConfig,
    get_default_config_path,
    load_config,
    save_config,
)
from walletdash.exceptions import WalletdashError
from walletdash.logging_config import configure_logging
from walletdash.models import TimePeriod
from walletdash.output import format_output, mask_api_key
from walletdash.service import DashboardService

PERIODS = [p.value for p in TimePeriod]


# ── Error handler ─────────────────────────────────────────────────────────────


def _output_error(err: WalletdashError | Exception) -> None:
    """Write error JSON to stderr."""
    if isinstance(err, WalletdashError):
        payload = err.to_dict()
        exit_code = err.exit_code
    else:
        payload = {"error": "unknown_error", "message": str(err), "details": {}}
        exit_code = 1
    sys.stderr.write(json.dumps(payload) + "\n")
    sys.stderr.flush()
    sys.exit(exit_code)


def _run_dashboard(
    ctx: click.Context, call: Callable[[DashboardService], Awaitable[Any]]
) -> Any:
    """Run `call` against a DashboardService built from the context config."""
    config: WalletdashConfig = ctx.obj["config"]

    async def _run() -> Any:
        async with DashboardService.from_config(config) as dashboard:
            return await call(dashboard)

    try:
        return asyncio.run(_run())
    except WalletdashError as e:
        _output_error(e)


# ── Root group ────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    envvar="WALLETDASH_CONFIG",
    default=None,
    help="Config file path (default: ~/.walletdash/config.toml)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "table"]),
    default=None,
    help="Output format (overrides config default)",
)
@click.option("--address", default=None, help="Wallet address (overrides config)")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: str | None,
    output_format: str | None,
    address: str | None,
) -> None:
    """walletdash — balances, P/L chart and deposits for one wallet."""
    ctx.ensure_object(dict)
    try:
        config = load_config(config_path)
    except WalletdashError as e:
        # Keep `config init` usable with a broken file; other commands report it.
        if ctx.invoked_subcommand != "config":
            _output_error(e)
        config = WalletdashConfig()

    if address:
        config.wallet.address = address
    configure_logging(config.logging.level)

    ctx.obj["config"] = config
    ctx.obj["format"] = output_format or config.output.default_format
    ctx.obj["config_path"] = config_path


# ── Read commands ─────────────────────────────────────────────────────────────


@cli.command("balance")
@click.pass_context
def balance_command(ctx: click.Context) -> None:
    """Show ETH and token balances."""

    async def call(dashboard: DashboardService) -> dict[str, Any]:
        eth, token = await asyncio.gather(
            dashboard.get_eth_balance(), dashboard.get_token_balance()
        )
        return {"eth": eth.to_dict(), "token": token.to_dict()}

    result = _run_dashboard(ctx, call)
    click.echo(format_output(result, ctx.obj["format"]))


@cli.command("portfolio")
@click.pass_context
def portfolio_command(ctx: click.Context) -> None:
    """Show total portfolio value in USD."""

    async def call(dashboard: DashboardService) -> dict[str, Any]:
        return (await dashboard.get_portfolio_value()).to_dict()

    result = _run_dashboard(ctx, call)
    click.echo(format_output(result, ctx.obj["format"]))


@cli.command("chart")
@click.option(
    "--period", type=click.Choice(PERIODS), default=TimePeriod.SIX_HOURS.value, show_default=True
)
@click.option("--holding", type=float, default=None, help="ETH amount for P/L (default: balance)")
@click.pass_context
def chart_command(ctx: click.Context, period: str, holding: float | None) -> None:
    """Show ETH price history and profit/loss for a period."""

    async def call(dashboard: DashboardService) -> dict[str, Any]:
        chart = await dashboard.get_price_history(TimePeriod(period), holding=holding)
        return chart.to_dict()

    result = _run_dashboard(ctx, call)
    click.echo(format_output(result, ctx.obj["format"]))


@cli.command("deposits")
@click.pass_context
def deposits_command(ctx: click.Context) -> None:
    """Show the most recent incoming token transfers."""

    async def call(dashboard: DashboardService) -> dict[str, Any]:
        deposits = await dashboard.get_recent_deposits()
        return {"count": len(deposits), "deposits": [d.to_dict() for d in deposits]}

    result = _run_dashboard(ctx, call)
    click.echo(format_output(result, ctx.obj["format"]))


@cli.command("info")
@click.pass_context
def info_command(ctx: click.Context) -> None:
    """Show wallet name, address and join date."""

    async def call(dashboard: DashboardService) -> dict[str, Any]:
        return (await dashboard.get_wallet_info()).to_dict()

    result = _run_dashboard(ctx, call)
    click.echo(format_output(result, ctx.obj["format"]))


@cli.command("refresh")
@click.pass_context
def refresh_command(ctx: click.Context) -> None:
    """Drop cached data for the wallet and re-fetch balance and portfolio."""

    async def call(dashboard: DashboardService) -> dict[str, Any]:
        token, portfolio = await dashboard.fetch_wallet_balances()
        return {"token": token.to_dict(), "portfolio": portfolio.to_dict()}

    result = _run_dashboard(ctx, call)
    click.echo(format_output(result, ctx.obj["format"]))


# ── Config commands ───────────────────────────────────────────────────────────


@cli.group("config")
def config_group() -> None:
    """Manage walletdash configuration."""


@config_group.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing config")
@click.pass_context
def config_init(ctx: click.Context, force: bool) -> None:
    """Write a default config file."""
    config_path_str = ctx.obj.get("config_path")
    config_path = (
        get_default_config_path() if not config_path_str else Path(config_path_str).expanduser()
    )

    if config_path.exists() and not force:
        click.echo(json.dumps({"status": "already_exists", "config_path": str(config_path)}))
        return

    status = "initialized"
    backup = None
    if config_path.exists() and force:
        backup = str(config_path) + ".bak"
        shutil.copy2(config_path, backup)
        status = "reinitialized"

    save_config(WalletdashConfig(), str(config_path))

    result: dict[str, Any] = {"status": status, "config_path": str(config_path)}
    if backup:
        result["backup"] = backup
    click.echo(json.dumps(result))


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set a config value by dotted key path (e.g. wallet.address)."""
    config_path = ctx.obj.get("config_path")
    config: WalletdashConfig = ctx.obj["config"]

    parts = key.split(".", 1)
    if len(parts) != 2:
        _cli_error("cli_error", f"Key must be in form section.key, got: {key!r}", 1)

    section_name, field_name = parts
    section = getattr(config, section_name, None)
    if section is None:
        _cli_error("config_invalid", f"Unknown config section: {section_name!r}", 5)
    if not hasattr(section, field_name):
        _cli_error("config_invalid", f"Unknown config key: {key!r}", 5)

    # Type-coerce
    current = getattr(section, field_name)
    try:
        if isinstance(current, bool):
            typed_value: Any = value.lower() in ("1", "true", "yes")
        elif isinstance(current, int):
            typed_value = int(value)
        elif isinstance(current, float):
            typed_value = float(value)
        else:
            typed_value = value
        setattr(section, field_name, typed_value)
    except (ValueError, TypeError) as e:
        _cli_error("config_invalid", str(e), 5)

    save_config(config, config_path)

    # Mask API keys in response
    display_value = (
        mask_api_key(str(typed_value)) if "api_key" in field_name.lower() else typed_value
    )
    click.echo(json.dumps({"status": "updated", "key": key, "value": display_value}))


@config_group.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration (API keys masked)."""
    config: WalletdashConfig = ctx.obj["config"]
    config_path = ctx.obj.get("config_path") or get_default_config_path()

    result = {
        "config_path": str(config_path),
        "api": {
            "etherscan_api_key": mask_api_key(config.api.etherscan_api_key),
            "etherscan_url": config.api.etherscan_url,
            "coingecko_url": config.api.coingecko_url,
            "chain_id": config.api.chain_id,
        },
        "wallet": {
            "address": config.wallet.address,
            "name": config.wallet.name,
            "token_contract": config.wallet.token_contract,
            "token_symbol": config.wallet.token_symbol,
        },
        "cache": {"ttl_seconds": config.cache.ttl_seconds},
        "rate_limit": {
            "min_interval_ms": config.rate_limit.min_interval_ms,
            "max_retries": config.rate_limit.max_retries,
            "backoff_ms": config.rate_limit.backoff_ms,
        },
        "logging": {"level": config.logging.level},
    }

    click.echo(format_output(result, "json"))


# ── Helpers ───────────────────────────────────────────────────────────────────


def _cli_error(error: str, message: str, exit_code: int) -> None:
    sys.stderr.write(json.dumps({"error": error, "message": message}) + "\n")
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
