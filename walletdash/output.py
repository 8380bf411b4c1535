"""Output format routing for walletdash.

Converts result dicts to the requested format: json or table.

Design rules:
- JSON: 2-space indent, deterministic key order, utf-8
- Table: Rich-formatted, green=profit, red=loss

All functions return strings. The caller writes to stdout.
"""

from __future__ import annotations

import io
import json
from decimal import Decimal
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

VALID_FORMATS = {"json", "table"}


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal values."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


def format_output(data: Any, fmt: str) -> str:
    """
    Format data for stdout output.

    Args:
        data: Result dict, list, or any JSON-serialisable value.
        fmt: "json" | "table"

    Returns:
        Formatted string ready to write to stdout.

    Raises:
        ValueError: If fmt is not a recognised format.
    """
    fmt = fmt.lower()
    if fmt not in VALID_FORMATS:
        raise ValueError(f"Unknown format {fmt!r}. Valid: {sorted(VALID_FORMATS)}")

    if fmt == "table":
        return format_table(data)
    return format_json(data)


# ── JSON ─────────────────────────────────────────────────────────────────────


def format_json(data: Any) -> str:
    """Pretty-print data as JSON (2-space indent)."""
    return json.dumps(data, indent=2, cls=DecimalEncoder, ensure_ascii=False)


# ── Table ────────────────────────────────────────────────────────────────────


def format_table(data: Any) -> str:
    """
    Format as a Rich terminal table.

    Handles:
    - Chart data (dict with 'points' and 'profit_loss')
    - Deposit list (dict with 'deposits')
    - Generic flat dict (key/value table)
    """
    buf = io.StringIO()
    console = Console(file=buf, highlight=False, markup=True, width=120)

    if isinstance(data, dict) and "points" in data and "profit_loss" in data:
        _render_chart_table(console, data)
    elif isinstance(data, dict) and "deposits" in data:
        _render_deposits_table(console, data)
    elif isinstance(data, dict) and all(not isinstance(v, (dict, list)) for v in data.values()):
        _render_kv_table(console, data)
    else:
        console.print_json(json.dumps(data, cls=DecimalEncoder))

    return buf.getvalue()


def _short(address: str) -> str:
    return f"{address[:6]}…{address[-4:]}" if len(address) > 12 else address


def _render_kv_table(console: Console, data: dict[str, Any]) -> None:
    table = Table(show_header=True, header_style="bold blue")
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in data.items():
        table.add_row(str(key), str(value))
    console.print(table)


def _render_chart_table(console: Console, data: dict[str, Any]) -> None:
    pl = data["profit_loss"]
    points = data.get("points", [])
    table = Table(
        title=f"ETH price — {pl.get('period_label', '')}",
        show_header=True,
        header_style="bold blue",
    )
    table.add_column("Date")
    table.add_column("Price USD", justify="right")
    for p in points:
        table.add_row(p.get("display_date", ""), f"${p.get('value', 0.0):,.2f}")
    console.print(table)

    sign = "+" if pl.get("is_profit") else "-"
    style = "green" if pl.get("is_profit") else "red"
    console.print(Text(f"P/L: {sign}${pl.get('amount', 0.0):,.2f}", style=style))


def _render_deposits_table(console: Console, data: dict[str, Any]) -> None:
    table = Table(title="Recent Deposits", show_header=True, header_style="bold blue")
    table.add_column("Hash", style="cyan", no_wrap=True)
    table.add_column("From")
    table.add_column("Amount", justify="right")
    table.add_column("Confirmations", justify="right")
    table.add_column("Status", justify="center")

    for d in data.get("deposits", []):
        status = d.get("status", "pending")
        table.add_row(
            _short(d.get("hash", "")),
            _short(d.get("from_addr", "")),
            str(d.get("amount", "")),
            str(d.get("confirmations", 0)),
            Text(status, style="green" if status == "confirmed" else "yellow"),
        )

    console.print(table)
    console.print(f"Total: [bold]{len(data.get('deposits', []))}[/bold] deposits")


# ── Utility ──────────────────────────────────────────────────────────────────


def mask_api_key(key: str) -> str:
    """
    Mask an API key for safe display.

    'abcdefg123' → 'abcd****'
    '' → '****'
    """
    if not key:
        return "****"
    if len(key) <= 4:
        return "****"
    return key[:4] + "****"
