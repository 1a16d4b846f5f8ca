from __future__ import annotations

import sys
from datetime import datetime
from typing import Optional, Sequence, TextIO

from colorama import Fore, Style

from probmm.types import InstrumentSnapshot

CLEAR_SCREEN = "\x1b[2J\x1b[0;0H"
RULE = "-" * 90


def format_profit(value: float) -> str:
    text = f"{'+' if value >= 0 else ''}{value:.2f} USDT"
    if value > 0:
        return f"{Fore.GREEN}{text}{Style.RESET_ALL}"
    if value < 0:
        return f"{Fore.RED}{text}{Style.RESET_ALL}"
    return f"{Style.RESET_ALL}{text}{Style.RESET_ALL}"


def _price(value: float) -> str:
    return f"{value:.4f}" if value else "-"


def format_row(row: InstrumentSnapshot) -> str:
    return (
        row.display_name.ljust(12)
        + row.phase.value.ljust(10)
        + _price(row.best_bid).ljust(10)
        + _price(row.best_ask).ljust(10)
        + f"{row.inventory:.4f}".ljust(10)
        + (row.active_order_id or "-").ljust(14)
        + (row.note or "-")
    )


def render_dashboard(
    snapshots: Sequence[InstrumentSnapshot],
    total_profit: float,
    pass_count: int,
    now: Optional[datetime] = None,
) -> str:
    now = now or datetime.now()
    header = (
        f"Prob Market Maker Bot | Total Tokens: {len(snapshots)} | {now.strftime('%H:%M:%S')} | "
        f"Pass: {pass_count} | Profit: {format_profit(total_profit)}"
    )
    columns = (
        "Symbol".ljust(12)
        + "State".ljust(10)
        + "Bid".ljust(10)
        + "Ask".ljust(10)
        + "Inv".ljust(10)
        + "Order".ljust(14)
        + "Note"
    )
    lines = [header, RULE, columns, RULE]
    lines.extend(format_row(row) for row in snapshots)
    lines.extend([RULE, "Ctrl+C to quit."])
    return "\n".join(lines)


def print_dashboard(
    snapshots: Sequence[InstrumentSnapshot],
    total_profit: float,
    pass_count: int,
    stream: Optional[TextIO] = None,
) -> None:
    stream = stream or sys.stdout
    stream.write(CLEAR_SCREEN)
    stream.write(render_dashboard(snapshots, total_profit, pass_count) + "\n")
    stream.flush()
