import io
from datetime import datetime

from colorama import Fore, Style

from probmm.dashboard import CLEAR_SCREEN, format_profit, print_dashboard, render_dashboard
from probmm.types import InstrumentSnapshot, Phase


def snapshot(**overrides):
    values = dict(
        instrument_id="0x1234567890abcdef",
        symbol=None,
        phase=Phase.BUYING,
        best_bid=0.5,
        best_ask=0.55,
        inventory=4,
        active_order_id="ord-9",
        note="",
    )
    values.update(overrides)
    return InstrumentSnapshot(**values)


def test_format_profit_signs_and_colors():
    assert format_profit(1.5) == f"{Fore.GREEN}+1.50 USDT{Style.RESET_ALL}"
    assert format_profit(-0.25) == f"{Fore.RED}-0.25 USDT{Style.RESET_ALL}"
    assert "+0.00 USDT" in format_profit(0.0)


def test_render_dashboard_layout():
    text = render_dashboard(
        [snapshot(), snapshot(symbol="NO-B", phase=Phase.IDLE, best_bid=0, best_ask=0, inventory=0, active_order_id=None, note="awaiting settlement")],
        total_profit=1.5,
        pass_count=7,
        now=datetime(2026, 1, 2, 3, 4, 5),
    )
    lines = text.splitlines()
    assert lines[0].startswith("Prob Market Maker Bot | Total Tokens: 2 | 03:04:05 | Pass: 7 | Profit: ")
    assert lines[1] == "-" * 90
    assert lines[2].split() == ["Symbol", "State", "Bid", "Ask", "Inv", "Order", "Note"]
    assert lines[4] == "90abcdef".ljust(12) + "BUYING".ljust(10) + "0.5000".ljust(10) + "0.5500".ljust(10) + "4.0000".ljust(10) + "ord-9".ljust(14) + "-"
    assert lines[5].split() == ["NO-B", "IDLE", "-", "-", "0.0000", "-", "awaiting", "settlement"]
    assert lines[-1] == "Ctrl+C to quit."


def test_print_dashboard_clears_screen():
    stream = io.StringIO()
    print_dashboard([snapshot()], 0.0, 1, stream=stream)
    output = stream.getvalue()
    assert output.startswith(CLEAR_SCREEN)
    assert "Ctrl+C to quit." in output
