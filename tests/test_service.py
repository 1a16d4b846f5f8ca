import asyncio
import json
import math

import pytest

from probmm.config import BotConfig
from probmm.logger import Journal
from probmm.service import MarketMakerService, build_client
from probmm.types import Phase
from probmm.venue import PaperVenueClient, ProbVenueClient


def make_config(ids=("tok-a", "tok-b"), symbols=("A",)):
    config = BotConfig(journal_dir=None, dashboard=False)
    config.quoting.instrument_ids = list(ids)
    config.quoting.symbols = list(symbols)
    config.quoting.order_size = 5.0
    config.quoting.tick_delay_seconds = 0
    config.quoting.poll_interval_seconds = 0
    return config


def test_workers_follow_configured_order_and_symbols(venue):
    service = MarketMakerService(make_config(ids=("t1", "t2", "t3"), symbols=("ONE", "TWO")), venue)
    assert [w.config.instrument_id for w in service.workers] == ["t1", "t2", "t3"]
    assert [w.config.symbol for w in service.workers] == ["ONE", "TWO", None]
    assert all(w.config.order_size == 5.0 for w in service.workers)


def test_add_profit_discards_non_finite(venue):
    service = MarketMakerService(make_config(), venue)
    service.add_profit(math.nan)
    assert service.total_profit == 0
    service.add_profit(2.5)
    service.add_profit(-1)
    service.add_profit(math.inf)
    assert service.total_profit == pytest.approx(1.5)


def test_failing_worker_does_not_stop_the_pass(venue):
    service = MarketMakerService(make_config(), venue)
    venue.book_errors["tok-a"] = RuntimeError("book unavailable")
    venue.set_book("tok-b", ["0.40"], ["0.45"])
    asyncio.run(service.run_pass())

    first, second = service.workers
    assert first.state.note == "book unavailable"
    assert first.state.phase is Phase.IDLE
    assert second.state.phase is Phase.BUYING
    assert [order.instrument_id for order in venue.posted] == ["tok-b"]
    assert service.pass_count == 1


def test_render_receives_snapshots_and_profit(venue):
    rendered = []
    service = MarketMakerService(
        make_config(ids=("tok-a",), symbols=()),
        venue,
        render=lambda snaps, profit, count: rendered.append((snaps, profit, count)),
    )
    venue.set_book("tok-a", ["0.40"], ["0.45"])
    asyncio.run(service.run_pass())
    asyncio.run(service.run_pass())
    assert [count for _, _, count in rendered] == [1, 2]
    snaps, profit, _ = rendered[-1]
    assert profit == 0
    assert snaps[0].phase is Phase.BUYING
    assert snaps[0].active_order_id == "order-1"


def test_full_cycle_aggregates_profit_and_journals(venue, tmp_path):
    journal = Journal(tmp_path)
    service = MarketMakerService(make_config(ids=("tok-a",), symbols=()), venue, journal=journal)
    venue.set_book("tok-a", ["0.40"], ["0.45"])
    asyncio.run(service.run_pass())
    venue.fill("order-1", 5.0, status="FILLED")
    asyncio.run(service.run_pass())
    venue.fill("order-2", 5.0, status="FILLED")
    asyncio.run(service.run_pass())

    assert service.total_profit == pytest.approx(0.25)
    lines = (tmp_path / "trades.jsonl").read_text().splitlines()
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry["event"] == "profit_realized"
    assert entry["instrument_id"] == "tok-a"
    assert entry["amount"] == pytest.approx(0.25)
    assert (tmp_path / "trades.csv").read_text().startswith("timestamp,event,instrument_id")


def test_run_loops_until_stopped_and_closes_client(venue):
    service = MarketMakerService(make_config(ids=("tok-a",), symbols=()), venue)
    venue.set_book("tok-a", ["0.40"], ["0.45"])

    def render(snaps, profit, count):
        if count == 3:
            service.stop()

    service.render = render
    asyncio.run(service.run())
    assert service.pass_count == 3
    assert venue.closed


def test_build_client_wraps_paper_in_dry_run():
    config = make_config()
    assert isinstance(build_client(config), ProbVenueClient)
    config.dry_run = True
    client = build_client(config)
    assert isinstance(client, PaperVenueClient)
    assert isinstance(client.book_source, ProbVenueClient)
