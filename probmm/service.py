from __future__ import annotations

import asyncio
import logging
import math
from typing import Callable, List, Optional, Sequence

from probmm.config import BotConfig
from probmm.dashboard import print_dashboard
from probmm.logger import Journal, log_event
from probmm.types import InstrumentConfig, InstrumentSnapshot
from probmm.venue import PaperVenueClient, ProbVenueClient, VenueClient
from probmm.worker import InstrumentWorker

logger = logging.getLogger(__name__)

Renderer = Callable[[Sequence[InstrumentSnapshot], float, int], None]


class MarketMakerService:
    """Round-robin driver for one worker per configured instrument.

    Ticks run strictly one after another. A failing tick is handed to that
    worker's ``handle_error`` and the pass carries on with the next worker.
    """

    def __init__(
        self,
        config: BotConfig,
        client: VenueClient,
        render: Optional[Renderer] = None,
        journal: Optional[Journal] = None,
    ) -> None:
        self.config = config
        self.client = client
        self.render = render
        self.journal = journal
        self.total_profit = 0.0
        self.pass_count = 0
        self.workers: List[InstrumentWorker] = [
            InstrumentWorker(instrument, client, self._profit_callback(instrument))
            for instrument in config.instruments()
        ]
        self._running = True

    def _profit_callback(self, instrument: InstrumentConfig) -> Callable[[float], None]:
        def _on_profit(amount: float) -> None:
            self.add_profit(amount)
            if self.journal and math.isfinite(amount):
                self.journal.record(
                    {
                        "event": "profit_realized",
                        "instrument_id": instrument.instrument_id,
                        "amount": amount,
                        "total_profit": self.total_profit,
                    }
                )

        return _on_profit

    def add_profit(self, amount: float) -> None:
        if not math.isfinite(amount):
            return
        self.total_profit += amount

    def snapshots(self) -> List[InstrumentSnapshot]:
        return [worker.snapshot() for worker in self.workers]

    async def run_pass(self) -> None:
        for worker in self.workers:
            try:
                await worker.tick()
            except Exception as exc:  # noqa: BLE001 - one instrument must not halt the others
                worker.handle_error(exc)
            await asyncio.sleep(self.config.quoting.tick_delay_seconds)
        self.pass_count += 1
        if self.render:
            self.render(self.snapshots(), self.total_profit, self.pass_count)

    async def run(self) -> None:
        log_event(
            logger,
            "BOT_START",
            instruments=[worker.config.instrument_id for worker in self.workers],
            dry_run=self.config.dry_run,
        )
        try:
            while self._running:
                await self.run_pass()
                await asyncio.sleep(self.config.quoting.poll_interval_seconds)
        except asyncio.CancelledError:
            logger.info("Bot cancelled, shutting down")
            raise
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        await self.client.close()
        log_event(logger, "BOT_STOP", passes=self.pass_count, total_profit=self.total_profit)

    def stop(self) -> None:
        self._running = False


def build_client(config: BotConfig) -> VenueClient:
    client: VenueClient = ProbVenueClient(config.venue)
    if config.dry_run:
        client = PaperVenueClient(client)
    return client


async def run_bot(config: BotConfig) -> None:
    journal = Journal(config.journal_dir) if config.journal_dir else None
    render = print_dashboard if config.dashboard else None
    service = MarketMakerService(config, build_client(config), render=render, journal=journal)
    await service.run()
