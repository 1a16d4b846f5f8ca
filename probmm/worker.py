from __future__ import annotations

import logging
from typing import Callable, Optional

from probmm.logger import log_event
from probmm.orderbook import best_ask, best_bid
from probmm.types import (
    InstrumentConfig,
    InstrumentRuntimeState,
    InstrumentSnapshot,
    OrderSide,
    Phase,
    TimeInForce,
)
from probmm.venue import VenueClient, error_message

logger = logging.getLogger(__name__)

SETTLEMENT_PENDING_MARKERS = ("insufficient ctf token balance", "insufficient balance")
SETTLEMENT_PENDING_NOTE = "awaiting settlement"


class InstrumentWorker:
    """Quotes one instrument: rest a buy, then sell what it filled.

    A failed venue call leaves phase and active order untouched, so the next
    tick re-runs the same decision against fresh venue state. There is no
    other retry mechanism.
    """

    def __init__(
        self,
        config: InstrumentConfig,
        client: VenueClient,
        on_profit: Callable[[float], None],
    ) -> None:
        self.config = config
        self.client = client
        self.on_profit = on_profit
        self.state = InstrumentRuntimeState()

    async def tick(self) -> None:
        self.state.note = ""
        book = await self.client.get_order_book(self.config.instrument_id)
        bid = best_bid(book)
        ask = best_ask(book)
        self.state.best_bid = bid
        self.state.best_ask = ask

        if not bid or not ask:
            return

        if self.state.phase is Phase.IDLE:
            await self.place_buy(bid, self.config.order_size)
        elif self.state.phase is Phase.BUYING:
            await self.monitor_order(bid, ask, OrderSide.BUY)
        elif self.state.phase is Phase.SELLING:
            await self.monitor_order(bid, ask, OrderSide.SELL)

    async def place_buy(self, price: float, size: float) -> None:
        order_id = await self._submit(OrderSide.BUY, price, size)
        self.state.active_order_id = order_id
        self.state.phase = Phase.BUYING

    async def switch_to_selling(self, price: float, size: Optional[float] = None) -> None:
        sell_size = size if size is not None else self.state.inventory
        if sell_size <= 0:
            self.state.phase = Phase.IDLE
            return

        order_id = await self._submit(OrderSide.SELL, price, sell_size)
        self.state.active_order_id = order_id
        self.state.phase = Phase.SELLING

    async def monitor_order(self, bid: float, ask: float, side: OrderSide) -> None:
        order_id = self.state.active_order_id
        if not order_id:
            return

        order = await self.client.get_order(order_id, self.config.instrument_id)
        target_price = bid if side is OrderSide.BUY else ask
        executed_qty = order.executed_qty
        remaining_qty = order.remaining_qty

        self.state.inventory = executed_qty

        if order.is_filled:
            log_event(
                logger,
                "ORDER_FILLED",
                instrument=self.config.instrument_id,
                order_id=order_id,
                side=side.value,
                price=order.price,
                qty=executed_qty,
            )
            if side is OrderSide.BUY:
                self.state.acquisition_price = order.price
                await self.switch_to_selling(ask)
            else:
                self._close_cycle(order.price, executed_qty)
            return

        if order.price != target_price:
            await self.client.cancel_order(order_id, self.config.instrument_id)
            self.state.active_order_id = None
            log_event(
                logger,
                "ORDER_CANCELED",
                instrument=self.config.instrument_id,
                order_id=order_id,
                side=side.value,
                resting_price=order.price,
                target_price=target_price,
                executed=executed_qty,
            )

            if side is OrderSide.BUY:
                if executed_qty > 0:
                    if self.state.acquisition_price is None:
                        self.state.acquisition_price = order.price
                    await self.switch_to_selling(ask)
                else:
                    await self.place_buy(bid, self.config.order_size)
            else:
                # The filled part of the sell is re-entered as a fresh buy.
                if executed_qty > 0:
                    await self.place_buy(bid, executed_qty)
                else:
                    await self.switch_to_selling(ask, remaining_qty)

    def _close_cycle(self, fill_price: float, executed_qty: float) -> None:
        acquisition_price = self.state.acquisition_price
        if acquisition_price is not None:
            profit = (fill_price - acquisition_price) * executed_qty
            log_event(
                logger,
                "CYCLE_CLOSED",
                instrument=self.config.instrument_id,
                buy_price=acquisition_price,
                sell_price=fill_price,
                qty=executed_qty,
                profit=profit,
            )
            self.on_profit(profit)
        self.state.inventory = 0.0
        self.state.acquisition_price = None
        self.state.active_order_id = None
        self.state.phase = Phase.IDLE

    async def _submit(self, side: OrderSide, price: float, size: float) -> str:
        order = await self.client.create_limit_order(
            self.config.instrument_id, price, size, side, TimeInForce.GTC
        )
        posted = await self.client.post_order(order)
        log_event(
            logger,
            "ORDER_POSTED",
            instrument=self.config.instrument_id,
            order_id=posted.order_id,
            side=side.value,
            price=price,
            size=size,
        )
        return posted.order_id

    def handle_error(self, exc: BaseException) -> None:
        message = error_message(exc)
        if any(marker in message.lower() for marker in SETTLEMENT_PENDING_MARKERS):
            self.state.note = SETTLEMENT_PENDING_NOTE
            logger.info("%s: %s (%s)", self.config.display_name, SETTLEMENT_PENDING_NOTE, message)
            return
        self.state.note = message
        logger.warning("%s: tick failed: %s", self.config.display_name, message)

    def snapshot(self) -> InstrumentSnapshot:
        return InstrumentSnapshot(
            instrument_id=self.config.instrument_id,
            symbol=self.config.symbol,
            phase=self.state.phase,
            best_bid=self.state.best_bid,
            best_ask=self.state.best_ask,
            inventory=self.state.inventory,
            active_order_id=self.state.active_order_id,
            note=self.state.note,
        )
