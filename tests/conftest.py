from typing import Dict, List, Optional

import pytest

from probmm.types import (
    LimitOrderRequest,
    OrderBookSnapshot,
    PostedOrder,
    PriceLevel,
    RemoteOrderState,
)
from probmm.venue import VenueClient


def make_book(instrument_id: str, bids: List[str], asks: List[str]) -> OrderBookSnapshot:
    return OrderBookSnapshot(
        instrument_id=instrument_id,
        bids=[PriceLevel(price=price) for price in bids],
        asks=[PriceLevel(price=price) for price in asks],
    )


class FakeVenue(VenueClient):
    """In-memory venue; tests drive fills by editing ``orders`` directly."""

    def __init__(self) -> None:
        self.books: Dict[str, OrderBookSnapshot] = {}
        self.book_errors: Dict[str, Exception] = {}
        self.orders: Dict[str, RemoteOrderState] = {}
        self.posted: List[LimitOrderRequest] = []
        self.canceled: List[str] = []
        self.get_order_calls: List[str] = []
        self.post_error: Optional[Exception] = None
        self.closed = False

    def set_book(self, instrument_id: str, bids: List[str], asks: List[str]) -> None:
        self.books[instrument_id] = make_book(instrument_id, bids, asks)

    def fill(self, order_id: str, executed_qty: float, status: str = "PARTIALLY_FILLED") -> None:
        self.orders[order_id].executed_qty = executed_qty
        self.orders[order_id].status = status

    async def get_order_book(self, instrument_id: str) -> OrderBookSnapshot:
        if instrument_id in self.book_errors:
            raise self.book_errors[instrument_id]
        return self.books[instrument_id]

    async def post_order(self, order: LimitOrderRequest) -> PostedOrder:
        if self.post_error is not None:
            raise self.post_error
        order_id = f"order-{len(self.posted) + 1}"
        self.posted.append(order)
        self.orders[order_id] = RemoteOrderState(
            order_id=order_id,
            side=order.side,
            price=order.price,
            orig_qty=order.size,
            executed_qty=0.0,
            status="NEW",
        )
        return PostedOrder(order_id=order_id)

    async def get_order(self, order_id: str, instrument_id: str) -> RemoteOrderState:
        self.get_order_calls.append(order_id)
        return self.orders[order_id]

    async def cancel_order(self, order_id: str, instrument_id: str) -> None:
        self.canceled.append(order_id)
        self.orders[order_id].status = "CANCELED"

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def venue() -> FakeVenue:
    return FakeVenue()
