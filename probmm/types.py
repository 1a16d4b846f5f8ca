from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Phase(str, Enum):
    IDLE = "IDLE"
    BUYING = "BUYING"
    SELLING = "SELLING"


class OrderSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class TimeInForce(str, Enum):
    GTC = "GTC"


FILLED = "FILLED"


@dataclass(frozen=True)
class InstrumentConfig:
    instrument_id: str
    order_size: float
    symbol: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.symbol or self.instrument_id[-8:]


@dataclass
class PriceLevel:
    price: str
    size: str = "0"


@dataclass
class OrderBookSnapshot:
    instrument_id: str
    bids: List[PriceLevel] = field(default_factory=list)
    asks: List[PriceLevel] = field(default_factory=list)


@dataclass
class LimitOrderRequest:
    instrument_id: str
    price: float
    size: float
    side: OrderSide
    client_order_id: str
    time_in_force: TimeInForce = TimeInForce.GTC


@dataclass
class PostedOrder:
    order_id: str


@dataclass
class RemoteOrderState:
    order_id: str
    side: Optional[OrderSide]
    price: float
    orig_qty: float
    executed_qty: float
    status: str

    @property
    def remaining_qty(self) -> float:
        return max(0.0, self.orig_qty - self.executed_qty)

    @property
    def is_filled(self) -> bool:
        return self.status.upper() == FILLED


@dataclass
class InstrumentRuntimeState:
    """Mutable per-instrument state, owned by a single worker.

    ``inventory`` mirrors the executed quantity of the most recently tracked
    order, not a running position across orders.
    """

    phase: Phase = Phase.IDLE
    active_order_id: Optional[str] = None
    inventory: float = 0.0
    acquisition_price: Optional[float] = None
    best_bid: float = 0.0
    best_ask: float = 0.0
    note: str = ""


@dataclass(frozen=True)
class InstrumentSnapshot:
    instrument_id: str
    symbol: Optional[str]
    phase: Phase
    best_bid: float
    best_ask: float
    inventory: float
    active_order_id: Optional[str]
    note: str

    @property
    def display_name(self) -> str:
        return self.symbol or self.instrument_id[-8:]
