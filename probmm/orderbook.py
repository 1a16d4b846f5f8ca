from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional

from probmm.types import OrderBookSnapshot, PriceLevel


def _parse_price(raw: Optional[str]) -> float:
    try:
        return float(raw or "0")
    except (TypeError, ValueError):
        return math.nan


def best_price(levels: Iterable[PriceLevel], side: str) -> float:
    """Return the best valid price on one side of the book.

    Bids take the highest price and asks the lowest. Levels whose price is
    missing, unparsable, non-finite or not positive are ignored; 0.0 means
    no usable price.
    """

    prices = [_parse_price(level.price) for level in levels]
    prices = [price for price in prices if math.isfinite(price) and price > 0]
    if not prices:
        return 0.0
    return max(prices) if side == "bid" else min(prices)


def best_bid(book: OrderBookSnapshot) -> float:
    return best_price(book.bids, "bid")


def best_ask(book: OrderBookSnapshot) -> float:
    return best_price(book.asks, "ask")


def _parse_levels(raw: Any) -> List[PriceLevel]:
    levels: List[PriceLevel] = []
    for entry in raw or []:
        if not isinstance(entry, dict):
            continue
        price = entry.get("price")
        size = entry.get("size")
        levels.append(
            PriceLevel(
                price="" if price is None else str(price),
                size="0" if size is None else str(size),
            )
        )
    return levels


def parse_orderbook_payload(instrument_id: str, payload: Dict[str, Any]) -> OrderBookSnapshot:
    """
    Expected payload format:
    {
      "bids": [{"price": "0.48", "size": "120"}],
      "asks": [{"price": "0.52", "size": "80"}]
    }
    """
    return OrderBookSnapshot(
        instrument_id=instrument_id,
        bids=_parse_levels(payload.get("bids")),
        asks=_parse_levels(payload.get("asks")),
    )
