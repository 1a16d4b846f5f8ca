from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp

from probmm.config import VenueConfig
from probmm.logger import log_event
from probmm.orderbook import best_ask, best_bid, parse_orderbook_payload
from probmm.types import (
    FILLED,
    LimitOrderRequest,
    OrderBookSnapshot,
    OrderSide,
    PostedOrder,
    RemoteOrderState,
    TimeInForce,
)

logger = logging.getLogger(__name__)


class VenueError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, body: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body

    @classmethod
    def from_response(cls, status: int, text: str) -> "VenueError":
        try:
            body: Any = json.loads(text) if text else None
        except ValueError:
            body = text
        message = _body_message(body) or f"HTTP {status} from venue"
        return cls(message, status=status, body=body)


def _body_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(body.get("message"), str) and body["message"]:
            return body["message"]
        if isinstance(error, str) and error:
            return error
    if isinstance(body, str) and body.strip():
        return body.strip()
    return None


def error_message(exc: BaseException) -> str:
    """Most specific human-readable message for a venue failure."""
    return _body_message(getattr(exc, "body", None)) or str(exc) or exc.__class__.__name__


def generate_client_order_id(prefix: str) -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"{prefix}-{timestamp}-{uuid.uuid4().hex[:8]}"


def _parse_side(raw: Any) -> Optional[OrderSide]:
    try:
        return OrderSide(str(raw).upper())
    except ValueError:
        return None


def _first(payload: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return None


def parse_posted_order(payload: Dict[str, Any]) -> PostedOrder:
    order_id = _first(payload, "orderId", "orderID", "id")
    if order_id is None:
        raise VenueError("Venue did not return an order id", body=payload)
    return PostedOrder(order_id=str(order_id))


def parse_order_state(payload: Dict[str, Any], order_id: str) -> RemoteOrderState:
    return RemoteOrderState(
        order_id=str(_first(payload, "orderId", "orderID", "id") or order_id),
        side=_parse_side(payload.get("side")),
        price=float(_first(payload, "price") or "0"),
        orig_qty=float(_first(payload, "origQty", "size") or "0"),
        executed_qty=float(_first(payload, "executedQty", "filledQty") or "0"),
        status=str(payload.get("status", "")),
    )


class VenueClient:
    async def get_order_book(self, instrument_id: str) -> OrderBookSnapshot:
        raise NotImplementedError

    async def create_limit_order(
        self,
        instrument_id: str,
        price: float,
        size: float,
        side: OrderSide,
        time_in_force: TimeInForce = TimeInForce.GTC,
    ) -> LimitOrderRequest:
        return LimitOrderRequest(
            instrument_id=instrument_id,
            price=price,
            size=size,
            side=side,
            time_in_force=time_in_force,
            client_order_id=generate_client_order_id(side.value.lower()),
        )

    async def post_order(self, order: LimitOrderRequest) -> PostedOrder:
        raise NotImplementedError

    async def get_order(self, order_id: str, instrument_id: str) -> RemoteOrderState:
        raise NotImplementedError

    async def cancel_order(self, order_id: str, instrument_id: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class ProbVenueClient(VenueClient):
    def __init__(self, config: VenueConfig) -> None:
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None

    async def get_order_book(self, instrument_id: str) -> OrderBookSnapshot:
        response = await self._request("GET", self.config.orderbook_path, params={"tokenId": instrument_id})
        return parse_orderbook_payload(instrument_id, response)

    async def post_order(self, order: LimitOrderRequest) -> PostedOrder:
        payload = {
            "tokenId": order.instrument_id,
            "price": order.price,
            "size": order.size,
            "side": order.side.value,
            "timeInForce": order.time_in_force.value,
            "clientOrderId": order.client_order_id,
        }
        response = await self._request("POST", self.config.order_path, payload=payload)
        return parse_posted_order(response)

    async def get_order(self, order_id: str, instrument_id: str) -> RemoteOrderState:
        path = self.config.order_status_path.format(order_id=order_id)
        response = await self._request("GET", path, params={"tokenId": instrument_id})
        return parse_order_state(response, order_id)

    async def cancel_order(self, order_id: str, instrument_id: str) -> None:
        path = self.config.cancel_path.format(order_id=order_id)
        await self._request("DELETE", path, params={"tokenId": instrument_id})

    def _headers(self) -> Dict[str, str]:
        headers = {"User-Agent": "probmm/0.1"}
        if self.config.api_key:
            headers["X-API-KEY"] = self.config.api_key
        if self.config.api_secret:
            headers["X-API-SECRET"] = self.config.api_secret
        if self.config.api_passphrase:
            headers["X-API-PASSPHRASE"] = self.config.api_passphrase
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Dict[str, Any]:
        if not self._session:
            self._session = aiohttp.ClientSession()
        url = f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"
        timeout = aiohttp.ClientTimeout(total=self.config.request_timeout_seconds)
        async with self._session.request(
            method, url, json=payload, params=params, headers=self._headers(), timeout=timeout
        ) as resp:
            text = await resp.text()
            if resp.status >= 400:
                raise VenueError.from_response(resp.status, text)
            if not text.strip():
                return {}
            return json.loads(text)

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None


@dataclass
class _PaperOrder:
    request: LimitOrderRequest
    executed_qty: float = 0.0
    status: str = "NEW"


class PaperVenueClient(VenueClient):
    """Dry-run client: live books from ``book_source``, orders kept in memory.

    A resting buy fills in full once the last seen best ask is at or below its
    price; a resting sell once the last seen best bid is at or above it.
    """

    def __init__(self, book_source: VenueClient) -> None:
        self.book_source = book_source
        self.orders: Dict[str, _PaperOrder] = {}
        self._books: Dict[str, OrderBookSnapshot] = {}

    async def get_order_book(self, instrument_id: str) -> OrderBookSnapshot:
        book = await self.book_source.get_order_book(instrument_id)
        self._books[instrument_id] = book
        return book

    async def post_order(self, order: LimitOrderRequest) -> PostedOrder:
        order_id = generate_client_order_id("paper")
        self.orders[order_id] = _PaperOrder(request=order)
        log_event(logger, "PAPER_ORDER", order_id=order_id, **asdict(order))
        return PostedOrder(order_id=order_id)

    async def get_order(self, order_id: str, instrument_id: str) -> RemoteOrderState:
        paper = self._lookup(order_id)
        if paper.status != FILLED and self._crosses(paper.request):
            paper.executed_qty = paper.request.size
            paper.status = FILLED
            log_event(logger, "PAPER_FILL", order_id=order_id, price=paper.request.price, size=paper.request.size)
        return RemoteOrderState(
            order_id=order_id,
            side=paper.request.side,
            price=paper.request.price,
            orig_qty=paper.request.size,
            executed_qty=paper.executed_qty,
            status=paper.status,
        )

    async def cancel_order(self, order_id: str, instrument_id: str) -> None:
        self._lookup(order_id)
        del self.orders[order_id]
        log_event(logger, "PAPER_CANCEL", order_id=order_id)

    async def close(self) -> None:
        await self.book_source.close()

    def _lookup(self, order_id: str) -> _PaperOrder:
        paper = self.orders.get(order_id)
        if paper is None:
            raise VenueError(f"Unknown paper order {order_id}", status=404)
        return paper

    def _crosses(self, order: LimitOrderRequest) -> bool:
        book = self._books.get(order.instrument_id)
        if book is None:
            return False
        if order.side is OrderSide.BUY:
            ask = best_ask(book)
            return 0 < ask <= order.price
        bid = best_bid(book)
        return bid > 0 and bid >= order.price
