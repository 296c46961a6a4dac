# src/autotp/core/models/order.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from src.autotp.core.models.enums import (
    OrderStatus,
    OrderType,
    PosSide,
    PROTECTIVE_TYPES,
    SL_TYPES,
    Side,
    TP_TYPES,
)


@dataclass(slots=True)
class Order:
    """
    One row of the local order record.

    Lifecycle:
      • produced by Strategy as an intent (id / ref_id empty)
      • submitted by OrderReconciler, persisted only after venue acceptance
      • kept in sync with the venue by status resync
      • closed locally when close_time is stamped

    close_time == 0 means the order is active.
    Times are epoch milliseconds.
    """

    # --- identity ---
    bot_id: int
    exchange: str
    symbol: str
    side: Side
    type: OrderType

    id: str = ""
    ref_id: str = ""
    pos_side: PosSide = PosSide.NONE
    status: OrderStatus = OrderStatus.NEW

    # --- pricing ---
    qty: float = 0.0
    open_price: float = 0.0
    stop_price: float = 0.0
    zone_price: float = 0.0
    sl_price: float = 0.0
    tp_price: float = 0.0
    close_price: float = 0.0
    commission: float = 0.0
    pl: float = 0.0

    # --- times ---
    open_time: int = 0
    update_time: int = 0
    close_time: int = 0

    # --- links ---
    open_order_id: str = ""
    close_order_id: str = ""

    @property
    def is_active(self) -> bool:
        return self.close_time == 0

    @property
    def is_sl(self) -> bool:
        return _value(self.type) in SL_TYPES

    @property
    def is_tp(self) -> bool:
        return _value(self.type) in TP_TYPES

    @property
    def is_protective(self) -> bool:
        return _value(self.type) in PROTECTIVE_TYPES

    @property
    def is_long(self) -> bool:
        """Entry (or position) direction, independent of product."""
        if self.pos_side:
            return _value(self.pos_side) == PosSide.LONG.value
        if self.is_protective:
            return _value(self.side) == Side.SELL.value
        return _value(self.side) == Side.BUY.value


def _value(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


@dataclass(slots=True)
class QueryOrder:
    """Store predicate. Empty / zero fields are ignored."""

    bot_id: int
    exchange: str
    symbol: str
    side: Optional[Side] = None
    pos_side: Optional[PosSide] = None
    type: Optional[OrderType] = None
    status: Optional[OrderStatus] = None
    open_price: float = 0.0
    zone_price: float = 0.0
    open_time: int = 0


@dataclass(slots=True)
class TradeOrders:
    """One decision batch produced by a strategy for a tick."""

    open_orders: List[Order] = field(default_factory=list)
    close_orders: List[Order] = field(default_factory=list)
    cancel_orders: List[Order] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.open_orders or self.close_orders or self.cancel_orders)


@dataclass(frozen=True, slots=True)
class Ticker:
    exchange: str
    symbol: str
    price: float


@dataclass(frozen=True, slots=True)
class HistoricalPrice:
    """One OHLC bar; lists of bars are ordered oldest -> newest."""

    symbol: str
    time: int
    open: float
    high: float
    low: float
    close: float


@dataclass(frozen=True, slots=True)
class TradeRecord:
    """One row of the venue trade list (myTrades / userTrades)."""

    symbol: str
    ref_id: str
    trade_id: str
    price: float
    qty: float
    quote_qty: float
    commission: float
    commission_asset: str
    time: int
    is_buyer: bool = False
    is_maker: bool = False


@dataclass(frozen=True, slots=True)
class BookLevel:
    price: float
    qty: float


@dataclass(frozen=True, slots=True)
class OrderBook:
    symbol: str
    bids: List[BookLevel] = field(default_factory=list)
    asks: List[BookLevel] = field(default_factory=list)
