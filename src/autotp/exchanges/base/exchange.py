# src/autotp/exchanges/base/exchange.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from src.autotp.core.models.order import HistoricalPrice, Order, OrderBook, Ticker, TradeRecord


class ExchangeError(RuntimeError):
    """Transport or venue-side failure (network, HTTP status, venue error code)."""

    def __init__(self, message: str, *, code: Optional[int] = None, status: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.status = status


# -------- base gateway --------

class ExchangeGateway(ABC):
    """
    Venue trading surface.

    Order-placing calls return a NEW confirmed copy of the given order
    (ref_id / status / open_time filled in), None when the venue declined it,
    or raise ExchangeError on transport / venue errors.
    The given order is never mutated.
    """

    name: str

    # ---- market data ----

    @abstractmethod
    def get_ticker(self, symbol: str) -> Optional[Ticker]:
        ...

    @abstractmethod
    def get_order_book(self, symbol: str, limit: int = 5) -> Optional[OrderBook]:
        ...

    @abstractmethod
    def get_historical_prices(self, symbol: str, timeframe: str, limit: int) -> list[HistoricalPrice]:
        """Bars oldest -> newest; the last bar is the forming one."""

    # ---- trading ----

    @abstractmethod
    def open_limit_order(self, order: Order) -> Optional[Order]:
        ...

    @abstractmethod
    def open_stop_order(self, order: Order) -> Optional[Order]:
        """Protective (SL/TP) order with both stop and limit price."""

    @abstractmethod
    def open_market_order(self, order: Order) -> Optional[Order]:
        """Copy carries the fill price, filled qty and commission."""

    @abstractmethod
    def cancel_order(self, order: Order) -> Optional[Order]:
        """Copy with CANCELED status, or None when the venue did not cancel."""

    # ---- queries ----

    @abstractmethod
    def get_order(self, order: Order) -> Optional[Order]:
        """Copy of the local order with the venue's status and update_time."""

    @abstractmethod
    def get_commission(self, symbol: str, ref_id: str) -> Optional[float]:
        """Total commission of the venue order `ref_id`, None when no trade is found."""

    @abstractmethod
    def get_trade_list(
        self,
        symbol: str,
        limit: int = 5,
        start_time: int = 0,
        end_time: int = 0,
    ) -> list[TradeRecord]:
        """Most recent account trades for the symbol."""
