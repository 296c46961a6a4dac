# src/autotp/exchanges/binance/exchange.py
from __future__ import annotations

import logging
import os
from typing import Any, Optional

from src.autotp.core.models.enums import OrderStatus, OrderType
from src.autotp.core.models.order import HistoricalPrice, Order, OrderBook, Ticker, TradeRecord
from src.autotp.exchanges.base.exchange import ExchangeError, ExchangeGateway
from src.autotp.exchanges.binance.normalize import (
    apply_market_fills,
    apply_order_response,
    norm_klines,
    norm_order_book,
    norm_ticker,
    norm_trade,
)
from src.autotp.exchanges.binance.rest import BinanceREST, FUTURES_BASE_URL, SPOT_BASE_URL

_ACCEPTED = (OrderStatus.NEW, OrderStatus.FILLED)


def _v(x) -> str:
    return x.value if hasattr(x, "value") else str(x)


class _BinanceGateway(ExchangeGateway):
    """
    Shared Binance order flow; subclasses set the API prefix and venue details.
    """

    name = "BINANCE"
    prefix = ""
    trades_path = ""

    def __init__(self, rest: BinanceREST, *, price_digits: int, qty_digits: int):
        self.rest = rest
        self.price_digits = int(price_digits)
        self.qty_digits = int(qty_digits)
        self.logger = logging.getLogger(f"binance.{self.prefix.strip('/').replace('/', '.')}")

    # ---------------- formatting ----------------

    def _px(self, v: float) -> str:
        return f"{v:.{self.price_digits}f}"

    def _qty(self, v: float) -> str:
        return f"{v:.{self.qty_digits}f}"

    def _order_params(self, order: Order) -> dict[str, Any]:
        p: dict[str, Any] = {
            "symbol": order.symbol,
            "side": _v(order.side),
            "quantity": self._qty(order.qty),
            "newClientOrderId": order.id,
        }
        return p

    def _order_ref(self, order: Order) -> dict[str, Any]:
        if order.ref_id:
            return {"symbol": order.symbol, "orderId": order.ref_id}
        return {"symbol": order.symbol, "origClientOrderId": order.id}

    def _stop_type(self, order: Order) -> str:
        return _v(order.type)

    def _submit(self, order: Order, params: dict[str, Any]) -> Optional[Order]:
        raw = self.rest.post(f"{self.prefix}/order", params=params, signed=True) or {}
        confirmed = apply_order_response(order, raw)
        if not raw or not raw.get("status") or confirmed.status not in _ACCEPTED:
            self.logger.warning(
                "[BINANCE] order id=%s not accepted: status=%s", order.id, raw.get("status"),
            )
            return None
        return confirmed

    # ---------------- market data ----------------

    def get_ticker(self, symbol: str) -> Optional[Ticker]:
        raw = self.rest.get(f"{self.prefix}/ticker/price", params={"symbol": symbol})
        return norm_ticker(self.name, raw or {})

    def get_order_book(self, symbol: str, limit: int = 5) -> Optional[OrderBook]:
        raw = self.rest.get(f"{self.prefix}/depth", params={"symbol": symbol, "limit": int(limit)})
        return norm_order_book(symbol, raw or {})

    def get_historical_prices(self, symbol: str, timeframe: str, limit: int) -> list[HistoricalPrice]:
        rows = self.rest.get(
            f"{self.prefix}/klines",
            params={"symbol": symbol, "interval": timeframe, "limit": int(limit)},
        )
        return norm_klines(symbol, rows or [])

    # ---------------- trading ----------------

    def open_limit_order(self, order: Order) -> Optional[Order]:
        if order.type != OrderType.LIMIT:
            return None
        params = self._order_params(order)
        params.update({
            "type": "LIMIT",
            "timeInForce": "GTC",
            "price": self._px(order.open_price),
        })
        return self._submit(order, params)

    def open_stop_order(self, order: Order) -> Optional[Order]:
        if not order.is_protective:
            return None
        params = self._order_params(order)
        params.update({
            "type": self._stop_type(order),
            "timeInForce": "GTC",
            "price": self._px(order.open_price),
            "stopPrice": self._px(order.stop_price),
        })
        return self._submit(order, params)

    def open_market_order(self, order: Order) -> Optional[Order]:
        if order.type != OrderType.MARKET:
            return None
        params = self._order_params(order)
        params["type"] = "MARKET"
        raw = self.rest.post(f"{self.prefix}/order", params=self._market_params(params), signed=True) or {}
        confirmed = apply_order_response(order, raw)
        if not raw or not raw.get("status") or confirmed.status not in _ACCEPTED:
            self.logger.warning("[BINANCE] market order id=%s not accepted: status=%s", order.id, raw.get("status"))
            return None
        return apply_market_fills(confirmed, raw)

    def _market_params(self, params: dict[str, Any]) -> dict[str, Any]:
        return params

    def cancel_order(self, order: Order) -> Optional[Order]:
        raw = self.rest.delete(f"{self.prefix}/order", params=self._order_ref(order), signed=True) or {}
        confirmed = apply_order_response(order, raw)
        if not raw.get("status") or confirmed.status != OrderStatus.CANCELED:
            return None
        return confirmed

    # ---------------- queries ----------------

    def get_order(self, order: Order) -> Optional[Order]:
        raw = self.rest.get(f"{self.prefix}/order", params=self._order_ref(order), signed=True)
        if not raw:
            return None
        return apply_order_response(order, raw)

    def get_commission(self, symbol: str, ref_id: str) -> Optional[float]:
        if not ref_id:
            return None
        rows = self.rest.get(
            self.trades_path,
            params={"symbol": symbol, "orderId": ref_id},
            signed=True,
        ) or []
        matched = [t for t in (norm_trade(r) for r in rows) if t.ref_id == str(ref_id)]
        if not matched:
            return None
        return sum(t.commission for t in matched)

    def get_trade_list(
        self,
        symbol: str,
        limit: int = 5,
        start_time: int = 0,
        end_time: int = 0,
    ) -> list[TradeRecord]:
        params: dict[str, Any] = {"symbol": symbol, "limit": int(limit) if limit > 0 else 10}
        if start_time > 0:
            params["startTime"] = int(start_time)
        if end_time > 0:
            params["endTime"] = int(end_time)
        rows = self.rest.get(self.trades_path, params=params, signed=True) or []
        if not isinstance(rows, list):
            raise ExchangeError(f"unexpected trade list payload: {rows!r}")
        return [norm_trade(r) for r in rows]


class BinanceSpotExchange(_BinanceGateway):
    """
    Binance Spot gateway (/api/v3).
    """

    prefix = "/api/v3"
    trades_path = "/api/v3/myTrades"

    def _market_params(self, params: dict[str, Any]) -> dict[str, Any]:
        p = dict(params)
        p["newOrderRespType"] = "FULL"
        return p


class BinanceFuturesExchange(_BinanceGateway):
    """
    Binance USDⓈ-M Futures gateway (/fapi/v1), hedge mode (positionSide on every order).
    """

    prefix = "/fapi/v1"
    trades_path = "/fapi/v1/userTrades"

    def _order_params(self, order: Order) -> dict[str, Any]:
        p = super()._order_params(order)
        if order.pos_side:
            p["positionSide"] = _v(order.pos_side)
        return p

    def _stop_type(self, order: Order) -> str:
        # futures stop-limit types are STOP / TAKE_PROFIT
        return OrderType.FSL.value if order.is_sl else OrderType.FTP.value

    def _market_params(self, params: dict[str, Any]) -> dict[str, Any]:
        p = dict(params)
        p["newOrderRespType"] = "RESULT"
        return p


# ---------------- factory ----------------

def build_binance_exchange(
    *,
    futures: bool,
    price_digits: int,
    qty_digits: int,
    api_key: str | None = None,
    api_secret: str | None = None,
    require_credentials: bool = True,
) -> _BinanceGateway:
    key = api_key if api_key is not None else os.environ.get("BINANCE_API_KEY", "")
    sec = api_secret if api_secret is not None else os.environ.get("BINANCE_API_SECRET", "")
    if require_credentials and (not key or not sec):
        raise RuntimeError("Missing Binance credentials (BINANCE_API_KEY / BINANCE_API_SECRET)")

    if futures:
        rest = BinanceREST(key, sec, base_url=FUTURES_BASE_URL)
        return BinanceFuturesExchange(rest, price_digits=price_digits, qty_digits=qty_digits)

    rest = BinanceREST(key, sec, base_url=SPOT_BASE_URL)
    return BinanceSpotExchange(rest, price_digits=price_digits, qty_digits=qty_digits)
