# src/autotp/exchanges/binance/normalize.py
from __future__ import annotations

from dataclasses import replace
from typing import Any

from src.autotp.core.models.enums import normalize_status
from src.autotp.core.models.order import BookLevel, HistoricalPrice, Order, OrderBook, Ticker, TradeRecord


def _f(v: Any) -> float:
    try:
        return float(v or 0.0)
    except (TypeError, ValueError):
        return 0.0


def norm_ticker(exchange: str, raw: dict) -> Ticker | None:
    sym = str(raw.get("symbol", "")).upper()
    px = _f(raw.get("price"))
    if not sym or px <= 0:
        return None
    return Ticker(exchange=exchange, symbol=sym, price=px)


def norm_order_book(symbol: str, raw: dict) -> OrderBook:
    return OrderBook(
        symbol=symbol,
        bids=[BookLevel(price=_f(p), qty=_f(q)) for p, q, *_ in raw.get("bids") or []],
        asks=[BookLevel(price=_f(p), qty=_f(q)) for p, q, *_ in raw.get("asks") or []],
    )


def norm_klines(symbol: str, rows: list) -> list[HistoricalPrice]:
    """
    Kline rows: [openTime, open, high, low, close, volume, closeTime, ...].
    Binance returns them oldest first.
    """
    out: list[HistoricalPrice] = []
    for r in rows or []:
        if not isinstance(r, (list, tuple)) or len(r) < 5:
            continue
        out.append(
            HistoricalPrice(
                symbol=symbol,
                time=int(r[0]),
                open=_f(r[1]),
                high=_f(r[2]),
                low=_f(r[3]),
                close=_f(r[4]),
            )
        )
    return out


def norm_trade(raw: dict) -> TradeRecord:
    # spot myTrades: isBuyer / isMaker ; futures userTrades: buyer / maker
    return TradeRecord(
        symbol=str(raw.get("symbol", "")).upper(),
        ref_id=str(raw.get("orderId", "")),
        trade_id=str(raw.get("id", "")),
        price=_f(raw.get("price")),
        qty=_f(raw.get("qty")),
        quote_qty=_f(raw.get("quoteQty")),
        commission=_f(raw.get("commission")),
        commission_asset=str(raw.get("commissionAsset") or ""),
        time=int(raw.get("time") or 0),
        is_buyer=bool(raw.get("isBuyer", raw.get("buyer", False))),
        is_maker=bool(raw.get("isMaker", raw.get("maker", False))),
    )


def apply_order_response(order: Order, raw: dict) -> Order:
    """
    Confirmed copy of `order` from a new-order / query-order response.
    Local fields (id, prices, links) are kept; venue fields win.
    """
    ts = int(raw.get("updateTime") or raw.get("transactTime") or raw.get("time") or 0)
    return replace(
        order,
        ref_id=str(raw.get("orderId") or order.ref_id),
        status=normalize_status(raw["status"]) if raw.get("status") else order.status,
        open_time=order.open_time or int(raw.get("transactTime") or raw.get("time") or ts),
        update_time=ts or order.update_time,
    )


def apply_market_fills(order: Order, raw: dict) -> Order:
    """
    Fill price / qty / commission of a MARKET order.
    Spot FULL responses carry `fills`; futures responses carry avgPrice/executedQty only.
    """
    fills = raw.get("fills") or []
    if fills:
        qty = sum(_f(f.get("qty")) for f in fills)
        notional = sum(_f(f.get("price")) * _f(f.get("qty")) for f in fills)
        commission = sum(_f(f.get("commission")) for f in fills)
        if qty > 0:
            return replace(order, open_price=notional / qty, qty=qty, commission=commission)
        return order

    avg = _f(raw.get("avgPrice"))
    executed = _f(raw.get("executedQty"))
    if avg > 0 and executed > 0:
        return replace(order, open_price=avg, qty=executed)
    return order
