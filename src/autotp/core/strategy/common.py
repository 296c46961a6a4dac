# src/autotp/core/strategy/common.py
from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional

from src.autotp.core.models.enums import OrderStatus, OrderType, PosSide, Side
from src.autotp.core.models.order import Order, QueryOrder, Ticker
from src.autotp.core.models.params import BotParams
from src.autotp.core.utils.prices import (
    calc_sl_stop,
    calc_tp_stop,
    normalize_double,
)
from src.autotp.data.storage.base import OrderStore


# ---------------------------------------------------------------------
# sizing / queries
# ---------------------------------------------------------------------

def calc_qty(p: BotParams, price: float) -> float:
    """max(base_qty, quote_qty / price), rounded to qty_digits."""
    qty = normalize_double(p.base_qty, p.qty_digits)
    if p.quote_qty > 0 and price > 0:
        qty = max(qty, normalize_double(p.quote_qty / price, p.qty_digits))
    return qty


def base_query(p: BotParams) -> QueryOrder:
    return QueryOrder(bot_id=p.bot_id, exchange=p.exchange, symbol=p.symbol)


def entry_query(p: BotParams, *, long: bool) -> QueryOrder:
    """Entries of one direction: pos_side on futures, side on spot."""
    if p.is_futures:
        return replace(base_query(p), pos_side=PosSide.LONG if long else PosSide.SHORT)
    return replace(base_query(p), side=Side.BUY if long else Side.SELL)


def stop_query(p: BotParams, *, long: bool) -> QueryOrder:
    """Protective orders of positions of one direction (spot: exit side)."""
    if p.is_futures:
        return replace(base_query(p), pos_side=PosSide.LONG if long else PosSide.SHORT)
    return replace(base_query(p), side=Side.SELL if long else Side.BUY)


# ---------------------------------------------------------------------
# builders
# ---------------------------------------------------------------------

def new_entry(
    p: BotParams,
    *,
    long: bool,
    price: float,
    qty: float,
    zone_price: float = 0.0,
    sl_price: float = 0.0,
    tp_price: float = 0.0,
) -> Order:
    pos_side = PosSide.NONE
    if p.is_futures:
        pos_side = PosSide.LONG if long else PosSide.SHORT
    return Order(
        bot_id=p.bot_id,
        exchange=p.exchange,
        symbol=p.symbol,
        side=Side.BUY if long else Side.SELL,
        pos_side=pos_side,
        type=p.order_type,
        status=OrderStatus.NEW,
        qty=qty,
        open_price=normalize_double(price, p.price_digits),
        zone_price=zone_price,
        sl_price=sl_price,
        tp_price=tp_price,
    )


def new_protective(p: BotParams, parent: Order, *, sl: bool, price: float) -> Order:
    """
    SL / TP intent for `parent`, anchored at `price`.
    Stop and limit prices are offset by the configured point gaps.
    """
    side = Side.SELL if parent.is_long else Side.BUY
    if sl:
        otype = OrderType.FSL if p.is_futures else OrderType.SL
        stop = calc_sl_stop(side, price, p.gap.sl_stop, p.price_digits)
        limit = calc_sl_stop(side, price, p.gap.sl_limit, p.price_digits)
    else:
        otype = OrderType.FTP if p.is_futures else OrderType.TP
        stop = calc_tp_stop(side, price, p.gap.tp_stop, p.price_digits)
        limit = calc_tp_stop(side, price, p.gap.tp_limit, p.price_digits)

    return Order(
        bot_id=p.bot_id,
        exchange=p.exchange,
        symbol=p.symbol,
        side=side,
        pos_side=parent.pos_side,
        type=otype,
        status=OrderStatus.NEW,
        qty=parent.qty,
        stop_price=stop,
        open_price=limit,
        open_order_id=parent.id,
    )


def merge_close_orders(*groups: Iterable[Order]) -> list[Order]:
    """Concatenate close intents, keeping one SL and one TP per parent."""
    seen: set[tuple[str, bool]] = set()
    out: list[Order] = []
    for group in groups:
        for o in group:
            key = (o.open_order_id, o.is_sl)
            if key in seen:
                continue
            seen.add(key)
            out.append(o)
    return out


# ---------------------------------------------------------------------
# volatility stops
# ---------------------------------------------------------------------

def sl_orders(
    p: BotParams,
    store: OrderStore,
    ticker: Ticker,
    atr: float,
    *,
    long: bool,
    triggered_only: bool = False,
) -> list[Order]:
    """
    SL for every filled position of one direction that has none.

    The stop sits atr * atr_sl away from the entry. When the price is already
    beyond it the SL is anchored at the ticker. With triggered_only, positions
    whose level is not reached yet get nothing.
    """
    out: list[Order] = []
    for o in store.get_filled_orders(entry_query(p, long=long)):
        if store.get_sl_order(o.id) is not None:
            continue
        if long:
            level = o.open_price - atr * p.atr_sl
            crossed = ticker.price <= level
        else:
            level = o.open_price + atr * p.atr_sl
            crossed = ticker.price >= level
        if triggered_only and not crossed:
            continue
        out.append(new_protective(p, o, sl=True, price=ticker.price if crossed else level))
    return out


def tp_orders(p: BotParams, store: OrderStore, ticker: Ticker, atr: float, *, long: bool) -> list[Order]:
    """TP at the ticker for filled positions that moved more than atr * atr_tp."""
    out: list[Order] = []
    for o in store.get_filled_orders(entry_query(p, long=long)):
        if long:
            reached = ticker.price > o.open_price + atr * p.atr_tp
        else:
            reached = ticker.price < o.open_price - atr * p.atr_tp
        if not reached or store.get_tp_order(o.id) is not None:
            continue
        out.append(new_protective(p, o, sl=False, price=ticker.price))
    return out


# ---------------------------------------------------------------------
# time stops
# ---------------------------------------------------------------------

def _aged(o: Order, now: int, seconds: int) -> bool:
    return seconds > 0 and o.open_time > 0 and now - o.open_time >= seconds * 1000


def time_sl_orders(p: BotParams, store: OrderStore, ticker: Ticker, now: int) -> list[Order]:
    """Positions older than time_sec_sl and under water are closed at the ticker."""
    if p.time_sec_sl <= 0:
        return []
    out: list[Order] = []
    for long in (True, False):
        for o in store.get_filled_orders(entry_query(p, long=long)):
            if not _aged(o, now, p.time_sec_sl):
                continue
            losing = ticker.price < o.open_price if long else ticker.price > o.open_price
            if not losing or store.get_sl_order(o.id) is not None:
                continue
            out.append(new_protective(p, o, sl=True, price=ticker.price))
    return out


def time_tp_orders(p: BotParams, store: OrderStore, ticker: Ticker, now: int) -> list[Order]:
    """Positions older than time_sec_tp and in profit are closed at the ticker."""
    if p.time_sec_tp <= 0:
        return []
    out: list[Order] = []
    for long in (True, False):
        for o in store.get_filled_orders(entry_query(p, long=long)):
            if not _aged(o, now, p.time_sec_tp):
                continue
            winning = ticker.price > o.open_price if long else ticker.price < o.open_price
            if not winning or store.get_tp_order(o.id) is not None:
                continue
            out.append(new_protective(p, o, sl=False, price=ticker.price))
    return out


# ---------------------------------------------------------------------
# forced closes / cancels
# ---------------------------------------------------------------------

def close_positions(p: BotParams, store: OrderStore, ticker: Ticker, *, long: bool) -> list[Order]:
    """
    Exit every filled position of one direction at the ticker.
    A pending (NEW) SL does not block the exit: callers cancel it in the same batch.
    """
    out: list[Order] = []
    for o in store.get_filled_orders(entry_query(p, long=long)):
        existing = store.get_sl_order(o.id)
        if existing is not None and existing.status != OrderStatus.NEW:
            continue
        out.append(new_protective(p, o, sl=True, price=ticker.price))
    return out


def pending_orders(p: BotParams, store: OrderStore, *, long: bool, stops: bool = True) -> list[Order]:
    """NEW entries (and NEW protective orders) of one direction, to be cancelled."""
    out = list(store.get_new_limit_orders(entry_query(p, long=long)))
    if stops:
        out.extend(store.get_new_stop_orders(stop_query(p, long=long)))
    return out


def close_opposite(p: BotParams, store: OrderStore, ticker: Ticker) -> tuple[Optional[bool], list[Order]]:
    """
    Positions against a one-sided view.
    Returns (direction closed: True = longs, False = shorts, None = nothing), close intents.
    """
    if p.allow_long and p.allow_short:
        return None, []
    long = not p.allow_long
    closes = close_positions(p, store, ticker, long=long)
    return (long if closes else None), closes


def nearest_order(p: BotParams, store: OrderStore, *, long: bool, price: float) -> Optional[Order]:
    qo = replace(entry_query(p, long=long), type=p.order_type, open_price=price)
    return store.get_nearest_order(qo)
