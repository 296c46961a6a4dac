# src/autotp/core/strategy/grid.py
from __future__ import annotations

from dataclasses import replace
from typing import Optional

from src.autotp.core.models.enums import OrderStatus, Side
from src.autotp.core.models.order import Order, OrderBook, Ticker, TradeOrders
from src.autotp.core.strategy.base import Strategy
from src.autotp.core.strategy.common import calc_qty, entry_query, new_entry, new_protective
from src.autotp.core.utils.grid import get_grid_range
from src.autotp.core.utils.prices import normalize_double
from src.autotp.exchanges.base.exchange import ExchangeError

# resting TP orders per exit side (venue caps algo orders per symbol)
MAX_RESTING_TP = 2
BOOK_DEPTH = 5


class GridStrategy(Strategy):
    """
    One entry per grid zone: BUY at the lower edge of the zone holding the price,
    SELL at its upper edge, each only when no active order sits there yet
    (within the configured slippage band).

    Filled entries carrying a tp_price get a TP once the book touch reaches it.
    At most MAX_RESTING_TP TPs rest per side; a nearer target displaces the
    farthest one.
    """

    strategy_id = "grid"

    def on_tick(self, ticker: Ticker) -> Optional[TradeOrders]:
        p = self.params
        zone_lower, zone_upper, width = get_grid_range(ticker.price, p.lower_price, p.upper_price, p.grids)
        qty = calc_qty(p, ticker.price)
        batch = TradeOrders()

        sides = []
        if p.allow_long:
            sides.append(True)
        if p.allow_short:
            sides.append(False)

        for long in sides:
            boundary = normalize_double(zone_lower if long else zone_upper, p.price_digits)
            qo = replace(self.query(), side=Side.BUY if long else Side.SELL, open_price=boundary, zone_price=boundary)
            if not self.store.is_empty_zone(qo) or self.store.get_active_order(qo, p.slippage) is not None:
                continue

            sl_price = tp_price = 0.0
            if p.sl > 0:
                sl_price = boundary - width * p.sl if long else boundary + width * p.sl
            if p.tp > 0:
                tp_price = boundary + width * p.tp if long else boundary - width * p.tp

            batch.open_orders.append(
                new_entry(
                    p,
                    long=long,
                    price=boundary,
                    qty=qty,
                    zone_price=boundary,
                    sl_price=normalize_double(sl_price, p.price_digits),
                    tp_price=normalize_double(tp_price, p.price_digits),
                )
            )

        self._take_profits(batch, sides)

        if not batch.is_empty():
            self.logger.debug(
                "[STRATEGY][grid] price=%s zone=[%s, %s] width=%s opens=%d tps=%d cancels=%d",
                ticker.price, zone_lower, zone_upper, width,
                len(batch.open_orders), len(batch.close_orders), len(batch.cancel_orders),
            )
        return self.batch_or_none(batch)

    # ------------------------------------------------------------------
    # take profit
    # ------------------------------------------------------------------

    def _take_profits(self, batch: TradeOrders, sides: list[bool]) -> None:
        p = self.params
        pending: dict[bool, list[Order]] = {}
        for long in sides:
            # zone order: nearest targets first
            qo = replace(entry_query(p, long=long), side=Side.BUY if long else Side.SELL)
            todo = [
                o for o in self.store.get_entry_orders(qo)
                if o.status == OrderStatus.FILLED
                and o.tp_price > 0
                and not o.close_order_id
                and self.store.get_tp_order(o.id) is None
            ]
            if todo:
                pending[long] = todo
        if not pending:
            return

        book = self._book()
        if book is None:
            return

        for long, todo in pending.items():
            touch = book.bids if long else book.asks
            if not touch or touch[0].price <= 0:
                continue
            level = touch[0].price

            exit_side = Side.SELL if long else Side.BUY
            resting = [
                o for o in self.store.get_tp_orders(replace(self.query(), side=exit_side))
                if o.status == OrderStatus.NEW
            ]

            for o in todo:
                reached = level >= o.tp_price if long else level <= o.tp_price
                if not reached:
                    continue

                if len(resting) >= MAX_RESTING_TP:
                    # open_price asc: the farthest TP is the highest for longs, the lowest for shorts
                    farthest = resting[-1] if long else resting[0]
                    nearer = farthest.open_price < o.tp_price if long else farthest.open_price > o.tp_price
                    if nearer:
                        continue
                    batch.cancel_orders.append(farthest)
                    resting.remove(farthest)

                tp = new_protective(p, o, sl=False, price=level)
                batch.close_orders.append(tp)
                resting.append(tp)
                resting.sort(key=lambda r: r.open_price)

    def _book(self) -> Optional[OrderBook]:
        try:
            return self.exchange.get_order_book(self.params.symbol, BOOK_DEPTH)
        except ExchangeError as e:
            self.logger.warning("[STRATEGY][grid] order book fetch failed: %s", e)
            return None
