# src/autotp/core/strategy/scalping.py
from __future__ import annotations

from typing import Optional

from src.autotp.core.models.order import Ticker, TradeOrders
from src.autotp.core.strategy.base import Strategy
from src.autotp.core.strategy.common import (
    calc_qty,
    close_opposite,
    close_positions,
    merge_close_orders,
    nearest_order,
    new_entry,
    pending_orders,
    sl_orders,
    time_sl_orders,
    time_tp_orders,
    tp_orders,
)
from src.autotp.core.strategy.daily import bars_ready
from src.autotp.core.utils.indicators import get_highs_lows, get_hl_ratio, wma
from src.autotp.core.utils.prices import calc_stop_lower_ticker, calc_stop_upper_ticker
from src.autotp.exchanges.base.exchange import ExchangeError


class ScalpingStrategy(Strategy):
    """
    Mean-reversion on a short timeframe.

    Exits always win over entries: forced closes, then positions against the
    view, then SL / TP (volatility and time based), then the smoothed-band
    close signals. Entries need the short-window high/low ratio outside the
    neutral band [hl_ratio_low, hl_ratio_high].
    """

    strategy_id = "scalping"

    def on_tick(self, ticker: Ticker) -> Optional[TradeOrders]:
        p = self.params

        # --- forced closes from config ---
        if p.close_long or p.close_short:
            batch = TradeOrders()
            for long, flag in ((True, p.close_long), (False, p.close_short)):
                if not flag:
                    continue
                batch.cancel_orders.extend(pending_orders(p, self.store, long=long))
                batch.close_orders.extend(close_positions(p, self.store, ticker, long=long))
            return self.batch_or_none(batch)

        # --- positions against the view ---
        direction, closes = close_opposite(p, self.store, ticker)
        if direction is not None:
            self.logger.info("[STRATEGY][scalping] closing %s positions against view=%s",
                             "long" if direction else "short", p.view.value)
            return TradeOrders(
                close_orders=closes,
                cancel_orders=pending_orders(p, self.store, long=direction),
            )

        # --- bars ---
        try:
            prices = self.exchange.get_historical_prices(p.symbol, p.ma_timeframe, p.bars)
        except ExchangeError as e:
            self.logger.warning("[STRATEGY][scalping] bars fetch failed: %s", e)
            return None

        if not bars_ready(prices, p.bars):
            return None

        highs, lows = get_highs_lows(prices)
        hma = wma(highs, p.ma_period)
        lma = wma(lows, p.ma_period)
        if len(hma) < 2:
            return None

        hma_0, hma_1 = hma[-1], hma[-2]
        lma_0, lma_1 = lma[-1], lma[-2]
        atr = hma_0 - lma_0
        price = ticker.price

        # --- protective ---
        protective = []
        if p.auto_sl:
            protective.append(sl_orders(p, self.store, ticker, atr, long=True, triggered_only=True))
            protective.append(sl_orders(p, self.store, ticker, atr, long=False, triggered_only=True))
            protective.append(time_sl_orders(p, self.store, ticker, self.clock()))
        if p.auto_tp:
            protective.append(tp_orders(p, self.store, ticker, atr, long=True))
            protective.append(tp_orders(p, self.store, ticker, atr, long=False))
            protective.append(time_tp_orders(p, self.store, ticker, self.clock()))

        closes = merge_close_orders(*protective)
        if closes:
            return TradeOrders(close_orders=closes)

        # previous two closed bars
        hh = max(highs[-2], highs[-3])
        ll = min(lows[-2], lows[-3])
        h_0, l_0 = highs[-1], lows[-1]

        should_close_long = (hma_1 > hma_0 and lma_1 > lma_0) or ll > price
        should_close_short = (hma_1 < hma_0 and lma_1 < lma_0) or hh < price

        # --- close signals take priority over entries ---
        batch = TradeOrders()
        for long, fire in ((True, should_close_long), (False, should_close_short)):
            if not fire:
                continue
            exits = close_positions(p, self.store, ticker, long=long)
            if exits:
                batch.close_orders.extend(exits)
                batch.cancel_orders.extend(pending_orders(p, self.store, long=long))
        if batch.close_orders:
            batch.close_orders = merge_close_orders(batch.close_orders)
            return batch

        # --- short-window momentum ---
        try:
            recent = self.exchange.get_historical_prices(p.symbol, p.hl_timeframe, p.hl_bars)
        except ExchangeError as e:
            self.logger.warning("[STRATEGY][scalping] %s bars fetch failed: %s", p.hl_timeframe, e)
            return None

        if len(recent) < p.hl_bars or recent[-1].open <= 0:
            return None
        ratio = get_hl_ratio(recent, price)

        should_open_long = lma_1 < lma_0 and ll < l_0 and ratio < p.hl_ratio_low and not should_close_long
        should_open_short = hma_1 > hma_0 and hh > h_0 and ratio > p.hl_ratio_high and not should_close_short

        if should_open_long and should_open_short:
            return None

        qty = calc_qty(p, price)
        min_gap = max(p.order_gap, p.point)

        if should_open_long and p.allow_long:
            entry = calc_stop_lower_ticker(price, p.gap.open_limit, p.price_digits)
            near = nearest_order(p, self.store, long=True, price=entry)
            if near is None or near.open_price - entry >= min_gap:
                batch.open_orders.append(new_entry(p, long=True, price=entry, qty=qty))

        if should_open_short and p.allow_short:
            entry = calc_stop_upper_ticker(price, p.gap.open_limit, p.price_digits)
            near = nearest_order(p, self.store, long=False, price=entry)
            if near is None or entry - near.open_price >= min_gap:
                batch.open_orders.append(new_entry(p, long=False, price=entry, qty=qty))

        return self.batch_or_none(batch)
