# src/autotp/core/strategy/daily.py
from __future__ import annotations

from typing import Optional

from src.autotp.core.models.enums import OrderStatus, Trend
from src.autotp.core.models.order import HistoricalPrice, Order, Ticker, TradeOrders
from src.autotp.core.strategy.base import Strategy
from src.autotp.core.strategy.common import (
    calc_qty,
    close_positions,
    merge_close_orders,
    nearest_order,
    new_entry,
    pending_orders,
    sl_orders,
    tp_orders,
)
from src.autotp.core.utils.indicators import get_closes, get_highs_lows, get_trend, wma
from src.autotp.core.utils.prices import calc_stop_lower_ticker, calc_stop_upper_ticker
from src.autotp.exchanges.base.exchange import ExchangeError


def bars_ready(prices: list[HistoricalPrice], need: int) -> bool:
    """At least `need` bars, every one of them fully populated."""
    need = max(need, 3)
    if len(prices) < need:
        return False
    for b in prices:
        if b.open <= 0 or b.high <= 0 or b.low <= 0 or b.close <= 0:
            return False
    return True


class DailyStrategy(Strategy):
    """
    Trend-following on one timeframe (daily by default).

    Order of rules per tick: close-long, close-short, open-long, open-short,
    then protective SL / TP. Close rules come first so a reversal both exits
    and blocks a same-direction entry in one tick.
    """

    strategy_id = "daily"

    def on_tick(self, ticker: Ticker) -> Optional[TradeOrders]:
        p = self.params

        try:
            prices = self.exchange.get_historical_prices(p.symbol, p.ma_timeframe, p.bars)
        except ExchangeError as e:
            self.logger.warning("[STRATEGY][daily] bars fetch failed: %s", e)
            return None

        if not bars_ready(prices, p.bars):
            return None

        closes = get_closes(prices)
        highs, lows = get_highs_lows(prices)
        cma = wma(closes, p.ma_period)
        hma = wma(highs, p.ma_period)
        lma = wma(lows, p.ma_period)
        if len(cma) < 2:
            return None

        atr = hma[-1] - lma[-1]
        trend = get_trend(closes, p.trend_period, p.trend)

        p_0, p_1 = prices[-1], prices[-2]
        hh = max(highs[-3:])
        ll = min(lows[-3:])
        price = ticker.price

        batch = TradeOrders()
        closes_out: list[list[Order]] = []

        # --- close-long / close-short ---
        should_close_long = price < hh - atr / 2
        should_close_short = price > ll + atr / 2

        if should_close_long:
            batch.cancel_orders.extend(pending_orders(p, self.store, long=True))
            closes_out.append(close_positions(p, self.store, ticker, long=True))
        if should_close_short:
            batch.cancel_orders.extend(pending_orders(p, self.store, long=False))
            closes_out.append(close_positions(p, self.store, ticker, long=False))

        # --- open-long ---
        upper_wick_1 = p_1.high - max(p_1.open, p_1.close)
        lower_wick_1 = min(p_1.open, p_1.close) - p_1.low

        should_open_long = (
            p.allow_long
            and not should_close_long
            and p_1.close > p_1.open
            and upper_wick_1 < lower_wick_1
            and cma[-1] > cma[-2]
            and price < p_1.close
            and price <= hma[-1] + atr / 2
            and trend not in (Trend.DOWN, Trend.STRONG_DOWN)
        )
        if should_open_long:
            entry = calc_stop_lower_ticker(price, p.gap.open_limit, p.price_digits)
            self._open_or_refresh(batch, p_0, long=True, entry=entry, price=price)

        # --- open-short ---
        should_open_short = (
            p.allow_short
            and not should_close_short
            and p_1.close < p_1.open
            and lower_wick_1 < upper_wick_1
            and cma[-1] < cma[-2]
            and price > p_1.close
            and price >= lma[-1] - atr / 2
            and trend not in (Trend.UP, Trend.STRONG_UP)
        )
        if should_open_short:
            entry = calc_stop_upper_ticker(price, p.gap.open_limit, p.price_digits)
            self._open_or_refresh(batch, p_0, long=False, entry=entry, price=price)

        # --- protective ---
        if p.auto_sl:
            closes_out.append(sl_orders(p, self.store, ticker, atr, long=True))
            closes_out.append(sl_orders(p, self.store, ticker, atr, long=False))
        if p.auto_tp:
            closes_out.append(tp_orders(p, self.store, ticker, atr, long=True))
            closes_out.append(tp_orders(p, self.store, ticker, atr, long=False))

        batch.close_orders = merge_close_orders(*closes_out)

        if not batch.is_empty():
            self.logger.info(
                "[STRATEGY][daily] price=%s atr=%.8f trend=%s open=%d close=%d cancel=%d",
                price, atr, trend.name,
                len(batch.open_orders), len(batch.close_orders), len(batch.cancel_orders),
            )
        return self.batch_or_none(batch)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _open_or_refresh(
        self,
        batch: TradeOrders,
        bar: HistoricalPrice,
        *,
        long: bool,
        entry: float,
        price: float,
    ) -> None:
        """
        Open at `entry` unless an order already sits within order_gap of it.
        A nearby NEW order placed before the current bar is cancelled instead.
        """
        p = self.params
        near = nearest_order(p, self.store, long=long, price=entry)
        if near is not None and abs(near.open_price - entry) <= p.order_gap:
            if near.status == OrderStatus.NEW and near.open_time < bar.time:
                batch.cancel_orders.append(near)
            return
        batch.open_orders.append(new_entry(p, long=long, price=entry, qty=calc_qty(p, price)))
