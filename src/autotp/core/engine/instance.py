# src/autotp/core/engine/instance.py
from __future__ import annotations

import logging
import threading
from typing import Optional

from src.autotp.core.models.order import Ticker, TradeOrders
from src.autotp.core.models.params import BotParams
from src.autotp.core.oms.reconcile import OrderReconciler
from src.autotp.core.strategy.base import Strategy
from src.autotp.core.strategy.common import base_query
from src.autotp.data.storage.base import OrderStore
from src.autotp.exchanges.base.exchange import ExchangeGateway


class TradingInstance:
    """
    One bot: one symbol, one strategy, one venue account.

    Per tick (strictly sequential):
      ticker -> strategy.on_tick -> reconciler.apply -> reconciler.sync_all
    """

    def __init__(
        self,
        *,
        params: BotParams,
        exchange: ExchangeGateway,
        store: OrderStore,
        strategy: Strategy,
        reconciler: OrderReconciler,
        dry_run: bool,
    ):
        self.logger = logging.getLogger("src.autotp.core.engine.instance")

        self.params = params
        self.exchange = exchange
        self.store = store
        self.strategy = strategy
        self.reconciler = reconciler
        self.dry_run = bool(dry_run)

        self._stop = threading.Event()
        self.ticks = 0

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def stop(self) -> None:
        self._stop.set()

    def run(self, *, max_ticks: Optional[int] = None) -> None:
        p = self.params
        self.logger.info(
            "[ENGINE] start bot=%s %s %s %s strategy=%s view=%s interval=%ss dry_run=%s",
            p.bot_id, p.exchange, p.product.value, p.symbol, p.strategy.value, p.view.value,
            p.interval_sec, self.dry_run,
        )
        self.strategy.on_start()
        try:
            while not self._stop.is_set():
                self.tick_once()
                if max_ticks is not None and self.ticks >= max_ticks:
                    break
                self._stop.wait(p.interval_sec)
        finally:
            self.strategy.on_stop()
            self.logger.info("[ENGINE] stopped after %d ticks", self.ticks)

    # ------------------------------------------------------------------
    # tick
    # ------------------------------------------------------------------

    def tick_once(self) -> Optional[TradeOrders]:
        """One full cycle; errors are logged and the next tick starts clean."""
        self.ticks += 1
        batch: Optional[TradeOrders] = None

        try:
            ticker = self.exchange.get_ticker(self.params.symbol)
        except Exception as e:
            self.logger.warning("[ENGINE] ticker fetch failed: %s", e)
            return None
        if ticker is None:
            return None

        try:
            if self._start_gate_open(ticker):
                batch = self.strategy.on_tick(ticker)
        except Exception:
            self.logger.exception("[ENGINE] strategy %s failed", self.strategy.strategy_id)
            batch = None

        if batch is not None:
            if self.dry_run:
                self._log_batch(batch, ticker)
            else:
                self.reconciler.apply(batch, ticker)

        try:
            self.reconciler.sync_all()
        except Exception:
            self.logger.exception("[ENGINE] resync failed")

        return batch

    def _start_gate_open(self, ticker: Ticker) -> bool:
        """No trading before the price first comes down to start_price (grid bots)."""
        sp = self.params.start_price
        if sp <= 0 or ticker.price <= sp:
            return True
        return bool(self.store.get_active_orders(base_query(self.params)))

    def _log_batch(self, batch: TradeOrders, ticker: Ticker) -> None:
        self.logger.info(
            "[DRY_RUN] price=%s open=%d close=%d cancel=%d",
            ticker.price, len(batch.open_orders), len(batch.close_orders), len(batch.cancel_orders),
        )
        for o in batch.open_orders:
            self.logger.info("[DRY_RUN][OPEN] %s %s qty=%s price=%s", o.side.value, o.type.value, o.qty, o.open_price)
        for o in batch.close_orders:
            self.logger.info(
                "[DRY_RUN][CLOSE] %s %s parent=%s stop=%s price=%s",
                o.side.value, o.type.value, o.open_order_id, o.stop_price, o.open_price,
            )
        for o in batch.cancel_orders:
            self.logger.info("[DRY_RUN][CANCEL] id=%s ref=%s", o.id, o.ref_id)
