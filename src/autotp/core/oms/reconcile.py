# src/autotp/core/oms/reconcile.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from src.autotp.core.models.enums import OrderStatus, OrderType
from src.autotp.core.models.order import Order, Ticker, TradeOrders
from src.autotp.core.models.params import BotParams
from src.autotp.core.oms.events import OrderEventLog
from src.autotp.core.oms.state_machine import CLOSED_UNFILLED, should_apply
from src.autotp.core.strategy.common import base_query, calc_qty
from src.autotp.core.utils.idempotency import gen_order_id
from src.autotp.core.utils.prices import normalize_double, now_ms
from src.autotp.data.storage.base import OrderStore
from src.autotp.exchanges.base.exchange import ExchangeGateway

log = logging.getLogger(__name__)

# recent trades checked for fill confirmation
TRADE_LIST_LIMIT = 5


@dataclass(slots=True)
class ApplyStats:
    canceled: int = 0
    closed: int = 0
    opened: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass(slots=True)
class SyncStats:
    checked: int = 0
    confirmed: int = 0
    paired: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


class OrderReconciler:
    """
    Keeps the local order record consistent with the venue.

    apply():
      - cancels (re-checked against the venue first)
      - protective closes (one SL / one TP per parent)
      - opens (final qty = max(base_qty, quote_qty / price))
      every item is independent: a failure is logged and the batch goes on

    sync_all():
      - status resync of every active local order
      - pairing of fill-confirmed SL / TP orders with their parents (P/L)

    IMPORTANT:
      - strategy intents are never mutated: confirmed rows are new objects
      - a row is created only after the venue accepted the order
      - statuses only move forward (state_machine.should_apply)
    """

    def __init__(
        self,
        *,
        params: BotParams,
        store: OrderStore,
        exchange: ExchangeGateway,
        events: Optional[OrderEventLog] = None,
        clock: Callable[[], int] = now_ms,
        logger: logging.Logger | None = None,
    ):
        self.params = params
        self.store = store
        self.exchange = exchange
        self.events = events or OrderEventLog()
        self.clock = clock
        self.logger = logger or log

    # ------------------------------------------------------------------
    # Batch application
    # ------------------------------------------------------------------

    def apply(self, batch: TradeOrders, ticker: Ticker) -> ApplyStats:
        stats = ApplyStats()

        for o in batch.cancel_orders:
            try:
                if self._cancel(o):
                    stats.canceled += 1
                else:
                    stats.skipped += 1
            except Exception:
                stats.failed += 1
                self.logger.exception("[OMS][CANCEL] failed id=%s", o.id)

        for o in batch.close_orders:
            try:
                if self._close(o):
                    stats.closed += 1
                else:
                    stats.skipped += 1
            except Exception:
                stats.failed += 1
                self.logger.exception("[OMS][CLOSE] failed parent=%s type=%s", o.open_order_id, o.type)

        for o in batch.open_orders:
            try:
                if self._open(o, ticker):
                    stats.opened += 1
                else:
                    stats.skipped += 1
            except Exception:
                stats.failed += 1
                self.logger.exception("[OMS][OPEN] failed side=%s price=%s", o.side, o.open_price)

        if stats.canceled or stats.closed or stats.opened or stats.failed:
            self.logger.info(
                "[OMS][APPLY] canceled=%d closed=%d opened=%d skipped=%d failed=%d",
                stats.canceled, stats.closed, stats.opened, stats.skipped, stats.failed,
            )
        return stats

    def _cancel(self, order: Order) -> bool:
        local = self.store.get_order_by_id(order.id) if order.id else None
        if local is None or not local.is_active:
            return False

        # the order may have resolved itself since the strategy looked at it
        self.sync_status(local)
        local = self.store.get_order_by_id(order.id)
        if local is None or not local.is_active or local.status != OrderStatus.NEW:
            return False

        canceled = self.exchange.cancel_order(local)
        if canceled is None:
            self.logger.warning("[OMS][CANCEL] venue did not cancel id=%s ref=%s", local.id, local.ref_id)
            return False

        self._mark_canceled(local)
        return True

    def _close(self, order: Order) -> bool:
        parent = self.store.get_order_by_id(order.open_order_id)
        if parent is None or not parent.is_active or parent.status != OrderStatus.FILLED:
            self.logger.warning("[OMS][CLOSE] parent %s not an open position, skip", order.open_order_id)
            return False

        existing = self.store.get_sl_order(parent.id) if order.is_sl else self.store.get_tp_order(parent.id)
        if existing is not None:
            self.logger.debug("[OMS][CLOSE] parent %s already has %s id=%s", parent.id, existing.type, existing.id)
            return False

        intent = replace(order, id=gen_order_id(self.params.bot_id), ref_id="", status=OrderStatus.NEW)
        confirmed = self.exchange.open_stop_order(intent)
        if confirmed is None:
            self.logger.warning("[OMS][CLOSE] rejected parent=%s type=%s", parent.id, order.type)
            return False

        confirmed = replace(confirmed, open_time=confirmed.open_time or self.clock())
        self.store.create_order(confirmed)
        self.events.new(confirmed)
        return True

    def _open(self, order: Order, ticker: Ticker) -> bool:
        qty = calc_qty(self.params, ticker.price) or order.qty
        if qty <= 0:
            self.logger.warning("[OMS][OPEN] zero quantity, skip side=%s", order.side)
            return False

        intent = replace(order, id=gen_order_id(self.params.bot_id), ref_id="", qty=qty, status=OrderStatus.NEW)
        if intent.type == OrderType.MARKET:
            confirmed = self.exchange.open_market_order(intent)
        else:
            confirmed = self.exchange.open_limit_order(intent)

        if confirmed is None:
            self.logger.warning("[OMS][OPEN] rejected side=%s price=%s qty=%s", order.side, order.open_price, qty)
            return False

        confirmed = replace(confirmed, open_time=confirmed.open_time or self.clock())
        self.store.create_order(confirmed)
        self.events.new(confirmed)
        if confirmed.status == OrderStatus.FILLED:
            self.events.status(confirmed)
        return True

    def _mark_canceled(self, order: Order) -> Order:
        now = self.clock()
        updated = replace(order, status=OrderStatus.CANCELED, update_time=now, close_time=now)
        self.store.update_order(updated)
        self.events.status(updated)
        return updated

    # ------------------------------------------------------------------
    # Status resync
    # ------------------------------------------------------------------

    def sync_status(self, order: Order) -> bool:
        """
        Pull the venue status of one order into the store.
        Returns True when the order is fill-confirmed: FILLED, still active and
        present in the venue's recent trade list.
        """
        try:
            remote = self.exchange.get_order(order)
        except Exception as e:
            self.logger.warning("[RECON] get_order failed id=%s: %s", order.id, e)
            return False
        if remote is None:
            return False

        now = self.clock()
        p = self.params

        if (
            remote.status == OrderStatus.NEW
            and order.status == OrderStatus.NEW
            and p.time_sec_cancel > 0
            and order.open_time > 0
            and now - order.open_time > p.time_sec_cancel * 1000
        ):
            try:
                canceled = self.exchange.cancel_order(order)
            except Exception as e:
                self.logger.warning("[RECON] stale cancel failed id=%s: %s", order.id, e)
                return False
            if canceled is not None:
                self._mark_canceled(order)
                self.logger.info("[RECON] canceled stale id=%s after %ss", order.id, p.time_sec_cancel)
            return False

        current = order
        if remote.status != order.status:
            decision = should_apply(order.status, remote.status)
            if decision.allow:
                current = replace(order, status=remote.status, update_time=now)
                if remote.status.value in CLOSED_UNFILLED:
                    current = replace(current, close_time=now)
                if remote.status == OrderStatus.FILLED:
                    current = self._with_commission(current)
                self.store.update_order(current)
                self.events.status(current)
            else:
                self.logger.debug("[RECON] id=%s %s", order.id, decision.reason)

        if current.status != OrderStatus.FILLED or current.close_time != 0 or not current.ref_id:
            return False

        try:
            trades = self.exchange.get_trade_list(current.symbol, TRADE_LIST_LIMIT)
        except Exception as e:
            self.logger.warning("[RECON] trade list failed: %s", e)
            return False
        return any(t.ref_id == current.ref_id for t in trades)

    def _with_commission(self, order: Order) -> Order:
        try:
            commission = self.exchange.get_commission(order.symbol, order.ref_id)
        except Exception as e:
            self.logger.warning("[RECON] commission fetch failed id=%s: %s", order.id, e)
            return order
        if commission is None:
            return order
        return replace(order, commission=commission)

    # ------------------------------------------------------------------
    # Protective pairing
    # ------------------------------------------------------------------

    def sync_protective(self, order: Order) -> bool:
        """
        Close the parent of a fill-confirmed SL / TP and book its P/L.
        A protective order without a parent is closed locally (anomaly).
        """
        current = self.store.get_order_by_id(order.id)
        if current is None or not current.is_protective or not current.is_active:
            return False

        now = self.clock()
        parent = self.store.get_order_by_id(current.open_order_id)
        if parent is None:
            orphan = replace(current, close_time=now, update_time=now)
            self.store.update_order(orphan)
            self.events.anomaly(orphan, "parent not found")
            self.logger.warning("[RECON] protective id=%s has no parent %s, closed locally", current.id, current.open_order_id)
            return False

        close_price = current.open_price
        if parent.is_long:
            gross = (close_price - parent.open_price) * current.qty
        else:
            gross = (parent.open_price - close_price) * current.qty
        pl = normalize_double(gross - parent.commission - current.commission, self.params.price_digits)

        closed_parent = replace(
            parent,
            close_order_id=current.id,
            close_price=close_price,
            close_time=now,
            update_time=now,
            pl=pl,
        )
        closed_protective = replace(
            current,
            close_order_id=current.id,
            close_price=close_price,
            close_time=now,
            update_time=now,
        )
        self.store.update_order(closed_parent)
        self.store.update_order(closed_protective)
        self.events.closed(closed_parent, closed_protective)

        self._cancel_sibling(parent, closed_protective)
        return True

    def _cancel_sibling(self, parent: Order, filled: Order) -> None:
        """The other protective order of a closed parent must not stay on the book."""
        sibling = self.store.get_tp_order(parent.id) if filled.is_sl else self.store.get_sl_order(parent.id)
        if sibling is None or not sibling.is_active or sibling.status != OrderStatus.NEW:
            return
        try:
            if self.exchange.cancel_order(sibling) is not None:
                self._mark_canceled(sibling)
        except Exception as e:
            self.logger.warning("[RECON] sibling cancel failed id=%s: %s", sibling.id, e)

    # ------------------------------------------------------------------
    # Full pass
    # ------------------------------------------------------------------

    def sync_all(self) -> SyncStats:
        """
        Resync every active local order: entries first, so a parent is FILLED
        in the store before its protective order is paired.
        """
        stats = SyncStats()
        active = self.store.get_active_orders(base_query(self.params))
        active.sort(key=lambda o: (o.is_protective, o.open_time))

        for o in active:
            stats.checked += 1
            try:
                if not self.sync_status(o):
                    continue
                stats.confirmed += 1
                if o.is_protective and self.sync_protective(o):
                    stats.paired += 1
            except Exception as e:
                stats.failed += 1
                stats.errors.append(f"{o.id}: {e!r}")
                self.logger.exception("[RECON] sync failed id=%s", o.id)

        if stats.paired or stats.failed:
            self.logger.info(
                "[RECON] checked=%d confirmed=%d paired=%d failed=%d",
                stats.checked, stats.confirmed, stats.paired, stats.failed,
            )
        return stats
