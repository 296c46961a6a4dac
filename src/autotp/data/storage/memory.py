# src/autotp/data/storage/memory.py
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable, Optional

from src.autotp.core.models.enums import OrderStatus, OrderType, PROTECTIVE_TYPES, Side, TP_TYPES
from src.autotp.core.models.order import Order, QueryOrder
from src.autotp.core.oms.state_machine import CLOSED_UNFILLED
from src.autotp.data.storage.base import OrderStore

log = logging.getLogger(__name__)

_ENTRY_TYPES = frozenset({OrderType.LIMIT.value, OrderType.MARKET.value})


def _v(x) -> str:
    return x.value if hasattr(x, "value") else str(x)


def _is_live(o: Order) -> bool:
    return o.close_time == 0 and _v(o.status) not in CLOSED_UNFILLED


class MemoryOrderStore(OrderStore):
    """
    In-process order record for paper runs (DRY_RUN without PG_DSN) and tests.
    Stores copies, returns copies: callers never alias stored rows.
    """

    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}

    # ------------------------------------------------------------------
    # commands
    # ------------------------------------------------------------------

    def create_order(self, order: Order) -> None:
        if not order.id:
            raise ValueError("order.id is required")
        if order.id in self._orders:
            raise ValueError(f"duplicate order id: {order.id}")
        self._orders[order.id] = replace(order)

    def update_order(self, order: Order) -> None:
        if order.id not in self._orders:
            log.warning("[STORE] update of unknown order id=%s ignored", order.id)
            return
        self._orders[order.id] = replace(order)

    def all_orders(self) -> list[Order]:
        return [replace(o) for o in self._orders.values()]

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _select(
        self,
        qo: QueryOrder,
        pred: Callable[[Order], bool],
        *,
        key: Optional[Callable[[Order], object]] = None,
        reverse: bool = False,
    ) -> list[Order]:
        out: list[Order] = []
        for o in self._orders.values():
            if o.bot_id != qo.bot_id or o.exchange != qo.exchange or o.symbol != qo.symbol:
                continue
            if qo.side is not None and _v(o.side) != _v(qo.side):
                continue
            if qo.pos_side is not None and _v(o.pos_side) != _v(qo.pos_side):
                continue
            if qo.type is not None and _v(o.type) != _v(qo.type):
                continue
            if qo.status is not None and _v(o.status) != _v(qo.status):
                continue
            if pred(o):
                out.append(o)
        if key is not None:
            out.sort(key=key, reverse=reverse)
        return [replace(o) for o in out]

    @staticmethod
    def _first(orders: Iterable[Order]) -> Optional[Order]:
        for o in orders:
            return o
        return None

    # ------------------------------------------------------------------
    # single-order lookups
    # ------------------------------------------------------------------

    def get_order_by_id(self, order_id: str) -> Optional[Order]:
        o = self._orders.get(order_id)
        return replace(o) if o else None

    def _get_protective(self, open_order_id: str, types: frozenset[str]) -> Optional[Order]:
        for o in self._orders.values():
            if o.open_order_id == open_order_id and _v(o.type) in types and _v(o.status) not in CLOSED_UNFILLED:
                return replace(o)
        return None

    def get_sl_order(self, open_order_id: str) -> Optional[Order]:
        return self._get_protective(open_order_id, PROTECTIVE_TYPES - TP_TYPES)

    def get_tp_order(self, open_order_id: str) -> Optional[Order]:
        return self._get_protective(open_order_id, TP_TYPES)

    # ------------------------------------------------------------------
    # proximity
    # ------------------------------------------------------------------

    def is_empty_zone(self, qo: QueryOrder) -> bool:
        found = self._select(
            qo,
            lambda o: _is_live(o) and _v(o.type) in _ENTRY_TYPES and o.zone_price == qo.zone_price,
        )
        return not found

    def get_active_order(self, qo: QueryOrder, slippage: float = 0.0) -> Optional[Order]:
        if slippage > 0:
            lo = qo.open_price - qo.open_price * slippage
            hi = qo.open_price + qo.open_price * slippage
            in_band = lambda o: lo <= o.open_price <= hi
        else:
            in_band = lambda o: o.open_price == qo.open_price

        return self._first(self._select(
            qo,
            lambda o: _is_live(o) and _v(o.type) == OrderType.LIMIT.value and in_band(o),
        ))

    def get_nearest_order(self, qo: QueryOrder) -> Optional[Order]:
        orders = self._select(qo, _is_live)
        if not orders:
            return None
        return min(orders, key=lambda o: abs(o.open_price - qo.open_price))

    # ------------------------------------------------------------------
    # lists
    # ------------------------------------------------------------------

    def get_active_orders(self, qo: QueryOrder) -> list[Order]:
        return self._select(qo, _is_live, key=lambda o: o.open_time)

    def get_entry_orders(self, qo: QueryOrder) -> list[Order]:
        pred = lambda o: _is_live(o) and _v(o.type) in _ENTRY_TYPES
        if qo.open_time > 0:
            return self._select(qo, pred, key=lambda o: o.open_time, reverse=True)
        desc = qo.side is not None and _v(qo.side) == Side.SELL.value
        return self._select(qo, pred, key=lambda o: o.zone_price, reverse=desc)

    def get_filled_orders(self, qo: QueryOrder) -> list[Order]:
        return self._select(
            qo,
            lambda o: _is_live(o) and _v(o.type) in _ENTRY_TYPES and _v(o.status) == OrderStatus.FILLED.value,
            key=lambda o: o.open_time,
            reverse=True,
        )

    def get_new_limit_orders(self, qo: QueryOrder) -> list[Order]:
        return self._select(
            qo,
            lambda o: _is_live(o) and _v(o.type) == OrderType.LIMIT.value and _v(o.status) == OrderStatus.NEW.value,
            key=lambda o: o.open_time,
            reverse=True,
        )

    def get_new_stop_orders(self, qo: QueryOrder) -> list[Order]:
        return self._select(
            qo,
            lambda o: _is_live(o) and _v(o.type) in PROTECTIVE_TYPES and _v(o.status) == OrderStatus.NEW.value,
            key=lambda o: o.open_time,
            reverse=True,
        )

    def get_tp_orders(self, qo: QueryOrder) -> list[Order]:
        return self._select(
            qo,
            lambda o: _is_live(o) and _v(o.type) in TP_TYPES,
            key=lambda o: o.open_price,
        )
