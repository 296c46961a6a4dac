# src/autotp/data/storage/postgres/storage.py
from __future__ import annotations

import logging
from typing import Any, Optional

from psycopg_pool import ConnectionPool

from src.autotp.core.models.enums import OrderStatus, OrderType, PosSide, Side
from src.autotp.core.models.order import Order, QueryOrder
from src.autotp.data.storage.base import OrderStore

logger = logging.getLogger(__name__)


COLUMNS: tuple[str, ...] = (
    "id", "ref_id", "bot_id", "exchange", "symbol",
    "side", "pos_side", "type", "status",
    "qty", "open_price", "stop_price", "zone_price", "sl_price", "tp_price",
    "close_price", "commission", "pl",
    "open_time", "update_time", "close_time",
    "open_order_id", "close_order_id",
)

_LIVE = "close_time = 0 AND status NOT IN ('CANCELED', 'EXPIRED', 'REJECTED')"
_ENTRY = "type IN ('LIMIT', 'MARKET')"
_PROTECTIVE = "type IN ('STOP_LOSS_LIMIT', 'TAKE_PROFIT_LIMIT', 'STOP', 'TAKE_PROFIT')"
_SL = "type IN ('STOP_LOSS_LIMIT', 'STOP')"
_TP = "type IN ('TAKE_PROFIT_LIMIT', 'TAKE_PROFIT')"


def _v(x) -> Any:
    return x.value if hasattr(x, "value") else x


def order_to_row(order: Order) -> dict[str, Any]:
    return {c: _v(getattr(order, c)) for c in COLUMNS}


def row_to_order(row: dict[str, Any]) -> Order:
    data = dict(row)
    data["side"] = Side(data["side"])
    data["pos_side"] = PosSide(data.get("pos_side") or "")
    data["type"] = OrderType(data["type"])
    data["status"] = OrderStatus(data["status"])
    return Order(**{c: data[c] for c in COLUMNS})


class PostgreSQLOrderStore(OrderStore):
    """
    PostgreSQL order record (table `orders`, see ddl.sql).
    """

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    # ======================================================================
    # HELPERS
    # ======================================================================

    def exec_ddl(self, ddl_sql: str) -> None:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(ddl_sql)
            conn.commit()

    def _exec(self, query: str, params: dict[str, Any]) -> None:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
            conn.commit()

    def _fetch_all(self, query: str, params: dict[str, Any]) -> list[Order]:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                rows = cur.fetchall() or []
                cols = [d[0] for d in cur.description]
        return [row_to_order(dict(zip(cols, r))) for r in rows]

    def _fetch_one(self, query: str, params: dict[str, Any]) -> Optional[Order]:
        orders = self._fetch_all(query, params)
        return orders[0] if orders else None

    @staticmethod
    def _where(qo: QueryOrder, *extra: str) -> tuple[str, dict[str, Any]]:
        """WHERE clause for the common (bot, exchange, symbol, side?, ...) predicate."""
        parts = ["bot_id = %(bot_id)s", "exchange = %(exchange)s", "symbol = %(symbol)s"]
        params: dict[str, Any] = {
            "bot_id": qo.bot_id,
            "exchange": qo.exchange,
            "symbol": qo.symbol,
        }
        if qo.side is not None:
            parts.append("side = %(side)s")
            params["side"] = _v(qo.side)
        if qo.pos_side is not None:
            parts.append("pos_side = %(pos_side)s")
            params["pos_side"] = _v(qo.pos_side)
        if qo.type is not None:
            parts.append("type = %(type)s")
            params["type"] = _v(qo.type)
        if qo.status is not None:
            parts.append("status = %(status)s")
            params["status"] = _v(qo.status)
        parts.extend(extra)
        return " AND ".join(parts), params

    def _select(self, qo: QueryOrder, *extra: str, order_by: str = "", limit: int = 0,
                params: Optional[dict[str, Any]] = None) -> list[Order]:
        where, p = self._where(qo, *extra)
        if params:
            p.update(params)
        sql = f"SELECT {', '.join(COLUMNS)} FROM orders WHERE {where}"
        if order_by:
            sql += f" ORDER BY {order_by}"
        if limit:
            sql += f" LIMIT {int(limit)}"
        return self._fetch_all(sql, p)

    # ======================================================================
    # COMMANDS
    # ======================================================================

    def create_order(self, order: Order) -> None:
        cols = ", ".join(COLUMNS)
        vals = ", ".join(f"%({c})s" for c in COLUMNS)
        self._exec(f"INSERT INTO orders ({cols}) VALUES ({vals})", order_to_row(order))

    def update_order(self, order: Order) -> None:
        sets = ", ".join(f"{c} = %({c})s" for c in COLUMNS if c != "id")
        self._exec(f"UPDATE orders SET {sets} WHERE id = %(id)s", order_to_row(order))

    # ======================================================================
    # SINGLE-ORDER LOOKUPS
    # ======================================================================

    def get_order_by_id(self, order_id: str) -> Optional[Order]:
        return self._fetch_one(
            f"SELECT {', '.join(COLUMNS)} FROM orders WHERE id = %(id)s",
            {"id": order_id},
        )

    def _get_protective(self, open_order_id: str, type_clause: str) -> Optional[Order]:
        return self._fetch_one(
            f"""
            SELECT {', '.join(COLUMNS)} FROM orders
            WHERE open_order_id = %(open_order_id)s
              AND {type_clause}
              AND status NOT IN ('CANCELED', 'EXPIRED', 'REJECTED')
            ORDER BY open_time DESC
            LIMIT 1
            """,
            {"open_order_id": open_order_id},
        )

    def get_sl_order(self, open_order_id: str) -> Optional[Order]:
        return self._get_protective(open_order_id, _SL)

    def get_tp_order(self, open_order_id: str) -> Optional[Order]:
        return self._get_protective(open_order_id, _TP)

    # ======================================================================
    # PROXIMITY
    # ======================================================================

    def is_empty_zone(self, qo: QueryOrder) -> bool:
        found = self._select(
            qo, _LIVE, _ENTRY, "zone_price = %(zone_price)s",
            limit=1, params={"zone_price": qo.zone_price},
        )
        return not found

    def get_active_order(self, qo: QueryOrder, slippage: float = 0.0) -> Optional[Order]:
        if slippage > 0:
            band = "open_price BETWEEN %(lo)s AND %(hi)s"
            params = {
                "lo": qo.open_price - qo.open_price * slippage,
                "hi": qo.open_price + qo.open_price * slippage,
            }
        else:
            band = "open_price = %(open_price)s"
            params = {"open_price": qo.open_price}

        orders = self._select(qo, _LIVE, "type = 'LIMIT'", band, limit=1, params=params)
        return orders[0] if orders else None

    def get_nearest_order(self, qo: QueryOrder) -> Optional[Order]:
        orders = self._select(
            qo, _LIVE,
            order_by="ABS(open_price - %(target)s) ASC",
            limit=1,
            params={"target": qo.open_price},
        )
        return orders[0] if orders else None

    # ======================================================================
    # LISTS
    # ======================================================================

    def get_active_orders(self, qo: QueryOrder) -> list[Order]:
        return self._select(qo, _LIVE, order_by="open_time ASC")

    def get_entry_orders(self, qo: QueryOrder) -> list[Order]:
        if qo.open_time > 0:
            order_by = "open_time DESC"
        elif qo.side is not None and _v(qo.side) == Side.SELL.value:
            order_by = "zone_price DESC"
        else:
            order_by = "zone_price ASC"
        return self._select(qo, _LIVE, _ENTRY, order_by=order_by)

    def get_filled_orders(self, qo: QueryOrder) -> list[Order]:
        return self._select(qo, _LIVE, _ENTRY, "status = 'FILLED'", order_by="open_time DESC")

    def get_new_limit_orders(self, qo: QueryOrder) -> list[Order]:
        return self._select(qo, _LIVE, "type = 'LIMIT'", "status = 'NEW'", order_by="open_time DESC")

    def get_new_stop_orders(self, qo: QueryOrder) -> list[Order]:
        return self._select(qo, _LIVE, _PROTECTIVE, "status = 'NEW'", order_by="open_time DESC")

    def get_tp_orders(self, qo: QueryOrder) -> list[Order]:
        return self._select(qo, _LIVE, _TP, order_by="open_price ASC")
