"""
Tests for PostgreSQLOrderStore SQL generation and row mapping (pool is mocked).
"""
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from src.autotp.core.models.enums import OrderStatus, OrderType, PosSide, Side
from src.autotp.core.models.order import QueryOrder
from src.autotp.data.storage.postgres.storage import COLUMNS, PostgreSQLOrderStore, order_to_row, row_to_order


@pytest.fixture
def pool():
    return MagicMock()


@pytest.fixture
def conn(pool):
    return pool.connection.return_value.__enter__.return_value


@pytest.fixture
def cur(conn):
    c = conn.cursor.return_value.__enter__.return_value
    c.description = [(name,) for name in COLUMNS]
    c.fetchall.return_value = []
    return c


@pytest.fixture
def pg(pool):
    return PostgreSQLOrderStore(pool)


@pytest.fixture
def qo():
    return QueryOrder(bot_id=1, exchange="BINANCE", symbol="BTCUSDT")


def executed(cur):
    sql, params = cur.execute.call_args.args
    return " ".join(sql.split()), params


class TestMapping:

    def test_row_round_trip(self, make_order):
        o = make_order(id="a", pos_side=PosSide.LONG, status=OrderStatus.FILLED)
        row = order_to_row(o)
        assert row["side"] == "BUY" and row["pos_side"] == "LONG" and row["status"] == "FILLED"
        assert row_to_order(row) == o

    def test_empty_pos_side(self, make_order):
        row = order_to_row(make_order(id="a"))
        row["pos_side"] = None
        assert row_to_order(row).pos_side == PosSide.NONE


class TestCommands:

    def test_insert(self, pg, conn, cur, make_order):
        pg.create_order(make_order(id="a"))
        sql, params = executed(cur)
        assert sql.startswith("INSERT INTO orders")
        assert params["id"] == "a" and params["type"] == "LIMIT"
        conn.commit.assert_called_once()

    def test_update_by_id(self, pg, cur, make_order):
        pg.update_order(make_order(id="a", status=OrderStatus.CANCELED))
        sql, params = executed(cur)
        assert sql.startswith("UPDATE orders SET")
        assert sql.endswith("WHERE id = %(id)s")
        assert params["status"] == "CANCELED"

    def test_ddl(self, pg, conn, cur):
        pg.exec_ddl("CREATE TABLE x ()")
        cur.execute.assert_called_once_with("CREATE TABLE x ()")
        conn.commit.assert_called_once()


class TestQueries:

    def test_get_by_id_maps_row(self, pg, cur, make_order):
        o = make_order(id="a", type=OrderType.SL, side=Side.SELL, open_order_id="p")
        cur.fetchall.return_value = [tuple(order_to_row(o)[c] for c in COLUMNS)]
        assert pg.get_order_by_id("a") == o

    def test_missing(self, pg, cur):
        assert pg.get_order_by_id("zzz") is None

    def test_sl_lookup_excludes_dead_statuses(self, pg, cur):
        pg.get_sl_order("p")
        sql, params = executed(cur)
        assert "type IN ('STOP_LOSS_LIMIT', 'STOP')" in sql
        assert "status NOT IN ('CANCELED', 'EXPIRED', 'REJECTED')" in sql
        assert params == {"open_order_id": "p"}

    def test_query_filters(self, pg, cur, qo):
        pg.get_filled_orders(replace(qo, pos_side=PosSide.SHORT))
        sql, params = executed(cur)
        assert "pos_side = %(pos_side)s" in sql
        assert "status = 'FILLED'" in sql
        assert sql.endswith("ORDER BY open_time DESC")
        assert params["pos_side"] == "SHORT"
        assert "side" not in params

    def test_nearest(self, pg, cur, qo):
        pg.get_nearest_order(replace(qo, side=Side.BUY, open_price=101.5))
        sql, params = executed(cur)
        assert "ORDER BY ABS(open_price - %(target)s) ASC LIMIT 1" in sql
        assert params["target"] == 101.5

    def test_slippage_band(self, pg, cur, qo):
        pg.get_active_order(replace(qo, side=Side.BUY, open_price=100.0), 0.01)
        sql, params = executed(cur)
        assert "open_price BETWEEN %(lo)s AND %(hi)s" in sql
        assert params["lo"] == pytest.approx(99.0)
        assert params["hi"] == pytest.approx(101.0)

    def test_tp_orders_lowest_first(self, pg, cur, qo):
        pg.get_tp_orders(replace(qo, side=Side.SELL))
        sql, params = executed(cur)
        assert sql.endswith("ORDER BY open_price ASC")
        assert params["side"] == "SELL"

    @pytest.mark.parametrize("side,order_by", [(Side.BUY, "zone_price ASC"), (Side.SELL, "zone_price DESC")])
    def test_entry_orders_sorting(self, pg, cur, qo, side, order_by):
        pg.get_entry_orders(replace(qo, side=side))
        sql, _ = executed(cur)
        assert "type IN ('LIMIT', 'MARKET')" in sql
        assert sql.endswith(f"ORDER BY {order_by}")

    def test_empty_zone(self, pg, cur, qo, make_order):
        assert pg.is_empty_zone(replace(qo, side=Side.BUY, zone_price=110.0))
        cur.fetchall.return_value = [tuple(order_to_row(make_order(id="z"))[c] for c in COLUMNS)]
        assert not pg.is_empty_zone(replace(qo, side=Side.BUY, zone_price=110.0))
