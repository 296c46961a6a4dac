"""
Tests for the in-memory order record and its query semantics.
"""
from dataclasses import replace

import pytest

from src.autotp.core.models.enums import OrderStatus, OrderType, Side
from src.autotp.core.models.order import QueryOrder


@pytest.fixture
def qo():
    return QueryOrder(bot_id=1, exchange="BINANCE", symbol="BTCUSDT")


class TestCommands:

    def test_create_and_get(self, store, make_order):
        o = make_order(id="a")
        store.create_order(o)
        assert store.get_order_by_id("a") == o

    def test_create_requires_id(self, store, make_order):
        with pytest.raises(ValueError):
            store.create_order(make_order(id=""))

    def test_duplicate_id(self, store, make_order):
        store.create_order(make_order(id="a"))
        with pytest.raises(ValueError):
            store.create_order(make_order(id="a"))

    def test_returned_rows_are_copies(self, store, make_order):
        store.create_order(make_order(id="a"))
        got = store.get_order_by_id("a")
        got.status = OrderStatus.FILLED
        assert store.get_order_by_id("a").status == OrderStatus.NEW

    def test_update_unknown_is_ignored(self, store, make_order):
        store.update_order(make_order(id="zzz"))
        assert store.get_order_by_id("zzz") is None


class TestQueries:

    def test_scoped_by_bot_and_symbol(self, store, make_order, qo):
        store.create_order(make_order())
        store.create_order(make_order(bot_id=2))
        store.create_order(make_order(symbol="ETHUSDT"))
        assert len(store.get_active_orders(qo)) == 1

    def test_active_excludes_closed_and_canceled(self, store, make_order, qo):
        store.create_order(make_order(id="live"))
        store.create_order(make_order(id="closed", status=OrderStatus.FILLED, close_time=5))
        store.create_order(make_order(id="canceled", status=OrderStatus.CANCELED))
        assert [o.id for o in store.get_active_orders(qo)] == ["live"]

    def test_active_order_exact_and_slippage(self, store, make_order, qo):
        store.create_order(make_order(open_price=100.5))
        q = replace(qo, side=Side.BUY, open_price=100.0)
        assert store.get_active_order(q) is None
        assert store.get_active_order(q, 0.01) is not None

    def test_active_order_ignores_other_side(self, store, make_order, qo):
        store.create_order(make_order(side=Side.SELL, open_price=100.0))
        assert store.get_active_order(replace(qo, side=Side.BUY, open_price=100.0)) is None

    def test_empty_zone(self, store, make_order, qo):
        store.create_order(make_order(zone_price=110.0))
        assert not store.is_empty_zone(replace(qo, side=Side.BUY, zone_price=110.0))
        assert store.is_empty_zone(replace(qo, side=Side.BUY, zone_price=120.0))

    def test_nearest(self, store, make_order, qo):
        store.create_order(make_order(id="far", open_price=90.0))
        store.create_order(make_order(id="near", open_price=101.0))
        assert store.get_nearest_order(replace(qo, side=Side.BUY, open_price=100.0)).id == "near"

    def test_entry_orders_by_zone(self, store, make_order, qo):
        store.create_order(make_order(id="b1", zone_price=110.0))
        store.create_order(make_order(id="b2", type=OrderType.MARKET, status=OrderStatus.FILLED, zone_price=100.0))
        store.create_order(make_order(id="s1", side=Side.SELL, zone_price=110.0))
        store.create_order(make_order(id="s2", side=Side.SELL, zone_price=120.0))
        store.create_order(make_order(id="tp", side=Side.SELL, type=OrderType.TP, zone_price=130.0))
        assert [o.id for o in store.get_entry_orders(replace(qo, side=Side.BUY))] == ["b2", "b1"]
        assert [o.id for o in store.get_entry_orders(replace(qo, side=Side.SELL))] == ["s2", "s1"]

    def test_entry_orders_by_open_time(self, store, make_order, qo):
        store.create_order(make_order(id="old", open_time=1))
        store.create_order(make_order(id="new", open_time=2))
        got = store.get_entry_orders(replace(qo, side=Side.BUY, open_time=1))
        assert [o.id for o in got] == ["new", "old"]

    def test_filled_and_new_lists(self, store, make_order, qo):
        store.create_order(make_order(id="f1", status=OrderStatus.FILLED, open_time=1))
        store.create_order(make_order(id="f2", status=OrderStatus.FILLED, type=OrderType.MARKET, open_time=2))
        store.create_order(make_order(id="n1"))
        store.create_order(make_order(id="sl", side=Side.SELL, type=OrderType.SL, open_order_id="f1"))
        assert [o.id for o in store.get_filled_orders(qo)] == ["f2", "f1"]
        assert [o.id for o in store.get_new_limit_orders(qo)] == ["n1"]
        assert [o.id for o in store.get_new_stop_orders(qo)] == ["sl"]

    def test_protective_lookup_skips_canceled(self, store, make_order):
        store.create_order(make_order(id="sl1", side=Side.SELL, type=OrderType.SL, open_order_id="p",
                                      status=OrderStatus.CANCELED, close_time=5))
        assert store.get_sl_order("p") is None
        store.create_order(make_order(id="sl2", side=Side.SELL, type=OrderType.SL, open_order_id="p",
                                      status=OrderStatus.FILLED, close_time=5))
        assert store.get_sl_order("p").id == "sl2"
        assert store.get_tp_order("p") is None

    def test_tp_orders_lowest_first(self, store, make_order, qo):
        store.create_order(make_order(id="t1", side=Side.SELL, type=OrderType.TP, open_price=120.0))
        store.create_order(make_order(id="t2", side=Side.SELL, type=OrderType.TP, open_price=110.0))
        assert [o.id for o in store.get_tp_orders(qo)] == ["t2", "t1"]
        assert store.get_tp_orders(replace(qo, side=Side.BUY)) == []
