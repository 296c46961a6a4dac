"""
Tests for point offsets, SL / TP price helpers and order ids.
"""
import pytest

from src.autotp.core.models.enums import Side
from src.autotp.core.utils.idempotency import gen_order_id, make_client_order_id
from src.autotp.core.utils.prices import (
    calc_sl_stop,
    calc_stop_lower_ticker,
    calc_stop_upper_ticker,
    calc_tp_stop,
    normalize_double,
    reverse_side,
)


class TestOffsets:

    def test_upper_lower(self):
        assert calc_stop_upper_ticker(100.0, 200, 2) == 102.0
        assert calc_stop_lower_ticker(100.0, 200, 2) == 98.0

    def test_points_follow_digits(self):
        assert calc_stop_upper_ticker(1.2345, 5, 4) == 1.235

    def test_normalize(self):
        assert normalize_double(1.23456, 2) == 1.23

    def test_reverse_side(self):
        assert reverse_side(Side.BUY) == Side.SELL
        assert reverse_side(Side.SELL) == Side.BUY


class TestProtectivePrices:
    """`side` is the side of the protective order itself."""

    def test_sell_sl_below(self):
        assert calc_sl_stop(Side.SELL, 100.0, 100, 2) == 99.0

    def test_buy_sl_above(self):
        assert calc_sl_stop(Side.BUY, 100.0, 100, 2) == 101.0

    def test_sell_tp_above(self):
        assert calc_tp_stop(Side.SELL, 100.0, 200, 2) == 102.0

    def test_buy_tp_below(self):
        assert calc_tp_stop(Side.BUY, 100.0, 200, 2) == 98.0


class TestOrderIds:

    def test_client_order_id_is_stable(self):
        a = make_client_order_id("1", "BTCUSDT", "x")
        assert a == make_client_order_id("1", "BTCUSDT", "x")
        assert len(a) == 32

    def test_gen_order_id_unique_within_same_ms(self):
        ids = {gen_order_id(7, ts_ms=1000) for _ in range(50)}
        assert len(ids) == 50

    @pytest.mark.parametrize("max_len", [16, 36])
    def test_max_len(self, max_len):
        assert len(make_client_order_id("a", max_len=max_len)) == max_len
