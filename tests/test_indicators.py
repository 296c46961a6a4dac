"""
Tests for moving averages, volatility proxy, HL ratio and trend classification.
"""
import pytest

from src.autotp.core.models.enums import Trend
from src.autotp.core.models.params import TrendThresholds
from src.autotp.core.utils.indicators import atr, get_closes, get_highs_lows, get_hl_ratio, get_trend, wma


class TestWMA:

    def test_single_window(self):
        assert wma([1, 2, 3], 3) == [pytest.approx(14 / 6)]

    def test_sliding_windows(self):
        assert wma([1, 2, 3, 4], 2) == pytest.approx([5 / 3, 8 / 3, 11 / 3])

    def test_short_input_is_empty(self):
        assert wma([1, 2], 3) == []

    def test_invalid_period(self):
        with pytest.raises(ValueError):
            wma([1, 2, 3], 0)


class TestBars:

    def test_atr_is_band_width(self):
        assert atr([110] * 5, [100] * 5, 3) == pytest.approx(10)

    def test_atr_not_enough_bars(self):
        assert atr([110], [100], 3) == 0.0

    def test_closes_highs_lows(self, make_bars):
        bars = make_bars([(1, 3, 0.5, 2), (2, 4, 1.5, 3)])
        assert get_closes(bars) == [2, 3]
        assert get_highs_lows(bars) == ([3, 4], [0.5, 1.5])


class TestHLRatio:

    def test_middle(self, make_bars):
        bars = make_bars([(105, 110, 100, 105)] * 3)
        assert get_hl_ratio(bars, 105) == pytest.approx(0.5)

    def test_at_low(self, make_bars):
        bars = make_bars([(105, 110, 100, 105), (102, 108, 101, 104)])
        assert get_hl_ratio(bars, 100) == 0.0

    def test_flat_range(self, make_bars):
        bars = make_bars([(100, 100, 100, 100)] * 3)
        assert get_hl_ratio(bars, 100) == 0.5

    def test_empty(self):
        assert get_hl_ratio([], 100) == 0.5


class TestTrend:

    def test_strong_up(self):
        closes = [100 + i for i in range(10)]
        assert get_trend(closes, 3) == Trend.STRONG_UP

    def test_up(self):
        closes = [100 + 0.1 * i for i in range(10)]
        assert get_trend(closes, 3) == Trend.UP

    def test_strong_down(self):
        closes = [200 - i for i in range(10)]
        assert get_trend(closes, 3) == Trend.STRONG_DOWN

    def test_flat(self):
        assert get_trend([100] * 10, 3) == Trend.NEUTRAL

    def test_not_enough_data(self):
        assert get_trend([100, 101, 102], 3) == Trend.NEUTRAL

    def test_thresholds_are_configurable(self):
        closes = [100 + 0.1 * i for i in range(10)]
        strict = TrendThresholds(up_pct=0.5, strong_up_pct=1.0)
        assert get_trend(closes, 3, strict) == Trend.NEUTRAL
