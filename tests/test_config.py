"""
Tests for YAML bot config loading and validation.
"""
import textwrap

import pytest

from src.autotp.config import ConfigError, load_bot_params, load_yaml, parse_bot_params, validate
from src.autotp.core.models.enums import OrderType, Product, StrategyName, View
from src.autotp.run_bot import main

GRID_YAML = """
bot:
  id: 7
  exchange: binance
  symbol: btcusdt
  product: spot
  strategy: grid
  view: L
  base_qty: 0.01
  lower_price: 20000
  upper_price: 30000
  grids: 20
  slippage: 0.001
  gap:
    open_limit: 150
"""


def write(tmp_path, text, name="bot.yaml"):
    path = tmp_path / name
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


class TestLoad:

    def test_grid_bot(self, tmp_path):
        p = load_bot_params(write(tmp_path, GRID_YAML))
        assert p.bot_id == 7
        assert p.exchange == "BINANCE"
        assert p.symbol == "BTCUSDT"
        assert p.product == Product.SPOT
        assert p.strategy == StrategyName.GRID
        assert p.view == View.LONG
        assert p.order_type == OrderType.LIMIT
        assert p.gap.open_limit == 150
        assert p.gap.sl_stop == 100

    def test_wrong_suffix(self, tmp_path):
        with pytest.raises(ConfigError):
            load_yaml(write(tmp_path, GRID_YAML, name="bot.json"))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_yaml(tmp_path / "nope.yaml")

    def test_root_must_be_mapping(self, tmp_path):
        with pytest.raises(ConfigError):
            load_yaml(write(tmp_path, "- a\n- b\n"))

    def test_missing_bot_section(self, tmp_path):
        with pytest.raises(ConfigError):
            load_bot_params(write(tmp_path, "other: 1\n"))


class TestParse:

    def _bot(self, **kw):
        bot = {"id": 1, "exchange": "binance", "symbol": "ETHUSDT", "base_qty": 1}
        bot.update(kw)
        return bot

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="unknown keys"):
            parse_bot_params(self._bot(bogus=1))

    def test_unknown_enum(self):
        with pytest.raises(ConfigError, match="bot.strategy"):
            parse_bot_params(self._bot(strategy="martingale"))

    def test_unknown_gap_key(self):
        with pytest.raises(ConfigError, match="bot.gap"):
            parse_bot_params(self._bot(gap={"wide": 1}))

    def test_required_keys(self):
        with pytest.raises(ConfigError, match="bot.symbol"):
            parse_bot_params({"id": 1, "exchange": "binance"})

    def test_trend_thresholds(self):
        p = parse_bot_params(self._bot(strategy="daily", trend={"up_pct": 0.1, "strong_up_pct": 0.5}))
        assert p.trend.up_pct == 0.1
        assert p.trend.strong_up_pct == 0.5


class TestValidate:

    def _grid(self, **kw):
        bot = {"id": 1, "exchange": "binance", "symbol": "BTCUSDT", "base_qty": 1,
               "lower_price": 100, "upper_price": 200, "grids": 10}
        bot.update(kw)
        return parse_bot_params(bot)

    def test_valid(self):
        validate(self._grid())

    @pytest.mark.parametrize("kw", [
        {"upper_price": 100},
        {"grids": 1},
        {"slippage": -0.1},
        {"base_qty": 0},
        {"order_type": "stop"},
        {"price_digits": -1},
        {"interval_sec": 0},
    ])
    def test_invalid_grid(self, kw):
        with pytest.raises(ConfigError):
            validate(self._grid(**kw))

    def test_bars_cover_ma_period(self):
        p = parse_bot_params({"id": 1, "exchange": "binance", "symbol": "BTCUSDT", "base_qty": 1,
                              "strategy": "scalping", "ma_period": 10, "bars": 11})
        with pytest.raises(ConfigError, match="bars"):
            validate(p)

    def test_quote_qty_is_enough(self):
        validate(self._grid(base_qty=0, quote_qty=50))


class TestStartup:

    def test_invalid_config_exits_before_loop(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DRY_RUN", "1")
        path = write(tmp_path, "bot:\n  id: 1\n  exchange: binance\n  symbol: BTCUSDT\n")
        assert main(["-c", str(path)]) == 2
