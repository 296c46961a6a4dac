"""
Pytest configuration and shared fixtures for autotp tests.
"""
import itertools
from unittest.mock import MagicMock

import pytest

from src.autotp.core.models.enums import OrderStatus, OrderType, Side
from src.autotp.core.models.order import HistoricalPrice, Order, Ticker
from src.autotp.core.models.params import BotParams
from src.autotp.data.storage.memory import MemoryOrderStore
from src.autotp.exchanges.base.exchange import ExchangeGateway

T0 = 1_700_000_000_000


class FakeClock:
    """Deterministic millisecond clock."""

    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_params():
    def _make(**kw):
        base = dict(
            bot_id=1,
            exchange="BINANCE",
            symbol="BTCUSDT",
            base_qty=1.0,
            price_digits=2,
            qty_digits=3,
        )
        base.update(kw)
        return BotParams(**base)
    return _make


@pytest.fixture
def make_order():
    seq = itertools.count(1)

    def _make(**kw):
        base = dict(
            bot_id=1,
            exchange="BINANCE",
            symbol="BTCUSDT",
            side=Side.BUY,
            type=OrderType.LIMIT,
            status=OrderStatus.NEW,
            qty=1.0,
            open_price=100.0,
            open_time=T0 - 10_000,
        )
        base.update(kw)
        if "id" not in kw:
            base["id"] = f"o{next(seq)}"
        return Order(**base)
    return _make


@pytest.fixture
def make_bars():
    def _make(rows, symbol="BTCUSDT", step=60_000):
        """rows: (open, high, low, close) tuples, oldest first."""
        return [
            HistoricalPrice(symbol=symbol, time=T0 - (len(rows) - i) * step, open=o, high=h, low=l, close=c)
            for i, (o, h, l, c) in enumerate(rows)
        ]
    return _make


@pytest.fixture
def ticker():
    def _make(price, symbol="BTCUSDT"):
        return Ticker(exchange="BINANCE", symbol=symbol, price=price)
    return _make


@pytest.fixture
def store():
    return MemoryOrderStore()


@pytest.fixture
def exchange():
    return MagicMock(spec=ExchangeGateway)
