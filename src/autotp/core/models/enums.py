# src/autotp/core/models/enums.py
from __future__ import annotations

from enum import Enum, IntEnum


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class PosSide(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    NONE = ""


class OrderType(str, Enum):
    MARKET = "MARKET"
    LIMIT = "LIMIT"
    # spot protective orders
    SL = "STOP_LOSS_LIMIT"
    TP = "TAKE_PROFIT_LIMIT"
    # futures protective orders
    FSL = "STOP"
    FTP = "TAKE_PROFIT"


class OrderStatus(str, Enum):
    NEW = "NEW"
    FILLED = "FILLED"
    CANCELED = "CANCELED"
    EXPIRED = "EXPIRED"
    REJECTED = "REJECTED"


class Product(str, Enum):
    SPOT = "SPOT"
    FUTURES = "FUTURES"


class StrategyName(str, Enum):
    GRID = "GRID"
    DAILY = "DAILY"
    SCALPING = "SCALPING"


class View(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    NEUTRAL = "NEUTRAL"


class Trend(IntEnum):
    STRONG_DOWN = -2
    DOWN = -1
    NEUTRAL = 0
    UP = 1
    STRONG_UP = 2


SL_TYPES: frozenset[str] = frozenset({OrderType.SL.value, OrderType.FSL.value})
TP_TYPES: frozenset[str] = frozenset({OrderType.TP.value, OrderType.FTP.value})
PROTECTIVE_TYPES: frozenset[str] = SL_TYPES | TP_TYPES

_VIEW_ALIASES = {
    "L": View.LONG,
    "LONG": View.LONG,
    "S": View.SHORT,
    "SHORT": View.SHORT,
    "N": View.NEUTRAL,
    "NEUTRAL": View.NEUTRAL,
}


def parse_view(value: str | View | None) -> View:
    """Accepts LONG/SHORT/NEUTRAL and the one-letter forms L/S/N."""
    if isinstance(value, View):
        return value
    key = str(value or "NEUTRAL").strip().upper()
    if key not in _VIEW_ALIASES:
        raise ValueError(f"unknown view: {value!r}")
    return _VIEW_ALIASES[key]


def normalize_status(raw: str | None) -> OrderStatus:
    """
    Venue status -> local status.
    PARTIALLY_FILLED and PENDING_CANCEL are still working orders.
    """
    s = str(raw or "").upper()
    if s in ("PARTIALLY_FILLED", "PENDING_CANCEL", "PENDING_NEW"):
        return OrderStatus.NEW
    if s == "EXPIRED_IN_MATCH":
        return OrderStatus.EXPIRED
    return OrderStatus(s)
