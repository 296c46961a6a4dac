# src/autotp/core/utils/prices.py
from __future__ import annotations

import time

from src.autotp.core.models.enums import Side


def now_ms() -> int:
    return int(time.time() * 1000)


def normalize_double(value: float, digits: int) -> float:
    return round(float(value), int(digits))


def reverse_side(side: Side) -> Side:
    return Side.SELL if side == Side.BUY else Side.BUY


# ---------------------------------------------------------------------
# point offsets (gap is in points: 1 point = 10 ** -digits)
# ---------------------------------------------------------------------

def calc_stop_upper_ticker(price: float, gap: int, digits: int) -> float:
    p = 10 ** digits
    return normalize_double((price * p + gap) / p, digits)


def calc_stop_lower_ticker(price: float, gap: int, digits: int) -> float:
    p = 10 ** digits
    return normalize_double((price * p - gap) / p, digits)




def calc_sl_stop(side: Side, price: float, gap: int, digits: int) -> float:
    """
    Stop-loss price `gap` points away from `price`, on the losing side.
    `side` is the side of the SL order itself: a BUY stop (short cover) sits
    above the price, a SELL stop (long exit) below it.
    """
    if side == Side.BUY:
        return calc_stop_upper_ticker(price, gap, digits)
    return calc_stop_lower_ticker(price, gap, digits)


def calc_tp_stop(side: Side, price: float, gap: int, digits: int) -> float:
    """Take-profit price `gap` points away from `price`; mirror of calc_sl_stop."""
    if side == Side.BUY:
        return calc_stop_lower_ticker(price, gap, digits)
    return calc_stop_upper_ticker(price, gap, digits)
