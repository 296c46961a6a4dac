# src/autotp/core/models/params.py
from __future__ import annotations

from dataclasses import dataclass, field

from src.autotp.core.models.enums import OrderType, Product, StrategyName, View


@dataclass(frozen=True, slots=True)
class Gap:
    """Price offsets in points (1 point = 10 ** -price_digits)."""

    open_limit: int = 200
    sl_stop: int = 100
    sl_limit: int = 200
    tp_stop: int = 200
    tp_limit: int = 300


@dataclass(frozen=True, slots=True)
class TrendThresholds:
    """WMA slope per bar, in percent of the previous WMA value."""

    up_pct: float = 0.05
    strong_up_pct: float = 0.2


@dataclass(frozen=True, slots=True)
class BotParams:
    # --- identity ---
    bot_id: int
    exchange: str
    symbol: str
    product: Product = Product.SPOT
    strategy: StrategyName = StrategyName.GRID
    view: View = View.NEUTRAL
    order_type: OrderType = OrderType.LIMIT

    # --- precision / sizing ---
    price_digits: int = 2
    qty_digits: int = 3
    base_qty: float = 0.0
    quote_qty: float = 0.0

    # --- grid ---
    lower_price: float = 0.0
    upper_price: float = 0.0
    grids: int = 0
    slippage: float = 0.0
    sl: float = 0.0
    tp: float = 0.0
    start_price: float = 0.0

    # --- protective orders ---
    auto_sl: bool = False
    auto_tp: bool = False
    atr_sl: float = 1.0
    atr_tp: float = 1.0
    time_sec_sl: int = 0
    time_sec_tp: int = 0
    gap: Gap = field(default_factory=Gap)

    # --- bars / indicators ---
    ma_timeframe: str = "1d"
    ma_period: int = 8
    bars: int = 50
    trend_period: int = 8
    trend: TrendThresholds = field(default_factory=TrendThresholds)
    hl_timeframe: str = "1m"
    hl_bars: int = 5
    hl_ratio_low: float = 0.1
    hl_ratio_high: float = 0.9

    # --- entries ---
    order_gap: float = 0.0
    time_sec_cancel: int = 0
    close_long: bool = False
    close_short: bool = False

    # --- loop ---
    interval_sec: float = 3.0

    @property
    def is_futures(self) -> bool:
        return self.product == Product.FUTURES

    @property
    def allow_long(self) -> bool:
        return self.view in (View.LONG, View.NEUTRAL)

    @property
    def allow_short(self) -> bool:
        return self.view in (View.SHORT, View.NEUTRAL)

    @property
    def point(self) -> float:
        return 10 ** -self.price_digits
