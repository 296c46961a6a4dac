# src/autotp/core/strategy/registry.py
from __future__ import annotations

from src.autotp.core.models.enums import StrategyName
from src.autotp.core.models.params import BotParams
from src.autotp.core.strategy.base import Strategy
from src.autotp.core.strategy.daily import DailyStrategy
from src.autotp.core.strategy.grid import GridStrategy
from src.autotp.core.strategy.scalping import ScalpingStrategy
from src.autotp.data.storage.base import OrderStore
from src.autotp.exchanges.base.exchange import ExchangeGateway

STRATEGIES: dict[StrategyName, type[Strategy]] = {
    StrategyName.GRID: GridStrategy,
    StrategyName.DAILY: DailyStrategy,
    StrategyName.SCALPING: ScalpingStrategy,
}


def build_strategy(params: BotParams, *, store: OrderStore, exchange: ExchangeGateway) -> Strategy:
    cls = STRATEGIES.get(params.strategy)
    if cls is None:
        raise ValueError(f"Unknown strategy: {params.strategy}")
    return cls(params=params, store=store, exchange=exchange)
