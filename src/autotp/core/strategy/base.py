# src/autotp/core/strategy/base.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from src.autotp.core.models.order import QueryOrder, Ticker, TradeOrders
from src.autotp.core.models.params import BotParams
from src.autotp.core.utils.prices import now_ms
from src.autotp.data.storage.base import OrderStore
from src.autotp.exchanges.base.exchange import ExchangeGateway


class Strategy(ABC):
    """
    Base Strategy interface.

    Strategy:
      • receives one ticker per tick
      • reads the local order record and venue bars
      • returns a TradeOrders batch, or None for "no data / no action"

    Collaborators come through the constructor; a strategy keeps no state of
    its own between ticks.
    """
    # --- identity ---
    strategy_id: str = "base"

    def __init__(
        self,
        *,
        params: BotParams,
        store: OrderStore,
        exchange: ExchangeGateway,
        clock=now_ms,
        logger: logging.Logger | None = None,
    ):
        self.params = params
        self.store = store
        self.exchange = exchange
        self.clock = clock
        self.logger = logger or logging.getLogger(f"autotp.strategy.{self.strategy_id}")

    # ------------------------------------------------------------------
    # lifecycle hooks (optional)
    # ------------------------------------------------------------------

    def on_start(self) -> None:
        """Called once when instance starts."""
        pass

    def on_stop(self) -> None:
        """Called once when instance stops."""
        pass

    # ------------------------------------------------------------------
    # tick
    # ------------------------------------------------------------------

    @abstractmethod
    def on_tick(self, ticker: Ticker) -> Optional[TradeOrders]:
        """
        Decide what to open / close / cancel for this tick.

        IMPORTANT:
          • None means no batch, never an error
          • returned orders are intents: no id / ref_id yet
        """
        raise NotImplementedError

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def query(self) -> QueryOrder:
        p = self.params
        return QueryOrder(bot_id=p.bot_id, exchange=p.exchange, symbol=p.symbol)

    @staticmethod
    def batch_or_none(batch: TradeOrders) -> Optional[TradeOrders]:
        return None if batch.is_empty() else batch
