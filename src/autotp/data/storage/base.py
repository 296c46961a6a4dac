# src/autotp/data/storage/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from src.autotp.core.models.order import Order, QueryOrder


class OrderStore(ABC):
    """
    Local order record.

    "Active" everywhere below means close_time == 0 and status not in
    CANCELED / EXPIRED / REJECTED.
    """

    # ------------------------------------------------------------------
    # commands
    # ------------------------------------------------------------------

    @abstractmethod
    def create_order(self, order: Order) -> None: ...

    @abstractmethod
    def update_order(self, order: Order) -> None:
        """Overwrites the stored row with the given fields; idempotent."""

    # ------------------------------------------------------------------
    # single-order lookups
    # ------------------------------------------------------------------

    @abstractmethod
    def get_order_by_id(self, order_id: str) -> Optional[Order]: ...

    @abstractmethod
    def get_sl_order(self, open_order_id: str) -> Optional[Order]:
        """SL attached to a parent, any status except CANCELED / EXPIRED / REJECTED."""

    @abstractmethod
    def get_tp_order(self, open_order_id: str) -> Optional[Order]:
        """TP attached to a parent, any status except CANCELED / EXPIRED / REJECTED."""

    # ------------------------------------------------------------------
    # proximity
    # ------------------------------------------------------------------

    @abstractmethod
    def is_empty_zone(self, qo: QueryOrder) -> bool:
        """No active LIMIT/MARKET entry of qo.side with zone_price == qo.zone_price."""

    @abstractmethod
    def get_active_order(self, qo: QueryOrder, slippage: float = 0.0) -> Optional[Order]:
        """
        Active LIMIT order of qo.side whose open_price lies within
        qo.open_price +/- qo.open_price * slippage (exact match when slippage == 0).
        """

    @abstractmethod
    def get_nearest_order(self, qo: QueryOrder) -> Optional[Order]:
        """Active order of qo.side (and qo.pos_side when set) closest to qo.open_price."""

    # ------------------------------------------------------------------
    # lists
    # ------------------------------------------------------------------

    @abstractmethod
    def get_active_orders(self, qo: QueryOrder) -> list[Order]: ...

    @abstractmethod
    def get_entry_orders(self, qo: QueryOrder) -> list[Order]:
        """
        Active entries (LIMIT/MARKET) of qo.side.
        open_time desc when qo.open_time > 0, else zone_price asc (BUY) / desc (SELL).
        """

    @abstractmethod
    def get_filled_orders(self, qo: QueryOrder) -> list[Order]:
        """Active FILLED entries (LIMIT/MARKET), newest first."""

    @abstractmethod
    def get_new_limit_orders(self, qo: QueryOrder) -> list[Order]:
        """Active NEW LIMIT entries, newest first."""

    @abstractmethod
    def get_new_stop_orders(self, qo: QueryOrder) -> list[Order]:
        """Active NEW protective orders, newest first."""

    @abstractmethod
    def get_tp_orders(self, qo: QueryOrder) -> list[Order]:
        """Active TP orders, open_price asc."""
