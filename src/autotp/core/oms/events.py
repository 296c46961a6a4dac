# src/autotp/core/oms/events.py
from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Optional

from src.autotp.core.models.order import Order
from src.autotp.notifications.telegram import TelegramNotifier


class OrderEventType(str, Enum):
    NEW = "NEW"
    FILLED = "FILLED"
    CANCELED = "CANCELED"
    EXPIRED = "EXPIRED"
    REJECTED = "REJECTED"
    CLOSED = "CLOSED"
    ANOMALY = "ANOMALY"


def _v(x) -> Any:
    return x.value if hasattr(x, "value") else x


def order_payload(order: Order) -> dict[str, Any]:
    return {
        "id": order.id,
        "ref_id": order.ref_id,
        "bot_id": order.bot_id,
        "symbol": order.symbol,
        "side": _v(order.side),
        "pos_side": _v(order.pos_side),
        "type": _v(order.type),
        "status": _v(order.status),
        "qty": order.qty,
        "open_price": order.open_price,
        "stop_price": order.stop_price,
        "open_order_id": order.open_order_id,
    }


class OrderEventLog:
    """
    Structured order lifecycle events: one JSON object per log line.
    CLOSED events are also pushed to Telegram when a notifier is set.
    """

    def __init__(self, *, logger: logging.Logger | None = None, notifier: Optional[TelegramNotifier] = None):
        self.logger = logger or logging.getLogger("autotp.events")
        self.notifier = notifier

    def emit(self, event: OrderEventType, order: Order, **extra: Any) -> dict[str, Any]:
        payload = {"event": event.value, **order_payload(order), **extra}
        self.logger.info(json.dumps(payload, sort_keys=True, default=str))
        return payload

    # ------------------------------------------------------------------

    def new(self, order: Order) -> None:
        self.emit(OrderEventType.NEW, order)

    def status(self, order: Order) -> None:
        self.emit(OrderEventType(_v(order.status)), order)

    def anomaly(self, order: Order, reason: str) -> None:
        self.emit(OrderEventType.ANOMALY, order, reason=reason)

    def closed(self, parent: Order, protective: Order) -> None:
        payload = self.emit(
            OrderEventType.CLOSED,
            parent,
            close_order_id=protective.id,
            close_type=_v(protective.type),
            close_price=parent.close_price,
            close_time=parent.close_time,
            pl=parent.pl,
        )
        if self.notifier is not None:
            self.notifier.send(
                f"{payload['symbol']} {payload['side']} closed by {payload['close_type']}\n"
                f"open={parent.open_price} close={parent.close_price} qty={parent.qty}\n"
                f"PL={parent.pl}"
            )
