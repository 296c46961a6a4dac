# src/autotp/core/oms/state_machine.py
from __future__ import annotations

from dataclasses import dataclass

from src.autotp.core.models.enums import OrderStatus


TERMINAL: frozenset[str] = frozenset({
    OrderStatus.FILLED.value,
    OrderStatus.CANCELED.value,
    OrderStatus.REJECTED.value,
    OrderStatus.EXPIRED.value,
})

# terminal statuses that end the order without a position
CLOSED_UNFILLED: frozenset[str] = TERMINAL - {OrderStatus.FILLED.value}


def _s(status) -> str:
    if status is None:
        return ""
    v = status.value if hasattr(status, "value") else status
    return str(v).upper()


def status_rank(status) -> int:
    """0 for unknown, 10 for NEW, 90 for any terminal status."""
    s = _s(status)
    if not s:
        return 0
    if s == OrderStatus.NEW.value:
        return 10
    if s in TERMINAL:
        return 90
    return 0


def is_terminal(status) -> bool:
    return _s(status) in TERMINAL


@dataclass(frozen=True)
class Decision:
    allow: bool
    reason: str = ""


def should_apply(current_status, incoming_status) -> Decision:
    """
    Local status only moves forward.
    - same status is a no-op
    - terminal status never changes
    - a lower status_rank is refused
    """
    cur = _s(current_status)
    inc = _s(incoming_status)

    if not inc:
        return Decision(False, "no incoming status")

    if inc == cur:
        return Decision(False, "unchanged")

    if cur in TERMINAL:
        return Decision(False, f"{cur} is final, ignoring {inc}")

    if status_rank(inc) < status_rank(cur):
        return Decision(False, f"{inc} would move {cur} backwards")

    return Decision(True, "forward")
