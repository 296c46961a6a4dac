# src/autotp/core/utils/idempotency.py
from __future__ import annotations

import hashlib
import itertools

from src.autotp.core.utils.prices import now_ms

_SEQ = itertools.count(1)


def make_client_order_id(*parts: str, max_len: int = 32) -> str:
    raw = "|".join(p for p in parts if p is not None and p != "")
    h = hashlib.sha256(raw.encode("utf-8")).hexdigest()
    return h[:max_len]


def gen_order_id(bot_id: int, *, ts_ms: int | None = None) -> str:
    """
    Local order id, also sent as the venue client order id.
    Unique per process: bot + millisecond timestamp + sequence.
    """
    ts = now_ms() if ts_ms is None else int(ts_ms)
    return make_client_order_id(str(bot_id), str(ts), str(next(_SEQ)))
