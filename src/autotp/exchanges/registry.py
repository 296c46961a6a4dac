# src/autotp/exchanges/registry.py
from __future__ import annotations

from src.autotp.core.models.params import BotParams
from src.autotp.exchanges.base.exchange import ExchangeGateway
from src.autotp.exchanges.binance.exchange import build_binance_exchange


def build_exchange(params: BotParams, *, dry_run: bool = False) -> ExchangeGateway:
    """Dry runs only need public market data, so credentials are optional there."""
    name = params.exchange.lower()
    if name == "binance":
        return build_binance_exchange(
            futures=params.is_futures,
            price_digits=params.price_digits,
            qty_digits=params.qty_digits,
            require_credentials=not dry_run,
        )
    raise ValueError(f"Unknown exchange: {params.exchange}")
