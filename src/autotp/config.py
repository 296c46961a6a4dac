# src/autotp/config.py
from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from src.autotp.core.models.enums import OrderType, Product, StrategyName, parse_view
from src.autotp.core.models.params import BotParams, Gap, TrendThresholds


class ConfigError(ValueError):
    """Invalid bot configuration; fatal at startup."""


YAML_SUFFIXES = (".yml", ".yaml")


# -----------------------------------------------------------------------------
# loading
# -----------------------------------------------------------------------------
def load_yaml(path: Path) -> dict[str, Any]:
    if path.suffix.lower() not in YAML_SUFFIXES:
        raise ConfigError(f"Config must be a .yml/.yaml file: {path}")
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")
    return data


def load_bot_params(path: Path) -> BotParams:
    data = load_yaml(path)
    bot = data.get("bot")
    if not isinstance(bot, dict):
        raise ConfigError("Config must contain a `bot` section")
    params = parse_bot_params(bot)
    validate(params)
    return params


# -----------------------------------------------------------------------------
# parsing
# -----------------------------------------------------------------------------
_NESTED = {"gap", "trend", "view", "product", "strategy", "order_type", "id"}


def _enum(cls, raw: Any, key: str):
    try:
        return cls(str(raw).strip().upper())
    except ValueError:
        allowed = ", ".join(m.value for m in cls)
        raise ConfigError(f"{key}: unknown value {raw!r} (allowed: {allowed})") from None


def _sub(cls, raw: Any, key: str):
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"{key} must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        raise ConfigError(f"{key}: unknown keys {sorted(unknown)}")
    try:
        return cls(**raw)
    except TypeError as e:
        raise ConfigError(f"{key}: {e}") from e


def parse_bot_params(bot: dict[str, Any]) -> BotParams:
    """`bot` section (snake_case keys, same names as BotParams) -> BotParams."""
    for key in ("id", "exchange", "symbol"):
        if key not in bot:
            raise ConfigError(f"bot.{key} is required")

    known = {f.name for f in fields(BotParams)}
    unknown = set(bot) - known - _NESTED
    if unknown:
        raise ConfigError(f"bot: unknown keys {sorted(unknown)}")

    kwargs: dict[str, Any] = {k: v for k, v in bot.items() if k not in _NESTED}
    kwargs["bot_id"] = int(bot["id"])
    kwargs["exchange"] = str(bot["exchange"]).upper()
    kwargs["symbol"] = str(bot["symbol"]).upper()

    if "product" in bot:
        kwargs["product"] = _enum(Product, bot["product"], "bot.product")
    if "strategy" in bot:
        kwargs["strategy"] = _enum(StrategyName, bot["strategy"], "bot.strategy")
    if "order_type" in bot:
        kwargs["order_type"] = _enum(OrderType, bot["order_type"], "bot.order_type")
    if "view" in bot:
        try:
            kwargs["view"] = parse_view(bot["view"])
        except ValueError as e:
            raise ConfigError(f"bot.view: {e}") from None

    kwargs["gap"] = _sub(Gap, bot.get("gap"), "bot.gap")
    kwargs["trend"] = _sub(TrendThresholds, bot.get("trend"), "bot.trend")

    try:
        return BotParams(**kwargs)
    except TypeError as e:
        raise ConfigError(f"bot: {e}") from e


# -----------------------------------------------------------------------------
# validation
# -----------------------------------------------------------------------------
def validate(p: BotParams) -> None:
    if p.base_qty <= 0 and p.quote_qty <= 0:
        raise ConfigError("Either base_qty or quote_qty must be > 0")

    if p.order_type not in (OrderType.LIMIT, OrderType.MARKET):
        raise ConfigError("order_type must be LIMIT or MARKET")

    if p.strategy == StrategyName.GRID:
        if p.upper_price <= p.lower_price:
            raise ConfigError("upper_price must be greater than lower_price")
        if p.grids < 2:
            raise ConfigError("grids must be at least 2")
        if p.slippage < 0:
            raise ConfigError("slippage must be >= 0")
    else:
        if p.ma_period < 1:
            raise ConfigError("ma_period must be >= 1")
        if p.bars < p.ma_period + 2:
            raise ConfigError("bars must be at least ma_period + 2")

    if p.price_digits < 0 or p.qty_digits < 0:
        raise ConfigError("price_digits / qty_digits must be >= 0")
    if p.interval_sec <= 0:
        raise ConfigError("interval_sec must be > 0")
