# src/autotp/run_bot.py
from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from src.autotp.config import ConfigError, load_bot_params
from src.autotp.core.engine.instance import TradingInstance
from src.autotp.core.oms.events import OrderEventLog
from src.autotp.core.oms.reconcile import OrderReconciler
from src.autotp.core.strategy.registry import build_strategy
from src.autotp.data.storage.base import OrderStore
from src.autotp.data.storage.memory import MemoryOrderStore
from src.autotp.data.storage.postgres.pool import create_pool
from src.autotp.data.storage.postgres.storage import PostgreSQLOrderStore
from src.autotp.exchanges.registry import build_exchange
from src.autotp.notifications.telegram import build_notifier_from_env


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Run one trading bot from a YAML config")
    ap.add_argument("-c", "--config", required=True, help="bot config (.yml / .yaml)")
    ap.add_argument("--max-ticks", type=int, default=None, help="stop after N ticks")
    ap.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))
    return ap.parse_args(argv)


def _build_store(dry_run: bool, logger: logging.Logger) -> OrderStore:
    dsn = os.getenv("PG_DSN")
    if dsn:
        logger.info("PostgreSQL order store initialized")
        return PostgreSQLOrderStore(create_pool(dsn))
    if not dry_run:
        raise SystemExit("PG_DSN env var is required when DRY_RUN=0")
    logger.warning("PG_DSN not set → in-memory order store (paper run)")
    return MemoryOrderStore()


def main(argv: list[str] | None = None) -> int:
    # -------------------------------------------------------------------------
    # ENV (.env first) + DRY_RUN
    # -------------------------------------------------------------------------
    load_dotenv()
    args = _parse_args(argv)

    dry_run: bool = os.getenv("DRY_RUN", "1") == "1"

    # -------------------------------------------------------------------------
    # LOGGING
    # -------------------------------------------------------------------------
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logger = logging.getLogger("autotp.run_bot")

    logger.info("=== AUTOTP START ===")
    logger.warning("DRY_RUN=%s (%s)", dry_run, "NO REAL ORDERS" if dry_run else "REAL ORDERS ENABLED")

    # -------------------------------------------------------------------------
    # CONFIG (fatal before the first tick)
    # -------------------------------------------------------------------------
    try:
        params = load_bot_params(Path(args.config))
    except ConfigError as e:
        logger.error("Invalid config: %s", e)
        return 2

    # -------------------------------------------------------------------------
    # WIRING
    # -------------------------------------------------------------------------
    store = _build_store(dry_run, logger)
    exchange = build_exchange(params, dry_run=dry_run)
    strategy = build_strategy(params, store=store, exchange=exchange)
    reconciler = OrderReconciler(
        params=params,
        store=store,
        exchange=exchange,
        events=OrderEventLog(notifier=build_notifier_from_env()),
    )

    instance = TradingInstance(
        params=params,
        exchange=exchange,
        store=store,
        strategy=strategy,
        reconciler=reconciler,
        dry_run=dry_run,
    )

    def _shutdown(signum, _frame):
        logger.warning("signal %s → stopping", signum)
        instance.stop()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    instance.run(max_ticks=args.max_ticks)
    return 0


if __name__ == "__main__":
    sys.exit(main())
