# src/autotp/cli/migrate.py
from pathlib import Path
import os

from dotenv import load_dotenv

from src.autotp.data.storage.postgres.pool import create_pool
from src.autotp.data.storage.postgres.storage import PostgreSQLOrderStore

DDL_PATH = Path(__file__).resolve().parents[1] / "data" / "storage" / "postgres" / "ddl.sql"


def main() -> None:
    load_dotenv()
    dsn = os.getenv("PG_DSN")
    if not dsn:
        raise RuntimeError("PG_DSN env var is required")

    pool = create_pool(dsn)
    store = PostgreSQLOrderStore(pool)
    try:
        store.exec_ddl(DDL_PATH.read_text(encoding="utf-8"))
    finally:
        pool.close()


if __name__ == "__main__":
    main()
