#!/usr/bin/env python3
"""
Database Init Script

Applies schema.sql then functions.sql to the configured PostgreSQL database.
Both files are idempotent, so re-running is safe.
Usage: python scripts/init_db.py
"""
import logging
import sys
from pathlib import Path

sys.path.insert(0, '.')

from inf_platform.core.logging_config import setup_logging
from inf_platform.db.postgres import engine

logger = logging.getLogger("init_db")

SCRIPTS_DIR = Path(__file__).resolve().parent
SQL_FILES = ["schema.sql", "functions.sql"]


def apply_sql_file(path: Path) -> None:
    sql = path.read_text(encoding="utf-8")
    # Raw DBAPI cursor: no bind-parameter parsing over the PL/pgSQL bodies
    connection = engine.raw_connection()
    try:
        cursor = connection.cursor()
        cursor.execute(sql)
        cursor.close()
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


def main():
    setup_logging()
    for name in SQL_FILES:
        path = SCRIPTS_DIR / name
        logger.info("Applying %s", path)
        apply_sql_file(path)
    logger.info("Database initialized")


if __name__ == "__main__":
    main()
