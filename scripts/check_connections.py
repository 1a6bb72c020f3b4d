#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify all database connections are working.
Usage: python scripts/check_connections.py
"""
import sys
sys.path.insert(0, '.')

from inf_platform.db.postgres import test_postgres_connection
from inf_platform.db.mongodb import test_mongo_connection
from inf_platform.core.config import get_settings


def main():
    settings = get_settings()
    print("=" * 50)
    print("INF PLATFORM - CONNECTION CHECK")
    print("=" * 50)

    print("\n[1] Checking PostgreSQL...")
    print(f"    URL: postgresql://{settings.postgres_user}:****@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")
    if test_postgres_connection():
        print("    PostgreSQL: CONNECTED")
    else:
        print("    PostgreSQL: FAILED")

    print("\n[2] Checking MongoDB (CV storage)...")
    print(f"    URI: {settings.mongodb_uri}")
    print(f"    Database: {settings.mongodb_db}")
    if test_mongo_connection():
        print("    MongoDB: CONNECTED")
    else:
        print("    MongoDB: FAILED")

    print("\n" + "=" * 50)
    print("Connection check complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
