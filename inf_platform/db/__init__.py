"""
Database module - PostgreSQL and MongoDB connections.
"""
from inf_platform.db.postgres import (
    get_db_session,
    execute_raw_sql,
    call_procedure,
    test_postgres_connection,
)
from inf_platform.db.mongodb import get_mongo_db, test_mongo_connection

__all__ = [
    "get_db_session",
    "execute_raw_sql",
    "call_procedure",
    "test_postgres_connection",
    "get_mongo_db",
    "test_mongo_connection"
]
