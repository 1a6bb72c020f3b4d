import logging
from contextlib import contextmanager
from typing import Any, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from inf_platform.core.config import get_settings
from inf_platform.core.errors import ProcedureError, RuleViolation

logger = logging.getLogger(__name__)

settings = get_settings()

# SQLSTATE -> HTTP status for statements the database refused on purpose
RAISE_EXCEPTION = "P0001"
UNIQUE_VIOLATION = "23505"
RULE_STATUS = {RAISE_EXCEPTION: 400, UNIQUE_VIOLATION: 409}

# Create engine with connection pool
# pool_size=5: maintain 5 connections ready
# max_overflow=10: allow 10 extra connections under load
engine = create_engine(
    settings.postgres_url,
    pool_size=5,
    max_overflow=10,
    pool_pre_ping=True,
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM profiles"))
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_postgres_connection() -> bool:
    """
    Test if PostgreSQL is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except SQLAlchemyError as e:
        logger.error("PostgreSQL connection failed: %s", e)
        return False


def execute_raw_sql(sql: str, params: dict = None) -> List[dict]:
    """
    Execute raw SQL and return results as list of dicts.
    Statements that return no rows yield [].
    """
    try:
        with get_db_session() as db:
            result = db.execute(text(sql), params or {})
            if not result.returns_rows:
                return []
            columns = result.keys()
            return [dict(zip(columns, row)) for row in result.fetchall()]
    except SQLAlchemyError as e:
        raise database_error(e) from e


def call_procedure(name: str, params: Optional[dict] = None) -> List[dict]:
    """
    Invoke a stored function by name with named arguments.

    Table-valued functions return every row; callers treat the first row as
    the outcome. Scalar functions come back as a single row keyed by the
    function name.

    Usage:
        rows = call_procedure("fn_cancel_booking", {"p_booking_id": bid, "p_student_id": sid})
    """
    params = params or {}
    args = ", ".join(f"{key} => :{key}" for key in params)
    sql = f"SELECT * FROM {name}({args})"
    try:
        with get_db_session() as db:
            result = db.execute(text(sql), params)
            columns = result.keys()
            return [dict(zip(columns, row)) for row in result.fetchall()]
    except SQLAlchemyError as e:
        logger.error("Procedure %s failed: %s", name, e)
        raise database_error(e, procedure=name) from e


def first_row(rows: List[dict]) -> Optional[dict]:
    return rows[0] if rows else None


def database_error(exc: SQLAlchemyError, procedure: Optional[str] = None) -> ProcedureError:
    """RuleViolation for business RAISEs and unique keys, ProcedureError otherwise."""
    pgcode = getattr(getattr(exc, "orig", None), "pgcode", None)
    if pgcode in RULE_STATUS:
        return RuleViolation(
            _error_message(exc), procedure=procedure, pgcode=pgcode, status_code=RULE_STATUS[pgcode]
        )
    return ProcedureError(_error_message(exc), procedure=procedure)


def _error_message(exc: SQLAlchemyError) -> str:
    # Surface the driver's message (RAISE EXCEPTION text) rather than the SQL dump
    orig: Any = getattr(exc, "orig", None)
    if orig is not None:
        diag = getattr(orig, "diag", None)
        primary = getattr(diag, "message_primary", None) if diag else None
        return primary or str(orig).strip().splitlines()[0]
    return str(exc)
