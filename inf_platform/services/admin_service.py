"""
Admin Service - events, phases, company verification, student flags
and the all-bookings overview.
"""

import json
import logging
from typing import List, Optional

from inf_platform.core.errors import PlatformError, ProcedureError
from inf_platform.db.postgres import call_procedure, execute_raw_sql, first_row
from inf_platform.services.transitions import PendingTransition

logger = logging.getLogger(__name__)

EVENT_COLUMNS = """
    id, name, date, location, is_active, current_phase,
    phase1_max_bookings, phase2_max_bookings
"""

STUDENT_FLAGS = ("is_deprioritized", "account_approved")


# ============================================================
# EVENTS
# ============================================================

def list_events() -> List[dict]:
    return execute_raw_sql(f"SELECT {EVENT_COLUMNS} FROM events ORDER BY date DESC")


def get_event(event_id: str) -> Optional[dict]:
    rows = execute_raw_sql(
        f"SELECT {EVENT_COLUMNS} FROM events WHERE id = :id",
        {"id": str(event_id)},
    )
    return rows[0] if rows else None


def create_event(data: dict) -> dict:
    rows = execute_raw_sql(
        f"""
        INSERT INTO events (name, date, location, phase1_max_bookings, phase2_max_bookings)
        VALUES (:name, :date, :location, :phase1_max_bookings, :phase2_max_bookings)
        RETURNING {EVENT_COLUMNS}
        """,
        {
            "name": data["name"],
            "date": data["date"],
            "location": data.get("location"),
            "phase1_max_bookings": data["phase1_max_bookings"],
            "phase2_max_bookings": data["phase2_max_bookings"],
        },
    )
    logger.info("Created event %s (%s)", rows[0]["id"], rows[0]["name"])
    return rows[0]


def toggle_event(event_id: str) -> Optional[dict]:
    rows = execute_raw_sql(
        f"UPDATE events SET is_active = NOT is_active WHERE id = :id RETURNING {EVENT_COLUMNS}",
        {"id": str(event_id)},
    )
    return rows[0] if rows else None


def update_phase(event_id: str, current_phase: int, phase1_max: int, phase2_max: int) -> Optional[dict]:
    if phase2_max < phase1_max:
        raise PlatformError("Phase 2 limit must be >= Phase 1 limit")
    rows = execute_raw_sql(
        f"""
        UPDATE events
        SET current_phase = :current_phase,
            phase1_max_bookings = :phase1_max,
            phase2_max_bookings = :phase2_max
        WHERE id = :id
        RETURNING {EVENT_COLUMNS}
        """,
        {"id": str(event_id), "current_phase": current_phase,
         "phase1_max": phase1_max, "phase2_max": phase2_max},
    )
    if rows:
        logger.info("Event %s moved to phase %d (limits %d/%d)", event_id, current_phase, phase1_max, phase2_max)
    return rows[0] if rows else None


def delete_event(event_id: str) -> dict:
    """Delete via fn_delete_event; returns its counts."""
    row = first_row(call_procedure("fn_delete_event", {"p_event_id": str(event_id)}))
    if row is None:
        raise ProcedureError("No response from delete function", procedure="fn_delete_event")

    counts = row["fn_delete_event"]
    if isinstance(counts, str):
        counts = json.loads(counts)
    logger.info("Deleted event %s: %s", event_id, counts)
    return counts


# ============================================================
# COMPANIES
# ============================================================

def list_companies() -> List[dict]:
    return execute_raw_sql(
        """
        SELECT c.id, c.company_name, c.industry, c.description, c.website, c.is_verified,
               COUNT(o.id) FILTER (WHERE o.is_active)::INTEGER AS active_offers
        FROM companies c
        LEFT JOIN offers o ON o.company_id = c.id
        GROUP BY c.id
        ORDER BY c.is_verified, c.company_name
        """
    )


def get_company(company_id: str) -> Optional[dict]:
    rows = execute_raw_sql(
        "SELECT id, company_name, is_verified FROM companies WHERE id = :id",
        {"id": str(company_id)},
    )
    return rows[0] if rows else None


def verify_company(company_id: str, is_verified: bool, admin_id: str) -> None:
    call_procedure(
        "fn_verify_company",
        {"p_company_id": str(company_id), "p_is_verified": is_verified, "p_admin_id": str(admin_id)},
    )
    logger.info("Admin %s set company %s verified=%s", admin_id, company_id, is_verified)


# ============================================================
# STUDENTS
# ============================================================

STUDENT_SELECT = """
    SELECT p.id, p.email, p.full_name, p.phone, p.is_deprioritized, p.account_approved,
           p.created_at,
           (SELECT COUNT(*) FROM bookings b
            WHERE b.student_id = p.id AND b.status = 'confirmed')::INTEGER AS confirmed_bookings
    FROM profiles p
    WHERE p.role = 'student'
"""


def list_students(pending_only: bool = False) -> List[dict]:
    sql = STUDENT_SELECT
    if pending_only:
        sql += " AND p.account_approved = FALSE"
    return execute_raw_sql(sql + " ORDER BY p.created_at DESC")


def get_student(student_id: str) -> Optional[dict]:
    rows = execute_raw_sql(STUDENT_SELECT + " AND p.id = :id", {"id": str(student_id)})
    return rows[0] if rows else None


def set_student_flag(student: dict, field: str, value: bool) -> dict:
    """
    Flip one student flag optimistically: the local row changes first and
    is restored if the UPDATE fails.
    """
    if field not in STUDENT_FLAGS:
        raise PlatformError(f"Unknown student flag: {field}")

    transition = PendingTransition(student, field, value)
    transition.apply()
    try:
        execute_raw_sql(
            f"UPDATE profiles SET {field} = :value, updated_at = NOW() WHERE id = :id AND role = 'student'",
            {"value": value, "id": str(student["id"])},
        )
    except ProcedureError:
        transition.rollback()
        logger.error("Could not set %s=%s for student %s; reverted", field, value, student["id"])
        raise
    return transition.commit()


# ============================================================
# BOOKINGS OVERVIEW
# ============================================================

def list_bookings(search: Optional[str] = None, event_id: Optional[str] = None) -> List[dict]:
    """Every confirmed booking, newest first; search matches student name, email or company."""
    conditions = ["b.status = 'confirmed'"]
    params = {}

    if search:
        conditions.append(
            "(p.full_name ILIKE :search OR p.email ILIKE :search OR c.company_name ILIKE :search)"
        )
        params["search"] = f"%{search}%"

    if event_id:
        conditions.append("es.event_id = :event_id")
        params["event_id"] = str(event_id)

    return execute_raw_sql(
        f"""
        SELECT b.id AS booking_id, b.student_id, p.full_name AS student_name, p.email AS student_email,
               c.company_name, es.event_id, es.start_time, es.end_time,
               b.status::TEXT AS status, b.created_at
        FROM bookings b
        JOIN profiles p ON p.id = b.student_id
        JOIN event_slots es ON es.id = b.slot_id
        JOIN companies c ON c.id = es.company_id
        WHERE {" AND ".join(conditions)}
        ORDER BY b.created_at DESC
        """,
        params,
    )


def cancel_booking(booking_id: str, admin_id: str) -> bool:
    """Cancel any confirmed booking. False when it is unknown or already cancelled."""
    rows = execute_raw_sql(
        """
        UPDATE bookings SET status = 'cancelled', cancelled_at = NOW()
        WHERE id = :id AND status = 'confirmed'
        RETURNING id
        """,
        {"id": str(booking_id)},
    )
    if rows:
        logger.info("Admin %s cancelled booking %s", admin_id, booking_id)
    return bool(rows)
