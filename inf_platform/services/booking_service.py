"""
Booking Service - thin wrappers over the booking stored procedures.

The procedures own every rule (capacity, phase limits, duplicates,
overlap). This module only shapes their first-row results.

Procedures used:
- fn_check_student_booking_limit
- fn_book_interview
- fn_cancel_booking
- fn_get_student_bookings
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from inf_platform.core.errors import ProcedureError
from inf_platform.db.postgres import call_procedure, execute_raw_sql, first_row

logger = logging.getLogger(__name__)

LIMIT_REACHED_MESSAGE = "You have reached your booking limit for this phase."


# ============================================================
# BOOKING LIMIT GATE
# ============================================================

def get_booking_limit(student_id: str, event_id: str) -> dict:
    """
    Ask the database whether the student may book in the event's current phase.

    Returns the procedure row plus submit_enabled (== can_book).
    """
    row = first_row(call_procedure(
        "fn_check_student_booking_limit",
        {"p_student_id": str(student_id), "p_event_id": str(event_id)},
    ))
    if row is None:
        raise ProcedureError("No response from booking limit check", procedure="fn_check_student_booking_limit")

    return {
        "can_book": bool(row["can_book"]),
        "current_count": row["current_count"] or 0,
        "max_allowed": row["max_allowed"] or 0,
        "current_phase": row["current_phase"] or 0,
        "message": row["message"] or "",
        "submit_enabled": bool(row["can_book"]),
    }


# ============================================================
# SUBMIT / CANCEL
# ============================================================

def book_interview(student_id: str, slot_id: str, offer_id: str) -> dict:
    """
    Book a slot. Business-rule rejections come back as success=False
    with the procedure's message; they are not raised.
    """
    row = first_row(call_procedure(
        "fn_book_interview",
        {"p_student_id": str(student_id), "p_slot_id": str(slot_id), "p_offer_id": str(offer_id)},
    ))
    if row is None:
        raise ProcedureError("No response from booking function", procedure="fn_book_interview")

    if row["success"]:
        logger.info("Student %s booked slot %s (booking %s)", student_id, slot_id, row["booking_id"])
    else:
        logger.info("Booking refused for student %s on slot %s: %s", student_id, slot_id, row["message"])

    return {
        "success": bool(row["success"]),
        "message": row["message"],
        "booking_id": row.get("booking_id"),
    }


def cancel_booking(booking_id: str, student_id: str) -> dict:
    row = first_row(call_procedure(
        "fn_cancel_booking",
        {"p_booking_id": str(booking_id), "p_student_id": str(student_id)},
    ))
    if row is None:
        raise ProcedureError("No response from cancel function", procedure="fn_cancel_booking")

    if row["success"]:
        logger.info("Student %s cancelled booking %s", student_id, booking_id)

    return {"success": bool(row["success"]), "message": row["message"]}


# ============================================================
# STUDENT BOOKINGS
# ============================================================

def list_student_bookings(student_id: str, event_id: Optional[str] = None) -> List[dict]:
    """All bookings of a student, newest slot first, optionally for one event."""
    rows = call_procedure("fn_get_student_bookings", {"p_student_id": str(student_id)})
    if event_id:
        rows = [r for r in rows if str(r.get("event_id")) == str(event_id)]
    return rows


def split_bookings(rows: List[dict], now: Optional[datetime] = None) -> dict:
    """
    Upcoming = confirmed with a future slot, soonest first.
    Past = everything else (past or cancelled), newest first.
    """
    now = now or datetime.now(timezone.utc)
    upcoming = [r for r in rows if r["status"] == "confirmed" and r["slot_time"] >= now]
    past = [r for r in rows if not (r["status"] == "confirmed" and r["slot_time"] >= now)]
    upcoming.sort(key=lambda r: r["slot_time"])
    past.sort(key=lambda r: r["slot_time"], reverse=True)
    return {"upcoming": upcoming, "past": past, "total": len(rows)}


def get_student_bookings(student_id: str, event_id: Optional[str] = None) -> dict:
    return split_bookings(list_student_bookings(student_id, event_id))


# ============================================================
# COMPANY SCHEDULE
# ============================================================

def get_company_schedule(company_id: str, event_id: Optional[str] = None) -> List[dict]:
    """Confirmed bookings on the company's slots, in slot order."""
    event_filter = "AND es.event_id = :event_id" if event_id else ""
    return execute_raw_sql(
        f"""
        SELECT b.id AS booking_id, es.id AS slot_id, es.start_time, es.end_time, es.location,
               b.student_id, p.full_name AS student_name, p.email AS student_email,
               p.phone AS student_phone, COALESCE(b.offer_id, es.offer_id) AS offer_id,
               o.title AS offer_title, b.status::TEXT AS status
        FROM bookings b
        JOIN event_slots es ON es.id = b.slot_id
        JOIN profiles p ON p.id = b.student_id
        LEFT JOIN offers o ON o.id = COALESCE(b.offer_id, es.offer_id)
        WHERE es.company_id = :company_id
          AND b.status = 'confirmed'
          {event_filter}
        ORDER BY es.start_time
        """,
        {"company_id": str(company_id), "event_id": str(event_id) if event_id else None},
    )


def list_company_students(company_id: str, event_id: Optional[str] = None, search: Optional[str] = None,
                          specialization: Optional[str] = None,
                          graduation_year: Optional[int] = None) -> List[dict]:
    """
    Students holding a confirmed booking on the company's slots, by name.

    search matches name, email or offer title.
    """
    conditions = ["es.company_id = :company_id", "b.status = 'confirmed'"]
    params = {"company_id": str(company_id)}

    if event_id:
        conditions.append("es.event_id = :event_id")
        params["event_id"] = str(event_id)
    if search:
        conditions.append("(p.full_name ILIKE :search OR p.email ILIKE :search OR o.title ILIKE :search)")
        params["search"] = f"%{search}%"
    if specialization:
        conditions.append("p.specialization = :specialization")
        params["specialization"] = specialization
    if graduation_year:
        conditions.append("p.graduation_year = :graduation_year")
        params["graduation_year"] = graduation_year

    return execute_raw_sql(
        f"""
        SELECT b.id AS booking_id, p.id AS student_id, p.full_name AS student_name,
               p.email AS student_email, p.phone AS student_phone, p.specialization,
               p.graduation_year, (p.cv_document_id IS NOT NULL) AS cv_uploaded,
               COALESCE(o.title, 'Unknown Offer') AS offer_title, es.start_time AS slot_time
        FROM bookings b
        JOIN event_slots es ON es.id = b.slot_id
        JOIN profiles p ON p.id = b.student_id
        LEFT JOIN offers o ON o.id = COALESCE(b.offer_id, es.offer_id)
        WHERE {" AND ".join(conditions)}
        ORDER BY p.full_name, es.start_time
        """,
        params,
    )


def get_event_registrations(event_id: str) -> List[dict]:
    """Every confirmed booking of an event, for the admin export."""
    return execute_raw_sql(
        """
        SELECT p.full_name AS student_name, p.email AS student_email, p.phone AS student_phone,
               c.company_name, o.title AS offer_title, es.start_time, es.end_time,
               b.booking_phase, b.created_at AS booked_at
        FROM bookings b
        JOIN event_slots es ON es.id = b.slot_id
        JOIN companies c ON c.id = es.company_id
        JOIN profiles p ON p.id = b.student_id
        LEFT JOIN offers o ON o.id = COALESCE(b.offer_id, es.offer_id)
        WHERE es.event_id = :event_id AND b.status = 'confirmed'
        ORDER BY c.company_name, es.start_time
        """,
        {"event_id": str(event_id)},
    )
