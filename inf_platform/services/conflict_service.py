"""
Conflict Service - advisory overlap check before booking.

The check never blocks: fn_book_interview is the enforcement point and
rejects overlapping bookings on its own.
"""

from datetime import datetime
from typing import Iterable, Optional

from inf_platform.services.booking_service import list_student_bookings
from inf_platform.services.slot_service import get_slot


def intervals_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Half-open [start, end) overlap; adjacent intervals do not overlap."""
    return start1 < end2 and start2 < end1


def find_conflict(candidate: dict, existing: Iterable[dict]) -> Optional[dict]:
    """
    First existing booking whose slot overlaps the candidate slot.

    candidate carries start_time/end_time; existing rows carry
    slot_time/slot_end_time as returned by fn_get_student_bookings.
    """
    for booking in existing:
        if booking.get("slot_id") and str(booking["slot_id"]) == str(candidate.get("id")):
            continue
        if intervals_overlap(
            candidate["start_time"], candidate["end_time"],
            booking["slot_time"], booking["slot_end_time"],
        ):
            return booking
    return None


def conflict_warning(booking: dict) -> str:
    return f"Time conflict with {booking['company_name']} at {booking['slot_time'].strftime('%H:%M')}"


def check_slot_conflict(student_id: str, slot_id: str) -> dict:
    """
    Compare a slot against the student's confirmed bookings, fetched fresh.

    confirm_enabled stays True: the warning is informational.
    """
    candidate = get_slot(slot_id)
    if candidate is None:
        return {"has_conflict": False, "warning": None, "confirm_enabled": True}

    confirmed = [
        b for b in list_student_bookings(student_id)
        if b["status"] == "confirmed" and b.get("slot_end_time") is not None
    ]
    conflict = find_conflict(candidate, confirmed)

    if conflict is None:
        return {"has_conflict": False, "warning": None, "confirm_enabled": True}

    return {
        "has_conflict": True,
        "warning": conflict_warning(conflict),
        "conflicting_company": conflict["company_name"],
        "conflicting_start": conflict["slot_time"],
        "confirm_enabled": True,
    }
