"""
Stats Service - dashboard figures.

- Admin: per-event slots, capacity, confirmed bookings, unique students, top company
- Company: offers, slots, scheduled students, utilization, top offer

Totals come from SQL; rankings and rates are computed from the confirmed
booking rows so they can be checked without a database.
"""

from collections import Counter
from typing import List, Tuple

from inf_platform.db.postgres import execute_raw_sql
from inf_platform.services.booking_service import get_company_schedule

NO_TOP_ENTRY = ("N/A", 0)


def top_entry(rows: List[dict], key: str, label: str) -> Tuple[str, int]:
    """
    Most frequent value of row[key] with its count, named by row[label].

    Ties go to the value seen first. Rows without a key are ignored.
    """
    counts = Counter(str(row[key]) for row in rows if row.get(key))
    if not counts:
        return NO_TOP_ENTRY

    top_key, count = counts.most_common(1)[0]
    name = next(row.get(label) for row in rows if row.get(key) and str(row[key]) == top_key)
    return name or "Unknown", count


def utilization_rate(scheduled: int, capacity: int) -> int:
    """Booked share of capacity, in whole percent."""
    if capacity <= 0:
        return 0
    return round(scheduled * 100 / capacity)


# ============================================================
# ADMIN: PER EVENT
# ============================================================

def summarize_event(slot_totals: dict, bookings: List[dict], total_students: int) -> dict:
    top_company, top_company_bookings = top_entry(bookings, "company_id", "company_name")
    return {
        "event_companies": slot_totals["event_companies"],
        "event_students": len({str(b["student_id"]) for b in bookings}),
        "event_bookings": len(bookings),
        "total_students": total_students,
        "total_slots": slot_totals["total_slots"],
        "total_capacity": slot_totals["total_capacity"],
        "available_slots": max(0, slot_totals["total_capacity"] - len(bookings)),
        "top_company_name": top_company,
        "top_company_bookings": top_company_bookings,
    }


def get_event_stats(event_id: str) -> dict:
    params = {"event_id": str(event_id)}

    slot_totals = execute_raw_sql(
        """
        SELECT COUNT(*)::INTEGER AS total_slots,
               COALESCE(SUM(COALESCE(capacity, 1)), 0)::INTEGER AS total_capacity,
               COUNT(DISTINCT company_id)::INTEGER AS event_companies
        FROM event_slots
        WHERE event_id = :event_id AND is_active = TRUE
        """,
        params,
    )[0]

    bookings = execute_raw_sql(
        """
        SELECT b.student_id, es.company_id, c.company_name
        FROM bookings b
        JOIN event_slots es ON es.id = b.slot_id
        JOIN companies c ON c.id = es.company_id
        WHERE es.event_id = :event_id AND es.is_active = TRUE AND b.status = 'confirmed'
        """,
        params,
    )

    total_students = execute_raw_sql(
        "SELECT COUNT(*)::INTEGER AS total FROM profiles WHERE role = 'student'"
    )[0]["total"]

    return {"event_id": event_id, **summarize_event(slot_totals, bookings, total_students)}


# ============================================================
# COMPANY DASHBOARD
# ============================================================

def summarize_company(offer_totals: dict, slot_totals: dict, scheduled: List[dict]) -> dict:
    top_offer, top_offer_bookings = top_entry(scheduled, "offer_id", "offer_title")
    return {
        "total_active_offers": offer_totals["total_active_offers"],
        "event_offers": offer_totals["event_offers"],
        "total_slots": slot_totals["total_slots"],
        "total_capacity": slot_totals["total_capacity"],
        "students_scheduled": len(scheduled),
        "utilization_rate": utilization_rate(len(scheduled), slot_totals["total_capacity"]),
        "top_offer_title": top_offer,
        "top_offer_bookings": top_offer_bookings,
    }


def get_company_stats(company_id: str, event_id: str) -> dict:
    params = {"company_id": str(company_id), "event_id": str(event_id)}

    offer_totals = execute_raw_sql(
        """
        SELECT COUNT(*) FILTER (WHERE is_active)::INTEGER AS total_active_offers,
               COUNT(*) FILTER (WHERE is_active AND event_id = :event_id)::INTEGER AS event_offers
        FROM offers
        WHERE company_id = :company_id
        """,
        params,
    )[0]

    slot_totals = execute_raw_sql(
        """
        SELECT COUNT(*)::INTEGER AS total_slots,
               COALESCE(SUM(COALESCE(capacity, 1)), 0)::INTEGER AS total_capacity
        FROM event_slots
        WHERE company_id = :company_id AND event_id = :event_id AND is_active = TRUE
        """,
        params,
    )[0]

    scheduled = get_company_schedule(company_id, event_id)

    return {
        "event_id": event_id,
        **summarize_company(offer_totals, slot_totals, scheduled),
        "scheduled": scheduled,
    }
