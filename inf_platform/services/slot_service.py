"""
Slot Service - availability of interview slots.

Slots are read straight from event_slots with their confirmed-booking counts.
A slot is bookable while bookings_count < capacity (capacity defaults to 1).
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from inf_platform.db.postgres import execute_raw_sql

logger = logging.getLogger(__name__)


SLOT_COLUMNS = """
    es.id, es.event_id, es.company_id, es.offer_id,
    es.start_time, es.end_time, es.capacity, es.location, es.is_active,
    COUNT(b.id) FILTER (WHERE b.status = 'confirmed')::INTEGER AS bookings_count
"""


def _with_spots_left(slot: dict) -> dict:
    capacity = slot.get("capacity") or 1
    slot["spots_left"] = max(0, capacity - (slot.get("bookings_count") or 0))
    return slot


def filter_available_slots(slots: List[dict]) -> List[dict]:
    """Keep slots that still have room."""
    return [
        _with_spots_left(slot)
        for slot in slots
        if (slot.get("bookings_count") or 0) < (slot.get("capacity") or 1)
    ]


def _query_company_slots(company_id: str, event_id: str, after: Optional[datetime]) -> List[dict]:
    time_filter = "AND es.start_time >= :after" if after else ""
    sql = f"""
        SELECT {SLOT_COLUMNS}
        FROM event_slots es
        LEFT JOIN bookings b ON b.slot_id = es.id
        WHERE es.company_id = :company_id
          AND es.event_id = :event_id
          AND es.is_active = TRUE
          {time_filter}
        GROUP BY es.id
        ORDER BY es.start_time
    """
    params = {"company_id": str(company_id), "event_id": str(event_id)}
    if after:
        params["after"] = after
    return execute_raw_sql(sql, params)


def fetch_available_slots(company_id: str, event_id: str, now: Optional[datetime] = None) -> dict:
    """
    Active slots of a company for an event that still have room.

    Future slots are preferred. When the company has none, every active slot
    is returned instead and the result is flagged with includes_past_slots.

    Returns:
        {"event_id", "slots", "includes_past_slots"}
    """
    now = now or datetime.now(timezone.utc)

    slots = _query_company_slots(company_id, event_id, after=now)
    includes_past_slots = False

    if not slots:
        slots = _query_company_slots(company_id, event_id, after=None)
        if slots:
            includes_past_slots = True
            logger.warning(
                "No future slots for company %s in event %s; falling back to %d past slot(s)",
                company_id, event_id, len(slots),
            )

    return {
        "event_id": event_id,
        "slots": filter_available_slots(slots),
        "includes_past_slots": includes_past_slots,
    }


def get_slot(slot_id: str) -> Optional[dict]:
    """One slot with its company name and confirmed-booking count."""
    rows = execute_raw_sql(
        f"""
        SELECT {SLOT_COLUMNS}, c.company_name
        FROM event_slots es
        JOIN companies c ON c.id = es.company_id
        LEFT JOIN bookings b ON b.slot_id = es.id
        WHERE es.id = :slot_id
        GROUP BY es.id, c.company_name
        """,
        {"slot_id": str(slot_id)},
    )
    return _with_spots_left(rows[0]) if rows else None


def get_current_event(now: Optional[datetime] = None) -> Optional[dict]:
    """The earliest active event whose date is today or later."""
    now = now or datetime.now(timezone.utc)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    rows = execute_raw_sql(
        """
        SELECT id, name, date, location, is_active, current_phase,
               phase1_max_bookings, phase2_max_bookings
        FROM events
        WHERE date >= :today AND is_active = TRUE
        ORDER BY date ASC
        LIMIT 1
        """,
        {"today": today},
    )
    return rows[0] if rows else None


# ============================================================
# COMPANY SLOT MANAGEMENT
# ============================================================

def create_slot(company_id: str, data: dict) -> dict:
    rows = execute_raw_sql(
        """
        INSERT INTO event_slots (event_id, company_id, offer_id, start_time, end_time, capacity, location)
        VALUES (:event_id, :company_id, :offer_id, :start_time, :end_time, :capacity, :location)
        RETURNING id, event_id, company_id, offer_id, start_time, end_time, capacity, location, is_active
        """,
        {
            "event_id": str(data["event_id"]),
            "company_id": str(company_id),
            "offer_id": str(data["offer_id"]) if data.get("offer_id") else None,
            "start_time": data["start_time"],
            "end_time": data["end_time"],
            "capacity": data.get("capacity") or 1,
            "location": data.get("location"),
        },
    )
    slot = rows[0]
    slot["bookings_count"] = 0
    return _with_spots_left(slot)


def list_company_slots(company_id: str, event_id: Optional[str] = None) -> List[dict]:
    """Every slot of the company, full or not, with booking counts."""
    event_filter = "AND es.event_id = :event_id" if event_id else ""
    rows = execute_raw_sql(
        f"""
        SELECT {SLOT_COLUMNS}
        FROM event_slots es
        LEFT JOIN bookings b ON b.slot_id = es.id
        WHERE es.company_id = :company_id
          {event_filter}
        GROUP BY es.id
        ORDER BY es.start_time
        """,
        {"company_id": str(company_id), "event_id": str(event_id) if event_id else None},
    )
    return [_with_spots_left(row) for row in rows]


def deactivate_slot(company_id: str, slot_id: str) -> bool:
    rows = execute_raw_sql(
        """
        UPDATE event_slots SET is_active = FALSE
        WHERE id = :slot_id AND company_id = :company_id
        RETURNING id
        """,
        {"slot_id": str(slot_id), "company_id": str(company_id)},
    )
    return bool(rows)
