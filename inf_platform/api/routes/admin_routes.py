"""
Admin Routes

GET /admin/events - All events
POST /admin/events - Create event
POST /admin/events/{event_id}/toggle - Activate / deactivate event
PUT /admin/events/{event_id}/phase - Set booking phase and limits
DELETE /admin/events/{event_id} - Delete event (fn_delete_event)
GET /admin/events/{event_id}/stats - Slots, capacity, bookings and top company for an event
GET /admin/events/{event_id}/registrations/export/csv - Confirmed bookings as CSV
GET /admin/companies - All companies
PUT /admin/companies/{company_id}/verify - Verify / unverify (fn_verify_company)
GET /admin/students - Students (optionally pending approval only)
PATCH /admin/students/{student_id} - Toggle is_deprioritized / account_approved
GET /admin/bookings - All confirmed bookings (search, event filter)
POST /admin/bookings/{booking_id}/cancel - Cancel a booking on behalf of the student
"""

from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import Response
from typing import List, Optional
from uuid import UUID

from inf_platform.core.auth import get_current_admin
from inf_platform.services import admin_service, booking_service, export_service, stats_service
from inf_platform.schemas.schemas import (
    EventCreate, EventResponse, PhaseUpdate, EventDeleteResponse, EventStatsResponse, CompanyResponse,
    CompanyVerification, StudentFlagUpdate, StudentAdminResponse, AdminBookingResponse, MessageResponse
)

router = APIRouter(prefix="/admin", tags=["Admin"])


# ============================================================
# EVENTS
# ============================================================

@router.get("/events", response_model=List[EventResponse])
async def list_events(admin: dict = Depends(get_current_admin)):
    return [EventResponse(**e) for e in admin_service.list_events()]


@router.post("/events", response_model=EventResponse, status_code=201)
async def create_event(data: EventCreate, admin: dict = Depends(get_current_admin)):
    return EventResponse(**admin_service.create_event(data.model_dump()))


@router.post("/events/{event_id}/toggle", response_model=EventResponse)
async def toggle_event(event_id: UUID, admin: dict = Depends(get_current_admin)):
    event = admin_service.toggle_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return EventResponse(**event)


@router.put("/events/{event_id}/phase", response_model=EventResponse)
async def update_phase(event_id: UUID, data: PhaseUpdate, admin: dict = Depends(get_current_admin)):
    """
    Phase 0 closes bookings, phase 1 admits non-deprioritized students,
    phase 2 admits everyone with the larger limit.
    """
    event = admin_service.update_phase(
        event_id, data.current_phase, data.phase1_max_bookings, data.phase2_max_bookings
    )
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return EventResponse(**event)


@router.delete("/events/{event_id}", response_model=EventDeleteResponse)
async def delete_event(event_id: UUID, admin: dict = Depends(get_current_admin)):
    if not admin_service.get_event(event_id):
        raise HTTPException(status_code=404, detail="Event not found")

    counts = admin_service.delete_event(event_id)
    return EventDeleteResponse(
        message=(
            f"Event deleted: {counts.get('slots_deleted', 0)} slot(s) and "
            f"{counts.get('bookings_deleted', 0)} booking(s) removed"
        ),
        offers_updated=counts.get("offers_updated", 0),
        slots_deleted=counts.get("slots_deleted", 0),
        bookings_deleted=counts.get("bookings_deleted", 0),
    )


@router.get("/events/{event_id}/stats", response_model=EventStatsResponse)
async def event_stats(event_id: UUID, admin: dict = Depends(get_current_admin)):
    if not admin_service.get_event(event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    return EventStatsResponse(**stats_service.get_event_stats(event_id))


@router.get("/events/{event_id}/registrations/export/csv")
async def export_registrations(event_id: UUID, admin: dict = Depends(get_current_admin)):
    event = admin_service.get_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    rows = booking_service.get_event_registrations(event_id)
    filename = export_service.export_filename("event-registrations", "csv")
    return Response(
        content=export_service.bookings_to_csv(rows, export_service.EVENT_REGISTRATION_COLUMNS),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# ============================================================
# COMPANIES
# ============================================================

@router.get("/companies", response_model=List[CompanyResponse])
async def list_companies(admin: dict = Depends(get_current_admin)):
    return [CompanyResponse(**c) for c in admin_service.list_companies()]


@router.put("/companies/{company_id}/verify", response_model=MessageResponse)
async def verify_company(company_id: UUID, data: CompanyVerification, admin: dict = Depends(get_current_admin)):
    if not admin_service.get_company(company_id):
        raise HTTPException(status_code=404, detail="Company not found")

    admin_service.verify_company(company_id, data.is_verified, admin["user_id"])
    state = "verified" if data.is_verified else "unverified"
    return MessageResponse(message=f"Company {state}")


# ============================================================
# STUDENTS
# ============================================================

@router.get("/students", response_model=List[StudentAdminResponse])
async def list_students(pending_only: bool = False, admin: dict = Depends(get_current_admin)):
    return [StudentAdminResponse(**s) for s in admin_service.list_students(pending_only)]


@router.patch("/students/{student_id}", response_model=StudentAdminResponse)
async def update_student_flags(student_id: UUID, data: StudentFlagUpdate, admin: dict = Depends(get_current_admin)):
    student = admin_service.get_student(student_id)
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No flags to update")

    for field, value in changes.items():
        student = admin_service.set_student_flag(student, field, value)

    return StudentAdminResponse(**student)


# ============================================================
# BOOKINGS
# ============================================================

@router.get("/bookings", response_model=List[AdminBookingResponse])
async def list_bookings(
    search: Optional[str] = None,
    event_id: Optional[UUID] = None,
    admin: dict = Depends(get_current_admin)
):
    return [AdminBookingResponse(**b) for b in admin_service.list_bookings(search, event_id)]


@router.post("/bookings/{booking_id}/cancel", response_model=MessageResponse)
async def cancel_booking(booking_id: UUID, admin: dict = Depends(get_current_admin)):
    if not admin_service.cancel_booking(booking_id, admin["user_id"]):
        raise HTTPException(status_code=404, detail="Booking not found or already cancelled")
    return MessageResponse(message="Booking cancelled successfully")
