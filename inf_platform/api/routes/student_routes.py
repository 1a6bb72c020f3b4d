"""
Student Routes

GET /students/profile - Get own profile
PUT /students/profile - Update profile
POST /students/cv/upload - Upload CV (PDF/DOCX/TXT)
GET /students/offers/{offer_id}/booking-panel - Event, limit banner and open slots for an offer
GET /students/offers/{offer_id}/slots - Open slots of the offer's company
GET /students/offers/{offer_id}/slots/stream - Same, pushed every few seconds (SSE)
GET /students/booking-limit - Limit gate for an event
GET /students/slots/{slot_id}/conflict - Advisory time-conflict check
POST /students/bookings - Book a slot
POST /students/bookings/{booking_id}/cancel - Cancel a booking
GET /students/bookings - My bookings (upcoming / past)
GET /students/bookings/export/csv - My bookings as CSV
GET /students/bookings/export/pdf - My bookings as PDF
"""

import asyncio
import json
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import Response, StreamingResponse

from inf_platform.core.auth import get_current_student, require_role
from inf_platform.core.config import get_settings
from inf_platform.core.validators import sanitize_input, validate_full_name, validate_phone
from inf_platform.services import (
    account_service, booking_service, conflict_service, cv_service, export_service, offer_service
)
from inf_platform.services.admin_service import get_event
from inf_platform.services.slot_service import fetch_available_slots, get_current_event, get_slot
from inf_platform.utils.file_upload import read_upload
from inf_platform.schemas.schemas import (
    ProfileResponse, ProfileUpdate, CVUploadResponse, AvailableSlotsResponse,
    BookingLimitResponse, BookingPanelResponse, ConflictCheckResponse, EventResponse,
    BookingRequest, BookingResult, StudentBookingsResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/students", tags=["Students"])


# ============================================================
# PROFILE & CV
# ============================================================

@router.get("/profile", response_model=ProfileResponse)
async def get_profile(user: dict = Depends(require_role("student"))):
    profile = account_service.fetch_profile(user["user_id"])
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return ProfileResponse(**profile)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(data: ProfileUpdate, user: dict = Depends(require_role("student"))):
    """
    Update own profile. Name and phone go through the signup validators.

    Only fields present in the body change; an empty or null phone clears it.
    """
    updates = data.model_dump(exclude_unset=True)

    if updates.get("full_name") is not None:
        if not validate_full_name(updates["full_name"]):
            raise HTTPException(status_code=400, detail="Please enter a valid full name (at least 2 characters)")
        updates["full_name"] = sanitize_input(updates["full_name"])

    if "phone" in updates:
        if not validate_phone(updates["phone"]):
            raise HTTPException(
                status_code=400,
                detail="Invalid phone number format. Use format: +212 6XX XXX XXX or 06XX XXX XXX"
            )
        updates["phone"] = sanitize_input(updates["phone"] or "") or None

    return ProfileResponse(**account_service.update_profile(user["user_id"], updates))


@router.post("/cv/upload", response_model=CVUploadResponse)
async def upload_cv(file: UploadFile = File(...), user: dict = Depends(require_role("student"))):
    """
    Upload a CV file (PDF, DOCX, or TXT).

    The file and its extracted text are stored in MongoDB; companies that
    interview the student can download it.
    """
    upload = await read_upload(file)
    document_id = cv_service.store_student_cv(user["user_id"], upload)

    return CVUploadResponse(
        success=True,
        message="CV uploaded successfully",
        filename=upload.filename,
        document_id=document_id,
        text_length=len(upload.text),
    )


# ============================================================
# BOOKING PANEL
# ============================================================

def _public_offer_or_404(offer_id: UUID) -> dict:
    offer = offer_service.get_public_offer(offer_id)
    if not offer:
        raise HTTPException(status_code=404, detail="Offer not found")
    return offer


def _resolve_offer_and_event(offer_id: UUID, event_id: Optional[UUID]) -> tuple:
    offer = _public_offer_or_404(offer_id)

    if event_id:
        return offer, str(event_id)
    if offer.get("event_id"):
        return offer, str(offer["event_id"])

    event = get_current_event()
    if not event:
        raise HTTPException(status_code=404, detail="No upcoming event")
    return offer, str(event["id"])


@router.get("/offers/{offer_id}/booking-panel", response_model=BookingPanelResponse)
async def booking_panel(
    offer_id: UUID,
    event_id: Optional[UUID] = None,
    student: dict = Depends(get_current_student)
):
    """Everything the booking dialog needs: the event, the limit banner and open slots."""
    offer = _public_offer_or_404(offer_id)

    if event_id or offer.get("event_id"):
        event = get_event(event_id or offer["event_id"])
    else:
        event = get_current_event()

    if not event:
        return BookingPanelResponse(offer_id=offer_id)

    limit = booking_service.get_booking_limit(student["student_id"], event["id"])
    available = fetch_available_slots(offer["company_id"], event["id"])

    return BookingPanelResponse(
        offer_id=offer_id,
        event=EventResponse(**event),
        limit=BookingLimitResponse(**limit),
        available=AvailableSlotsResponse(**available),
        submit_enabled=limit["submit_enabled"],
    )


@router.get("/offers/{offer_id}/slots", response_model=AvailableSlotsResponse)
async def available_slots(
    offer_id: UUID,
    event_id: Optional[UUID] = None,
    student: dict = Depends(get_current_student)
):
    offer, resolved_event = _resolve_offer_and_event(offer_id, event_id)
    return AvailableSlotsResponse(**fetch_available_slots(offer["company_id"], resolved_event))


@router.get("/offers/{offer_id}/slots/stream")
async def stream_available_slots(
    offer_id: UUID,
    request: Request,
    event_id: Optional[UUID] = None,
    student: dict = Depends(get_current_student)
):
    """
    Server-Sent Events: re-fetch open slots every slot_refresh_seconds
    until the client disconnects.
    """
    offer, resolved_event = _resolve_offer_and_event(offer_id, event_id)
    interval = get_settings().slot_refresh_seconds

    async def event_stream():
        while not await request.is_disconnected():
            payload = AvailableSlotsResponse(**fetch_available_slots(offer["company_id"], resolved_event))
            yield f"event: slots\ndata: {json.dumps(jsonable_encoder(payload))}\n\n"
            await asyncio.sleep(interval)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.get("/booking-limit", response_model=BookingLimitResponse)
async def booking_limit(event_id: Optional[UUID] = None, student: dict = Depends(get_current_student)):
    if event_id is None:
        event = get_current_event()
        if not event:
            raise HTTPException(status_code=404, detail="No upcoming event")
        event_id = event["id"]
    return BookingLimitResponse(**booking_service.get_booking_limit(student["student_id"], event_id))


@router.get("/slots/{slot_id}/conflict", response_model=ConflictCheckResponse)
async def slot_conflict(slot_id: UUID, student: dict = Depends(get_current_student)):
    """Warn when the slot overlaps a confirmed booking. Never blocks the booking."""
    return ConflictCheckResponse(**conflict_service.check_slot_conflict(student["student_id"], slot_id))


# ============================================================
# BOOK / CANCEL
# ============================================================

@router.post("/bookings", response_model=BookingResult, status_code=201)
async def book_slot(data: BookingRequest, student: dict = Depends(get_current_student)):
    """
    Book an interview slot.

    The limit is re-checked first; fn_book_interview then enforces every rule
    and its message is returned as-is on refusal.
    """
    slot = get_slot(data.slot_id)
    if not slot or not slot["is_active"]:
        raise HTTPException(status_code=404, detail="Slot not found")
    _public_offer_or_404(data.offer_id)

    limit = booking_service.get_booking_limit(student["student_id"], slot["event_id"])
    if not limit["can_book"]:
        raise HTTPException(status_code=400, detail=booking_service.LIMIT_REACHED_MESSAGE)

    result = booking_service.book_interview(student["student_id"], data.slot_id, data.offer_id)
    if not result["success"]:
        raise HTTPException(status_code=400, detail=result["message"])

    return BookingResult(**result)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingResult)
async def cancel_booking(booking_id: UUID, student: dict = Depends(get_current_student)):
    result = booking_service.cancel_booking(booking_id, student["student_id"])
    if not result["success"]:
        raise HTTPException(status_code=400, detail=result["message"])
    return BookingResult(success=True, message=result["message"], booking_id=booking_id)


# ============================================================
# MY BOOKINGS & EXPORTS
# ============================================================

@router.get("/bookings", response_model=StudentBookingsResponse)
async def my_bookings(event_id: Optional[UUID] = None, student: dict = Depends(require_role("student"))):
    return StudentBookingsResponse(**booking_service.get_student_bookings(student["user_id"], event_id))


@router.get("/bookings/export/csv")
async def export_bookings_csv(event_id: Optional[UUID] = None, student: dict = Depends(require_role("student"))):
    rows = booking_service.list_student_bookings(student["user_id"], event_id)
    filename = export_service.export_filename("my-interviews", "csv")
    return Response(
        content=export_service.bookings_to_csv(rows, export_service.STUDENT_BOOKING_COLUMNS),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/bookings/export/pdf")
async def export_bookings_pdf(event_id: Optional[UUID] = None, student: dict = Depends(require_role("student"))):
    rows = booking_service.list_student_bookings(student["user_id"], event_id)
    filename = export_service.export_filename("my-interviews", "pdf")
    pdf = export_service.bookings_to_pdf(
        rows, export_service.STUDENT_BOOKING_COLUMNS, title=f"Interviews - {student['full_name']}"
    )
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
