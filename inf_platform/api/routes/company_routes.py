"""
Company Routes

GET /companies/profile - Get own company profile
PUT /companies/profile - Update company profile
GET /companies/offers - List own offers
POST /companies/offers - Create offer
PUT /companies/offers/{offer_id} - Update offer
POST /companies/offers/{offer_id}/toggle - Activate / deactivate offer
DELETE /companies/offers/{offer_id} - Delete offer
GET /companies/slots - List own slots with booking counts
POST /companies/slots - Create interview slot
DELETE /companies/slots/{slot_id} - Deactivate slot
GET /companies/schedule - Confirmed interviews
GET /companies/schedule/export/csv - Schedule as CSV
GET /companies/schedule/export/pdf - Schedule as PDF
GET /companies/stats - Dashboard figures for an event (current event by default)
GET /companies/students - Students booked with the company (search and filters)
GET /companies/students/{student_id}/cv - Download a booked student's CV
"""

from fastapi import APIRouter, HTTPException, Depends, Query
from fastapi.responses import Response
from sqlalchemy import text
from typing import List, Optional
from uuid import UUID

from inf_platform.db.postgres import get_db_session
from inf_platform.core.auth import get_current_company
from inf_platform.services import (
    booking_service, cv_service, export_service, offer_service, slot_service, stats_service
)
from inf_platform.services.admin_service import get_event
from inf_platform.schemas.schemas import (
    CompanyResponse, CompanyUpdate, OfferCreate, OfferUpdate, OfferResponse, OfferListResponse,
    SlotCreate, SlotResponse, ScheduledInterviewResponse, CompanyStatsResponse, CompanyStudentResponse,
    MessageResponse
)

router = APIRouter(prefix="/companies", tags=["Companies"])


# ============================================================
# PROFILE
# ============================================================

@router.get("/profile", response_model=CompanyResponse)
async def get_profile(company: dict = Depends(get_current_company)):
    with get_db_session() as db:
        result = db.execute(
            text("""
                SELECT c.id, c.company_name, c.industry, c.description, c.website, c.is_verified,
                       (SELECT COUNT(*) FROM offers o
                        WHERE o.company_id = c.id AND o.is_active)::INTEGER AS active_offers
                FROM companies c
                WHERE c.id = :id
            """),
            {"id": company["company_id"]}
        )
        row = result.mappings().fetchone()

    return CompanyResponse(**row)


@router.put("/profile", response_model=MessageResponse)
async def update_profile(data: CompanyUpdate, company: dict = Depends(get_current_company)):
    updates = data.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    set_clause = ", ".join(f"{k} = :{k}" for k in updates)
    updates["id"] = company["company_id"]

    with get_db_session() as db:
        db.execute(
            text(f"UPDATE companies SET {set_clause}, updated_at = NOW() WHERE id = :id"),
            updates
        )

    return MessageResponse(message="Company profile updated")


# ============================================================
# OFFERS
# ============================================================

@router.get("/offers", response_model=OfferListResponse)
async def list_offers(company: dict = Depends(get_current_company)):
    offers = offer_service.list_company_offers(company["company_id"])
    return OfferListResponse(offers=[OfferResponse(**o) for o in offers], total=len(offers))


@router.post("/offers", response_model=OfferResponse, status_code=201)
async def create_offer(data: OfferCreate, company: dict = Depends(get_current_company)):
    if data.event_id and not get_event(data.event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    return OfferResponse(**offer_service.create_offer(company["company_id"], data.model_dump()))


@router.put("/offers/{offer_id}", response_model=OfferResponse)
async def update_offer(offer_id: UUID, data: OfferUpdate, company: dict = Depends(get_current_company)):
    offer = offer_service.update_offer(company["company_id"], offer_id, data.model_dump(exclude_none=True))
    if not offer:
        raise HTTPException(status_code=404, detail="Offer not found")
    return OfferResponse(**offer)


@router.post("/offers/{offer_id}/toggle", response_model=OfferResponse)
async def toggle_offer(offer_id: UUID, company: dict = Depends(get_current_company)):
    offer = offer_service.toggle_offer(company["company_id"], offer_id)
    if not offer:
        raise HTTPException(status_code=404, detail="Offer not found")
    return OfferResponse(**offer)


@router.delete("/offers/{offer_id}", response_model=MessageResponse)
async def delete_offer(offer_id: UUID, company: dict = Depends(get_current_company)):
    if not offer_service.delete_offer(company["company_id"], offer_id):
        raise HTTPException(status_code=404, detail="Offer not found")
    return MessageResponse(message="Offer deleted")


# ============================================================
# SLOTS
# ============================================================

@router.get("/slots", response_model=List[SlotResponse])
async def list_slots(event_id: Optional[UUID] = None, company: dict = Depends(get_current_company)):
    return [SlotResponse(**s) for s in slot_service.list_company_slots(company["company_id"], event_id)]


@router.post("/slots", response_model=SlotResponse, status_code=201)
async def create_slot(data: SlotCreate, company: dict = Depends(get_current_company)):
    """Create an interview slot; end must be after start and capacity at least 1."""
    if not get_event(data.event_id):
        raise HTTPException(status_code=404, detail="Event not found")

    if data.offer_id:
        offer = offer_service.get_offer(data.offer_id)
        if not offer or str(offer["company_id"]) != company["company_id"]:
            raise HTTPException(status_code=404, detail="Offer not found")

    return SlotResponse(**slot_service.create_slot(company["company_id"], data.model_dump()))


@router.delete("/slots/{slot_id}", response_model=MessageResponse)
async def deactivate_slot(slot_id: UUID, company: dict = Depends(get_current_company)):
    if not slot_service.deactivate_slot(company["company_id"], slot_id):
        raise HTTPException(status_code=404, detail="Slot not found")
    return MessageResponse(message="Slot deactivated")


# ============================================================
# SCHEDULE & EXPORTS
# ============================================================

@router.get("/schedule", response_model=List[ScheduledInterviewResponse])
async def get_schedule(event_id: Optional[UUID] = None, company: dict = Depends(get_current_company)):
    rows = booking_service.get_company_schedule(company["company_id"], event_id)
    return [ScheduledInterviewResponse(**r) for r in rows]


@router.get("/schedule/export/csv")
async def export_schedule_csv(event_id: Optional[UUID] = None, company: dict = Depends(get_current_company)):
    rows = booking_service.get_company_schedule(company["company_id"], event_id)
    filename = export_service.export_filename("interview-schedule", "csv")
    return Response(
        content=export_service.bookings_to_csv(rows, export_service.COMPANY_SCHEDULE_COLUMNS),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/schedule/export/pdf")
async def export_schedule_pdf(event_id: Optional[UUID] = None, company: dict = Depends(get_current_company)):
    rows = booking_service.get_company_schedule(company["company_id"], event_id)
    filename = export_service.export_filename("interview-schedule", "pdf")
    pdf = export_service.bookings_to_pdf(
        rows, export_service.COMPANY_SCHEDULE_COLUMNS,
        title=f"Interview Schedule - {company['company_name']}",
    )
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# ============================================================
# DASHBOARD & STUDENTS
# ============================================================

@router.get("/stats", response_model=CompanyStatsResponse)
async def get_stats(event_id: Optional[UUID] = None, company: dict = Depends(get_current_company)):
    if event_id is None:
        event = slot_service.get_current_event()
        if not event:
            raise HTTPException(status_code=404, detail="No upcoming event")
        event_id = event["id"]
    return CompanyStatsResponse(**stats_service.get_company_stats(company["company_id"], event_id))


@router.get("/students", response_model=List[CompanyStudentResponse])
async def list_students(
    event_id: Optional[UUID] = None,
    search: Optional[str] = Query(None, description="Search name, email or offer title"),
    specialization: Optional[str] = None,
    graduation_year: Optional[int] = None,
    company: dict = Depends(get_current_company)
):
    rows = booking_service.list_company_students(
        company["company_id"], event_id, search, specialization, graduation_year
    )
    return [CompanyStudentResponse(**r) for r in rows]


@router.get("/students/{student_id}/cv")
async def download_student_cv(student_id: UUID, company: dict = Depends(get_current_company)):
    """Only students who booked one of the company's slots are visible."""
    if not cv_service.company_can_view_cv(company["company_id"], student_id):
        raise HTTPException(status_code=403, detail="No booking with this student")

    cv = cv_service.get_student_cv(student_id)
    if not cv:
        raise HTTPException(status_code=404, detail="Student has not uploaded a CV")

    return Response(
        content=bytes(cv["content"]),
        media_type=cv["content_type"],
        headers={"Content-Disposition": f"attachment; filename={cv['filename']}"},
    )
