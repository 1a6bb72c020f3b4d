"""
Offer Catalog Routes (public)

GET /offers - Search active offers of verified companies
GET /offers/companies - Verified companies
GET /offers/{offer_id} - Offer details
"""

from fastapi import APIRouter, HTTPException, Query
from typing import List, Optional
from uuid import UUID

from inf_platform.services import offer_service
from inf_platform.schemas.schemas import OfferResponse, OfferListResponse, CompanyResponse

router = APIRouter(prefix="/offers", tags=["Offers"])


@router.get("", response_model=OfferListResponse)
async def list_offers(
    search: Optional[str] = Query(None, description="Search title, description or company"),
    interest_tag: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0)
):
    offers = offer_service.list_public_offers(search, interest_tag, limit, offset)
    total = offer_service.count_public_offers(search, interest_tag)
    return OfferListResponse(offers=[OfferResponse(**o) for o in offers], total=total)


@router.get("/companies", response_model=List[CompanyResponse])
async def list_companies():
    return [CompanyResponse(**c) for c in offer_service.list_verified_companies()]


@router.get("/{offer_id}", response_model=OfferResponse)
async def get_offer(offer_id: UUID):
    offer = offer_service.get_public_offer(offer_id)
    if not offer:
        raise HTTPException(status_code=404, detail="Offer not found")
    return OfferResponse(**offer)
