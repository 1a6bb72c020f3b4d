"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional, List
from datetime import datetime, date
from enum import Enum
from uuid import UUID


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    student = "student"
    company = "company"
    admin = "admin"


class BookingStatus(str, Enum):
    confirmed = "confirmed"
    cancelled = "cancelled"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class StudentSignupRequest(BaseModel):
    email: EmailStr
    password: str
    confirm_password: str
    full_name: str
    phone: Optional[str] = None
    is_deprioritized: bool = False

class CompanySignupRequest(BaseModel):
    email: EmailStr
    password: str
    confirm_password: str
    full_name: str
    company_name: str = Field(..., min_length=2, max_length=200)
    industry: Optional[str] = None
    phone: Optional[str] = None

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class VerifyEmailRequest(BaseModel):
    token: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: UUID
    role: UserRole

class SignupResponse(BaseModel):
    success: bool = True
    message: str
    user_id: UUID
    role: UserRole
    account_approved: bool


# ============================================================
# PROFILE SCHEMAS
# ============================================================

class ProfileResponse(BaseModel):
    id: UUID
    email: str
    full_name: str
    role: UserRole
    phone: Optional[str] = None
    specialization: Optional[str] = None
    graduation_year: Optional[int] = None
    is_deprioritized: bool = False
    account_approved: bool = True
    cv_uploaded: bool = False
    created_at: Optional[datetime] = None

class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    specialization: Optional[str] = None
    graduation_year: Optional[int] = Field(None, ge=2000, le=2100)
    is_deprioritized: Optional[bool] = None

class CVUploadResponse(BaseModel):
    success: bool
    message: str
    filename: str
    document_id: str
    text_length: int


# ============================================================
# COMPANY SCHEMAS
# ============================================================

class CompanyResponse(BaseModel):
    id: UUID
    company_name: str
    industry: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    is_verified: bool = False
    active_offers: int = 0

class CompanyUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=2, max_length=200)
    industry: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None


# ============================================================
# EVENT SCHEMAS
# ============================================================

class EventCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=200)
    date: datetime
    location: Optional[str] = None
    phase1_max_bookings: int = Field(3, ge=0)
    phase2_max_bookings: int = Field(6, ge=0)

    @model_validator(mode="after")
    def check_phase_limits(self):
        if self.phase2_max_bookings < self.phase1_max_bookings:
            raise ValueError("Phase 2 limit must be >= Phase 1 limit")
        return self

class PhaseUpdate(BaseModel):
    current_phase: int = Field(..., ge=0, le=2)
    phase1_max_bookings: int = Field(..., ge=0)
    phase2_max_bookings: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_phase_limits(self):
        if self.phase2_max_bookings < self.phase1_max_bookings:
            raise ValueError("Phase 2 limit must be >= Phase 1 limit")
        return self

class EventResponse(BaseModel):
    id: UUID
    name: str
    date: datetime
    location: Optional[str] = None
    is_active: bool
    current_phase: int
    phase1_max_bookings: int
    phase2_max_bookings: int

class EventDeleteResponse(BaseModel):
    success: bool = True
    message: str
    offers_updated: int = 0
    slots_deleted: int = 0
    bookings_deleted: int = 0


# ============================================================
# OFFER SCHEMAS
# ============================================================

class OfferCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = None
    interest_tag: Optional[str] = None
    location: Optional[str] = None
    department: Optional[str] = None
    event_id: Optional[UUID] = None

class OfferUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None
    interest_tag: Optional[str] = None
    location: Optional[str] = None
    department: Optional[str] = None
    event_id: Optional[UUID] = None

class OfferResponse(BaseModel):
    id: UUID
    company_id: UUID
    company_name: str
    company_verified: bool = False
    event_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    interest_tag: Optional[str] = None
    location: Optional[str] = None
    department: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

class OfferListResponse(BaseModel):
    offers: List[OfferResponse]
    total: int  # all matches, not just this page


# ============================================================
# SLOT SCHEMAS
# ============================================================

class SlotCreate(BaseModel):
    event_id: UUID
    offer_id: Optional[UUID] = None
    start_time: datetime
    end_time: datetime
    capacity: int = Field(1, ge=1)
    location: Optional[str] = None

    @model_validator(mode="after")
    def check_interval(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

class SlotResponse(BaseModel):
    id: UUID
    event_id: UUID
    company_id: UUID
    offer_id: Optional[UUID] = None
    start_time: datetime
    end_time: datetime
    capacity: int
    location: Optional[str] = None
    is_active: bool = True
    bookings_count: int = 0
    spots_left: int = 0

class AvailableSlotsResponse(BaseModel):
    event_id: UUID
    slots: List[SlotResponse]
    includes_past_slots: bool = False


# ============================================================
# BOOKING SCHEMAS
# ============================================================

class BookingLimitResponse(BaseModel):
    can_book: bool
    current_count: int
    max_allowed: int
    current_phase: int
    message: str
    submit_enabled: bool

class BookingPanelResponse(BaseModel):
    offer_id: UUID
    event: Optional[EventResponse] = None
    limit: Optional[BookingLimitResponse] = None
    available: Optional[AvailableSlotsResponse] = None
    submit_enabled: bool = False

class ConflictCheckResponse(BaseModel):
    has_conflict: bool
    warning: Optional[str] = None
    conflicting_company: Optional[str] = None
    conflicting_start: Optional[datetime] = None
    confirm_enabled: bool = True

class BookingRequest(BaseModel):
    slot_id: UUID
    offer_id: UUID

class BookingResult(BaseModel):
    success: bool
    message: str
    booking_id: Optional[UUID] = None

class StudentBookingResponse(BaseModel):
    booking_id: UUID
    slot_id: Optional[UUID] = None
    event_id: Optional[UUID] = None
    slot_time: datetime
    slot_end_time: Optional[datetime] = None
    offer_title: str
    company_name: str
    event_name: Optional[str] = None
    status: BookingStatus
    notes: Optional[str] = None
    can_cancel: bool = False

class StudentBookingsResponse(BaseModel):
    upcoming: List[StudentBookingResponse]
    past: List[StudentBookingResponse]
    total: int

class ScheduledInterviewResponse(BaseModel):
    booking_id: UUID
    slot_id: UUID
    start_time: datetime
    end_time: datetime
    location: Optional[str] = None
    student_id: Optional[UUID] = None
    student_name: str
    student_email: str
    student_phone: Optional[str] = None
    offer_title: Optional[str] = None
    status: BookingStatus

class CompanyStudentResponse(BaseModel):
    booking_id: UUID
    student_id: UUID
    student_name: str
    student_email: str
    student_phone: Optional[str] = None
    specialization: Optional[str] = None
    graduation_year: Optional[int] = None
    cv_uploaded: bool = False
    offer_title: str
    slot_time: datetime

class CompanyStatsResponse(BaseModel):
    event_id: UUID
    total_active_offers: int
    event_offers: int
    total_slots: int
    total_capacity: int
    students_scheduled: int
    utilization_rate: int
    top_offer_title: str
    top_offer_bookings: int
    scheduled: List[ScheduledInterviewResponse] = []


# ============================================================
# ADMIN SCHEMAS
# ============================================================

class CompanyVerification(BaseModel):
    is_verified: bool

class StudentFlagUpdate(BaseModel):
    is_deprioritized: Optional[bool] = None
    account_approved: Optional[bool] = None

class StudentAdminResponse(BaseModel):
    id: UUID
    email: str
    full_name: str
    phone: Optional[str] = None
    is_deprioritized: bool
    account_approved: bool
    confirmed_bookings: int = 0
    created_at: Optional[datetime] = None

class EventStatsResponse(BaseModel):
    event_id: UUID
    event_companies: int
    event_students: int
    event_bookings: int
    total_students: int
    total_slots: int
    total_capacity: int
    available_slots: int
    top_company_name: str
    top_company_bookings: int

class AdminBookingResponse(BaseModel):
    booking_id: UUID
    student_id: UUID
    student_name: str
    student_email: str
    company_name: str
    event_id: Optional[UUID] = None
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    created_at: Optional[datetime] = None


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True

class ErrorResponse(BaseModel):
    detail: str
    success: bool = False
