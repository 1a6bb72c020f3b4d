"""
Authentication Routes

POST /auth/signup/student - Register a student (pending admin approval)
POST /auth/signup/company - Register a company account
POST /auth/verify-email - Confirm an email address from its token
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user's profile
"""

from fastapi import APIRouter, HTTPException, Depends

from inf_platform.core.auth import get_current_user
from inf_platform.core.validators import validate_signup
from inf_platform.services import account_service
from inf_platform.schemas.schemas import (
    StudentSignupRequest, CompanySignupRequest, LoginRequest, VerifyEmailRequest,
    TokenResponse, SignupResponse, ProfileResponse, MessageResponse
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _check_confirmation(password: str, confirm_password: str) -> None:
    if password != confirm_password:
        raise HTTPException(status_code=400, detail="Passwords do not match")


@router.post("/signup/student", response_model=SignupResponse, status_code=201)
async def signup_student(request: StudentSignupRequest):
    """
    Register a student account.

    Students can sign in once the email is confirmed, but booking stays
    locked until an admin approves the account.
    """
    _check_confirmation(request.password, request.confirm_password)
    clean = validate_signup(request.email, request.password, request.full_name, request.phone)

    profile = await account_service.signup(
        clean["email"],
        request.password,
        {
            "role": "student",
            "full_name": clean["full_name"],
            "phone": clean["phone"],
            "is_deprioritized": request.is_deprioritized,
        },
    )

    return SignupResponse(
        message="Account created! Please check your email to confirm your address. "
                "An administrator will approve your account before you can book interviews.",
        user_id=profile["id"],
        role=profile["role"],
        account_approved=profile["account_approved"],
    )


@router.post("/signup/company", response_model=SignupResponse, status_code=201)
async def signup_company(request: CompanySignupRequest):
    """Register a company account; the company row is created alongside the profile."""
    _check_confirmation(request.password, request.confirm_password)
    clean = validate_signup(request.email, request.password, request.full_name, request.phone)

    profile = await account_service.signup(
        clean["email"],
        request.password,
        {
            "role": "company",
            "full_name": clean["full_name"],
            "phone": clean["phone"],
            "company_name": request.company_name.strip(),
            "industry": request.industry,
        },
    )

    return SignupResponse(
        message="Company account created! Please check your email to confirm your address.",
        user_id=profile["id"],
        role=profile["role"],
        account_approved=profile["account_approved"],
    )


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(request: VerifyEmailRequest):
    email = account_service.confirm_email(request.token)
    return MessageResponse(message=f"Email {email} confirmed. You can now sign in.")


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    return TokenResponse(**account_service.login(request.email, request.password))


@router.get("/me", response_model=ProfileResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's profile."""
    profile = account_service.fetch_profile(user["user_id"])
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return ProfileResponse(**profile)
