"""
Authentication Utility - JWT, password hashing and the role guard.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification (access and email-verification tokens)
- require_role(): the single guarded boundary for protected routes
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import text

from inf_platform.core.config import get_settings
from inf_platform.db.postgres import get_db_session

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor
bearer_scheme = HTTPBearer()

ACCESS_TOKEN = "access"
VERIFY_EMAIL_TOKEN = "verify_email"


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def _encode(data: dict, token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({
        "type": token_type,
        "exp": datetime.now(timezone.utc) + expires_delta,
    })
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    return _encode(data, ACCESS_TOKEN, expires_delta or timedelta(minutes=settings.jwt_expire_minutes))


def create_verify_email_token(user_id: str, email: str) -> str:
    """Create the signed token carried by the email confirmation link."""
    return _encode(
        {"sub": user_id, "email": email},
        VERIFY_EMAIL_TOKEN,
        timedelta(minutes=settings.verify_email_expire_minutes),
    )


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> Optional[dict]:
    """Decode and verify JWT token; tokens of another type are rejected."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if payload.get("type") != expected_type:
        return None
    return payload


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> dict:
    """
    FastAPI dependency - Get current authenticated user (profile row).

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if not payload:
        raise credentials_exception

    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception

    with get_db_session() as db:
        result = db.execute(
            text("""
                SELECT p.id, p.email, p.full_name, p.role::TEXT AS role,
                       p.is_deprioritized, p.account_approved, u.is_active
                FROM profiles p
                JOIN auth_users u ON u.id = p.id
                WHERE p.id = :id
            """),
            {"id": str(user_id)}
        )
        row = result.mappings().fetchone()

    if not row or not row["is_active"]:
        raise credentials_exception

    return {
        "user_id": str(row["id"]),
        "email": row["email"],
        "full_name": row["full_name"],
        "role": row["role"],
        "is_deprioritized": row["is_deprioritized"],
        "account_approved": row["account_approved"],
    }


def require_role(*roles: str):
    """
    Dependency factory - resolve the identity once and enforce its role.

    Usage:
        @router.get("/admin-only")
        async def route(user: dict = Depends(require_role("admin"))):
            ...
    """
    async def guard(user: dict = Depends(get_current_user)) -> dict:
        if user["role"] not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access restricted to: {', '.join(roles)}",
            )
        return user

    return guard


async def get_current_student(user: dict = Depends(require_role("student"))) -> dict:
    """Dependency - Require an approved student."""
    if not user["account_approved"]:
        raise HTTPException(status_code=403, detail="Account pending approval")
    user["student_id"] = user["user_id"]
    return user


async def get_current_company(user: dict = Depends(require_role("company"))) -> dict:
    """Dependency - Require company role and get company_id."""
    with get_db_session() as db:
        result = db.execute(
            text("SELECT id, company_name, is_verified FROM companies WHERE profile_id = :id"),
            {"id": user["user_id"]}
        )
        row = result.fetchone()

    if not row:
        raise HTTPException(status_code=404, detail="Company profile not found.")

    user["company_id"] = str(row[0])
    user["company_name"] = row[1]
    user["is_verified"] = row[2]
    return user


async def get_current_admin(user: dict = Depends(require_role("admin"))) -> dict:
    """Dependency - Require admin role."""
    return user
