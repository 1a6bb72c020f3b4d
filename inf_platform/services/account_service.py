"""
Account Service - signup, profile materialization, login, email confirmation.

Signup inserts into auth_users; the on_auth_user_created trigger creates the
profiles row (and the companies row for company accounts). The service then
waits for that row with a bounded linear backoff and falls back to
create_profile_for_user once if it never shows up.
"""

import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional

from inf_platform.core.auth import (
    VERIFY_EMAIL_TOKEN,
    create_access_token,
    create_verify_email_token,
    decode_token,
    hash_password,
    verify_password,
)
from inf_platform.core.config import get_settings
from inf_platform.core.errors import AuthError, PlatformError, ProcedureError, RuleViolation
from inf_platform.db.postgres import UNIQUE_VIOLATION, call_procedure, execute_raw_sql

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

PROFILE_COLUMNS = """
    p.id, p.email, p.full_name, p.role::TEXT AS role, p.phone, p.specialization,
    p.graduation_year, p.is_deprioritized, p.account_approved,
    (p.cv_document_id IS NOT NULL) AS cv_uploaded, p.created_at
"""

PROFILE_EDITABLE_FIELDS = ("full_name", "phone", "specialization", "graduation_year", "is_deprioritized")
# Sent as null to clear
PROFILE_NULLABLE_FIELDS = ("phone", "specialization", "graduation_year")


def fetch_profile(user_id: str) -> Optional[dict]:
    rows = execute_raw_sql(
        f"SELECT {PROFILE_COLUMNS} FROM profiles p WHERE p.id = :id",
        {"id": str(user_id)},
    )
    return rows[0] if rows else None


async def wait_for_profile(user_id: str, attempts: Optional[int] = None,
                           base_delay: Optional[float] = None,
                           sleep: Sleep = asyncio.sleep) -> Optional[dict]:
    """
    Poll for the trigger-created profile.

    No delay before the first attempt; attempt n waits base_delay * n.
    """
    settings = get_settings()
    attempts = attempts if attempts is not None else settings.profile_poll_attempts
    base_delay = base_delay if base_delay is not None else settings.profile_poll_base_delay

    for attempt in range(attempts):
        if attempt:
            await sleep(base_delay * attempt)
        profile = fetch_profile(user_id)
        if profile:
            return profile
        logger.info("Profile for %s not ready (attempt %d/%d)", user_id, attempt + 1, attempts)
    return None


async def ensure_profile(user_id: str, sleep: Sleep = asyncio.sleep) -> dict:
    profile = await wait_for_profile(user_id, sleep=sleep)
    if profile:
        return profile

    logger.warning("Profile for %s never materialized; calling create_profile_for_user", user_id)
    try:
        call_procedure("create_profile_for_user", {"p_user_id": str(user_id)})
    except ProcedureError as e:
        logger.error("create_profile_for_user failed for %s: %s", user_id, e.message)
        raise PlatformError("Profile creation failed", status_code=500) from e

    profile = fetch_profile(user_id)
    if not profile:
        raise PlatformError("Profile creation failed", status_code=500)
    return profile


def email_registered(email: str) -> bool:
    rows = execute_raw_sql("SELECT 1 FROM auth_users WHERE email = :email", {"email": email})
    return bool(rows)


async def signup(email: str, password: str, metadata: dict, sleep: Sleep = asyncio.sleep) -> dict:
    """
    Create credentials and wait for the profile.

    metadata lands in raw_user_meta_data and drives the trigger
    (role, full_name, phone, is_deprioritized, company_name, industry).

    Returns:
        the materialized profile row
    """
    if email_registered(email):
        raise AuthError("User already registered", status_code=409)

    try:
        rows = execute_raw_sql(
            """
            INSERT INTO auth_users (email, password_hash, raw_user_meta_data)
            VALUES (:email, :password_hash, CAST(:meta AS JSONB))
            RETURNING id
            """,
            {"email": email, "password_hash": hash_password(password), "meta": json.dumps(metadata)},
        )
    except RuleViolation as e:
        # A concurrent signup took the address between the check and the insert
        if e.pgcode == UNIQUE_VIOLATION:
            raise AuthError("User already registered", status_code=409) from e
        raise

    user_id = str(rows[0]["id"])
    logger.info("Created %s account %s for %s", metadata.get("role"), user_id, email)

    profile = await ensure_profile(user_id, sleep=sleep)
    send_verification_link(user_id, email)
    return profile


def send_verification_link(user_id: str, email: str) -> str:
    """Mail delivery is not wired up; the token is logged for the operator."""
    token = create_verify_email_token(user_id, email)
    logger.info("Email verification token for %s: %s", email, token)
    return token


def confirm_email(token: str) -> str:
    payload = decode_token(token, expected_type=VERIFY_EMAIL_TOKEN)
    if not payload or not payload.get("sub"):
        raise AuthError("Invalid or expired verification link", status_code=400)

    rows = execute_raw_sql(
        """
        UPDATE auth_users SET email_confirmed_at = COALESCE(email_confirmed_at, NOW())
        WHERE id = :id
        RETURNING email
        """,
        {"id": str(payload["sub"])},
    )
    if not rows:
        raise AuthError("Invalid or expired verification link", status_code=400)
    logger.info("Email confirmed for %s", rows[0]["email"])
    return rows[0]["email"]


def login(email: str, password: str) -> dict:
    rows = execute_raw_sql(
        """
        SELECT u.id, u.password_hash, u.email_confirmed_at, u.is_active, p.role::TEXT AS role
        FROM auth_users u
        LEFT JOIN profiles p ON p.id = u.id
        WHERE u.email = :email
        """,
        {"email": email.strip().lower()},
    )
    user = rows[0] if rows else None

    if not user or not verify_password(password, user["password_hash"]):
        raise AuthError("Invalid login credentials")
    if not user["is_active"]:
        raise AuthError("Account deactivated", status_code=403)
    if get_settings().require_email_confirmation and user["email_confirmed_at"] is None:
        raise AuthError("Email not confirmed")
    if not user["role"]:
        raise PlatformError("Profile not found for this account", status_code=404)

    user_id = str(user["id"])
    token = create_access_token({"sub": user_id, "role": user["role"]})
    return {"access_token": token, "token_type": "bearer", "user_id": user_id, "role": user["role"]}


def update_profile(user_id: str, updates: dict) -> Optional[dict]:
    fields = {
        k: v for k, v in updates.items()
        if k in PROFILE_EDITABLE_FIELDS and (v is not None or k in PROFILE_NULLABLE_FIELDS)
    }
    if fields:
        assignments = ", ".join(f"{key} = :{key}" for key in fields)
        execute_raw_sql(
            f"UPDATE profiles SET {assignments}, updated_at = NOW() WHERE id = :id",
            {**fields, "id": str(user_id)},
        )
    return fetch_profile(user_id)
