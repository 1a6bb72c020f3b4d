"""Shared fixtures: environment defaults, API client and identity overrides."""

import os
from datetime import datetime, timezone

import pytest

# Settings are cached on first import; set defaults before anything imports inf_platform
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_DB", "inf_platform_test")
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGODB_DB", "inf_documents_test")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient  # noqa: E402

from inf_platform.core.auth import get_current_company, get_current_user  # noqa: E402
from inf_platform.main import app  # noqa: E402

STUDENT_ID = "11111111-1111-1111-1111-111111111111"
COMPANY_USER_ID = "22222222-2222-2222-2222-222222222222"
COMPANY_ID = "33333333-3333-3333-3333-333333333333"
ADMIN_ID = "44444444-4444-4444-4444-444444444444"
EVENT_ID = "55555555-5555-5555-5555-555555555555"
SLOT_ID = "66666666-6666-6666-6666-666666666666"
OFFER_ID = "77777777-7777-7777-7777-777777777777"


def at(hour: int, minute: int = 0) -> datetime:
    """A fixed day in UTC, so tests never depend on the wall clock."""
    return datetime(2030, 3, 14, hour, minute, tzinfo=timezone.utc)


def make_user(role: str, **overrides) -> dict:
    ids = {"student": STUDENT_ID, "company": COMPANY_USER_ID, "admin": ADMIN_ID}
    user = {
        "user_id": ids[role],
        "email": f"{role}@um6p.ma",
        "full_name": f"Test {role.title()}",
        "role": role,
        "is_deprioritized": False,
        "account_approved": True,
    }
    user.update(overrides)
    return user


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login_as():
    """Override the current identity: login_as("student", account_approved=False)."""
    def _login(role: str, **overrides) -> dict:
        user = make_user(role, **overrides)
        app.dependency_overrides[get_current_user] = lambda: user
        if role == "company":
            company = dict(user, company_id=COMPANY_ID, company_name="Acme, Inc.", is_verified=True)
            app.dependency_overrides[get_current_company] = lambda: company
        return user

    yield _login
    app.dependency_overrides.clear()
