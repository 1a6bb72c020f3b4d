"""API tests with the database layer monkeypatched out."""

import asyncio
import csv
import io
import json
from datetime import date
from types import SimpleNamespace
from uuid import UUID

import pytest

from conftest import COMPANY_ID, EVENT_ID, OFFER_ID, SLOT_ID, STUDENT_ID, at, make_user
from inf_platform.api.routes import company_routes, student_routes
from inf_platform.core.errors import AuthError, RuleViolation
from inf_platform.services import (
    account_service,
    admin_service,
    booking_service,
    conflict_service,
    offer_service,
    slot_service,
    stats_service,
)

LIMIT_OPEN = {
    "can_book": True, "current_count": 0, "max_allowed": 3, "current_phase": 1,
    "message": "You can book 3 more interview(s). Phase 1: 0/3 booked", "submit_enabled": True,
}
LIMIT_REACHED = dict(LIMIT_OPEN, can_book=False, current_count=3, submit_enabled=False,
                     message="You have reached the maximum of 3 interviews for Phase 1")
SLOT = {
    "id": SLOT_ID, "event_id": EVENT_ID, "company_id": COMPANY_ID, "offer_id": OFFER_ID,
    "start_time": at(10, 15), "end_time": at(10, 45), "capacity": 2, "location": "Room 4",
    "is_active": True, "bookings_count": 0, "spots_left": 2, "company_name": "Inwi",
}
OFFER = {
    "id": OFFER_ID, "company_id": COMPANY_ID, "company_name": "Inwi", "company_verified": True,
    "event_id": EVENT_ID, "title": "Data Engineer", "description": None, "interest_tag": "data",
    "location": None, "department": None, "is_active": True, "created_at": None,
}
EVENT = {
    "id": EVENT_ID, "name": "INF Forum", "date": at(9), "location": "UM6P", "is_active": True,
    "current_phase": 1, "phase1_max_bookings": 3, "phase2_max_bookings": 6,
}
AVAILABLE = {"event_id": EVENT_ID, "slots": [SLOT], "includes_past_slots": False}


# ============================================================
# ROLE GUARD
# ============================================================

class TestRoleGuard:
    def test_missing_token(self, client):
        assert client.get("/api/students/bookings").status_code in (401, 403)

    def test_wrong_role(self, client, login_as):
        login_as("company")
        response = client.get("/api/students/bookings")
        assert response.status_code == 403
        assert "student" in response.json()["detail"]

    def test_student_cannot_reach_admin(self, client, login_as):
        login_as("student")
        assert client.get("/api/admin/events").status_code == 403

    def test_unapproved_student_cannot_book(self, client, login_as):
        login_as("student", account_approved=False)
        response = client.post("/api/students/bookings", json={"slot_id": SLOT_ID, "offer_id": OFFER_ID})
        assert response.status_code == 403
        assert response.json()["detail"] == "Account pending approval"


# ============================================================
# BOOKING
# ============================================================

class TestBookSlot:
    @pytest.fixture(autouse=True)
    def slot(self, monkeypatch):
        monkeypatch.setattr(student_routes, "get_slot", lambda slot_id: dict(SLOT))
        monkeypatch.setattr(offer_service, "get_offer", lambda offer_id: dict(OFFER))

    def test_limit_reached_refuses_before_booking(self, client, login_as, monkeypatch):
        login_as("student")
        booked = []
        monkeypatch.setattr(booking_service, "get_booking_limit", lambda s, e: LIMIT_REACHED)
        monkeypatch.setattr(booking_service, "book_interview", lambda *args: booked.append(args))

        response = client.post("/api/students/bookings", json={"slot_id": SLOT_ID, "offer_id": OFFER_ID})

        assert response.status_code == 400
        assert response.json()["detail"] == "You have reached your booking limit for this phase."
        assert booked == []

    def test_success(self, client, login_as, monkeypatch):
        login_as("student")
        monkeypatch.setattr(booking_service, "get_booking_limit", lambda s, e: LIMIT_OPEN)
        monkeypatch.setattr(
            booking_service, "book_interview",
            lambda student_id, slot_id, offer_id: {
                "success": True,
                "message": "Interview booked successfully! 1 spot(s) remaining",
                "booking_id": "88888888-8888-8888-8888-888888888888",
            },
        )
        response = client.post("/api/students/bookings", json={"slot_id": SLOT_ID, "offer_id": OFFER_ID})
        assert response.status_code == 201
        assert response.json()["message"] == "Interview booked successfully! 1 spot(s) remaining"

    def test_procedure_refusal_is_surfaced_verbatim(self, client, login_as, monkeypatch):
        login_as("student")
        monkeypatch.setattr(booking_service, "get_booking_limit", lambda s, e: LIMIT_OPEN)
        monkeypatch.setattr(
            booking_service, "book_interview",
            lambda *args: {"success": False, "message": "This time slot conflicts with another booking",
                           "booking_id": None},
        )
        response = client.post("/api/students/bookings", json={"slot_id": SLOT_ID, "offer_id": OFFER_ID})
        assert response.status_code == 400
        assert response.json()["detail"] == "This time slot conflicts with another booking"

    def test_unknown_slot(self, client, login_as, monkeypatch):
        login_as("student")
        monkeypatch.setattr(student_routes, "get_slot", lambda slot_id: None)
        response = client.post("/api/students/bookings", json={"slot_id": SLOT_ID, "offer_id": OFFER_ID})
        assert response.status_code == 404

    def test_offer_of_unverified_company(self, client, login_as, monkeypatch):
        login_as("student")
        booked = []
        monkeypatch.setattr(offer_service, "get_offer", lambda offer_id: dict(OFFER, company_verified=False))
        monkeypatch.setattr(booking_service, "get_booking_limit", lambda s, e: LIMIT_OPEN)
        monkeypatch.setattr(booking_service, "book_interview", lambda *args: booked.append(args))

        response = client.post("/api/students/bookings", json={"slot_id": SLOT_ID, "offer_id": OFFER_ID})

        assert response.status_code == 404
        assert response.json()["detail"] == "Offer not found"
        assert booked == []


# ============================================================
# BOOKING PANEL & SLOT STREAM
# ============================================================

class TestBookingPanel:
    def test_submit_mirrors_can_book(self, client, login_as, monkeypatch):
        login_as("student")
        monkeypatch.setattr(offer_service, "get_offer", lambda offer_id: dict(OFFER))
        monkeypatch.setattr(student_routes, "get_event", lambda event_id: dict(EVENT))
        monkeypatch.setattr(booking_service, "get_booking_limit", lambda s, e: LIMIT_REACHED)
        monkeypatch.setattr(student_routes, "fetch_available_slots", lambda company_id, event_id: AVAILABLE)

        response = client.get(f"/api/students/offers/{OFFER_ID}/booking-panel")

        assert response.status_code == 200
        body = response.json()
        assert body["event"]["id"] == EVENT_ID
        assert body["limit"]["can_book"] is False
        assert body["submit_enabled"] is False
        assert body["available"]["slots"][0]["id"] == SLOT_ID

    def test_open_limit_enables_submit(self, client, login_as, monkeypatch):
        login_as("student")
        monkeypatch.setattr(offer_service, "get_offer", lambda offer_id: dict(OFFER))
        monkeypatch.setattr(student_routes, "get_event", lambda event_id: dict(EVENT))
        monkeypatch.setattr(booking_service, "get_booking_limit", lambda s, e: LIMIT_OPEN)
        monkeypatch.setattr(student_routes, "fetch_available_slots", lambda company_id, event_id: AVAILABLE)

        response = client.get(f"/api/students/offers/{OFFER_ID}/booking-panel")

        assert response.json()["submit_enabled"] is True

    def test_no_event_resolved(self, client, login_as, monkeypatch):
        login_as("student")
        monkeypatch.setattr(offer_service, "get_offer", lambda offer_id: dict(OFFER, event_id=None))
        monkeypatch.setattr(student_routes, "get_current_event", lambda: None)

        response = client.get(f"/api/students/offers/{OFFER_ID}/booking-panel")

        assert response.status_code == 200
        body = response.json()
        assert body["event"] is None
        assert body["limit"] is None
        assert body["submit_enabled"] is False

    def test_unverified_company_is_hidden(self, client, login_as, monkeypatch):
        login_as("student")
        monkeypatch.setattr(offer_service, "get_offer", lambda offer_id: dict(OFFER, company_verified=False))
        response = client.get(f"/api/students/offers/{OFFER_ID}/booking-panel")
        assert response.status_code == 404


class FakeRequest:
    """Reports connected for each queued False, then disconnected."""

    def __init__(self, polls):
        self._polls = iter(polls)

    async def is_disconnected(self):
        return next(self._polls, True)


def test_slot_stream_pushes_frames_until_disconnect(monkeypatch):
    fetched = []
    monkeypatch.setattr(offer_service, "get_offer", lambda offer_id: dict(OFFER))
    monkeypatch.setattr(
        student_routes, "fetch_available_slots",
        lambda company_id, event_id: fetched.append((company_id, event_id)) or AVAILABLE,
    )
    monkeypatch.setattr(student_routes, "get_settings", lambda: SimpleNamespace(slot_refresh_seconds=0))

    async def collect():
        response = await student_routes.stream_available_slots(
            UUID(OFFER_ID), FakeRequest([False, False]), event_id=UUID(EVENT_ID),
            student=make_user("student", student_id=STUDENT_ID),
        )
        return response, [frame async for frame in response.body_iterator]

    response, frames = asyncio.run(collect())

    assert response.media_type == "text/event-stream"
    assert len(frames) == 2
    assert fetched == [(COMPANY_ID, EVENT_ID), (COMPANY_ID, EVENT_ID)]
    event_line, data_line = frames[0].strip().split("\n")
    assert event_line == "event: slots"
    payload = json.loads(data_line[len("data: "):])
    assert payload["slots"][0]["id"] == SLOT_ID
    assert payload["includes_past_slots"] is False


# ============================================================
# OFFER CATALOG & PROFILE
# ============================================================

def test_public_offer_detail_hides_unverified_company(client, monkeypatch):
    monkeypatch.setattr(offer_service, "get_offer", lambda offer_id: dict(OFFER, company_verified=False))
    assert client.get(f"/api/offers/{OFFER_ID}").status_code == 404


def test_public_offer_detail(client, monkeypatch):
    monkeypatch.setattr(offer_service, "get_offer", lambda offer_id: dict(OFFER))
    response = client.get(f"/api/offers/{OFFER_ID}")
    assert response.status_code == 200
    assert response.json()["company_verified"] is True


def test_offer_list_total_counts_every_match(client, monkeypatch):
    monkeypatch.setattr(offer_service, "list_public_offers", lambda *args: [dict(OFFER)])
    monkeypatch.setattr(offer_service, "count_public_offers", lambda search, interest_tag: 42)

    response = client.get("/api/offers", params={"limit": 1, "search": "data"})

    assert response.json()["total"] == 42
    assert len(response.json()["offers"]) == 1


@pytest.mark.parametrize("phone", ["", None])
def test_student_can_clear_phone(client, login_as, monkeypatch, phone):
    login_as("student")
    seen = {}

    def fake_update(user_id, updates):
        seen.update(updates)
        return {"id": STUDENT_ID, "email": "student@um6p.ma", "full_name": "Test Student",
                "role": "student", "phone": None}

    monkeypatch.setattr(account_service, "update_profile", fake_update)
    response = client.put("/api/students/profile", json={"phone": phone})

    assert response.status_code == 200
    assert seen == {"phone": None}
    assert response.json()["phone"] is None


def test_conflict_warning_keeps_confirm_enabled(client, login_as, monkeypatch):
    """Existing 10:00-10:30 booking against a 10:15-10:45 slot."""
    login_as("student")
    monkeypatch.setattr(conflict_service, "get_slot", lambda slot_id: dict(SLOT))
    monkeypatch.setattr(conflict_service, "list_student_bookings", lambda student_id: [{
        "booking_id": "88888888-8888-8888-8888-888888888888",
        "slot_id": "99999999-9999-9999-9999-999999999999",
        "slot_time": at(10), "slot_end_time": at(10, 30),
        "company_name": "OCP Group", "status": "confirmed",
    }])

    response = client.get(f"/api/students/slots/{SLOT_ID}/conflict")

    assert response.status_code == 200
    body = response.json()
    assert body["has_conflict"] is True
    assert body["warning"] == "Time conflict with OCP Group at 10:00"
    assert body["confirm_enabled"] is True


def test_booking_limit_banner(client, login_as, monkeypatch):
    login_as("student")
    monkeypatch.setattr(booking_service, "get_booking_limit", lambda s, e: LIMIT_REACHED)
    response = client.get("/api/students/booking-limit", params={"event_id": EVENT_ID})
    assert response.status_code == 200
    assert response.json()["submit_enabled"] is False


def test_cancel_refusal(client, login_as, monkeypatch):
    login_as("student")
    monkeypatch.setattr(
        booking_service, "cancel_booking",
        lambda booking_id, student_id: {"success": False, "message": "Booking not found or you are not authorized"},
    )
    response = client.post("/api/students/bookings/88888888-8888-8888-8888-888888888888/cancel")
    assert response.status_code == 400
    assert response.json()["detail"] == "Booking not found or you are not authorized"


def test_bookings_csv_export(client, login_as, monkeypatch):
    login_as("student")
    monkeypatch.setattr(booking_service, "list_student_bookings", lambda student_id, event_id=None: [{
        "slot_time": at(10), "company_name": "OCP Group", "offer_title": "Data Engineer, Intern",
        "event_name": "INF Forum", "status": "confirmed",
    }])

    response = client.get("/api/students/bookings/export/csv")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert f"my-interviews-{date.today().isoformat()}.csv" in response.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[1][2] == "Data Engineer, Intern"


# ============================================================
# AUTH
# ============================================================

SIGNUP = {
    "email": "amina@um6p.ma",
    "password": "Abcdefgh12!x",
    "confirm_password": "Abcdefgh12!x",
    "full_name": "Amina El Idrissi",
    "phone": "0612345678",
}


class TestSignup:
    def test_password_mismatch(self, client):
        response = client.post("/api/auth/signup/student", json=dict(SIGNUP, confirm_password="Abcdefgh12!y"))
        assert response.status_code == 400
        assert response.json()["detail"] == "Passwords do not match"

    def test_weak_password_feedback(self, client):
        response = client.post(
            "/api/auth/signup/student",
            json=dict(SIGNUP, password="Abcdefg12!x", confirm_password="Abcdefg12!x"),
        )
        assert response.status_code == 422
        assert response.json()["feedback"] == ["At least 12 characters"]

    def test_student_signup(self, client, monkeypatch):
        seen = {}

        async def fake_signup(email, password, metadata):
            seen.update(metadata, email=email)
            return {"id": STUDENT_ID, "role": "student", "account_approved": False}

        monkeypatch.setattr(account_service, "signup", fake_signup)
        response = client.post("/api/auth/signup/student", json=SIGNUP)

        assert response.status_code == 201
        assert response.json()["account_approved"] is False
        assert seen["role"] == "student"
        assert seen["full_name"] == "Amina El Idrissi"

    def test_company_signup_passes_company_name(self, client, monkeypatch):
        seen = {}

        async def fake_signup(email, password, metadata):
            seen.update(metadata)
            return {"id": STUDENT_ID, "role": "company", "account_approved": True}

        monkeypatch.setattr(account_service, "signup", fake_signup)
        response = client.post(
            "/api/auth/signup/company",
            json=dict(SIGNUP, email="hr@gmail.com", company_name="  OCP Group "),
        )
        assert response.status_code == 201
        assert seen["company_name"] == "OCP Group"


def test_login_error_is_humanized(client, monkeypatch):
    def failing_login(email, password):
        raise AuthError("Email not confirmed")

    monkeypatch.setattr(account_service, "login", failing_login)
    response = client.post("/api/auth/login", json={"email": "amina@um6p.ma", "password": "x"})
    assert response.status_code == 401
    assert response.json()["detail"].startswith("Please verify your email address")


# ============================================================
# ADMIN & COMPANY
# ============================================================

def test_phase_limits_must_be_ordered(client, login_as):
    login_as("admin")
    response = client.put(
        f"/api/admin/events/{EVENT_ID}/phase",
        json={"current_phase": 1, "phase1_max_bookings": 4, "phase2_max_bookings": 3},
    )
    assert response.status_code == 422


def test_delete_event_reports_counts(client, login_as, monkeypatch):
    login_as("admin")
    monkeypatch.setattr(admin_service, "get_event", lambda event_id: dict(EVENT))
    monkeypatch.setattr(admin_service, "delete_event", lambda event_id: {
        "offers_updated": 2, "slots_deleted": 5, "bookings_deleted": 7, "event_deleted": 1,
    })
    response = client.delete(f"/api/admin/events/{EVENT_ID}")
    assert response.status_code == 200
    assert response.json()["bookings_deleted"] == 7


def test_admin_approves_student(client, login_as, monkeypatch):
    login_as("admin")
    student = {
        "id": STUDENT_ID, "email": "amina@um6p.ma", "full_name": "Amina", "phone": None,
        "is_deprioritized": False, "account_approved": False, "confirmed_bookings": 0, "created_at": None,
    }
    monkeypatch.setattr(admin_service, "get_student", lambda student_id: dict(student))
    monkeypatch.setattr(admin_service, "execute_raw_sql", lambda sql, params=None: [])

    response = client.patch(f"/api/admin/students/{STUDENT_ID}", json={"account_approved": True})

    assert response.status_code == 200
    assert response.json()["account_approved"] is True


def test_company_cv_download_requires_booking(client, login_as, monkeypatch):
    login_as("company")
    monkeypatch.setattr(company_routes.cv_service, "company_can_view_cv", lambda company_id, student_id: False)
    response = client.get(f"/api/companies/students/{STUDENT_ID}/cv")
    assert response.status_code == 403


def test_company_schedule_pdf(client, login_as, monkeypatch):
    login_as("company")
    monkeypatch.setattr(booking_service, "get_company_schedule", lambda company_id, event_id=None: [{
        "start_time": at(10), "end_time": at(10, 30), "student_name": "Amina",
        "student_email": "amina@um6p.ma", "student_phone": None, "offer_title": "Data Engineer",
    }])
    response = client.get("/api/companies/schedule/export/pdf")
    assert response.status_code == 200
    assert response.content.startswith(b"%PDF")


def test_admin_registrations_unknown_event(client, login_as, monkeypatch):
    login_as("admin")
    monkeypatch.setattr(admin_service, "get_event", lambda event_id: None)
    response = client.get(f"/api/admin/events/{EVENT_ID}/registrations/export/csv")
    assert response.status_code == 404


class TestAdminNotFound:
    def test_delete_unknown_event(self, client, login_as, monkeypatch):
        login_as("admin")
        deleted = []
        monkeypatch.setattr(admin_service, "get_event", lambda event_id: None)
        monkeypatch.setattr(admin_service, "delete_event", lambda event_id: deleted.append(event_id))

        response = client.delete(f"/api/admin/events/{EVENT_ID}")

        assert response.status_code == 404
        assert response.json()["detail"] == "Event not found"
        assert deleted == []

    def test_database_raise_is_a_client_error(self, client, login_as, monkeypatch):
        login_as("admin")

        def raising(event_id):
            raise RuleViolation("Event not found", procedure="fn_delete_event", pgcode="P0001")

        monkeypatch.setattr(admin_service, "get_event", lambda event_id: dict(EVENT))
        monkeypatch.setattr(admin_service, "delete_event", raising)

        response = client.delete(f"/api/admin/events/{EVENT_ID}")

        assert response.status_code == 400
        assert response.json() == {"detail": "Event not found", "success": False}

    def test_verify_unknown_company(self, client, login_as, monkeypatch):
        login_as("admin")
        monkeypatch.setattr(admin_service, "get_company", lambda company_id: None)
        response = client.put(f"/api/admin/companies/{COMPANY_ID}/verify", json={"is_verified": True})
        assert response.status_code == 404
        assert response.json()["detail"] == "Company not found"


# ============================================================
# DASHBOARDS & OVERVIEWS
# ============================================================

EVENT_STATS = {
    "event_id": EVENT_ID, "event_companies": 2, "event_students": 3, "event_bookings": 4,
    "total_students": 40, "total_slots": 6, "total_capacity": 8, "available_slots": 4,
    "top_company_name": "OCP Group", "top_company_bookings": 3,
}


def test_admin_event_stats(client, login_as, monkeypatch):
    login_as("admin")
    monkeypatch.setattr(admin_service, "get_event", lambda event_id: dict(EVENT))
    monkeypatch.setattr(stats_service, "get_event_stats", lambda event_id: EVENT_STATS)

    response = client.get(f"/api/admin/events/{EVENT_ID}/stats")

    assert response.status_code == 200
    assert response.json()["top_company_name"] == "OCP Group"
    assert response.json()["available_slots"] == 4


def test_admin_event_stats_unknown_event(client, login_as, monkeypatch):
    login_as("admin")
    monkeypatch.setattr(admin_service, "get_event", lambda event_id: None)
    assert client.get(f"/api/admin/events/{EVENT_ID}/stats").status_code == 404


def test_admin_bookings_overview(client, login_as, monkeypatch):
    login_as("admin")
    seen = []
    monkeypatch.setattr(admin_service, "list_bookings", lambda search, event_id: seen.append(search) or [{
        "booking_id": "88888888-8888-8888-8888-888888888888", "student_id": STUDENT_ID,
        "student_name": "Amina", "student_email": "amina@um6p.ma", "company_name": "OCP Group",
        "event_id": EVENT_ID, "start_time": at(10), "end_time": at(10, 30), "status": "confirmed",
        "created_at": at(8),
    }])

    response = client.get("/api/admin/bookings", params={"search": "ocp"})

    assert response.status_code == 200
    assert seen == ["ocp"]
    assert response.json()[0]["company_name"] == "OCP Group"


def test_admin_cancel_unknown_booking(client, login_as, monkeypatch):
    login_as("admin")
    monkeypatch.setattr(admin_service, "cancel_booking", lambda booking_id, admin_id: False)
    response = client.post("/api/admin/bookings/88888888-8888-8888-8888-888888888888/cancel")
    assert response.status_code == 404


def test_admin_cancel_booking(client, login_as, monkeypatch):
    admin = login_as("admin")
    seen = []
    monkeypatch.setattr(
        admin_service, "cancel_booking",
        lambda booking_id, admin_id: seen.append((str(booking_id), admin_id)) or True,
    )
    response = client.post("/api/admin/bookings/88888888-8888-8888-8888-888888888888/cancel")
    assert response.status_code == 200
    assert seen == [("88888888-8888-8888-8888-888888888888", admin["user_id"])]


class TestCompanyDashboard:
    def test_defaults_to_current_event(self, client, login_as, monkeypatch):
        login_as("company")
        seen = []
        monkeypatch.setattr(slot_service, "get_current_event", lambda: dict(EVENT))
        monkeypatch.setattr(stats_service, "get_company_stats", lambda company_id, event_id: seen.append(
            (company_id, event_id)) or {
            "event_id": event_id, "total_active_offers": 2, "event_offers": 1, "total_slots": 4,
            "total_capacity": 4, "students_scheduled": 3, "utilization_rate": 75,
            "top_offer_title": "Data Engineer", "top_offer_bookings": 2, "scheduled": [],
        })

        response = client.get("/api/companies/stats")

        assert response.status_code == 200
        assert seen == [(COMPANY_ID, EVENT_ID)]
        assert response.json()["utilization_rate"] == 75

    def test_no_upcoming_event(self, client, login_as, monkeypatch):
        login_as("company")
        monkeypatch.setattr(slot_service, "get_current_event", lambda: None)
        assert client.get("/api/companies/stats").status_code == 404

    def test_booked_students_filters(self, client, login_as, monkeypatch):
        login_as("company")
        seen = []
        monkeypatch.setattr(booking_service, "list_company_students", lambda *args: seen.append(args) or [{
            "booking_id": "88888888-8888-8888-8888-888888888888", "student_id": STUDENT_ID,
            "student_name": "Amina", "student_email": "amina@um6p.ma", "student_phone": None,
            "specialization": "Data Science", "graduation_year": 2026, "cv_uploaded": True,
            "offer_title": "Data Engineer", "slot_time": at(10),
        }])

        response = client.get("/api/companies/students", params={"search": "ami", "graduation_year": 2026})

        assert response.status_code == 200
        assert seen == [(COMPANY_ID, None, "ami", None, 2026)]
        assert response.json()[0]["cv_uploaded"] is True
