"""Tests for the booking procedure wrappers."""

import pytest

from conftest import COMPANY_ID, EVENT_ID, OFFER_ID, SLOT_ID, STUDENT_ID, at
from inf_platform.core.errors import ProcedureError
from inf_platform.services import booking_service


@pytest.fixture
def procedure(monkeypatch):
    """Replace call_procedure; returns the list of recorded calls."""
    calls = []
    results = {}

    def fake_call(name, params=None):
        calls.append((name, params))
        return results.get(name, [])

    monkeypatch.setattr(booking_service, "call_procedure", fake_call)
    fake_call.calls = calls
    fake_call.results = results
    return fake_call


class TestBookingLimit:
    def test_can_book_enables_submit(self, procedure):
        procedure.results["fn_check_student_booking_limit"] = [{
            "can_book": True, "current_count": 1, "max_allowed": 3, "current_phase": 1,
            "message": "You can book 2 more interview(s). Phase 1: 1/3 booked",
        }]
        limit = booking_service.get_booking_limit(STUDENT_ID, EVENT_ID)
        assert limit["submit_enabled"] is True
        assert limit["max_allowed"] == 3
        assert procedure.calls == [
            ("fn_check_student_booking_limit", {"p_student_id": STUDENT_ID, "p_event_id": EVENT_ID})
        ]

    def test_cannot_book_disables_submit(self, procedure):
        procedure.results["fn_check_student_booking_limit"] = [{
            "can_book": False, "current_count": 0, "max_allowed": 0, "current_phase": 0,
            "message": "Bookings are currently closed for this event",
        }]
        limit = booking_service.get_booking_limit(STUDENT_ID, EVENT_ID)
        assert limit["can_book"] is False
        assert limit["submit_enabled"] is False
        assert limit["message"] == "Bookings are currently closed for this event"

    def test_missing_row_raises(self, procedure):
        with pytest.raises(ProcedureError):
            booking_service.get_booking_limit(STUDENT_ID, EVENT_ID)


class TestBookInterview:
    def test_success(self, procedure):
        procedure.results["fn_book_interview"] = [{
            "success": True, "booking_id": "b-1",
            "message": "Interview booked successfully! 0 spot(s) remaining",
        }]
        result = booking_service.book_interview(STUDENT_ID, SLOT_ID, OFFER_ID)
        assert result == {
            "success": True,
            "message": "Interview booked successfully! 0 spot(s) remaining",
            "booking_id": "b-1",
        }
        assert procedure.calls[0] == (
            "fn_book_interview",
            {"p_student_id": STUDENT_ID, "p_slot_id": SLOT_ID, "p_offer_id": OFFER_ID},
        )

    def test_business_rule_failure_is_returned(self, procedure):
        procedure.results["fn_book_interview"] = [{
            "success": False, "booking_id": None,
            "message": "This time slot conflicts with another booking",
        }]
        result = booking_service.book_interview(STUDENT_ID, SLOT_ID, OFFER_ID)
        assert result["success"] is False
        assert result["message"] == "This time slot conflicts with another booking"

    def test_missing_row_raises(self, procedure):
        with pytest.raises(ProcedureError, match="No response from booking function"):
            booking_service.book_interview(STUDENT_ID, SLOT_ID, OFFER_ID)


def test_cancel(procedure):
    procedure.results["fn_cancel_booking"] = [{"success": False, "message": "Booking is already cancelled"}]
    assert booking_service.cancel_booking("b-1", STUDENT_ID) == {
        "success": False, "message": "Booking is already cancelled",
    }


class TestStudentBookings:
    ROWS = [
        {"booking_id": "past", "event_id": EVENT_ID, "slot_time": at(9), "status": "confirmed"},
        {"booking_id": "cancelled", "event_id": EVENT_ID, "slot_time": at(15), "status": "cancelled"},
        {"booking_id": "later", "event_id": EVENT_ID, "slot_time": at(16), "status": "confirmed"},
        {"booking_id": "soon", "event_id": EVENT_ID, "slot_time": at(11), "status": "confirmed"},
        {"booking_id": "other-event", "event_id": "other", "slot_time": at(12), "status": "confirmed"},
    ]

    def test_split(self):
        split = booking_service.split_bookings(self.ROWS, now=at(10))
        assert [b["booking_id"] for b in split["upcoming"]] == ["soon", "other-event", "later"]
        assert [b["booking_id"] for b in split["past"]] == ["cancelled", "past"]
        assert split["total"] == 5

    def test_event_filter(self, procedure):
        procedure.results["fn_get_student_bookings"] = self.ROWS
        rows = booking_service.list_student_bookings(STUDENT_ID, event_id=EVENT_ID)
        assert "other-event" not in [r["booking_id"] for r in rows]
        assert len(rows) == 4


class TestCompanyStudents:
    @pytest.fixture
    def sql(self, monkeypatch):
        calls = []
        monkeypatch.setattr(booking_service, "execute_raw_sql", lambda sql, params=None: calls.append((sql, params)) or [])
        return calls

    def test_only_confirmed_bookings_of_the_company(self, sql):
        booking_service.list_company_students(COMPANY_ID)
        statement, params = sql[0]
        assert "es.company_id = :company_id AND b.status = 'confirmed'" in statement
        assert params == {"company_id": COMPANY_ID}

    def test_filters(self, sql):
        booking_service.list_company_students(
            COMPANY_ID, event_id=EVENT_ID, search="amina", specialization="Data Science", graduation_year=2026
        )
        statement, params = sql[0]
        assert "o.title ILIKE :search" in statement
        assert params == {
            "company_id": COMPANY_ID, "event_id": EVENT_ID, "search": "%amina%",
            "specialization": "Data Science", "graduation_year": 2026,
        }
