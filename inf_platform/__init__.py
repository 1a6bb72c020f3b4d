"""
INF Platform
Recruiting-event platform where students book interview slots with companies.

Architecture:
- PostgreSQL: Structured data (profiles, companies, events, offers, slots, bookings)
  and the booking procedures (fn_book_interview, fn_cancel_booking, ...)
- MongoDB: Uploaded student CVs (file bytes + extracted text)
- FastAPI: Role-guarded HTTP API, exports, slot auto-refresh stream
"""

__version__ = "1.0.0"
