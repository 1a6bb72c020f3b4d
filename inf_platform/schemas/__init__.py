"""
Schemas module - Request/Response schemas for API endpoints.

Everything lives in schemas.schemas; import from there.
"""
