"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from inf_platform.api.routes.auth_routes import router as auth_router
from inf_platform.api.routes.offer_routes import router as offer_router
from inf_platform.api.routes.student_routes import router as student_router
from inf_platform.api.routes.company_routes import router as company_router
from inf_platform.api.routes.admin_routes import router as admin_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(offer_router)
api_router.include_router(student_router)
api_router.include_router(company_router)
api_router.include_router(admin_router)
