"""
INF Platform - Main Application

FastAPI backend with:
- PostgreSQL for accounts, offers, slots and bookings (rules in stored functions)
- MongoDB for uploaded student CVs
- JWT authentication with one role guard (student / company / admin)

Run: uvicorn inf_platform.main:app --reload
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from inf_platform import __version__
from inf_platform.api.routes import api_router
from inf_platform.core.config import get_settings
from inf_platform.core.errors import register_exception_handlers
from inf_platform.core.logging_config import setup_logging
from inf_platform.db.mongodb import init_mongo_indexes, test_mongo_connection
from inf_platform.db.postgres import test_postgres_connection

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="INF Platform",
    description="""
    Recruiting-event platform connecting students and companies.

    ## Features
    - **Authentication**: signup with email confirmation, JWT login
    - **Offers**: public catalog of internship offers from verified companies
    - **Students**: book interview slots under per-phase limits, cancel, export schedule
    - **Companies**: manage offers and slots, view and export the interview schedule
    - **Admin**: events and phases, company verification, student approval

    ## Databases
    - PostgreSQL: profiles, companies, events, offers, event_slots, bookings
    - MongoDB: student CV documents
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes on startup."""
    try:
        init_mongo_indexes()
    except PyMongoError as e:
        logger.warning("MongoDB index initialization failed: %s", e)


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "INF Platform", "version": __version__}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "postgres": "connected" if test_postgres_connection() else "disconnected",
        "mongodb": "connected" if test_mongo_connection() else "disconnected"
    }
