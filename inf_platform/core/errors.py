"""
Error taxonomy and FastAPI exception handlers.

- AuthError: raw message from the auth layer ("Invalid login credentials", ...)
- ProcedureError: a database query or stored procedure failed at transport level
- RuleViolation: the database refused the statement (RAISE EXCEPTION, unique key)
- ValidationFailed: local validation rejected input before any database call

Business-rule failures ({success: false, message}) are NOT exceptions here;
routes surface them directly.
"""

import logging
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PlatformError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthError(PlatformError):
    status_code = 401


class ProcedureError(PlatformError):
    status_code = 502

    def __init__(self, message: str, procedure: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code)
        self.procedure = procedure


class RuleViolation(ProcedureError):
    """The statement reached the database and was rejected by a rule."""
    status_code = 400

    def __init__(self, message: str, procedure: Optional[str] = None,
                 pgcode: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, procedure=procedure, status_code=status_code)
        self.pgcode = pgcode


class ValidationFailed(PlatformError):
    status_code = 422

    def __init__(self, message: str, feedback: Optional[List[str]] = None):
        super().__init__(message)
        self.feedback = feedback or []


# Substring -> friendly copy. First match wins.
AUTH_ERROR_MESSAGES = [
    (("Invalid login credentials", "Invalid credentials"),
     "Invalid email or password. Please check your credentials and try again."),
    (("Email not confirmed",),
     "Please verify your email address before signing in. Check your inbox for the confirmation link."),
    (("already registered", "already exists"),
     "This email is already registered. Please sign in instead."),
]


def humanize_auth_error(message: str) -> str:
    """Map a raw auth error message to user-facing copy; unknown messages pass through."""
    for needles, friendly in AUTH_ERROR_MESSAGES:
        if any(needle in message for needle in needles):
            return friendly
    return message


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        logger.info("Auth error on %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": humanize_auth_error(exc.message), "success": False},
        )

    @app.exception_handler(ValidationFailed)
    async def validation_error_handler(request: Request, exc: ValidationFailed):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "feedback": exc.feedback, "success": False},
        )

    @app.exception_handler(RuleViolation)
    async def rule_violation_handler(request: Request, exc: RuleViolation):
        logger.warning("Rejected by database on %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "success": False},
        )

    @app.exception_handler(ProcedureError)
    async def procedure_error_handler(request: Request, exc: ProcedureError):
        logger.error("Procedure %s failed on %s: %s", exc.procedure, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "success": False},
        )

    @app.exception_handler(PlatformError)
    async def platform_error_handler(request: Request, exc: PlatformError):
        logger.warning("Platform error on %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "success": False},
        )
