"""
Global error handling middleware.

WHAT: Translate exceptions to appropriate HTTP responses
WHY: Consistent error responses with proper status codes
HOW: FastAPI exception handlers for custom exceptions
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from ..utils.exceptions import (
    BusinessException,
    SessionNotFoundException,
    ParticipantNotFoundException,
    NegotiationNotActiveException,
    InvalidTransitionException,
)
from ..models.bargain import to_iso_z, utcnow
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _error_body(code: str, message: str, details=None) -> dict:
    return {
        "error": code,
        "message": message,
        "details": details,
        "timestamp": to_iso_z(utcnow())
    }


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """
    Handle FastAPI RequestValidationError.

    WHAT: Request validation failed
    WHY: Invalid request payload
    HOW: Return 400 with field errors
    """
    logger.warning(f"Validation error: {exc.errors()}")

    # Clean up error details to be JSON serializable
    cleaned_errors = []
    for error in exc.errors():
        cleaned_error = {
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
        }
        # Convert ctx errors to strings
        if "ctx" in error:
            cleaned_error["ctx"] = {
                k: str(v) if isinstance(v, Exception) else v
                for k, v in error["ctx"].items()
            }
        cleaned_errors.append(cleaned_error)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("VALIDATION_ERROR", "Request validation failed", cleaned_errors)
    )


async def business_exception_handler(request: Request, exc: BusinessException):
    """
    Handle BusinessException subclasses.

    WHAT: Domain-specific error
    WHY: Map each error to its HTTP status
    HOW: Return status code based on exception type
    """
    status_code = status.HTTP_400_BAD_REQUEST

    if isinstance(exc, (SessionNotFoundException, ParticipantNotFoundException)):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (NegotiationNotActiveException, InvalidTransitionException)):
        status_code = status.HTTP_409_CONFLICT

    logger.warning(f"API exception: {exc.code} - {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, exc.message, exc.details)
    )


def register_exception_handlers(app):
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(BusinessException, business_exception_handler)

    logger.info("Exception handlers registered")
