"""
Custom business exceptions for the bargain API.

WHAT: Domain-specific exceptions that map to HTTP status codes
WHY: Consistent error handling across all API endpoints
HOW: Custom exception classes with error codes and messages
"""

from typing import Optional, Any


class BusinessException(Exception):
    """Base class for business logic exceptions."""

    def __init__(self, message: str, code: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


class SessionNotFoundException(BusinessException):
    """Raised when a bargain session is not found."""

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Bargain session not found: {session_id}",
            code="SESSION_NOT_FOUND",
            details={"session_id": session_id}
        )


class ParticipantNotFoundException(BusinessException):
    """Raised when a participant credential cannot be resolved."""

    def __init__(self, participant_id: str):
        super().__init__(
            message=f"Participant not found: {participant_id}",
            code="PARTICIPANT_NOT_FOUND",
            details={"participant_id": participant_id}
        )


class NegotiationNotActiveException(BusinessException):
    """Raised when streaming a session that has already reached a terminal status."""

    def __init__(self, session_id: str, current_status: str):
        super().__init__(
            message=f"Negotiation not active for session {session_id}. Current status: {current_status}",
            code="NEGOTIATION_NOT_ACTIVE",
            details={"session_id": session_id, "current_status": current_status}
        )


class InvalidTransitionException(BusinessException):
    """Raised when a session status change would leave a terminal status."""

    def __init__(self, session_id: str, current_status: str, target_status: str):
        super().__init__(
            message=f"Cannot move session {session_id} from {current_status} to {target_status}",
            code="INVALID_STATUS_TRANSITION",
            details={
                "session_id": session_id,
                "current_status": current_status,
                "target_status": target_status
            }
        )
