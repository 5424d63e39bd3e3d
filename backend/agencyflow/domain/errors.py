"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Credentials missing, invalid, or not bound to a live actor"""
    error_code = "UNAUTHENTICATED"
    http_status = 401


class ForbiddenError(DomainError):
    """Actor lacks permission for the requested action"""
    error_code = "FORBIDDEN"
    http_status = 403


class SelfApprovalError(ForbiddenError):
    """Actor attempted to review their own work"""
    error_code = "SELF_APPROVAL_FORBIDDEN"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class InvalidTransitionError(DomainError):
    """Target status is not a direct successor of the current status"""
    error_code = "INVALID_TRANSITION"
    http_status = 400


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class ActorNotFoundError(NotFoundError):
    """Actor (user) not found"""
    error_code = "ACTOR_NOT_FOUND"


class WorkItemNotFoundError(NotFoundError):
    """Task, asset or revision not found"""
    error_code = "WORK_ITEM_NOT_FOUND"


class ProjectNotFoundError(NotFoundError):
    """Project not found"""
    error_code = "PROJECT_NOT_FOUND"


class NotificationNotFoundError(NotFoundError):
    """Notification not found"""
    error_code = "NOTIFICATION_NOT_FOUND"


class ChatMessageNotFoundError(NotFoundError):
    """Chat message not found"""
    error_code = "CHAT_MESSAGE_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Lost a compare-and-swap race against a concurrent modification"""
    error_code = "CONFLICT"
    http_status = 409


# Delivery Errors
class DeliveryFailedError(DomainError):
    """Best-effort delivery failed; logged, never surfaced to the triggering actor"""
    error_code = "DELIVERY_FAILED"
    http_status = 502
