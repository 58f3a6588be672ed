"""
Core Exceptions
================

Exception taxonomy for the helpdesk.

Every exception carries a stable ``error_code`` so the HTTP layer can map it
to a status code and callers can branch on the kind of failure without
parsing messages.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    error_code = "APPLICATION_ERROR"
    retryable = False

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""

    error_code = "DOMAIN_ERROR"


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""

    error_code = "REPOSITORY_ERROR"


class ValidationException(ApplicationException):
    """Input rejected before any mutation took place."""

    error_code = "VALIDATION_ERROR"


class InvalidStatusException(ValidationException):
    """Requested status is not one of the known ticket statuses."""

    error_code = "INVALID_STATUS"

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Invalid status: {status}", {"status": status})


class InvalidTransitionException(DomainException):
    """Status change not permitted from the current status."""

    error_code = "INVALID_TRANSITION"

    def __init__(self, current: str, requested: str, reason: Optional[str] = None):
        self.current = current
        self.requested = requested
        message = f"Cannot move ticket from '{current}' to '{requested}'"
        if reason:
            message += f": {reason}"
        super().__init__(message, {"current": current, "requested": requested})


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    error_code = "NOT_FOUND"

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class HandlerNotFoundException(ResourceNotFoundException):
    """Assignment target is unknown or is not a support handler."""

    error_code = "HANDLER_NOT_FOUND"

    def __init__(self, handler_id: str):
        super().__init__("Handler", handler_id, {"handler_id": handler_id})


class PermissionDeniedException(ApplicationException):
    """Caller's role does not allow the requested operation."""

    error_code = "PERMISSION_DENIED"


class AuthenticationRequiredException(ApplicationException):
    """No resolved caller identity accompanied the request."""

    error_code = "AUTHENTICATION_REQUIRED"


class ConcurrentModificationException(RepositoryException):
    """
    Ticket was written by someone else since it was loaded.

    Services re-apply the mutation on a fresh copy; this only reaches the
    caller once the retry budget is spent.
    """

    error_code = "CONFLICT"
    retryable = True

    def __init__(self, ticket_code: str, expected_version: int):
        self.ticket_code = ticket_code
        self.expected_version = expected_version
        super().__init__(
            f"Ticket {ticket_code} changed concurrently (expected version {expected_version})",
            {"ticket_code": ticket_code, "expected_version": expected_version}
        )


class HistoryRecordingException(ApplicationException):
    """
    Audit entries could not be produced for a mutation.

    Raised before the primary write, so nothing was stored. The caller may
    retry the operation.
    """

    error_code = "HISTORY_WRITE_FAILED"
    retryable = True


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""

    error_code = "CONFIGURATION_ERROR"


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    error_code = "EXTERNAL_SERVICE_ERROR"

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class NotificationException(ExternalServiceException):
    """Notification delivery failed."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Notifier", message, details)
