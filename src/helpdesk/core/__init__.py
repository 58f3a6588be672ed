"""
Core Module
============

Framework-agnostic building blocks shared by every layer: the exception
taxonomy and its stable error codes.
"""

from helpdesk.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    ValidationException,
    InvalidStatusException,
    InvalidTransitionException,
    ResourceNotFoundException,
    HandlerNotFoundException,
    PermissionDeniedException,
    AuthenticationRequiredException,
    ConcurrentModificationException,
    HistoryRecordingException,
    ConfigurationException,
    ExternalServiceException,
    NotificationException,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "ValidationException",
    "InvalidStatusException",
    "InvalidTransitionException",
    "ResourceNotFoundException",
    "HandlerNotFoundException",
    "PermissionDeniedException",
    "AuthenticationRequiredException",
    "ConcurrentModificationException",
    "HistoryRecordingException",
    "ConfigurationException",
    "ExternalServiceException",
    "NotificationException",
]
