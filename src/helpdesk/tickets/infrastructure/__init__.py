"""
Ticket Infrastructure Layer
===========================

Infrastructure implementations for the tickets module:
- Models: SQLAlchemy ORM models
- Repositories: ticket persistence, unit of work, YAML-backed providers
- External: clock, notifiers and the alert scheduler
"""

from helpdesk.tickets.infrastructure.external import (
    CircuitBreaker,
    LoggingNotifier,
    SLAScheduler,
    SystemClock,
    WebhookNotifier,
)
from helpdesk.tickets.infrastructure.models import TicketModel, TicketSequenceModel
from helpdesk.tickets.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    SQLAlchemyUnitOfWork,
    YAMLConfigProvider,
    YAMLIdentityDirectory,
)

__all__ = [
    "TicketModel",
    "TicketSequenceModel",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyUnitOfWork",
    "YAMLConfigProvider",
    "YAMLIdentityDirectory",
    "CircuitBreaker",
    "LoggingNotifier",
    "SLAScheduler",
    "SystemClock",
    "WebhookNotifier",
]
