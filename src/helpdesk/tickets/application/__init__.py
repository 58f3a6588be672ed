"""
Ticket Application Layer
========================

Contains:
- Services: TicketService, DashboardService, SLAAlertService
- Interfaces: repository, unit of work and collaborator ports
- DTOs: request/response models for the API

This layer depends on the domain layer and the interfaces it declares,
but not on concrete infrastructure implementations.
"""

from helpdesk.tickets.application.alerts import SLAAlert, SLAAlertService
from helpdesk.tickets.application.dashboard import DashboardService, DashboardStats
from helpdesk.tickets.application.services import (
    IAttachmentStore,
    IClock,
    IIdentityProvider,
    INotifier,
    ISLAConfigProvider,
    ITicketRepository,
    IUnitOfWork,
    NotificationRequest,
    TicketMutationResult,
    TicketQuery,
    TicketService,
    TicketSLAView,
)

__all__ = [
    # Services
    "TicketService",
    "DashboardService",
    "DashboardStats",
    "SLAAlertService",
    "SLAAlert",
    # Interfaces
    "IAttachmentStore",
    "IClock",
    "IIdentityProvider",
    "INotifier",
    "ISLAConfigProvider",
    "ITicketRepository",
    "IUnitOfWork",
    # Values
    "NotificationRequest",
    "TicketMutationResult",
    "TicketQuery",
    "TicketSLAView",
]
