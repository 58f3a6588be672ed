"""
Ticket Interfaces Layer
=======================

Interface adapters (controllers) for the tickets module.

This is the outermost layer - handles HTTP requests/responses and
delegates to application services.
"""

from helpdesk.tickets.interfaces.controllers import dashboard_router, sla_router, tickets_router

__all__ = ["tickets_router", "dashboard_router", "sla_router"]
