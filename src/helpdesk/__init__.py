"""
Campus Helpdesk
===============

Ticket lifecycle and SLA compliance service for a university IT helpdesk.
"""

__version__ = "1.0.0"
