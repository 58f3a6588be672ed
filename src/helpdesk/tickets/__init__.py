"""
Tickets Module
==============

Bounded context for the ticket lifecycle and SLA compliance.

Responsibilities:
- Open tickets and stamp response/resolution deadlines by priority
- Enforce the status state machine and role permissions
- Assign handlers, record comments, attachments, resolutions and ratings
- Keep an append-only history of every tracked change
- Detect breaches on read and alert handlers from a background scan
- Aggregate role-scoped dashboard figures
"""
