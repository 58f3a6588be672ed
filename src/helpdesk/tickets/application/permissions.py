"""
Ticket Permissions
==================

Role rules for who may see and change a ticket.

- students see their own tickets
- staff see their own tickets and those raised from their department
- technicians and admins see everything

Every check raises PermissionDeniedException and runs before any mutation.
"""

from helpdesk.config import TicketStatus, UserRole
from helpdesk.core.exceptions import PermissionDeniedException
from helpdesk.tickets.domain import Identity, Ticket

# Fields a requester may still edit on their own open ticket
REQUESTER_EDITABLE_FIELDS = frozenset({
    "title", "description", "sub_category", "location", "tags", "extensions",
})


def can_view(actor: Identity, ticket: Ticket) -> bool:
    if actor.is_support:
        return True
    if ticket.created_by == actor.user_id:
        return True
    if actor.role == UserRole.STAFF and actor.department:
        return ticket.department == actor.department
    return False


def ensure_can_view(actor: Identity, ticket: Ticket) -> None:
    if not can_view(actor, ticket):
        raise PermissionDeniedException(
            f"Not allowed to access ticket {ticket.ticket_code}",
            {"ticket_code": ticket.ticket_code, "user_id": actor.user_id}
        )


def ensure_support_role(actor: Identity, action: str) -> None:
    if not actor.is_support:
        raise PermissionDeniedException(
            f"Only technicians and admins may {action}",
            {"role": actor.role.value}
        )


def ensure_can_update(actor: Identity, ticket: Ticket, fields: set) -> None:
    """
    Support roles may change anything; the requester may only edit the
    descriptive fields while the ticket is still open.
    """
    ensure_can_view(actor, ticket)
    if actor.is_support:
        return

    restricted = set(fields) - REQUESTER_EDITABLE_FIELDS
    if restricted:
        raise PermissionDeniedException(
            "Only technicians and admins may change " + ", ".join(sorted(restricted)),
            {"fields": sorted(restricted)}
        )
    if ticket.created_by != actor.user_id or ticket.status != TicketStatus.OPEN:
        raise PermissionDeniedException(
            "Tickets can only be edited by their requester while open",
            {"ticket_code": ticket.ticket_code}
        )


def ensure_can_comment(actor: Identity, ticket: Ticket, is_internal: bool) -> None:
    ensure_can_view(actor, ticket)
    if is_internal:
        ensure_support_role(actor, "add internal comments")


def ensure_can_resolve(actor: Identity, ticket: Ticket) -> None:
    """Admins, or the technician the ticket is assigned to."""
    if actor.is_admin:
        return
    if actor.role == UserRole.TECHNICIAN and ticket.assigned_to == actor.user_id:
        return
    raise PermissionDeniedException(
        "Only an admin or the assigned technician can resolve this ticket",
        {"ticket_code": ticket.ticket_code, "assigned_to": ticket.assigned_to}
    )


def ensure_is_requester(actor: Identity, ticket: Ticket, action: str) -> None:
    if ticket.created_by != actor.user_id:
        raise PermissionDeniedException(
            f"Only the requester may {action}",
            {"ticket_code": ticket.ticket_code}
        )
