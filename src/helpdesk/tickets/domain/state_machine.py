"""
Ticket State Machine
====================

Legal status transitions, with the write-once side effects attached to them,
and the escalation ladder.

    open        -> in-progress, pending, resolved, closed
    in-progress -> pending, resolved, closed
    pending     -> open (unassigned only), in-progress, resolved, closed
    resolved    -> in-progress, closed
    closed      -> in-progress

Moving back out of resolved/closed is a reopen: it bumps ``reopen_count``
but leaves resolved_at, closed_at and the SLA deadlines as they were.
"""

from datetime import datetime
from typing import Dict, FrozenSet, Optional, Union

from helpdesk.config import (
    ACTIVE_STATUSES,
    FINISHED_STATUSES,
    MAX_ESCALATION_LEVEL,
    Priority,
    TicketStatus,
)
from helpdesk.core.exceptions import (
    DomainException,
    InvalidStatusException,
    InvalidTransitionException,
    ValidationException,
)
from helpdesk.tickets.domain.entities import Ticket

ALLOWED_TRANSITIONS: Dict[TicketStatus, FrozenSet[TicketStatus]] = {
    TicketStatus.OPEN: frozenset({
        TicketStatus.IN_PROGRESS, TicketStatus.PENDING, TicketStatus.RESOLVED, TicketStatus.CLOSED,
    }),
    TicketStatus.IN_PROGRESS: frozenset({
        TicketStatus.PENDING, TicketStatus.RESOLVED, TicketStatus.CLOSED,
    }),
    TicketStatus.PENDING: frozenset({
        TicketStatus.OPEN, TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED, TicketStatus.CLOSED,
    }),
    TicketStatus.RESOLVED: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.CLOSED}),
    TicketStatus.CLOSED: frozenset({TicketStatus.IN_PROGRESS}),
}

# Priority raised on reaching an escalation level; anything unlisted keeps its priority
ESCALATION_PRIORITY_STEPS: Dict[int, Dict[Priority, Priority]] = {
    2: {Priority.LOW: Priority.MEDIUM, Priority.MEDIUM: Priority.HIGH},
    3: {Priority.LOW: Priority.CRITICAL, Priority.MEDIUM: Priority.CRITICAL, Priority.HIGH: Priority.CRITICAL},
}


def parse_status(value: Union[str, TicketStatus]) -> TicketStatus:
    """Resolve a raw status value, rejecting anything outside the enumeration."""
    if isinstance(value, TicketStatus):
        return value
    try:
        return TicketStatus(value)
    except ValueError:
        raise InvalidStatusException(str(value))


class TicketStateMachine:
    """
    Applies lifecycle changes to a ticket in place.

    Stateless; every method validates first and only then mutates, so a
    rejected change leaves the ticket untouched.
    """

    @staticmethod
    def can_transition(ticket: Ticket, target: TicketStatus) -> bool:
        if target == ticket.status:
            return True
        if target not in ALLOWED_TRANSITIONS[ticket.status]:
            return False
        if ticket.status == TicketStatus.PENDING and target == TicketStatus.OPEN:
            return ticket.assigned_to is None
        return True

    @staticmethod
    def transition(ticket: Ticket, target: Union[str, TicketStatus], at: datetime) -> bool:
        """
        Move the ticket to ``target``.

        Returns:
            False when the ticket already has that status (no-op), else True

        Raises:
            InvalidStatusException: target is not a known status
            InvalidTransitionException: move not allowed from the current status
        """
        status = parse_status(target)
        if status == ticket.status:
            return False

        if not TicketStateMachine.can_transition(ticket, status):
            reason = None
            if ticket.status == TicketStatus.PENDING and status == TicketStatus.OPEN:
                reason = "ticket is assigned"
            raise InvalidTransitionException(ticket.status.value, status.value, reason)

        previous = ticket.status
        ticket.status = status

        if previous in FINISHED_STATUSES and status in ACTIVE_STATUSES:
            ticket.mark_reopened(at)
        if status == TicketStatus.RESOLVED:
            ticket.stamp_resolved(at)
        elif status == TicketStatus.CLOSED:
            ticket.stamp_closed(at)
        return True

    @staticmethod
    def assign(ticket: Ticket, handler_id: str) -> None:
        """Bind a handler; an open ticket starts progressing."""
        if ticket.is_finished:
            raise InvalidTransitionException(
                ticket.status.value, TicketStatus.IN_PROGRESS.value,
                "reopen the ticket before assigning it"
            )
        ticket.assigned_to = handler_id
        if ticket.status == TicketStatus.OPEN:
            ticket.status = TicketStatus.IN_PROGRESS

    @staticmethod
    def escalate(ticket: Ticket) -> Optional[Priority]:
        """
        Raise the escalation level by one.

        Returns:
            The priority the ticket must be raised to, or None if the new
            level leaves its priority as it is.
        """
        if ticket.is_finished:
            raise DomainException(
                f"Ticket {ticket.ticket_code} is {ticket.status.value} and cannot be escalated"
            )
        if ticket.escalation_level >= MAX_ESCALATION_LEVEL:
            raise ValidationException(
                f"Ticket {ticket.ticket_code} is already at the highest escalation level",
                {"escalation_level": ticket.escalation_level}
            )

        ticket.escalation_level += 1
        return ESCALATION_PRIORITY_STEPS.get(ticket.escalation_level, {}).get(ticket.priority)
