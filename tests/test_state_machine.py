"""Unit tests for the ticket lifecycle state machine."""

from datetime import timedelta

import pytest

from helpdesk.config import Priority, TicketStatus
from helpdesk.core.exceptions import (
    DomainException,
    InvalidStatusException,
    InvalidTransitionException,
    ValidationException,
)
from helpdesk.tickets.domain import ALLOWED_TRANSITIONS, TicketStateMachine

from tests.fakes import T0, make_ticket

LATER = T0 + timedelta(hours=3)


class TestTransitions:
    """Tests for TicketStateMachine.transition."""

    @pytest.mark.parametrize("source,target", [
        (source, target)
        for source, targets in ALLOWED_TRANSITIONS.items()
        for target in targets
        if not (source == TicketStatus.PENDING and target == TicketStatus.OPEN)
    ])
    def test_allowed_transitions(self, source, target):
        ticket = make_ticket(T0, status=source)

        assert TicketStateMachine.transition(ticket, target, LATER) is True
        assert ticket.status == target

    @pytest.mark.parametrize("source,target", [
        (TicketStatus.IN_PROGRESS, TicketStatus.OPEN),
        (TicketStatus.RESOLVED, TicketStatus.OPEN),
        (TicketStatus.RESOLVED, TicketStatus.PENDING),
        (TicketStatus.CLOSED, TicketStatus.OPEN),
        (TicketStatus.CLOSED, TicketStatus.RESOLVED),
    ])
    def test_rejected_transitions_leave_ticket_untouched(self, source, target):
        ticket = make_ticket(T0, status=source)

        with pytest.raises(InvalidTransitionException) as exc_info:
            TicketStateMachine.transition(ticket, target, LATER)

        assert ticket.status == source
        assert exc_info.value.details["current"] == source.value

    def test_same_status_is_a_no_op(self):
        ticket = make_ticket(T0, status=TicketStatus.PENDING)

        assert TicketStateMachine.transition(ticket, TicketStatus.PENDING, LATER) is False

    def test_unknown_status_is_rejected(self):
        ticket = make_ticket(T0)

        with pytest.raises(InvalidStatusException):
            TicketStateMachine.transition(ticket, "archived", LATER)

    def test_pending_to_open_only_when_unassigned(self):
        unassigned = make_ticket(T0, status=TicketStatus.PENDING)
        assigned = make_ticket(T0, status=TicketStatus.PENDING, assigned_to="tech-1")

        TicketStateMachine.transition(unassigned, TicketStatus.OPEN, LATER)

        assert unassigned.status == TicketStatus.OPEN
        with pytest.raises(InvalidTransitionException):
            TicketStateMachine.transition(assigned, TicketStatus.OPEN, LATER)


class TestTimestamps:
    """Write-once lifecycle timestamps."""

    def test_resolve_stamps_resolution_time(self):
        ticket = make_ticket(T0, status=TicketStatus.IN_PROGRESS)

        TicketStateMachine.transition(ticket, TicketStatus.RESOLVED, LATER)

        assert ticket.resolved_at == LATER
        assert ticket.actual_resolution_time == 180

    def test_close_stamps_closed_at(self):
        ticket = make_ticket(T0)

        TicketStateMachine.transition(ticket, TicketStatus.CLOSED, LATER)

        assert ticket.closed_at == LATER
        assert ticket.resolved_at is None

    def test_reopen_keeps_original_timestamps(self):
        ticket = make_ticket(T0, status=TicketStatus.IN_PROGRESS)
        TicketStateMachine.transition(ticket, TicketStatus.RESOLVED, LATER)

        reopened_at = LATER + timedelta(hours=1)
        TicketStateMachine.transition(ticket, TicketStatus.IN_PROGRESS, reopened_at)
        TicketStateMachine.transition(ticket, TicketStatus.RESOLVED, reopened_at + timedelta(hours=1))

        assert ticket.resolved_at == LATER
        assert ticket.actual_resolution_time == 180
        assert ticket.reopen_count == 1
        assert ticket.reopened_at == reopened_at

    def test_closed_ticket_reopens_to_in_progress(self):
        ticket = make_ticket(T0, status=TicketStatus.CLOSED, closed_at=LATER)

        TicketStateMachine.transition(ticket, TicketStatus.IN_PROGRESS, LATER + timedelta(days=1))

        assert ticket.status == TicketStatus.IN_PROGRESS
        assert ticket.closed_at == LATER
        assert ticket.reopen_count == 1


class TestAssign:
    """Tests for TicketStateMachine.assign."""

    def test_open_ticket_starts_progressing(self):
        ticket = make_ticket(T0)

        TicketStateMachine.assign(ticket, "tech-1")

        assert ticket.assigned_to == "tech-1"
        assert ticket.status == TicketStatus.IN_PROGRESS

    def test_pending_ticket_keeps_status(self):
        ticket = make_ticket(T0, status=TicketStatus.PENDING, assigned_to="tech-1")

        TicketStateMachine.assign(ticket, "tech-2")

        assert ticket.assigned_to == "tech-2"
        assert ticket.status == TicketStatus.PENDING

    def test_finished_ticket_cannot_be_assigned(self):
        ticket = make_ticket(T0, status=TicketStatus.RESOLVED)

        with pytest.raises(InvalidTransitionException):
            TicketStateMachine.assign(ticket, "tech-1")
        assert ticket.assigned_to is None


class TestEscalate:
    """Tests for the escalation ladder."""

    def test_level_two_lifts_low_to_medium(self):
        ticket = make_ticket(T0, priority=Priority.LOW)

        assert TicketStateMachine.escalate(ticket) == Priority.MEDIUM
        assert ticket.escalation_level == 2

    def test_level_two_lifts_medium_to_high(self):
        ticket = make_ticket(T0, priority=Priority.MEDIUM)

        assert TicketStateMachine.escalate(ticket) == Priority.HIGH

    def test_level_two_keeps_high_and_critical(self):
        for priority in (Priority.HIGH, Priority.CRITICAL):
            ticket = make_ticket(T0, priority=priority)

            assert TicketStateMachine.escalate(ticket) is None

    def test_level_three_keeps_critical(self):
        ticket = make_ticket(T0, priority=Priority.CRITICAL, escalation_level=2)

        assert TicketStateMachine.escalate(ticket) is None
        assert ticket.escalation_level == 3

    def test_level_three_is_critical(self):
        ticket = make_ticket(T0, priority=Priority.HIGH, escalation_level=2)

        assert TicketStateMachine.escalate(ticket) == Priority.CRITICAL
        assert ticket.escalation_level == 3

    def test_cannot_escalate_past_top_level(self):
        ticket = make_ticket(T0, escalation_level=3)

        with pytest.raises(ValidationException):
            TicketStateMachine.escalate(ticket)
        assert ticket.escalation_level == 3

    def test_finished_ticket_cannot_be_escalated(self):
        ticket = make_ticket(T0, status=TicketStatus.CLOSED)

        with pytest.raises(DomainException):
            TicketStateMachine.escalate(ticket)
