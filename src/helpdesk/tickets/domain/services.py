"""
SLA Domain Services
===================

Stateless SLA calculations over the configured target table.

- DeadlineCalculator: priority + reference instant -> response/resolution deadlines
- BreachDetector: ticket + now -> breaches, minutes remaining, summary state

Both are pure: callers pass the current time in, nothing is read from the
clock or written back to the ticket.
"""

import math
from datetime import datetime, timedelta
from typing import List, Optional

from helpdesk.config import Priority, SLAState, SLAType, WarningSeverity
from helpdesk.tickets.domain.entities import Ticket
from helpdesk.tickets.domain.value_objects import (
    BreachRecord,
    BreachReport,
    SLAConfig,
    SLADeadlines,
    SLAWarning,
    TimeRemainingReport,
)


def to_minutes(delta: timedelta) -> int:
    """Whole minutes, halves rounded up."""
    return math.floor(delta.total_seconds() / 60 + 0.5)


def _plural(value: int, unit: str) -> str:
    return f"{value} {unit}{'' if value == 1 else 's'}"


def format_duration(minutes: int) -> str:
    """
    Human-readable duration.

    Examples:
        30   -> "30 minutes"
        90   -> "1 hour 30 minutes"
        1500 -> "1 day 1 hour"
    """
    if minutes < 60:
        return _plural(minutes, "minute")
    if minutes < 1440:
        hours, rest = divmod(minutes, 60)
        text = _plural(hours, "hour")
        return f"{text} {_plural(rest, 'minute')}" if rest else text
    days = minutes // 1440
    hours = (minutes % 1440) // 60
    text = _plural(days, "day")
    return f"{text} {_plural(hours, 'hour')}" if hours else text


def normalize_priority(priority: Optional[str]) -> Priority:
    """Map any input onto a known priority; unrecognised values become medium."""
    if isinstance(priority, Priority):
        return priority
    try:
        return Priority(str(priority or "").lower())
    except ValueError:
        return Priority.MEDIUM


class DeadlineCalculator:
    """Computes SLA deadlines from the configured target table."""

    def __init__(self, config: SLAConfig):
        self.config = config

    def calculate_deadlines(self, priority: Optional[str], reference_time: datetime) -> SLADeadlines:
        """
        Deadlines for a priority, counted from ``reference_time``.

        Used at creation (reference = creation time) and on every priority
        change (reference = the instant of the change).
        """
        effective = normalize_priority(priority)
        target = self.config.get_target(effective)
        return SLADeadlines(
            priority=effective,
            reference_time=reference_time,
            response_deadline=reference_time + timedelta(minutes=target.response),
            resolution_deadline=reference_time + timedelta(minutes=target.resolution),
            response_minutes=target.response,
            resolution_minutes=target.resolution,
        )

    def apply(self, ticket: Ticket, reference_time: datetime) -> SLADeadlines:
        """Stamp both deadlines for the ticket's current priority."""
        deadlines = self.calculate_deadlines(ticket.priority, reference_time)
        ticket.sla_response_deadline = deadlines.response_deadline
        ticket.sla_resolution_deadline = deadlines.resolution_deadline
        return deadlines

    def describe_targets(self, priority: Optional[str]) -> str:
        """E.g. ``Response: 30 minutes | Resolution: 4 hours``."""
        target = self.config.get_target(normalize_priority(priority))
        return (
            f"Response: {format_duration(target.response)} | "
            f"Resolution: {format_duration(target.resolution)}"
        )


class BreachDetector:
    """Classifies a ticket's deadlines against a supplied 'now'."""

    def __init__(self, config: SLAConfig):
        self.config = config

    def check_breach(self, ticket: Ticket, now: datetime) -> BreachReport:
        """
        Report every deadline that has passed without being met.

        Response is breached once its deadline passes with no first response,
        or with one that came late. Resolution is breached once its deadline
        passes while the ticket is neither resolved nor closed.
        """
        breaches: List[BreachRecord] = []

        response_deadline = ticket.sla_response_deadline
        if response_deadline is not None and now > response_deadline:
            if ticket.first_response_at is None or ticket.first_response_at > response_deadline:
                breaches.append(BreachRecord(
                    sla_type=SLAType.RESPONSE,
                    deadline=response_deadline,
                    delay_minutes=to_minutes(now - response_deadline),
                ))

        resolution_deadline = ticket.sla_resolution_deadline
        if resolution_deadline is not None and now > resolution_deadline and not ticket.is_finished:
            breaches.append(BreachRecord(
                sla_type=SLAType.RESOLUTION,
                deadline=resolution_deadline,
                delay_minutes=to_minutes(now - resolution_deadline),
            ))

        return BreachReport(breaches=breaches)

    def time_remaining(self, ticket: Ticket, now: datetime) -> TimeRemainingReport:
        """Minutes left on each deadline that is still running."""
        remaining = {}
        warnings: List[SLAWarning] = []

        running = []
        if ticket.sla_response_deadline is not None and ticket.first_response_at is None:
            running.append((SLAType.RESPONSE, ticket.sla_response_deadline))
        if ticket.sla_resolution_deadline is not None and not ticket.is_finished:
            running.append((SLAType.RESOLUTION, ticket.sla_resolution_deadline))

        for sla_type, deadline in running:
            minutes = to_minutes(deadline - now)
            remaining[sla_type] = minutes
            severity = self._severity(sla_type, minutes)
            if severity is not None:
                warnings.append(SLAWarning(
                    sla_type=sla_type,
                    severity=severity,
                    minutes_remaining=minutes,
                    deadline=deadline,
                ))

        return TimeRemainingReport(remaining=remaining, warnings=warnings)

    def sla_status(self, ticket: Ticket, now: datetime) -> SLAState:
        """Single-word summary used in ticket lists."""
        if ticket.is_finished:
            return SLAState.COMPLETED
        if self.check_breach(ticket, now).breached:
            return SLAState.BREACHED

        severities = {w.severity for w in self.time_remaining(ticket, now).warnings}
        if WarningSeverity.CRITICAL in severities:
            return SLAState.CRITICAL
        if WarningSeverity.WARNING in severities:
            return SLAState.WARNING
        return SLAState.NORMAL

    def _severity(self, sla_type: SLAType, minutes: int) -> Optional[WarningSeverity]:
        thresholds = self.config.thresholds_for(sla_type)
        if minutes < thresholds.critical:
            return WarningSeverity.CRITICAL
        if minutes < thresholds.warning:
            return WarningSeverity.WARNING
        return None
