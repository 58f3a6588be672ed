"""
Dashboard Service
=================

Read-only, role-scoped aggregate figures over tickets.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from helpdesk.config import (
    ACTIVE_STATUSES,
    FINISHED_STATUSES,
    Category,
    Priority,
    TicketStatus,
)
from helpdesk.tickets.application.services import (
    IClock,
    TicketQuery,
    UnitOfWorkFactory,
    is_overdue,
)
from helpdesk.tickets.domain import Identity, Ticket


@dataclass
class DashboardStats:
    """Aggregate figures for one caller's visible tickets."""
    total: int
    open: int
    resolved: int
    overdue: int
    by_status: Dict[str, int] = field(default_factory=dict)
    by_priority: Dict[str, int] = field(default_factory=dict)
    by_category: Dict[str, int] = field(default_factory=dict)
    average_resolution_minutes: Optional[float] = None
    average_first_response_minutes: Optional[float] = None
    compliance_rate: float = 0.0
    generated_at: Optional[datetime] = None


def _average_minutes(durations: List[float]) -> Optional[float]:
    if not durations:
        return None
    return round(sum(durations) / len(durations), 2)


def compliance_rate(tickets: Iterable[Ticket]) -> float:
    """
    Percent of resolved tickets resolved before their resolution deadline.

    Tickets that were never resolved are ignored; with none resolved the
    rate is 0.0.
    """
    resolved = [t for t in tickets if t.resolved_at is not None]
    if not resolved:
        return 0.0
    on_time = sum(
        1 for t in resolved
        if t.sla_resolution_deadline is not None and t.resolved_at < t.sla_resolution_deadline
    )
    return round(on_time / len(resolved) * 100, 2)


def aggregate(tickets: List[Ticket], now: datetime) -> DashboardStats:
    """Compute dashboard figures over an already-scoped set of tickets."""
    by_status = {s.value: 0 for s in TicketStatus}
    by_priority = {p.value: 0 for p in Priority}
    by_category = {c.value: 0 for c in Category}
    for ticket in tickets:
        by_status[ticket.status.value] += 1
        by_priority[ticket.priority.value] += 1
        by_category[ticket.category.value] += 1

    resolution_minutes = [
        (t.resolved_at - t.created_at).total_seconds() / 60
        for t in tickets if t.resolved_at is not None
    ]
    first_response_minutes = [
        (t.first_response_at - t.created_at).total_seconds() / 60
        for t in tickets if t.first_response_at is not None
    ]

    return DashboardStats(
        total=len(tickets),
        open=sum(1 for t in tickets if t.status in ACTIVE_STATUSES),
        resolved=sum(1 for t in tickets if t.status in FINISHED_STATUSES),
        overdue=sum(1 for t in tickets if is_overdue(t, now)),
        by_status=by_status,
        by_priority=by_priority,
        by_category=by_category,
        average_resolution_minutes=_average_minutes(resolution_minutes),
        average_first_response_minutes=_average_minutes(first_response_minutes),
        compliance_rate=compliance_rate(tickets),
        generated_at=now,
    )


class DashboardService:
    """Scopes tickets by the caller's role and aggregates them."""

    def __init__(self, uow_factory: UnitOfWorkFactory, clock: IClock):
        self._uow_factory = uow_factory
        self._clock = clock

    async def get_stats(self, actor: Identity, assigned_only: bool = False) -> DashboardStats:
        """
        Figures over the caller's visible tickets.

        Students see their own tickets, staff add their department's,
        technicians and admins see all (or only their assignments when
        ``assigned_only`` is set).
        """
        query = TicketQuery.for_actor(actor, assigned_only=assigned_only)
        async with self._uow_factory() as uow:
            tickets = await uow.tickets.list_all(query)
        return aggregate(tickets, self._clock.now())
