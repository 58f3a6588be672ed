"""
SLA Alert Service
=================

Periodic scan that turns near-breach and breached deadlines into
``sla-breach-alert`` notifications.

Breach state is never stored; each scan recomputes it from the deadlines.
The scan only reads tickets, so it never competes with user writes.
Alerts already sent are remembered in-process, keyed by ticket, deadline
type, severity and deadline instant. A priority change moves the deadline
and therefore re-arms the alert.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Set, Tuple

from helpdesk.config import ACTIVE_STATUSES, NotificationKind, SLAType
from helpdesk.shared.infrastructure.logging import get_logger, log_latency
from helpdesk.tickets.application.services import (
    IClock,
    INotifier,
    ISLAConfigProvider,
    NotificationRequest,
    TicketQuery,
    UnitOfWorkFactory,
    dispatch_notifications,
    notification_context,
)
from helpdesk.tickets.domain import BreachDetector, Ticket

logger = get_logger(__name__)

BREACHED = "breached"

AlertKey = Tuple[str, str, str, str]


@dataclass(frozen=True)
class SLAAlert:
    """A deadline worth telling someone about."""
    ticket_code: str
    sla_type: SLAType
    severity: str
    deadline: datetime
    minutes_remaining: int

    @property
    def key(self) -> AlertKey:
        return (self.ticket_code, self.sla_type.value, self.severity, self.deadline.isoformat())


class SLAAlertService:
    """Evaluates active tickets and notifies handlers about SLA risk."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        config_provider: ISLAConfigProvider,
        notifier: INotifier,
        clock: IClock,
        escalation_recipients: List[str] = None,
    ):
        self._uow_factory = uow_factory
        self._detector = BreachDetector(config_provider.get_config())
        self._notifier = notifier
        self._clock = clock
        self._escalation_recipients = list(escalation_recipients or [])
        self._sent: Set[AlertKey] = set()

    def evaluate(self, ticket: Ticket, now: datetime) -> List[SLAAlert]:
        """Alerts for one ticket: breaches first, then warnings on deadlines not yet breached."""
        alerts = []
        report = self._detector.check_breach(ticket, now)
        for breach in report.breaches:
            alerts.append(SLAAlert(
                ticket_code=ticket.ticket_code,
                sla_type=breach.sla_type,
                severity=BREACHED,
                deadline=breach.deadline,
                minutes_remaining=-breach.delay_minutes,
            ))

        for warning in self._detector.time_remaining(ticket, now).warnings:
            if report.for_type(warning.sla_type) is not None:
                continue
            alerts.append(SLAAlert(
                ticket_code=ticket.ticket_code,
                sla_type=warning.sla_type,
                severity=warning.severity.value,
                deadline=warning.deadline,
                minutes_remaining=warning.minutes_remaining,
            ))
        return alerts

    async def scan(self) -> Dict[str, int]:
        """
        One evaluation pass over active tickets.

        Returns:
            Summary counts for logging
        """
        now = self._clock.now()
        async with self._uow_factory() as uow:
            tickets = await uow.tickets.list_all(TicketQuery(statuses=ACTIVE_STATUSES))

        summary = {"tickets_evaluated": len(tickets), "alerts_sent": 0, "alerts_failed": 0}
        with log_latency(logger, "sla_scan", tickets=len(tickets)):
            for ticket in tickets:
                for alert in self.evaluate(ticket, now):
                    if alert.key in self._sent:
                        continue
                    if await self._deliver(ticket, alert):
                        self._sent.add(alert.key)
                        summary["alerts_sent"] += 1
                    else:
                        summary["alerts_failed"] += 1

        active_codes = {t.ticket_code for t in tickets}
        self._sent = {key for key in self._sent if key[0] in active_codes}

        if summary["alerts_sent"] or summary["alerts_failed"]:
            logger.info("SLA scan finished", extra=summary)
        return summary

    async def _deliver(self, ticket: Ticket, alert: SLAAlert) -> bool:
        recipients = [ticket.assigned_to] if ticket.assigned_to else self._escalation_recipients
        if not recipients:
            logger.warning(
                "No recipient for SLA alert",
                extra={"ticket_code": ticket.ticket_code, "sla_type": alert.sla_type.value}
            )
            return False

        context = notification_context(
            ticket,
            sla_type=alert.sla_type.value,
            severity=alert.severity,
            deadline=alert.deadline.isoformat(),
            minutes_remaining=alert.minutes_remaining,
            escalation_level=ticket.escalation_level,
        )
        requests = [
            NotificationRequest(NotificationKind.SLA_BREACH_ALERT, recipient, context)
            for recipient in recipients
        ]
        delivered = await dispatch_notifications(self._notifier, requests)
        return delivered > 0
