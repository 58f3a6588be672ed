"""
Ticket Domain Layer
===================

Contains:
- Entities: Ticket aggregate and its embedded records (comments, attachments,
  resolution, history entries), plus the caller Identity
- Value Objects: SLAConfig, SLADeadlines, breach and time-remaining reports
- Domain Services: DeadlineCalculator, BreachDetector, TicketStateMachine,
  HistoryRecorder

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from helpdesk.tickets.domain.entities import (
    Attachment,
    Comment,
    HistoryEntry,
    Identity,
    Location,
    Resolution,
    SatisfactionRating,
    Ticket,
)
from helpdesk.tickets.domain.history import HistoryRecorder, normalize_value
from helpdesk.tickets.domain.services import (
    BreachDetector,
    DeadlineCalculator,
    format_duration,
    normalize_priority,
)
from helpdesk.tickets.domain.state_machine import (
    ALLOWED_TRANSITIONS,
    TicketStateMachine,
    parse_status,
)
from helpdesk.tickets.domain.value_objects import (
    DEFAULT_SLA_TARGETS,
    BreachRecord,
    BreachReport,
    SLAConfig,
    SLADeadlines,
    SLATarget,
    SLAWarning,
    TimeRemainingReport,
    WarningThresholds,
)

__all__ = [
    # Entities
    "Attachment",
    "Comment",
    "HistoryEntry",
    "Identity",
    "Location",
    "Resolution",
    "SatisfactionRating",
    "Ticket",
    # Value Objects
    "DEFAULT_SLA_TARGETS",
    "BreachRecord",
    "BreachReport",
    "SLAConfig",
    "SLADeadlines",
    "SLATarget",
    "SLAWarning",
    "TimeRemainingReport",
    "WarningThresholds",
    # Services
    "ALLOWED_TRANSITIONS",
    "BreachDetector",
    "DeadlineCalculator",
    "HistoryRecorder",
    "TicketStateMachine",
    "format_duration",
    "normalize_priority",
    "normalize_value",
    "parse_status",
]
