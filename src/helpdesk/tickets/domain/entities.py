"""
Ticket Domain Entities
======================

Pure Python domain entities for the ticket lifecycle.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns. Embedded records
(comments, attachments, history entries) are frozen value-like dataclasses;
the Ticket itself is the mutable aggregate root.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from helpdesk.config import (
    ACTIVE_STATUSES,
    FINISHED_STATUSES,
    MAX_ESCALATION_LEVEL,
    MIN_ESCALATION_LEVEL,
    SUPPORT_ROLES,
    Campus,
    Category,
    HistoryAction,
    Priority,
    TicketStatus,
    UserRole,
)


@dataclass(frozen=True)
class Identity:
    """An authenticated caller, as resolved by the identity provider."""

    user_id: str
    role: UserRole
    department: Optional[str] = None

    @property
    def is_support(self) -> bool:
        """Technicians and admins handle tickets."""
        return self.role in SUPPORT_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class Location:
    """Where on campus the problem is."""

    building: Optional[str] = None
    room: Optional[str] = None
    floor: Optional[str] = None


@dataclass(frozen=True)
class Comment:
    """A single comment on a ticket. Comments are never edited."""

    author: str
    message: str
    timestamp: datetime
    is_internal: bool = False


@dataclass(frozen=True)
class Attachment:
    """Descriptor of a file held by the external attachment store."""

    name: str
    reference: str
    size: int
    content_type: str
    uploaded_by: str
    uploaded_at: datetime


@dataclass(frozen=True)
class SatisfactionRating:
    """Requester feedback on a resolved ticket."""

    rating: int
    rated_at: datetime
    comment: Optional[str] = None

    def __post_init__(self):
        if not 1 <= self.rating <= 5:
            raise ValueError("rating must be between 1 and 5")


@dataclass(frozen=True)
class Resolution:
    """How the ticket was resolved, plus optional requester feedback."""

    summary: str
    resolved_by: str
    root_cause: Optional[str] = None
    preventive_measures: Optional[str] = None
    satisfaction: Optional[SatisfactionRating] = None

    def with_satisfaction(self, satisfaction: SatisfactionRating) -> "Resolution":
        return replace(self, satisfaction=satisfaction)


@dataclass(frozen=True)
class HistoryEntry:
    """
    One immutable audit trail record.

    ``field`` is None only for the single CREATE entry; values are already
    normalised to JSON-safe primitives.
    """

    action: HistoryAction
    actor: str
    timestamp: datetime
    field: Optional[str] = None
    old_value: Any = None
    new_value: Any = None
    reason: Optional[str] = None


@dataclass
class Ticket:
    """
    Ticket aggregate root.

    Write-once timestamps (first_response_at, resolved_at, closed_at) are only
    ever set through the ``stamp_*`` methods, which ignore later calls.
    """

    # Core attributes
    ticket_code: str
    title: str
    description: str
    category: Category
    priority: Priority
    status: TicketStatus
    created_by: str

    # Timestamps
    created_at: datetime
    updated_at: datetime

    sub_category: Optional[str] = None
    campus: Campus = Campus.MAIN
    location: Location = field(default_factory=Location)
    department: Optional[str] = None
    assigned_to: Optional[str] = None

    # SLA tracking
    sla_response_deadline: Optional[datetime] = None
    sla_resolution_deadline: Optional[datetime] = None
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    actual_resolution_time: Optional[int] = None
    reopened_at: Optional[datetime] = None
    reopen_count: int = 0
    escalation_level: int = MIN_ESCALATION_LEVEL

    comments: List[Comment] = field(default_factory=list)
    attachments: List[Attachment] = field(default_factory=list)
    resolution: Optional[Resolution] = None
    tags: List[str] = field(default_factory=list)
    extensions: Dict[str, str] = field(default_factory=dict)

    history: List[HistoryEntry] = field(default_factory=list)

    # View tracking
    view_count: int = 0
    last_viewed_at: Optional[datetime] = None
    viewed_by: List[str] = field(default_factory=list)

    version: int = 0
    id: Optional[str] = None

    def __post_init__(self):
        """Validate ticket on initialization."""
        if self.updated_at < self.created_at:
            raise ValueError("updated_at cannot be before created_at")

        if not MIN_ESCALATION_LEVEL <= self.escalation_level <= MAX_ESCALATION_LEVEL:
            raise ValueError(
                f"escalation_level must be between {MIN_ESCALATION_LEVEL} and {MAX_ESCALATION_LEVEL}"
            )

    @property
    def is_active(self) -> bool:
        """Open, in progress or pending."""
        return self.status in ACTIVE_STATUSES

    @property
    def is_finished(self) -> bool:
        """Resolved or closed."""
        return self.status in FINISHED_STATUSES

    def age_minutes(self, now: datetime) -> int:
        """Get ticket age in minutes."""
        return int((now - self.created_at).total_seconds() / 60)

    def is_visible_comment(self, comment: Comment, viewer: Identity) -> bool:
        return viewer.is_support or not comment.is_internal

    def stamp_first_response(self, timestamp: datetime) -> bool:
        """Record the first response once; returns True if it was set now."""
        if self.first_response_at is not None:
            return False
        self.first_response_at = timestamp
        return True

    def stamp_resolved(self, timestamp: datetime) -> bool:
        """Record the first resolution and its duration in minutes."""
        if self.resolved_at is not None:
            return False
        self.resolved_at = timestamp
        self.actual_resolution_time = round((timestamp - self.created_at).total_seconds() / 60)
        return True

    def stamp_closed(self, timestamp: datetime) -> bool:
        """Record the first closure."""
        if self.closed_at is not None:
            return False
        self.closed_at = timestamp
        return True

    def mark_reopened(self, timestamp: datetime) -> None:
        self.reopen_count += 1
        self.reopened_at = timestamp

    def add_comment(self, comment: Comment) -> None:
        self.comments.append(comment)

    def add_attachment(self, attachment: Attachment) -> None:
        self.attachments.append(attachment)

    def append_history(self, entries: List[HistoryEntry]) -> None:
        """History only grows; entries are never edited or removed."""
        self.history.extend(entries)

    def record_view(self, user_id: str, timestamp: datetime) -> None:
        """Track a read. Not part of the audit trail."""
        self.view_count += 1
        self.last_viewed_at = timestamp
        if user_id not in self.viewed_by:
            self.viewed_by.append(user_id)
