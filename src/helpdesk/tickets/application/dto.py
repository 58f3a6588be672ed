"""
Ticket Application DTOs
=======================

Data Transfer Objects for the tickets API layer.

These Pydantic models handle validation of incoming requests and
serialization of domain objects on the way out. Bounds on text fields,
tags and the extension map are enforced here, before any service runs.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from helpdesk.config import (
    COMMENT_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    DESCRIPTION_MIN_LENGTH,
    MAX_ATTACHMENT_BYTES,
    MAX_EXTENSION_KEYS,
    MAX_EXTENSION_VALUE_LENGTH,
    MAX_TAG_LENGTH,
    MAX_TAGS,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
    HistoryAction,
)
from helpdesk.tickets.domain import (
    Attachment,
    BreachReport,
    Comment,
    HistoryEntry,
    Identity,
    Location,
    Resolution,
    Ticket,
    TimeRemainingReport,
)


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["critical", "high", "medium", "low"]
TicketStatusStr = Literal["open", "in-progress", "pending", "resolved", "closed"]
CategoryStr = Literal[
    "hardware", "software", "network", "email", "account-access", "printer", "phone", "other"
]
CampusStr = Literal["main-campus", "kampala-campus", "other"]
SLATypeStr = Literal["response", "resolution"]
SLAStateStr = Literal["completed", "breached", "critical", "warning", "normal"]
SeverityStr = Literal["warning", "critical"]


def _clean_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    """Lowercase, trim and de-duplicate tags, keeping first-seen order."""
    if tags is None:
        return None
    cleaned: List[str] = []
    for tag in tags:
        tag = tag.strip().lower()
        if not tag:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"tags must be at most {MAX_TAG_LENGTH} characters")
        if tag not in cleaned:
            cleaned.append(tag)
    if len(cleaned) > MAX_TAGS:
        raise ValueError(f"at most {MAX_TAGS} tags are allowed")
    return cleaned


def _check_extensions(extensions: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    if extensions is None:
        return None
    if len(extensions) > MAX_EXTENSION_KEYS:
        raise ValueError(f"at most {MAX_EXTENSION_KEYS} extension keys are allowed")
    for key, value in extensions.items():
        if not key or len(key) > 50:
            raise ValueError("extension keys must be 1-50 characters")
        if len(value) > MAX_EXTENSION_VALUE_LENGTH:
            raise ValueError(
                f"extension values must be at most {MAX_EXTENSION_VALUE_LENGTH} characters"
            )
    return extensions


# ========== Request DTOs ==========

class LocationDTO(BaseModel):
    """Building/room/floor of the reported problem."""
    model_config = ConfigDict(str_strip_whitespace=True)

    building: Optional[str] = Field(None, max_length=100)
    room: Optional[str] = Field(None, max_length=50)
    floor: Optional[str] = Field(None, max_length=20)

    def to_domain(self) -> Location:
        return Location(building=self.building, room=self.room, floor=self.floor)

    @classmethod
    def from_domain(cls, location: Location) -> "LocationDTO":
        return cls(building=location.building, room=location.room, floor=location.floor)


class TicketCreateRequest(BaseModel):
    """Request model for opening a ticket."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=DESCRIPTION_MIN_LENGTH, max_length=DESCRIPTION_MAX_LENGTH)
    category: CategoryStr = Field(default="other", description="Support category")
    sub_category: Optional[str] = Field(None, max_length=100)
    priority: PriorityStr = Field(default="medium", description="Ticket priority")
    campus: CampusStr = Field(default="main-campus")
    location: LocationDTO = Field(default_factory=LocationDTO)
    tags: List[str] = Field(default_factory=list)
    extensions: Dict[str, str] = Field(default_factory=dict, description="Bounded free-form metadata")

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return _clean_tags(v)

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: Dict[str, str]) -> Dict[str, str]:
        return _check_extensions(v)


class TicketUpdateRequest(BaseModel):
    """
    Partial update of a ticket.

    ``status`` is a plain string so that unknown values surface as
    INVALID_STATUS rather than a schema error.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(
        None, min_length=DESCRIPTION_MIN_LENGTH, max_length=DESCRIPTION_MAX_LENGTH
    )
    status: Optional[str] = Field(None, max_length=50)
    priority: Optional[PriorityStr] = None
    category: Optional[CategoryStr] = None
    sub_category: Optional[str] = Field(None, max_length=100)
    campus: Optional[CampusStr] = None
    location: Optional[LocationDTO] = None
    tags: Optional[List[str]] = None
    extensions: Optional[Dict[str, str]] = None
    reason: Optional[str] = Field(None, max_length=500, description="Recorded in the history entries")

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_tags(v)

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        return _check_extensions(v)

    @model_validator(mode="after")
    def require_change(self) -> "TicketUpdateRequest":
        if not self.changed_fields():
            raise ValueError("no fields to update")
        return self

    def changed_fields(self) -> Dict[str, Any]:
        """Fields explicitly supplied by the caller, excluding the reason."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name != "reason" and getattr(self, name) is not None
        }


class AssignRequest(BaseModel):
    """Request model for assigning a handler."""
    handler_id: str = Field(..., min_length=1, max_length=100)
    reason: Optional[str] = Field(None, max_length=500)


class CommentRequest(BaseModel):
    """Request model for adding a comment."""
    model_config = ConfigDict(str_strip_whitespace=True)

    message: str = Field(..., min_length=1, max_length=COMMENT_MAX_LENGTH)
    is_internal: bool = Field(default=False, description="Visible to support staff only")


class ResolveRequest(BaseModel):
    """Request model for resolving a ticket."""
    model_config = ConfigDict(str_strip_whitespace=True)

    summary: str = Field(..., min_length=5, max_length=2000)
    root_cause: Optional[str] = Field(None, max_length=1000)
    preventive_measures: Optional[str] = Field(None, max_length=1000)


class EscalateRequest(BaseModel):
    """Request model for escalating a ticket."""
    reason: str = Field(..., min_length=1, max_length=500)


class RatingRequest(BaseModel):
    """Requester satisfaction rating."""
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)


class AttachmentRequest(BaseModel):
    """Descriptor of a file already placed in the attachment store."""
    name: str = Field(..., min_length=1, max_length=255)
    reference: str = Field(..., min_length=1, max_length=500)
    size: int = Field(..., ge=0, le=MAX_ATTACHMENT_BYTES)
    content_type: str = Field(default="application/octet-stream", max_length=100)


class TicketListQuery(BaseModel):
    """Query parameters for listing tickets."""
    status: Optional[TicketStatusStr] = None
    priority: Optional[PriorityStr] = None
    category: Optional[CategoryStr] = None
    campus: Optional[CampusStr] = None
    assigned_to: Optional[str] = None
    created_by: Optional[str] = None
    overdue: bool = False
    assigned_only: bool = False
    search: Optional[str] = Field(None, max_length=100)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# ========== Response DTOs ==========

class CommentResponse(BaseModel):
    author: str
    message: str
    is_internal: bool
    timestamp: datetime

    @classmethod
    def from_domain(cls, comment: Comment) -> "CommentResponse":
        return cls(
            author=comment.author,
            message=comment.message,
            is_internal=comment.is_internal,
            timestamp=comment.timestamp,
        )


class AttachmentResponse(BaseModel):
    name: str
    reference: str
    size: int
    content_type: str
    uploaded_by: str
    uploaded_at: datetime

    @classmethod
    def from_domain(cls, attachment: Attachment) -> "AttachmentResponse":
        return cls(
            name=attachment.name,
            reference=attachment.reference,
            size=attachment.size,
            content_type=attachment.content_type,
            uploaded_by=attachment.uploaded_by,
            uploaded_at=attachment.uploaded_at,
        )


class SatisfactionResponse(BaseModel):
    rating: int
    comment: Optional[str] = None
    rated_at: datetime


class ResolutionResponse(BaseModel):
    summary: str
    root_cause: Optional[str] = None
    preventive_measures: Optional[str] = None
    resolved_by: str
    satisfaction: Optional[SatisfactionResponse] = None

    @classmethod
    def from_domain(cls, resolution: Resolution) -> "ResolutionResponse":
        satisfaction = None
        if resolution.satisfaction is not None:
            satisfaction = SatisfactionResponse(
                rating=resolution.satisfaction.rating,
                comment=resolution.satisfaction.comment,
                rated_at=resolution.satisfaction.rated_at,
            )
        return cls(
            summary=resolution.summary,
            root_cause=resolution.root_cause,
            preventive_measures=resolution.preventive_measures,
            resolved_by=resolution.resolved_by,
            satisfaction=satisfaction,
        )


class HistoryEntryResponse(BaseModel):
    """One audit trail entry."""
    action: Literal["CREATE", "UPDATE", "ADD"]
    field: Optional[str] = None
    old_value: Any = None
    new_value: Any = None
    actor: str
    timestamp: datetime
    reason: Optional[str] = None

    @classmethod
    def from_domain(cls, entry: HistoryEntry) -> "HistoryEntryResponse":
        return cls(
            action=entry.action.value,
            field=entry.field,
            old_value=entry.old_value,
            new_value=entry.new_value,
            actor=entry.actor,
            timestamp=entry.timestamp,
            reason=entry.reason,
        )


def visible_history(entries: List[HistoryEntry], viewer: Identity) -> List[HistoryEntryResponse]:
    """History as shown to ``viewer``; internal comments are hidden from non-support roles."""
    shown = []
    for entry in entries:
        if (
            not viewer.is_support
            and entry.action == HistoryAction.ADD
            and entry.field == "comments"
            and isinstance(entry.new_value, dict)
            and entry.new_value.get("is_internal")
        ):
            continue
        shown.append(HistoryEntryResponse.from_domain(entry))
    return shown


class BreachResponse(BaseModel):
    sla_type: SLATypeStr
    deadline: datetime
    delay_minutes: int


class SLAWarningResponse(BaseModel):
    sla_type: SLATypeStr
    severity: SeverityStr
    minutes_remaining: int
    deadline: datetime
    message: str


class TicketSLAResponse(BaseModel):
    """SLA view of a single ticket, computed at request time."""
    ticket_code: str
    priority: PriorityStr
    state: SLAStateStr
    requirement: str = Field(..., description="Human-readable targets for the priority")
    response_deadline: Optional[datetime] = None
    resolution_deadline: Optional[datetime] = None
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    breached: bool
    breaches: List[BreachResponse] = Field(default_factory=list)
    remaining_minutes: Dict[str, int] = Field(default_factory=dict)
    warnings: List[SLAWarningResponse] = Field(default_factory=list)

    @classmethod
    def build(
        cls,
        ticket: Ticket,
        state: str,
        requirement: str,
        report: BreachReport,
        remaining: TimeRemainingReport,
    ) -> "TicketSLAResponse":
        return cls(
            ticket_code=ticket.ticket_code,
            priority=ticket.priority.value,
            state=state,
            requirement=requirement,
            response_deadline=ticket.sla_response_deadline,
            resolution_deadline=ticket.sla_resolution_deadline,
            first_response_at=ticket.first_response_at,
            resolved_at=ticket.resolved_at,
            breached=report.breached,
            breaches=[
                BreachResponse(
                    sla_type=b.sla_type.value, deadline=b.deadline, delay_minutes=b.delay_minutes
                )
                for b in report.breaches
            ],
            remaining_minutes={k.value: v for k, v in remaining.remaining.items()},
            warnings=[
                SLAWarningResponse(
                    sla_type=w.sla_type.value,
                    severity=w.severity.value,
                    minutes_remaining=w.minutes_remaining,
                    deadline=w.deadline,
                    message=w.message,
                )
                for w in remaining.warnings
            ],
        )


class TicketResponse(BaseModel):
    """Response model for a ticket, as seen by a particular caller."""
    ticket_code: str
    title: str
    description: str
    status: TicketStatusStr
    priority: PriorityStr
    category: CategoryStr
    sub_category: Optional[str] = None
    campus: CampusStr
    location: LocationDTO
    department: Optional[str] = None
    created_by: str
    assigned_to: Optional[str] = None

    sla_response_deadline: Optional[datetime] = None
    sla_resolution_deadline: Optional[datetime] = None
    sla_state: SLAStateStr
    first_response_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    actual_resolution_time: Optional[int] = Field(None, description="Minutes from creation to resolution")
    reopened_at: Optional[datetime] = None
    reopen_count: int = 0
    escalation_level: int = 1

    comments: List[CommentResponse] = Field(default_factory=list)
    attachments: List[AttachmentResponse] = Field(default_factory=list)
    resolution: Optional[ResolutionResponse] = None
    tags: List[str] = Field(default_factory=list)
    extensions: Dict[str, str] = Field(default_factory=dict)

    view_count: int = 0
    created_at: datetime
    updated_at: datetime
    version: int

    @classmethod
    def from_domain(cls, ticket: Ticket, viewer: Identity, sla_state: str) -> "TicketResponse":
        return cls(
            ticket_code=ticket.ticket_code,
            title=ticket.title,
            description=ticket.description,
            status=ticket.status.value,
            priority=ticket.priority.value,
            category=ticket.category.value,
            sub_category=ticket.sub_category,
            campus=ticket.campus.value,
            location=LocationDTO.from_domain(ticket.location),
            department=ticket.department,
            created_by=ticket.created_by,
            assigned_to=ticket.assigned_to,
            sla_response_deadline=ticket.sla_response_deadline,
            sla_resolution_deadline=ticket.sla_resolution_deadline,
            sla_state=sla_state,
            first_response_at=ticket.first_response_at,
            resolved_at=ticket.resolved_at,
            closed_at=ticket.closed_at,
            actual_resolution_time=ticket.actual_resolution_time,
            reopened_at=ticket.reopened_at,
            reopen_count=ticket.reopen_count,
            escalation_level=ticket.escalation_level,
            comments=[
                CommentResponse.from_domain(c)
                for c in ticket.comments
                if ticket.is_visible_comment(c, viewer)
            ],
            attachments=[AttachmentResponse.from_domain(a) for a in ticket.attachments],
            resolution=ResolutionResponse.from_domain(ticket.resolution) if ticket.resolution else None,
            tags=list(ticket.tags),
            extensions=dict(ticket.extensions),
            view_count=ticket.view_count,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
            version=ticket.version,
        )


class TicketMutationResponse(BaseModel):
    """Updated ticket plus the history entries the change produced."""
    ticket: TicketResponse
    changes: List[HistoryEntryResponse] = Field(default_factory=list)


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class TicketListResponse(BaseModel):
    tickets: List[TicketResponse]
    pagination: PaginationResponse


class DashboardStatsResponse(BaseModel):
    """Role-scoped aggregate figures."""
    total: int
    open: int = Field(..., description="Tickets in open, in-progress or pending")
    resolved: int = Field(..., description="Tickets in resolved or closed")
    overdue: int = Field(..., description="Tickets currently in breach")
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    by_category: Dict[str, int]
    average_resolution_minutes: Optional[float] = None
    average_first_response_minutes: Optional[float] = None
    compliance_rate: float = Field(..., description="Percent of resolved tickets resolved before the deadline")
    generated_at: datetime


class SLAPolicyEntry(BaseModel):
    priority: PriorityStr
    response_minutes: int
    resolution_minutes: int
    requirement: str


class SLAPolicyResponse(BaseModel):
    """The configured SLA table."""
    targets: List[SLAPolicyEntry]
    response_thresholds: Dict[str, int]
    resolution_thresholds: Dict[str, int]
