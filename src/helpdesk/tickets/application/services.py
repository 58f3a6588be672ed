"""
Ticket Application Services
===========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: TicketService owns ticket mutations; dashboard
  figures and breach alerts live in their own services
- Dependency Inversion: services depend on the interfaces below, never on
  SQLAlchemy, httpx or YAML directly

Every mutation follows the same path: load inside a unit of work, snapshot,
apply, diff into history entries, write with an optimistic version check,
commit, then notify. A version conflict re-runs the whole path on a fresh
copy of the ticket.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Set, Tuple

from helpdesk.config import (
    ACTIVE_STATUSES,
    Campus,
    Category,
    NotificationKind,
    Priority,
    SLAState,
    TicketStatus,
    UserRole,
)
from helpdesk.core.exceptions import (
    ConcurrentModificationException,
    DomainException,
    HandlerNotFoundException,
    HistoryRecordingException,
    ResourceNotFoundException,
    ValidationException,
)
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.tickets.application import permissions
from helpdesk.tickets.application.dto import (
    AssignRequest,
    AttachmentRequest,
    CommentRequest,
    EscalateRequest,
    RatingRequest,
    ResolveRequest,
    SLAPolicyEntry,
    SLAPolicyResponse,
    TicketCreateRequest,
    TicketListQuery,
    TicketUpdateRequest,
)
from helpdesk.tickets.domain import (
    Attachment,
    BreachDetector,
    BreachReport,
    Comment,
    DeadlineCalculator,
    HistoryEntry,
    HistoryRecorder,
    Identity,
    Resolution,
    SatisfactionRating,
    SLAConfig,
    Ticket,
    TicketStateMachine,
    TimeRemainingReport,
    parse_status,
)

logger = get_logger(__name__)


# ========== Collaborator Interfaces (Dependency Inversion) ==========

@dataclass(frozen=True)
class NotificationRequest:
    """A message for the notifier to render and deliver."""
    kind: NotificationKind
    recipient: str
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TicketQuery:
    """
    Storage-neutral ticket filter.

    ``scope_user`` / ``scope_department`` restrict visibility (own tickets,
    optionally widened to a department); the remaining fields are ANDed.
    """
    scope_user: Optional[str] = None
    scope_department: Optional[str] = None
    created_by: Optional[str] = None
    assigned_to: Optional[str] = None
    statuses: Optional[FrozenSet[TicketStatus]] = None
    priority: Optional[Priority] = None
    category: Optional[Category] = None
    campus: Optional[Campus] = None
    search: Optional[str] = None
    overdue_at: Optional[datetime] = None

    @classmethod
    def for_actor(cls, actor: Identity, assigned_only: bool = False) -> "TicketQuery":
        """Visibility scope for a caller's role."""
        if actor.role == UserRole.STUDENT:
            return cls(scope_user=actor.user_id)
        if actor.role == UserRole.STAFF:
            return cls(scope_user=actor.user_id, scope_department=actor.department)
        return cls(assigned_to=actor.user_id if assigned_only else None)

    def matches(self, ticket: Ticket) -> bool:
        """Reference semantics of the filter, evaluated in memory."""
        if self.scope_user is not None:
            own = ticket.created_by == self.scope_user
            same_department = (
                self.scope_department is not None and ticket.department == self.scope_department
            )
            if not (own or same_department):
                return False
        if self.created_by is not None and ticket.created_by != self.created_by:
            return False
        if self.assigned_to is not None and ticket.assigned_to != self.assigned_to:
            return False
        if self.statuses is not None and ticket.status not in self.statuses:
            return False
        if self.priority is not None and ticket.priority != self.priority:
            return False
        if self.category is not None and ticket.category != self.category:
            return False
        if self.campus is not None and ticket.campus != self.campus:
            return False
        if self.search:
            needle = self.search.lower()
            haystack = (ticket.ticket_code, ticket.title, ticket.description)
            if not any(needle in value.lower() for value in haystack):
                return False
        if self.overdue_at is not None and not is_overdue(ticket, self.overdue_at):
            return False
        return True


def is_overdue(ticket: Ticket, now: datetime) -> bool:
    """Active and past a deadline that has not been met."""
    if not ticket.is_active:
        return False
    if ticket.sla_resolution_deadline is not None and now > ticket.sla_resolution_deadline:
        return True
    deadline = ticket.sla_response_deadline
    if deadline is not None and now > deadline:
        return ticket.first_response_at is None or ticket.first_response_at > deadline
    return False


class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get_by_code(self, ticket_code: str) -> Optional[Ticket]:
        """Get ticket by its public code."""

    @abstractmethod
    async def add(self, ticket: Ticket) -> Ticket:
        """Insert a new ticket."""

    @abstractmethod
    async def update(self, ticket: Ticket, expected_version: int) -> Ticket:
        """
        Write the whole ticket if its stored version still equals
        ``expected_version``; bumps the version.

        Raises:
            ConcurrentModificationException: stored version moved on
        """

    @abstractmethod
    async def list(
        self,
        query: TicketQuery,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Ticket], int]:
        """One page of matching tickets, newest first, plus the total count."""

    @abstractmethod
    async def list_all(self, query: TicketQuery) -> List[Ticket]:
        """Every matching ticket."""

    @abstractmethod
    async def next_sequence(self, period: str) -> int:
        """Allocate the next ticket number for a YYYYMM period."""


class IUnitOfWork(ABC):
    """
    One atomic write scope.

    Usage:
        async with uow_factory() as uow:
            ticket = await uow.tickets.get_by_code(code)
            ...
            await uow.commit()

    Anything not committed when the block exits is rolled back.
    """

    tickets: ITicketRepository

    async def __aenter__(self) -> "IUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.rollback()

    @abstractmethod
    async def commit(self) -> None:
        """Make all writes of this unit visible."""

    @abstractmethod
    async def rollback(self) -> None:
        """Discard uncommitted writes. Safe to call after commit."""


class ISLAConfigProvider(ABC):
    """Interface for SLA configuration access."""

    @abstractmethod
    def get_config(self) -> SLAConfig:
        """Get current SLA configuration."""


class IIdentityProvider(ABC):
    """Directory of known users."""

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[Identity]:
        """Look a user up by id; None if unknown."""


class INotifier(ABC):
    """Delivers notifications. Template rendering is the notifier's concern."""

    @abstractmethod
    async def send(self, request: NotificationRequest) -> None:
        """Deliver one notification; raise on failure."""

    async def close(self) -> None:
        """Release any held resources."""


class IAttachmentStore(ABC):
    """
    External binary store. Tickets keep only the returned reference.
    """

    @abstractmethod
    async def put(self, name: str, data: bytes, content_type: str) -> str:
        """Store bytes and return an opaque reference."""


class IClock(ABC):
    """Source of 'now'; injected so SLA maths is testable."""

    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""


# ========== Helpers ==========

UnitOfWorkFactory = Callable[[], IUnitOfWork]


@dataclass
class TicketMutationResult:
    """Updated ticket plus the history entries the operation produced."""
    ticket: Ticket
    changes: List[HistoryEntry] = field(default_factory=list)

    def changed(self, field_name: str) -> bool:
        return any(entry.field == field_name for entry in self.changes)


@dataclass(frozen=True)
class TicketSLAView:
    """SLA evaluation of one ticket at one instant."""
    ticket: Ticket
    state: SLAState
    requirement: str
    breaches: BreachReport
    remaining: TimeRemainingReport


def format_ticket_code(created_at: datetime, sequence: int) -> str:
    """TKT-YYYYMM-NNNN."""
    return f"TKT-{created_at:%Y%m}-{sequence:04d}"


def notification_context(ticket: Ticket, actor: Optional[Identity] = None, **extra: Any) -> Dict[str, Any]:
    context = {
        "ticket_code": ticket.ticket_code,
        "title": ticket.title,
        "status": ticket.status.value,
        "priority": ticket.priority.value,
    }
    if actor is not None:
        context["actor"] = actor.user_id
    context.update(extra)
    return context


async def dispatch_notifications(notifier: INotifier, requests: List[NotificationRequest]) -> int:
    """
    Send each request independently after the write has committed.

    Delivery failures are logged and swallowed. Returns the number delivered.
    """
    delivered = 0
    for request in requests:
        try:
            await notifier.send(request)
            delivered += 1
        except Exception as e:
            logger.warning(
                "Notification delivery failed",
                extra={
                    "kind": request.kind.value,
                    "recipient": request.recipient,
                    "ticket_code": request.context.get("ticket_code"),
                    "error": str(e),
                }
            )
    return delivered


# ========== Application Services ==========

class TicketService:
    """
    Service for the ticket lifecycle.

    Coordinates permission checks, the state machine, SLA deadlines and the
    history recorder around each unit of work.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        config_provider: ISLAConfigProvider,
        identity_provider: IIdentityProvider,
        notifier: INotifier,
        clock: IClock,
        max_retries: int = 5,
        recorder: Optional[HistoryRecorder] = None,
    ):
        self._uow_factory = uow_factory
        self._config = config_provider.get_config()
        self._identity = identity_provider
        self._notifier = notifier
        self._clock = clock
        self._max_retries = max_retries
        self._recorder = recorder or HistoryRecorder()
        self.calculator = DeadlineCalculator(self._config)
        self.detector = BreachDetector(self._config)
        self._in_flight: Set[asyncio.Task] = set()

    # ---------- Notifications ----------

    def _notify(self, requests: List[NotificationRequest]) -> None:
        """Deliver in the background so a slow notifier never holds up the caller."""
        if not requests:
            return
        task = asyncio.create_task(dispatch_notifications(self._notifier, requests))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def drain_notifications(self) -> None:
        """Wait for every notification still being delivered."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight))

    # ---------- Reads ----------

    async def get_ticket(self, actor: Identity, ticket_code: str, record_view: bool = True) -> Ticket:
        """
        Fetch one ticket the caller may see.

        Reads are counted (view_count, viewed_by) outside the audit trail;
        a lost race on that counter is ignored.
        """
        async with self._uow_factory() as uow:
            ticket = await self._load(uow, ticket_code)
            permissions.ensure_can_view(actor, ticket)
            if not record_view:
                return ticket

            expected_version = ticket.version
            ticket.record_view(actor.user_id, self._clock.now())
            try:
                ticket = await uow.tickets.update(ticket, expected_version)
                await uow.commit()
            except ConcurrentModificationException:
                logger.debug("View not counted after concurrent write", extra={"ticket_code": ticket_code})
            return ticket

    async def list_tickets(self, actor: Identity, params: TicketListQuery) -> Tuple[List[Ticket], int]:
        """Role-scoped, filtered page of tickets."""
        query = TicketQuery.for_actor(actor, assigned_only=params.assigned_only)
        if params.status:
            query.statuses = frozenset({TicketStatus(params.status)})
        if params.priority:
            query.priority = Priority(params.priority)
        if params.category:
            query.category = Category(params.category)
        if params.campus:
            query.campus = Campus(params.campus)
        if params.created_by:
            query.created_by = params.created_by
        if params.assigned_to and not params.assigned_only:
            query.assigned_to = params.assigned_to
        if params.search:
            query.search = params.search
        if params.overdue:
            query.overdue_at = self._clock.now()

        async with self._uow_factory() as uow:
            return await uow.tickets.list(query, limit=params.limit, offset=params.offset)

    async def get_history(self, actor: Identity, ticket_code: str) -> List[HistoryEntry]:
        async with self._uow_factory() as uow:
            ticket = await self._load(uow, ticket_code)
        permissions.ensure_can_view(actor, ticket)
        return list(ticket.history)

    async def get_sla(self, actor: Identity, ticket_code: str) -> TicketSLAView:
        """Breaches and minutes remaining, evaluated now."""
        async with self._uow_factory() as uow:
            ticket = await self._load(uow, ticket_code)
        permissions.ensure_can_view(actor, ticket)

        now = self._clock.now()
        return TicketSLAView(
            ticket=ticket,
            state=self.detector.sla_status(ticket, now),
            requirement=self.calculator.describe_targets(ticket.priority),
            breaches=self.detector.check_breach(ticket, now),
            remaining=self.detector.time_remaining(ticket, now),
        )

    def sla_state(self, ticket: Ticket) -> SLAState:
        return self.detector.sla_status(ticket, self._clock.now())

    def get_sla_policy(self) -> SLAPolicyResponse:
        """The configured SLA table with readable descriptions."""
        targets = []
        for priority in reversed(list(Priority)):
            target = self._config.get_target(priority)
            targets.append(SLAPolicyEntry(
                priority=priority.value,
                response_minutes=target.response,
                resolution_minutes=target.resolution,
                requirement=self.calculator.describe_targets(priority),
            ))
        return SLAPolicyResponse(
            targets=targets,
            response_thresholds=self._config.response_thresholds.model_dump(),
            resolution_thresholds=self._config.resolution_thresholds.model_dump(),
        )

    # ---------- Mutations ----------

    async def create_ticket(self, actor: Identity, request: TicketCreateRequest) -> TicketMutationResult:
        """
        Open a ticket.

        Code allocation, deadline stamping and the CREATE history entry
        commit together or not at all.
        """
        now = self._clock.now()
        async with self._uow_factory() as uow:
            sequence = await uow.tickets.next_sequence(f"{now:%Y%m}")
            ticket = Ticket(
                ticket_code=format_ticket_code(now, sequence),
                title=request.title,
                description=request.description,
                category=Category(request.category),
                priority=Priority(request.priority),
                status=TicketStatus.OPEN,
                created_by=actor.user_id,
                created_at=now,
                updated_at=now,
                sub_category=request.sub_category,
                campus=Campus(request.campus),
                location=request.location.to_domain(),
                department=actor.department,
                tags=list(request.tags),
                extensions=dict(request.extensions),
            )
            self.calculator.apply(ticket, now)
            changes = self._build_history(
                ticket, lambda: self._recorder.record_creation(ticket, actor.user_id, now)
            )
            ticket = await uow.tickets.add(ticket)
            await uow.commit()

        logger.info(
            "Ticket created",
            extra={
                "ticket_code": ticket.ticket_code,
                "priority": ticket.priority.value,
                "created_by": actor.user_id,
            }
        )
        self._notify([
            NotificationRequest(
                NotificationKind.TICKET_CREATED,
                actor.user_id,
                notification_context(
                    ticket, actor,
                    requirement=self.calculator.describe_targets(ticket.priority),
                ),
            )
        ])
        return TicketMutationResult(ticket, changes)

    async def update_ticket(
        self,
        actor: Identity,
        ticket_code: str,
        request: TicketUpdateRequest,
    ) -> TicketMutationResult:
        """
        Partial update. A priority change re-stamps both deadlines from now;
        a status change goes through the state machine.

        Raises:
            ValidationException: status ``resolved`` requested; resolving
                goes through resolve_ticket so a resolution is always attached
        """
        requested = request.changed_fields()
        target_status = parse_status(requested["status"]) if "status" in requested else None
        if target_status == TicketStatus.RESOLVED:
            raise ValidationException(
                "Tickets are resolved through the resolve action",
                {"ticket_code": ticket_code, "status": target_status.value}
            )

        def apply(ticket: Ticket, now: datetime) -> None:
            permissions.ensure_can_update(actor, ticket, set(requested))
            if target_status is not None and not TicketStateMachine.can_transition(ticket, target_status):
                # raises the descriptive InvalidTransitionException
                TicketStateMachine.transition(ticket, target_status, now)

            for name in ("title", "description", "sub_category"):
                if name in requested:
                    setattr(ticket, name, requested[name])
            if "category" in requested:
                ticket.category = Category(requested["category"])
            if "campus" in requested:
                ticket.campus = Campus(requested["campus"])
            if "location" in requested:
                ticket.location = requested["location"].to_domain()
            if "tags" in requested:
                ticket.tags = list(requested["tags"])
            if "extensions" in requested:
                ticket.extensions = dict(requested["extensions"])

            if "priority" in requested:
                priority = Priority(requested["priority"])
                if priority != ticket.priority:
                    ticket.priority = priority
                    self.calculator.apply(ticket, now)

            if target_status is not None:
                TicketStateMachine.transition(ticket, target_status, now)

        result = await self._mutate(actor, ticket_code, apply, reason=request.reason)

        if result.changed("status"):
            self._notify(self._status_notifications(result.ticket, actor))
        return result

    async def assign_ticket(self, actor: Identity, ticket_code: str, request: AssignRequest) -> TicketMutationResult:
        """
        Bind a technician or admin to the ticket.

        Raises:
            HandlerNotFoundException: handler unknown or not a support role
        """
        permissions.ensure_support_role(actor, "assign tickets")
        handler = await self._identity.get_user(request.handler_id)
        if handler is None or not handler.is_support:
            raise HandlerNotFoundException(request.handler_id)

        def apply(ticket: Ticket, now: datetime) -> None:
            TicketStateMachine.assign(ticket, handler.user_id)

        result = await self._mutate(actor, ticket_code, apply, reason=request.reason)

        if result.changes:
            logger.info(
                "Ticket assigned",
                extra={"ticket_code": ticket_code, "assigned_to": handler.user_id, "actor": actor.user_id}
            )
            requests = [
                NotificationRequest(
                    NotificationKind.TICKET_ASSIGNED,
                    handler.user_id,
                    notification_context(result.ticket, actor),
                )
            ]
            if result.changed("status"):
                requests.extend(self._status_notifications(result.ticket, actor))
            self._notify(requests)
        return result

    async def add_comment(self, actor: Identity, ticket_code: str, request: CommentRequest) -> TicketMutationResult:
        """
        Append a comment. The first public comment from support staff is the
        ticket's first response.
        """
        def apply(ticket: Ticket, now: datetime) -> None:
            permissions.ensure_can_comment(actor, ticket, request.is_internal)
            ticket.add_comment(Comment(
                author=actor.user_id,
                message=request.message,
                timestamp=now,
                is_internal=request.is_internal,
            ))
            if actor.is_support and not request.is_internal:
                ticket.stamp_first_response(now)

        result = await self._mutate(actor, ticket_code, apply)

        ticket = result.ticket
        recipients = [ticket.assigned_to]
        if not request.is_internal:
            recipients.append(ticket.created_by)
        self._notify([
            NotificationRequest(
                NotificationKind.NEW_COMMENT,
                recipient,
                notification_context(ticket, actor, is_internal=request.is_internal),
            )
            for recipient in dict.fromkeys(recipients)
            if recipient and recipient != actor.user_id
        ])
        return result

    async def resolve_ticket(self, actor: Identity, ticket_code: str, request: ResolveRequest) -> TicketMutationResult:
        """Record the resolution and move the ticket to resolved."""
        def apply(ticket: Ticket, now: datetime) -> None:
            permissions.ensure_can_resolve(actor, ticket)
            satisfaction = ticket.resolution.satisfaction if ticket.resolution else None
            TicketStateMachine.transition(ticket, TicketStatus.RESOLVED, now)
            ticket.resolution = Resolution(
                summary=request.summary,
                resolved_by=actor.user_id,
                root_cause=request.root_cause,
                preventive_measures=request.preventive_measures,
                satisfaction=satisfaction,
            )

        result = await self._mutate(actor, ticket_code, apply)

        if result.changed("status"):
            self._notify([
                NotificationRequest(
                    NotificationKind.TICKET_RESOLVED,
                    result.ticket.created_by,
                    notification_context(result.ticket, actor, summary=request.summary),
                )
            ])
        return result

    async def escalate_ticket(self, actor: Identity, ticket_code: str, request: EscalateRequest) -> TicketMutationResult:
        """Raise the escalation level; levels 2 and 3 also lift the priority."""
        permissions.ensure_support_role(actor, "escalate tickets")

        def apply(ticket: Ticket, now: datetime) -> None:
            permissions.ensure_can_view(actor, ticket)
            raised_priority = TicketStateMachine.escalate(ticket)
            if raised_priority is not None:
                ticket.priority = raised_priority
                self.calculator.apply(ticket, now)

        result = await self._mutate(actor, ticket_code, apply, reason=request.reason)
        logger.info(
            "Ticket escalated",
            extra={
                "ticket_code": ticket_code,
                "escalation_level": result.ticket.escalation_level,
                "priority": result.ticket.priority.value,
            }
        )
        return result

    async def rate_ticket(self, actor: Identity, ticket_code: str, request: RatingRequest) -> TicketMutationResult:
        """Requester feedback on a resolved or closed ticket."""
        def apply(ticket: Ticket, now: datetime) -> None:
            permissions.ensure_is_requester(actor, ticket, "rate this ticket")
            if not ticket.is_finished or ticket.resolution is None:
                raise ValidationException(
                    "Only resolved tickets can be rated",
                    {"ticket_code": ticket.ticket_code, "status": ticket.status.value}
                )
            ticket.resolution = ticket.resolution.with_satisfaction(
                SatisfactionRating(rating=request.rating, rated_at=now, comment=request.comment)
            )

        return await self._mutate(actor, ticket_code, apply)

    async def add_attachment(self, actor: Identity, ticket_code: str, request: AttachmentRequest) -> TicketMutationResult:
        """Attach a descriptor for a file already held by the attachment store."""
        def apply(ticket: Ticket, now: datetime) -> None:
            permissions.ensure_can_view(actor, ticket)
            if ticket.status == TicketStatus.CLOSED:
                raise DomainException(f"Ticket {ticket.ticket_code} is closed")
            ticket.add_attachment(Attachment(
                name=request.name,
                reference=request.reference,
                size=request.size,
                content_type=request.content_type,
                uploaded_by=actor.user_id,
                uploaded_at=now,
            ))

        return await self._mutate(actor, ticket_code, apply)

    # ---------- Internals ----------

    async def _load(self, uow: IUnitOfWork, ticket_code: str) -> Ticket:
        ticket = await uow.tickets.get_by_code(ticket_code)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_code)
        return ticket

    def _build_history(self, ticket: Ticket, build: Callable[[], List[HistoryEntry]]) -> List[HistoryEntry]:
        try:
            return build()
        except Exception as e:
            logger.error(
                "History recording failed",
                extra={"ticket_code": ticket.ticket_code, "error": str(e)}
            )
            raise HistoryRecordingException(
                "Could not record ticket history; nothing was saved",
                {"ticket_code": ticket.ticket_code}
            ) from e

    async def _mutate(
        self,
        actor: Identity,
        ticket_code: str,
        operation: Callable[[Ticket, datetime], None],
        reason: Optional[str] = None,
    ) -> TicketMutationResult:
        """
        Apply ``operation`` to a fresh copy of the ticket and commit it.

        On a version conflict the operation is re-applied to the newly stored
        state, so every committed attempt carries its own history entries.
        """
        expected_version = -1
        for attempt in range(1, self._max_retries + 1):
            async with self._uow_factory() as uow:
                ticket = await self._load(uow, ticket_code)
                now = self._clock.now()
                expected_version = ticket.version
                before = self._recorder.snapshot(ticket)

                operation(ticket, now)

                changes = self._build_history(
                    ticket,
                    lambda: self._recorder.record(ticket, before, actor.user_id, now, reason),
                )
                if not changes:
                    return TicketMutationResult(ticket, [])

                ticket.updated_at = now
                try:
                    ticket = await uow.tickets.update(ticket, expected_version)
                    await uow.commit()
                except ConcurrentModificationException:
                    logger.info(
                        "Concurrent ticket write, retrying",
                        extra={"ticket_code": ticket_code, "attempt": attempt}
                    )
                    continue

            logger.debug(
                "Ticket updated",
                extra={
                    "ticket_code": ticket_code,
                    "actor": actor.user_id,
                    "changes": [entry.field for entry in changes],
                }
            )
            return TicketMutationResult(ticket, changes)

        raise ConcurrentModificationException(ticket_code, expected_version)

    def _status_notifications(self, ticket: Ticket, actor: Identity) -> List[NotificationRequest]:
        if ticket.created_by == actor.user_id:
            return []
        return [
            NotificationRequest(
                NotificationKind.STATUS_UPDATED,
                ticket.created_by,
                notification_context(ticket, actor),
            )
        ]
