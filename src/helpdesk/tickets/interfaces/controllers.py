"""
Ticket Controllers (API Routes)
===============================

FastAPI routes for the ticket lifecycle, dashboard and SLA policy.

Controllers are thin - they resolve the caller, delegate to application
services and shape the response for that caller.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query, Request, status

from helpdesk.config import UserRole
from helpdesk.core.exceptions import AuthenticationRequiredException
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.tickets.application import DashboardService, TicketMutationResult, TicketService
from helpdesk.tickets.application.dto import (
    AssignRequest,
    AttachmentRequest,
    CampusStr,
    CategoryStr,
    CommentRequest,
    DashboardStatsResponse,
    EscalateRequest,
    HistoryEntryResponse,
    PaginationResponse,
    PriorityStr,
    RatingRequest,
    ResolveRequest,
    SLAPolicyResponse,
    TicketCreateRequest,
    TicketListQuery,
    TicketListResponse,
    TicketMutationResponse,
    TicketResponse,
    TicketSLAResponse,
    TicketStatusStr,
    TicketUpdateRequest,
    visible_history,
)
from helpdesk.tickets.domain import Identity

logger = get_logger(__name__)

tickets_router = APIRouter(prefix="/tickets", tags=["Tickets"])
dashboard_router = APIRouter(prefix="/dashboard", tags=["Dashboard"])
sla_router = APIRouter(prefix="/sla", tags=["SLA"])


# ========== Example payloads for Swagger ==========

TICKET_CREATE_EXAMPLE = {
    "title": "Projector not working in LT3",
    "description": "The projector in lecture theatre 3 shows no signal from the lectern PC.",
    "category": "hardware",
    "priority": "high",
    "campus": "main-campus",
    "location": {"building": "Science Block", "room": "LT3", "floor": "1"},
    "tags": ["projector", "lecture-room"]
}


# ========== Dependencies ==========

def get_ticket_service(request: Request) -> TicketService:
    """Ticket service wired at startup."""
    return request.app.state.ticket_service


def get_dashboard_service(request: Request) -> DashboardService:
    """Dashboard service wired at startup."""
    return request.app.state.dashboard_service


async def get_current_identity(
    user_id: Optional[str] = Header(None, alias="X-User-Id"),
    role: Optional[str] = Header(None, alias="X-User-Role"),
    department: Optional[str] = Header(None, alias="X-User-Department"),
) -> Identity:
    """
    Caller identity, as asserted by the authenticating gateway in front of
    this service.
    """
    if not user_id or not role:
        raise AuthenticationRequiredException("X-User-Id and X-User-Role headers are required")
    try:
        user_role = UserRole(role.lower())
    except ValueError:
        raise AuthenticationRequiredException(f"Unknown role: {role}", {"role": role})
    return Identity(user_id=user_id, role=user_role, department=department or None)


def _ticket_response(service: TicketService, ticket, actor: Identity) -> TicketResponse:
    return TicketResponse.from_domain(ticket, actor, service.sla_state(ticket).value)


def _mutation_response(
    service: TicketService,
    result: TicketMutationResult,
    actor: Identity,
) -> TicketMutationResponse:
    return TicketMutationResponse(
        ticket=_ticket_response(service, result.ticket, actor),
        changes=visible_history(result.changes, actor),
    )


# ========== Ticket Routes ==========

@tickets_router.post(
    "",
    response_model=TicketMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a ticket",
    description="""
    Open a new support ticket on behalf of the caller.

    The ticket gets a `TKT-YYYYMM-NNNN` code and response/resolution deadlines
    from the SLA table for its priority.
    """,
    openapi_extra={"requestBody": {"content": {"application/json": {"example": TICKET_CREATE_EXAMPLE}}}},
)
async def create_ticket(
    request: TicketCreateRequest,
    actor: Identity = Depends(get_current_identity),
    service: TicketService = Depends(get_ticket_service),
):
    result = await service.create_ticket(actor, request)
    return _mutation_response(service, result, actor)


@tickets_router.get(
    "",
    response_model=TicketListResponse,
    summary="List tickets",
    description="""
    Tickets visible to the caller, newest first.

    Students see their own tickets, staff also see their department's, and
    technicians and admins see everything.
    """,
)
async def list_tickets(
    ticket_status: Optional[TicketStatusStr] = Query(None, alias="status"),
    priority: Optional[PriorityStr] = Query(None),
    category: Optional[CategoryStr] = Query(None),
    campus: Optional[CampusStr] = Query(None),
    assigned_to: Optional[str] = Query(None),
    created_by: Optional[str] = Query(None),
    overdue: bool = Query(False, description="Only tickets currently in breach"),
    assigned_only: bool = Query(False, description="Support roles: only tickets assigned to me"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    actor: Identity = Depends(get_current_identity),
    service: TicketService = Depends(get_ticket_service),
):
    params = TicketListQuery(
        status=ticket_status,
        priority=priority,
        category=category,
        campus=campus,
        assigned_to=assigned_to,
        created_by=created_by,
        overdue=overdue,
        assigned_only=assigned_only,
        search=search,
        page=page,
        limit=limit,
    )
    tickets, total = await service.list_tickets(actor, params)
    return TicketListResponse(
        tickets=[_ticket_response(service, t, actor) for t in tickets],
        pagination=PaginationResponse(
            page=page,
            limit=limit,
            total=total,
            pages=(total + limit - 1) // limit,
        ),
    )


@tickets_router.get("/{ticket_code}", response_model=TicketResponse, summary="Get a ticket")
async def get_ticket(
    ticket_code: str,
    actor: Identity = Depends(get_current_identity),
    service: TicketService = Depends(get_ticket_service),
):
    ticket = await service.get_ticket(actor, ticket_code)
    return _ticket_response(service, ticket, actor)


@tickets_router.patch(
    "/{ticket_code}",
    response_model=TicketMutationResponse,
    summary="Update a ticket",
    description="""
    Partial update. Status changes follow the lifecycle state machine; a
    priority change recomputes both SLA deadlines from the time of the change.
    """,
)
async def update_ticket(
    ticket_code: str,
    request: TicketUpdateRequest,
    actor: Identity = Depends(get_current_identity),
    service: TicketService = Depends(get_ticket_service),
):
    result = await service.update_ticket(actor, ticket_code, request)
    return _mutation_response(service, result, actor)


@tickets_router.post("/{ticket_code}/assign", response_model=TicketMutationResponse, summary="Assign a handler")
async def assign_ticket(
    ticket_code: str,
    request: AssignRequest,
    actor: Identity = Depends(get_current_identity),
    service: TicketService = Depends(get_ticket_service),
):
    result = await service.assign_ticket(actor, ticket_code, request)
    return _mutation_response(service, result, actor)


@tickets_router.post(
    "/{ticket_code}/comments",
    response_model=TicketMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment",
)
async def add_comment(
    ticket_code: str,
    request: CommentRequest,
    actor: Identity = Depends(get_current_identity),
    service: TicketService = Depends(get_ticket_service),
):
    result = await service.add_comment(actor, ticket_code, request)
    return _mutation_response(service, result, actor)


@tickets_router.post("/{ticket_code}/resolve", response_model=TicketMutationResponse, summary="Resolve a ticket")
async def resolve_ticket(
    ticket_code: str,
    request: ResolveRequest,
    actor: Identity = Depends(get_current_identity),
    service: TicketService = Depends(get_ticket_service),
):
    result = await service.resolve_ticket(actor, ticket_code, request)
    return _mutation_response(service, result, actor)


@tickets_router.post("/{ticket_code}/escalate", response_model=TicketMutationResponse, summary="Escalate a ticket")
async def escalate_ticket(
    ticket_code: str,
    request: EscalateRequest,
    actor: Identity = Depends(get_current_identity),
    service: TicketService = Depends(get_ticket_service),
):
    result = await service.escalate_ticket(actor, ticket_code, request)
    return _mutation_response(service, result, actor)


@tickets_router.post("/{ticket_code}/rating", response_model=TicketMutationResponse, summary="Rate a resolution")
async def rate_ticket(
    ticket_code: str,
    request: RatingRequest,
    actor: Identity = Depends(get_current_identity),
    service: TicketService = Depends(get_ticket_service),
):
    result = await service.rate_ticket(actor, ticket_code, request)
    return _mutation_response(service, result, actor)


@tickets_router.post(
    "/{ticket_code}/attachments",
    response_model=TicketMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Attach a stored file",
)
async def add_attachment(
    ticket_code: str,
    request: AttachmentRequest,
    actor: Identity = Depends(get_current_identity),
    service: TicketService = Depends(get_ticket_service),
):
    result = await service.add_attachment(actor, ticket_code, request)
    return _mutation_response(service, result, actor)


@tickets_router.get(
    "/{ticket_code}/history",
    response_model=List[HistoryEntryResponse],
    summary="Ticket change history",
)
async def get_history(
    ticket_code: str,
    actor: Identity = Depends(get_current_identity),
    service: TicketService = Depends(get_ticket_service),
):
    entries = await service.get_history(actor, ticket_code)
    return visible_history(entries, actor)


@tickets_router.get("/{ticket_code}/sla", response_model=TicketSLAResponse, summary="Ticket SLA status")
async def get_ticket_sla(
    ticket_code: str,
    actor: Identity = Depends(get_current_identity),
    service: TicketService = Depends(get_ticket_service),
):
    view = await service.get_sla(actor, ticket_code)
    return TicketSLAResponse.build(
        view.ticket, view.state.value, view.requirement, view.breaches, view.remaining
    )


# ========== Dashboard & Policy Routes ==========

@dashboard_router.get("/stats", response_model=DashboardStatsResponse, summary="Dashboard statistics")
async def get_dashboard_stats(
    assigned_only: bool = Query(False, description="Support roles: only tickets assigned to me"),
    actor: Identity = Depends(get_current_identity),
    service: DashboardService = Depends(get_dashboard_service),
):
    stats = await service.get_stats(actor, assigned_only=assigned_only)
    return DashboardStatsResponse(
        total=stats.total,
        open=stats.open,
        resolved=stats.resolved,
        overdue=stats.overdue,
        by_status=stats.by_status,
        by_priority=stats.by_priority,
        by_category=stats.by_category,
        average_resolution_minutes=stats.average_resolution_minutes,
        average_first_response_minutes=stats.average_first_response_minutes,
        compliance_rate=stats.compliance_rate,
        generated_at=stats.generated_at,
    )


@sla_router.get("/policy", response_model=SLAPolicyResponse, summary="SLA targets by priority")
async def get_sla_policy(service: TicketService = Depends(get_ticket_service)):
    return service.get_sla_policy()
