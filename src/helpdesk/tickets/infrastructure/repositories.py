"""
Ticket Infrastructure Repositories
==================================

Concrete implementations of the application interfaces:
- SQLAlchemyTicketRepository / SQLAlchemyUnitOfWork: ticket persistence
- YAMLConfigProvider: SLA target table from sla_config.yaml
- YAMLIdentityDirectory: known users from users.yaml
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

import yaml
from pydantic import ValidationError
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from helpdesk.config import (
    ACTIVE_STATUSES,
    Campus,
    Category,
    HistoryAction,
    Priority,
    TicketStatus,
    UserRole,
)
from helpdesk.core.exceptions import (
    ConcurrentModificationException,
    ConfigurationException,
    RepositoryException,
)
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.tickets.application.services import (
    IIdentityProvider,
    ISLAConfigProvider,
    ITicketRepository,
    IUnitOfWork,
    TicketQuery,
)
from helpdesk.tickets.domain import (
    Attachment,
    Comment,
    HistoryEntry,
    Identity,
    Location,
    Resolution,
    SatisfactionRating,
    SLAConfig,
    Ticket,
)
from helpdesk.tickets.infrastructure.models import TicketModel, TicketSequenceModel

logger = get_logger(__name__)

# Dialect inserts that support ON CONFLICT DO NOTHING
UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


# ========== Row <-> Domain Mapping ==========

def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Some drivers (sqlite) hand back naive datetimes; everything stored is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse(value: Optional[str]) -> Optional[datetime]:
    return _as_utc(datetime.fromisoformat(value)) if value else None


def _resolution_to_json(resolution: Optional[Resolution]) -> Optional[Dict[str, Any]]:
    if resolution is None:
        return None
    satisfaction = None
    if resolution.satisfaction is not None:
        satisfaction = {
            "rating": resolution.satisfaction.rating,
            "comment": resolution.satisfaction.comment,
            "rated_at": _iso(resolution.satisfaction.rated_at),
        }
    return {
        "summary": resolution.summary,
        "resolved_by": resolution.resolved_by,
        "root_cause": resolution.root_cause,
        "preventive_measures": resolution.preventive_measures,
        "satisfaction": satisfaction,
    }


def _resolution_from_json(data: Optional[Dict[str, Any]]) -> Optional[Resolution]:
    if not data:
        return None
    satisfaction = None
    if data.get("satisfaction"):
        s = data["satisfaction"]
        satisfaction = SatisfactionRating(
            rating=s["rating"], rated_at=_parse(s["rated_at"]), comment=s.get("comment")
        )
    return Resolution(
        summary=data["summary"],
        resolved_by=data["resolved_by"],
        root_cause=data.get("root_cause"),
        preventive_measures=data.get("preventive_measures"),
        satisfaction=satisfaction,
    )


def ticket_to_row(ticket: Ticket) -> Dict[str, Any]:
    """Column values for a ticket (everything except id and version)."""
    return {
        "ticket_code": ticket.ticket_code,
        "title": ticket.title,
        "description": ticket.description,
        "category": ticket.category.value,
        "sub_category": ticket.sub_category,
        "campus": ticket.campus.value,
        "location": {
            "building": ticket.location.building,
            "room": ticket.location.room,
            "floor": ticket.location.floor,
        },
        "status": ticket.status.value,
        "priority": ticket.priority.value,
        "escalation_level": ticket.escalation_level,
        "created_by": ticket.created_by,
        "department": ticket.department,
        "assigned_to": ticket.assigned_to,
        "created_at": ticket.created_at,
        "updated_at": ticket.updated_at,
        "sla_response_deadline": ticket.sla_response_deadline,
        "sla_resolution_deadline": ticket.sla_resolution_deadline,
        "first_response_at": ticket.first_response_at,
        "resolved_at": ticket.resolved_at,
        "closed_at": ticket.closed_at,
        "actual_resolution_time": ticket.actual_resolution_time,
        "reopened_at": ticket.reopened_at,
        "reopen_count": ticket.reopen_count,
        "comments": [
            {
                "author": c.author,
                "message": c.message,
                "is_internal": c.is_internal,
                "timestamp": _iso(c.timestamp),
            }
            for c in ticket.comments
        ],
        "attachments": [
            {
                "name": a.name,
                "reference": a.reference,
                "size": a.size,
                "content_type": a.content_type,
                "uploaded_by": a.uploaded_by,
                "uploaded_at": _iso(a.uploaded_at),
            }
            for a in ticket.attachments
        ],
        "resolution": _resolution_to_json(ticket.resolution),
        "history": [
            {
                "action": h.action.value,
                "field": h.field,
                "old_value": h.old_value,
                "new_value": h.new_value,
                "actor": h.actor,
                "timestamp": _iso(h.timestamp),
                "reason": h.reason,
            }
            for h in ticket.history
        ],
        "tags": list(ticket.tags),
        "extensions": dict(ticket.extensions),
        "view_count": ticket.view_count,
        "last_viewed_at": ticket.last_viewed_at,
        "viewed_by": list(ticket.viewed_by),
    }


def ticket_from_model(model: TicketModel) -> Ticket:
    """Rebuild the domain aggregate from a row."""
    location = model.location or {}
    return Ticket(
        id=str(model.id),
        ticket_code=model.ticket_code,
        title=model.title,
        description=model.description,
        category=Category(model.category),
        priority=Priority(model.priority),
        status=TicketStatus(model.status),
        created_by=model.created_by,
        created_at=_as_utc(model.created_at),
        updated_at=_as_utc(model.updated_at),
        sub_category=model.sub_category,
        campus=Campus(model.campus),
        location=Location(
            building=location.get("building"),
            room=location.get("room"),
            floor=location.get("floor"),
        ),
        department=model.department,
        assigned_to=model.assigned_to,
        sla_response_deadline=_as_utc(model.sla_response_deadline),
        sla_resolution_deadline=_as_utc(model.sla_resolution_deadline),
        first_response_at=_as_utc(model.first_response_at),
        resolved_at=_as_utc(model.resolved_at),
        closed_at=_as_utc(model.closed_at),
        actual_resolution_time=model.actual_resolution_time,
        reopened_at=_as_utc(model.reopened_at),
        reopen_count=model.reopen_count,
        escalation_level=model.escalation_level,
        comments=[
            Comment(
                author=c["author"],
                message=c["message"],
                timestamp=_parse(c["timestamp"]),
                is_internal=c.get("is_internal", False),
            )
            for c in model.comments or []
        ],
        attachments=[
            Attachment(
                name=a["name"],
                reference=a["reference"],
                size=a["size"],
                content_type=a["content_type"],
                uploaded_by=a["uploaded_by"],
                uploaded_at=_parse(a["uploaded_at"]),
            )
            for a in model.attachments or []
        ],
        resolution=_resolution_from_json(model.resolution),
        history=[
            HistoryEntry(
                action=HistoryAction(h["action"]),
                actor=h["actor"],
                timestamp=_parse(h["timestamp"]),
                field=h.get("field"),
                old_value=h.get("old_value"),
                new_value=h.get("new_value"),
                reason=h.get("reason"),
            )
            for h in model.history or []
        ],
        tags=list(model.tags or []),
        extensions=dict(model.extensions or {}),
        view_count=model.view_count,
        last_viewed_at=_as_utc(model.last_viewed_at),
        viewed_by=list(model.viewed_by or []),
        version=model.version,
    )


# ========== Ticket Persistence ==========

class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Updates are a single conditional UPDATE on (ticket_code, version), which
    gives per-ticket atomicity without holding row locks between load and
    write.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_code(self, ticket_code: str) -> Optional[Ticket]:
        """Get ticket by its public code."""
        stmt = (
            select(TicketModel)
            .where(TicketModel.ticket_code == ticket_code)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return ticket_from_model(model) if model is not None else None

    async def add(self, ticket: Ticket) -> Ticket:
        """Insert a new ticket at version 0."""
        model = TicketModel(id=uuid4(), version=0, **ticket_to_row(ticket))
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise RepositoryException(
                f"Ticket {ticket.ticket_code} already exists",
                {"ticket_code": ticket.ticket_code}
            ) from e

        ticket.id = str(model.id)
        ticket.version = 0
        return ticket

    async def update(self, ticket: Ticket, expected_version: int) -> Ticket:
        """Conditional whole-ticket write; bumps the version."""
        values = ticket_to_row(ticket)
        values["version"] = expected_version + 1
        stmt = (
            update(TicketModel)
            .where(
                TicketModel.ticket_code == ticket.ticket_code,
                TicketModel.version == expected_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount != 1:
            raise ConcurrentModificationException(ticket.ticket_code, expected_version)

        ticket.version = expected_version + 1
        return ticket

    async def list(
        self,
        query: TicketQuery,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Ticket], int]:
        """One page of matching tickets, newest first, plus the total count."""
        conditions = self._conditions(query)

        count_stmt = select(func.count()).select_from(TicketModel).where(*conditions)
        total = (await self._session.execute(count_stmt)).scalar_one()

        stmt = (
            select(TicketModel)
            .where(*conditions)
            .order_by(TicketModel.created_at.desc(), TicketModel.ticket_code.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self._session.execute(stmt)
        return [ticket_from_model(m) for m in result.scalars().all()], total

    async def list_all(self, query: TicketQuery) -> List[Ticket]:
        """Every matching ticket, oldest first."""
        stmt = (
            select(TicketModel)
            .where(*self._conditions(query))
            .order_by(TicketModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [ticket_from_model(m) for m in result.scalars().all()]

    async def next_sequence(self, period: str) -> int:
        """
        Allocate the next number for a YYYYMM period inside the current transaction.

        The period row is seeded with an insert that ignores conflicts, then
        bumped by a single UPDATE ... RETURNING; concurrent creates queue on
        the row lock and never see the same value.
        """
        dialect = self._session.get_bind().dialect.name
        insert = UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise RepositoryException(
                f"Ticket sequences are not supported on {dialect}",
                {"dialect": dialect}
            )

        seed = (
            insert(TicketSequenceModel)
            .values(period=period, value=0)
            .on_conflict_do_nothing(index_elements=[TicketSequenceModel.period])
        )
        await self._session.execute(seed)

        bump = (
            update(TicketSequenceModel)
            .where(TicketSequenceModel.period == period)
            .values(value=TicketSequenceModel.value + 1)
            .returning(TicketSequenceModel.value)
            .execution_options(synchronize_session=False)
        )
        return (await self._session.execute(bump)).scalar_one()

    def _conditions(self, query: TicketQuery) -> list:
        """Translate a TicketQuery into SQL; mirrors TicketQuery.matches."""
        conditions = []

        if query.scope_user is not None:
            own = TicketModel.created_by == query.scope_user
            if query.scope_department is not None:
                conditions.append(or_(own, TicketModel.department == query.scope_department))
            else:
                conditions.append(own)

        if query.created_by is not None:
            conditions.append(TicketModel.created_by == query.created_by)
        if query.assigned_to is not None:
            conditions.append(TicketModel.assigned_to == query.assigned_to)
        if query.statuses is not None:
            conditions.append(TicketModel.status.in_([s.value for s in query.statuses]))
        if query.priority is not None:
            conditions.append(TicketModel.priority == query.priority.value)
        if query.category is not None:
            conditions.append(TicketModel.category == query.category.value)
        if query.campus is not None:
            conditions.append(TicketModel.campus == query.campus.value)

        if query.search:
            pattern = f"%{query.search}%"
            conditions.append(or_(
                TicketModel.ticket_code.ilike(pattern),
                TicketModel.title.ilike(pattern),
                TicketModel.description.ilike(pattern),
            ))

        if query.overdue_at is not None:
            now = query.overdue_at
            conditions.append(and_(
                TicketModel.status.in_([s.value for s in ACTIVE_STATUSES]),
                or_(
                    and_(
                        TicketModel.sla_resolution_deadline.is_not(None),
                        TicketModel.sla_resolution_deadline < now,
                    ),
                    and_(
                        TicketModel.sla_response_deadline.is_not(None),
                        TicketModel.sla_response_deadline < now,
                        or_(
                            TicketModel.first_response_at.is_(None),
                            TicketModel.first_response_at > TicketModel.sla_response_deadline,
                        ),
                    ),
                ),
            ))

        return conditions


class SQLAlchemyUnitOfWork(IUnitOfWork):
    """One AsyncSession transaction per unit of work."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker
        self._session: Optional[AsyncSession] = None

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        self._session = self._session_maker()
        self.tickets = SQLAlchemyTicketRepository(self._session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await self.rollback()
        finally:
            await self._session.close()
            self._session = None

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            logger.error("Commit failed", extra={"error": str(e)})
            raise RepositoryException("Could not save changes") from e

    async def rollback(self) -> None:
        await self._session.rollback()


# ========== File-backed Providers ==========

class YAMLConfigProvider(ISLAConfigProvider):
    """
    SLA configuration provider that loads from YAML.

    The file is read once; a missing file means the built-in table.
    """

    def __init__(self, config_path: Path):
        self._config_path = Path(config_path)
        self._config = self._load_config()

    def _load_config(self) -> SLAConfig:
        if not self._config_path.exists():
            logger.warning(
                "SLA config file not found, using defaults",
                extra={"path": str(self._config_path)}
            )
            return SLAConfig()

        try:
            with open(self._config_path, "r") as f:
                data = yaml.safe_load(f) or {}
            config = SLAConfig(**data)
        except (yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigurationException(
                f"Invalid SLA config in {self._config_path}: {e}"
            ) from e

        logger.info("SLA configuration loaded", extra={"path": str(self._config_path)})
        return config

    def get_config(self) -> SLAConfig:
        """Get current SLA configuration."""
        return self._config


class YAMLIdentityDirectory(IIdentityProvider):
    """
    Known users read from a YAML file.

    Format:
        users:
          - id: tech-1
            role: technician
            department: ICT
    """

    def __init__(self, directory_path: Path):
        self._path = Path(directory_path)
        self._users = self._load()

    def _load(self) -> Dict[str, Identity]:
        if not self._path.exists():
            logger.warning("Identity directory not found", extra={"path": str(self._path)})
            return {}

        with open(self._path, "r") as f:
            data = yaml.safe_load(f) or {}

        users = {}
        for entry in data.get("users", []):
            try:
                identity = Identity(
                    user_id=str(entry["id"]),
                    role=UserRole(entry["role"]),
                    department=entry.get("department"),
                )
            except (KeyError, ValueError) as e:
                raise ConfigurationException(f"Invalid user entry in {self._path}: {entry}") from e
            users[identity.user_id] = identity

        logger.info("Identity directory loaded", extra={"users": len(users)})
        return users

    async def get_user(self, user_id: str) -> Optional[Identity]:
        return self._users.get(user_id)
