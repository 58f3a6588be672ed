"""Integration tests for the SQLAlchemy repository on a temporary SQLite database."""

import asyncio
from datetime import timedelta
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from helpdesk.config import HistoryAction, Priority, TicketStatus, UserRole
from helpdesk.core.exceptions import ConcurrentModificationException, ConfigurationException
from helpdesk.infrastructure.database import Base
from helpdesk.tickets.application import TicketQuery, TicketService
from helpdesk.tickets.application.dto import (
    AssignRequest,
    CommentRequest,
    RatingRequest,
    ResolveRequest,
    TicketListQuery,
)
from helpdesk.tickets.domain import Comment, DeadlineCalculator, SLAConfig
from helpdesk.tickets.infrastructure import (
    SQLAlchemyUnitOfWork,
    TicketModel,
    YAMLConfigProvider,
    YAMLIdentityDirectory,
)

from tests.fakes import (
    ADMIN,
    STUDENT,
    T0,
    TECH,
    RecordingNotifier,
    StaticConfigProvider,
    StaticIdentityProvider,
    make_create_request,
    make_ticket,
)

FIXTURES = Path(__file__).parent / "fixtures"

assert TicketModel.__tablename__ == "tickets"


@pytest.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'helpdesk.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    await engine.dispose()


@pytest.fixture
def sql_uow_factory(session_maker):
    return lambda: SQLAlchemyUnitOfWork(session_maker)


@pytest.fixture
def sql_service(sql_uow_factory, clock):
    return TicketService(
        sql_uow_factory,
        StaticConfigProvider(),
        StaticIdentityProvider([STUDENT, TECH, ADMIN]),
        RecordingNotifier(),
        clock,
    )


def _ticket(code, minute=0, **overrides):
    ticket = make_ticket(T0 + timedelta(minutes=minute), ticket_code=code, **overrides)
    DeadlineCalculator(SLAConfig()).apply(ticket, ticket.created_at)
    return ticket


class TestTicketPersistence:
    """Round trips through the tickets table."""

    async def test_add_and_load(self, sql_uow_factory):
        ticket = _ticket("TKT-202603-0001", tags=["printer"], extensions={"asset": "PR-22"})
        ticket.add_comment(Comment(author="tech-1", message="Paper path cleared", timestamp=T0))

        async with sql_uow_factory() as uow:
            await uow.tickets.add(ticket)
            await uow.commit()

        async with sql_uow_factory() as uow:
            loaded = await uow.tickets.get_by_code("TKT-202603-0001")

        assert loaded.version == 0
        assert loaded.created_at == T0
        assert loaded.sla_response_deadline == T0 + timedelta(minutes=240)
        assert loaded.comments[0].timestamp == T0
        assert loaded.tags == ["printer"]
        assert loaded.extensions == {"asset": "PR-22"}

    async def test_missing_ticket(self, sql_uow_factory):
        async with sql_uow_factory() as uow:
            assert await uow.tickets.get_by_code("TKT-202603-9999") is None

    async def test_uncommitted_work_is_discarded(self, sql_uow_factory):
        async with sql_uow_factory() as uow:
            await uow.tickets.add(_ticket("TKT-202603-0001"))

        async with sql_uow_factory() as uow:
            assert await uow.tickets.get_by_code("TKT-202603-0001") is None

    async def test_stale_version_is_rejected(self, sql_uow_factory):
        async with sql_uow_factory() as uow:
            await uow.tickets.add(_ticket("TKT-202603-0001"))
            await uow.commit()

        async with sql_uow_factory() as first, sql_uow_factory() as second:
            mine = await first.tickets.get_by_code("TKT-202603-0001")
            theirs = await second.tickets.get_by_code("TKT-202603-0001")

            mine.title = "Printer jammed again"
            await first.tickets.update(mine, expected_version=0)
            await first.commit()

            theirs.title = "Printer on fire"
            with pytest.raises(ConcurrentModificationException):
                await second.tickets.update(theirs, expected_version=0)

        async with sql_uow_factory() as uow:
            stored = await uow.tickets.get_by_code("TKT-202603-0001")
        assert stored.title == "Printer jammed again"
        assert stored.version == 1

    async def test_sequences_are_per_period(self, sql_uow_factory):
        async with sql_uow_factory() as uow:
            numbers = [await uow.tickets.next_sequence("202603") for _ in range(3)]
            other = await uow.tickets.next_sequence("202604")
            await uow.commit()

        assert numbers == [1, 2, 3]
        assert other == 1


class TestTicketQueries:
    """Filters, scoping and paging in SQL."""

    @pytest.fixture
    async def seeded(self, sql_uow_factory):
        tickets = [
            _ticket("TKT-202603-0001", priority=Priority.CRITICAL),
            _ticket("TKT-202603-0002", created_by="student-2", title="Wifi down in hall B", minute=1),
            _ticket("TKT-202603-0003", created_by="staff-2", department="Library", assigned_to="tech-1",
                    status=TicketStatus.IN_PROGRESS, minute=2),
            _ticket("TKT-202603-0004", status=TicketStatus.RESOLVED, priority=Priority.CRITICAL,
                    resolved_at=T0 + timedelta(minutes=20), minute=3),
        ]
        async with sql_uow_factory() as uow:
            for ticket in tickets:
                await uow.tickets.add(ticket)
            await uow.commit()
        return tickets

    async def _codes(self, sql_uow_factory, query, limit=20, offset=0):
        async with sql_uow_factory() as uow:
            tickets, total = await uow.tickets.list(query, limit=limit, offset=offset)
        return [t.ticket_code for t in tickets], total

    async def test_newest_first(self, sql_uow_factory, seeded):
        codes, total = await self._codes(sql_uow_factory, TicketQuery())

        assert total == 4
        assert codes[0] == "TKT-202603-0004"

    async def test_paging(self, sql_uow_factory, seeded):
        codes, total = await self._codes(sql_uow_factory, TicketQuery(), limit=2, offset=2)

        assert total == 4
        assert codes == ["TKT-202603-0002", "TKT-202603-0001"]

    async def test_own_scope(self, sql_uow_factory, seeded):
        codes, _ = await self._codes(sql_uow_factory, TicketQuery(scope_user="student-1"))

        assert sorted(codes) == ["TKT-202603-0001", "TKT-202603-0004"]

    async def test_department_scope(self, sql_uow_factory, seeded):
        codes, _ = await self._codes(
            sql_uow_factory, TicketQuery(scope_user="staff-1", scope_department="Library")
        )

        assert codes == ["TKT-202603-0003"]

    async def test_search_is_case_insensitive(self, sql_uow_factory, seeded):
        codes, _ = await self._codes(sql_uow_factory, TicketQuery(search="WIFI"))

        assert codes == ["TKT-202603-0002"]

    async def test_status_and_priority(self, sql_uow_factory, seeded):
        query = TicketQuery(statuses=frozenset({TicketStatus.OPEN}), priority=Priority.CRITICAL)

        codes, _ = await self._codes(sql_uow_factory, query)

        assert codes == ["TKT-202603-0001"]

    async def test_overdue_matches_in_memory_rule(self, sql_uow_factory, seeded):
        now = T0 + timedelta(minutes=45)
        query = TicketQuery(overdue_at=now)

        codes, _ = await self._codes(sql_uow_factory, query)

        assert codes == ["TKT-202603-0001"]
        assert [t.ticket_code for t in seeded if query.matches(t)] == codes

    async def test_list_all_oldest_first(self, sql_uow_factory, seeded):
        async with sql_uow_factory() as uow:
            tickets = await uow.tickets.list_all(TicketQuery(assigned_to="tech-1"))

        assert [t.ticket_code for t in tickets] == ["TKT-202603-0003"]


class TestServiceOnSQLite:
    """The full lifecycle against real persistence."""

    async def test_lifecycle(self, sql_service, clock):
        created = await sql_service.create_ticket(STUDENT, make_create_request(priority="high"))
        code = created.ticket.ticket_code

        clock.advance(minutes=5)
        await sql_service.assign_ticket(ADMIN, code, AssignRequest(handler_id="tech-1"))
        clock.advance(minutes=5)
        await sql_service.add_comment(TECH, code, CommentRequest(message="Replacing the cable"))
        clock.advance(minutes=50)
        await sql_service.resolve_ticket(TECH, code, ResolveRequest(summary="Cable replaced"))
        await sql_service.rate_ticket(STUDENT, code, RatingRequest(rating=4))

        ticket = await sql_service.get_ticket(TECH, code, record_view=False)
        assert code == "TKT-202603-0001"
        assert ticket.status == TicketStatus.RESOLVED
        assert ticket.first_response_at == T0 + timedelta(minutes=10)
        assert ticket.actual_resolution_time == 60
        assert ticket.resolution.satisfaction.rating == 4
        assert ticket.history[0].action == HistoryAction.CREATE
        assert {e.field for e in ticket.history[1:3]} == {"assigned_to", "status"}
        assert ticket.version == 4

    async def test_list_tickets_through_service(self, sql_service):
        await sql_service.create_ticket(STUDENT, make_create_request())
        await sql_service.create_ticket(TECH, make_create_request(title="Lab PC will not boot"))

        tickets, total = await sql_service.list_tickets(STUDENT, TicketListQuery())

        assert total == 1
        assert tickets[0].created_by == STUDENT.user_id

    async def test_concurrent_creates_get_distinct_codes(self, sql_service):
        results = await asyncio.gather(*(
            sql_service.create_ticket(STUDENT, make_create_request(title=f"Lab PC {n} will not boot"))
            for n in range(5)
        ))

        codes = sorted(r.ticket.ticket_code for r in results)
        assert codes == [f"TKT-202603-{n:04d}" for n in range(1, 6)]

    async def test_concurrent_creates_continue_existing_period(self, sql_service):
        await sql_service.create_ticket(STUDENT, make_create_request())

        results = await asyncio.gather(*(
            sql_service.create_ticket(STUDENT, make_create_request()) for _ in range(5)
        ))

        codes = sorted(r.ticket.ticket_code for r in results)
        assert codes == [f"TKT-202603-{n:04d}" for n in range(2, 7)]


class TestYAMLProviders:
    """File-backed configuration and identity."""

    def test_missing_sla_file_uses_defaults(self, tmp_path):
        provider = YAMLConfigProvider(tmp_path / "absent.yaml")

        assert provider.get_config().get_target("critical").response == 30

    def test_sla_file_overrides_targets(self, tmp_path):
        path = tmp_path / "sla.yaml"
        path.write_text("sla_targets:\n  critical:\n    response: 15\n    resolution: 120\n")

        config = YAMLConfigProvider(path).get_config()

        assert config.get_target("critical").response == 15
        assert config.get_target("medium").response == 240

    def test_invalid_sla_file(self, tmp_path):
        path = tmp_path / "sla.yaml"
        path.write_text("sla_targets:\n  urgent:\n    response: 5\n    resolution: 10\n")

        with pytest.raises(ConfigurationException):
            YAMLConfigProvider(path)

    async def test_identity_directory(self):
        directory = YAMLIdentityDirectory(FIXTURES / "users.yaml")

        tech = await directory.get_user("tech-1")
        student = await directory.get_user("student-1")

        assert tech.role == UserRole.TECHNICIAN
        assert tech.is_support
        assert student.department is None
        assert await directory.get_user("nobody") is None
