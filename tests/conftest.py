"""Shared fixtures for the helpdesk test suite."""

import os

# Settings are read when helpdesk.main is imported
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SLA_ALERTS_ENABLED", "false")

import pytest

from helpdesk.tickets.application import DashboardService, SLAAlertService, TicketService

from tests.fakes import (
    ADMIN,
    OTHER_STUDENT,
    OTHER_TECH,
    STAFF,
    STUDENT,
    T0,
    TECH,
    FrozenClock,
    InMemoryTicketStore,
    InMemoryUnitOfWork,
    RecordingNotifier,
    StaticConfigProvider,
    StaticIdentityProvider,
)


@pytest.fixture
def clock():
    return FrozenClock(T0)


@pytest.fixture
def store():
    return InMemoryTicketStore()


@pytest.fixture
def uow_factory(store):
    return lambda: InMemoryUnitOfWork(store)


@pytest.fixture
def config_provider():
    return StaticConfigProvider()


@pytest.fixture
def identity_provider():
    return StaticIdentityProvider([STUDENT, OTHER_STUDENT, STAFF, TECH, OTHER_TECH, ADMIN])


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(uow_factory, config_provider, identity_provider, notifier, clock):
    return TicketService(uow_factory, config_provider, identity_provider, notifier, clock, max_retries=3)


@pytest.fixture
def dashboard(uow_factory, clock):
    return DashboardService(uow_factory, clock)


@pytest.fixture
def alert_service(uow_factory, config_provider, notifier, clock):
    return SLAAlertService(
        uow_factory, config_provider, notifier, clock, escalation_recipients=["admin-1"]
    )
