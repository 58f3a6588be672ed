"""
Campus Helpdesk - Main Application
==================================

Ticket lifecycle and SLA compliance service for the university helpdesk.

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects, state machine, SLA rules
- Infrastructure: Database, YAML configuration, notifications, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

# Configuration and Core
from helpdesk.config import Settings, get_settings
from helpdesk.core import ApplicationException

# Infrastructure
from helpdesk.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    get_session_maker,
    init_database,
)

# Tickets module
from helpdesk.tickets.application import DashboardService, SLAAlertService, TicketService
from helpdesk.tickets.infrastructure import (
    LoggingNotifier,
    SLAScheduler,
    SQLAlchemyUnitOfWork,
    SystemClock,
    WebhookNotifier,
    YAMLConfigProvider,
    YAMLIdentityDirectory,
)
from helpdesk.tickets.interfaces import dashboard_router, sla_router, tickets_router

# Shared
from helpdesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
    validation_exception_handler,
)
from helpdesk.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Load SLA configuration and the identity directory
    4. Wire the ticket, dashboard and alert services
    5. Start the SLA alert scheduler

    SHUTDOWN:
    1. Stop SLA scheduler
    2. Finish delivering queued notifications
    3. Close the notifier
    4. Close database connections
    """
    settings: Settings = app.state.settings

    # === STARTUP ===
    setup_logging(level=settings.log_level, environment=settings.environment, service=settings.app_name)
    logger.info("Starting helpdesk service", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database(settings)
    await create_tables()

    logger.info("Loading SLA configuration", extra={"path": str(settings.sla_config_path)})
    config_provider = YAMLConfigProvider(settings.sla_config_path)
    identity_directory = YAMLIdentityDirectory(settings.identity_directory_path)

    if settings.notification_webhook_url:
        notifier = WebhookNotifier(
            settings.notification_webhook_url,
            timeout_seconds=settings.notification_timeout_seconds,
        )
    else:
        notifier = LoggingNotifier()

    clock = SystemClock()
    session_maker = get_session_maker()

    def uow_factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_maker)

    app.state.ticket_service = TicketService(
        uow_factory,
        config_provider,
        identity_directory,
        notifier,
        clock,
        max_retries=settings.mutation_max_retries,
    )
    app.state.dashboard_service = DashboardService(uow_factory, clock)
    alert_service = SLAAlertService(
        uow_factory,
        config_provider,
        notifier,
        clock,
        escalation_recipients=settings.escalation_recipients,
    )
    app.state.alert_service = alert_service

    scheduler: Optional[SLAScheduler] = None
    if settings.sla_alerts_enabled:
        scheduler = SLAScheduler(interval_seconds=settings.sla_evaluation_interval)
        await scheduler.start(alert_service.scan)
    app.state.sla_scheduler = scheduler

    logger.info("Helpdesk service started")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down helpdesk service")

    if scheduler:
        await scheduler.stop()

    await app.state.ticket_service.drain_notifications()
    await notifier.close()
    await close_database()

    logger.info("Helpdesk service shutdown complete")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application for the given settings."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Campus Helpdesk API",
        description="""
    ## University Helpdesk: Ticket Lifecycle & SLA Compliance

    Students, staff, technicians and administrators raise and work support
    tickets. Every ticket carries response and resolution deadlines derived
    from its priority, a full audit trail of changes, and an SLA state that
    is computed on every read.

    **Caller identity** is taken from the `X-User-Id`, `X-User-Role` and
    `X-User-Department` headers set by the authenticating gateway.

    **SLA Targets (Minutes):**

    | Priority | Response | Resolution |
    |----------|----------|------------|
    | Critical | 30       | 240        |
    | High     | 60       | 480        |
    | Medium   | 240      | 1440       |
    | Low      | 480      | 2880       |
    """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = settings

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Last added runs first: correlation id must be set before logging reads it
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)

    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Include Module Routers ===
    app.include_router(tickets_router)
    app.include_router(dashboard_router)
    app.include_router(sla_router)

    @app.get("/health", tags=["Health"], responses={
        200: {
            "description": "Service health",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "version": "1.0.0",
                        "environment": "development",
                        "checks": {
                            "database": "connected",
                            "sla_scheduler": "running"
                        }
                    }
                }
            }
        }
    })
    async def health_check(request: Request):
        """
        Health check endpoint for load balancers and orchestrators.

        Reports database connectivity and the alert scheduler state.
        """
        checks = {"database": "connected"}
        try:
            async with get_session_context() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning("Health check database probe failed", extra={"error": str(e)})
            checks["database"] = "unavailable"

        scheduler = getattr(request.app.state, "sla_scheduler", None)
        checks["sla_scheduler"] = "running" if scheduler and scheduler.is_running else "stopped"

        return {
            "status": "healthy" if checks["database"] == "connected" else "degraded",
            "version": settings.app_version,
            "environment": settings.environment,
            "checks": checks
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "Campus Helpdesk",
            "version": settings.app_version,
            "architecture": "Clean Architecture / Modular Monolith",
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "helpdesk.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level=_settings.log_level.lower()
    )
