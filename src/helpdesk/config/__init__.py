"""
Configuration Module
====================

Application settings and domain constants for the campus helpdesk.

Settings are loaded from environment variables (and an optional .env file)
with pydantic-settings; the enumerations below are the shared vocabulary of
the ticket lifecycle.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="campus-helpdesk", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="Async SQLAlchemy connection URL"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)
    mutation_max_retries: int = Field(
        default=5,
        description="Attempts to re-apply a ticket mutation after a concurrent write",
        ge=1,
        le=20
    )

    # ========== SLA Configuration ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to SLA target table YAML file"
    )
    sla_alerts_enabled: bool = Field(
        default=True,
        description="Run the background breach-alert scan"
    )
    sla_evaluation_interval: int = Field(
        default=60,
        description="Seconds between breach-alert scans",
        ge=10
    )
    escalation_recipients: List[str] = Field(
        default_factory=list,
        description="User ids alerted about breaches on unassigned tickets"
    )

    # ========== Identity ==========
    identity_directory_path: Path = Field(
        default=Path("users.yaml"),
        description="YAML directory of known users (id, role, department)"
    )

    # ========== Notifications ==========
    notification_webhook_url: Optional[str] = Field(
        default=None,
        description="Webhook that renders and delivers notifications; logged only when unset"
    )
    notification_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for notification webhook calls",
        ge=0.1,
        le=30
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "test", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise and check the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# ========== Constants ==========

class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    PENDING = "pending"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Priority(str, Enum):
    """Ticket priority levels, lowest first."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Category(str, Enum):
    """Support request categories."""
    HARDWARE = "hardware"
    SOFTWARE = "software"
    NETWORK = "network"
    EMAIL = "email"
    ACCOUNT_ACCESS = "account-access"
    PRINTER = "printer"
    PHONE = "phone"
    OTHER = "other"


class Campus(str, Enum):
    """University campuses."""
    MAIN = "main-campus"
    KAMPALA = "kampala-campus"
    OTHER = "other"


class UserRole(str, Enum):
    """Caller roles supplied by the identity provider."""
    STUDENT = "student"
    STAFF = "staff"
    TECHNICIAN = "technician"
    ADMIN = "admin"


class HistoryAction(str, Enum):
    """Kinds of audit trail entries."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    ADD = "ADD"


class SLAType(str, Enum):
    """Types of SLA clocks."""
    RESPONSE = "response"
    RESOLUTION = "resolution"


class WarningSeverity(str, Enum):
    """Near-breach severities."""
    WARNING = "warning"
    CRITICAL = "critical"


class SLAState(str, Enum):
    """Single-word SLA summary shown in ticket lists."""
    COMPLETED = "completed"
    BREACHED = "breached"
    CRITICAL = "critical"
    WARNING = "warning"
    NORMAL = "normal"


class NotificationKind(str, Enum):
    """Template kinds understood by the notifier."""
    TICKET_CREATED = "ticket-created"
    TICKET_ASSIGNED = "ticket-assigned"
    STATUS_UPDATED = "status-updated"
    TICKET_RESOLVED = "ticket-resolved"
    NEW_COMMENT = "new-comment"
    SLA_BREACH_ALERT = "sla-breach-alert"


# ========== Role groups and limits ==========

SUPPORT_ROLES = frozenset({UserRole.TECHNICIAN, UserRole.ADMIN})
ACTIVE_STATUSES = frozenset({TicketStatus.OPEN, TicketStatus.IN_PROGRESS, TicketStatus.PENDING})
FINISHED_STATUSES = frozenset({TicketStatus.RESOLVED, TicketStatus.CLOSED})

TITLE_MIN_LENGTH = 5
TITLE_MAX_LENGTH = 200
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 5000
COMMENT_MAX_LENGTH = 2000
MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024
MAX_TAGS = 10
MAX_TAG_LENGTH = 30
MAX_EXTENSION_KEYS = 10
MAX_EXTENSION_VALUE_LENGTH = 200
MIN_ESCALATION_LEVEL = 1
MAX_ESCALATION_LEVEL = 3
