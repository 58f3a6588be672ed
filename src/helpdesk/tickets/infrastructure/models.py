"""
Ticket Infrastructure Models
============================

SQLAlchemy ORM models for the tickets module.

One row per ticket. Embedded records (comments, attachments, history,
resolution) are JSON columns, so a ticket and its audit trail are always
written in a single statement.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.config import Campus, Category, Priority, TicketStatus
from helpdesk.infrastructure.database import Base


class TicketModel(Base):
    """
    Database model for the Ticket aggregate.

    Maps to the 'tickets' table. ``version`` backs optimistic concurrency.
    """
    __tablename__ = "tickets"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Business identifier
    ticket_code: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)

    # Content
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[Category] = mapped_column(String(50), nullable=False, index=True)
    sub_category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    campus: Mapped[Campus] = mapped_column(String(50), nullable=False)
    location: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Lifecycle
    status: Mapped[TicketStatus] = mapped_column(String(50), nullable=False, index=True)
    priority: Mapped[Priority] = mapped_column(String(50), nullable=False, index=True)
    escalation_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # People
    created_by: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # SLA tracking
    sla_response_deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sla_resolution_deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    first_response_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_resolution_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reopened_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reopen_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Embedded records
    comments: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    attachments: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    resolution: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    history: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    extensions: Mapped[Dict[str, str]] = mapped_column(JSON, nullable=False, default=dict)

    # View tracking
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_viewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    viewed_by: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class TicketSequenceModel(Base):
    """
    Per-month ticket number counter.

    Maps to the 'ticket_sequences' table; ``period`` is YYYYMM.
    """
    __tablename__ = "ticket_sequences"

    period: Mapped[str] = mapped_column(String(6), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
