"""
History Recorder
================

Turns a before/after pair of ticket states into audit trail entries.

Usage:
    before = recorder.snapshot(ticket)
    ... mutate ticket ...
    entries = recorder.record(ticket, before, actor="u-42", at=now)

Fields that change on every read or write (updated_at, view tracking, the
history itself and the version counter) are never audited.
"""

from dataclasses import asdict, fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from helpdesk.config import HistoryAction
from helpdesk.tickets.domain.entities import HistoryEntry, Ticket

UNTRACKED_FIELDS = frozenset({
    "id",
    "updated_at",
    "view_count",
    "last_viewed_at",
    "viewed_by",
    "history",
    "version",
})

# Collections that only ever grow; changes are recorded per appended element
APPEND_ONLY_FIELDS = frozenset({"comments", "attachments"})


def normalize_value(value: Any) -> Any:
    """
    Convert a field value to JSON-safe primitives.

    Raises:
        TypeError: value has no JSON representation
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return normalize_value(asdict(value))
    if isinstance(value, dict):
        return {str(k): normalize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_value(v) for v in value]
    raise TypeError(f"Cannot record value of type {type(value).__name__}")


class HistoryRecorder:
    """Explicit snapshot/diff step run by services around every mutation."""

    def snapshot(self, ticket: Ticket) -> Dict[str, Any]:
        """Capture the tracked fields. Containers are copied so later in-place edits show up in the diff."""
        state = {}
        for f in fields(ticket):
            if f.name in UNTRACKED_FIELDS:
                continue
            value = getattr(ticket, f.name)
            if isinstance(value, list):
                value = list(value)
            elif isinstance(value, dict):
                value = dict(value)
            state[f.name] = value
        return state

    def diff(
        self,
        before: Dict[str, Any],
        ticket: Ticket,
        actor: str,
        at: datetime,
        reason: Optional[str] = None,
    ) -> List[HistoryEntry]:
        """One entry per changed field, one per appended comment/attachment."""
        after = self.snapshot(ticket)
        entries: List[HistoryEntry] = []

        for name, old in before.items():
            new = after[name]
            if old == new:
                continue

            if name in APPEND_ONLY_FIELDS:
                for item in new[len(old):]:
                    entries.append(HistoryEntry(
                        action=HistoryAction.ADD,
                        actor=actor,
                        timestamp=at,
                        field=name,
                        new_value=normalize_value(item),
                        reason=reason,
                    ))
                continue

            entries.append(HistoryEntry(
                action=HistoryAction.UPDATE,
                actor=actor,
                timestamp=at,
                field=name,
                old_value=normalize_value(old),
                new_value=normalize_value(new),
                reason=reason,
            ))

        return entries

    def record(
        self,
        ticket: Ticket,
        before: Dict[str, Any],
        actor: str,
        at: datetime,
        reason: Optional[str] = None,
    ) -> List[HistoryEntry]:
        """Diff and append the entries to the ticket; returns the new entries."""
        entries = self.diff(before, ticket, actor, at, reason)
        ticket.append_history(entries)
        return entries

    def record_creation(
        self,
        ticket: Ticket,
        actor: str,
        at: datetime,
        reason: Optional[str] = None,
    ) -> List[HistoryEntry]:
        """The single CREATE entry written with a new ticket."""
        entry = HistoryEntry(
            action=HistoryAction.CREATE,
            actor=actor,
            timestamp=at,
            new_value=normalize_value({
                "ticket_code": ticket.ticket_code,
                "status": ticket.status,
                "priority": ticket.priority,
                "category": ticket.category,
            }),
            reason=reason or "Ticket created",
        )
        ticket.append_history([entry])
        return [entry]
