"""
SLA Value Objects
==================

Immutable value objects for the SLA side of the ticket domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from helpdesk.config import Priority, SLAType, WarningSeverity

# Minutes per priority: (response, resolution)
DEFAULT_SLA_TARGETS: Dict[str, Dict[str, int]] = {
    Priority.CRITICAL.value: {"response": 30, "resolution": 240},
    Priority.HIGH.value: {"response": 60, "resolution": 480},
    Priority.MEDIUM.value: {"response": 240, "resolution": 1440},
    Priority.LOW.value: {"response": 480, "resolution": 2880},
}


class SLATarget(BaseModel):
    """Response and resolution targets for one priority, in minutes."""
    response: int = Field(gt=0, description="Minutes until first response is due")
    resolution: int = Field(gt=0, description="Minutes until resolution is due")


class WarningThresholds(BaseModel):
    """Remaining-minute thresholds below which a deadline is near breach."""
    critical: int = Field(ge=0)
    warning: int = Field(ge=0)

    @model_validator(mode="after")
    def check_order(self) -> "WarningThresholds":
        if self.critical > self.warning:
            raise ValueError("critical threshold must not exceed warning threshold")
        return self


class SLAConfig(BaseModel):
    """
    SLA configuration loaded from YAML.

    The table is fixed for the lifetime of the process. Missing priorities
    take the built-in defaults.
    """
    sla_targets: Dict[str, SLATarget] = Field(
        default_factory=lambda: {k: SLATarget(**v) for k, v in DEFAULT_SLA_TARGETS.items()},
        description="SLA targets in minutes by priority"
    )
    response_thresholds: WarningThresholds = Field(
        default_factory=lambda: WarningThresholds(critical=60, warning=120)
    )
    resolution_thresholds: WarningThresholds = Field(
        default_factory=lambda: WarningThresholds(critical=120, warning=240)
    )

    @field_validator("sla_targets", mode="before")
    @classmethod
    def validate_sla_targets(cls, v: Dict[str, Dict[str, int]]) -> Dict[str, Dict[str, int]]:
        """Reject unknown priorities and fill in the ones left out."""
        targets = {str(k).lower(): val for k, val in (v or {}).items()}
        known = {p.value for p in Priority}
        unknown = set(targets) - known
        if unknown:
            raise ValueError(f"unknown priorities in sla_targets: {sorted(unknown)}")

        for priority, defaults in DEFAULT_SLA_TARGETS.items():
            if priority not in targets:
                targets[priority] = dict(defaults)
        return targets

    def get_target(self, priority: Optional[str]) -> SLATarget:
        """Targets for a priority; anything unrecognised is treated as medium."""
        key = priority.value if isinstance(priority, Priority) else str(priority or "").lower()
        return self.sla_targets.get(key, self.sla_targets[Priority.MEDIUM.value])

    def thresholds_for(self, sla_type: SLAType) -> WarningThresholds:
        if sla_type == SLAType.RESPONSE:
            return self.response_thresholds
        return self.resolution_thresholds


@dataclass(frozen=True)
class SLADeadlines:
    """Both deadlines computed from one reference instant."""
    priority: Priority
    reference_time: datetime
    response_deadline: datetime
    resolution_deadline: datetime
    response_minutes: int
    resolution_minutes: int


@dataclass(frozen=True)
class BreachRecord:
    """A deadline that has passed without being met."""
    sla_type: SLAType
    deadline: datetime
    delay_minutes: int


@dataclass(frozen=True)
class BreachReport:
    """Result of a breach check; computed on read and never persisted."""
    breaches: List[BreachRecord] = field(default_factory=list)

    @property
    def breached(self) -> bool:
        return bool(self.breaches)

    def for_type(self, sla_type: SLAType) -> Optional[BreachRecord]:
        for breach in self.breaches:
            if breach.sla_type == sla_type:
                return breach
        return None


@dataclass(frozen=True)
class SLAWarning:
    """A still-open deadline that is close to breaching."""
    sla_type: SLAType
    severity: WarningSeverity
    minutes_remaining: int
    deadline: datetime

    @property
    def message(self) -> str:
        return f"{self.sla_type.value.capitalize()} SLA due in {self.minutes_remaining} minutes"


@dataclass(frozen=True)
class TimeRemainingReport:
    """Minutes left per still-open deadline, plus near-breach warnings."""
    remaining: Dict[SLAType, int] = field(default_factory=dict)
    warnings: List[SLAWarning] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)
