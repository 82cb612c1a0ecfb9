"""
Safety Compliance API - Compliance Engine Models

Value objects passed into and returned by the compliance engine.
The engine never sees ORM rows; the store converts them to these
snapshots first, so evaluation stays pure and re-derivable.

Timestamps: naive datetimes are read as UTC. Everything the engine
returns is timezone-aware UTC.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple, Any


# =============================================================================
# ENUMS
# =============================================================================

class Frequency(str, Enum):
    """Recurrence of a safety protocol."""
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    SHIFT_START = "SHIFT_START"
    SHIFT_END = "SHIFT_END"


class ComplianceState(str, Enum):
    """Compliance state of a protocol at an instant."""
    COMPLIANT = "COMPLIANT"
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"
    NOT_YET_DUE = "NOT_YET_DUE"
    INACTIVE = "INACTIVE"


# =============================================================================
# TIME HELPERS
# =============================================================================

def as_utc(instant: datetime) -> datetime:
    """Normalize to aware UTC. Naive values are taken to already be UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# WINDOWS
# =============================================================================

@dataclass(frozen=True)
class Window:
    """Half-open recurrence window [start, end)."""
    start: datetime
    end: datetime
    frequency: Frequency

    def contains(self, instant: datetime) -> bool:
        return self.start <= as_utc(instant) < self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "frequency": self.frequency.value,
        }


# =============================================================================
# ENGINE INPUTS
# =============================================================================

@dataclass(frozen=True)
class FrequencyRevision:
    """The frequency a protocol uses from `effective_from` onwards."""
    effective_from: datetime
    frequency: Frequency


@dataclass(frozen=True)
class ProtocolSnapshot:
    """
    Read-only view of a protocol as the engine needs it.

    frequency_revisions is the recorded frequency history, oldest first.
    When empty, `frequency` applies to all time.
    """
    id: str
    name: str
    frequency: Frequency
    target_count: int
    is_active: bool = True
    zone_ids: FrozenSet[str] = frozenset()
    created_at: Optional[datetime] = None
    frequency_revisions: Tuple[FrequencyRevision, ...] = ()


@dataclass(frozen=True)
class ComplianceLogEntry:
    """A single recorded completion. Immutable once created."""
    id: str
    protocol_id: str
    completion_date: datetime
    note: Optional[str] = None
    created_at: Optional[datetime] = None


# =============================================================================
# ENGINE OUTPUTS
# =============================================================================

@dataclass(frozen=True)
class WindowEvaluation:
    """Completion count for one window against the protocol target."""
    window: Window
    completion_count: int
    target_count: int
    closed: bool

    @property
    def met(self) -> bool:
        return self.completion_count >= self.target_count

    @property
    def shortfall(self) -> int:
        return max(self.target_count - self.completion_count, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.window.to_dict(),
            "completion_count": self.completion_count,
            "target_count": self.target_count,
            "met": self.met,
            "closed": self.closed,
        }


@dataclass(frozen=True)
class ComplianceEvaluation:
    """Compliance state plus the window counts that produced it."""
    protocol_id: str
    state: ComplianceState
    reference_instant: datetime
    current: Optional[WindowEvaluation] = None
    previous: Optional[WindowEvaluation] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "protocol_id": self.protocol_id,
            "state": self.state.value,
            "reference_instant": self.reference_instant.isoformat(),
            "current_window": self.current.to_dict() if self.current else None,
            "previous_window": self.previous.to_dict() if self.previous else None,
        }


@dataclass
class ComplianceSummary:
    """Fleet-level compliance at one reference instant."""
    reference_instant: datetime
    states: Dict[str, ComplianceState] = field(default_factory=dict)
    rollup: Dict[ComplianceState, int] = field(
        default_factory=lambda: {state: 0 for state in ComplianceState}
    )
    zone_rollup: Dict[str, Dict[ComplianceState, int]] = field(default_factory=dict)
    evaluations: List[ComplianceEvaluation] = field(default_factory=list)

    @property
    def compliance_rate(self) -> Optional[float]:
        """Share of due protocols that are COMPLIANT. None if nothing is due."""
        due = (
            self.rollup[ComplianceState.COMPLIANT]
            + self.rollup[ComplianceState.PENDING]
            + self.rollup[ComplianceState.OVERDUE]
        )
        if due == 0:
            return None
        return self.rollup[ComplianceState.COMPLIANT] / due

    def protocols_in(self, state: ComplianceState) -> List[str]:
        return [pid for pid, s in self.states.items() if s == state]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reference_instant": self.reference_instant.isoformat(),
            "total_protocols": len(self.states),
            "compliance_rate": self.compliance_rate,
            "rollup": {state.value: count for state, count in self.rollup.items()},
            "zones": {
                zone_id: {state.value: count for state, count in counts.items()}
                for zone_id, counts in self.zone_rollup.items()
            },
            "protocols": [evaluation.to_dict() for evaluation in self.evaluations],
        }
