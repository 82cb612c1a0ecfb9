"""
Protocol Service

Orchestrates the store and the compliance engine for the API:
- Protocol records (create, list, get, update, delete)
- Compliance logs (validate, then append; list)
- Compliance reads (single protocol, window history, fleet summary)
- Compliance sweep (periodic caller of the aggregator)

Results are dicts. Failures are returned, not raised:
    {"error": "...", "error_code": "NOT_FOUND" | "FUTURE_DATE" | "TOO_OLD" | "RANGE_TOO_LARGE"}
Routers map error codes to HTTP status codes.

ConfigurationError from the engine is NOT caught here; it means stored
data violates an invariant and must surface as a server fault.
"""
import logging
from datetime import datetime
from typing import Optional, List, Dict, Any, Iterable
from uuid import uuid4

from sqlalchemy.orm import Session

from ..config import EngineSettings, get_engine_settings
from ..models.compliance import ComplianceState, Frequency, as_utc, utcnow
from ..models.db_models import ProtocolDB, ComplianceLogDB
from .compliance import ComplianceEvaluator, LogValidator, ProtocolAggregator
from .compliance.errors import NOT_FOUND, RANGE_TOO_LARGE, HistoryRangeError
from .compliance.window_calculator import coerce_frequency
from .compliance_store import ComplianceStore, to_naive_utc

logger = logging.getLogger(__name__)


# =============================================================================
# SERIALIZATION
# =============================================================================

def serialize_protocol(protocol: ProtocolDB) -> Dict[str, Any]:
    return {
        "id": protocol.id,
        "name": protocol.name,
        "description": protocol.description,
        "frequency": protocol.frequency.value,
        "target_count": protocol.target_count,
        "is_active": protocol.is_active,
        "zone_ids": sorted(zone.id for zone in protocol.zones),
        "created_at": as_utc(protocol.created_at).isoformat() if protocol.created_at else None,
        "updated_at": as_utc(protocol.updated_at).isoformat() if protocol.updated_at else None,
    }


def serialize_log(log: ComplianceLogDB) -> Dict[str, Any]:
    return {
        "id": log.id,
        "protocol_id": log.protocol_id,
        "completion_date": as_utc(log.completion_date).isoformat(),
        "note": log.note,
        "created_at": as_utc(log.created_at).isoformat() if log.created_at else None,
    }


def _not_found(message: str) -> Dict[str, Any]:
    return {"error": message, "error_code": NOT_FOUND}


# =============================================================================
# PROTOCOL SERVICE
# =============================================================================

class ProtocolService:
    """
    Service for protocol records and their compliance.

    Every compliance read is recomputed from the stored log history.
    """

    def __init__(self, db_session: Session, settings: Optional[EngineSettings] = None):
        """Initialize with database session and engine settings."""
        self.db = db_session
        self.settings = settings or get_engine_settings()
        self.store = ComplianceStore(db_session)
        self.evaluator = ComplianceEvaluator.from_settings(self.settings)
        self.validator = LogValidator.from_settings(self.settings)
        self.aggregator = ProtocolAggregator(self.evaluator)

    # =========================================================================
    # PROTOCOL RECORDS
    # =========================================================================

    def create_protocol(
        self,
        name: str,
        frequency: Frequency,
        target_count: int,
        description: Optional[str] = None,
        zone_ids: Optional[Iterable[str]] = None,
        is_active: bool = True,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Create a protocol and record its initial frequency."""
        now = as_utc(now) if now else utcnow()

        zones, missing = self._resolve_zones(zone_ids)
        if missing:
            return _not_found(f"Hazard zone(s) not found: {', '.join(missing)}")

        protocol = ProtocolDB(
            id=str(uuid4()),
            name=name,
            description=description,
            frequency=coerce_frequency(frequency),
            target_count=target_count,
            is_active=is_active,
            created_at=to_naive_utc(now),
            updated_at=to_naive_utc(now),
        )
        protocol.zones = zones
        self.db.add(protocol)
        self.store.record_frequency_revision(protocol, effective_from=now)
        self.db.commit()

        logger.info(f"Created protocol {protocol.id} ({protocol.frequency.value}, target {target_count})")
        return {"protocol": serialize_protocol(protocol)}

    def list_protocols(
        self,
        active_only: bool = False,
        zone_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return [
            serialize_protocol(protocol)
            for protocol in self.store.load_protocols(active_only=active_only, zone_id=zone_id)
        ]

    def get_protocol(self, protocol_id: str) -> Dict[str, Any]:
        protocol = self.store.load_protocol(protocol_id)
        if not protocol:
            return _not_found("Protocol not found")
        return {"protocol": serialize_protocol(protocol)}

    def update_protocol(
        self,
        protocol_id: str,
        changes: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Apply a partial update.

        A frequency change is recorded as a new revision effective `now`,
        so windows before the change keep their original boundaries.
        """
        now = as_utc(now) if now else utcnow()

        protocol = self.store.load_protocol(protocol_id)
        if not protocol:
            return _not_found("Protocol not found")

        if "zone_ids" in changes:
            zones, missing = self._resolve_zones(changes["zone_ids"])
            if missing:
                return _not_found(f"Hazard zone(s) not found: {', '.join(missing)}")
            protocol.zones = zones

        for field_name in ("name", "description", "target_count", "is_active"):
            if field_name in changes:
                setattr(protocol, field_name, changes[field_name])

        if "frequency" in changes and changes["frequency"] is not None:
            frequency = coerce_frequency(changes["frequency"])
            if frequency != protocol.frequency:
                logger.info(
                    f"Protocol {protocol.id} frequency change "
                    f"{protocol.frequency.value} -> {frequency.value}"
                )
                protocol.frequency = frequency
                self.store.record_frequency_revision(protocol, effective_from=now)

        protocol.updated_at = to_naive_utc(now)
        self.db.commit()

        return {"protocol": serialize_protocol(protocol)}

    def delete_protocol(self, protocol_id: str) -> Dict[str, Any]:
        """Delete a protocol; its logs and revisions go with it."""
        protocol = self.store.load_protocol(protocol_id)
        if not protocol:
            return _not_found("Protocol not found")

        self.db.delete(protocol)
        self.db.commit()

        logger.info(f"Deleted protocol {protocol_id}")
        return {"deleted": protocol_id}

    # =========================================================================
    # COMPLIANCE LOGS
    # =========================================================================

    def log_completion(
        self,
        protocol_id: str,
        completion_date: Optional[datetime] = None,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Record a completed inspection.

        completion_date defaults to now. The date is validated before
        anything is written.
        """
        now = as_utc(now) if now else utcnow()

        protocol = self.store.load_protocol(protocol_id)
        if not protocol:
            return _not_found("Protocol not found")

        completion_date = as_utc(completion_date) if completion_date else now

        verdict = self.validator.validate(completion_date, now)
        if not verdict.accepted:
            return {"error": verdict.detail, "error_code": verdict.reason.value}

        log = self.store.append_log(protocol.id, completion_date, note)
        self.db.commit()

        return {
            "log": serialize_log(log),
            "compliance": self._assess(protocol, now).to_dict(),
        }

    def get_logs(self, protocol_id: str, since: Optional[datetime] = None) -> Dict[str, Any]:
        protocol = self.store.load_protocol(protocol_id)
        if not protocol:
            return _not_found("Protocol not found")
        return {"logs": [serialize_log(log) for log in self.store.load_logs(protocol_id, since=since)]}

    # =========================================================================
    # COMPLIANCE READS
    # =========================================================================

    def get_compliance(self, protocol_id: str, at: Optional[datetime] = None) -> Dict[str, Any]:
        """Compliance state of one protocol at `at` (default now)."""
        protocol = self.store.load_protocol(protocol_id)
        if not protocol:
            return _not_found("Protocol not found")
        return self._assess(protocol, as_utc(at) if at else utcnow()).to_dict()

    def get_window_history(
        self,
        protocol_id: str,
        since: datetime,
        until: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Per-window completion counts between `since` and `until`, for audits."""
        now = as_utc(now) if now else utcnow()
        until = as_utc(until) if until else now

        protocol = self.store.load_protocol(protocol_id)
        if not protocol:
            return _not_found("Protocol not found")

        snapshot = self.store.to_snapshot(protocol)
        since = as_utc(since)
        if snapshot.created_at is not None and since < snapshot.created_at:
            since = snapshot.created_at

        first_window = self.evaluator.window_at(snapshot, since)
        logs = self.store.to_entries(self.store.load_logs(protocol.id, since=first_window.start))

        try:
            history = self.evaluator.window_history(
                snapshot, logs, since, until,
                reference_instant=now,
                max_windows=self.settings.max_history_windows,
            )
        except HistoryRangeError as e:
            logger.warning(str(e))
            return {
                "error": f"History range covers more than {self.settings.max_history_windows} windows",
                "error_code": RANGE_TOO_LARGE,
            }
        return {
            "protocol_id": protocol.id,
            "windows": [evaluation.to_dict() for evaluation in history],
        }

    def get_summary(
        self,
        at: Optional[datetime] = None,
        zone_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fleet-level compliance, optionally restricted to one hazard zone."""
        at = as_utc(at) if at else utcnow()

        if zone_id is not None and not self.store.load_zone(zone_id):
            return _not_found("Hazard zone not found")

        return self.summarize_protocols(self.store.load_protocols(zone_id=zone_id), at).to_dict()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _assess(self, protocol: ProtocolDB, at: datetime):
        snapshot = self.store.to_snapshot(protocol)
        logs = []
        if snapshot.is_active:
            since = self.evaluator.history_floor(snapshot, at)
            logs = self.store.to_entries(self.store.load_logs(protocol.id, since=since))
        return self.evaluator.assess(snapshot, logs, at)

    def summarize_protocols(self, protocols: List[ProtocolDB], at: datetime):
        snapshots = [self.store.to_snapshot(protocol) for protocol in protocols]

        floors = [
            self.evaluator.history_floor(snapshot, at)
            for snapshot in snapshots if snapshot.is_active
        ]
        rows = self.store.load_logs_by_protocol(
            [snapshot.id for snapshot in snapshots if snapshot.is_active],
            since=min(floors) if floors else None,
        )
        logs_by_protocol_id = {pid: self.store.to_entries(logs) for pid, logs in rows.items()}

        return self.aggregator.summarize(snapshots, logs_by_protocol_id, at)

    def _resolve_zones(self, zone_ids: Optional[Iterable[str]]):
        """Return (zones, missing_ids)."""
        wanted = sorted(set(zone_ids or ()))
        zones = self.store.load_zones(wanted)
        found = {zone.id for zone in zones}
        return zones, [zone_id for zone_id in wanted if zone_id not in found]


# =============================================================================
# COMPLIANCE SWEEP (periodic external caller)
# =============================================================================

class ComplianceSweep:
    """
    Periodic sweep over all protocols.

    Nothing in the engine runs on a timer; a scheduler calls this endpoint
    to surface overdue protocols proactively.
    """

    def __init__(self, db_session: Session, settings: Optional[EngineSettings] = None):
        self.service = ProtocolService(db_session, settings)

    def run(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = as_utc(now) if now else utcnow()

        protocols = self.service.store.load_protocols()
        summary = self.service.summarize_protocols(protocols, now)
        names = {protocol.id: protocol.name for protocol in protocols}

        overdue = []
        for evaluation in summary.evaluations:
            if evaluation.state != ComplianceState.OVERDUE:
                continue
            previous = evaluation.previous
            overdue.append({
                "protocol_id": evaluation.protocol_id,
                "name": names[evaluation.protocol_id],
                "missed_window": previous.window.to_dict() if previous else None,
                "completions": previous.completion_count if previous else 0,
                "target_count": previous.target_count if previous else None,
            })
            logger.warning(f"Protocol {evaluation.protocol_id} ({names[evaluation.protocol_id]}) is overdue")

        logger.info(f"Compliance sweep complete: {len(overdue)} overdue of {len(summary.states)}")
        return {
            "run_date": now.isoformat(),
            "protocols_evaluated": len(summary.states),
            "overdue_count": len(overdue),
            "rollup": {state.value: count for state, count in summary.rollup.items()},
            "overdue": overdue,
        }
