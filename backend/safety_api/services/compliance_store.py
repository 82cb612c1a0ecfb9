"""
Compliance Store

SQLAlchemy-backed persistence the compliance engine consumes:
- load_protocol(id) -> ProtocolDB | None
- load_logs(protocol_id, since=None) -> logs ordered by completion date
- append_log(protocol_id, completion_date, note) -> ComplianceLogDB

Also converts ORM rows into the engine's snapshot types so nothing
downstream of the store touches a Session.

Logs are append-only here: there is no update or delete for them.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from ..models.compliance import (
    ComplianceLogEntry,
    FrequencyRevision,
    ProtocolSnapshot,
    as_utc,
)
from ..models.db_models import (
    ComplianceLogDB,
    HazardZoneDB,
    ProtocolDB,
    ProtocolFrequencyRevisionDB,
    protocol_zones,
    utcnow_naive,
)

logger = logging.getLogger(__name__)


def to_naive_utc(instant: datetime) -> datetime:
    """Column representation: naive UTC."""
    return as_utc(instant).replace(tzinfo=None)


class ComplianceStore:
    """Record store for protocols, zones and compliance logs."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # PROTOCOLS
    # =========================================================================

    def load_protocol(self, protocol_id: str) -> Optional[ProtocolDB]:
        return self.db.query(ProtocolDB).filter(ProtocolDB.id == protocol_id).first()

    def load_protocols(
        self,
        active_only: bool = False,
        zone_id: Optional[str] = None,
    ) -> List[ProtocolDB]:
        query = self.db.query(ProtocolDB)
        if active_only:
            query = query.filter(ProtocolDB.is_active.is_(True))
        if zone_id is not None:
            query = query.join(protocol_zones).filter(protocol_zones.c.zone_id == zone_id)
        return query.order_by(ProtocolDB.created_at, ProtocolDB.id).all()

    def record_frequency_revision(
        self,
        protocol: ProtocolDB,
        effective_from: datetime,
    ) -> ProtocolFrequencyRevisionDB:
        """Record that `protocol.frequency` applies from `effective_from` on."""
        revision = ProtocolFrequencyRevisionDB(
            id=str(uuid4()),
            protocol_id=protocol.id,
            frequency=protocol.frequency,
            effective_from=to_naive_utc(effective_from),
        )
        protocol.frequency_revisions.append(revision)
        self.db.add(revision)
        logger.info(
            f"Protocol {protocol.id} frequency {protocol.frequency.value} "
            f"effective from {revision.effective_from.isoformat()}"
        )
        return revision

    # =========================================================================
    # HAZARD ZONES
    # =========================================================================

    def load_zone(self, zone_id: str) -> Optional[HazardZoneDB]:
        return self.db.query(HazardZoneDB).filter(HazardZoneDB.id == zone_id).first()

    def load_zones(self, zone_ids: Iterable[str]) -> List[HazardZoneDB]:
        zone_ids = list(zone_ids)
        if not zone_ids:
            return []
        return self.db.query(HazardZoneDB).filter(HazardZoneDB.id.in_(zone_ids)).all()

    # =========================================================================
    # COMPLIANCE LOGS
    # =========================================================================

    def load_logs(self, protocol_id: str, since: Optional[datetime] = None) -> List[ComplianceLogDB]:
        query = self.db.query(ComplianceLogDB).filter(ComplianceLogDB.protocol_id == protocol_id)
        if since is not None:
            query = query.filter(ComplianceLogDB.completion_date >= to_naive_utc(since))
        return query.order_by(ComplianceLogDB.completion_date, ComplianceLogDB.created_at).all()

    def load_logs_by_protocol(
        self,
        protocol_ids: Iterable[str],
        since: Optional[datetime] = None,
    ) -> Dict[str, List[ComplianceLogDB]]:
        """Logs for many protocols in one query, keyed by protocol id."""
        protocol_ids = list(protocol_ids)
        grouped: Dict[str, List[ComplianceLogDB]] = {pid: [] for pid in protocol_ids}
        if not protocol_ids:
            return grouped

        query = self.db.query(ComplianceLogDB).filter(ComplianceLogDB.protocol_id.in_(protocol_ids))
        if since is not None:
            query = query.filter(ComplianceLogDB.completion_date >= to_naive_utc(since))
        for log in query.order_by(ComplianceLogDB.completion_date, ComplianceLogDB.created_at):
            grouped[log.protocol_id].append(log)
        return grouped

    def append_log(
        self,
        protocol_id: str,
        completion_date: datetime,
        note: Optional[str] = None,
    ) -> ComplianceLogDB:
        log = ComplianceLogDB(
            id=str(uuid4()),
            protocol_id=protocol_id,
            completion_date=to_naive_utc(completion_date),
            note=note,
            created_at=utcnow_naive(),
        )
        self.db.add(log)
        self.db.flush()
        logger.info(f"Appended compliance log {log.id} for protocol {protocol_id} at {log.completion_date.isoformat()}")
        return log

    # =========================================================================
    # ENGINE CONVERSIONS
    # =========================================================================

    @staticmethod
    def to_snapshot(protocol: ProtocolDB) -> ProtocolSnapshot:
        return ProtocolSnapshot(
            id=protocol.id,
            name=protocol.name,
            frequency=protocol.frequency,
            target_count=protocol.target_count,
            is_active=bool(protocol.is_active),
            zone_ids=frozenset(zone.id for zone in protocol.zones),
            created_at=as_utc(protocol.created_at) if protocol.created_at else None,
            frequency_revisions=tuple(
                FrequencyRevision(
                    effective_from=as_utc(revision.effective_from),
                    frequency=revision.frequency,
                )
                for revision in protocol.frequency_revisions
            ),
        )

    @staticmethod
    def to_entry(log: ComplianceLogDB) -> ComplianceLogEntry:
        return ComplianceLogEntry(
            id=log.id,
            protocol_id=log.protocol_id,
            completion_date=as_utc(log.completion_date),
            note=log.note,
            created_at=as_utc(log.created_at) if log.created_at else None,
        )

    @classmethod
    def to_entries(cls, logs: Iterable[ComplianceLogDB]) -> List[ComplianceLogEntry]:
        return [cls.to_entry(log) for log in logs]
