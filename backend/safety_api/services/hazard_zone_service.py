"""
Hazard Zone Service

CRUD for hazard zones. Zones are referenced by protocols by id only;
deleting a zone drops its protocol associations and leaves the
protocols (and their logs) in place.
"""
import logging
from typing import Optional, List, Dict, Any
from uuid import uuid4

from sqlalchemy.orm import Session

from ..models.compliance import as_utc
from ..models.db_models import HazardZoneDB
from .compliance.errors import NOT_FOUND
from .compliance_store import ComplianceStore

logger = logging.getLogger(__name__)


def serialize_zone(zone: HazardZoneDB) -> Dict[str, Any]:
    return {
        "id": zone.id,
        "name": zone.name,
        "color": zone.color,
        "protocol_ids": sorted(protocol.id for protocol in zone.protocols),
        "created_at": as_utc(zone.created_at).isoformat() if zone.created_at else None,
    }


class HazardZoneService:
    """Service for hazard zone records."""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.store = ComplianceStore(db_session)

    def create_zone(self, name: str, color: Optional[str] = None) -> Dict[str, Any]:
        zone = HazardZoneDB(id=str(uuid4()), name=name, color=color)
        self.db.add(zone)
        self.db.commit()

        logger.info(f"Created hazard zone {zone.id} ({name})")
        return {"zone": serialize_zone(zone)}

    def list_zones(self) -> List[Dict[str, Any]]:
        zones = self.db.query(HazardZoneDB).order_by(HazardZoneDB.name).all()
        return [serialize_zone(zone) for zone in zones]

    def get_zone(self, zone_id: str) -> Dict[str, Any]:
        zone = self.store.load_zone(zone_id)
        if not zone:
            return {"error": "Hazard zone not found", "error_code": NOT_FOUND}
        return {"zone": serialize_zone(zone)}

    def update_zone(self, zone_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        zone = self.store.load_zone(zone_id)
        if not zone:
            return {"error": "Hazard zone not found", "error_code": NOT_FOUND}

        for field_name in ("name", "color"):
            if field_name in changes:
                setattr(zone, field_name, changes[field_name])
        self.db.commit()

        return {"zone": serialize_zone(zone)}

    def delete_zone(self, zone_id: str) -> Dict[str, Any]:
        zone = self.store.load_zone(zone_id)
        if not zone:
            return {"error": "Hazard zone not found", "error_code": NOT_FOUND}

        self.db.delete(zone)
        self.db.commit()

        logger.info(f"Deleted hazard zone {zone_id}")
        return {"deleted": zone_id}
