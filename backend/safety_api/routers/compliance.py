"""
Compliance API Routes

Fleet-level compliance summary (read-only).
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.protocol_service import ProtocolService
from .http_errors import raise_for_error


router = APIRouter(prefix="/api/compliance", tags=["compliance"])


@router.get("/summary", response_model=dict)
async def get_compliance_summary(
    at: Optional[datetime] = Query(None, description="Evaluate at this instant (defaults to now)"),
    zone_id: Optional[str] = Query(None, description="Restrict to protocols in this hazard zone"),
    db: Session = Depends(get_db),
):
    """
    Compliance state of every protocol plus rollup counts per state.

    Inactive protocols are listed but excluded from the compliance rate.
    """
    service = ProtocolService(db)
    return raise_for_error(service.get_summary(at=at, zone_id=zone_id))
