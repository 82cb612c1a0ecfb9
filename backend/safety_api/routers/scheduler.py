"""
Scheduler API Routes

Internal endpoint for the periodic compliance sweep.
Overdue detection is computed on read; this endpoint exists so an
external scheduler (cron) can surface overdue protocols proactively.
"""
from fastapi import APIRouter, Depends, HTTPException, Header
from sqlalchemy.orm import Session

from ..config import INTERNAL_API_KEY
from ..database import get_db
from ..services.protocol_service import ComplianceSweep


router = APIRouter(prefix="/internal", tags=["scheduler"])


async def verify_internal_key(x_internal_key: str = Header(...)):
    """Verify internal API key for scheduler endpoints."""
    if x_internal_key != INTERNAL_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid internal API key")
    return True


@router.post("/compliance-sweep", response_model=dict)
async def run_compliance_sweep(
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """
    Evaluate every protocol now and report the overdue ones.

    Read-only: nothing is written.
    """
    sweep = ComplianceSweep(db)
    return {"task": "compliance_sweep", **sweep.run()}
