"""
Protocol API Routes

Safety inspection protocols, their compliance logs and compliance reads.
Request bodies are shape-validated here; compliance rules live in the
engine behind ProtocolService.
"""
from datetime import datetime
from typing import Optional, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.compliance import Frequency
from ..services.protocol_service import ProtocolService
from .http_errors import raise_for_error


router = APIRouter(prefix="/api/protocols", tags=["protocols"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class CreateProtocolRequest(BaseModel):
    """Request to create a protocol. Field names match the response (snake_case)."""
    name: str = Field(..., min_length=3, max_length=200, description="Protocol name")
    description: Optional[str] = Field(None, description="What the inspection covers")
    frequency: Frequency = Field(..., description="Recurrence of the inspection")
    target_count: int = Field(..., ge=1, description="Completions required per window")
    zone_ids: Optional[List[str]] = Field(None, description="Hazard zones; empty = global")


class UpdateProtocolRequest(BaseModel):
    """Partial update of a protocol."""
    name: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None
    frequency: Optional[Frequency] = None
    target_count: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None
    zone_ids: Optional[List[str]] = None


class CreateComplianceLogRequest(BaseModel):
    """Request to record a completed inspection."""
    completion_date: Optional[datetime] = Field(
        None, description="When the inspection was completed (defaults to now)"
    )
    note: Optional[str] = Field(None, max_length=500, description="Technician observations")


# Fields that may be cleared with an explicit null
NULLABLE_FIELDS = {"description"}


# =============================================================================
# PROTOCOL CRUD
# =============================================================================

@router.get("", response_model=dict)
async def get_protocols(
    active_only: bool = False,
    zone_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Get all protocols, optionally only active ones or those in one zone."""
    service = ProtocolService(db)
    return {"protocols": service.list_protocols(active_only=active_only, zone_id=zone_id)}


@router.post("", response_model=dict, status_code=201)
async def create_protocol(
    request: CreateProtocolRequest,
    db: Session = Depends(get_db),
):
    """Create a new safety inspection protocol."""
    service = ProtocolService(db)

    result = raise_for_error(service.create_protocol(
        name=request.name,
        frequency=request.frequency,
        target_count=request.target_count,
        description=request.description,
        zone_ids=request.zone_ids,
    ))

    return {"message": "Safety protocol created successfully", **result}


@router.get("/{protocol_id}", response_model=dict)
async def get_protocol(
    protocol_id: UUID,
    db: Session = Depends(get_db),
):
    """Get a protocol by id."""
    service = ProtocolService(db)
    return raise_for_error(service.get_protocol(str(protocol_id)))


@router.patch("/{protocol_id}", response_model=dict)
async def update_protocol(
    protocol_id: UUID,
    request: UpdateProtocolRequest,
    db: Session = Depends(get_db),
):
    """
    Update a protocol.

    Changing the frequency only affects windows from now on.
    """
    service = ProtocolService(db)

    changes = {
        key: value
        for key, value in request.model_dump(exclude_unset=True).items()
        if value is not None or key in NULLABLE_FIELDS
    }

    return raise_for_error(service.update_protocol(str(protocol_id), changes))


@router.delete("/{protocol_id}", response_model=dict)
async def delete_protocol(
    protocol_id: UUID,
    db: Session = Depends(get_db),
):
    """Delete a protocol together with its compliance logs."""
    service = ProtocolService(db)
    result = raise_for_error(service.delete_protocol(str(protocol_id)))
    return {"message": "Protocol deleted", **result}


# =============================================================================
# COMPLIANCE LOGS
# =============================================================================

@router.post("/{protocol_id}/compliance-logs", response_model=dict, status_code=201)
async def create_compliance_log(
    protocol_id: UUID,
    request: CreateComplianceLogRequest,
    db: Session = Depends(get_db),
):
    """
    Record a completed safety inspection.

    Future completion dates are rejected with 400.
    """
    service = ProtocolService(db)

    result = raise_for_error(service.log_completion(
        str(protocol_id),
        completion_date=request.completion_date,
        note=request.note,
    ))

    return {"message": "Compliance check recorded", **result}


@router.get("/{protocol_id}/compliance-logs", response_model=dict)
async def get_compliance_logs(
    protocol_id: UUID,
    since: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    """Get the compliance logs of a protocol, oldest completion first."""
    service = ProtocolService(db)
    return raise_for_error(service.get_logs(str(protocol_id), since=since))


# =============================================================================
# COMPLIANCE READS
# =============================================================================

@router.get("/{protocol_id}/compliance", response_model=dict)
async def get_protocol_compliance(
    protocol_id: UUID,
    at: Optional[datetime] = Query(None, description="Evaluate at this instant (defaults to now)"),
    db: Session = Depends(get_db),
):
    """Current (or historical) compliance state of a protocol."""
    service = ProtocolService(db)
    return raise_for_error(service.get_compliance(str(protocol_id), at=at))


@router.get("/{protocol_id}/compliance/history", response_model=dict)
async def get_protocol_compliance_history(
    protocol_id: UUID,
    since: datetime = Query(..., description="First window contains this instant"),
    until: Optional[datetime] = Query(None, description="Stop before this instant (defaults to now)"),
    db: Session = Depends(get_db),
):
    """
    Per-window completion counts for audits.

    Starts no earlier than the protocol's creation; ranges longer than
    MAX_HISTORY_WINDOWS windows are rejected with 400.
    """
    service = ProtocolService(db)
    return raise_for_error(service.get_window_history(str(protocol_id), since=since, until=until))
