"""
Hazard Zone API Routes

CRUD for hazard zones. Zone color is presentation only.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.hazard_zone_service import HazardZoneService
from .http_errors import raise_for_error


router = APIRouter(prefix="/api/hazard-zones", tags=["hazard-zones"])

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class CreateHazardZoneRequest(BaseModel):
    """Request to create a hazard zone."""
    name: str = Field(..., min_length=3, max_length=50, description="Zone name")
    color: Optional[str] = Field(None, pattern=HEX_COLOR, description="Hex color, e.g. #dc2626")


class UpdateHazardZoneRequest(BaseModel):
    """Partial update of a hazard zone."""
    name: Optional[str] = Field(None, min_length=3, max_length=50)
    color: Optional[str] = Field(None, pattern=HEX_COLOR)


@router.get("", response_model=dict)
async def get_hazard_zones(db: Session = Depends(get_db)):
    """Get all hazard zones."""
    service = HazardZoneService(db)
    return {"zones": service.list_zones()}


@router.post("", response_model=dict, status_code=201)
async def create_hazard_zone(
    request: CreateHazardZoneRequest,
    db: Session = Depends(get_db),
):
    """Create a new hazard zone."""
    service = HazardZoneService(db)
    result = service.create_zone(name=request.name, color=request.color)
    return {"message": "Hazard zone created successfully", **result}


@router.get("/{zone_id}", response_model=dict)
async def get_hazard_zone(
    zone_id: UUID,
    db: Session = Depends(get_db),
):
    """Get a hazard zone by id."""
    service = HazardZoneService(db)
    return raise_for_error(service.get_zone(str(zone_id)))


@router.patch("/{zone_id}", response_model=dict)
async def update_hazard_zone(
    zone_id: UUID,
    request: UpdateHazardZoneRequest,
    db: Session = Depends(get_db),
):
    """Update a hazard zone."""
    service = HazardZoneService(db)
    # color may be cleared with null; name may not
    changes = {
        key: value
        for key, value in request.model_dump(exclude_unset=True).items()
        if value is not None or key == "color"
    }
    return raise_for_error(service.update_zone(str(zone_id), changes))


@router.delete("/{zone_id}", response_model=dict)
async def delete_hazard_zone(
    zone_id: UUID,
    db: Session = Depends(get_db),
):
    """Delete a hazard zone. Protocols in it become unzoned, not deleted."""
    service = HazardZoneService(db)
    result = raise_for_error(service.delete_zone(str(zone_id)))
    return {"message": "Hazard zone deleted", **result}
