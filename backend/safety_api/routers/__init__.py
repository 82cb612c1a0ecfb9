"""Safety Compliance API - Routers"""
from .protocols import router as protocols_router
from .hazard_zones import router as hazard_zones_router
from .compliance import router as compliance_router
from .scheduler import router as scheduler_router

__all__ = [
    "protocols_router",
    "hazard_zones_router",
    "compliance_router",
    "scheduler_router",
]
