"""
Safety Compliance API - FastAPI Application

Main entry point for the safety protocol compliance backend.

Architecture:
- Routers: shape validation and HTTP status mapping only
- ProtocolService / HazardZoneService: orchestration over the store
- ComplianceStore: SQLAlchemy persistence (append-only compliance logs)
- Compliance engine: pure window calculation, log validation,
  evaluation and aggregation; state is always recomputed on read
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import LOG_LEVEL, get_engine_settings
from .database import init_db
from .routers import protocols_router, hazard_zones_router, compliance_router, scheduler_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate engine settings and initialize database on startup."""
    settings = get_engine_settings()
    logger.info(
        f"Compliance windows in {settings.timezone_name}, "
        f"shift boundary {settings.shift_boundary_hour:02d}:00"
    )
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="Safety Compliance API",
    description="""
    Safety Compliance API - Inspection Protocol Tracking

    Manages recurring safety inspection protocols tied to hazard zones and
    evaluates their compliance from the logged completion history.

    ## Compliance States
    - **COMPLIANT**: target reached in the current window
    - **PENDING**: current window open and short of target
    - **OVERDUE**: last closed window missed its target, nothing logged since
    - **NOT_YET_DUE**: evaluated before the protocol existed
    - **INACTIVE**: protocol switched off
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(protocols_router)
app.include_router(hazard_zones_router)
app.include_router(compliance_router)
app.include_router(scheduler_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Safety Compliance API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# For running with: python -m safety_api.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
