"""
Safety Compliance API - SQLAlchemy ORM Models
Persistent storage for protocols, hazard zones and compliance logs.

All DateTime columns hold naive UTC.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, Enum as SQLEnum, Boolean, Table
from sqlalchemy.orm import relationship
from ..database import Base
from .compliance import Frequency


def utcnow_naive() -> datetime:
    """Current time as naive UTC (column default)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Protocol <-> HazardZone (weak reference; no ownership either way)
protocol_zones = Table(
    "protocol_zones",
    Base.metadata,
    Column("protocol_id", String(36), ForeignKey("protocols.id", ondelete="CASCADE"), primary_key=True),
    Column("zone_id", String(36), ForeignKey("hazard_zones.id", ondelete="CASCADE"), primary_key=True),
)


class HazardZoneDB(Base):
    """Hazard zone a protocol may apply to."""
    __tablename__ = "hazard_zones"

    id = Column(String(36), primary_key=True)  # UUID
    name = Column(String(50), nullable=False)
    color = Column(String(7), nullable=True)  # "#RRGGBB", presentation only

    created_at = Column(DateTime, default=utcnow_naive)
    updated_at = Column(DateTime, default=utcnow_naive, onupdate=utcnow_naive)

    # Relationships
    protocols = relationship("ProtocolDB", secondary=protocol_zones, back_populates="zones")


class ProtocolDB(Base):
    """Recurring safety inspection protocol."""
    __tablename__ = "protocols"

    id = Column(String(36), primary_key=True)  # UUID
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # Recurrence
    frequency = Column(SQLEnum(Frequency), nullable=False)
    target_count = Column(Integer, nullable=False, default=1)  # Completions required per window
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow_naive, nullable=False)
    updated_at = Column(DateTime, default=utcnow_naive, onupdate=utcnow_naive)

    # Relationships
    zones = relationship("HazardZoneDB", secondary=protocol_zones, back_populates="protocols")
    logs = relationship(
        "ComplianceLogDB", back_populates="protocol",
        cascade="all, delete-orphan",
    )
    frequency_revisions = relationship(
        "ProtocolFrequencyRevisionDB", back_populates="protocol",
        cascade="all, delete-orphan",
        order_by="ProtocolFrequencyRevisionDB.effective_from",
    )


class ProtocolFrequencyRevisionDB(Base):
    """
    Frequency history of a protocol.

    One row is written at creation and one on every frequency change.
    Windows before effective_from keep the previous frequency.
    """
    __tablename__ = "protocol_frequency_revisions"

    id = Column(String(36), primary_key=True)  # UUID
    protocol_id = Column(String(36), ForeignKey("protocols.id", ondelete="CASCADE"), nullable=False, index=True)
    frequency = Column(SQLEnum(Frequency), nullable=False)
    effective_from = Column(DateTime, nullable=False)

    created_at = Column(DateTime, default=utcnow_naive)

    # Relationships
    protocol = relationship("ProtocolDB", back_populates="frequency_revisions")


class ComplianceLogDB(Base):
    """
    A recorded protocol completion.

    Append-only: rows are never updated or deleted by the application
    (they go away only with their protocol).
    """
    __tablename__ = "compliance_logs"

    id = Column(String(36), primary_key=True)  # UUID
    protocol_id = Column(String(36), ForeignKey("protocols.id", ondelete="CASCADE"), nullable=False, index=True)

    completion_date = Column(DateTime, nullable=False, index=True)  # When the inspection happened
    note = Column(String(500), nullable=True)  # Technician observations, opaque to the engine

    created_at = Column(DateTime, default=utcnow_naive, nullable=False)  # Ingestion time

    # Relationships
    protocol = relationship("ProtocolDB", back_populates="logs")
