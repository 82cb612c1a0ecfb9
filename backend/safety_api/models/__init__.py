"""Safety Compliance API - Data Models"""
from .compliance import (
    # Enums
    Frequency, ComplianceState,
    # Engine inputs
    Window, FrequencyRevision, ProtocolSnapshot, ComplianceLogEntry,
    # Engine outputs
    WindowEvaluation, ComplianceEvaluation, ComplianceSummary,
)

__all__ = [
    "Frequency", "ComplianceState",
    "Window", "FrequencyRevision", "ProtocolSnapshot", "ComplianceLogEntry",
    "WindowEvaluation", "ComplianceEvaluation", "ComplianceSummary",
]
