"""
Compliance Engine Errors

Two kinds of failure exist in the engine:
- Rejections of user input (a completion date in the future, a backfill
  older than allowed). These are VALUES, returned inside a
  LogValidationResult and mapped to 400 by the HTTP layer.
- Configuration faults (unknown frequency, target_count < 1, a shift hour
  outside 0..23). These are upstream invariant violations and RAISE.
"""
from enum import Enum


class ComplianceError(Exception):
    """Base class for compliance engine exceptions."""


class ConfigurationError(ComplianceError):
    """
    An invariant the engine depends on was violated upstream.

    Never caught inside the engine and never replaced with a default.
    """


class RejectionReason(str, Enum):
    """Reason codes for rejected compliance log entries."""
    FUTURE_DATE = "FUTURE_DATE"
    TOO_OLD = "TOO_OLD"


# Service-level error codes (value-returned in result dicts)
NOT_FOUND = "NOT_FOUND"


class HistoryRangeError(ComplianceError):
    """A window history request spans more windows than allowed."""


# Service-level error code for HistoryRangeError
RANGE_TOO_LARGE = "RANGE_TOO_LARGE"
