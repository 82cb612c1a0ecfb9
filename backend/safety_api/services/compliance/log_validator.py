"""
Log Validator

Gate run before a compliance log is appended by the store.
Only the completion date is judged; the note is opaque and never
affects the verdict. Several completions in the same window are
legitimate (two inspectors checking the same zone), so there is no
uniqueness rule.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ...models.compliance import as_utc
from .errors import ConfigurationError, RejectionReason

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogValidationResult:
    """Ok, or Rejected(reason)."""
    accepted: bool
    reason: Optional[RejectionReason] = None
    detail: Optional[str] = None

    @classmethod
    def ok(cls) -> "LogValidationResult":
        return cls(accepted=True)

    @classmethod
    def rejected(cls, reason: RejectionReason, detail: str) -> "LogValidationResult":
        return cls(accepted=False, reason=reason, detail=detail)


class LogValidator:
    """
    Validates proposed completion dates.

    Rules:
    - completion_date > now + clock_skew  -> FUTURE_DATE
    - completion_date < now - max_backfill -> TOO_OLD (only if max_backfill set)
    - completion_date == now is accepted
    """

    def __init__(
        self,
        clock_skew: timedelta = timedelta(0),
        max_backfill: Optional[timedelta] = None,
    ):
        if clock_skew < timedelta(0):
            raise ConfigurationError(f"Clock skew tolerance must be >= 0, got {clock_skew}")
        if max_backfill is not None and max_backfill < timedelta(0):
            raise ConfigurationError(f"Max backfill must be >= 0, got {max_backfill}")
        self.clock_skew = clock_skew
        self.max_backfill = max_backfill

    @classmethod
    def from_settings(cls, settings) -> "LogValidator":
        return cls(clock_skew=settings.clock_skew, max_backfill=settings.max_backfill)

    def validate(self, completion_date: datetime, now: datetime) -> LogValidationResult:
        completion_date = as_utc(completion_date)
        now = as_utc(now)

        latest_allowed = now + self.clock_skew
        if completion_date > latest_allowed:
            logger.warning(f"Rejected completion date {completion_date.isoformat()}: after {now.isoformat()}")
            return LogValidationResult.rejected(
                RejectionReason.FUTURE_DATE,
                f"Completion date {completion_date.isoformat()} is in the future",
            )

        if self.max_backfill is not None:
            earliest_allowed = now - self.max_backfill
            if completion_date < earliest_allowed:
                logger.warning(
                    f"Rejected completion date {completion_date.isoformat()}: "
                    f"older than backfill limit {earliest_allowed.isoformat()}"
                )
                return LogValidationResult.rejected(
                    RejectionReason.TOO_OLD,
                    f"Completion date {completion_date.isoformat()} is older than "
                    f"{self.max_backfill.days} days",
                )

        return LogValidationResult.ok()


def validate(
    completion_date: datetime,
    now: datetime,
    clock_skew: timedelta = timedelta(0),
    max_backfill: Optional[timedelta] = None,
) -> LogValidationResult:
    """Validate a completion date with explicit tolerances."""
    return LogValidator(clock_skew, max_backfill).validate(completion_date, now)
