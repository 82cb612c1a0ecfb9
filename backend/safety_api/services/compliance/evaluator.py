"""
Compliance Evaluator

Derives the compliance state of a protocol from its full log history.
State is never stored: every call recomputes from the logs it is given,
so the same (protocol, logs, reference instant) always yields the same
answer.

States:
- INACTIVE:     protocol switched off (nothing else is evaluated)
- NOT_YET_DUE:  reference instant precedes the protocol's creation
- COMPLIANT:    current window count >= target
- OVERDUE:      most recently closed full window ended short of target and
                nothing has been logged in the current window yet (a window
                cut short by a frequency change, or only partly covered
                after creation, is not judged)
- PENDING:      everything else (current window open and short)

Frequency history:
A protocol may carry FrequencyRevisions. The frequency in force at an
instant is the latest revision with effective_from <= instant, and a
window computed under a revision is clipped to that revision's span.
Past windows therefore keep the boundaries they had when logs were
recorded; a change only affects windows from the change point forward.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from ...models.compliance import (
    ComplianceEvaluation,
    ComplianceState,
    Frequency,
    FrequencyRevision,
    ProtocolSnapshot,
    Window,
    WindowEvaluation,
    as_utc,
)
from .errors import ConfigurationError, HistoryRangeError
from .window_calculator import TICK, WindowCalculator, coerce_frequency

logger = logging.getLogger(__name__)


class ComplianceEvaluator:
    """
    Evaluates protocol compliance against recurrence windows.

    Usage:
        evaluator = ComplianceEvaluator(WindowCalculator(zone=tz.gettz("Europe/Berlin")))
        state = evaluator.evaluate(protocol, logs, now)
    """

    def __init__(self, calculator: Optional[WindowCalculator] = None):
        self.calculator = calculator or WindowCalculator()

    @classmethod
    def from_settings(cls, settings) -> "ComplianceEvaluator":
        return cls(WindowCalculator.from_settings(settings))

    # =========================================================================
    # STATE
    # =========================================================================

    def evaluate(
        self,
        protocol: ProtocolSnapshot,
        logs: Iterable,
        reference_instant: datetime,
    ) -> ComplianceState:
        """Return the compliance state at `reference_instant`."""
        return self.assess(protocol, logs, reference_instant).state

    def assess(
        self,
        protocol: ProtocolSnapshot,
        logs: Iterable,
        reference_instant: datetime,
    ) -> ComplianceEvaluation:
        """
        Evaluate a protocol and keep the window counts behind the verdict.

        Args:
            protocol: Protocol snapshot
            logs: Compliance log entries (anything with `completion_date`)
            reference_instant: Instant to evaluate at (naive = UTC)

        Raises:
            ConfigurationError: target_count < 1 or unknown frequency
        """
        reference = as_utc(reference_instant)

        if not protocol.is_active:
            return ComplianceEvaluation(protocol.id, ComplianceState.INACTIVE, reference)

        self._check_protocol(protocol)

        created_at = as_utc(protocol.created_at) if protocol.created_at else None
        if created_at is not None and reference < created_at:
            return ComplianceEvaluation(protocol.id, ComplianceState.NOT_YET_DUE, reference)

        logs = list(logs)
        current = self.evaluate_window(protocol, logs, self.window_at(protocol, reference), reference)

        if current.met:
            return ComplianceEvaluation(protocol.id, ComplianceState.COMPLIANT, reference, current)

        previous = None
        previous_window = self.window_at(protocol, current.window.start - TICK)
        if self.is_judged(previous_window, created_at):
            previous = self.evaluate_window(protocol, logs, previous_window, reference)

        if previous is not None and not previous.met and current.completion_count == 0:
            state = ComplianceState.OVERDUE
        else:
            state = ComplianceState.PENDING

        logger.debug(
            f"Protocol {protocol.id}: {state.value} "
            f"({current.completion_count}/{current.target_count} in current window)"
        )
        return ComplianceEvaluation(protocol.id, state, reference, current, previous)

    # =========================================================================
    # WINDOWS
    # =========================================================================

    def window_at(self, protocol: ProtocolSnapshot, instant: datetime) -> Window:
        """
        Window containing `instant`, under the frequency in force at that instant.
        """
        frequency, lower, upper = self._frequency_span(protocol, as_utc(instant))
        window = self.calculator.window_for(frequency, instant)

        start = lower if lower is not None and window.start < lower else window.start
        end = upper if upper is not None and window.end > upper else window.end
        if (start, end) == (window.start, window.end):
            return window
        return Window(start=start, end=end, frequency=frequency)

    def is_judged(self, window: Window, created_at: Optional[datetime] = None) -> bool:
        """
        Whether a closed window can make a protocol OVERDUE.

        Only windows the protocol spent entirely under their frequency
        count: a window cut short by a frequency change, or only partly
        covered after creation or a change, cannot be missed.
        """
        natural = self.calculator.window_for(window.frequency, window.start)
        if (natural.start, natural.end) != (window.start, window.end):
            return False
        return created_at is None or window.start >= as_utc(created_at)

    def evaluate_window(
        self,
        protocol: ProtocolSnapshot,
        logs: Iterable,
        window: Window,
        reference_instant: datetime,
    ) -> WindowEvaluation:
        """Count completions in any window, past or current."""
        count = sum(1 for log in logs if window.contains(log.completion_date))
        return WindowEvaluation(
            window=window,
            completion_count=count,
            target_count=protocol.target_count,
            closed=as_utc(reference_instant) >= window.end,
        )

    def window_history(
        self,
        protocol: ProtocolSnapshot,
        logs: Iterable,
        since: datetime,
        until: datetime,
        reference_instant: Optional[datetime] = None,
        max_windows: Optional[int] = None,
    ) -> List[WindowEvaluation]:
        """
        Evaluate every window from the one containing `since` up to `until`.

        Oldest first. `reference_instant` decides which windows count as
        closed and defaults to `until`.

        Raises:
            HistoryRangeError: the range covers more than `max_windows` windows
        """
        self._check_protocol(protocol)
        logs = list(logs)
        until = as_utc(until)
        reference = as_utc(reference_instant) if reference_instant else until

        history = []
        window = self.window_at(protocol, since)
        while window.start < until:
            if max_windows is not None and len(history) >= max_windows:
                raise HistoryRangeError(
                    f"History for protocol {protocol.id} exceeds {max_windows} windows"
                )
            history.append(self.evaluate_window(protocol, logs, window, reference))
            window = self.window_at(protocol, window.end)
        return history

    def history_floor(self, protocol: ProtocolSnapshot, reference_instant: datetime) -> datetime:
        """
        Earliest instant whose logs can affect the verdict at `reference_instant`.

        Callers pass it to the store to bound the log scan.
        """
        self._check_protocol(protocol)
        current = self.window_at(protocol, reference_instant)
        return self.window_at(protocol, current.start - TICK).start

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _check_protocol(self, protocol: ProtocolSnapshot) -> None:
        target = protocol.target_count
        if isinstance(target, bool) or not isinstance(target, int) or target < 1:
            raise ConfigurationError(
                f"Protocol {protocol.id} has invalid target_count {target!r}; must be an integer >= 1"
            )
        coerce_frequency(protocol.frequency)
        for revision in protocol.frequency_revisions:
            coerce_frequency(revision.frequency)

    def _frequency_span(
        self,
        protocol: ProtocolSnapshot,
        instant: datetime,
    ) -> Tuple[Frequency, Optional[datetime], Optional[datetime]]:
        """
        Frequency in force at `instant` and the span it is in force for.

        Returns (frequency, lower, upper). lower is None for the first
        revision and upper is None for the latest one.
        """
        revisions = _ordered(protocol.frequency_revisions)
        if not revisions:
            return coerce_frequency(protocol.frequency), None, None

        index = 0
        for position, revision in enumerate(revisions):
            if as_utc(revision.effective_from) > instant:
                break
            index = position

        lower = as_utc(revisions[index].effective_from) if index > 0 else None
        upper = None
        if index + 1 < len(revisions):
            upper = as_utc(revisions[index + 1].effective_from)
        return coerce_frequency(revisions[index].frequency), lower, upper


def _ordered(revisions: Sequence[FrequencyRevision]) -> Tuple[FrequencyRevision, ...]:
    # Stable: revisions recorded at the same instant keep their order
    return tuple(sorted(revisions, key=lambda revision: as_utc(revision.effective_from)))


def evaluate(
    protocol: ProtocolSnapshot,
    logs: Iterable,
    reference_instant: datetime,
    evaluator: Optional[ComplianceEvaluator] = None,
) -> ComplianceState:
    """Evaluate with a default (UTC, 06:00 shift boundary) evaluator unless one is given."""
    return (evaluator or ComplianceEvaluator()).evaluate(protocol, logs, reference_instant)
