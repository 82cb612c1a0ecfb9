"""
Protocol Aggregator

Fleet-level compliance summary: runs the evaluator over a collection of
protocols at one reference instant and rolls the states up globally and
per hazard zone. No policy of its own beyond composition.

- A protocol with no log list (or an empty one) is evaluated with zero
  completions.
- A protocol with no zones counts in the global rollup only.
- Inactive protocols are reported as INACTIVE and kept out of the
  compliance rate.
"""
import logging
from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence

from ...models.compliance import (
    ComplianceState,
    ComplianceSummary,
    ProtocolSnapshot,
    as_utc,
)
from .evaluator import ComplianceEvaluator

logger = logging.getLogger(__name__)


class ProtocolAggregator:
    """Composes the evaluator across many protocols."""

    def __init__(self, evaluator: Optional[ComplianceEvaluator] = None):
        self.evaluator = evaluator or ComplianceEvaluator()

    def summarize(
        self,
        protocols: Iterable[ProtocolSnapshot],
        logs_by_protocol_id: Mapping[str, Sequence],
        reference_instant: datetime,
    ) -> ComplianceSummary:
        """
        Evaluate every protocol at `reference_instant`.

        Args:
            protocols: Protocol snapshots
            logs_by_protocol_id: Logs keyed by protocol id; missing keys mean no logs
            reference_instant: Instant to evaluate at

        Returns:
            ComplianceSummary with per-protocol states, global and per-zone rollups
        """
        summary = ComplianceSummary(reference_instant=as_utc(reference_instant))

        for protocol in protocols:
            logs = logs_by_protocol_id.get(protocol.id) or ()
            evaluation = self.evaluator.assess(protocol, logs, reference_instant)

            summary.evaluations.append(evaluation)
            summary.states[protocol.id] = evaluation.state
            summary.rollup[evaluation.state] += 1

            for zone_id in sorted(protocol.zone_ids):
                counts = summary.zone_rollup.setdefault(
                    zone_id, {state: 0 for state in ComplianceState}
                )
                counts[evaluation.state] += 1

        logger.info(
            f"Compliance summary at {summary.reference_instant.isoformat()}: "
            f"{len(summary.states)} protocols, "
            f"{summary.rollup[ComplianceState.OVERDUE]} overdue"
        )
        return summary


def summarize(
    protocols: Iterable[ProtocolSnapshot],
    logs_by_protocol_id: Mapping[str, Sequence],
    reference_instant: datetime,
    evaluator: Optional[ComplianceEvaluator] = None,
) -> ComplianceSummary:
    """Summarize with a default evaluator unless one is given."""
    return ProtocolAggregator(evaluator).summarize(protocols, logs_by_protocol_id, reference_instant)
