"""
Compliance Engine

Pure, stateless evaluation of safety protocol compliance:
- WindowCalculator: recurrence window boundaries
- LogValidator: gate for new completion dates
- ComplianceEvaluator: state of one protocol from its log history
- ProtocolAggregator: fleet summary across protocols
"""

from .errors import ComplianceError, ConfigurationError, HistoryRangeError, RejectionReason
from .window_calculator import WindowCalculator, window_for, previous_window
from .log_validator import LogValidator, LogValidationResult, validate
from .evaluator import ComplianceEvaluator, evaluate
from .aggregator import ProtocolAggregator, summarize

__all__ = [
    'ComplianceError',
    'ConfigurationError',
    'HistoryRangeError',
    'RejectionReason',
    'WindowCalculator',
    'window_for',
    'previous_window',
    'LogValidator',
    'LogValidationResult',
    'validate',
    'ComplianceEvaluator',
    'evaluate',
    'ProtocolAggregator',
    'summarize',
]
