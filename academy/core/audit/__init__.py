"""Decision auditing: records, the local ring buffer and remote decision log sinks."""

from .records import DecisionRecord, DecisionResult
from .recorder import AuditBuffer, AuditRecorder, DEFAULT_BUFFER_SIZE
from .sinks import (
    DecisionLogSink,
    DecisionForwardError,
    HttpDecisionLogSink,
    LoggingDecisionLogSink,
)

__all__ = [
    "DecisionRecord",
    "DecisionResult",
    "AuditBuffer",
    "AuditRecorder",
    "DEFAULT_BUFFER_SIZE",
    "DecisionLogSink",
    "DecisionForwardError",
    "HttpDecisionLogSink",
    "LoggingDecisionLogSink",
]
