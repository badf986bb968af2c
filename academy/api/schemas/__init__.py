from .decision_log import (
    ChainVerificationResponse,
    DecisionLogAck,
    DecisionLogEntryResponse,
    DecisionLogListResponse,
    DecisionLogPayload,
    TargetPayload,
)

__all__ = [
    "ChainVerificationResponse",
    "DecisionLogAck",
    "DecisionLogEntryResponse",
    "DecisionLogListResponse",
    "DecisionLogPayload",
    "TargetPayload",
]
