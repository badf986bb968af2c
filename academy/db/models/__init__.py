"""Database models for the Academy decision log."""

from academy.db.models.decision_log import DecisionLogEntry, DecisionKind

__all__ = [
    "DecisionLogEntry",
    "DecisionKind",
]
