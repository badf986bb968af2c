from . import audit, decision_logs, health

__all__ = ["audit", "decision_logs", "health"]
